"""tunescout FastAPI application entry point.

Wires together all providers, services, and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml`` and configures
structured logging.

Also provides :func:`service_context` for the CLI, which needs the same
fully wired :class:`RecommendationService` outside the web server.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from tunescout.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from tunescout.api.routes import router as api_router
from tunescout.config.engine import EngineConfig
from tunescout.config.loader import build_engine_config, load_config
from tunescout.config.settings import Settings
from tunescout.interfaces.llm_provider import ILLMProvider
from tunescout.interfaces.reranking_oracle import IRerankingOracle
from tunescout.providers.cache.memory_cache import MemoryCacheProvider
from tunescout.providers.llm.anthropic_provider import AnthropicLLMProvider
from tunescout.providers.llm.openai_provider import OpenAILLMProvider
from tunescout.providers.oracle.llm_reranking_oracle import LLMRerankingOracle
from tunescout.providers.search.http_search_provider import HttpTrackSearchProvider
from tunescout.providers.signal_store.sqlite_signal_store import SQLiteSignalStore
from tunescout.providers.trending.http_charts_provider import HttpChartsProvider
from tunescout.services.recommendation_service import RecommendationService
from tunescout.utils.logging import configure_logging, get_logger

_APP_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# LLM / oracle selection
# ---------------------------------------------------------------------------


def _build_llm_provider(app_settings: Settings) -> ILLMProvider | None:
    """Select the first configured LLM provider.

    Priority order: Anthropic -> OpenAI.  Returns ``None`` when no API key
    is set.
    """
    if app_settings.anthropic_api_key:
        return AnthropicLLMProvider(settings=app_settings)
    if app_settings.openai_api_key:
        return OpenAILLMProvider(settings=app_settings)
    return None


def _build_oracle(app_settings: Settings) -> IRerankingOracle | None:
    """Build the re-ranking oracle, or ``None`` when it is disabled."""
    if not app_settings.reranker_enabled:
        return None
    llm = _build_llm_provider(app_settings)
    if llm is None:
        return None
    return LLMRerankingOracle(llm_provider=llm)


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def _build_all(
    app_settings: Settings,
    engine_config: EngineConfig | None = None,
) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    if engine_config is None:
        engine_config = build_engine_config(
            load_config(app_settings.engine_config_path, settings=app_settings)
        )

    # -- Shared resources --
    http_client = httpx.AsyncClient(timeout=app_settings.http_timeout_seconds)

    # -- Catalogue --
    search_provider = HttpTrackSearchProvider(
        http_client=http_client,
        base_url=app_settings.search_base_url,
        timeout=app_settings.http_timeout_seconds,
        cache_ttl=app_settings.search_cache_ttl_seconds,
    )
    trending_provider = HttpChartsProvider(
        http_client=http_client,
        charts_url=app_settings.charts_url,
        country=app_settings.charts_country,
        timeout=app_settings.http_timeout_seconds,
        cache_ttl=app_settings.charts_cache_ttl_seconds,
    )

    # -- Signals & cache --
    signal_store = SQLiteSignalStore(
        db_path=app_settings.signal_db_path,
        min_listen_seconds=app_settings.min_listen_seconds,
        retention_days=app_settings.history_retention_days,
        max_events_per_user=app_settings.max_events_per_user,
    )
    cache = MemoryCacheProvider(max_size=engine_config.cache_max_entries)

    # -- Optional AI re-ranking --
    oracle = _build_oracle(app_settings)

    recommendation_service = RecommendationService(
        signal_store=signal_store,
        search_provider=search_provider,
        trending_provider=trending_provider,
        cache=cache,
        config=engine_config,
        oracle=oracle,
    )

    provider_registry: dict[str, Any] = {
        "search": search_provider.is_available(),
        "trending": trending_provider.is_available(),
        "oracle": oracle is not None and oracle.is_available(),
        "oracle_provider": oracle.get_provider_name() if oracle else None,
    }

    return {
        "http_client": http_client,
        "engine_config": engine_config,
        "signal_store": signal_store,
        "cache": cache,
        "recommendation_service": recommendation_service,
        "provider_registry": provider_registry,
    }


@asynccontextmanager
async def service_context(
    app_settings: Settings | None = None,
) -> AsyncIterator[RecommendationService]:
    """Yield a ready :class:`RecommendationService`, closing resources on exit."""
    components = _build_all(app_settings or settings)
    await components["signal_store"].initialize()
    try:
        yield components["recommendation_service"]
    finally:
        await components["http_client"].aclose()


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = _build_all(settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    # Creates tables and indices if needed.
    await components["signal_store"].initialize()

    _logger.info(
        "app_startup",
        version=_APP_VERSION,
        environment=settings.app_env,
        reranker=components["provider_registry"]["oracle_provider"],
    )

    yield

    # -- Shutdown: close shared httpx client --
    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="tunescout API",
        version=_APP_VERSION,
        description=(
            "Personalized music recommendations and smart playlists built from "
            "listening history, likes and the trending chart, with optional "
            "LLM re-ranking."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    # -- API routes --
    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "tunescout.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
