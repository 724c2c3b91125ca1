"""FastAPI API routes for tunescout.

Provides REST endpoints for recommendations, smart playlists, listener
signal writes and health checks.  Service dependencies are resolved from
``app.state`` via FastAPI's ``Depends`` using the ``Annotated`` pattern.

# ─── API ROUTE MAP ────────────────────────────────────────────────────
#
# Endpoint                         Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/v1/recommendations          GET     Bucketed recommendations
# /api/v1/smart-playlists          GET     Thematic smart playlists
# /api/v1/users                    POST    Register the caller
# /api/v1/history                  POST    Record a play
# /api/v1/liked                    POST    Like a track
# /api/v1/liked/{track_id}         DELETE  Remove a like
# /api/v1/health                   GET     Health check + provider status
#
# IDENTITY:
# The caller is identified by the ``X-User-Id`` header, set by the
# authenticating gateway in front of this service.  A missing header is
# an AuthenticationError (401 via ErrorHandlingMiddleware).
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import hashlib
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Header, Query, Request, Response

from tunescout.api.schemas import (
    HealthResponse,
    LikeRequest,
    LikeResponse,
    PlayRequest,
    PlayResponse,
    SmartPlaylistsResponse,
    UserResponse,
)
from tunescout.config.engine import EngineConfig
from tunescout.interfaces.signal_store import ISignalStore
from tunescout.models.recommendation import RankedResult
from tunescout.services.recommendation_service import VIEW_CLIENT, RecommendationService
from tunescout.utils.errors import AuthenticationError, SignalStoreError
from tunescout.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

_APP_VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Dependency helpers
# ---------------------------------------------------------------------------


def _get_service(request: Request) -> RecommendationService:
    return request.app.state.recommendation_service


def _get_signal_store(request: Request) -> ISignalStore:
    return request.app.state.signal_store


def _get_engine_config(request: Request) -> EngineConfig:
    return request.app.state.engine_config


def _get_user_id(x_user_id: Annotated[str | None, Header()] = None) -> str:
    """Resolve the caller from the ``X-User-Id`` header."""
    if x_user_id is None or not x_user_id.strip():
        raise AuthenticationError(message="Missing X-User-Id header")
    return x_user_id.strip()


ServiceDep = Annotated[RecommendationService, Depends(_get_service)]
SignalStoreDep = Annotated[ISignalStore, Depends(_get_signal_store)]
EngineConfigDep = Annotated[EngineConfig, Depends(_get_engine_config)]
UserIdDep = Annotated[str, Depends(_get_user_id)]


def _etag_for(result: RankedResult) -> str:
    digest = hashlib.sha256(result.model_dump_json().encode("utf-8")).hexdigest()
    return f'"{digest[:32]}"'


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------


@router.get(
    "/recommendations",
    response_model=RankedResult,
    summary="Personalized recommendations grouped into buckets",
)
async def get_recommendations(
    request: Request,
    response: Response,
    service: ServiceDep,
    config: EngineConfigDep,
    user_id: UserIdDep,
    refresh: Annotated[bool, Query(description="Bypass and replace cached results")] = False,
    view: Annotated[str, Query(pattern="^(full|client)$")] = VIEW_CLIENT,
) -> Any:
    """Return the caller's recommendations.

    The client view is trimmed per bucket and carries ``Cache-Control``
    and ``ETag`` headers; a matching ``If-None-Match`` yields 304.
    """
    result = await service.get_recommendations(user_id, force_refresh=refresh, view=view)

    etag = _etag_for(result)
    max_age = int(config.client_cache_ttl_seconds if view == VIEW_CLIENT else 0)
    headers = {
        "ETag": etag,
        "Cache-Control": f"private, max-age={max_age}",
    }
    if not refresh and request.headers.get("if-none-match") == etag:
        return Response(status_code=304, headers=headers)

    response.headers.update(headers)
    return result


@router.get(
    "/smart-playlists",
    response_model=SmartPlaylistsResponse,
    summary="Thematic smart playlists",
)
async def get_smart_playlists(
    service: ServiceDep,
    user_id: UserIdDep,
    refresh: bool = False,
) -> SmartPlaylistsResponse:
    """Return the caller's smart playlists."""
    playlists = await service.get_smart_playlists(user_id, force_refresh=refresh)
    return SmartPlaylistsResponse(user_id=user_id, playlists=playlists)


# ---------------------------------------------------------------------------
# Signal writes
# ---------------------------------------------------------------------------


@router.post(
    "/users",
    response_model=UserResponse,
    status_code=201,
    summary="Register the caller",
)
async def register_user(service: ServiceDep, user_id: UserIdDep) -> UserResponse:
    """Create the caller's user record.  Calling it again is a no-op."""
    await service.register_user(user_id)
    return UserResponse(user_id=user_id)


@router.post(
    "/history",
    response_model=PlayResponse,
    summary="Record a play",
)
async def record_play(
    body: PlayRequest,
    service: ServiceDep,
    user_id: UserIdDep,
) -> PlayResponse:
    """Record a listen.  Listens shorter than the threshold are ignored."""
    event = await service.record_play(user_id, body.to_track(), body.listen_seconds)
    if event is None:
        return PlayResponse(recorded=False)
    return PlayResponse(recorded=True, played_at=event.played_at)


@router.post(
    "/liked",
    response_model=LikeResponse,
    summary="Like a track",
)
async def like_track(
    body: LikeRequest,
    service: ServiceDep,
    user_id: UserIdDep,
) -> LikeResponse:
    liked = await service.like_track(user_id, body.to_track())
    return LikeResponse(track_id=liked.track_id, liked=True)


@router.delete(
    "/liked/{track_id}",
    response_model=LikeResponse,
    summary="Remove a like",
)
async def unlike_track(
    track_id: str,
    service: ServiceDep,
    user_id: UserIdDep,
) -> LikeResponse:
    # Idempotent: unliking a track that was never liked still returns 200.
    await service.unlike_track(user_id, track_id)
    return LikeResponse(track_id=track_id, liked=False)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request, store: SignalStoreDep) -> HealthResponse:
    """Return application health, version, and provider availability."""
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    # The signal store is the only hard dependency, so query it for real.
    try:
        await store.user_exists("__health__")
        providers["signal_store"] = True
    except SignalStoreError as exc:
        _logger.warning("health_signal_store_unavailable", error=str(exc))
        providers["signal_store"] = False

    catalogue_ok = providers.get("search", False) and providers.get("trending", False)
    if providers["signal_store"] and catalogue_ok:
        status = "healthy"
    elif providers["signal_store"]:
        status = "degraded"
    else:
        status = "unhealthy"

    return HealthResponse(
        status=status,
        version=_APP_VERSION,
        providers=providers,
    )
