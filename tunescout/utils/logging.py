"""Structured logging setup using structlog.

Implements a **dual-renderer pattern**: the same shared processor chain
(context vars, service tag, log level, timestamps, stack info) feeds into
either a coloured ConsoleRenderer for local development or a JSONRenderer
for production.  The renderer is selected from the ``APP_ENV`` environment
variable (default ``"development"``), or forced via ``json_output``.

Standard-library ``logging`` is routed through the same structlog formatter
so that httpx, uvicorn and aiosqlite produce identically formatted output.
The chattiest of those (HTTP client internals, the SQLite worker thread, the
LLM SDKs) are held at WARNING unless the engine itself runs at DEBUG.

Every event carries ``service`` and ``env`` keys.  Request-scoped context
(the ``user_id`` of a recommendation run) is bound with
:func:`bind_request_context` and merged into every event by the
``merge_contextvars`` processor.
"""

import logging
import os
import sys

import structlog

SERVICE_NAME = "tunescout"

# Per-request chatter from these drowns out the engine's own events.
NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "aiosqlite", "openai", "anthropic")


def add_service_context(app_env: str) -> structlog.types.Processor:
    """Processor that stamps ``service`` and ``env`` onto each event.

    Values already present on the event (e.g. bound by a caller) win.
    """

    def _processor(
        _logger: object, _method_name: str, event_dict: structlog.types.EventDict
    ) -> structlog.types.EventDict:
        event_dict.setdefault("service", SERVICE_NAME)
        event_dict.setdefault("env", app_env)
        return event_dict

    return _processor


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> structlog.BoundLogger:
    """Configure structlog with environment-appropriate rendering.

    Args:
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR).
        json_output: Force JSON output. When False, uses console rendering in
                     development and JSON in production (detected via APP_ENV).

    Returns:
        A configured structlog BoundLogger.
    """
    app_env = os.environ.get("APP_ENV", "development")
    use_json = json_output or app_env == "production"
    level = log_level.upper()

    # Order matters: contextvars first, then service tag, level/timestamps, exceptions.
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        add_service_context(app_env),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if use_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            renderer,
        ],
        # Drops events below the level before any processor runs.
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Bridge stdlib logging through the same pipeline.
    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *shared_processors,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    noisy_level = logging.NOTSET if level == "DEBUG" else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a named structlog logger.

    If structlog has not been configured yet, calls configure_logging() with defaults.

    Args:
        name: Logger name, typically the module name.

    Returns:
        A structlog BoundLogger bound with the given name.
    """
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(logger_name=name)


def bind_request_context(**values: object) -> None:
    """Bind request-scoped values (e.g. ``user_id``) for every later log event."""
    structlog.contextvars.bind_contextvars(**values)


def clear_request_context() -> None:
    """Drop all request-scoped log context bound on this task."""
    structlog.contextvars.clear_contextvars()
