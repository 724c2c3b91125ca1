"""tunescout API layer -- routes, schemas, and middleware."""

from tunescout.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from tunescout.api.routes import router
from tunescout.api.schemas import (
    ErrorResponse,
    HealthResponse,
    LikeRequest,
    LikeResponse,
    PlayRequest,
    PlayResponse,
    SmartPlaylistsResponse,
    TrackPayload,
    UserResponse,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "ErrorResponse",
    "HealthResponse",
    "LikeRequest",
    "LikeResponse",
    "PlayRequest",
    "PlayResponse",
    "SmartPlaylistsResponse",
    "TrackPayload",
    "UserResponse",
]
