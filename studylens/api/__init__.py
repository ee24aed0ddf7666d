"""studylens API layer: routes, schemas and middleware."""

from studylens.api.middleware import ErrorHandlingMiddleware, RequestLoggingMiddleware
from studylens.api.routes import router
from studylens.api.schemas import ErrorResponse, HealthResponse

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "router",
    "ErrorResponse",
    "HealthResponse",
]
