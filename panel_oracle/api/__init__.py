"""panel-oracle API layer: routes, schemas, and middleware."""

from panel_oracle.api.middleware import (
    ErrorHandlingMiddleware,
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
    validation_exception_handler,
)
from panel_oracle.api.routes import router
from panel_oracle.api.schemas import (
    AskRequest,
    AskResponse,
    ErrorResponse,
    HealthResponse,
    SearchRequest,
    SearchResponse,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RateLimitMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "validation_exception_handler",
    "AskRequest",
    "AskResponse",
    "ErrorResponse",
    "HealthResponse",
    "SearchRequest",
    "SearchResponse",
]
