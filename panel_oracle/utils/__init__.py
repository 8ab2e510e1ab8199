"""Utility modules for panel-oracle.

- **errors** -- Domain exception hierarchy rooted at OracleError; each
  class declares the ``kind`` and HTTP status the API answers with.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
"""

# -- Domain exception hierarchy --------------------------------------------
from panel_oracle.utils.errors import (
    ConfigurationError,
    GenerationFailedError,
    InvalidInputError,
    OracleError,
    RateLimitExceededError,
    UnauthorizedError,
    UpstreamUnavailableError,
)

# -- Structured logging setup ----------------------------------------------
from panel_oracle.utils.logging import configure_logging, get_logger

__all__ = [
    "ConfigurationError",
    "GenerationFailedError",
    "InvalidInputError",
    "OracleError",
    "RateLimitExceededError",
    "UnauthorizedError",
    "UpstreamUnavailableError",
    "configure_logging",
    "get_logger",
]
