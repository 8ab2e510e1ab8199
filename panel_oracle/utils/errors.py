"""Custom exception hierarchy for panel-oracle.

All application exceptions inherit from :class:`OracleError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "supabase", "chromadb") caused the failure.

Every class also declares a machine-readable ``kind`` and the HTTP
``status_code`` the API layer answers with:

    OracleError  (base -- catch-all for any panel-oracle error)
    +-- RateLimitExceededError   rate_limit_exceeded   429
    +-- UnauthorizedError        unauthorized          403
    +-- InvalidInputError        invalid_input         400
    +-- UpstreamUnavailableError upstream_unavailable  503
    +-- GenerationFailedError    generation_failed     502
    +-- ConfigurationError       configuration_error   500

None of these are retried inside the service.  A caller that receives
``rate_limit_exceeded`` backs off until the reported reset time; the
others are terminal for the request that raised them.
"""

from __future__ import annotations

from typing import Any


class OracleError(Exception):
    """Base exception for all panel-oracle errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai] Embedding request failed``.
    """

    kind: str = "internal_error"
    status_code: int = 500
    # Detail shown to callers for 5xx errors in place of ``message``.
    public_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def extra_fields(self) -> dict[str, Any]:
        """Return additional fields merged into the JSON error body."""
        return {}

    def client_message(self) -> str:
        """Return the detail that is safe to send to the caller.

        Caller-side errors (4xx) describe what was wrong with the request, so
        their message is returned as is.  Server-side errors answer with the
        fixed ``public_message`` of their class; the full message, which can
        hold upstream URLs or SDK output, stays in the server logs.
        """
        if self.status_code >= 500:
            return self.public_message
        return self._message

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Caller-side errors
# ---------------------------------------------------------------------------

class RateLimitExceededError(OracleError):
    """Raised when a client has used up the quota of its current window.

    Carries the limiter state so the boundary can tell the client when to
    come back (``retry_after`` seconds, ``reset_at`` epoch seconds).
    """

    kind = "rate_limit_exceeded"
    status_code = 429

    def __init__(
        self,
        message: str = "Too many requests",
        provider_name: str | None = None,
        *,
        limit: int = 0,
        reset_at: float = 0.0,
        retry_after: int = 0,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self.limit = limit
        self.remaining = 0
        self.reset_at = reset_at
        self.retry_after = retry_after

    def extra_fields(self) -> dict[str, Any]:
        return {"retry_after": self.retry_after}


class UnauthorizedError(OracleError):
    """Raised when the caller's tier does not include the answer flow."""

    kind = "unauthorized"
    status_code = 403

    def __init__(
        self,
        message: str = "Pro subscription required",
        provider_name: str | None = None,
        *,
        upgrade_url: str = "/pricing",
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self.upgrade_url = upgrade_url

    def extra_fields(self) -> dict[str, Any]:
        return {"upgrade_url": self.upgrade_url}


class InvalidInputError(OracleError):
    """Raised for a missing or malformed question/query, before any external call."""

    kind = "invalid_input"
    status_code = 400

    def __init__(
        self,
        message: str = "Invalid input",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External service / provider errors
# ---------------------------------------------------------------------------

class UpstreamUnavailableError(OracleError):
    """Raised when the embedding service or corpus store fails or is not configured.

    A failure in either corpus query aborts the whole retrieval stage; no
    partial context is ever handed to the generator.
    """

    kind = "upstream_unavailable"
    status_code = 503
    public_message = "A required service is unavailable. Please try again later."

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class GenerationFailedError(OracleError):
    """Raised when the text-generation call fails or returns empty content."""

    kind = "generation_failed"
    status_code = 502
    public_message = "Answer generation failed. Please try again later."

    def __init__(
        self,
        message: str = "Answer generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------

class ConfigurationError(OracleError):
    """Raised when configuration is invalid or missing at startup."""

    kind = "configuration_error"
    status_code = 500
    public_message = "The service is not configured correctly."

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
