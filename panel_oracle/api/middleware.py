"""API middleware: CORS, request logging, rate limiting, and error handling.

# ─── MIDDLEWARE EXECUTION ORDER ───────────────────────────────────────
#
# Starlette middleware is a stack (last added, first executed):
#
#   In main.py:
#     app.add_middleware(ErrorHandlingMiddleware)    # innermost
#     app.add_middleware(RateLimitMiddleware)
#     app.add_middleware(RequestLoggingMiddleware)
#     configure_cors(app)                            # outermost
#
#   Request flow:
#     Client → CORS → RequestLogging → RateLimit → ErrorHandling → route
#
# RateLimitMiddleware sits outside ErrorHandlingMiddleware, so the
# X-RateLimit-* headers are added to error responses too.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import math
import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from panel_oracle.api.schemas import ErrorResponse
from panel_oracle.models.rate_limit import RateLimitResult
from panel_oracle.services.rate_limiter import RateLimiter
from panel_oracle.utils.errors import InvalidInputError, OracleError, RateLimitExceededError
from panel_oracle.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

API_PREFIX = "/api/v1"

# Paths with their own policy; every other /api/v1 path uses "api".
_POLICY_BY_PATH: dict[str, str] = {
    f"{API_PREFIX}/ask": "ask",
    f"{API_PREFIX}/search": "search",
}
_UNLIMITED_PATHS = frozenset({f"{API_PREFIX}/health"})


def error_response(exc: OracleError) -> JSONResponse:
    """Convert an :class:`OracleError` into its JSON error response."""
    body = ErrorResponse(error=exc.kind, detail=exc.client_message(), **exc.extra_fields())
    headers: dict[str, str] = {}
    if isinstance(exc, RateLimitExceededError):
        headers["Retry-After"] = str(exc.retry_after)
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware to the FastAPI application.

    Parameters
    ----------
    app:
        The FastAPI application instance.
    allowed_origins:
        Explicit list of allowed origins.  Defaults to ``["*"]`` for
        development; override with specific origins in production.
    """
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
        ],
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=status_code,
                duration_ms=duration_ms,
            )


# ---------------------------------------------------------------------------
# Rate Limiting
# ---------------------------------------------------------------------------


def get_client_ip(request: Request, trusted_proxies: frozenset[str] = frozenset()) -> str:
    """Resolve the caller's IP address.

    ``X-Forwarded-For`` and ``X-Real-IP`` are only read when the socket peer
    is in *trusted_proxies* (``"*"`` trusts any peer).  ``X-Forwarded-For``
    is walked right to left and the first address that is not itself a
    trusted proxy wins; if every entry is trusted the left-most one is used.
    Otherwise the socket peer is the client, then ``"unknown"``.
    """
    peer = request.client.host if request.client and request.client.host else None
    trust_any = "*" in trusted_proxies
    if peer is not None and (trust_any or peer in trusted_proxies):
        forwarded = request.headers.get("x-forwarded-for", "")
        hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
        if hops:
            if not trust_any:
                for hop in reversed(hops):
                    if hop not in trusted_proxies:
                        return hop
            return hops[0]
        real_ip = request.headers.get("x-real-ip")
        if real_ip and real_ip.strip():
            return real_ip.strip()
    return peer or "unknown"


def resolve_policy(path: str) -> str | None:
    """Return the rate-limit policy name for *path*, or ``None`` if unlimited."""
    path = path.rstrip("/") or "/"
    if path in _UNLIMITED_PATHS or not path.startswith(API_PREFIX):
        return None
    return _POLICY_BY_PATH.get(path, "api")


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(math.ceil(result.reset_at)),
    }


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Enforce the per-IP policy for each rate-limited route.

    The limiter is read from ``app.state.rate_limiter``; when it is absent
    requests pass through unlimited.  Proxies allowed to name the client
    come from ``app.state.trusted_proxies`` (none by default).  The
    identifier is ``"{policy}:{client_ip}"`` so each endpoint class and IP
    gets its own window.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        limiter: RateLimiter | None = getattr(request.app.state, "rate_limiter", None)
        policy_name = resolve_policy(request.url.path)
        if limiter is None or policy_name is None or request.method == "OPTIONS":
            return await call_next(request)
        if policy_name not in limiter.policies:
            return await call_next(request)

        trusted: frozenset[str] = getattr(request.app.state, "trusted_proxies", frozenset())
        client_ip = get_client_ip(request, trusted)
        result = limiter.check(f"{policy_name}:{client_ip}", limiter.get_policy(policy_name))
        headers = rate_limit_headers(result)

        if not result.allowed:
            _logger.warning(
                "rate_limited",
                policy=policy_name,
                client_ip=client_ip,
                retry_after=result.retry_after,
                path=str(request.url.path),
            )
            response: Response = error_response(
                RateLimitExceededError(
                    message=f"Rate limit exceeded. Try again in {result.retry_after} seconds.",
                    limit=result.limit,
                    reset_at=result.reset_at,
                    retry_after=result.retry_after,
                )
            )
        else:
            response = await call_next(request)

        for name, value in headers.items():
            response.headers[name] = value
        return response


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Catch ``OracleError`` subclasses and return structured JSON errors.

    The body carries the error ``kind`` and a detail plus ``retry_after`` or
    ``upgrade_url`` where they apply.  For 5xx errors the detail is the
    fixed public message of the error class; the full message is logged
    server-side.  Stack traces never reach the client.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except OracleError as exc:
            log = _logger.warning if exc.status_code < 500 else _logger.error
            log(
                "application_error",
                error_type=type(exc).__name__,
                kind=exc.kind,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
            )
            return error_response(exc)


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Map request-body validation failures to ``invalid_input`` (400)."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg', 'invalid value')}" if location else first.get("msg")
    else:
        message = "Invalid request body"
    return error_response(InvalidInputError(message=message or "Invalid request body"))
