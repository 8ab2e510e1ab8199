"""Rate-limit models: policy config, per-identifier window state, check result."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Tier(str, Enum):  # noqa: UP042 (StrEnum needs Python 3.11+)
    """Subscription level resolved by the caller."""

    FREE = "free"
    PRO = "pro"


class RateLimitConfig(BaseModel):
    """A rate-limit policy: at most ``max_requests`` per ``window_seconds``."""

    model_config = ConfigDict(frozen=True)

    max_requests: int = Field(ge=1)
    window_seconds: float = Field(gt=0)


class RateLimitRecord(BaseModel):
    """Window state for one identifier.

    Replaced, never mutated: a new window is a new record with
    ``count=1`` and ``reset_at=now + window``.
    """

    model_config = ConfigDict(frozen=True)

    count: int = Field(ge=1)
    reset_at: float = Field(description="Epoch seconds when the window expires.")


class RateLimitResult(BaseModel):
    """Outcome of one limiter check."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    limit: int
    remaining: int = Field(ge=0)
    reset_at: float = Field(description="Epoch seconds when the window expires.")
    count: int
    retry_after: int = Field(
        default=0,
        ge=0,
        description="Whole seconds until the window resets; 0 when allowed.",
    )
