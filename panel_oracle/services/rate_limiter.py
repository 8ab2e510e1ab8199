"""Fixed-window request limiter keyed by caller-built identifiers.

# ─── HOW THE RATE LIMITER WORKS ───────────────────────────────────────
#
# Each identifier (e.g. "ask:203.0.113.7") owns one RateLimitRecord:
#
#   first request ──→ count=1, reset_at=now+window      allowed
#   next requests ──→ count+=1                          allowed while count <= max
#   count > max   ──→ remaining=0                       rejected until reset_at
#   now >= reset_at ─→ fresh window, count=1            allowed
#
# check() never blocks and never raises.  Rejection is reported in the
# result; the HTTP middleware turns it into a 429 with Retry-After.
#
# A background sweep drops records whose window has expired so the map
# does not grow without bound.  start()/stop() tie the sweep task to the
# application lifespan.
#
# Scope: one process.  Several server instances each keep their own map
# and each allow ``max`` requests per window.  To share quotas, inject a
# store backed by an external counter with atomic increment-and-expire
# and move the read-check-increment into that store.
#
# The HTTP middleware builds identifiers from the socket peer.  Forwarded
# headers only name the client when the peer is listed in TRUSTED_PROXIES;
# otherwise a caller could rotate X-Forwarded-For to get a fresh window.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
import contextlib
import math
import threading
import time
from collections.abc import Callable, MutableMapping

import structlog

from panel_oracle.models.rate_limit import RateLimitConfig, RateLimitRecord, RateLimitResult
from panel_oracle.utils.errors import ConfigurationError
from panel_oracle.utils.logging import get_logger


class RateLimiter:
    """In-process request counter with named policies and a periodic sweep.

    Parameters
    ----------
    policies:
        Named policies, e.g. ``{"ask": RateLimitConfig(10, 60)}``.
    sweep_interval:
        Seconds between sweeps of expired records.
    clock:
        Returns the current time in epoch seconds.  Tests pass a fake.
    store:
        Dict-like record storage.  Defaults to a plain dict.
    """

    def __init__(
        self,
        policies: dict[str, RateLimitConfig] | None = None,
        sweep_interval: float = 300.0,
        clock: Callable[[], float] = time.time,
        store: MutableMapping[str, RateLimitRecord] | None = None,
    ) -> None:
        self._policies: dict[str, RateLimitConfig] = dict(policies or {})
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._records: MutableMapping[str, RateLimitRecord] = (
            store if store is not None else {}
        )
        # Also held by callers on worker threads.
        self._lock = threading.Lock()
        self._sweep_task: asyncio.Task[None] | None = None
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_policy(self, name: str) -> RateLimitConfig:
        """Return the named policy.

        Raises
        ------
        ConfigurationError
            If no policy with that name was configured.
        """
        try:
            return self._policies[name]
        except KeyError as exc:
            raise ConfigurationError(f"Unknown rate-limit policy: {name}") from exc

    @property
    def policies(self) -> dict[str, RateLimitConfig]:
        return dict(self._policies)

    def check(self, identifier: str, config: RateLimitConfig) -> RateLimitResult:
        """Count one request for *identifier* and decide whether it may proceed.

        A window is expired once ``now >= reset_at``.  Rejected requests
        still increment the counter but never move ``reset_at``.
        """
        now = self._clock()
        with self._lock:
            record = self._records.get(identifier)
            if record is None or now >= record.reset_at:
                record = RateLimitRecord(count=1, reset_at=now + config.window_seconds)
                self._records[identifier] = record
                return RateLimitResult(
                    allowed=True,
                    limit=config.max_requests,
                    remaining=config.max_requests - 1,
                    reset_at=record.reset_at,
                    count=1,
                )

            record = RateLimitRecord(count=record.count + 1, reset_at=record.reset_at)
            self._records[identifier] = record

        if record.count > config.max_requests:
            retry_after = max(0, math.ceil(record.reset_at - now))
            self._logger.warning(
                "rate_limit_exceeded",
                identifier=identifier,
                count=record.count,
                limit=config.max_requests,
                retry_after=retry_after,
            )
            return RateLimitResult(
                allowed=False,
                limit=config.max_requests,
                remaining=0,
                reset_at=record.reset_at,
                count=record.count,
                retry_after=retry_after,
            )

        return RateLimitResult(
            allowed=True,
            limit=config.max_requests,
            remaining=config.max_requests - record.count,
            reset_at=record.reset_at,
            count=record.count,
        )

    def sweep(self) -> int:
        """Remove every record whose window has expired; return how many."""
        now = self._clock()
        with self._lock:
            expired = [key for key, rec in self._records.items() if now >= rec.reset_at]
            for key in expired:
                del self._records[key]
        if expired:
            self._logger.debug("rate_limit_sweep", removed=len(expired), remaining=len(self._records))
        return len(expired)

    def reset(self) -> None:
        """Forget every record."""
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        return len(self._records)

    # ------------------------------------------------------------------
    # Sweep lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the background sweep loop (idempotent)."""
        if self._sweep_task is not None and not self._sweep_task.done():
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop())
        self._logger.info("rate_limiter_started", sweep_interval=self._sweep_interval)

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        self._logger.info("rate_limiter_stopped")

    @property
    def running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            self.sweep()
