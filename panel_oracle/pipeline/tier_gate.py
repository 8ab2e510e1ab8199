"""Tier gate in front of the generator-backed answer flow.

Tier resolution (looking up a subscription) happens outside this service;
the gate only receives the already-resolved value and decides.
"""

from __future__ import annotations

from typing import Any

import structlog

from panel_oracle.models.rate_limit import Tier
from panel_oracle.utils.errors import UnauthorizedError
from panel_oracle.utils.logging import get_logger


class TierGate:
    """Allows the answer flow for the ``pro`` tier only.

    Anything other than exactly ``"pro"`` (``"free"``, ``None``, ``"PRO"``,
    non-strings) is treated as ``free``.
    """

    def __init__(self, upgrade_url: str = "/pricing") -> None:
        self._upgrade_url = upgrade_url
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @staticmethod
    def normalize(tier: Any) -> Tier:
        """Map any input to a :class:`Tier`, defaulting to ``FREE``."""
        if isinstance(tier, Tier):
            return tier
        if isinstance(tier, str) and tier == Tier.PRO.value:
            return Tier.PRO
        return Tier.FREE

    def authorize(self, tier: Any) -> bool:
        """Return ``True`` only for the pro tier.  Pure, no side effects."""
        return self.normalize(tier) is Tier.PRO

    def enforce(self, tier: Any) -> None:
        """Raise :class:`UnauthorizedError` unless *tier* is pro."""
        if self.authorize(tier):
            return
        self._logger.info("tier_rejected", tier=str(tier)[:32] if tier is not None else None)
        raise UnauthorizedError(
            message="AI-powered answers require a Pro subscription.",
            upgrade_url=self._upgrade_url,
        )
