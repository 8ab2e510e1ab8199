"""panel-oracle domain models: re-exports all public model classes.

The models are organized across three submodules by domain concern:
    - corpus.py     Panels, SBS entries and the per-request retrieved context
    - answer.py     Citations, generated answers, pipeline and search results
    - rate_limit.py Tier, rate-limit policy, window record and check result
"""

from __future__ import annotations

from panel_oracle.models.answer import (
    AnswerResult,
    Citation,
    GeneratedAnswer,
    PanelCitation,
    SBSCitation,
    SearchResult,
)
from panel_oracle.models.corpus import (
    Corpus,
    PanelRecord,
    RetrievedContext,
    SBSEntry,
)
from panel_oracle.models.rate_limit import (
    RateLimitConfig,
    RateLimitRecord,
    RateLimitResult,
    Tier,
)

__all__ = [
    # corpus
    "Corpus",
    "PanelRecord",
    "RetrievedContext",
    "SBSEntry",
    # answer
    "AnswerResult",
    "Citation",
    "GeneratedAnswer",
    "PanelCitation",
    "SBSCitation",
    "SearchResult",
    # rate limit
    "RateLimitConfig",
    "RateLimitRecord",
    "RateLimitResult",
    "Tier",
]
