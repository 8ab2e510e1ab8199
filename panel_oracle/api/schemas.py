"""Request and response schemas for the panel-oracle HTTP API.

Domain models (panels, SBS entries, citations) are reused directly in the
response bodies so the wire shape never drifts from what the pipeline
produces.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from panel_oracle.models.answer import Citation
from panel_oracle.models.corpus import PanelRecord, SBSEntry


# ---------------------------------------------------------------------------
# Answer endpoint
# ---------------------------------------------------------------------------

class AskRequest(BaseModel):
    """Body of ``POST /api/v1/ask``.

    ``tier`` is the caller's already-resolved subscription tier.  Any value
    other than ``"pro"`` (including a missing one) is treated as free.
    ``user_tier`` is accepted as an alias.
    """

    model_config = ConfigDict(populate_by_name=True)

    question: str = Field(description="Free-text question about the series.")
    tier: Any = Field(
        default=None,
        validation_alias=AliasChoices("tier", "user_tier"),
        description='Resolved tier: "free" or "pro".',
    )


class AskResponse(BaseModel):
    success: bool = True
    question: str
    answer: str
    citations: list[Citation] = Field(default_factory=list)
    model: str
    timestamp: datetime


# ---------------------------------------------------------------------------
# Search endpoint
# ---------------------------------------------------------------------------

class SearchRequest(BaseModel):
    """Body of ``POST /api/v1/search``."""

    query: str = Field(description="Keyword or natural-language query.")
    method: str = Field(default="fulltext", description='"semantic" or "fulltext".')
    limit: int | None = Field(default=None, description="Maximum panels to return.")


class SearchResponse(BaseModel):
    success: bool = True
    query: str
    method: str
    panels: list[PanelRecord] = Field(default_factory=list)
    sbs_entries: list[SBSEntry] = Field(default_factory=list)
    timestamp: datetime


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------

class ErrorResponse(BaseModel):
    """Structured error body.

    ``error`` is the machine-readable kind (``rate_limit_exceeded``,
    ``unauthorized``, ``invalid_input``, ``upstream_unavailable``,
    ``generation_failed``); ``detail`` is the human-readable message.
    """

    error: str
    detail: str | None = None
    retry_after: int | None = None
    upgrade_url: str | None = None


class HealthResponse(BaseModel):
    status: str
    version: str
    providers: dict[str, Any] = Field(default_factory=dict)
