"""Answer, citation and search-result models.

Citations are a discriminated union on ``type`` so the JSON shape matches
what the presentation layer expects: ``{"type": "panel", ...}`` or
``{"type": "sbs", ...}``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from panel_oracle.models.corpus import PanelRecord, RetrievedContext, SBSEntry


class PanelCitation(BaseModel):
    """Locator for one retrieved panel."""

    model_config = ConfigDict(frozen=True)

    type: Literal["panel"] = "panel"
    chapter: int
    page: int
    panel: int
    title: str | None = None


class SBSCitation(BaseModel):
    """Locator for one retrieved SBS entry."""

    model_config = ConfigDict(frozen=True)

    type: Literal["sbs"] = "sbs"
    volume: int
    question: str


Citation = Annotated[Union[PanelCitation, SBSCitation], Field(discriminator="type")]


class GeneratedAnswer(BaseModel):
    """Raw output of the answer generator."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Answer text as returned by the model.")
    model: str = Field(description="Model identifier that produced the answer.")


class AnswerResult(BaseModel):
    """Everything the answer pipeline produces for one question."""

    model_config = ConfigDict(frozen=True)

    question: str
    answer: str
    citations: list[Citation] = Field(default_factory=list)
    model: str
    timestamp: datetime
    context: RetrievedContext = Field(default_factory=RetrievedContext)


class SearchResult(BaseModel):
    """Result of the plain search endpoint."""

    model_config = ConfigDict(frozen=True)

    method: Literal["semantic", "fulltext"]
    panels: list[PanelRecord] = Field(default_factory=list)
    sbs_entries: list[SBSEntry] = Field(default_factory=list)
