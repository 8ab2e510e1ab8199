"""Corpus data models for the panel-oracle knowledge base.

Defines Pydantic v2 models for the two retrievable collections (manga
panels and SBS author Q&A entries) and the per-request aggregate the
retrieval stage hands to the context assembler and citation extractor.
All models are frozen: corpus records are owned by the external store and
never mutated by this service.

Retrieval overview:
    1. EMBEDDING: the question is turned into a vector by the embedding
       provider (see providers/embedding/).
    2. SEARCH: panels and SBS entries are searched concurrently in the
       corpus store (see providers/corpus/) above a similarity threshold.
    3. SHAPING: services/retrieval_service.py re-applies the threshold,
       orders by descending similarity and caps each list.
    4. CONTEXT: the resulting RetrievedContext feeds both the prompt and
       the citation list, so citations always match what was retrieved.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Corpus(str, Enum):  # noqa: UP042 (StrEnum needs Python 3.11+)
    """The two retrievable collections."""

    PANELS = "panels"
    SBS = "sbs"


# ---------------------------------------------------------------------------
# PanelRecord: a single manga panel.
# ---------------------------------------------------------------------------
class PanelRecord(BaseModel):
    """One manga panel with its dialogue and the characters shown in it.

    ``similarity`` is only present on vector-search results; full-text
    search results leave it ``None``.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Opaque identifier assigned by the corpus store.")
    chapter_number: int = Field(description="Chapter the panel belongs to.")
    chapter_title: str | None = Field(default=None, description="Chapter title, if known.")
    page_number: int = Field(description="Page within the chapter.")
    panel_number: int = Field(description="Panel position on the page.")
    dialogue: str | None = Field(default=None, description="Dialogue text, if any.")
    characters: list[str] = Field(
        default_factory=list,
        description="Character names in panel order.",
    )
    similarity: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Cosine similarity to the query vector.",
    )


# ---------------------------------------------------------------------------
# SBSEntry: one author question/answer pair.
# ---------------------------------------------------------------------------
class SBSEntry(BaseModel):
    """One SBS question/answer pair from a tankobon volume."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Opaque identifier assigned by the corpus store.")
    volume: int = Field(description="Volume the entry was printed in.")
    question: str = Field(description="Reader question.")
    answer: str = Field(description="Author answer.")
    similarity: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Cosine similarity to the query vector.",
    )


# ---------------------------------------------------------------------------
# RetrievedContext: per-request aggregate of both corpora.
# ---------------------------------------------------------------------------
class RetrievedContext(BaseModel):
    """Panels and SBS entries retrieved for one request.

    Each list is ordered by descending similarity (ties by id), already
    filtered to the threshold and capped at its own limit.
    """

    model_config = ConfigDict(frozen=True)

    panels: list[PanelRecord] = Field(default_factory=list)
    sbs_entries: list[SBSEntry] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.panels) + len(self.sbs_entries)
