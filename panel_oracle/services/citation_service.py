"""Citation extraction from retrieved context.

Citations come from the records that were retrieved, never from the
generated text.  Whatever the model writes, the citation list is exactly
one entry per retrieved panel followed by one per retrieved SBS entry, in
retrieval order.
"""

from __future__ import annotations

from panel_oracle.models.answer import Citation, PanelCitation, SBSCitation
from panel_oracle.models.corpus import PanelRecord, RetrievedContext, SBSEntry


class CitationService:
    """Builds structured citations for a :class:`RetrievedContext`."""

    @staticmethod
    def cite_panel(panel: PanelRecord) -> PanelCitation:
        return PanelCitation(
            chapter=panel.chapter_number,
            page=panel.page_number,
            panel=panel.panel_number,
            title=panel.chapter_title,
        )

    @staticmethod
    def cite_sbs(entry: SBSEntry) -> SBSCitation:
        return SBSCitation(volume=entry.volume, question=entry.question)

    def extract(self, context: RetrievedContext) -> list[Citation]:
        """Return ``len(panels) + len(sbs_entries)`` citations, panels first."""
        citations: list[Citation] = [self.cite_panel(p) for p in context.panels]
        citations.extend(self.cite_sbs(e) for e in context.sbs_entries)
        return citations
