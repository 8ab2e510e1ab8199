"""Renders retrieved panels and SBS entries into the prompt context block.

Every record is tagged with an ordinal (``[Panel 1]``, ``[SBS 1]``) and its
locator so the model can cite it.  An empty corpus renders an explicit
placeholder instead of disappearing from the prompt, so the model sees
"nothing was found" rather than a gap.

Example output::

    === RETRIEVED MANGA PANELS ===
    [Panel 1] Chapter 388 "Gear Second", Page 5, Panel 3
    Characters: Luffy, Blueno
    Dialogue: "Gear Second!"
    (Similarity: 81.0%)

    === SBS ENTRIES ===
    No relevant SBS entries found.
"""

from __future__ import annotations

from panel_oracle.models.corpus import PanelRecord, RetrievedContext, SBSEntry

PANELS_HEADER = "=== RETRIEVED MANGA PANELS ==="
SBS_HEADER = "=== SBS ENTRIES ==="
NO_PANELS = "No relevant panels found."
NO_SBS = "No relevant SBS entries found."


def _percent(similarity: float | None) -> str:
    return f"{(similarity or 0.0) * 100:.1f}%"


class ContextAssembler:
    """Pure formatter; never mutates its inputs."""

    def render_panel(self, index: int, panel: PanelRecord) -> str:
        title = f' "{panel.chapter_title}"' if panel.chapter_title else ""
        characters = ", ".join(panel.characters) or "Unknown"
        dialogue = panel.dialogue or "No dialogue"
        return (
            f"[Panel {index}] Chapter {panel.chapter_number}{title}, "
            f"Page {panel.page_number}, Panel {panel.panel_number}\n"
            f"Characters: {characters}\n"
            f'Dialogue: "{dialogue}"\n'
            f"(Similarity: {_percent(panel.similarity)})"
        )

    def render_sbs(self, index: int, entry: SBSEntry) -> str:
        return (
            f"[SBS {index}] Volume {entry.volume}\n"
            f"Q: {entry.question}\n"
            f"A: {entry.answer}\n"
            f"(Similarity: {_percent(entry.similarity)})"
        )

    def render_panels(self, panels: list[PanelRecord]) -> str:
        if not panels:
            return NO_PANELS
        return "\n\n".join(self.render_panel(i, p) for i, p in enumerate(panels, start=1))

    def render_sbs_entries(self, entries: list[SBSEntry]) -> str:
        if not entries:
            return NO_SBS
        return "\n\n".join(self.render_sbs(i, e) for i, e in enumerate(entries, start=1))

    def assemble(self, context: RetrievedContext) -> str:
        """Return the full context block for *context*."""
        return (
            f"{PANELS_HEADER}\n{self.render_panels(context.panels)}\n\n"
            f"{SBS_HEADER}\n{self.render_sbs_entries(context.sbs_entries)}"
        )

    def build_user_prompt(self, question: str, context_block: str) -> str:
        """Wrap the context block with the verbatim question."""
        return (
            f"Question: {question}\n\n"
            f"{context_block}\n\n"
            "Please answer the question based on the above context. "
            "Include specific citations."
        )
