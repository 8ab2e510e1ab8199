"""Unit tests for ContextAssembler prompt rendering."""

from __future__ import annotations

import pytest

from panel_oracle.models.corpus import RetrievedContext
from panel_oracle.services.context_assembler import (
    NO_PANELS,
    NO_SBS,
    PANELS_HEADER,
    SBS_HEADER,
    ContextAssembler,
)
from tests.conftest import make_panel, make_sbs


class TestContextAssembler:
    @pytest.fixture()
    def assembler(self) -> ContextAssembler:
        return ContextAssembler()

    def test_render_panel_full(self, assembler) -> None:
        panel = make_panel(similarity=0.81, characters=["Luffy", "Blueno"])
        assert assembler.render_panel(1, panel) == (
            '[Panel 1] Chapter 388 "Gear Second", Page 5, Panel 3\n'
            "Characters: Luffy, Blueno\n"
            'Dialogue: "Gear Second!"\n'
            "(Similarity: 81.0%)"
        )

    def test_render_panel_missing_fields(self, assembler) -> None:
        panel = make_panel(title=None, dialogue=None, characters=[], similarity=None)
        rendered = assembler.render_panel(2, panel)
        assert rendered.startswith("[Panel 2] Chapter 388, Page 5, Panel 3")
        assert "Characters: Unknown" in rendered
        assert 'Dialogue: "No dialogue"' in rendered
        assert "(Similarity: 0.0%)" in rendered

    def test_render_sbs(self, assembler) -> None:
        entry = make_sbs(similarity=0.9)
        assert assembler.render_sbs(1, entry) == (
            "[SBS 1] Volume 42\n"
            "Q: How does Gear Second work?\n"
            "A: Luffy pumps his blood faster.\n"
            "(Similarity: 90.0%)"
        )

    def test_empty_context_renders_placeholders(self, assembler) -> None:
        block = assembler.assemble(RetrievedContext())
        assert block == f"{PANELS_HEADER}\n{NO_PANELS}\n\n{SBS_HEADER}\n{NO_SBS}"

    def test_ordinals_follow_input_order(self, assembler) -> None:
        context = RetrievedContext(
            panels=[make_panel("a", page=1), make_panel("b", page=2)],
            sbs_entries=[make_sbs("s", volume=7)],
        )
        block = assembler.assemble(context)
        assert block.index("[Panel 1] Chapter 388 \"Gear Second\", Page 1") < block.index("[Panel 2]")
        assert "[SBS 1] Volume 7" in block
        assert NO_PANELS not in block
        assert NO_SBS not in block

    def test_one_empty_corpus(self, assembler) -> None:
        block = assembler.assemble(RetrievedContext(panels=[make_panel()]))
        assert "[Panel 1]" in block
        assert block.endswith(NO_SBS)

    def test_build_user_prompt(self, assembler) -> None:
        prompt = assembler.build_user_prompt("What is Gear Second?", "CONTEXT")
        assert prompt.startswith("Question: What is Gear Second?\n\nCONTEXT\n\n")
        assert prompt.endswith("Include specific citations.")

    def test_does_not_mutate_context(self, assembler) -> None:
        context = RetrievedContext(panels=[make_panel()], sbs_entries=[make_sbs()])
        before = context.model_dump()
        assembler.assemble(context)
        assert context.model_dump() == before
