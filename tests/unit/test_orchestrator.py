"""Unit tests for AnswerPipeline.

Walks the end-to-end answer flow against in-memory fakes: the happy path,
every early rejection (input, tier, pre-flight) and every failure stage.
"""

from __future__ import annotations

from datetime import timezone

import pytest

from panel_oracle.models.answer import PanelCitation, SBSCitation
from panel_oracle.utils.errors import (
    GenerationFailedError,
    InvalidInputError,
    UnauthorizedError,
    UpstreamUnavailableError,
)
from tests.conftest import (
    MockCorpusStore,
    MockEmbeddingProvider,
    MockLLMProvider,
    build_pipeline,
)


class TestAnswerPipelineHappyPath:
    @pytest.mark.asyncio
    async def test_pro_question_is_answered_with_citations(
        self, answer_pipeline, embedding_provider, llm_provider
    ) -> None:
        result = await answer_pipeline.ask("  What is Gear Second?  ", "pro")

        assert result.question == "What is Gear Second?"
        assert result.answer == "Luffy pumps blood faster (Chapter 388, Page 5)."
        assert result.model == "mock-model"
        assert result.timestamp.tzinfo == timezone.utc

        assert [p.id for p in result.context.panels] == ["p-810", "p-777"]
        assert len(result.citations) == 3
        assert result.citations[0] == PanelCitation(chapter=388, page=5, panel=3, title="Gear Second")
        assert isinstance(result.citations[2], SBSCitation)

        assert embedding_provider.calls == ["What is Gear Second?"]
        assert len(llm_provider.calls) == 1

    @pytest.mark.asyncio
    async def test_prompt_contains_ranked_context(self, answer_pipeline, llm_provider) -> None:
        await answer_pipeline.ask("What is Gear Second?", "pro")
        prompt = llm_provider.calls[0]["user_prompt"]

        assert prompt.index("[Panel 1]") < prompt.index("(Similarity: 81.0%)") < prompt.index("[Panel 2]")
        assert "[SBS 1] Volume 42" in prompt
        assert "Rokushiki" not in prompt

    @pytest.mark.asyncio
    async def test_uses_answer_thresholds(self, embedding_provider, llm_provider, corpus_store) -> None:
        pipeline = build_pipeline(
            embedding_provider, llm_provider, corpus_store,
            threshold=0.5, panel_limit=2, sbs_limit=1,
        )
        result = await pipeline.ask("What is Gear Second?", "pro")

        assert [p.id for p in result.context.panels] == ["p-810", "p-777"]
        assert ("panels", 0.5, 2) in corpus_store.vector_calls
        assert ("sbs", 0.5, 1) in corpus_store.vector_calls

    @pytest.mark.asyncio
    async def test_empty_retrieval_still_generates(self, embedding_provider, llm_provider) -> None:
        pipeline = build_pipeline(embedding_provider, llm_provider, MockCorpusStore())
        result = await pipeline.ask("Who is Joy Boy?", "pro")

        assert result.citations == []
        prompt = llm_provider.calls[0]["user_prompt"]
        assert "No relevant panels found." in prompt
        assert "No relevant SBS entries found." in prompt


class TestAnswerPipelineRejections:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("tier", ["free", None, "PRO", "enterprise"])
    async def test_non_pro_rejected_before_any_call(
        self, answer_pipeline, embedding_provider, llm_provider, corpus_store, tier
    ) -> None:
        with pytest.raises(UnauthorizedError) as exc_info:
            await answer_pipeline.ask("What is Gear Second?", tier)

        assert exc_info.value.upgrade_url == "/pricing"
        assert embedding_provider.calls == []
        assert llm_provider.calls == []
        assert corpus_store.vector_calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("question", ["", "   ", None, 7])
    async def test_invalid_question(self, answer_pipeline, embedding_provider, question) -> None:
        with pytest.raises(InvalidInputError, match="question"):
            await answer_pipeline.ask(question, "pro")
        assert embedding_provider.calls == []

    @pytest.mark.asyncio
    async def test_question_too_long(self, answer_pipeline) -> None:
        with pytest.raises(InvalidInputError, match="at most 1000"):
            await answer_pipeline.ask("x" * 1001, "pro")

    @pytest.mark.asyncio
    async def test_input_checked_before_tier(self, answer_pipeline) -> None:
        with pytest.raises(InvalidInputError):
            await answer_pipeline.ask("", "free")

    @pytest.mark.asyncio
    async def test_unconfigured_embedding_fails_preflight(self, llm_provider, corpus_store) -> None:
        embedder = MockEmbeddingProvider(available=False)
        pipeline = build_pipeline(embedder, llm_provider, corpus_store)

        with pytest.raises(UpstreamUnavailableError, match="Embedding service"):
            await pipeline.ask("What is Gear Second?", "pro")
        assert embedder.calls == []
        assert corpus_store.vector_calls == []

    @pytest.mark.asyncio
    async def test_unconfigured_llm_fails_preflight(self, embedding_provider, corpus_store) -> None:
        pipeline = build_pipeline(embedding_provider, MockLLMProvider(available=False), corpus_store)

        with pytest.raises(UpstreamUnavailableError, match="Text-generation service"):
            await pipeline.ask("What is Gear Second?", "pro")
        assert embedding_provider.calls == []

    @pytest.mark.asyncio
    async def test_unavailable_corpus_fails_preflight(
        self, embedding_provider, llm_provider, gear_second_panels
    ) -> None:
        store = MockCorpusStore(panels=gear_second_panels, available=False)
        pipeline = build_pipeline(embedding_provider, llm_provider, store)

        with pytest.raises(UpstreamUnavailableError, match="Corpus store") as exc_info:
            await pipeline.ask("What is Gear Second?", "pro")
        assert exc_info.value.provider_name == "mock-corpus"
        assert embedding_provider.calls == []
        assert store.vector_calls == []
        assert llm_provider.calls == []


class TestAnswerPipelineFailures:
    @pytest.mark.asyncio
    async def test_embedding_failure_skips_generation(self, llm_provider, corpus_store) -> None:
        pipeline = build_pipeline(
            MockEmbeddingProvider(error=RuntimeError("connection refused")),
            llm_provider,
            corpus_store,
        )
        with pytest.raises(UpstreamUnavailableError):
            await pipeline.ask("What is Gear Second?", "pro")
        assert llm_provider.calls == []
        assert corpus_store.vector_calls == []

    @pytest.mark.asyncio
    async def test_corpus_failure_skips_generation(
        self, embedding_provider, llm_provider, gear_second_panels
    ) -> None:
        store = MockCorpusStore(panels=gear_second_panels, fail_panels=True)
        pipeline = build_pipeline(embedding_provider, llm_provider, store)

        with pytest.raises(UpstreamUnavailableError, match="panel index offline"):
            await pipeline.ask("What is Gear Second?", "pro")
        assert llm_provider.calls == []

    @pytest.mark.asyncio
    async def test_generation_failure(self, embedding_provider, corpus_store) -> None:
        pipeline = build_pipeline(
            embedding_provider, MockLLMProvider(error=RuntimeError("model overloaded")), corpus_store
        )
        with pytest.raises(GenerationFailedError):
            await pipeline.ask("What is Gear Second?", "pro")

    @pytest.mark.asyncio
    async def test_empty_generation(self, embedding_provider, corpus_store) -> None:
        pipeline = build_pipeline(embedding_provider, MockLLMProvider(answer=""), corpus_store)
        with pytest.raises(GenerationFailedError):
            await pipeline.ask("What is Gear Second?", "pro")
