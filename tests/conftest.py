"""Shared pytest fixtures for the panel-oracle test suite."""

from __future__ import annotations

import hashlib

import pytest

from panel_oracle.interfaces.corpus_store_provider import ICorpusStoreProvider
from panel_oracle.interfaces.embedding_provider import IEmbeddingProvider
from panel_oracle.interfaces.llm_provider import ILLMProvider
from panel_oracle.models.corpus import PanelRecord, SBSEntry
from panel_oracle.pipeline.orchestrator import AnswerPipeline
from panel_oracle.services.answer_generator import AnswerGenerator
from panel_oracle.services.retrieval_service import VectorRetriever
from panel_oracle.utils.errors import UpstreamUnavailableError

_EMBEDDING_DIM = 8


# ---------------------------------------------------------------------------
# Deterministic fakes for the external services
# ---------------------------------------------------------------------------


def _hash_to_vector(text: str, dim: int = _EMBEDDING_DIM) -> list[float]:
    """Generate a deterministic fixed-length vector by hashing *text*.

    Each SHA-256 byte is mapped into ``[-1, 1]`` and the vector is
    normalised to unit length.  Same text always produces the same vector.
    """
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    while len(digest) < dim:
        digest += hashlib.sha256(digest).digest()
    values = [b / 127.5 - 1.0 for b in digest[:dim]]
    magnitude = max(sum(v * v for v in values) ** 0.5, 1e-10)
    return [v / magnitude for v in values]


class MockEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider that counts its calls."""

    def __init__(self, available: bool = True, error: Exception | None = None) -> None:
        self.available = available
        self.error = error
        self.calls: list[str] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return [await self.embed_single(t) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return _hash_to_vector(text)

    def get_dimension(self) -> int:
        return _EMBEDDING_DIM

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return self.available


class MockLLMProvider(ILLMProvider):
    """Returns a canned answer and records every prompt it receives."""

    def __init__(
        self,
        answer: str = "Luffy pumps blood faster (Chapter 388, Page 5).",
        available: bool = True,
        error: Exception | None = None,
    ) -> None:
        self.answer = answer
        self.available = available
        self.error = error
        self.calls: list[dict] = []

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 1000,
    ) -> str:
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )
        if self.error is not None:
            raise self.error
        return self.answer

    def get_model_name(self) -> str:
        return "mock-model"

    def get_provider_name(self) -> str:
        return "mock-llm"

    def is_available(self) -> bool:
        return self.available


class MockCorpusStore(ICorpusStoreProvider):
    """Returns preset records, unsorted, filtered only by threshold.

    Leaving the ordering to the retriever lets tests check that the
    retriever, not the backend, guarantees it.
    """

    def __init__(
        self,
        panels: list[PanelRecord] | None = None,
        sbs_entries: list[SBSEntry] | None = None,
        fail_panels: bool = False,
        fail_sbs: bool = False,
        available: bool = True,
    ) -> None:
        self.panels = list(panels or [])
        self.sbs_entries = list(sbs_entries or [])
        self.fail_panels = fail_panels
        self.fail_sbs = fail_sbs
        self._available = available
        self.vector_calls: list[tuple[str, float, int]] = []
        self.text_calls: list[tuple[str, str, int]] = []

    async def search_panels(self, query_embedding, threshold, limit):
        self.vector_calls.append(("panels", threshold, limit))
        if self.fail_panels:
            raise UpstreamUnavailableError("panel index offline", provider_name="mock-corpus")
        return [p for p in self.panels if (p.similarity or 0.0) >= threshold]

    async def search_sbs(self, query_embedding, threshold, limit):
        self.vector_calls.append(("sbs", threshold, limit))
        if self.fail_sbs:
            raise UpstreamUnavailableError("sbs index offline", provider_name="mock-corpus")
        return [e for e in self.sbs_entries if (e.similarity or 0.0) >= threshold]

    async def text_search_panels(self, query, limit):
        self.text_calls.append(("panels", query, limit))
        needle = query.lower()
        return [
            p.model_copy(update={"similarity": None})
            for p in self.panels
            if p.dialogue and needle in p.dialogue.lower()
        ][:limit]

    async def text_search_sbs(self, query, limit):
        self.text_calls.append(("sbs", query, limit))
        needle = query.lower()
        return [
            e.model_copy(update={"similarity": None})
            for e in self.sbs_entries
            if needle in e.question.lower() or needle in e.answer.lower()
        ][:limit]

    def get_provider_name(self) -> str:
        return "mock-corpus"

    def is_available(self) -> bool:
        return self._available


class FakeClock:
    """Manually advanced clock for rate-limiter tests."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Sample corpus records
# ---------------------------------------------------------------------------


def make_panel(
    panel_id: str = "p1",
    similarity: float | None = 0.8,
    chapter: int = 388,
    page: int = 5,
    panel: int = 3,
    title: str | None = "Gear Second",
    dialogue: str | None = "Gear Second!",
    characters: list[str] | None = None,
) -> PanelRecord:
    return PanelRecord(
        id=panel_id,
        chapter_number=chapter,
        chapter_title=title,
        page_number=page,
        panel_number=panel,
        dialogue=dialogue,
        characters=characters if characters is not None else ["Luffy"],
        similarity=similarity,
    )


def make_sbs(
    entry_id: str = "s1",
    similarity: float | None = 0.9,
    volume: int = 42,
    question: str = "How does Gear Second work?",
    answer: str = "Luffy pumps his blood faster.",
) -> SBSEntry:
    return SBSEntry(
        id=entry_id,
        volume=volume,
        question=question,
        answer=answer,
        similarity=similarity,
    )


@pytest.fixture
def gear_second_panels() -> list[PanelRecord]:
    """Two panels above the answer threshold, plus one below it."""
    return [
        make_panel("p-777", similarity=0.77, page=6, panel=1, dialogue="It's like a pump!"),
        make_panel(
            "p-810",
            similarity=0.81,
            page=5,
            panel=3,
            dialogue="Gear Second!",
            characters=["Luffy", "Blueno"],
        ),
        make_panel("p-500", similarity=0.50, page=9, panel=2, dialogue="Rokushiki!"),
    ]


@pytest.fixture
def gear_second_sbs() -> list[SBSEntry]:
    return [make_sbs("s-900", similarity=0.9)]


@pytest.fixture
def corpus_store(gear_second_panels, gear_second_sbs) -> MockCorpusStore:
    return MockCorpusStore(panels=gear_second_panels, sbs_entries=gear_second_sbs)


@pytest.fixture
def embedding_provider() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def llm_provider() -> MockLLMProvider:
    return MockLLMProvider()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


def build_pipeline(
    embedding_provider: IEmbeddingProvider,
    llm_provider: ILLMProvider,
    corpus_store: ICorpusStoreProvider,
    **kwargs,
) -> AnswerPipeline:
    """Wire an AnswerPipeline around the given fakes."""
    retriever = VectorRetriever(corpus_store=corpus_store)
    generator = AnswerGenerator(llm_provider=llm_provider)
    return AnswerPipeline(
        embedding_provider=embedding_provider,
        llm_provider=llm_provider,
        retriever=retriever,
        generator=generator,
        **kwargs,
    )


@pytest.fixture
def answer_pipeline(embedding_provider, llm_provider, corpus_store) -> AnswerPipeline:
    return build_pipeline(embedding_provider, llm_provider, corpus_store)
