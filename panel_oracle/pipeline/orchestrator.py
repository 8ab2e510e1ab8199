"""Orchestrator for the retrieval-augmented answer flow.

Coordinates input validation, the tier gate, embedding, retrieval,
context assembly, generation and citation extraction for one question.

ARCHITECTURE NOTE:
    The stages run in a fixed order and each one either hands its output
    to the next or raises a typed :class:`OracleError`:

        validate ─→ tier gate ─→ pre-flight ─→ embed ─→ retrieve (panels ‖ SBS)
                 ─→ assemble ─→ generate ─→ cite

    Everything that can be rejected without touching the network
    (malformed question, free tier, missing credentials) is rejected
    before the first external call.  Nothing is retried here; a caller
    that wants a retry resubmits.

    Rate limiting is not part of the pipeline.  It runs in the HTTP
    middleware, before the request reaches this class.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any

import structlog

from panel_oracle.interfaces.embedding_provider import IEmbeddingProvider
from panel_oracle.interfaces.llm_provider import ILLMProvider
from panel_oracle.models.answer import AnswerResult
from panel_oracle.pipeline.tier_gate import TierGate
from panel_oracle.services.answer_generator import AnswerGenerator
from panel_oracle.services.citation_service import CitationService
from panel_oracle.services.context_assembler import ContextAssembler
from panel_oracle.services.retrieval_service import VectorRetriever, embed_query
from panel_oracle.utils.errors import UpstreamUnavailableError
from panel_oracle.utils.logging import get_logger
from panel_oracle.utils.validation import validate_text


class AnswerPipeline:
    """Answers one question from retrieved panels and SBS entries.

    All collaborators are injected at construction time; the pipeline
    never builds clients itself.

    Parameters
    ----------
    embedding_provider, llm_provider:
        External services.  Only their ``is_available`` is consulted
        directly (pre-flight); the calls go through the services.
    retriever, assembler, generator, citation_service, tier_gate:
        Pipeline stages.
    threshold, panel_limit, sbs_limit:
        Retrieval tuning for the answer flow (``retrieval.ask``).
    max_question_length:
        Longest accepted question after stripping whitespace.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        llm_provider: ILLMProvider,
        retriever: VectorRetriever,
        generator: AnswerGenerator,
        assembler: ContextAssembler | None = None,
        citation_service: CitationService | None = None,
        tier_gate: TierGate | None = None,
        threshold: float = 0.65,
        panel_limit: int = 10,
        sbs_limit: int = 3,
        max_question_length: int = 1000,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._llm_provider = llm_provider
        self._retriever = retriever
        self._generator = generator
        self._assembler = assembler or ContextAssembler()
        self._citation_service = citation_service or CitationService()
        self._tier_gate = tier_gate or TierGate()
        self._threshold = threshold
        self._panel_limit = panel_limit
        self._sbs_limit = sbs_limit
        self._max_question_length = max_question_length
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ask(self, question: Any, tier: Any) -> AnswerResult:
        """Answer *question* for a caller on *tier*.

        Raises
        ------
        InvalidInputError
            Missing, empty or over-long question.
        UnauthorizedError
            Tier is anything other than ``"pro"``.
        UpstreamUnavailableError
            Providers not configured, or embedding/retrieval failed.
        GenerationFailedError
            Text generation failed or returned nothing.
        """
        text = validate_text(question, "question", self._max_question_length)
        self._tier_gate.enforce(tier)
        self._preflight()

        start = time.perf_counter()
        query_vector = await embed_query(self._embedding_provider, text)
        context = await self._retriever.retrieve(
            query_vector,
            threshold=self._threshold,
            panel_limit=self._panel_limit,
            sbs_limit=self._sbs_limit,
        )
        context_block = self._assembler.assemble(context)
        generated = await self._generator.generate(text, context_block)
        citations = self._citation_service.extract(context)

        self._logger.info(
            "answer_pipeline_complete",
            panels=len(context.panels),
            sbs_entries=len(context.sbs_entries),
            citations=len(citations),
            model=generated.model,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )

        return AnswerResult(
            question=text,
            answer=generated.text,
            citations=citations,
            model=generated.model,
            timestamp=datetime.now(tz=timezone.utc),
            context=context,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _preflight(self) -> None:
        """Fail before any network call if a required provider is unconfigured."""
        if not self._embedding_provider.is_available():
            raise UpstreamUnavailableError(
                message="Embedding service is not configured",
                provider_name=self._embedding_provider.get_provider_name(),
            )
        if not self._llm_provider.is_available():
            raise UpstreamUnavailableError(
                message="Text-generation service is not configured",
                provider_name=self._llm_provider.get_provider_name(),
            )
        if not self._retriever.is_available():
            raise UpstreamUnavailableError(
                message="Corpus store is not configured or holds no records",
                provider_name=self._retriever.get_provider_name(),
            )
