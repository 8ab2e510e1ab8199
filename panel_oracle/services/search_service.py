"""Plain search over the panel and SBS corpora.

Two methods:

    semantic   embed the query, then run the vector retriever at the
               search threshold (stricter than the answer flow's).
    fulltext   keyword search in the corpus store.  Never touches the
               embedding provider, so it keeps working when embeddings
               are down or unconfigured.  Both corpora are queried
               concurrently; either failure fails the search.
"""

from __future__ import annotations

import asyncio
import time

import structlog

from panel_oracle.interfaces.corpus_store_provider import ICorpusStoreProvider
from panel_oracle.interfaces.embedding_provider import IEmbeddingProvider
from panel_oracle.models.answer import SearchResult
from panel_oracle.services.retrieval_service import VectorRetriever, embed_query, sbs_limit_for
from panel_oracle.utils.errors import InvalidInputError, OracleError, UpstreamUnavailableError
from panel_oracle.utils.logging import get_logger
from panel_oracle.utils.validation import validate_text

SEARCH_METHODS = ("semantic", "fulltext")


class SearchService:
    """Runs semantic or full-text search and returns both corpora."""

    def __init__(
        self,
        corpus_store: ICorpusStoreProvider,
        retriever: VectorRetriever,
        embedding_provider: IEmbeddingProvider | None = None,
        threshold: float = 0.70,
        default_limit: int = 20,
        max_limit: int = 50,
        max_query_length: int = 500,
    ) -> None:
        self._store = corpus_store
        self._retriever = retriever
        self._embedding_provider = embedding_provider
        self._threshold = threshold
        self._default_limit = default_limit
        self._max_limit = max_limit
        self._max_query_length = max_query_length
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def default_limit(self) -> int:
        return self._default_limit

    async def search(
        self,
        query: str,
        method: str = "fulltext",
        limit: int | None = None,
    ) -> SearchResult:
        """Search both corpora.

        *limit* caps panels; SBS entries get a quarter of it (rounded up).

        Raises
        ------
        InvalidInputError
            Empty/over-long query, unknown method, or limit out of range.
        UpstreamUnavailableError
            Embedding or corpus store failure.
        """
        text = validate_text(query, "query", self._max_query_length)
        if method not in SEARCH_METHODS:
            raise InvalidInputError(f"method must be one of: {', '.join(SEARCH_METHODS)}")
        if limit is None:
            limit = self._default_limit
        if limit < 1 or limit > self._max_limit:
            raise InvalidInputError(f"limit must be between 1 and {self._max_limit}")

        if not self._store.is_available():
            raise UpstreamUnavailableError(
                message="Corpus store is not configured or holds no records",
                provider_name=self._store.get_provider_name(),
            )

        start = time.perf_counter()
        if method == "semantic":
            result = await self._semantic(text, limit)
        else:
            result = await self._fulltext(text, limit)

        self._logger.info(
            "search_complete",
            method=method,
            panels=len(result.panels),
            sbs_entries=len(result.sbs_entries),
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return result

    async def _semantic(self, text: str, limit: int) -> SearchResult:
        if self._embedding_provider is None or not self._embedding_provider.is_available():
            raise UpstreamUnavailableError(
                message="Semantic search requires an embedding service; use method=fulltext",
            )
        query_vector = await embed_query(self._embedding_provider, text)
        context = await self._retriever.retrieve(
            query_vector,
            threshold=self._threshold,
            panel_limit=limit,
            sbs_limit=sbs_limit_for(limit),
        )
        return SearchResult(
            method="semantic",
            panels=context.panels,
            sbs_entries=context.sbs_entries,
        )

    async def _fulltext(self, text: str, limit: int) -> SearchResult:
        results = await asyncio.gather(
            self._store.text_search_panels(text, limit),
            self._store.text_search_sbs(text, sbs_limit_for(limit)),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, OracleError):
                raise result
            if isinstance(result, Exception):
                self._logger.error(
                    "fulltext_search_failed",
                    error=str(result),
                    provider=self._store.get_provider_name(),
                )
                raise UpstreamUnavailableError(
                    message=f"Full-text search failed: {result}",
                    provider_name=self._store.get_provider_name(),
                ) from result
            if isinstance(result, BaseException):
                raise result

        panels, sbs_entries = results
        return SearchResult(
            method="fulltext",
            panels=panels[:limit],
            sbs_entries=sbs_entries[: sbs_limit_for(limit)],
        )
