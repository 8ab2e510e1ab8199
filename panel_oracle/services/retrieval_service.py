"""Vector retrieval over the panel and SBS corpora.

The corpus store does the similarity search; this service shapes the
results so every caller gets the same guarantees regardless of backend:

    - only records with ``similarity >= threshold``
    - ordered by descending similarity, ties broken by record id
    - capped at the requested limit

Both corpora are queried concurrently.  If either query fails the whole
retrieval fails: a context missing one corpus would silently degrade the
answer, so it is never handed on.
"""

from __future__ import annotations

import asyncio
import math
import time

import structlog

from panel_oracle.interfaces.corpus_store_provider import ICorpusStoreProvider
from panel_oracle.interfaces.embedding_provider import IEmbeddingProvider
from panel_oracle.models.corpus import Corpus, PanelRecord, RetrievedContext, SBSEntry
from panel_oracle.utils.errors import OracleError, UpstreamUnavailableError
from panel_oracle.utils.logging import get_logger

CorpusRecord = PanelRecord | SBSEntry


async def embed_query(embedding_provider: IEmbeddingProvider, text: str) -> list[float]:
    """Embed *text*, mapping every failure to :class:`UpstreamUnavailableError`."""
    try:
        return await embedding_provider.embed_single(text)
    except UpstreamUnavailableError:
        raise
    except OracleError as exc:
        raise UpstreamUnavailableError(
            message=exc.message,
            provider_name=exc.provider_name or embedding_provider.get_provider_name(),
        ) from exc
    except Exception as exc:
        raise UpstreamUnavailableError(
            message=f"Embedding request failed: {exc}",
            provider_name=embedding_provider.get_provider_name(),
        ) from exc


def sbs_limit_for(panel_limit: int) -> int:
    """SBS gets roughly a quarter of the panel budget, never less than one."""
    return max(1, math.ceil(panel_limit / 4))


def rank_records(
    records: list[CorpusRecord],
    threshold: float,
    limit: int,
) -> list[CorpusRecord]:
    """Filter to *threshold*, sort by descending similarity then id, cap to *limit*.

    Records without a similarity score are dropped.
    """
    eligible = [r for r in records if r.similarity is not None and r.similarity >= threshold]
    eligible.sort(key=lambda r: (-r.similarity, r.id))
    return eligible[: max(0, limit)]


class VectorRetriever:
    """Runs similarity search against an :class:`ICorpusStoreProvider`."""

    def __init__(self, corpus_store: ICorpusStoreProvider) -> None:
        self._store = corpus_store
        self._logger: structlog.BoundLogger = get_logger(__name__)

    def is_available(self) -> bool:
        """Return ``True`` if the underlying corpus store can serve queries."""
        return self._store.is_available()

    def get_provider_name(self) -> str:
        return self._store.get_provider_name()

    async def search(
        self,
        query_vector: list[float],
        corpus: Corpus,
        threshold: float,
        limit: int,
    ) -> list[CorpusRecord]:
        """Return ranked records from one corpus.

        Raises
        ------
        UpstreamUnavailableError
            If the corpus store fails for any reason.
        """
        if limit <= 0:
            return []
        try:
            if corpus is Corpus.PANELS:
                raw: list = await self._store.search_panels(query_vector, threshold, limit)
            else:
                raw = await self._store.search_sbs(query_vector, threshold, limit)
        except OracleError:
            raise
        except Exception as exc:
            raise UpstreamUnavailableError(
                message=f"{corpus.value} search failed: {exc}",
                provider_name=self._store.get_provider_name(),
            ) from exc
        return rank_records(raw, threshold, limit)

    async def retrieve(
        self,
        query_vector: list[float],
        threshold: float,
        panel_limit: int,
        sbs_limit: int | None = None,
    ) -> RetrievedContext:
        """Query both corpora concurrently and build a :class:`RetrievedContext`.

        *sbs_limit* defaults to a quarter of *panel_limit* (rounded up).
        """
        if sbs_limit is None:
            sbs_limit = sbs_limit_for(panel_limit)

        start = time.perf_counter()
        results = await asyncio.gather(
            self.search(query_vector, Corpus.PANELS, threshold, panel_limit),
            self.search(query_vector, Corpus.SBS, threshold, sbs_limit),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                self._logger.error(
                    "retrieval_failed",
                    error=str(result),
                    provider=self._store.get_provider_name(),
                )
                raise result

        panels, sbs_entries = results
        context = RetrievedContext(panels=panels, sbs_entries=sbs_entries)
        self._logger.info(
            "retrieval_complete",
            panels=len(context.panels),
            sbs_entries=len(context.sbs_entries),
            threshold=threshold,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return context
