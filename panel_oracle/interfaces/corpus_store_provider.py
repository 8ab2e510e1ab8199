"""Abstract base class for the panel / SBS corpus store.

The corpus store owns the indexed panels and SBS entries.  This service
never designs the index; it only issues similarity and full-text queries
against it and shapes the results.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from panel_oracle.models.corpus import PanelRecord, SBSEntry


# Concrete implementations:
#   SupabaseCorpusProvider   PostgREST RPC + full-text filters (pgvector)
#   ChromaDBCorpusProvider   local ChromaDB collections, cosine space
# Located in: panel_oracle/providers/corpus/
class ICorpusStoreProvider(ABC):
    """Contract for vector and full-text queries over both corpora.

    Every method raises
    :class:`~panel_oracle.utils.errors.UpstreamUnavailableError` on any
    transport or decoding failure.  Implementations must not return a
    partial result in place of an error.
    """

    @abstractmethod
    async def search_panels(
        self,
        query_embedding: list[float],
        threshold: float,
        limit: int,
    ) -> list[PanelRecord]:
        """Return up to *limit* panels whose similarity is at least *threshold*.

        Parameters
        ----------
        query_embedding:
            The query vector produced by the embedding provider.
        threshold:
            Minimum cosine similarity in ``[0, 1]``.
        limit:
            Maximum number of panels to return.

        Returns
        -------
        list[PanelRecord]
            Records with ``similarity`` populated.  Ordering is not
            guaranteed; the retriever re-sorts.
        """

    @abstractmethod
    async def search_sbs(
        self,
        query_embedding: list[float],
        threshold: float,
        limit: int,
    ) -> list[SBSEntry]:
        """Return up to *limit* SBS entries whose similarity is at least *threshold*."""

    @abstractmethod
    async def text_search_panels(self, query: str, limit: int) -> list[PanelRecord]:
        """Keyword search over panel dialogue.  ``similarity`` is left unset."""

    @abstractmethod
    async def text_search_sbs(self, query: str, limit: int) -> list[SBSEntry]:
        """Keyword search over SBS questions and answers."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"supabase"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the store is configured, reachable and holds a corpus."""
