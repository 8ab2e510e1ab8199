"""ChromaDB corpus store adapter.

Wraps ``chromadb.PersistentClient`` to implement :class:`ICorpusStoreProvider`
with one collection per corpus (panels, SBS entries).  Uses cosine
distance, so similarity is ``1 - distance`` clamped to ``[0, 1]``.  Fully
local; used when no Supabase project is configured.

ChromaDB's client is synchronous.  Every call runs in a worker thread via
``asyncio.to_thread`` so a slow query never stalls the event loop.
"""

from __future__ import annotations

import asyncio
import os
from typing import Any

# Disable ChromaDB telemetry before importing chromadb.  A version mismatch
# between ChromaDB's bundled PostHog client and the installed one makes
# capture() raise, so telemetry is switched off at every layer.
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import posthog

posthog.disabled = True

import chromadb
import structlog

from panel_oracle.interfaces.corpus_store_provider import ICorpusStoreProvider
from panel_oracle.models.corpus import PanelRecord, SBSEntry
from panel_oracle.utils.errors import UpstreamUnavailableError

logger = structlog.get_logger(logger_name=__name__)


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """No-op embedding function that prevents ChromaDB from loading a model.

    Queries always pass a pre-computed vector from the embedding provider,
    so ChromaDB's built-in ONNX model is never needed.
    """

    def __init__(self) -> None:
        pass

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "panel-oracle uses pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    @staticmethod
    def name() -> str:
        return "noop_precomputed"

    def get_config(self) -> dict[str, Any]:
        return {}

    @staticmethod
    def build_from_config(config: dict[str, Any]) -> _NoopEmbeddingFunction:
        return _NoopEmbeddingFunction()


class ChromaDBCorpusProvider(ICorpusStoreProvider):
    """Corpus store backed by two local ChromaDB collections.

    Panel documents hold the dialogue text; SBS documents hold the question
    and answer joined by a newline.  Everything else lives in metadata.
    """

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        panels_collection: str = "panels",
        sbs_collection: str = "sbs_entries",
        client: Any | None = None,
    ) -> None:
        self._persist_directory = persist_directory
        self._client = client or chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        self._panels = self._open_collection(panels_collection)
        self._sbs = self._open_collection(sbs_collection)

    def _open_collection(self, name: str) -> Any:
        # Collections created by an older ChromaDB with the default embedding
        # function reject a different one; reopen without it in that case.
        try:
            return self._client.get_or_create_collection(
                name=name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            return self._client.get_or_create_collection(
                name=name,
                metadata={"hnsw:space": "cosine"},
            )

    # ------------------------------------------------------------------
    # ICorpusStoreProvider implementation
    # ------------------------------------------------------------------

    async def search_panels(
        self,
        query_embedding: list[float],
        threshold: float,
        limit: int,
    ) -> list[PanelRecord]:
        hits = await self._vector_query(self._panels, query_embedding, threshold, limit)
        panels = [
            self._metadata_to_panel(item_id, meta, doc, similarity)
            for item_id, meta, doc, similarity in hits
        ]
        logger.info("chromadb_search_panels", results=len(panels), threshold=threshold)
        return panels

    async def search_sbs(
        self,
        query_embedding: list[float],
        threshold: float,
        limit: int,
    ) -> list[SBSEntry]:
        hits = await self._vector_query(self._sbs, query_embedding, threshold, limit)
        entries = [
            self._metadata_to_sbs(item_id, meta, similarity)
            for item_id, meta, _doc, similarity in hits
        ]
        logger.info("chromadb_search_sbs", results=len(entries), threshold=threshold)
        return entries

    async def text_search_panels(self, query: str, limit: int) -> list[PanelRecord]:
        rows = await self._text_query(self._panels, query, limit)
        return [self._metadata_to_panel(item_id, meta, doc, None) for item_id, meta, doc in rows]

    async def text_search_sbs(self, query: str, limit: int) -> list[SBSEntry]:
        rows = await self._text_query(self._sbs, query, limit)
        return [self._metadata_to_sbs(item_id, meta, None) for item_id, meta, _doc in rows]

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        """Return ``True`` if the client responds and at least one corpus is loaded.

        A fresh persist directory opens two empty collections; that store
        answers every query with nothing, so it counts as unavailable.
        """
        try:
            self._client.heartbeat()
            return self._panels.count() + self._sbs.count() > 0
        except Exception:  # noqa: BLE001
            return False

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def add_panels(
        self,
        panels: list[PanelRecord],
        embeddings: list[list[float]],
    ) -> int:
        """Upsert panels with their pre-computed embeddings."""
        if len(panels) != len(embeddings):
            raise ValueError(
                f"panels and embeddings length mismatch: {len(panels)} != {len(embeddings)}"
            )
        if not panels:
            return 0
        await asyncio.to_thread(
            self._panels.upsert,
            ids=[p.id for p in panels],
            embeddings=embeddings,
            documents=[p.dialogue or "" for p in panels],
            metadatas=[self._panel_to_metadata(p) for p in panels],
        )
        return len(panels)

    async def add_sbs_entries(
        self,
        entries: list[SBSEntry],
        embeddings: list[list[float]],
    ) -> int:
        """Upsert SBS entries with their pre-computed embeddings."""
        if len(entries) != len(embeddings):
            raise ValueError(
                f"entries and embeddings length mismatch: {len(entries)} != {len(embeddings)}"
            )
        if not entries:
            return 0
        await asyncio.to_thread(
            self._sbs.upsert,
            ids=[e.id for e in entries],
            embeddings=embeddings,
            documents=[f"{e.question}\n{e.answer}" for e in entries],
            metadatas=[{"volume": e.volume, "question": e.question, "answer": e.answer} for e in entries],
        )
        return len(entries)

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------

    async def _vector_query(
        self,
        collection: Any,
        query_embedding: list[float],
        threshold: float,
        limit: int,
    ) -> list[tuple[str, dict[str, Any], str, float]]:
        try:
            count = await asyncio.to_thread(collection.count)
            if count == 0 or limit <= 0:
                return []
            results = await asyncio.to_thread(
                collection.query,
                query_embeddings=[query_embedding],
                n_results=min(limit, count),
                include=["metadatas", "documents", "distances"],
            )
        except Exception as exc:
            raise UpstreamUnavailableError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not results["ids"] or not results["ids"][0]:
            return []

        ids = results["ids"][0]
        metadatas = results["metadatas"][0] if results["metadatas"] else [{}] * len(ids)
        documents = results["documents"][0] if results["documents"] else [""] * len(ids)
        distances = results["distances"][0] if results["distances"] else [1.0] * len(ids)

        hits: list[tuple[str, dict[str, Any], str, float]] = []
        for item_id, meta, doc, distance in zip(ids, metadatas, documents, distances, strict=True):
            similarity = max(0.0, min(1.0, 1.0 - distance))
            if similarity >= threshold:
                hits.append((item_id, meta or {}, doc or "", similarity))
        return hits

    async def _text_query(
        self,
        collection: Any,
        query: str,
        limit: int,
    ) -> list[tuple[str, dict[str, Any], str]]:
        try:
            results = await asyncio.to_thread(
                collection.get,
                where_document={"$contains": query},
                limit=limit,
                include=["metadatas", "documents"],
            )
        except Exception as exc:
            raise UpstreamUnavailableError(
                message=f"ChromaDB text search failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        ids = results.get("ids") or []
        metadatas = results.get("metadatas") or [{}] * len(ids)
        documents = results.get("documents") or [""] * len(ids)
        return [
            (item_id, meta or {}, doc or "")
            for item_id, meta, doc in zip(ids, metadatas, documents, strict=True)
        ]

    # ------------------------------------------------------------------
    # Metadata conversion
    # ------------------------------------------------------------------

    @staticmethod
    def _panel_to_metadata(panel: PanelRecord) -> dict[str, str | int | float | bool]:
        """Convert a PanelRecord to a ChromaDB-compatible metadata dict.

        ChromaDB metadata values must be str, int, float, or bool, so the
        character list is stored comma-separated and absent fields are
        left out.
        """
        meta: dict[str, str | int | float | bool] = {
            "chapter_number": panel.chapter_number,
            "page_number": panel.page_number,
            "panel_number": panel.panel_number,
            "characters": ",".join(panel.characters),
            "has_dialogue": panel.dialogue is not None,
        }
        if panel.chapter_title:
            meta["chapter_title"] = panel.chapter_title
        return meta

    @staticmethod
    def _metadata_to_panel(
        item_id: str,
        meta: dict[str, Any],
        document: str,
        similarity: float | None,
    ) -> PanelRecord:
        return PanelRecord(
            id=item_id,
            chapter_number=int(meta.get("chapter_number", 0)),
            chapter_title=meta.get("chapter_title"),
            page_number=int(meta.get("page_number", 0)),
            panel_number=int(meta.get("panel_number", 0)),
            dialogue=document if meta.get("has_dialogue", bool(document)) else None,
            characters=ChromaDBCorpusProvider._split_names(meta.get("characters", "")),
            similarity=similarity,
        )

    @staticmethod
    def _metadata_to_sbs(
        item_id: str,
        meta: dict[str, Any],
        similarity: float | None,
    ) -> SBSEntry:
        return SBSEntry(
            id=item_id,
            volume=int(meta.get("volume", 0)),
            question=meta.get("question", ""),
            answer=meta.get("answer", ""),
            similarity=similarity,
        )

    @staticmethod
    def _split_names(value: str | Any) -> list[str]:
        """Split a comma-separated name string back into a list."""
        if not value or not isinstance(value, str):
            return []
        return [name.strip() for name in value.split(",") if name.strip()]
