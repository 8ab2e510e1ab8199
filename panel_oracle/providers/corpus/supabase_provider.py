"""Supabase corpus store adapter.

Talks to the hosted Postgres database through its PostgREST endpoint with
a shared :class:`httpx.AsyncClient`.  Vector search goes through the two
SQL functions installed alongside the pgvector index:

    POST /rest/v1/rpc/search_panels  {query_embedding, match_threshold, match_count}
    POST /rest/v1/rpc/search_sbs     {query_embedding, match_threshold, match_count}

Full-text search uses PostgREST ``wfts`` (websearch_to_tsquery) filters on
the ``panels`` and ``sbs_entries`` tables.  Panels are joined to
``chapters`` for the chapter number and title.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from panel_oracle.interfaces.corpus_store_provider import ICorpusStoreProvider
from panel_oracle.models.corpus import PanelRecord, SBSEntry
from panel_oracle.utils.errors import UpstreamUnavailableError

logger = structlog.get_logger(logger_name=__name__)

_PANEL_SELECT = "id,page_number,panel_number,dialogue,characters,chapters!inner(number,title)"
_SBS_SELECT = "id,volume,question,answer"


class SupabaseCorpusProvider(ICorpusStoreProvider):
    """Corpus store backed by Supabase (Postgres + pgvector) over PostgREST.

    The service-role key is sent as both ``apikey`` and bearer token, so
    row-level security does not hide corpus rows from the server.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        supabase_url: str,
        service_key: str,
    ) -> None:
        self._http = http_client
        self._base_url = supabase_url.rstrip("/")
        self._service_key = service_key

    # ------------------------------------------------------------------
    # ICorpusStoreProvider implementation
    # ------------------------------------------------------------------

    async def search_panels(
        self,
        query_embedding: list[float],
        threshold: float,
        limit: int,
    ) -> list[PanelRecord]:
        rows = await self._rpc("search_panels", query_embedding, threshold, limit)
        panels = self._parse(rows, self._row_to_panel, "search_panels")
        logger.info("supabase_search_panels", results=len(panels), threshold=threshold)
        return panels

    async def search_sbs(
        self,
        query_embedding: list[float],
        threshold: float,
        limit: int,
    ) -> list[SBSEntry]:
        rows = await self._rpc("search_sbs", query_embedding, threshold, limit)
        entries = self._parse(rows, self._row_to_sbs, "search_sbs")
        logger.info("supabase_search_sbs", results=len(entries), threshold=threshold)
        return entries

    async def text_search_panels(self, query: str, limit: int) -> list[PanelRecord]:
        rows = await self._select(
            "panels",
            {
                "select": _PANEL_SELECT,
                "dialogue": f"wfts.{query}",
                "limit": str(limit),
            },
        )
        return self._parse(rows, self._row_to_panel, "text_search_panels")

    async def text_search_sbs(self, query: str, limit: int) -> list[SBSEntry]:
        quoted = _quote_filter_value(query)
        rows = await self._select(
            "sbs_entries",
            {
                "select": _SBS_SELECT,
                "or": f"(question.wfts.{quoted},answer.wfts.{quoted})",
                "limit": str(limit),
            },
        )
        return self._parse(rows, self._row_to_sbs, "text_search_sbs")

    def get_provider_name(self) -> str:
        return "supabase"

    def is_available(self) -> bool:
        return bool(self._base_url and self._service_key)

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self._service_key,
            "Authorization": f"Bearer {self._service_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _rpc(
        self,
        function: str,
        query_embedding: list[float],
        threshold: float,
        limit: int,
    ) -> Any:
        payload = {
            "query_embedding": query_embedding,
            "match_threshold": threshold,
            "match_count": limit,
        }
        try:
            response = await self._http.post(
                f"{self._base_url}/rest/v1/rpc/{function}",
                json=payload,
                headers=self._headers(),
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as exc:
            raise UpstreamUnavailableError(
                message=f"Supabase RPC {function} failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except ValueError as exc:
            raise UpstreamUnavailableError(
                message=f"Supabase RPC {function} returned invalid JSON",
                provider_name=self.get_provider_name(),
            ) from exc

    async def _select(self, table: str, params: dict[str, str]) -> Any:
        try:
            response = await self._http.get(
                f"{self._base_url}/rest/v1/{table}",
                params=params,
                headers=self._headers(),
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as exc:
            raise UpstreamUnavailableError(
                message=f"Supabase query on {table} failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except ValueError as exc:
            raise UpstreamUnavailableError(
                message=f"Supabase query on {table} returned invalid JSON",
                provider_name=self.get_provider_name(),
            ) from exc

    def _parse(self, rows: Any, convert: Any, operation: str) -> list:
        if not isinstance(rows, list):
            raise UpstreamUnavailableError(
                message=f"Supabase {operation} returned a non-list payload",
                provider_name=self.get_provider_name(),
            )
        try:
            return [convert(row) for row in rows]
        except (KeyError, TypeError, ValueError) as exc:
            raise UpstreamUnavailableError(
                message=f"Supabase {operation} returned a malformed row: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    # ------------------------------------------------------------------
    # Row conversion
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_panel(row: dict[str, Any]) -> PanelRecord:
        """Build a PanelRecord from an RPC row or a ``panels`` select row.

        RPC rows carry ``chapter_number``/``chapter_title`` directly; table
        rows carry them in the embedded ``chapters`` object.
        """
        chapter = row.get("chapters") or {}
        if isinstance(chapter, list):
            chapter = chapter[0] if chapter else {}
        chapter_number = row.get("chapter_number", chapter.get("number"))
        chapter_title = row.get("chapter_title", chapter.get("title"))
        return PanelRecord(
            id=str(row["id"]),
            chapter_number=chapter_number,
            chapter_title=chapter_title,
            page_number=row["page_number"],
            panel_number=row["panel_number"],
            dialogue=row.get("dialogue"),
            characters=list(row.get("characters") or []),
            similarity=_clamp(row.get("similarity")),
        )

    @staticmethod
    def _row_to_sbs(row: dict[str, Any]) -> SBSEntry:
        return SBSEntry(
            id=str(row["id"]),
            volume=row["volume"],
            question=row["question"],
            answer=row["answer"],
            similarity=_clamp(row.get("similarity")),
        )


def _clamp(similarity: Any) -> float | None:
    if similarity is None:
        return None
    return max(0.0, min(1.0, float(similarity)))


def _quote_filter_value(value: str) -> str:
    """Quote a value for use inside a PostgREST ``or=(...)`` filter."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'
