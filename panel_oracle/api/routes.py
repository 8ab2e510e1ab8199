"""FastAPI API routes for panel-oracle.

Service dependencies are resolved from ``app.state`` via FastAPI's
``Depends`` using the ``Annotated`` pattern.

# ─── API ROUTE MAP ────────────────────────────────────────────────────
#
# Endpoint              Method  Rate policy  Description
# ─────────────────────────────────────────────────────────────────────
# /api/v1/ask           POST    ask          Grounded, cited answer (pro tier)
# /api/v1/search        POST    search       Semantic or full-text search
# /api/v1/health        GET     (none)       Health check + provider status
#
# Rate limiting, error-to-JSON conversion and request logging live in
# middleware (see api/middleware.py); handlers only call services and
# shape responses.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request

from panel_oracle.api.schemas import (
    AskRequest,
    AskResponse,
    ErrorResponse,
    HealthResponse,
    SearchRequest,
    SearchResponse,
)
from panel_oracle.pipeline.orchestrator import AnswerPipeline
from panel_oracle.services.search_service import SearchService

router = APIRouter(prefix="/api/v1")

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


# ---------------------------------------------------------------------------
# Dependency helpers
# ---------------------------------------------------------------------------


def _get_answer_pipeline(request: Request) -> AnswerPipeline:
    """Return the answer pipeline from application state."""
    return request.app.state.answer_pipeline


def _get_search_service(request: Request) -> SearchService:
    """Return the search service from application state."""
    return request.app.state.search_service


AnswerPipelineDep = Annotated[AnswerPipeline, Depends(_get_answer_pipeline)]
SearchServiceDep = Annotated[SearchService, Depends(_get_search_service)]


# ---------------------------------------------------------------------------
# Answer endpoint
# ---------------------------------------------------------------------------


@router.post(
    "/ask",
    response_model=AskResponse,
    responses={
        **_ERROR_RESPONSES,
        403: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    summary="Ask a question answered from panels and SBS entries",
)
async def ask_question(body: AskRequest, pipeline: AnswerPipelineDep) -> AskResponse:
    """Retrieve relevant panels and SBS entries and generate a cited answer."""
    result = await pipeline.ask(body.question, body.tier)
    return AskResponse(
        question=result.question,
        answer=result.answer,
        citations=result.citations,
        model=result.model,
        timestamp=result.timestamp,
    )


# ---------------------------------------------------------------------------
# Search endpoint
# ---------------------------------------------------------------------------


@router.post(
    "/search",
    response_model=SearchResponse,
    responses=_ERROR_RESPONSES,
    summary="Search panels and SBS entries",
)
async def search(body: SearchRequest, search_service: SearchServiceDep) -> SearchResponse:
    """Semantic search via embeddings, or full-text search on dialogue and SBS text."""
    result = await search_service.search(body.query, method=body.method, limit=body.limit)
    return SearchResponse(
        query=body.query.strip(),
        method=result.method,
        panels=result.panels,
        sbs_entries=result.sbs_entries,
        timestamp=datetime.now(tz=timezone.utc),
    )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability.

    ``healthy`` when answers can be generated, ``degraded`` when only
    full-text search works, ``unhealthy`` when the corpus store is down or
    holds no records.
    """
    providers: dict[str, Any] = dict(getattr(request.app.state, "provider_registry", {}))

    corpus_store = getattr(request.app.state, "corpus_store", None)
    if corpus_store is not None:
        providers["corpus"] = corpus_store.is_available()

    corpus_ok = providers.get("corpus", False)
    generator_ok = providers.get("embedding", False) and providers.get("llm", False)

    if corpus_ok and generator_ok:
        status = "healthy"
    elif corpus_ok:
        status = "degraded"
    else:
        status = "unhealthy"

    return HealthResponse(
        status=status,
        version=getattr(request.app.state, "version", "0.1.0"),
        providers=providers,
    )
