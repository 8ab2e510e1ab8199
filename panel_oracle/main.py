"""panel-oracle FastAPI application entry point.

Wires together all providers, services, and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml``, configures
structured logging, and builds every external client once at startup.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from panel_oracle.api.middleware import (
    ErrorHandlingMiddleware,
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
    validation_exception_handler,
)
from panel_oracle.api.routes import router as api_router
from panel_oracle.config.loader import load_config
from panel_oracle.config.settings import Settings
from panel_oracle.interfaces.corpus_store_provider import ICorpusStoreProvider
from panel_oracle.models.rate_limit import RateLimitConfig
from panel_oracle.pipeline.orchestrator import AnswerPipeline
from panel_oracle.pipeline.tier_gate import TierGate
from panel_oracle.providers.corpus.chromadb_provider import ChromaDBCorpusProvider
from panel_oracle.providers.corpus.supabase_provider import SupabaseCorpusProvider
from panel_oracle.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from panel_oracle.providers.llm.openai_provider import OpenAILLMProvider
from panel_oracle.services.answer_generator import AnswerGenerator
from panel_oracle.services.citation_service import CitationService
from panel_oracle.services.context_assembler import ContextAssembler
from panel_oracle.services.rate_limiter import RateLimiter
from panel_oracle.services.retrieval_service import VectorRetriever
from panel_oracle.services.search_service import SearchService
from panel_oracle.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Component factories
# ---------------------------------------------------------------------------


def _build_corpus_store(
    app_settings: Settings,
    http_client: httpx.AsyncClient,
) -> ICorpusStoreProvider:
    """Supabase when URL and service key are configured, local ChromaDB otherwise."""
    if app_settings.supabase_configured():
        return SupabaseCorpusProvider(
            http_client=http_client,
            supabase_url=app_settings.supabase_url,
            service_key=app_settings.supabase_service_key,
        )
    return ChromaDBCorpusProvider(
        persist_directory=app_settings.chromadb_persist_dir,
        panels_collection=app_settings.chromadb_panels_collection,
        sbs_collection=app_settings.chromadb_sbs_collection,
    )


def build_rate_limiter(app_config: dict[str, Any]) -> RateLimiter:
    """Build the limiter from the ``rate_limits`` config section."""
    section = app_config.get("rate_limits", {})
    policies = {
        name: RateLimitConfig(**values)
        for name, values in section.get("policies", {}).items()
    }
    return RateLimiter(
        policies=policies,
        sweep_interval=float(section.get("sweep_interval_seconds", 300)),
    )


# ---------------------------------------------------------------------------
# Full DI assembly for the FastAPI application
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings, app_config: dict[str, Any]) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    # -- Shared resources --
    http_client = httpx.AsyncClient(timeout=httpx.Timeout(10.0, connect=5.0))

    # -- External providers --
    embedding_provider = OpenAIEmbeddingProvider(settings=app_settings)
    llm_provider = OpenAILLMProvider(settings=app_settings)
    corpus_store = _build_corpus_store(app_settings, http_client)

    # -- Pipeline stages --
    retrieval_cfg = app_config.get("retrieval", {})
    ask_cfg = retrieval_cfg.get("ask", {})
    search_cfg = retrieval_cfg.get("search", {})
    generation_cfg = app_config.get("generation", {})
    input_cfg = app_config.get("input", {})

    retriever = VectorRetriever(corpus_store=corpus_store)
    assembler = ContextAssembler()
    generator = AnswerGenerator(
        llm_provider=llm_provider,
        assembler=assembler,
        temperature=generation_cfg.get("temperature", 0.3),
        max_tokens=generation_cfg.get("max_tokens", 1000),
    )
    answer_pipeline = AnswerPipeline(
        embedding_provider=embedding_provider,
        llm_provider=llm_provider,
        retriever=retriever,
        generator=generator,
        assembler=assembler,
        citation_service=CitationService(),
        tier_gate=TierGate(),
        threshold=ask_cfg.get("threshold", 0.65),
        panel_limit=ask_cfg.get("panel_limit", 10),
        sbs_limit=ask_cfg.get("sbs_limit", 3),
        max_question_length=input_cfg.get("max_question_length", 1000),
    )
    search_service = SearchService(
        corpus_store=corpus_store,
        retriever=retriever,
        embedding_provider=embedding_provider,
        threshold=search_cfg.get("threshold", 0.70),
        default_limit=search_cfg.get("default_limit", 20),
        max_limit=search_cfg.get("max_limit", 50),
        max_query_length=input_cfg.get("max_query_length", 500),
    )

    # -- Provider registry (for /health) --
    provider_registry: dict[str, Any] = {
        "embedding": embedding_provider.is_available(),
        "llm": llm_provider.is_available(),
        "corpus_backend": corpus_store.get_provider_name(),
    }

    return {
        "http_client": http_client,
        "embedding_provider": embedding_provider,
        "llm_provider": llm_provider,
        "corpus_store": corpus_store,
        "rate_limiter": build_rate_limiter(app_config),
        "answer_pipeline": answer_pipeline,
        "search_service": search_service,
        "provider_registry": provider_registry,
        "trusted_proxies": app_settings.get_trusted_proxies(),
        "version": app_config.get("app", {}).get("version", "0.1.0"),
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = _build_all(settings, config)

    for key, value in components.items():
        setattr(application.state, key, value)

    for name in settings.missing_optional():
        _logger.warning("optional_env_missing", variable=name)

    corpus_store: ICorpusStoreProvider = components["corpus_store"]
    if not corpus_store.is_available():
        _logger.warning(
            "corpus_store_unavailable",
            backend=corpus_store.get_provider_name(),
            message="Ask and search will answer 503 until a corpus is loaded",
        )

    limiter: RateLimiter = components["rate_limiter"]
    await limiter.start()

    _logger.info(
        "app_startup",
        version=components["version"],
        environment=settings.app_env,
        corpus_backend=components["provider_registry"]["corpus_backend"],
        llm_model=components["llm_provider"].get_model_name(),
        rate_policies=sorted(limiter.policies),
    )

    yield

    # -- Shutdown: stop the sweep loop, close shared httpx client --
    await limiter.stop()
    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(lifespan: Any = _lifespan) -> FastAPI:
    """Build and configure the FastAPI application.

    Tests pass ``lifespan=None`` and populate ``app.state`` themselves.
    """
    application = FastAPI(
        title="panel-oracle API",
        version=config.get("app", {}).get("version", "0.1.0"),
        description=(
            "Ask questions about manga chapters and get answers grounded in "
            "retrieved panels and SBS entries, with structured citations."
        ),
        lifespan=lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RateLimitMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, allowed_origins=settings.get_cors_origins())

    application.add_exception_handler(RequestValidationError, validation_exception_handler)

    # -- API routes --
    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main() -> None:
    uvicorn.run(
        "panel_oracle.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )


if __name__ == "__main__":
    main()
