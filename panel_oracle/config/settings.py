"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# Values are read from two sources (in priority order):
#
#   1. **Environment variables**: e.g., OPENAI_API_KEY=sk-abc123
#   2. **.env file**: key=value lines in the project root .env file
#
# Field ``supabase_service_key`` maps to env var ``SUPABASE_SERVICE_KEY``.
# Defaults apply when neither source sets a field.
#
# Secrets and endpoints live here.  Tunables that are safe to commit
# (rate-limit policies, thresholds, sampling settings) live in
# config/config.yaml and are read by load_config().
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """panel-oracle application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Embeddings + text generation ===
    # Empty string = "not configured"; the answer pipeline refuses to run
    # without a key, the full-text search path keeps working.
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoint (TogetherAI, etc.)
    openai_text_model: str = ""  # Overrides LLM_MODEL when both are set
    llm_model: str = "gpt-4-turbo-preview"
    openai_embedding_model: str = "text-embedding-ada-002"

    # === Corpus store (Supabase / PostgREST) ===
    supabase_url: str = ""
    supabase_service_key: str = ""

    # === Corpus store (local ChromaDB fallback) ===
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_panels_collection: str = "panels"
    chromadb_sbs_collection: str = "sbs_entries"

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"
    cors_origins: str = "*"  # Comma-separated list

    # === Client IP resolution ===
    # Comma-separated peer addresses allowed to set X-Forwarded-For and
    # X-Real-IP.  Empty = forwarded headers are ignored and the socket peer
    # is the client; "*" = trust any peer (only behind a proxy that
    # overwrites the headers).
    trusted_proxies: str = ""

    def get_text_model(self) -> str:
        """Return the chat model name, preferring OPENAI_TEXT_MODEL."""
        return self.openai_text_model or self.llm_model

    def supabase_configured(self) -> bool:
        """Return ``True`` when both the Supabase URL and service key are set."""
        return bool(self.supabase_url and self.supabase_service_key)

    def get_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def get_trusted_proxies(self) -> frozenset[str]:
        return frozenset(p.strip() for p in self.trusted_proxies.split(",") if p.strip())

    def missing_optional(self) -> list[str]:
        """Return env var names that are unset and degrade functionality."""
        missing: list[str] = []
        if not self.openai_api_key:
            missing.append("OPENAI_API_KEY")
        if not self.supabase_url:
            missing.append("SUPABASE_URL")
        if not self.supabase_service_key:
            missing.append("SUPABASE_SERVICE_KEY")
        return missing
