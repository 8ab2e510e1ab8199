"""OpenAI-compatible embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
Supports both real OpenAI and OpenAI-compatible providers via a custom
``base_url``.  SDK retries are disabled: a failed embedding surfaces
immediately as :class:`UpstreamUnavailableError`.
"""

from __future__ import annotations

import openai
import structlog

from panel_oracle.config.settings import Settings
from panel_oracle.interfaces.embedding_provider import IEmbeddingProvider
from panel_oracle.utils.errors import UpstreamUnavailableError

logger = structlog.get_logger(logger_name=__name__)

_OPENAI_BATCH_LIMIT = 2048

# Known embedding model dimensions.
_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-ada-002": 1536,
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
}


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API.

    Uses ``text-embedding-ada-002`` (1536 dims) by default, the model the
    panel and SBS corpora are indexed with.  Every returned vector is
    checked for emptiness and dimensionality before it leaves this class.
    """

    def __init__(self, settings: Settings, dimension: int | None = None) -> None:
        self._settings = settings
        self._api_key = settings.openai_api_key

        client_kwargs: dict = {
            "api_key": self._api_key,
            "timeout": openai.Timeout(15.0, connect=5.0),
            "max_retries": 0,
        }
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        # The SDK rejects an empty key at construction time.
        self._client = openai.AsyncOpenAI(**client_kwargs) if self._api_key else None
        self._model = settings.openai_embedding_model or "text-embedding-ada-002"
        self._dimension = dimension or _MODEL_DIMENSIONS.get(self._model, 1536)
        self._provider_label = (
            "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"
        )

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Splits into batches of 2048 if the input exceeds the per-call limit.
        """
        if not texts:
            return []
        if self._client is None:
            raise UpstreamUnavailableError(
                message=f"{self._provider_label} is not configured",
                provider_name=self.get_provider_name(),
            )

        try:
            all_embeddings: list[list[float]] = []
            for start in range(0, len(texts), _OPENAI_BATCH_LIMIT):
                batch = texts[start : start + _OPENAI_BATCH_LIMIT]
                response = await self._client.embeddings.create(
                    input=batch,
                    model=self._model,
                )
                all_embeddings.extend(item.embedding for item in response.data)
                logger.info(
                    "openai_embedding_batch",
                    model=self._model,
                    provider=self._provider_label,
                    batch_size=len(batch),
                    tokens=response.usage.total_tokens if response.usage else None,
                )
        except openai.APITimeoutError as exc:
            raise UpstreamUnavailableError(
                message=f"{self._provider_label} timed out",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise UpstreamUnavailableError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if len(all_embeddings) != len(texts):
            raise UpstreamUnavailableError(
                message=(
                    f"{self._provider_label} returned {len(all_embeddings)} vectors "
                    f"for {len(texts)} inputs"
                ),
                provider_name=self.get_provider_name(),
            )
        for vector in all_embeddings:
            self._validate_vector(vector)
        return all_embeddings

    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string."""
        result = await self.embed([text])
        return result[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)

    def _validate_vector(self, vector: list[float]) -> None:
        if not vector:
            raise UpstreamUnavailableError(
                message=f"{self._provider_label} returned an empty vector",
                provider_name=self.get_provider_name(),
            )
        if len(vector) != self._dimension:
            raise UpstreamUnavailableError(
                message=(
                    f"{self._provider_label} returned {len(vector)} dimensions, "
                    f"expected {self._dimension}"
                ),
                provider_name=self.get_provider_name(),
            )
