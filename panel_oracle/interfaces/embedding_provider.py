"""Abstract base class for text-embedding service providers.

Defines the contract for turning a question or search query into a
fixed-length vector.  The adapter pattern keeps the pipeline independent
of the embedding backend; the default implementation wraps the
OpenAI-compatible embeddings API.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations:
#   OpenAIEmbeddingProvider: text-embedding-ada-002 (1536 dims)
# Located in: panel_oracle/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the retrieval stage.

    The vectors produced here are compared against the vectors stored in
    the corpus store, so :meth:`get_dimension` must match the dimension
    the corpus was indexed with.
    """

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.  Each
            inner list has length equal to :meth:`get_dimension`.

        Raises
        ------
        panel_oracle.utils.errors.UpstreamUnavailableError
            If the API call fails or returns malformed vectors.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string.

        This is the call the answer pipeline and semantic search make:
        one query in, one vector out.  No caching happens at this layer.

        Parameters
        ----------
        text:
            The text string to embed.

        Returns
        -------
        list[float]
            The embedding vector with length equal to :meth:`get_dimension`.

        Raises
        ------
        panel_oracle.utils.errors.UpstreamUnavailableError
            If the service is unreachable or the vector is empty or has
            the wrong dimensionality.
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        Example values: ``1536`` (OpenAI ``text-embedding-ada-002``).
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured.

        Implementations check that credentials are present without making
        a network call.
        """
