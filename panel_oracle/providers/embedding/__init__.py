"""Embedding provider implementations.

Embeddings turn a question or search query into a vector that is compared
against the pre-computed panel and SBS vectors in the corpus store.

    - OpenAIEmbeddingProvider: text-embedding-ada-002 (1536 dims), also
      works against OpenAI-compatible endpoints via OPENAI_BASE_URL.
"""

from panel_oracle.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider"]
