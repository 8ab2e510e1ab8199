"""Public interface definitions for all external service providers.

Every external service the answer pipeline talks to is reached through
the abstract base classes in this package.  Concrete adapters implement
them and are injected at startup (see ``panel_oracle/main.py``), so tests
can hand in mocks without touching the network.

CONCRETE PROVIDER MAP:
    Interface               →  Concrete implementations (in panel_oracle/providers/)
    ─────────────────────────────────────────────────────────────────────
    IEmbeddingProvider      →  OpenAIEmbeddingProvider
    ILLMProvider            →  OpenAILLMProvider
    ICorpusStoreProvider    →  SupabaseCorpusProvider, ChromaDBCorpusProvider
"""

from panel_oracle.interfaces.corpus_store_provider import ICorpusStoreProvider
from panel_oracle.interfaces.embedding_provider import IEmbeddingProvider
from panel_oracle.interfaces.llm_provider import ILLMProvider

__all__ = [
    "ICorpusStoreProvider",
    "IEmbeddingProvider",
    "ILLMProvider",
]
