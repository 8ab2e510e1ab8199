"""Corpus store adapters.

Two implementations of ICorpusStoreProvider:
    - SupabaseCorpusProvider: hosted Postgres + pgvector reached over
      PostgREST with httpx.  Used when SUPABASE_URL and
      SUPABASE_SERVICE_KEY are set.
    - ChromaDBCorpusProvider: local persistent ChromaDB with one
      collection per corpus.  Used otherwise.
"""

from panel_oracle.providers.corpus.chromadb_provider import ChromaDBCorpusProvider
from panel_oracle.providers.corpus.supabase_provider import SupabaseCorpusProvider

__all__ = ["ChromaDBCorpusProvider", "SupabaseCorpusProvider"]
