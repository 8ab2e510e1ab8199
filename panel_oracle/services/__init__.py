"""Pipeline stages and supporting services.

- **rate_limiter** -- per-identifier fixed-window request counter.
- **retrieval_service** -- embedding + concurrent vector search, result shaping.
- **context_assembler** -- renders retrieved records into the prompt block.
- **answer_generator** -- grounded completion against the LLM provider.
- **citation_service** -- citations derived from the retrieved records.
- **search_service** -- semantic / full-text search endpoint backend.
"""
