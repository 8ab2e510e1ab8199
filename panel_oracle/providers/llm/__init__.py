"""LLM provider adapters.

    - OpenAILLMProvider: chat completions against OpenAI or any
      OpenAI-compatible API.

main.py builds one instance at startup and stores it on app.state.
"""

from panel_oracle.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider"]
