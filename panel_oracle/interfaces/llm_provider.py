"""Abstract base class for LLM service providers.

Defines the contract for the text-generation backend that writes grounded
answers.  Implementations wrap an OpenAI-compatible chat API or any other
completion service; call sites stay provider-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: OpenAILLMProvider
# Located in: panel_oracle/providers/llm/
class ILLMProvider(ABC):
    """Contract for LLM services used by the answer generator."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 1000,
    ) -> str:
        """Generate a text completion from the model.

        Parameters
        ----------
        system_prompt:
            The system/instruction message that sets the model's behaviour.
        user_prompt:
            The user-facing prompt containing the context and question.
        temperature:
            Sampling temperature (0.0 = deterministic, 1.0 = creative).
        max_tokens:
            Upper bound on the number of tokens in the response.

        Returns
        -------
        str
            The model's text response.

        Raises
        ------
        panel_oracle.utils.errors.GenerationFailedError
            If the API call fails or returns no content.
        """

    @abstractmethod
    def get_model_name(self) -> str:
        """Return the model identifier reported back to API clients."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (credentials present)."""
