"""Grounded answer generation over an assembled context block.

The system prompt pins the model to the retrieved panels and SBS entries:
no outside knowledge, explicit chapter/page citations, an explicit
"not enough information" answer when the context falls short.  Sampling
runs at a low temperature with a hard output cap.
"""

from __future__ import annotations

import time

import structlog

from panel_oracle.interfaces.llm_provider import ILLMProvider
from panel_oracle.models.answer import GeneratedAnswer
from panel_oracle.services.context_assembler import ContextAssembler
from panel_oracle.utils.errors import GenerationFailedError, OracleError
from panel_oracle.utils.logging import get_logger

_SYSTEM_PROMPT = """\
You are an expert on the One Piece manga series by Eiichiro Oda. You have \
access to specific manga panels and SBS (author Q&A) entries to answer \
questions accurately.

IMPORTANT RULES:
1. Base your answer ONLY on the provided manga panels and SBS entries
2. Cite specific panels using the format: (Chapter X, Page Y)
3. If the context doesn't contain enough information, say so clearly
4. Don't make up information or speculate beyond what's shown
5. Be concise but thorough
6. Use markdown formatting for citations

When citing, use this format:
> "Quote from panel" - **Chapter X, Page Y**

If you reference an SBS entry, cite it as:
> (Source: SBS Volume X)"""


class AnswerGenerator:
    """Sends the grounded prompt to an :class:`ILLMProvider`.

    Parameters
    ----------
    llm_provider:
        Text-generation backend.
    assembler:
        Used to wrap the context block with the question.
    temperature, max_tokens:
        Sampling settings, from ``generation`` in config.yaml.
    """

    def __init__(
        self,
        llm_provider: ILLMProvider,
        assembler: ContextAssembler | None = None,
        temperature: float = 0.3,
        max_tokens: int = 1000,
    ) -> None:
        self._llm = llm_provider
        self._assembler = assembler or ContextAssembler()
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def system_prompt(self) -> str:
        return _SYSTEM_PROMPT

    async def generate(self, question: str, context_block: str) -> GeneratedAnswer:
        """Generate an answer for *question* from *context_block*.

        Raises
        ------
        GenerationFailedError
            If the provider fails or the answer is empty.  No placeholder
            answer is ever returned in place of an error.
        """
        user_prompt = self._assembler.build_user_prompt(question, context_block)
        start = time.perf_counter()
        try:
            text = await self._llm.complete(
                system_prompt=_SYSTEM_PROMPT,
                user_prompt=user_prompt,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except GenerationFailedError:
            raise
        except OracleError as exc:
            raise GenerationFailedError(
                message=exc.message,
                provider_name=exc.provider_name or self._llm.get_provider_name(),
            ) from exc
        except Exception as exc:
            raise GenerationFailedError(
                message=f"Text generation failed: {exc}",
                provider_name=self._llm.get_provider_name(),
            ) from exc

        if not text or not text.strip():
            raise GenerationFailedError(
                message="Text generation returned an empty answer",
                provider_name=self._llm.get_provider_name(),
            )

        model = self._llm.get_model_name()
        self._logger.info(
            "answer_generated",
            model=model,
            answer_length=len(text),
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return GeneratedAnswer(text=text.strip(), model=model)
