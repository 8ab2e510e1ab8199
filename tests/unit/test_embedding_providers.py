"""Unit tests for the OpenAI embedding provider adapter."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from panel_oracle.config.settings import Settings
from panel_oracle.utils.errors import UpstreamUnavailableError


def _settings(**overrides) -> Settings:
    defaults = {
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "openai_embedding_model": "text-embedding-ada-002",
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _response(vectors: list[list[float]]) -> MagicMock:
    response = MagicMock()
    response.data = [MagicMock(embedding=v) for v in vectors]
    response.usage = MagicMock(total_tokens=12)
    return response


class TestOpenAIEmbeddingProvider:
    @pytest.fixture()
    def settings(self) -> Settings:
        return _settings()

    def test_get_provider_name(self, settings: Settings) -> None:
        from panel_oracle.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
        assert OpenAIEmbeddingProvider(settings).get_provider_name() == "openai_embedding"

    def test_provider_name_with_base_url(self) -> None:
        from panel_oracle.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
        provider = OpenAIEmbeddingProvider(_settings(openai_base_url="https://api.together.xyz/v1"))
        assert provider.get_provider_name() == "openai-compatible_embedding"

    def test_is_available_with_key(self, settings: Settings) -> None:
        from panel_oracle.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
        assert OpenAIEmbeddingProvider(settings).is_available() is True

    def test_is_available_without_key(self) -> None:
        from panel_oracle.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
        assert OpenAIEmbeddingProvider(_settings(openai_api_key="")).is_available() is False

    def test_no_client_without_key(self) -> None:
        from panel_oracle.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        with patch(
            "panel_oracle.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
        ) as mock_cls:
            OpenAIEmbeddingProvider(_settings(openai_api_key=""))
        mock_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_embed_without_key_unavailable(self) -> None:
        from panel_oracle.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        provider = OpenAIEmbeddingProvider(_settings(openai_api_key=""))
        with pytest.raises(UpstreamUnavailableError, match="not configured"):
            await provider.embed_single("Gear Second")

    def test_default_dimension(self, settings: Settings) -> None:
        from panel_oracle.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
        assert OpenAIEmbeddingProvider(settings).get_dimension() == 1536

    def test_client_has_no_retries(self, settings: Settings) -> None:
        from panel_oracle.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        with patch(
            "panel_oracle.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
        ) as mock_cls:
            OpenAIEmbeddingProvider(settings)
        assert mock_cls.call_args.kwargs["max_retries"] == 0
        assert mock_cls.call_args.kwargs["api_key"] == "sk-test"

    @pytest.mark.asyncio
    async def test_embed_success(self, settings: Settings) -> None:
        from panel_oracle.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            return_value=_response([[0.1] * 1536, [0.2] * 1536])
        )

        with patch(
            "panel_oracle.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAIEmbeddingProvider(settings)
            result = await provider.embed(["hello", "world"])

        assert len(result) == 2
        assert result[1][0] == 0.2
        kwargs = mock_client.embeddings.create.call_args.kwargs
        assert kwargs["model"] == "text-embedding-ada-002"
        assert kwargs["input"] == ["hello", "world"]

    @pytest.mark.asyncio
    async def test_embed_empty_input(self, settings: Settings) -> None:
        from panel_oracle.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        mock_client = AsyncMock()
        with patch(
            "panel_oracle.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAIEmbeddingProvider(settings)
            assert await provider.embed([]) == []
        mock_client.embeddings.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_embed_single(self, settings: Settings) -> None:
        from panel_oracle.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_response([[0.5] * 1536]))

        with patch(
            "panel_oracle.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAIEmbeddingProvider(settings)
            vector = await provider.embed_single("Gear Second")

        assert len(vector) == 1536

    @pytest.mark.asyncio
    async def test_wrong_dimension_rejected(self, settings: Settings) -> None:
        from panel_oracle.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_response([[0.1] * 768]))

        with patch(
            "panel_oracle.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAIEmbeddingProvider(settings)
            with pytest.raises(UpstreamUnavailableError, match="768 dimensions"):
                await provider.embed_single("q")

    @pytest.mark.asyncio
    async def test_empty_vector_rejected(self, settings: Settings) -> None:
        from panel_oracle.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_response([[]]))

        with patch(
            "panel_oracle.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAIEmbeddingProvider(settings)
            with pytest.raises(UpstreamUnavailableError, match="empty vector"):
                await provider.embed_single("q")

    @pytest.mark.asyncio
    async def test_count_mismatch_rejected(self, settings: Settings) -> None:
        from panel_oracle.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_response([[0.1] * 1536]))

        with patch(
            "panel_oracle.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAIEmbeddingProvider(settings)
            with pytest.raises(UpstreamUnavailableError, match="1 vectors for 2 inputs"):
                await provider.embed(["a", "b"])

    @pytest.mark.asyncio
    async def test_api_error_wrapped(self, settings: Settings) -> None:
        from panel_oracle.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
        import openai

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            side_effect=openai.APIError(
                message="Service unavailable",
                request=MagicMock(),
                body=None,
            )
        )

        with patch(
            "panel_oracle.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAIEmbeddingProvider(settings)
            with pytest.raises(UpstreamUnavailableError) as exc_info:
                await provider.embed_single("q")
        assert exc_info.value.provider_name == "openai_embedding"
