"""
Tests for the AI providers and the fallback manager.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from drcarcold.services.ai_providers import (
    AIProviderError,
    AIProviderManager,
    CohereProvider,
    DeepSeekProvider,
    GeminiProvider,
    clean_title,
)


def mock_response(status_code=200, payload=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    response.json.return_value = payload or {}
    return response


def patched_client(response=None, side_effect=None):
    mock_client = AsyncMock()
    mock_client.__aenter__.return_value = mock_client
    if side_effect is not None:
        mock_client.post.side_effect = side_effect
    else:
        mock_client.post.return_value = response
    return mock_client


def chat_payload(text):
    return {"choices": [{"message": {"content": text}}]}


class TestCleanTitle:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("標題：「冷媒價格上漲」", "冷媒價格上漲"),
            ("**R1234yf 新規**\n說明文字", "R1234yf 新規"),
            ("Title: AC Tips", "AC Tips"),
            ("", ""),
        ],
    )
    def test_clean_title(self, raw, expected):
        assert clean_title(raw) == expected


class TestProviders:
    @pytest.mark.asyncio
    async def test_openai_compatible_request(self):
        provider = DeepSeekProvider(api_key="sk-test", max_retries=1)
        mock_client = patched_client(mock_response(payload=chat_payload("  改寫後的內容  ")))

        with patch("drcarcold.services.ai_providers.httpx.AsyncClient", return_value=mock_client):
            text = await provider.generate("prompt")

        assert text == "改寫後的內容"
        kwargs = mock_client.post.call_args.kwargs
        assert kwargs["url"] == "https://api.deepseek.com/v1/chat/completions"
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
        assert kwargs["json"]["model"] == "deepseek-chat"
        assert kwargs["json"]["messages"][1] == {"role": "user", "content": "prompt"}

    @pytest.mark.asyncio
    async def test_quota_error_is_not_retried(self):
        provider = DeepSeekProvider(api_key="sk-test", max_retries=3, initial_delay=0)
        mock_client = patched_client(mock_response(429, text="rate limit reached"))

        with patch("drcarcold.services.ai_providers.httpx.AsyncClient", return_value=mock_client):
            with pytest.raises(AIProviderError) as exc_info:
                await provider.generate("prompt")

        assert exc_info.value.is_quota_error
        assert exc_info.value.status_code == 429
        assert mock_client.post.call_count == 1

    @pytest.mark.asyncio
    async def test_server_error_is_retried(self):
        provider = DeepSeekProvider(api_key="sk-test", max_retries=2, initial_delay=0)
        mock_client = patched_client(
            side_effect=[
                mock_response(500, text="Internal Server Error"),
                mock_response(payload=chat_payload("第二次成功")),
            ]
        )

        with patch("drcarcold.services.ai_providers.httpx.AsyncClient", return_value=mock_client):
            text = await provider.generate("prompt")

        assert text == "第二次成功"
        assert mock_client.post.call_count == 2

    @pytest.mark.asyncio
    async def test_timeout(self):
        provider = DeepSeekProvider(api_key="sk-test", max_retries=1, timeout=1.0)
        mock_client = patched_client(side_effect=httpx.TimeoutException("Connection timeout"))

        with patch("drcarcold.services.ai_providers.httpx.AsyncClient", return_value=mock_client):
            with pytest.raises(AIProviderError, match="timeout"):
                await provider.generate("prompt")

    @pytest.mark.asyncio
    async def test_empty_text_is_an_error(self):
        provider = DeepSeekProvider(api_key="sk-test", max_retries=1)
        mock_client = patched_client(mock_response(payload=chat_payload("   ")))

        with patch("drcarcold.services.ai_providers.httpx.AsyncClient", return_value=mock_client):
            with pytest.raises(AIProviderError, match="empty"):
                await provider.generate("prompt")

    def test_gemini_request_and_parse(self):
        provider = GeminiProvider(api_key="g-key")

        request = provider._build_request("prompt", 100)

        assert request["params"] == {"key": "g-key"}
        assert request["json"]["generationConfig"]["maxOutputTokens"] == 100
        assert provider._parse_text(
            {"candidates": [{"content": {"parts": [{"text": "內容"}]}}]}
        ) == "內容"

    def test_cohere_parse(self):
        provider = CohereProvider(api_key="c-key")

        assert provider._parse_text({"generations": [{"text": "內容"}]}) == "內容"


class TestAIProviderManager:
    def test_orders_configured_providers_by_priority(self):
        manager = AIProviderManager({"openai": "sk-1", "gemini": "g-1", "cohere": " "})

        assert [p.name for p in manager.providers] == ["gemini", "openai"]
        assert manager.has_providers

    def test_no_keys(self):
        assert not AIProviderManager({}).has_providers

    @pytest.mark.django_db
    def test_from_settings(self):
        from drcarcold.services.settings_store import SettingsStore

        store = SettingsStore()
        store.set("groq_api_key", "gsk-1")

        manager = AIProviderManager.from_settings(store)

        assert [p.name for p in manager.providers] == ["groq"]

    @pytest.mark.asyncio
    async def test_falls_back_after_quota_error(self):
        manager = AIProviderManager({"deepseek": "sk-1", "openai": "sk-2"})
        deepseek, openai = manager.providers
        deepseek.generate = AsyncMock(side_effect=AIProviderError("quota", 429, is_quota_error=True))
        openai.generate = AsyncMock(return_value="備援產生的文字")

        with patch("drcarcold.services.ai_providers.capture_alert") as mock_alert:
            result = await manager.generate_text("prompt")

        assert result.success
        assert result.provider == "openai"
        assert result.attempts == [
            {"provider": "deepseek", "success": False},
            {"provider": "openai", "success": True},
        ]
        assert manager.is_available("deepseek") is False
        mock_alert.assert_called_once()

    @pytest.mark.asyncio
    async def test_provider_disabled_after_max_failures(self):
        manager = AIProviderManager({"openai": "sk-1"})
        manager.providers[0].generate = AsyncMock(side_effect=AIProviderError("boom", 500))

        first = await manager.generate_text("prompt")
        await manager.generate_text("prompt")
        third = await manager.generate_text("prompt")

        assert first.error == "All AI providers failed"
        assert manager.is_available("openai") is False
        assert third.error == "No AI provider available"
        assert manager.providers[0].generate.call_count == 2

    @pytest.mark.asyncio
    async def test_rewrite_keeps_title_when_title_call_fails(self):
        manager = AIProviderManager({"groq": "gsk-1"})
        provider = manager.providers[0]
        provider.rewrite_article = AsyncMock(return_value="改寫後內文")
        provider.rewrite_title = AsyncMock(side_effect=AIProviderError("boom"))

        result = await manager.rewrite_article("原始標題", "原始內容", ["冷媒"])

        assert result.success
        assert result.title == "原始標題"
        assert result.content == "改寫後內文"
        assert result.attempts[-1] == {"provider": "groq", "success": False}

    def test_success_resets_failure_count(self):
        manager = AIProviderManager({"deepseek": "sk-1"})
        manager.record_failure("deepseek")
        manager.record_failure("deepseek")

        manager.record_success("deepseek")

        assert manager.get_status()[0]["failures"] == 0
        assert manager.get_status()[0]["available"] is True
