"""Tests for the Claude completion client."""

from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from roof_insights.clients.claude import ClaudeClient, CompletionResponse


def _mock_message(*blocks, stop_reason="end_turn"):
    response = MagicMock()
    response.content = list(blocks)
    response.stop_reason = stop_reason
    response.usage = MagicMock(input_tokens=10, output_tokens=5)
    return response


class TestClaudeClient:
    """Tests for ClaudeClient."""

    def test_client_initialization_with_defaults(self):
        """Test client initializes with settings defaults."""
        client = ClaudeClient()

        assert client._api_key == "sk-ant-test"
        assert client.model == "claude-3-5-haiku-20241022"
        assert client._max_tokens == 1024
        assert client._timeout == 20.0

    def test_client_initialization_with_custom_params(self):
        """Test client accepts custom parameters."""
        client = ClaudeClient(
            api_key="test-key",
            model="claude-3-opus-20240229",
            max_tokens=2048,
            timeout=5.0,
        )

        assert client._api_key == "test-key"
        assert client.model == "claude-3-opus-20240229"
        assert client._max_tokens == 2048
        assert client._timeout == 5.0

    def test_sdk_retries_disabled(self):
        client = ClaudeClient()

        assert client._client.max_retries == 0

    def test_requires_api_key(self, monkeypatch):
        from roof_insights.config.settings import get_settings

        monkeypatch.setenv("ANTHROPIC_API_KEY", "")
        get_settings.cache_clear()
        try:
            with pytest.raises(ValueError):
                ClaudeClient()
        finally:
            get_settings.cache_clear()

    def test_parse_text_response(self):
        """Test parsing text-only response."""
        client = ClaudeClient()

        parsed = client._parse_response(
            _mock_message(MagicMock(type="text", text="  Hello there \n"))
        )

        assert parsed.content == "Hello there"
        assert parsed.stop_reason == "end_turn"
        assert parsed.usage == {"input_tokens": 10, "output_tokens": 5}

    def test_parse_joins_text_blocks(self):
        client = ClaudeClient()

        parsed = client._parse_response(
            _mock_message(
                MagicMock(type="text", text='{"summary": '),
                MagicMock(type="thinking", text="ignored"),
                MagicMock(type="text", text='"ok"}'),
                stop_reason=None,
            )
        )

        assert parsed.content == '{"summary": "ok"}'
        assert parsed.stop_reason == "end_turn"

    @pytest.mark.asyncio
    async def test_complete_sends_system_and_user_prompt(self):
        client = ClaudeClient(api_key="test-key", max_tokens=512)
        create = AsyncMock(return_value=_mock_message(MagicMock(type="text", text="{}")))
        client._client = MagicMock()
        client._client.messages.create = create

        result = await client.complete("system text", "user text")

        assert result.content == "{}"
        kwargs = create.await_args.kwargs
        assert kwargs["system"] == "system text"
        assert kwargs["messages"] == [{"role": "user", "content": "user text"}]
        assert kwargs["max_tokens"] == 512

    @pytest.mark.asyncio
    async def test_complete_reraises_api_errors(self):
        client = ClaudeClient(api_key="test-key")
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        client._client = MagicMock()
        client._client.messages.create = AsyncMock(
            side_effect=anthropic.APIConnectionError(request=request)
        )

        with pytest.raises(anthropic.APIError):
            await client.complete("system", "user")


class TestCompletionResponse:
    """Tests for CompletionResponse dataclass."""

    def test_response_creation(self):
        response = CompletionResponse(
            content="Hello",
            stop_reason="end_turn",
            usage={"input_tokens": 10, "output_tokens": 5},
        )

        assert response.content == "Hello"
        assert response.usage["input_tokens"] == 10

    def test_usage_defaults_empty(self):
        assert CompletionResponse(content="", stop_reason="end_turn").usage == {}
