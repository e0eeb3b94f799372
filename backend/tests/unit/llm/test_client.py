"""Unit tests for LLM client with retry and fallback logic.

Tests cover:
- Configuration from environment variables
- Retry with backoff for a single provider
- Provider fallback (OpenAI -> Anthropic)
- Non-retryable error propagation
- JSON completion helper
"""

import os
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from evidence_gate.llm.client import LLMClient, backoff_delay
from evidence_gate.llm.errors import (
    AuthenticationError,
    LLMError,
    LLMTimeoutError,
    ProviderError,
    RateLimitError,
)
from evidence_gate.llm.models import ChatMessage, LLMRequest, LLMResponse, ResponseFormat, Usage


def create_mock_response(text: str | None = "Test response", provider: str = "openai") -> LLMResponse:
    """Create a mock LLMResponse for testing."""
    return LLMResponse(
        text=text,
        finish_reason="stop",
        usage=Usage(prompt_tokens=10, completion_tokens=5, total_tokens=15),
        model="test-model",
        provider=provider,
        latency_ms=100,
    )


def mock_provider(name: str, **generate_kwargs) -> MagicMock:
    provider = MagicMock()
    provider.name = name
    provider.api_key_configured = True
    provider.generate = AsyncMock(**generate_kwargs)
    return provider


def sample_request() -> LLMRequest:
    return LLMRequest(messages=[ChatMessage(role="user", content="Hi")], model="gpt-4o")


class TestLLMClientInit:
    """Tests for LLM client initialization."""

    def test_custom_configuration(self):
        """Test custom configuration values."""
        client = LLMClient(default_provider="anthropic", timeout=120.0, max_retries=5)
        assert client._default_provider == "anthropic"
        assert client._timeout == 120.0
        assert client.max_retries == 5

    def test_environment_configuration(self):
        """Test configuration from environment variables."""
        with patch.dict(os.environ, {
            "LLM_DEFAULT_PROVIDER": "anthropic",
            "LLM_TIMEOUT_SECONDS": "90",
            "LLM_MAX_RETRIES": "3",
        }):
            client = LLMClient()
            assert client._default_provider == "anthropic"
            assert client._timeout == 90.0
            assert client.max_retries == 3

    def test_default_provider_first_in_fallback(self):
        """The default provider leads the fallback order."""
        client = LLMClient(default_provider="anthropic")
        assert client._fallback_order == ["anthropic", "openai"]

    def test_unknown_provider(self):
        """Test getting an unknown provider raises error."""
        client = LLMClient()
        with pytest.raises(ValueError) as exc_info:
            client.get_provider("unknown")
        assert "Unknown provider" in str(exc_info.value)

    def test_availability_follows_api_key(self):
        """A provider without a key is unavailable."""
        with patch.dict(os.environ, {}, clear=True):
            client = LLMClient(openai_api_key="test-key")
            assert client.is_provider_available("openai") is True
            assert client.is_provider_available("anthropic") is False
            assert client.is_provider_available("unknown") is False


class TestLLMClientRetry:
    """Tests for retry logic."""

    @pytest.mark.asyncio
    async def test_successful_first_attempt(self):
        """Test successful request on first attempt."""
        openai = mock_provider("openai", return_value=create_mock_response())
        client = LLMClient(providers={"openai": openai})

        response = await client.generate(sample_request(), provider="openai", fallback=False)

        assert response.text == "Test response"
        assert openai.generate.call_count == 1

    @pytest.mark.asyncio
    async def test_retry_on_rate_limit(self):
        """Test retry on rate limit error."""
        openai = mock_provider(
            "openai",
            side_effect=[RateLimitError("Rate limited", retry_after=0.1), create_mock_response()],
        )
        client = LLMClient(max_retries=2, providers={"openai": openai})

        with patch("asyncio.sleep", new_callable=AsyncMock) as sleep:
            response = await client.generate(sample_request(), provider="openai", fallback=False)

        assert response.text == "Test response"
        assert openai.generate.call_count == 2
        sleep.assert_awaited_once_with(0.1)

    @pytest.mark.asyncio
    async def test_max_retries_exhausted(self):
        """Test that error is raised after max retries exhausted."""
        openai = mock_provider("openai", side_effect=LLMTimeoutError("Timeout"))
        client = LLMClient(max_retries=2, providers={"openai": openai})

        with patch("asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(LLMTimeoutError):
                await client.generate(sample_request(), provider="openai", fallback=False)

        assert openai.generate.call_count == 3

    @pytest.mark.asyncio
    async def test_zero_retries(self):
        """With max_retries=0 each provider is tried once."""
        openai = mock_provider("openai", side_effect=ProviderError("down"))
        client = LLMClient(max_retries=0, providers={"openai": openai})

        with pytest.raises(ProviderError):
            await client.generate(sample_request(), fallback=False)
        assert openai.generate.call_count == 1

    @pytest.mark.asyncio
    async def test_non_retryable_not_retried(self):
        """Authentication errors pass through immediately."""
        openai = mock_provider("openai", side_effect=AuthenticationError("bad key"))
        anthropic = mock_provider("anthropic", return_value=create_mock_response(provider="anthropic"))
        client = LLMClient(max_retries=2, providers={"openai": openai, "anthropic": anthropic})

        with pytest.raises(AuthenticationError):
            await client.generate(sample_request())

        assert openai.generate.call_count == 1
        assert anthropic.generate.call_count == 0


class TestLLMClientFallback:
    """Tests for provider fallback logic."""

    @pytest.mark.asyncio
    async def test_fallback_on_provider_error(self):
        """Fallback to Anthropic when OpenAI keeps failing."""
        openai = mock_provider("openai", side_effect=ProviderError("Server error"))
        anthropic = mock_provider(
            "anthropic", return_value=create_mock_response(text="Anthropic response", provider="anthropic")
        )
        client = LLMClient(max_retries=1, providers={"openai": openai, "anthropic": anthropic})

        with patch("asyncio.sleep", new_callable=AsyncMock):
            response = await client.generate(sample_request())

        assert response.provider == "anthropic"
        assert openai.generate.call_count == 2
        assert anthropic.generate.call_count == 1

    @pytest.mark.asyncio
    async def test_unavailable_provider_skipped(self):
        """Providers without credentials are skipped."""
        openai = mock_provider("openai")
        openai.api_key_configured = False
        anthropic = mock_provider("anthropic", return_value=create_mock_response(provider="anthropic"))
        client = LLMClient(providers={"openai": openai, "anthropic": anthropic})

        response = await client.generate(sample_request())

        assert response.provider == "anthropic"
        openai.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_providers_available(self):
        """No configured provider raises LLMError."""
        openai = mock_provider("openai")
        openai.api_key_configured = False
        client = LLMClient(providers={"openai": openai})

        with pytest.raises(LLMError) as exc_info:
            await client.generate(sample_request())
        assert "No providers available" in str(exc_info.value)


class TestCompleteJson:
    """Tests for the JSON completion helper."""

    @pytest.mark.asyncio
    async def test_requests_json_object(self):
        """The request asks for a JSON object at temperature 0."""
        openai = mock_provider("openai", return_value=create_mock_response(text='{"items": []}'))
        client = LLMClient(providers={"openai": openai})

        text = await client.complete_json([ChatMessage(role="user", content="Hi")], model="gpt-4o")

        assert text == '{"items": []}'
        request = openai.generate.call_args.args[0]
        assert request.response_format.type == "json_object"
        assert request.temperature == 0.0
        assert request.model == "gpt-4o"

    @pytest.mark.asyncio
    async def test_explicit_schema_format(self):
        """A json_schema response format is passed through unchanged."""
        openai = mock_provider("openai", return_value=create_mock_response(text='{"items": []}'))
        client = LLMClient(providers={"openai": openai})
        schema_format = ResponseFormat(type="json_schema", json_schema={"type": "object"})

        await client.complete_json([], model="gpt-4o", response_format=schema_format)

        request = openai.generate.call_args.args[0]
        assert request.response_format.type == "json_schema"
        assert request.response_format.json_schema == {"type": "object"}
        assert request.temperature == 0.0

    @pytest.mark.asyncio
    async def test_missing_text_is_empty_string(self):
        """A response without text comes back as an empty string."""
        openai = mock_provider("openai", return_value=create_mock_response(text=None))
        client = LLMClient(providers={"openai": openai})

        assert await client.complete_json([], model="gpt-4o") == ""


class TestBackoffDelay:
    """Tests for backoff calculation."""

    def test_exponential_growth_with_jitter(self):
        """Delay doubles per attempt within ±25% jitter."""
        for attempt in range(4):
            delay = backoff_delay(attempt, base_delay=1.0, max_delay=100.0)
            expected = 2 ** attempt
            assert expected * 0.75 <= delay <= expected * 1.25

    def test_capped(self):
        """Delay never exceeds max_delay."""
        assert backoff_delay(10, base_delay=1.0, max_delay=5.0) <= 5.0

    def test_retry_after_honored(self):
        """A rate limit retry-after wins, capped at max_delay."""
        assert backoff_delay(0, RateLimitError("x", retry_after=3.0), max_delay=30.0) == 3.0
        assert backoff_delay(0, RateLimitError("x", retry_after=300.0), max_delay=30.0) == 30.0

    def test_zero_base(self):
        """A zero base delay gives no wait."""
        assert backoff_delay(3, base_delay=0.0) == 0.0
