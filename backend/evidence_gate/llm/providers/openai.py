"""OpenAI provider implementation.

Implements the LLMProvider interface for OpenAI's Chat Completions API.
Extraction requests use ``response_format={"type": "json_object"}``.
"""

import os
import time
from typing import Any

from openai import AsyncOpenAI, APIConnectionError, APIStatusError, APITimeoutError

from ..errors import AuthenticationError, LLMTimeoutError, ProviderError
from ..models import LLMRequest, LLMResponse, Usage
from .base import LLMProvider, map_status_error, parse_retry_after


class OpenAIProvider(LLMProvider):
    """OpenAI Chat Completions API provider."""

    SUPPORTED_FEATURES = {"json_schema", "json_object", "system_message"}

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = 60.0,
        default_model: str = "gpt-4o",
    ):
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key. Defaults to OPENAI_API_KEY env var.
            timeout: Request timeout in seconds.
            default_model: Model used when the request leaves it empty.
        """
        self._api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self._timeout = timeout
        self._default_model = default_model
        self._client: AsyncOpenAI | None = None

    @property
    def name(self) -> str:
        return "openai"

    @property
    def api_key_configured(self) -> bool:
        return bool(self._api_key)

    @property
    def client(self) -> AsyncOpenAI:
        """Lazy-initialized OpenAI client."""
        if self._client is None:
            if not self._api_key:
                raise AuthenticationError(
                    "OpenAI API key not configured. Set OPENAI_API_KEY environment variable.",
                    provider=self.name,
                )
            self._client = AsyncOpenAI(api_key=self._api_key, timeout=self._timeout)
        return self._client

    def supports(self, feature: str) -> bool:
        return feature in self.SUPPORTED_FEATURES

    async def generate(self, request: LLMRequest) -> LLMResponse:
        start_time = time.perf_counter()
        payload = self._build_request(request)

        try:
            response = await self.client.chat.completions.create(**payload)
        except APITimeoutError as e:
            raise LLMTimeoutError(
                f"OpenAI request timed out after {self._timeout}s",
                provider=self.name,
            ) from e
        except APIConnectionError as e:
            raise ProviderError(
                f"Failed to connect to OpenAI: {e}",
                provider=self.name,
            ) from e
        except APIStatusError as e:
            raise map_status_error(
                self.name,
                e.status_code,
                str(getattr(e, "message", e)),
                request_id=getattr(e, "request_id", None),
                retry_after=parse_retry_after(e),
            ) from e

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        return self._parse_response(response, latency_ms)

    def _build_request(self, request: LLMRequest) -> dict[str, Any]:
        """Convert LLMRequest to OpenAI API format."""
        payload: dict[str, Any] = {
            "model": request.model or self._default_model,
            "messages": [{"role": m.role, "content": m.content} for m in request.messages],
            "temperature": request.temperature,
        }
        if request.max_tokens:
            payload["max_tokens"] = request.max_tokens

        fmt = request.response_format
        if fmt is not None and fmt.type == "json_schema":
            payload["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": "response", "schema": fmt.json_schema},
            }
        elif fmt is not None and fmt.type == "json_object":
            payload["response_format"] = {"type": "json_object"}

        return payload

    def _parse_response(self, response: Any, latency_ms: int) -> LLMResponse:
        """Convert OpenAI response to LLMResponse."""
        choice = response.choices[0]
        usage = response.usage
        return LLMResponse(
            text=choice.message.content,
            finish_reason=choice.finish_reason or "stop",
            usage=Usage(
                prompt_tokens=usage.prompt_tokens if usage else 0,
                completion_tokens=usage.completion_tokens if usage else 0,
                total_tokens=usage.total_tokens if usage else 0,
            ),
            model=response.model,
            provider=self.name,
            latency_ms=latency_ms,
            request_id=response.id,
        )
