"""Anthropic provider implementation.

Implements the LLMProvider interface for Anthropic's Messages API.
Anthropic has no JSON response mode, so JSON requests append a JSON-only
instruction to the system prompt; schema requests go through a forced
tool call whose input is returned as the response text.
"""

import json
import os
import time
from typing import Any

from anthropic import (
    AsyncAnthropic,
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
)

from ..errors import AuthenticationError, LLMTimeoutError, ProviderError
from ..models import LLMRequest, LLMResponse, Usage
from .base import LLMProvider, map_status_error, parse_retry_after

JSON_ONLY_INSTRUCTION = "Respond with a single JSON object and nothing else."
SCHEMA_TOOL_NAME = "respond_with_json"

FINISH_REASONS = {
    "end_turn": "stop",
    "max_tokens": "length",
    "stop_sequence": "stop",
    "tool_use": "stop",
}


class AnthropicProvider(LLMProvider):
    """Anthropic Messages API provider."""

    SUPPORTED_FEATURES = {"json_schema", "json_object", "system_message"}

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = 60.0,
        default_model: str = "claude-sonnet-4-5-20250929",
    ):
        """Initialize Anthropic provider.

        Args:
            api_key: Anthropic API key. Defaults to ANTHROPIC_API_KEY env var.
            timeout: Request timeout in seconds.
            default_model: Model used when the request leaves it empty.
        """
        self._api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self._timeout = timeout
        self._default_model = default_model
        self._client: AsyncAnthropic | None = None

    @property
    def name(self) -> str:
        return "anthropic"

    @property
    def api_key_configured(self) -> bool:
        return bool(self._api_key)

    @property
    def client(self) -> AsyncAnthropic:
        """Lazy-initialized Anthropic client."""
        if self._client is None:
            if not self._api_key:
                raise AuthenticationError(
                    "Anthropic API key not configured. Set ANTHROPIC_API_KEY environment variable.",
                    provider=self.name,
                )
            self._client = AsyncAnthropic(api_key=self._api_key, timeout=self._timeout)
        return self._client

    def supports(self, feature: str) -> bool:
        return feature in self.SUPPORTED_FEATURES

    async def generate(self, request: LLMRequest) -> LLMResponse:
        start_time = time.perf_counter()
        payload = self._build_request(request)

        try:
            response = await self.client.messages.create(**payload)
        except APITimeoutError as e:
            raise LLMTimeoutError(
                f"Anthropic request timed out after {self._timeout}s",
                provider=self.name,
            ) from e
        except APIConnectionError as e:
            raise ProviderError(
                f"Failed to connect to Anthropic: {e}",
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
        """Convert LLMRequest to Anthropic API format."""
        # Anthropic takes system as a top-level parameter
        system_parts = [m.content for m in request.messages if m.role == "system"]
        messages = [
            {"role": m.role, "content": m.content}
            for m in request.messages
            if m.role != "system"
        ]

        payload: dict[str, Any] = {
            "model": request.model or self._default_model,
            "messages": messages,
            "max_tokens": request.max_tokens or 4096,
            # Anthropic caps temperature at 1.0
            "temperature": min(request.temperature, 1.0),
        }

        fmt = request.response_format
        if fmt is not None and fmt.type == "json_schema":
            payload["tools"] = [{
                "name": SCHEMA_TOOL_NAME,
                "description": "Respond with structured JSON data matching the required schema.",
                "input_schema": fmt.json_schema,
            }]
            payload["tool_choice"] = {"type": "tool", "name": SCHEMA_TOOL_NAME}
        elif fmt is not None and fmt.type == "json_object":
            system_parts.append(JSON_ONLY_INSTRUCTION)

        if system_parts:
            payload["system"] = "\n\n".join(system_parts)
        return payload

    def _parse_response(self, response: Any, latency_ms: int) -> LLMResponse:
        """Convert Anthropic response to LLMResponse."""
        text_parts = []
        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use" and block.name == SCHEMA_TOOL_NAME:
                text_parts.append(json.dumps(block.input, ensure_ascii=False))

        return LLMResponse(
            text="\n".join(text_parts) if text_parts else None,
            finish_reason=FINISH_REASONS.get(response.stop_reason, response.stop_reason or "stop"),
            usage=Usage(
                prompt_tokens=response.usage.input_tokens,
                completion_tokens=response.usage.output_tokens,
                total_tokens=response.usage.input_tokens + response.usage.output_tokens,
            ),
            model=response.model,
            provider=self.name,
            latency_ms=latency_ms,
            request_id=response.id,
        )
