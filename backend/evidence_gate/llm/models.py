"""LLM data models.

Vendor-neutral request and response models. The extraction engine only
ever sends plain text messages and reads back plain text.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """A single message in the prompt."""

    role: Literal["system", "user", "assistant"]
    content: str


class ResponseFormat(BaseModel):
    """Structured output format configuration."""

    type: Literal["text", "json_object", "json_schema"]
    json_schema: dict[str, Any] | None = None


class LLMRequest(BaseModel):
    """Vendor-neutral LLM request."""

    messages: list[ChatMessage]
    model: str
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    max_tokens: int | None = None
    response_format: ResponseFormat | None = None


class Usage(BaseModel):
    """Token usage statistics."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class LLMResponse(BaseModel):
    """Vendor-neutral LLM response."""

    text: str | None
    finish_reason: str
    usage: Usage
    model: str
    provider: str
    latency_ms: int
    request_id: str | None = None
