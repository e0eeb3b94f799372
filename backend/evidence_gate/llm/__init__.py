"""LLM provider abstraction layer.

Vendor-neutral access to OpenAI and Anthropic with provider fallback. The
extraction engine treats every response as untrusted text.
"""

from .client import LLMClient, backoff_delay
from .errors import (
    AuthenticationError,
    ContentFilterError,
    InvalidRequestError,
    LLMError,
    LLMTimeoutError,
    ModelNotFoundError,
    NON_RETRYABLE_ERRORS,
    ProviderError,
    RateLimitError,
    RETRYABLE_ERRORS,
)
from .models import ChatMessage, LLMRequest, LLMResponse, ResponseFormat, Usage

__all__ = [
    "LLMClient",
    "backoff_delay",
    "LLMRequest",
    "LLMResponse",
    "ChatMessage",
    "ResponseFormat",
    "Usage",
    "LLMError",
    "AuthenticationError",
    "RateLimitError",
    "LLMTimeoutError",
    "InvalidRequestError",
    "ContentFilterError",
    "ModelNotFoundError",
    "ProviderError",
    "RETRYABLE_ERRORS",
    "NON_RETRYABLE_ERRORS",
]
