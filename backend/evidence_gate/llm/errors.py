"""LLM error hierarchy.

Custom exceptions for model calls with provider context. The extraction
orchestrator uses the retryable/non-retryable split to decide whether a
failed call is resent with the same prompt. Content problems in a response
are never raised as errors; they go through validation and repair.
"""


class LLMError(Exception):
    """Base exception for LLM operations."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        request_id: str | None = None,
        correlation_id: str | None = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.request_id = request_id
        self.correlation_id = correlation_id

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.provider:
            parts.append(f"provider={self.provider}")
        if self.request_id:
            parts.append(f"request_id={self.request_id}")
        return " ".join(parts)


class AuthenticationError(LLMError):
    """401/403 - Invalid or missing API key. Not retried."""


class RateLimitError(LLMError):
    """429 - Rate limit exceeded.

    Transient. ``retry_after`` (seconds) caps the next backoff when the
    provider sends it.
    """

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        provider: str | None = None,
        request_id: str | None = None,
        correlation_id: str | None = None,
    ):
        super().__init__(message, provider, request_id, correlation_id)
        self.retry_after = retry_after


class LLMTimeoutError(LLMError):
    """The call exceeded its timeout. Transient."""


class InvalidRequestError(LLMError):
    """400 - Malformed request (bad schema, too many tokens). Not retried."""


class ContentFilterError(LLMError):
    """Blocked by the provider's safety system. Not retried."""


class ProviderError(LLMError):
    """500/502/503 or connection failure. Transient."""


class ModelNotFoundError(LLMError):
    """Model identifier not recognized. Not retried."""


# Error classification for transport retry
RETRYABLE_ERRORS = (RateLimitError, LLMTimeoutError, ProviderError)
NON_RETRYABLE_ERRORS = (AuthenticationError, InvalidRequestError, ContentFilterError, ModelNotFoundError)
