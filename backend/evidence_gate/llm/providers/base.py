"""Abstract base class for LLM providers."""

from abc import ABC, abstractmethod

from ..errors import (
    AuthenticationError,
    ContentFilterError,
    InvalidRequestError,
    LLMError,
    ModelNotFoundError,
    ProviderError,
    RateLimitError,
)
from ..models import LLMRequest, LLMResponse


class LLMProvider(ABC):
    """Base interface for LLM providers.

    A provider translates a vendor-neutral request into one API call and
    maps every vendor exception onto the LLMError hierarchy.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier: 'openai', 'anthropic', etc."""
        ...

    @property
    @abstractmethod
    def api_key_configured(self) -> bool:
        """True if the provider has credentials to make a call."""
        ...

    @abstractmethod
    async def generate(self, request: LLMRequest) -> LLMResponse:
        """Send a completion request and return the response.

        Raises:
            AuthenticationError: Invalid or missing API key.
            RateLimitError: Rate limit exceeded (retryable).
            LLMTimeoutError: Request timed out (retryable).
            InvalidRequestError: Malformed request (non-retryable).
            ContentFilterError: Response blocked by safety filters.
            ProviderError: Provider-side failure (retryable).
        """
        ...

    @abstractmethod
    def supports(self, feature: str) -> bool:
        """Check if provider supports a capability ('json_schema', 'json_object')."""
        ...


def parse_retry_after(error: object) -> float | None:
    """Read a numeric retry-after header from a vendor status error."""
    response = getattr(error, "response", None)
    if response is None:
        return None
    value = response.headers.get("retry-after")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def map_status_error(
    provider: str,
    status_code: int,
    message: str,
    request_id: str | None = None,
    retry_after: float | None = None,
) -> LLMError:
    """Map an HTTP status from a vendor SDK onto the LLMError hierarchy."""
    if status_code in (401, 403):
        return AuthenticationError(
            f"{provider} rejected credentials ({status_code}): {message}",
            provider=provider,
            request_id=request_id,
        )
    if status_code == 404:
        return ModelNotFoundError(
            f"Model not found: {message}", provider=provider, request_id=request_id
        )
    if status_code == 429:
        return RateLimitError(
            f"{provider} rate limit exceeded: {message}",
            retry_after=retry_after,
            provider=provider,
            request_id=request_id,
        )
    if status_code == 400:
        lowered = message.lower()
        if "content_filter" in lowered or "safety" in lowered:
            return ContentFilterError(
                f"Content blocked by {provider} safety filters: {message}",
                provider=provider,
                request_id=request_id,
            )
        return InvalidRequestError(
            f"Invalid request to {provider}: {message}",
            provider=provider,
            request_id=request_id,
        )
    if status_code >= 500:
        return ProviderError(
            f"{provider} server error ({status_code}): {message}",
            provider=provider,
            request_id=request_id,
        )
    return LLMError(
        f"{provider} error ({status_code}): {message}",
        provider=provider,
        request_id=request_id,
    )
