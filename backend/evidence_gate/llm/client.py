"""High-level LLM client with retry and fallback logic.

Provides retry with exponential backoff and provider fallback. The
extraction orchestrator runs its own transport retry loop, so the caller it
builds uses a client with ``max_retries=0`` and only relies on fallback.
"""

import asyncio
import logging
import os
import random
import uuid

from .errors import (
    LLMError,
    NON_RETRYABLE_ERRORS,
    RateLimitError,
    RETRYABLE_ERRORS,
)
from .models import ChatMessage, LLMRequest, LLMResponse, ResponseFormat
from .providers.anthropic import AnthropicProvider
from .providers.base import LLMProvider
from .providers.openai import OpenAIProvider

logger = logging.getLogger(__name__)

DEFAULT_BASE_DELAY = 1.0
DEFAULT_MAX_DELAY = 30.0


def backoff_delay(
    attempt: int,
    error: Exception | None = None,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
) -> float:
    """Calculate backoff delay with exponential growth and jitter.

    Args:
        attempt: Current attempt number (0-indexed).
        error: The error that triggered the retry.
        base_delay: Delay for the first retry.
        max_delay: Upper bound for any delay.

    Returns:
        Delay in seconds.
    """
    if isinstance(error, RateLimitError) and error.retry_after:
        return min(error.retry_after, max_delay)

    # Exponential backoff: base * 2^attempt, ±25% jitter
    delay = base_delay * (2 ** attempt)
    jitter = delay * 0.25 * (2 * random.random() - 1)
    return max(0.0, min(delay + jitter, max_delay))


class LLMClient:
    """High-level LLM client with retry and fallback.

    Configuration (env vars):
    - LLM_DEFAULT_PROVIDER: Default provider (default: "openai")
    - LLM_TIMEOUT_SECONDS: Request timeout (default: 60)
    - LLM_MAX_RETRIES: Max retries per provider (default: 2)
    """

    DEFAULT_PROVIDER = "openai"
    DEFAULT_TIMEOUT = 60.0
    DEFAULT_MAX_RETRIES = 2

    def __init__(
        self,
        default_provider: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        openai_api_key: str | None = None,
        anthropic_api_key: str | None = None,
        providers: dict[str, LLMProvider] | None = None,
    ):
        """Initialize LLM client.

        Args:
            default_provider: Primary provider name. Defaults to LLM_DEFAULT_PROVIDER env var.
            timeout: Request timeout in seconds. Defaults to LLM_TIMEOUT_SECONDS env var.
            max_retries: Max retries per provider. Defaults to LLM_MAX_RETRIES env var.
            openai_api_key: OpenAI API key. Defaults to OPENAI_API_KEY env var.
            anthropic_api_key: Anthropic API key. Defaults to ANTHROPIC_API_KEY env var.
            providers: Explicit provider instances, keyed by name (tests).
        """
        self._default_provider = (
            default_provider
            or os.environ.get("LLM_DEFAULT_PROVIDER", self.DEFAULT_PROVIDER)
        )
        self._timeout = (
            timeout
            if timeout is not None
            else float(os.environ.get("LLM_TIMEOUT_SECONDS", self.DEFAULT_TIMEOUT))
        )
        self._max_retries = (
            max_retries
            if max_retries is not None
            else int(os.environ.get("LLM_MAX_RETRIES", self.DEFAULT_MAX_RETRIES))
        )

        self._providers: dict[str, LLMProvider] = providers or {
            "openai": OpenAIProvider(api_key=openai_api_key, timeout=self._timeout),
            "anthropic": AnthropicProvider(api_key=anthropic_api_key, timeout=self._timeout),
        }

        # Default provider first, then the rest in registration order
        self._fallback_order = [self._default_provider] + [
            name for name in self._providers if name != self._default_provider
        ]

    @property
    def max_retries(self) -> int:
        return self._max_retries

    def get_provider(self, name: str) -> LLMProvider:
        """Get a specific provider by name.

        Raises:
            ValueError: If provider name is not recognized.
        """
        if name not in self._providers:
            raise ValueError(f"Unknown provider: {name}. Available: {list(self._providers.keys())}")
        return self._providers[name]

    def is_provider_available(self, name: str) -> bool:
        """True if the provider is registered and has credentials."""
        provider = self._providers.get(name)
        return provider is not None and provider.api_key_configured

    async def generate(
        self,
        request: LLMRequest,
        provider: str | None = None,
        fallback: bool = True,
        correlation_id: str | None = None,
    ) -> LLMResponse:
        """Generate a completion with retry and fallback.

        Args:
            request: LLM request to send.
            provider: Specific provider to use. Defaults to the fallback order.
            fallback: Whether to fall back to other providers on transient failure.
            correlation_id: Optional ID for tracking across retry attempts.

        Returns:
            LLM response from the successful provider.

        Raises:
            LLMError: If all providers fail after retries.
        """
        correlation_id = correlation_id or str(uuid.uuid4())

        if provider:
            providers_to_try = [provider]
            if fallback:
                providers_to_try.extend(p for p in self._fallback_order if p != provider)
        else:
            providers_to_try = list(self._fallback_order)

        last_error: LLMError | None = None

        for provider_name in providers_to_try:
            if not self.is_provider_available(provider_name):
                logger.debug(
                    "Provider %s not available, skipping",
                    provider_name,
                    extra={"correlation_id": correlation_id},
                )
                continue

            try:
                return await self._generate_with_retry(request, provider_name, correlation_id)

            except RETRYABLE_ERRORS as e:
                last_error = e
                logger.warning(
                    "Provider %s failed with retryable error: %s. Trying fallback.",
                    provider_name,
                    str(e),
                    extra={
                        "correlation_id": correlation_id,
                        "provider": provider_name,
                        "error_type": type(e).__name__,
                    },
                )
                if not fallback:
                    raise

            except NON_RETRYABLE_ERRORS as e:
                logger.error(
                    "Provider %s failed with non-retryable error: %s",
                    provider_name,
                    str(e),
                    extra={
                        "correlation_id": correlation_id,
                        "provider": provider_name,
                        "error_type": type(e).__name__,
                    },
                )
                raise

        if last_error:
            raise last_error

        raise LLMError("No providers available", correlation_id=correlation_id)

    async def _generate_with_retry(
        self,
        request: LLMRequest,
        provider_name: str,
        correlation_id: str,
    ) -> LLMResponse:
        """Generate with retry logic for a single provider."""
        provider = self.get_provider(provider_name)
        last_error: LLMError | None = None

        for attempt in range(self._max_retries + 1):
            try:
                response = await provider.generate(request)
            except RETRYABLE_ERRORS as e:
                last_error = e
                e.correlation_id = correlation_id
                logger.warning(
                    "Retryable error on attempt %d/%d: %s",
                    attempt + 1,
                    self._max_retries + 1,
                    str(e),
                    extra={
                        "correlation_id": correlation_id,
                        "provider": provider_name,
                        "attempt": attempt + 1,
                        "error_type": type(e).__name__,
                    },
                )
                if attempt < self._max_retries:
                    await asyncio.sleep(backoff_delay(attempt, e))
                continue

            logger.info(
                "LLM request succeeded",
                extra={
                    "correlation_id": correlation_id,
                    "provider": response.provider,
                    "model": response.model,
                    "latency_ms": response.latency_ms,
                    "prompt_tokens": response.usage.prompt_tokens,
                    "completion_tokens": response.usage.completion_tokens,
                    "finish_reason": response.finish_reason,
                },
            )
            return response

        raise last_error

    async def complete_json(
        self,
        messages: list[ChatMessage],
        model: str,
        correlation_id: str | None = None,
        response_format: ResponseFormat | None = None,
    ) -> str:
        """Request a JSON completion and return its raw text.

        Uses the plain JSON object mode unless a response_format (for
        example a json_schema) is given. A response without text comes back
        as an empty string; judging the content is left to the caller.
        """
        request = LLMRequest(
            messages=messages,
            model=model,
            temperature=0.0,
            response_format=response_format or ResponseFormat(type="json_object"),
        )
        response = await self.generate(request, correlation_id=correlation_id)
        return response.text or ""

