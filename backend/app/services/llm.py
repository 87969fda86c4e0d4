"""Async LLM provider interface and the OpenAI implementation.

The openai SDK client used here is sync, so calls run in a worker thread
via asyncio.to_thread, with retry on transient errors and an overall
timeout.
"""
import asyncio
import logging
import random
from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple, Type

logger = logging.getLogger(__name__)


class LLMTimeoutError(TimeoutError):
    """Raised when an LLM call exceeds the configured timeout."""
    pass


DEFAULT_TIMEOUT = 60.0


class BaseLLMProvider(ABC):
    """Abstract base class for async chat providers."""

    # Override in subclasses with provider-specific retryable exception types
    RETRYABLE_EXCEPTIONS: Tuple[Type[BaseException], ...] = (ConnectionError, TimeoutError)

    def __init__(self, api_key: str, temperature: float = 1.0, timeout: float = DEFAULT_TIMEOUT):
        self.api_key = api_key
        self.temperature = temperature
        self.timeout = timeout

    async def _with_retry(self, sync_fn, *args, max_retries: int = 3):
        """Run a sync SDK call in a thread, backing off on transient errors.

        Callers wrap the returned coroutine in asyncio.wait_for so the
        timeout covers every attempt.
        """
        for attempt in range(max_retries + 1):
            try:
                return await asyncio.to_thread(sync_fn, *args)
            except self.RETRYABLE_EXCEPTIONS as e:
                if attempt == max_retries:
                    raise
                delay = (2 ** (attempt + 1)) + random.uniform(0, 1)
                logger.warning(
                    "LLM call failed (attempt %d/%d), retrying in %.1fs: %s",
                    attempt + 1, max_retries + 1, delay, e,
                )
                await asyncio.sleep(delay)

    @abstractmethod
    async def chat(
        self, model_name: str, messages: Sequence[dict], system_prompt: Optional[str] = None,
    ) -> str:
        """Complete a conversation. ``messages`` are ``{"role", "content"}`` dicts."""
        pass


class OpenAIProvider(BaseLLMProvider):
    """Async OpenAI chat-completions provider."""

    def __init__(self, api_key: str, temperature: float = 1.0, timeout: float = DEFAULT_TIMEOUT):
        super().__init__(api_key, temperature, timeout)
        from openai import OpenAI, RateLimitError, APIConnectionError
        self.client = OpenAI(api_key=api_key)
        self.RETRYABLE_EXCEPTIONS = (
            RateLimitError, APIConnectionError, ConnectionError, TimeoutError,
        )

    @staticmethod
    def _extract_tokens(response):
        """Extract token counts from OpenAI response. Returns (in, out) tuple."""
        tokens_in = tokens_out = None
        if response.usage:
            tokens_in = response.usage.prompt_tokens
            tokens_out = response.usage.completion_tokens
        return tokens_in, tokens_out

    def _sync_chat(self, model_name, messages, system_prompt):
        payload = []
        if system_prompt:
            payload.append({"role": "system", "content": system_prompt})
        payload.extend({"role": m["role"], "content": m["content"]} for m in messages)

        response = self.client.chat.completions.create(
            model=model_name, messages=payload, temperature=self.temperature,
        )
        tokens_in, tokens_out = self._extract_tokens(response)
        return response.choices[0].message.content or "", tokens_in, tokens_out

    async def chat(self, model_name, messages, system_prompt=None):
        try:
            text, tokens_in, tokens_out = await asyncio.wait_for(
                self._with_retry(self._sync_chat, model_name, list(messages), system_prompt),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise LLMTimeoutError(f"LLM chat call timed out after {self.timeout}s")
        logger.debug(
            "LLM chat on %s used %s/%s tokens", model_name, tokens_in, tokens_out,
        )
        return text


def create_llm_provider(
    provider: str, api_key: str = "", temperature: float = 0.7, timeout: float = DEFAULT_TIMEOUT,
) -> BaseLLMProvider:
    """Factory — dumb constructor, no credential policy."""
    if provider == "openai":
        if not api_key:
            raise ValueError("OPENAI_API_KEY is not configured")
        return OpenAIProvider(api_key=api_key, temperature=temperature, timeout=timeout)
    raise ValueError(f"Unknown LLM provider: {provider}")
