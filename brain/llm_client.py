"""
brain/llm_client.py — Abstract LLM Client + Retry/Failover

Every provider client subclasses BaseLLMClient and implements generate()
and health_check(). ResilientLLMClient wraps a primary client with
exponential-backoff retry and an ordered list of fallback providers.

All provider failures surface as LLMError, which is a TransportError:
the search loop treats them as "round aborted, caller decides".
"""

from __future__ import annotations

import asyncio
import random
from abc import ABC, abstractmethod
from typing import Optional

from brain.types import LLMConfig, LLMResponse, Message
from exceptions import TransportError
from observability.logger import get_logger

log = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Exceptions
# ─────────────────────────────────────────────────────────────────────────────


class LLMError(TransportError):
    """Base exception for all LLM client errors."""

    def __init__(self, message: str, provider: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class LLMConnectionError(LLMError):
    """Provider unreachable, timed out, or rejected the credentials."""


class LLMRateLimitError(LLMError):
    """Rate limit hit. retry_after (seconds) is honored when present."""

    def __init__(self, message: str, provider: str = "", retry_after: Optional[float] = None):
        super().__init__(message, provider)
        self.retry_after = retry_after


class LLMContextError(LLMError):
    """Prompt exceeds the model context window."""


class LLMInvalidRequestError(LLMError):
    """Bad request parameters."""


_TRANSIENT = (LLMConnectionError, LLMRateLimitError)
_PERMANENT = (LLMContextError, LLMInvalidRequestError)


# ─────────────────────────────────────────────────────────────────────────────
# Base client
# ─────────────────────────────────────────────────────────────────────────────


class BaseLLMClient(ABC):

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None):
        self.api_key = api_key
        self.base_url = base_url

    @abstractmethod
    async def generate(self, messages: list[Message], config: LLMConfig) -> LLMResponse:
        """Send the conversation and return the normalised completion."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """True if the provider is reachable with the configured credentials."""
        ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"


# ─────────────────────────────────────────────────────────────────────────────
# Retry
# ─────────────────────────────────────────────────────────────────────────────


def _backoff_delay(error: LLMError, attempt: int, base_delay: float, max_delay: float) -> float:
    if isinstance(error, LLMRateLimitError) and error.retry_after:
        return min(error.retry_after, max_delay)
    return min(base_delay * (2 ** attempt) + random.uniform(0, 0.5), max_delay)


async def call_with_retry(
    client: BaseLLMClient,
    messages: list[Message],
    config: LLMConfig,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
) -> LLMResponse:
    """
    Call client.generate(), retrying transient failures (connection, rate
    limit) with exponential backoff plus jitter. Permanent failures
    propagate immediately.
    """
    last_error: Optional[LLMError] = None

    for attempt in range(max_attempts):
        try:
            return await client.generate(messages=messages, config=config)
        except _PERMANENT:
            raise
        except _TRANSIENT as e:
            last_error = e
            if attempt == max_attempts - 1:
                break
            delay = _backoff_delay(e, attempt, base_delay, max_delay)
            log.warning(
                "llm.retrying",
                client=repr(client),
                attempt=attempt + 1,
                max_attempts=max_attempts,
                delay_s=round(delay, 2),
                error=str(e),
                error_type=type(e).__name__,
            )
            await asyncio.sleep(delay)

    raise last_error  # type: ignore[misc]


# ─────────────────────────────────────────────────────────────────────────────
# ResilientLLMClient
# ─────────────────────────────────────────────────────────────────────────────


class ResilientLLMClient(BaseLLMClient):
    """
    Primary client with retry, then each fallback in order (also with
    retry). Permanent errors skip failover: a different provider will not
    make an oversized prompt fit.

    Usage:
        client = ResilientLLMClient(primary=OpenAIClient(key), fallbacks=[OllamaClient()])
        response = await client.generate(messages, config)
    """

    def __init__(
        self,
        primary: BaseLLMClient,
        fallbacks: Optional[list[BaseLLMClient]] = None,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
    ):
        super().__init__()
        self._primary = primary
        self._fallbacks = fallbacks or []
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._active_client: BaseLLMClient = primary

    @property
    def primary(self) -> BaseLLMClient:
        return self._primary

    @property
    def active_client(self) -> BaseLLMClient:
        return self._active_client

    async def generate(self, messages: list[Message], config: LLMConfig) -> LLMResponse:
        clients = [self._primary] + self._fallbacks
        last_error: Optional[LLMError] = None

        for i, client in enumerate(clients):
            if i > 0:
                log.warning("llm.failing_over", from_client=repr(clients[i - 1]),
                            to_client=repr(client), reason=str(last_error))
            try:
                result = await call_with_retry(
                    client, messages, config,
                    max_attempts=self._max_attempts,
                    base_delay=self._base_delay,
                    max_delay=self._max_delay,
                )
            except _PERMANENT:
                raise
            except LLMError as e:
                last_error = e
                log.error("llm.client_exhausted", client=repr(client), error=str(e),
                          will_try_fallback=i < len(clients) - 1)
                continue
            self._active_client = client
            return result

        raise LLMError(f"All LLM clients failed. Last error: {last_error}", provider="all")

    async def health_check(self) -> bool:
        return await self._active_client.health_check()

    def __repr__(self) -> str:
        n = len(self._fallbacks)
        suffix = f" + {n} fallback(s)" if n else ""
        return f"<ResilientLLMClient primary={self._primary!r}{suffix}>"
