"""
brain/ — CodeScout LLM Transport

The reasoning layer (agent.llm_reasoner) talks to models only through
BaseLLMClient. Nothing outside this package imports a concrete client.
"""

from __future__ import annotations

from typing import Optional

from brain.llm_client import (
    BaseLLMClient,
    LLMConnectionError,
    LLMContextError,
    LLMError,
    LLMInvalidRequestError,
    LLMRateLimitError,
    ResilientLLMClient,
    call_with_retry,
)
from brain.types import FinishReason, LLMConfig, LLMResponse, Message, Provider, Role, TokenUsage
from observability.logger import get_logger

__all__ = [
    "LLMClientFactory",
    "BaseLLMClient",
    "ResilientLLMClient",
    "call_with_retry",
    "LLMError",
    "LLMConnectionError",
    "LLMRateLimitError",
    "LLMContextError",
    "LLMInvalidRequestError",
    "Message",
    "LLMConfig",
    "LLMResponse",
    "TokenUsage",
    "Role",
    "Provider",
    "FinishReason",
]

log = get_logger(__name__)


class LLMClientFactory:

    @staticmethod
    def create(
        provider: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> BaseLLMClient:
        provider = provider.lower().strip()

        if provider == Provider.OPENAI.value:
            if not api_key:
                raise LLMConnectionError("OPENAI_API_KEY is required", provider="openai")
            from brain.openai_client import OpenAIClient
            return OpenAIClient(api_key=api_key, base_url=base_url)

        if provider == Provider.OLLAMA.value:
            from brain.ollama_client import OllamaClient
            return OllamaClient(base_url=base_url or "http://localhost:11434/v1")

        raise ValueError(
            f"Unknown LLM provider: '{provider}'. "
            f"Valid options: {', '.join(p.value for p in Provider)}"
        )

    @staticmethod
    def from_settings(settings) -> ResilientLLMClient:
        """
        Primary client for settings.llm.default_provider wrapped in a
        ResilientLLMClient, with settings.llm.fallback_providers as the
        failover chain. Fallbacks that cannot be built are skipped.
        """
        provider = settings.default_llm_provider
        base_urls = {Provider.OLLAMA.value: settings.ollama_base_url_v1}

        primary = LLMClientFactory.create(
            provider,
            api_key=settings.api_key_for(provider),
            base_url=base_urls.get(provider),
        )

        fallbacks: list[BaseLLMClient] = []
        for fp in settings.llm.fallback_providers:
            fp = fp.lower().strip()
            if fp == provider:
                continue
            try:
                fallbacks.append(LLMClientFactory.create(
                    fp, api_key=settings.api_key_for(fp), base_url=base_urls.get(fp),
                ))
            except (LLMError, ValueError) as e:
                log.warning("llm.fallback_skipped", provider=fp, error=str(e))

        retry = settings.llm.retry
        return ResilientLLMClient(
            primary=primary,
            fallbacks=fallbacks,
            max_attempts=retry.max_attempts,
            base_delay=retry.base_delay,
            max_delay=retry.max_delay,
        )
