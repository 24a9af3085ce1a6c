"""
brain/openai_client.py — OpenAI Chat Completions Client

Works against api.openai.com or any OpenAI-compatible endpoint (vLLM,
LiteLLM proxy, Ollama's /v1). SDK exceptions are normalised into the
LLMError family so retry/failover can classify them.
"""

from __future__ import annotations

from typing import Optional

import openai
from openai import AsyncOpenAI

from brain.llm_client import (
    BaseLLMClient,
    LLMConnectionError,
    LLMContextError,
    LLMError,
    LLMInvalidRequestError,
    LLMRateLimitError,
)
from brain.types import FinishReason, LLMConfig, LLMResponse, Message, Provider, TokenUsage
from observability.logger import get_logger

log = get_logger(__name__)

_FINISH_MAP = {
    "stop": FinishReason.STOP,
    "length": FinishReason.LENGTH,
}


class OpenAIClient(BaseLLMClient):

    provider = Provider.OPENAI

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        organization: Optional[str] = None,
    ):
        super().__init__(api_key=api_key, base_url=base_url)
        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url, organization=organization)

    async def generate(self, messages: list[Message], config: LLMConfig) -> LLMResponse:
        log.debug("openai.generate.start", model=config.model, message_count=len(messages))
        name = self.provider.value

        try:
            response = await self._client.chat.completions.create(
                model=config.model,
                messages=[{"role": m.role.value, "content": m.content} for m in messages],
                temperature=config.temperature,
                max_tokens=config.max_tokens,
                timeout=config.timeout_seconds,
            )
        except openai.AuthenticationError as e:
            raise LLMConnectionError(str(e), provider=name, status_code=401) from e
        except openai.RateLimitError as e:
            raise LLMRateLimitError(str(e), provider=name) from e
        except openai.BadRequestError as e:
            text = str(e).lower()
            if "context" in text or "too long" in text:
                raise LLMContextError(str(e), provider=name) from e
            raise LLMInvalidRequestError(str(e), provider=name) from e
        except (openai.APIConnectionError, openai.APITimeoutError) as e:
            raise LLMConnectionError(str(e), provider=name) from e
        except openai.InternalServerError as e:
            raise LLMConnectionError(str(e), provider=name, status_code=e.status_code) from e
        except openai.APIError as e:
            raise LLMError(str(e), provider=name, status_code=getattr(e, "status_code", None)) from e

        result = self._from_provider_response(response)
        log.debug(
            "openai.generate.complete",
            model=result.model,
            input_tokens=result.usage.input_tokens,
            output_tokens=result.usage.output_tokens,
            finish_reason=result.finish_reason.value,
        )
        return result

    async def health_check(self) -> bool:
        try:
            await self._client.models.list()
            return True
        except openai.APIError as e:
            log.warning("openai.health_check.failed", error=str(e), error_type=type(e).__name__)
            return False

    def _from_provider_response(self, response) -> LLMResponse:
        choice = response.choices[0]
        usage = TokenUsage(
            input_tokens=response.usage.prompt_tokens if response.usage else 0,
            output_tokens=response.usage.completion_tokens if response.usage else 0,
        )
        return LLMResponse(
            content=choice.message.content,
            finish_reason=_FINISH_MAP.get(choice.finish_reason or "stop", FinishReason.STOP),
            usage=usage,
            model=response.model or "",
            provider=self.provider,
        )

    def __repr__(self) -> str:
        return f"<OpenAIClient base_url={self.base_url or 'default'}>"
