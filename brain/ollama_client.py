"""
brain/ollama_client.py — Ollama Local Model Client

Ollama exposes an OpenAI-compatible API under /v1, so completions reuse
OpenAIClient. Health and model listing use Ollama's native /api/tags
endpoint via httpx.
"""

from __future__ import annotations

import httpx

from brain.llm_client import LLMConnectionError
from brain.openai_client import OpenAIClient
from brain.types import LLMConfig, LLMResponse, Message, Provider
from observability.logger import get_logger

log = get_logger(__name__)

_DEFAULT_BASE_URL = "http://localhost:11434/v1"
_HEALTH_TIMEOUT = 5.0


class OllamaClient(OpenAIClient):
    """No API key needed; requires `ollama serve` to be running."""

    provider = Provider.OLLAMA

    def __init__(self, base_url: str = _DEFAULT_BASE_URL):
        super().__init__(api_key="ollama", base_url=base_url)

    @property
    def native_url(self) -> str:
        url = (self.base_url or _DEFAULT_BASE_URL).rstrip("/")
        return url[: -len("/v1")] if url.endswith("/v1") else url

    async def generate(self, messages: list[Message], config: LLMConfig) -> LLMResponse:
        try:
            return await super().generate(messages, config)
        except LLMConnectionError as e:
            raise LLMConnectionError(
                f"Cannot reach Ollama at {self.base_url}. Is `ollama serve` running? ({e})",
                provider=self.provider.value,
            ) from e

    async def list_models(self) -> list[str]:
        async with httpx.AsyncClient(timeout=_HEALTH_TIMEOUT) as client:
            response = await client.get(f"{self.native_url}/api/tags")
            response.raise_for_status()
        return [m.get("name", "") for m in response.json().get("models", [])]

    async def health_check(self) -> bool:
        try:
            models = await self.list_models()
        except httpx.HTTPError as e:
            log.warning("ollama.health_check.failed", error=str(e), url=self.native_url)
            return False
        log.debug("ollama.health_check.ok", available_models=models)
        return True

    def __repr__(self) -> str:
        return f"<OllamaClient base_url={self.base_url}>"
