"""
agent/llm_reasoner.py — Model-backed Reasoning Capability

Each operation is one request/response round trip:
    prompts.*_messages(context)  →  BaseLLMClient.generate()  →  search.codec.decode_*

Decode failures are logged with the raw reply and re-raised as
ProtocolDecodeError; transport failures propagate as LLMError. Both
abort the current round and leave the retry policy to the caller.
"""

from __future__ import annotations

from typing import Callable, TypeVar

from agent import prompts
from agent.context import SearchContext
from agent.reasoning import ReasoningCapability, empty_results_response
from brain.llm_client import BaseLLMClient
from brain.types import LLMConfig, Message
from exceptions import ProtocolDecodeError
from observability.logger import get_logger
from search import codec
from search.types import DecideResponse, IdentifyResponse, SearchQuery, SearchResult

log = get_logger(__name__)

T = TypeVar("T")

_RAW_LOG_CHARS = 500


class LLMReasoner(ReasoningCapability):

    def __init__(self, llm_client: BaseLLMClient, llm_config: LLMConfig):
        self._llm = llm_client
        self._config = llm_config

    async def generate_search_query(self, context: SearchContext) -> list[SearchQuery]:
        system, user = prompts.generate_query_messages(context)
        queries = await self._ask("generate_search_query", system, user, codec.decode_search_requests)
        log.info("reasoner.queries", round=context.round,
                 queries=[f"{q.tool.value}:{q.query}" for q in queries])
        return queries

    async def identify_relevant_results(
        self,
        context: SearchContext,
        results: list[SearchResult],
    ) -> IdentifyResponse:
        if not results:
            log.info("reasoner.identify_skipped", round=context.round, reason="no results")
            return empty_results_response(context)

        system, user = prompts.identify_messages(context, results)
        response = await self._ask("identify", system, user, codec.decode_identify)
        if not response.scratch_pad:
            response = response.model_copy(update={
                "scratch_pad": f"Identified {len(response.items)} of {len(results)} results as relevant."
            })
        return response

    async def decide_continue(self, context: SearchContext) -> DecideResponse:
        system, user = prompts.decide_messages(context)
        return await self._ask("decide", system, user, codec.decode_decide)

    # ── Internals ─────────────────────────────────────────────────────────────

    async def _ask(self, operation: str, system: str, user: str, decode: Callable[[str], T]) -> T:
        log.debug("reasoner.request", operation=operation, model=self._config.model,
                  prompt_chars=len(system) + len(user))
        response = await self._llm.generate(
            messages=[Message.system(system), Message.user(user)],
            config=self._config,
        )
        if response.truncated:
            log.warning("reasoner.reply_truncated", operation=operation,
                        output_tokens=response.usage.output_tokens)
        try:
            return decode(response.text)
        except ProtocolDecodeError as e:
            log.warning("reasoner.decode_failed", operation=operation, error=str(e),
                        raw=e.raw[:_RAW_LOG_CHARS])
            raise

    @classmethod
    def from_settings(cls, settings, llm_client: BaseLLMClient) -> "LLMReasoner":
        return cls(
            llm_client=llm_client,
            llm_config=LLMConfig(
                model=settings.default_llm_model,
                temperature=settings.llm.temperature,
                max_tokens=settings.llm.max_tokens,
                timeout_seconds=settings.llm.timeout_seconds,
            ),
        )

    def __repr__(self) -> str:
        return f"<LLMReasoner llm={self._llm!r} model={self._config.model}>"
