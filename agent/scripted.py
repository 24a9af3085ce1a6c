"""
agent/scripted.py — Scripted Reasoning Capability

Replays fixed answers in order, with no model and no network. Meant for
tests and dry runs of the search loop. When a script runs out, its last
answer is repeated. Every call is recorded in ``calls``.

Usage:
    reasoner = ScriptedReasoner(
        queries=[[SearchQuery(tool=SearchToolType.KEYWORD, query="generate_report")]],
        identifications=[IdentifyResponse(items=[...], scratch_pad="found it")],
        decisions=[DecideResponse(complete=True)],
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence, TypeVar

from agent.context import SearchContext
from agent.reasoning import ReasoningCapability
from exceptions import ProtocolDecodeError
from search.types import DecideResponse, IdentifyResponse, SearchQuery, SearchResult

T = TypeVar("T")


@dataclass
class ScriptedCall:
    operation: str
    round: int
    result_count: int = 0
    files: list[str] = field(default_factory=list)


class ScriptedReasoner(ReasoningCapability):

    def __init__(
        self,
        queries: Sequence[list[SearchQuery]],
        identifications: Sequence[IdentifyResponse],
        decisions: Sequence[DecideResponse],
    ):
        if not queries or not identifications or not decisions:
            raise ValueError("ScriptedReasoner needs at least one answer per operation")
        self._queries = list(queries)
        self._identifications = list(identifications)
        self._decisions = list(decisions)
        self.calls: list[ScriptedCall] = []

    def _count(self, operation: str) -> int:
        return sum(1 for c in self.calls if c.operation == operation)

    @staticmethod
    def _pick(script: list[T], index: int) -> T:
        return script[min(index, len(script) - 1)]

    async def generate_search_query(self, context: SearchContext) -> list[SearchQuery]:
        index = self._count("generate_search_query")
        self.calls.append(ScriptedCall("generate_search_query", context.round,
                                       files=context.file_paths))
        queries = self._pick(self._queries, index)
        if not queries:
            raise ProtocolDecodeError("Scripted reply contained no search requests")
        return list(queries)

    async def identify_relevant_results(
        self,
        context: SearchContext,
        results: list[SearchResult],
    ) -> IdentifyResponse:
        index = self._count("identify")
        self.calls.append(ScriptedCall("identify", context.round, result_count=len(results),
                                       files=context.file_paths))
        return self._pick(self._identifications, index)

    async def decide_continue(self, context: SearchContext) -> DecideResponse:
        index = self._count("decide")
        self.calls.append(ScriptedCall("decide", context.round, files=context.file_paths))
        return self._pick(self._decisions, index)
