"""
agent/search_loop.py — Iterative Search Loop

Drives one search session through:

    GENERATE_QUERY → EXECUTE → IDENTIFY → DECIDE → (GENERATE_QUERY | TERMINATE)

    GENERATE_QUERY  reasoner proposes this round's queries
    EXECUTE         every query runs against the Repository concurrently;
                    IDENTIFY waits for all of them
    IDENTIFY        reasoner picks the relevant results; only now is the
                    context updated (files merged, narrative replaced)
    DECIDE          reasoner judges completeness from the accumulated files

The session terminates when DECIDE says complete, after max_rounds rounds,
or when max_session_seconds of wall-clock time is spent. A round cut off
by the time budget or by an error is rolled back, so the context holds
only complete rounds.

ProtocolDecodeError and TransportError abort the round and propagate.

The loop keeps no per-session state of its own, so one SearchLoop can run
many sessions concurrently.

Usage:
    loop = SearchLoop(reasoner, repository, max_rounds=8)
    outcome = await loop.run("fix off-by-one in generate_report")
    for f in outcome.files:
        print(f.path, f.thinking)
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from agent.context import SearchContext
from agent.reasoning import ReasoningCapability
from observability.logger import bind_session, clear_session, get_logger
from search.repository import Repository
from search.types import DecideResponse, File, SearchQuery, SearchResult

log = get_logger(__name__)

_DEFAULT_MAX_ROUNDS = 8
_DEFAULT_MAX_SESSION_SECONDS = 600.0


class LoopState(str, Enum):
    GENERATE_QUERY = "generate_query"
    EXECUTE = "execute"
    IDENTIFY = "identify"
    DECIDE = "decide"
    TERMINATE = "terminate"


class SearchStatus(str, Enum):
    COMPLETE = "complete"         # reasoner declared the context complete
    ROUND_LIMIT = "round_limit"   # max_rounds spent without completion
    TIMEOUT = "timeout"           # max_session_seconds spent


@dataclass(frozen=True)
class SearchOutcome:
    status: SearchStatus
    context: SearchContext
    rounds: int
    suggestions: str = ""
    duration_ms: int = 0

    @property
    def files(self) -> list[File]:
        return self.context.files

    @property
    def complete(self) -> bool:
        return self.status == SearchStatus.COMPLETE


class SearchLoop:

    def __init__(
        self,
        reasoner: ReasoningCapability,
        repository: Repository,
        max_rounds: int = _DEFAULT_MAX_ROUNDS,
        max_session_seconds: float = _DEFAULT_MAX_SESSION_SECONDS,
    ):
        if max_rounds < 1:
            raise ValueError("max_rounds must be >= 1")
        self._reasoner = reasoner
        self._repository = repository
        self._max_rounds = max_rounds
        self._max_seconds = max_session_seconds

    # ─────────────────────────────────────────────────────────────────────────
    # Public
    # ─────────────────────────────────────────────────────────────────────────

    async def run(self, user_query: str, session_id: Optional[str] = None) -> SearchOutcome:
        """Run a fresh session for ``user_query`` until it terminates."""
        return await self.run_context(SearchContext(user_query, session_id=session_id))

    async def run_context(self, context: SearchContext) -> SearchOutcome:
        bind_session(context.session_id)
        log.info("search_loop.session_start", user_query=context.user_query[:120],
                 max_rounds=self._max_rounds, max_seconds=self._max_seconds)
        t0 = time.monotonic()

        try:
            try:
                status = await asyncio.wait_for(self._drive(context), timeout=self._max_seconds)
            except asyncio.TimeoutError:
                status = SearchStatus.TIMEOUT
                log.warning("search_loop.timeout", round=context.round,
                            max_seconds=self._max_seconds, files=len(context.file_paths))

            outcome = SearchOutcome(
                status=status,
                context=context,
                rounds=context.round,
                suggestions=context.suggestions,
                duration_ms=round((time.monotonic() - t0) * 1000),
            )
            log.info("search_loop.session_done", status=status.value, rounds=outcome.rounds,
                     files=context.file_paths, ms=outcome.duration_ms)
            return outcome
        finally:
            clear_session()

    async def execute(self, queries: list[SearchQuery]) -> list[SearchResult]:
        """
        Run all queries against the repository concurrently and return the
        results in query order. Returns only after every query finished.
        """
        batches = await asyncio.gather(*(
            asyncio.to_thread(self._repository.execute_search, q) for q in queries
        ))
        for q, batch in zip(queries, batches):
            log.debug("search_loop.query_done", tool=q.tool.value, query=q.query, results=len(batch))
        return [result for batch in batches for result in batch]

    # ─────────────────────────────────────────────────────────────────────────
    # State machine
    # ─────────────────────────────────────────────────────────────────────────

    async def _drive(self, context: SearchContext) -> SearchStatus:
        while context.round < self._max_rounds:
            snapshot = context.snapshot()
            try:
                decision = await self._run_round(context)
            except BaseException as e:
                context.restore(snapshot)
                log.info("search_loop.round_abandoned", round=snapshot[0] + 1,
                         error_type=type(e).__name__)
                raise
            if decision.complete:
                self._enter(LoopState.TERMINATE, context)
                return SearchStatus.COMPLETE

        log.warning("search_loop.round_limit", rounds=context.round,
                    files=len(context.file_paths), suggestions=context.suggestions[:200])
        self._enter(LoopState.TERMINATE, context)
        return SearchStatus.ROUND_LIMIT

    async def _run_round(self, context: SearchContext) -> DecideResponse:
        context.begin_round()
        log.info("search_loop.round_start", round=context.round, files=len(context.file_paths))

        self._enter(LoopState.GENERATE_QUERY, context)
        queries = await self._reasoner.generate_search_query(context)

        self._enter(LoopState.EXECUTE, context, queries=len(queries))
        results = await self.execute(queries)

        self._enter(LoopState.IDENTIFY, context, results=len(results))
        identified = await self._reasoner.identify_relevant_results(context, results)
        added = context.apply_identification(identified)

        self._enter(LoopState.DECIDE, context, added=[f.path for f in added])
        decision = await self._reasoner.decide_continue(context)
        context.record_decision(decision)

        log.info("search_loop.round_done", round=context.round, complete=decision.complete,
                 files=len(context.file_paths))
        return decision

    @staticmethod
    def _enter(state: LoopState, context: SearchContext, **fields) -> None:
        log.debug("search_loop.state", state=state.value, round=context.round, **fields)

    # ─────────────────────────────────────────────────────────────────────────
    # Factory
    # ─────────────────────────────────────────────────────────────────────────

    @classmethod
    def from_settings(
        cls,
        settings,
        reasoner: ReasoningCapability,
        repository: Repository,
    ) -> "SearchLoop":
        return cls(
            reasoner=reasoner,
            repository=repository,
            max_rounds=settings.search.max_rounds,
            max_session_seconds=settings.search.max_session_seconds,
        )
