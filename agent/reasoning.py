"""
agent/reasoning.py — Reasoning Capability Interface

The three judgement calls the search loop delegates:

    generate_search_query      context          -> [SearchQuery]   (>= 1)
    identify_relevant_results  context, results -> IdentifyResponse
    decide_continue            context          -> DecideResponse

Backends are interchangeable: LLMReasoner calls a model, ScriptedReasoner
replays fixed answers. The loop only knows this base class.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from agent.context import SearchContext
from search.types import DecideResponse, IdentifyResponse, SearchQuery, SearchResult


class ReasoningCapability(ABC):

    @abstractmethod
    async def generate_search_query(self, context: SearchContext) -> list[SearchQuery]:
        """
        Produce this round's queries. Raises ProtocolDecodeError when the
        backend's answer cannot be decoded or holds no query.
        """
        ...

    @abstractmethod
    async def identify_relevant_results(
        self,
        context: SearchContext,
        results: list[SearchResult],
    ) -> IdentifyResponse:
        """
        Pick the relevant results. Must answer even for an empty result
        list: no items, and a narrative saying why.
        """
        ...

    @abstractmethod
    async def decide_continue(self, context: SearchContext) -> DecideResponse:
        """Judge completeness from context.files and context.user_query only."""
        ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"


def empty_results_response(context: SearchContext) -> IdentifyResponse:
    """The identify answer for a round whose queries found nothing."""
    narrative = (
        "No search results were returned for this round's queries, so no new "
        "files were identified. Try different file names or exact symbol names."
    )
    if context.narrative:
        narrative += f"\nEarlier notes: {context.narrative}"
    return IdentifyResponse(items=[], scratch_pad=narrative)
