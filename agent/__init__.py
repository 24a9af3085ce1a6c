"""
agent/ — CodeScout Search Agent

Public API:
    from agent import SearchLoop, SearchOutcome, LLMReasoner

Component overview:
    SearchContext        Per-session state (issue, files found, narrative)
    ReasoningCapability  The three judgement calls the loop delegates
    LLMReasoner          ReasoningCapability backed by an LLM client
    ScriptedReasoner     ReasoningCapability replaying fixed answers
    SearchLoop           Central loop: generate → execute → identify → decide
"""

from agent.context import SearchContext
from agent.llm_reasoner import LLMReasoner
from agent.reasoning import ReasoningCapability, empty_results_response
from agent.scripted import ScriptedCall, ScriptedReasoner
from agent.search_loop import LoopState, SearchLoop, SearchOutcome, SearchStatus

__all__ = [
    "SearchContext",
    "ReasoningCapability",
    "empty_results_response",
    "LLMReasoner",
    "ScriptedReasoner",
    "ScriptedCall",
    "SearchLoop",
    "SearchOutcome",
    "SearchStatus",
    "LoopState",
]
