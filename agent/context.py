"""
agent/context.py — Per-Session Search State

One SearchContext exists per search session. It is created by the loop,
mutated once per completed round, and dropped when the session ends.
Never shared between sessions.

Holds:
    user_query    the issue text (read-only)
    narrative     the latest round's scratch pad (replaced, never appended)
    files         relevant files, unique by path, in discovery order
    suggestions   hints from the last non-final decision
    round         rounds started so far
"""

from __future__ import annotations

import time
import uuid
from typing import Optional

from observability.logger import get_logger
from search.types import DecideResponse, File, IdentifyResponse

log = get_logger(__name__)


class SearchContext:

    def __init__(self, user_query: str, session_id: Optional[str] = None):
        self.session_id = session_id or f"search_{uuid.uuid4().hex[:12]}"
        self._user_query = user_query
        self.narrative: str = ""
        self.suggestions: str = ""
        self.round: int = 0
        self.created_at = time.time()
        # path -> File; dict order is discovery order
        self._files: dict[str, File] = {}

    # ── Read access ───────────────────────────────────────────────────────────

    @property
    def user_query(self) -> str:
        return self._user_query

    @property
    def files(self) -> list[File]:
        return list(self._files.values())

    @property
    def file_paths(self) -> list[str]:
        return list(self._files)

    def has_file(self, path: str) -> bool:
        return path in self._files

    def serialise_files(self, separator: str = "\n") -> str:
        return File.serialise_files(self.files, separator)

    # ── Mutation (loop only) ─────────────────────────────────────────────────

    def begin_round(self) -> int:
        self.round += 1
        return self.round

    def apply_identification(self, response: IdentifyResponse) -> list[File]:
        """
        Merge one round's identify output. Keep-first: a path that is
        already known keeps its original rationale. The narrative is
        replaced wholesale. Returns the files that were new this round.

        The merged mapping is built aside and swapped in, so the context
        moves from one complete round to the next.
        """
        merged = dict(self._files)
        added: list[File] = []
        for item in response.items:
            if item.path in merged:
                continue
            file = File(path=item.path, thinking=item.thinking)
            merged[item.path] = file
            added.append(file)

        self._files = merged
        self.narrative = response.scratch_pad
        log.debug("context.merged", session_id=self.session_id, round=self.round,
                  added=len(added), total=len(merged),
                  rediscovered=len(response.items) - len(added))
        return added

    def snapshot(self) -> tuple:
        return (self.round, self._files, self.narrative, self.suggestions)

    def restore(self, snapshot: tuple) -> None:
        """Roll back to a snapshot taken at the start of an abandoned round."""
        self.round, self._files, self.narrative, self.suggestions = snapshot

    def record_decision(self, decision: DecideResponse) -> None:
        self.suggestions = "" if decision.complete else decision.suggestions

    def __repr__(self) -> str:
        return (f"<SearchContext {self.session_id} round={self.round} "
                f"files={len(self._files)}>")
