"""
search/repository.py — Search Executor

Maps one SearchQuery to zero or more SearchResults.

    File     index lookup by file path, capped to keep prompts small.
             No index hit → one best-effort filename search in the working
             tree; the file's raw bytes come back as a single FileContent
             result. Unreadable files degrade to empty content.
    Keyword  exact symbol-name lookup, every match returned. Never falls
             back to the filesystem.

The executor never writes to the index; Repository instances are shared
across sessions and across the concurrent queries of a round.
"""

from __future__ import annotations

from itertools import islice
from pathlib import Path

from exceptions import FilesystemReadError
from observability.logger import get_logger
from search import walker
from search.index import TagIndex
from search.types import SearchQuery, SearchResult, SearchToolType

log = get_logger(__name__)

DEFAULT_FILE_RESULT_CAP = 20


class Repository:
    """Read-only view over a tag index plus the working tree it describes."""

    def __init__(
        self,
        tag_index: TagIndex,
        root: str | Path,
        file_result_cap: int = DEFAULT_FILE_RESULT_CAP,
    ):
        self._index = tag_index
        self._root = Path(root)
        self._file_result_cap = file_result_cap

    @property
    def root(self) -> Path:
        return self._root

    def execute_search(self, query: SearchQuery) -> list[SearchResult]:
        if query.tool == SearchToolType.FILE:
            return self._search_file(query)
        return self._search_keyword(query)

    # ── File ──────────────────────────────────────────────────────────────────

    def _search_file(self, query: SearchQuery) -> list[SearchResult]:
        tags = self._index.search_by_file_path(query.query)
        if tags:
            log.debug("repository.file_tags", query=query.query, tags=len(tags),
                      cap=self._file_result_cap)
            return [SearchResult.for_tag(t) for t in islice(tags, self._file_result_cap)]

        log.debug("repository.file_fallback", query=query.query, root=str(self._root))
        path = walker.find_file(self._root, query.query)
        if path is None:
            log.debug("repository.file_not_found", query=query.query)
            return []

        return [SearchResult.for_file(
            path=self._display_path(path),
            thinking=query.thinking,
            content=self._read_or_empty(path),
        )]

    def _read_or_empty(self, path: Path) -> bytes:
        try:
            return walker.read_file_bytes(path)
        except FilesystemReadError as e:
            log.warning("repository.file_unreadable", path=e.path, error=str(e))
            return b""

    def _display_path(self, path: Path) -> str:
        try:
            return path.relative_to(self._root).as_posix()
        except ValueError:
            return str(path)

    # ── Keyword ───────────────────────────────────────────────────────────────

    def _search_keyword(self, query: SearchQuery) -> list[SearchResult]:
        tags = self._index.search_by_name(query.query)
        log.debug("repository.keyword", query=query.query, tags=len(tags))
        return [SearchResult.for_tag(t) for t in tags]

    def __repr__(self) -> str:
        return f"<Repository root={str(self._root)!r} cap={self._file_result_cap}>"

