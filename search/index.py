"""
search/index.py — Read-only Tag Index

The tag index is built by an external indexer (symbol extraction). This
module only reads it. Two lookups are exposed:

    search_by_name(name)           exact symbol-name match
    search_by_file_path(fragment)  case-insensitive substring of the file path

Both return Tag records; a miss is an empty list, never an error.

InMemoryTagIndex loads a tag dump written as either a JSON array or JSON
lines, one record per tag:

    {"name": "generate_report", "kind": "function", "fname": "reports/build.py"}
"""

from __future__ import annotations

import json
from collections import OrderedDict
from pathlib import Path
from typing import Iterable, Protocol, runtime_checkable

from pydantic import ValidationError

from exceptions import IndexLoadError
from observability.logger import get_logger
from search.types import Tag

log = get_logger(__name__)


@runtime_checkable
class TagIndex(Protocol):
    def search_by_name(self, name: str) -> list[Tag]: ...

    def search_by_file_path(self, fragment: str) -> list[Tag]: ...


class InMemoryTagIndex:
    """
    Tag index held in memory. Never mutated after construction, so a single
    instance is safe to share between concurrent sessions.
    """

    def __init__(self, tags: Iterable[Tag]):
        # file path -> tags, in first-seen order
        by_file: "OrderedDict[str, list[Tag]]" = OrderedDict()
        by_name: dict[str, list[Tag]] = {}
        for tag in tags:
            by_file.setdefault(tag.fname, []).append(tag)
            by_name.setdefault(tag.name, []).append(tag)
        self._by_file = by_file
        self._by_name = by_name

    def __len__(self) -> int:
        return sum(len(v) for v in self._by_file.values())

    @property
    def files(self) -> list[str]:
        return list(self._by_file)

    def search_by_name(self, name: str) -> list[Tag]:
        return list(self._by_name.get(name, []))

    def search_by_file_path(self, fragment: str) -> list[Tag]:
        needle = fragment.lower()
        if not needle:
            return []
        return [
            tag
            for fname, tags in self._by_file.items()
            if needle in fname.lower()
            for tag in tags
        ]

    # ── Loading ──────────────────────────────────────────────────────────────

    @classmethod
    def from_file(cls, path: str | Path) -> "InMemoryTagIndex":
        """Load a JSON array or JSON-lines tag dump."""
        path = Path(path)
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise IndexLoadError(str(path), f"Could not read tag index {path}: {e}") from e

        try:
            stripped = raw.lstrip()
            if stripped.startswith("["):
                records = json.loads(stripped)
            else:
                records = [json.loads(line) for line in raw.splitlines() if line.strip()]
            tags = [Tag(**r) for r in records]
        except (json.JSONDecodeError, TypeError, ValidationError) as e:
            raise IndexLoadError(str(path), f"Malformed tag index {path}: {e}") from e

        index = cls(tags)
        log.info("tag_index.loaded", path=str(path), tags=len(index), files=len(index.files))
        return index
