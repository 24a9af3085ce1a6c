"""
search/types.py — Search Data Models

Shared types used by the search executor, the response codec, the
reasoning backends and the orchestration loop.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field


# ─────────────────────────────────────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────────────────────────────────────


class SearchToolType(str, Enum):
    FILE = "File"           # search by file name / path
    KEYWORD = "Keyword"     # search by exact symbol name


# ─────────────────────────────────────────────────────────────────────────────
# Index records
# ─────────────────────────────────────────────────────────────────────────────


class Tag(BaseModel):
    """A named code symbol drawn from the search index."""
    model_config = ConfigDict(frozen=True)

    name: str
    kind: str = Field(..., description="Symbol kind, e.g. function, class")
    fname: str = Field(..., description="Path of the defining file")


# ─────────────────────────────────────────────────────────────────────────────
# Queries and results
# ─────────────────────────────────────────────────────────────────────────────


class SearchQuery(BaseModel):
    """One search request issued by a reasoning backend. Immutable."""
    model_config = ConfigDict(frozen=True)

    tool: SearchToolType
    query: str
    thinking: str = ""


class FileContent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["FileContent"] = "FileContent"
    content: bytes = b""


class TagSnippet(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["Tag"] = "Tag"
    name: str


SearchResultSnippet = Union[FileContent, TagSnippet]


class SearchResult(BaseModel):
    """A single hit produced by the search executor. Immutable."""
    model_config = ConfigDict(frozen=True)

    path: str
    thinking: str = ""
    snippet: SearchResultSnippet = Field(..., discriminator="kind")

    @classmethod
    def for_tag(cls, tag: Tag) -> "SearchResult":
        return cls(
            path=tag.fname,
            thinking=f"This file contains a {tag.kind} named {tag.name}",
            snippet=TagSnippet(name=tag.name),
        )

    @classmethod
    def for_file(cls, path: str, thinking: str, content: bytes) -> "SearchResult":
        return cls(path=path, thinking=thinking, snippet=FileContent(content=content))


# ─────────────────────────────────────────────────────────────────────────────
# Discovered files
# ─────────────────────────────────────────────────────────────────────────────


class File(BaseModel):
    """A relevant file accumulated in the session context."""
    path: str
    thinking: str = ""

    def serialise(self) -> str:
        # local import: codec depends on this module
        from search.codec import encode_file
        return encode_file(self)

    @staticmethod
    def serialise_files(files: list["File"], separator: str = "\n") -> str:
        return separator.join(f.serialise() for f in files)


# ─────────────────────────────────────────────────────────────────────────────
# Reasoning responses
# ─────────────────────────────────────────────────────────────────────────────


class IdentifiedItem(BaseModel):
    path: str
    thinking: str = ""


class IdentifyResponse(BaseModel):
    """Per-round relevance judgement. Merged into the context by the loop."""
    items: list[IdentifiedItem] = Field(default_factory=list)
    scratch_pad: str = ""

    @property
    def narrative(self) -> str:
        return self.scratch_pad


class DecideResponse(BaseModel):
    """Continuation decision. Drives loop control only."""
    suggestions: str = ""
    complete: bool = False
