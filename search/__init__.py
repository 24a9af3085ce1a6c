"""
search/ — CodeScout Search Layer

Public API:
    from search import Repository, InMemoryTagIndex, SearchQuery, SearchResult

Component overview:
    types        Queries, results, tags, discovered files, reasoning replies
    codec        <reply> payload extraction + XML decode/encode
    index        Read-only tag index (exact name / file-path lookups)
    walker       .gitignore-aware filename search and raw file reads
    repository   Search executor: File and Keyword dispatch
"""

from search.index import InMemoryTagIndex, TagIndex
from search.repository import DEFAULT_FILE_RESULT_CAP, Repository
from search.types import (
    DecideResponse,
    File,
    FileContent,
    IdentifiedItem,
    IdentifyResponse,
    SearchQuery,
    SearchResult,
    SearchToolType,
    Tag,
    TagSnippet,
)

__all__ = [
    "Repository",
    "InMemoryTagIndex",
    "TagIndex",
    "DEFAULT_FILE_RESULT_CAP",
    "SearchQuery",
    "SearchResult",
    "SearchToolType",
    "FileContent",
    "TagSnippet",
    "Tag",
    "File",
    "IdentifiedItem",
    "IdentifyResponse",
    "DecideResponse",
]
