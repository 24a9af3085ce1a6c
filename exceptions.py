"""
exceptions.py — CodeScout Error Hierarchy

All CodeScout-specific exceptions derive from CodeScoutError. Layers raise
typed subclasses, never bare Exception.

Hierarchy:
    CodeScoutError
    ├── ProtocolDecodeError       generated text has no well-formed payload
    ├── TransportError            reasoning backend unreachable / failed
    │   └── LLMError              (brain.llm_client — provider errors)
    ├── FilesystemReadError       a fallback file could not be read
    └── IndexLoadError            tag dump missing or malformed

Index misses are NOT errors — they are empty result lists.
"""

from __future__ import annotations

from typing import Optional


class CodeScoutError(Exception):
    """Base class for all CodeScout exceptions."""


class ProtocolDecodeError(CodeScoutError):
    """
    Generated text did not contain a well-formed structured payload.

    Carries the underlying structural error (``cause``) and the raw block
    that was extracted (``raw``) so the caller can log it or retry.
    """

    def __init__(
        self,
        message: str,
        raw: str = "",
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.raw = raw
        self.cause = cause

    def __str__(self) -> str:
        base = super().__str__()
        if self.cause is not None:
            return f"{base} ({type(self.cause).__name__}: {self.cause})"
        return base


class TransportError(CodeScoutError):
    """The reasoning backend could not be reached or returned a failure."""


class FilesystemReadError(CodeScoutError):
    """Reading a file from the working tree failed."""

    def __init__(self, path: str, message: str = "") -> None:
        self.path = path
        super().__init__(message or f"Could not read file: {path}")


class IndexLoadError(CodeScoutError):
    """A tag index dump could not be loaded."""

    def __init__(self, path: str, message: str = "") -> None:
        self.path = path
        super().__init__(message or f"Could not load tag index: {path}")
