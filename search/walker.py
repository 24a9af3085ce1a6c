"""
search/walker.py — Working-tree Filesystem Access

Used only by the File-tool fallback when the tag index knows nothing
about the requested file. Two operations:

    find_file(root, query)  best single match for a file name, honoring
                            the root .gitignore and never entering .git
    read_file_bytes(path)   raw bytes, or FilesystemReadError
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pathspec import GitIgnoreSpec

from exceptions import FilesystemReadError
from observability.logger import get_logger

log = get_logger(__name__)

_ALWAYS_SKIPPED_DIRS = frozenset({".git"})

# Match quality, lower is better
_EXACT_NAME = 0
_EXACT_STEM = 1
_SUBSTRING = 2


def load_gitignore(root: Path) -> Optional[GitIgnoreSpec]:
    gitignore = root / ".gitignore"
    if not gitignore.is_file():
        return None
    try:
        lines = gitignore.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError as e:
        log.warning("walker.gitignore_unreadable", path=str(gitignore), error=str(e))
        return None
    return GitIgnoreSpec.from_lines(lines)


def _rank(rel_path: str, query: str) -> Optional[int]:
    """
    Score one candidate. Queries containing a slash are matched against the
    relative path, bare names against the file name. The extension is
    optional.
    """
    target = rel_path if "/" in query else rel_path.rsplit("/", 1)[-1]
    if target == query:
        return _EXACT_NAME
    stem = target.rsplit(".", 1)[0] if "." in target.rsplit("/", 1)[-1] else target
    if stem == query:
        return _EXACT_STEM
    if query.lower() in target.lower():
        return _SUBSTRING
    return None


def find_file(root: str | Path, query: str) -> Optional[Path]:
    """
    Return the best-matching file under ``root`` for ``query``, or None.

    Exact file name beats exact stem beats substring; ties go to the first
    candidate in sorted walk order.
    """
    root = Path(root)
    query = query.strip().strip("/")
    if not query or not root.is_dir():
        return None

    ignore = load_gitignore(root)
    best: Optional[tuple[int, Path]] = None

    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = Path(dirpath).relative_to(root).as_posix()
        rel_dir = "" if rel_dir == "." else rel_dir

        kept = []
        for d in sorted(dirnames):
            if d in _ALWAYS_SKIPPED_DIRS:
                continue
            rel = f"{rel_dir}/{d}" if rel_dir else d
            if ignore is not None and ignore.match_file(rel + "/"):
                continue
            kept.append(d)
        dirnames[:] = kept  # prune in place so os.walk skips ignored dirs

        for name in sorted(filenames):
            rel = f"{rel_dir}/{name}" if rel_dir else name
            if ignore is not None and ignore.match_file(rel):
                continue
            rank = _rank(rel, query)
            if rank is None:
                continue
            if best is None or rank < best[0]:
                best = (rank, Path(dirpath) / name)
                if rank == _EXACT_NAME:
                    return best[1]

    return best[1] if best else None


def read_file_bytes(path: str | Path) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise FilesystemReadError(str(path), f"Could not read {path}: {e}") from e
