"""Source file discovery.

Finds the markdown documents a run should process:

1. **Scan** -- every ``*.md`` file below the source root, skipping
   hidden directories (``.git``, ``.github`` ...) and ``node_modules``.
2. **Include** -- keep paths matching at least one ``files_pattern`` glob
   (comma-separated; ``**/`` also matches files at the root).
3. **Exclude** -- drop paths matching any exclude glob.

Paths are returned relative to the source root, POSIX-style, sorted.
"""

from __future__ import annotations

import fnmatch
import logging
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_FILES_PATTERN = "**/*.md"

_SKIPPED_DIRS = frozenset({"node_modules"})


def split_patterns(value: str | Iterable[str] | None) -> list[str]:
    """Normalise a comma-separated string or an iterable into globs."""
    if value is None:
        return []
    items = value.split(",") if isinstance(value, str) else list(value)
    return [item.strip() for item in items if item and item.strip()]


def matches_pattern(path: str, pattern: str) -> bool:
    """Glob match where a leading ``**/`` may match zero directories."""
    if pattern.startswith("./"):
        pattern = pattern[2:]
    if fnmatch.fnmatch(path, pattern):
        return True
    while pattern.startswith("**/"):
        pattern = pattern[3:]
        if fnmatch.fnmatch(path, pattern):
            return True
    return False


def matches_any(path: str, patterns: Iterable[str]) -> bool:
    return any(matches_pattern(path, p) for p in patterns)


def discover_documents(
    source_root: Path,
    files_pattern: str | Iterable[str] = DEFAULT_FILES_PATTERN,
    exclude: str | Iterable[str] | None = None,
) -> list[str]:
    """Scan *source_root* for markdown files selected by the globs.

    Args:
        source_root: Directory to scan.
        files_pattern: Include glob(s).
        exclude: Exclude glob(s).

    Returns:
        Sorted list of relative paths (POSIX-style forward slashes).
    """
    if not source_root.is_dir():
        logger.warning("Source root %s is not a directory", source_root)
        return []

    includes = split_patterns(files_pattern) or [DEFAULT_FILES_PATTERN]
    excludes = split_patterns(exclude)

    result: list[str] = []
    for path in source_root.rglob("*.md"):
        if not path.is_file():
            continue
        rel_parts = path.relative_to(source_root).parts
        if any(
            part.startswith(".") or part in _SKIPPED_DIRS
            for part in rel_parts[:-1]
        ):
            continue
        # Normalise to forward slashes for consistent matching
        rel = "/".join(rel_parts)
        if not matches_any(rel, includes):
            continue
        if matches_any(rel, excludes):
            logger.debug("Excluded %s", rel)
            continue
        result.append(rel)

    return sorted(result)
