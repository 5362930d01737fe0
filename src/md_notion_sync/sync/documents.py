"""File-system document source.

Resolves source paths (relative to a root directory) to ``Document``
values and writes documents back with their front-metadata.  The
front-metadata is a leading YAML block delimited by ``---`` lines::

    ---
    title: Getting started
    notion_url: https://www.notion.so/...
    ---
    # Getting started
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Protocol

import yaml

from ..file_handler import (
    read_file_with_encoding,
    resolve_source_path,
    write_file,
)
from .models import Document

logger = logging.getLogger(__name__)

_FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(?P<meta>.*?)^---[ \t]*(?:\r?\n|\Z)",
    re.DOTALL | re.MULTILINE,
)


class DocumentSource(Protocol):
    def find_by_path(self, path: str) -> Document | None: ...

    def save(self, document: Document) -> None: ...


def parse_frontmatter(text: str, path: str = "") -> tuple[dict[str, Any], str]:
    """Split *text* into ``(metadata, body)``.

    Text without a leading ``---`` block yields empty metadata and the
    whole text as body.  A block that is not valid YAML, or not a
    mapping, is treated as body text and logged.
    """
    match = _FRONTMATTER_RE.match(text)
    if match is None:
        return {}, text

    try:
        metadata = yaml.safe_load(match.group("meta"))
    except yaml.YAMLError as e:
        logger.warning("Ignoring invalid front-metadata in %s: %s", path, e)
        return {}, text

    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        logger.warning(
            "Ignoring front-metadata in %s: expected a mapping, got %s",
            path,
            type(metadata).__name__,
        )
        return {}, text
    return {str(k): v for k, v in metadata.items()}, text[match.end():]


def render_frontmatter(metadata: dict[str, Any], body: str) -> str:
    """Inverse of :func:`parse_frontmatter`; key order is preserved."""
    if not metadata:
        return body
    meta = yaml.safe_dump(
        metadata,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )
    return f"---\n{meta}---\n{body}"


class FileSystemDocumentSource:
    """``DocumentSource`` over a directory tree.

    Args:
        base_path: Source root.  Document paths are POSIX paths relative
            to it and may not escape it.
    """

    def __init__(self, base_path: Path) -> None:
        self._base_path = Path(base_path)

    @property
    def base_path(self) -> Path:
        return self._base_path

    def find_by_path(self, path: str) -> Document | None:
        try:
            file_path = resolve_source_path(self._base_path, path)
        except ValueError as e:
            logger.warning("Rejecting document path %r: %s", path, e)
            return None
        if not file_path.is_file():
            return None

        text, encoding = read_file_with_encoding(file_path)
        if encoding != "utf-8":
            logger.debug("Read %s as %s", path, encoding)
        metadata, body = parse_frontmatter(text, path)
        return Document.from_content(path, body, metadata)

    def save(self, document: Document) -> None:
        """Write *document* back as front-metadata followed by its body.

        Raises:
            ValueError: If the document path escapes the source root.
        """
        file_path = resolve_source_path(self._base_path, document.path)
        write_file(
            file_path, render_frontmatter(document.metadata, document.content)
        )
        logger.debug("Saved document %s", document.path)
