"""Bidirectional link reconciliation.

After a document is synced, two back-references are maintained:

- **yaml** -- the page URL (plus a ``last_synced`` timestamp) is merged
  into the document's front-metadata and the document is saved.
- **callout** -- a "View source on GitHub" callout is prepended to the
  page and the page is updated through the gateway.

Each side is only written while its link is missing, so reconciling an
already-linked pair performs no writes.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timezone
from enum import Enum
from urllib.parse import quote

from pydantic import BaseModel

from ..errors import InvalidConfigurationError
from .documents import DocumentSource
from .models import Document, RemotePage

logger = logging.getLogger(__name__)

NOTION_BASE_URL = "https://www.notion.so"


class LinkStyle(str, Enum):
    YAML = "yaml"
    CALLOUT = "callout"


DEFAULT_LINK_STYLES = frozenset({LinkStyle.YAML, LinkStyle.CALLOUT})


def parse_link_styles(value: str | Iterable[str]) -> frozenset[LinkStyle]:
    """Parse ``"yaml,callout"`` (or an iterable of names) into styles.

    Raises:
        InvalidConfigurationError: On an unknown style name.
    """
    items = value.split(",") if isinstance(value, str) else value
    styles = set()
    for item in items:
        name = item.strip().lower()
        if not name:
            continue
        try:
            styles.add(LinkStyle(name))
        except ValueError:
            valid = ", ".join(s.value for s in LinkStyle)
            raise InvalidConfigurationError(
                f"Unknown link style '{item.strip()}' (expected: {valid})"
            ) from None
    return frozenset(styles)


def notion_page_url(page_id: str) -> str:
    """Canonical browser URL of a Notion page."""
    return f"{NOTION_BASE_URL}/{page_id.replace('-', '')}"


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


class GitHubContext(BaseModel):
    """Repository coordinates used to build source links.

    Attributes:
        repository: ``owner/name``.
        ref: Branch or tag name.
        server_url: GitHub base URL (GitHub Enterprise supported).
        sha: Commit being synced, if known.
        path_prefix: Repository directory document paths are relative to.
    """

    repository: str
    ref: str = "main"
    server_url: str = "https://github.com"
    sha: str | None = None
    path_prefix: str = ""

    model_config = {"frozen": True}

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None
    ) -> GitHubContext | None:
        """Build from the variables GitHub Actions sets.

        Returns ``None`` when ``GITHUB_REPOSITORY`` is not set.
        """
        env = os.environ if environ is None else environ
        repository = env.get("GITHUB_REPOSITORY", "").strip()
        if not repository:
            return None
        return cls(
            repository=repository,
            ref=env.get("GITHUB_REF_NAME", "").strip() or "main",
            server_url=env.get("GITHUB_SERVER_URL", "").strip()
            or "https://github.com",
            sha=env.get("GITHUB_SHA") or None,
        )

    def blob_url(self, path: str) -> str:
        """URL of *path* at ``ref`` in the repository web UI."""
        prefix = self.path_prefix.strip("/")
        while prefix.startswith("./"):
            prefix = prefix[2:]
        if prefix and prefix != ".":
            path = f"{prefix}/{path}"
        return (
            f"{self.server_url.rstrip('/')}/{self.repository}"
            f"/blob/{quote(self.ref)}/{quote(path)}"
        )


class LinkReconciler:
    """Maintain the document <-> page back-references.

    Args:
        documents: Source used to persist front-metadata changes.
        gateway: Page gateway used to persist the source callout.
        styles: Which back-references to maintain.
        github: Repository context; without it no callout is written.
        page_url: Maps a page id to its URL.
        clock: Supplies the ``last_synced`` timestamp.
    """

    def __init__(
        self,
        documents: DocumentSource,
        gateway,
        styles: Iterable[LinkStyle] = DEFAULT_LINK_STYLES,
        github: GitHubContext | None = None,
        page_url: Callable[[str], str] = notion_page_url,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self._documents = documents
        self._gateway = gateway
        self._styles = frozenset(styles)
        self._github = github
        self._page_url = page_url
        self._clock = clock

    @property
    def styles(self) -> frozenset[LinkStyle]:
        return self._styles

    def update_links(
        self, document: Document, page: RemotePage
    ) -> tuple[Document, RemotePage]:
        """Write whichever back-references are missing or stale.

        Returns the (possibly updated) document and page.
        """
        if LinkStyle.YAML in self._styles:
            document = self._link_document(document, page)
        if LinkStyle.CALLOUT in self._styles:
            page = self._link_page(document, page)
        return document, page

    def _link_document(self, document: Document, page: RemotePage) -> Document:
        url = self._page_url(page.id)
        if document.notion_url == url:
            return document
        if document.has_notion_url:
            logger.info(
                "Replacing stale link %s in %s", document.notion_url, document.path
            )
        updated = document.with_metadata(
            notion_url=url,
            last_synced=self._clock().isoformat(),
        )
        self._documents.save(updated)
        logger.info("Linked %s -> %s", document.path, url)
        return updated

    def _link_page(self, document: Document, page: RemotePage) -> RemotePage:
        if page.metadata.github_url:
            return page
        if self._github is None:
            logger.debug(
                "No GitHub context; skipping source link for %s",
                document.path,
            )
            return page
        url = self._github.blob_url(document.path)
        updated = self._gateway.update(page.with_github_link(url))
        logger.info("Added source link to page %s", page.id)
        return updated
