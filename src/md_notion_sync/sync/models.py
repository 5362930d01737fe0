"""Pydantic models for the sync core.

Defines the data contracts used across all sync modules:

- ``Document``: one source file at a point in time.
- ``RemotePage``: the Notion page a document syncs to.
- ``PageMapping``: durable join between a source path and a page id.
- ``SyncStatus`` / ``SyncOutcome``: result of syncing one document.
- ``SyncResult`` / ``SyncReport``: report entries for a full run.

All models are frozen (immutable).  "Mutations" are ``with_*`` methods
returning a new value.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import PurePosixPath
from typing import Any

from pydantic import BaseModel, Field

from .blocks import Block, github_link_callout
from .fingerprint import fingerprint

DRY_RUN_PAGE_ID = "dry-run"


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------


class Document(BaseModel):
    """A markdown source file.

    Attributes:
        path: POSIX path relative to the source root (mapping key).
        content: Body text with the front-metadata block removed.
        metadata: Front-metadata, in file order.
        fingerprint: Digest of ``content``; an opaque equality token.
    """

    path: str
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    fingerprint: str

    model_config = {"frozen": True}

    @classmethod
    def from_content(
        cls,
        path: str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> Document:
        """Build a document, fingerprinting the body only."""
        return cls(
            path=path,
            content=content,
            metadata=dict(metadata or {}),
            fingerprint=fingerprint(content.encode("utf-8")),
        )

    @property
    def title(self) -> str:
        """``metadata["title"]``, else the file name without extension."""
        title = self.metadata.get("title")
        if title is not None and str(title).strip():
            return str(title).strip()
        name = PurePosixPath(self.path).name
        stem = PurePosixPath(name).stem
        return stem or name or "Untitled"

    @property
    def notion_url(self) -> str | None:
        url = self.metadata.get("notion_url")
        return str(url) if url else None

    @property
    def has_notion_url(self) -> bool:
        return self.notion_url is not None

    def with_metadata(self, **updates: Any) -> Document:
        """Return a copy with *updates* merged into the metadata.

        The fingerprint is carried over: metadata is not part of identity.
        """
        return self.model_copy(
            update={"metadata": {**self.metadata, **updates}}
        )

    def with_notion_url(self, url: str) -> Document:
        return self.with_metadata(notion_url=url)


# ---------------------------------------------------------------------------
# Remote page
# ---------------------------------------------------------------------------


class EditAccess(str, Enum):
    """Edit access granted on a synced page, most restrictive first."""

    NONE = "none"
    READ = "read"
    COMMENT = "comment"
    EDIT = "edit"
    FULL = "full"


class PagePermissions(BaseModel):
    edit_access: EditAccess = EditAccess.NONE

    model_config = {"frozen": True}

    @property
    def is_read_only(self) -> bool:
        return self.edit_access == EditAccess.NONE


class PageMetadata(BaseModel):
    """Source-side facts recorded alongside a page.

    Attributes:
        source_file: Document path the page was built from.
        github_url: Link back to the source file, once written to the page.
        notion_url: Canonical URL of the page.
        last_commit: Commit SHA the page content was synced from.
    """

    source_file: str | None = None
    github_url: str | None = None
    notion_url: str | None = None
    last_commit: str | None = None

    model_config = {"frozen": True}


class RemotePage(BaseModel):
    """A Notion page.

    ``id`` is empty until the gateway creates the page and never changes
    afterwards for the same source path.
    """

    id: str = ""
    title: str
    blocks: tuple[Block, ...] = ()
    metadata: PageMetadata = Field(default_factory=PageMetadata)
    permissions: PagePermissions = Field(default_factory=PagePermissions)

    model_config = {"frozen": True}

    @property
    def is_read_only(self) -> bool:
        return self.permissions.is_read_only

    def with_blocks(self, blocks: tuple[Block, ...] | list[Block]) -> RemotePage:
        """Replace the block sequence wholesale.

        A page that already links back to GitHub keeps its source callout
        as the first block.
        """
        new_blocks = tuple(blocks)
        if self.metadata.github_url:
            new_blocks = (
                github_link_callout(self.metadata.github_url),
            ) + new_blocks
        return self.model_copy(update={"blocks": new_blocks})

    def with_title(self, title: str) -> RemotePage:
        return self.model_copy(update={"title": title})

    def with_github_link(self, url: str) -> RemotePage:
        """Prepend a source callout and record *url* in the metadata."""
        return self.model_copy(
            update={
                "blocks": (github_link_callout(url),) + self.blocks,
                "metadata": self.metadata.model_copy(
                    update={"github_url": url}
                ),
            }
        )


# ---------------------------------------------------------------------------
# Mapping
# ---------------------------------------------------------------------------


class PageMapping(BaseModel):
    """Durable association between a source path and a page id."""

    file_path: str
    page_id: str
    checksum: str
    last_synced: datetime | None = None

    model_config = {"frozen": True}

    def needs_sync(self, checksum: str) -> bool:
        return self.checksum != checksum

    def with_updated_sync(
        self, checksum: str, synced_at: datetime
    ) -> PageMapping:
        return self.model_copy(
            update={"checksum": checksum, "last_synced": synced_at}
        )


# ---------------------------------------------------------------------------
# Outcomes and reports
# ---------------------------------------------------------------------------


class SyncStatus(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    ERROR = "error"


class SyncOutcome(BaseModel):
    """Result of one ``SyncEngine.sync_document`` call.

    Attributes:
        path: Source path.
        status: What the engine did (never ``ERROR``; errors are raised).
        page_id: Page id, or ``DRY_RUN_PAGE_ID`` in dry-run mode.
        url: Notion URL of the page; ``None`` in dry-run mode.
        warning: Lossy-conversion notes and link reconciliation failures,
            joined with "; "; the sync itself committed.
    """

    path: str
    status: SyncStatus
    page_id: str
    url: str | None = None
    warning: str | None = None

    model_config = {"frozen": True}


class SyncResult(BaseModel):
    """One report entry."""

    file: str
    status: SyncStatus
    page_id: str = ""
    url: str | None = None
    error: str | None = None
    warning: str | None = None

    model_config = {"frozen": True}

    @classmethod
    def from_outcome(cls, outcome: SyncOutcome) -> SyncResult:
        return cls(
            file=outcome.path,
            status=outcome.status,
            page_id=outcome.page_id,
            url=outcome.url,
            warning=outcome.warning,
        )


class SyncReport(BaseModel):
    """Aggregate report for a full sync run.

    Attributes:
        dry_run: Whether this was a dry-run (no changes applied).
        results: Per-document results, in input order.
        started_at: ISO 8601 timestamp when the run started.
        completed_at: ISO 8601 timestamp when the run completed.
    """

    dry_run: bool = False
    results: list[SyncResult] = []
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    def _with_status(self, status: SyncStatus) -> list[SyncResult]:
        return [r for r in self.results if r.status == status]

    @property
    def created(self) -> list[SyncResult]:
        return self._with_status(SyncStatus.CREATED)

    @property
    def updated(self) -> list[SyncResult]:
        return self._with_status(SyncStatus.UPDATED)

    @property
    def unchanged(self) -> list[SyncResult]:
        return self._with_status(SyncStatus.UNCHANGED)

    @property
    def errors(self) -> list[SyncResult]:
        return self._with_status(SyncStatus.ERROR)

    @property
    def synced_count(self) -> int:
        """Number of documents that did not fail."""
        return len(self.results) - len(self.errors)

    @property
    def page_urls(self) -> list[dict[str, str]]:
        """``{file, url}`` pairs for documents with a known page URL."""
        return [
            {"file": r.file, "url": r.url}
            for r in self.results
            if r.url and r.status != SyncStatus.ERROR
        ]

    def summary(self) -> str:
        """Format a short multi-line count summary."""
        lines = [
            "Sync report" + (" (dry run)" if self.dry_run else ""),
            f"  Created:   {len(self.created)}",
            f"  Updated:   {len(self.updated)}",
            f"  Unchanged: {len(self.unchanged)}",
            f"  Errors:    {len(self.errors)}",
            f"  Total:     {len(self.results)}",
        ]
        return "\n".join(lines)
