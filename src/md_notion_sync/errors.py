"""Error taxonomy shared by the sync core and its collaborators.

Per-document errors (``DocumentNotFoundError``, ``SyncError``) are caught
at the orchestration boundary and recorded in the report.  Invocation-level
errors (``InvalidConfigurationError``, ``MappingStoreError``) abort before
any document is processed.
"""

from __future__ import annotations


class DocSyncError(Exception):
    """Base class for all md-notion-sync errors."""


class DocumentNotFoundError(DocSyncError):
    """The source path has no resolvable document."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Document not found: {path}")


class PageNotFoundError(DocSyncError):
    """The remote page is missing, archived, or otherwise unreachable."""

    def __init__(self, page_id: str) -> None:
        self.page_id = page_id
        super().__init__(f"Page not found: {page_id}")


class InvalidConfigurationError(DocSyncError, ValueError):
    """Malformed invocation configuration."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Invalid configuration: {message}")


class SyncError(DocSyncError):
    """A remote write failed while creating or updating a page."""

    def __init__(
        self, message: str, cause: BaseException | None = None
    ) -> None:
        self.cause = cause
        super().__init__(f"Sync failed: {message}")


class MappingStoreError(DocSyncError):
    """The page-id mapping file cannot be read or written."""
