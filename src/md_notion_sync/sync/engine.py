"""Sync engine: decides create / update / skip for each document.

For one source path the ``SyncEngine``:

1. Resolves the document (missing -> ``DocumentNotFoundError``).
2. Looks up the page mapping for the path.
3. Skips when the mapping's checksum equals the document fingerprint.
4. In dry-run mode, reports what would happen and stops.
5. Creates a page when there is no mapping, when the mapped page is gone
   (deleted or archived out-of-band), or when ids are not preserved.
6. Otherwise replaces the mapped page's blocks wholesale.
7. Saves the mapping (new checksum + timestamp) before returning.
8. Reconciles the document <-> page back-links.

``run`` / ``run_async`` apply this to many paths with per-document
error isolation and a bounded number of documents in flight.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timezone

from ..core.async_utils import map_limited
from ..converters.common import ConversionResult
from ..converters.markdown_to_blocks import convert_with_warnings
from ..errors import DocumentNotFoundError, PageNotFoundError, SyncError
from .documents import DocumentSource
from .links import LinkReconciler, notion_page_url
from .models import (
    DRY_RUN_PAGE_ID,
    Document,
    EditAccess,
    PageMapping,
    PageMetadata,
    PagePermissions,
    RemotePage,
    SyncOutcome,
    SyncReport,
    SyncResult,
    SyncStatus,
)
from .state import MappingStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_PARALLEL = 3


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SyncEngine:
    """Sync markdown documents to Notion pages.

    All collaborators are injected; see ``factory.create_engine`` for the
    production wiring.

    Args:
        documents: Resolves and saves source documents.
        gateway: Remote page gateway (``find_by_id`` / ``create`` /
            ``update``).
        mappings: Page-id mapping store.
        link_reconciler: Back-link maintenance; ``None`` disables it.
        converter: Markdown body -> blocks plus lossy-conversion warnings.
        page_permissions: Edit access for synced pages.
        preserve_ids: When false, changed documents always get a new page.
        page_url: Maps a page id to its URL for reports.
        max_parallel: Documents processed concurrently by ``run``.
        last_commit: Commit SHA recorded on synced pages.
        clock: Supplies mapping timestamps.
    """

    def __init__(
        self,
        documents: DocumentSource,
        gateway,
        mappings: MappingStore,
        link_reconciler: LinkReconciler | None = None,
        converter: Callable[[str], ConversionResult] = convert_with_warnings,
        page_permissions: EditAccess = EditAccess.NONE,
        preserve_ids: bool = True,
        page_url: Callable[[str], str] = notion_page_url,
        max_parallel: int = DEFAULT_MAX_PARALLEL,
        last_commit: str | None = None,
        clock: Callable[[], datetime] = _now,
    ) -> None:
        if max_parallel < 1:
            raise ValueError("max_parallel must be at least 1")
        self.documents = documents
        self.gateway = gateway
        self.mappings = mappings
        self.link_reconciler = link_reconciler
        self.converter = converter
        self.permissions = PagePermissions(edit_access=page_permissions)
        self.preserve_ids = preserve_ids
        self.page_url = page_url
        self.max_parallel = max_parallel
        self.last_commit = last_commit
        self._clock = clock

    # ------------------------------------------------------------------
    # Single document
    # ------------------------------------------------------------------

    def sync_document(self, path: str, dry_run: bool = False) -> SyncOutcome:
        """Sync one document.

        Raises:
            DocumentNotFoundError: If *path* does not resolve to a document.
            SyncError: If a gateway call fails during create or update.
        """
        document = self.documents.find_by_path(path)
        if document is None:
            raise DocumentNotFoundError(path)

        mapping = self.mappings.find_by_path(path)

        if mapping is not None and not mapping.needs_sync(document.fingerprint):
            logger.debug("Unchanged: %s", path)
            return SyncOutcome(
                path=path,
                status=SyncStatus.UNCHANGED,
                page_id=mapping.page_id,
                url=self.page_url(mapping.page_id),
            )

        if dry_run:
            status = (
                SyncStatus.UPDATED
                if mapping is not None and self.preserve_ids
                else SyncStatus.CREATED
            )
            logger.info("[dry-run] Would %s %s", _verb(status), path)
            return SyncOutcome(path=path, status=status, page_id=DRY_RUN_PAGE_ID)

        try:
            page, status, warnings = self._write_page(document, mapping)
        except SyncError:
            raise
        except Exception as exc:
            raise SyncError(f"{path}: {exc}", cause=exc) from exc

        synced_at = self._clock()
        if mapping is None:
            mapping = PageMapping(
                file_path=path,
                page_id=page.id,
                checksum=document.fingerprint,
                last_synced=synced_at,
            )
        else:
            mapping = mapping.with_updated_sync(
                document.fingerprint, synced_at
            ).model_copy(update={"page_id": page.id})
        self.mappings.save(mapping)
        logger.info("%s %s -> %s", status.value.capitalize(), path, page.id)

        if self.link_reconciler is not None:
            try:
                self.link_reconciler.update_links(document, page)
            except Exception as exc:
                warnings.append(f"Link update failed: {exc}")
                logger.warning("%s: %s", path, warnings[-1])

        return SyncOutcome(
            path=path,
            status=status,
            page_id=page.id,
            url=page.metadata.notion_url or self.page_url(page.id),
            warning="; ".join(warnings) or None,
        )

    def _write_page(
        self, document: Document, mapping: PageMapping | None
    ) -> tuple[RemotePage, SyncStatus, list[str]]:
        conversion = self.converter(document.content)
        for warning in conversion.warnings:
            logger.warning("%s: %s", document.path, warning)
        blocks = conversion.blocks

        existing = None
        if mapping is not None and self.preserve_ids:
            existing = self.gateway.find_by_id(mapping.page_id)
            if existing is None:
                logger.warning(
                    "Page %s for %s is gone; recreating",
                    mapping.page_id,
                    document.path,
                )

        if existing is not None:
            page = existing.with_title(document.title).with_blocks(blocks)
            page = page.model_copy(
                update={
                    "permissions": self.permissions,
                    "metadata": page.metadata.model_copy(
                        update={
                            "source_file": document.path,
                            "last_commit": self.last_commit,
                        }
                    ),
                }
            )
            try:
                return (
                    self.gateway.update(page),
                    SyncStatus.UPDATED,
                    list(conversion.warnings),
                )
            except PageNotFoundError:
                logger.warning(
                    "Page %s disappeared during update; recreating",
                    existing.id,
                )

        new_page = RemotePage(
            title=document.title,
            blocks=tuple(blocks),
            metadata=PageMetadata(
                source_file=document.path,
                last_commit=self.last_commit,
            ),
            permissions=self.permissions,
        )
        return (
            self.gateway.create(new_page),
            SyncStatus.CREATED,
            list(conversion.warnings),
        )

    # ------------------------------------------------------------------
    # Many documents
    # ------------------------------------------------------------------

    def run(self, paths: Iterable[str], dry_run: bool = False) -> SyncReport:
        """Sync *paths*; one document's failure never stops the others."""
        return asyncio.run(self.run_async(paths, dry_run=dry_run))

    async def run_async(
        self, paths: Iterable[str], dry_run: bool = False
    ) -> SyncReport:
        """Async variant of :meth:`run` for callers already in a loop."""
        started_at = _now().isoformat()
        paths = list(paths)
        logger.info(
            "Syncing %d document(s)%s (max_parallel=%d)",
            len(paths),
            " [dry-run]" if dry_run else "",
            self.max_parallel,
        )

        def sync_one(path: str) -> SyncResult:
            try:
                return SyncResult.from_outcome(self.sync_document(path, dry_run))
            except Exception as exc:
                logger.error("Error syncing %s: %s", path, exc)
                return SyncResult(
                    file=path,
                    status=SyncStatus.ERROR,
                    error=str(exc),
                )

        results = await map_limited(sync_one, paths, self.max_parallel)
        return SyncReport(
            dry_run=dry_run,
            results=results,
            started_at=started_at,
            completed_at=_now().isoformat(),
        )


def _verb(status: SyncStatus) -> str:
    return "create" if status == SyncStatus.CREATED else "update"
