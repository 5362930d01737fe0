"""Markdown to Notion sync core.

Public API for pushing local Markdown documents to Notion pages and
keeping each source path bound to the same page across runs.

Architecture
------------
Change detection is **fingerprint based**: each document body is hashed
and compared with the checksum recorded at its last sync.  Unchanged
documents cost no API calls; changed documents have their page's block
sequence replaced wholesale.  Remote edits are never pulled back.

Modules:

- ``engine``      -- ``SyncEngine``: create / update / skip per document.
- ``state``       -- ``JsonMappingStore``: path -> page id persistence.
- ``documents``   -- ``FileSystemDocumentSource``: files + front-metadata.
- ``links``       -- ``LinkReconciler``: document <-> page back-links.
- ``discovery``   -- ``discover_documents``: glob-based file selection.
- ``models``      -- ``Document``, ``RemotePage``, ``PageMapping``,
  ``SyncOutcome``, ``SyncReport``: core data contracts.
- ``blocks``      -- typed Notion block variants.
- ``fingerprint`` -- content digest used as an equality token.
- ``reporter``    -- human-readable, JSON and GitHub Actions output.

Usage example
-------------
::

    from pathlib import Path
    from md_notion_sync.core.client import NotionPageGateway
    from md_notion_sync.sync import (
        FileSystemDocumentSource,
        JsonMappingStore,
        SyncEngine,
        discover_documents,
        format_sync_report,
    )

    root = Path("docs")
    engine = SyncEngine(
        documents=FileSystemDocumentSource(root),
        gateway=NotionPageGateway(token, parent_page_id=parent_id),
        mappings=JsonMappingStore(Path(".notion-page-ids.json")),
    )

    # Dry-run first to preview changes
    preview = engine.run(discover_documents(root), dry_run=True)
    print(format_sync_report(preview))

    report = engine.run(discover_documents(root))
    print(format_sync_report(report))
"""

from .discovery import discover_documents
from .documents import FileSystemDocumentSource
from .engine import SyncEngine
from .fingerprint import fingerprint
from .links import GitHubContext, LinkReconciler, LinkStyle, notion_page_url
from .models import (
    Document,
    EditAccess,
    PageMapping,
    RemotePage,
    SyncOutcome,
    SyncReport,
    SyncResult,
    SyncStatus,
)
from .reporter import (
    format_dry_run_preview,
    format_sync_report,
    report_to_json,
    write_action_outputs,
)
from .state import JsonMappingStore, MappingStore

__all__ = [
    "Document",
    "EditAccess",
    "FileSystemDocumentSource",
    "GitHubContext",
    "JsonMappingStore",
    "LinkReconciler",
    "LinkStyle",
    "MappingStore",
    "PageMapping",
    "RemotePage",
    "SyncEngine",
    "SyncOutcome",
    "SyncReport",
    "SyncResult",
    "SyncStatus",
    "discover_documents",
    "fingerprint",
    "format_dry_run_preview",
    "format_sync_report",
    "notion_page_url",
    "report_to_json",
    "write_action_outputs",
]
