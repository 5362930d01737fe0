"""Offline sync status: compares documents with their recorded mappings.

No API calls are made, so the status reflects what the next sync *would*
do, not what the pages currently contain.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from .documents import DocumentSource
from .state import MappingStore


class DocumentState(str, Enum):
    NEW = "new"
    MODIFIED = "modified"
    SYNCED = "synced"
    MISSING = "missing"


class StatusEntry(BaseModel):
    file: str
    state: DocumentState
    page_id: str | None = None
    last_synced: datetime | None = None

    model_config = {"frozen": True}


class StatusSummary(BaseModel):
    entries: list[StatusEntry] = []

    model_config = {"frozen": True}

    def with_state(self, state: DocumentState) -> list[StatusEntry]:
        return [e for e in self.entries if e.state == state]

    @property
    def last_synced(self) -> datetime | None:
        stamps = [e.last_synced for e in self.entries if e.last_synced]
        return max(stamps) if stamps else None

    @property
    def pending(self) -> int:
        return len(self.with_state(DocumentState.NEW)) + len(
            self.with_state(DocumentState.MODIFIED)
        )


def collect_status(
    documents: DocumentSource,
    mappings: MappingStore,
    paths: Iterable[str],
) -> StatusSummary:
    """Classify each discovered path, plus mapped paths no longer present.

    A mapped path outside *paths* whose document is gone is reported as
    ``MISSING``; its page is left alone by sync.
    """
    entries: list[StatusEntry] = []
    seen: set[str] = set()
    for path in paths:
        seen.add(path)
        document = documents.find_by_path(path)
        mapping = mappings.find_by_path(path)
        if document is None:
            state = DocumentState.MISSING
        elif mapping is None:
            state = DocumentState.NEW
        elif mapping.needs_sync(document.fingerprint):
            state = DocumentState.MODIFIED
        else:
            state = DocumentState.SYNCED
        entries.append(
            StatusEntry(
                file=path,
                state=state,
                page_id=mapping.page_id if mapping else None,
                last_synced=mapping.last_synced if mapping else None,
            )
        )

    for mapping in mappings.find_all():
        if mapping.file_path in seen:
            continue
        if documents.find_by_path(mapping.file_path) is not None:
            continue
        entries.append(
            StatusEntry(
                file=mapping.file_path,
                state=DocumentState.MISSING,
                page_id=mapping.page_id,
                last_synced=mapping.last_synced,
            )
        )
    return StatusSummary(entries=entries)


def format_status(summary: StatusSummary) -> str:
    last = summary.last_synced
    lines = [
        "Notion sync status",
        f"  Last sync:     {last.isoformat() if last else 'never'}",
        f"  Tracked files: {sum(1 for e in summary.entries if e.page_id)}",
        f"  Pending:       {summary.pending}",
    ]
    for state in (
        DocumentState.NEW,
        DocumentState.MODIFIED,
        DocumentState.MISSING,
    ):
        entries = summary.with_state(state)
        if not entries:
            continue
        lines.append("")
        lines.append(f"{state.value.capitalize()}:")
        lines.extend(f"  {e.file}" for e in entries)
    return "\n".join(lines)


def status_to_json(summary: StatusSummary) -> dict:
    last = summary.last_synced
    return {
        "last_sync": last.isoformat() if last else None,
        "tracked_files": sum(1 for e in summary.entries if e.page_id),
        "pending": summary.pending,
        "files": [
            {
                "file": e.file,
                "state": e.state.value,
                "page_id": e.page_id,
            }
            for e in summary.entries
        ],
    }
