"""Page-id mapping persistence layer.

Tracks which Notion page each source path was synced to, together with
the fingerprint of the content last pushed and the time of that push.
The default store is a JSON document (``.notion-page-ids.json``)::

    {
      "version": "1.0",
      "mappings": {
        "docs/a.md": {
          "page_id": "…",
          "last_synced": "2026-01-01T00:00:00+00:00",
          "checksum": "sha256:…"
        }
      }
    }

Key design choices:

* **Fail closed** -- an unreadable or malformed file raises
  ``MappingStoreError`` instead of being treated as empty, because an
  empty mapping set would recreate every page.  A missing file is a
  legitimate first run and yields an empty store.
* **Atomic writes** -- ``save()`` writes to a temp file then calls
  ``os.replace()`` so readers never see partial data.
* **Write-through** -- every ``save()``/``delete()`` is persisted before
  returning, under a lock shared by concurrent document syncs.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from ..errors import MappingStoreError
from .models import PageMapping

logger = logging.getLogger(__name__)

MAPPING_FORMAT_VERSION = "1.0"


class MappingStore(Protocol):
    """Contract the sync engine depends on."""

    def find_by_path(self, path: str) -> PageMapping | None: ...

    def save(self, mapping: PageMapping) -> None: ...

    def delete(self, path: str) -> bool: ...

    def find_all(self) -> list[PageMapping]: ...


class JsonMappingStore:
    """File-backed ``MappingStore``.

    Args:
        path: Location of the mapping JSON file.  Parent directories are
            created on first write.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._data: dict | None = None

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # MappingStore contract
    # ------------------------------------------------------------------

    def find_by_path(self, path: str) -> PageMapping | None:
        with self._lock:
            entry = self._load()["mappings"].get(path)
        if entry is None:
            return None
        return self._to_mapping(path, entry)

    def save(self, mapping: PageMapping) -> None:
        """Upsert *mapping* keyed by ``file_path`` and persist immediately."""
        last_synced = mapping.last_synced or datetime.now(timezone.utc)
        with self._lock:
            data = self._copy()
            data["mappings"][mapping.file_path] = {
                "page_id": mapping.page_id,
                "last_synced": last_synced.isoformat(),
                "checksum": mapping.checksum,
            }
            self._write(data)
            self._data = data
        logger.debug(
            "Saved mapping %s -> %s", mapping.file_path, mapping.page_id
        )

    def delete(self, path: str) -> bool:
        """Remove the mapping for *path*.  Returns ``False`` if absent."""
        with self._lock:
            data = self._copy()
            if data["mappings"].pop(path, None) is None:
                return False
            self._write(data)
            self._data = data
        return True

    def find_all(self) -> list[PageMapping]:
        with self._lock:
            entries = dict(self._load()["mappings"])
        return [
            self._to_mapping(path, entry)
            for path, entry in sorted(entries.items())
        ]

    def load(self) -> None:
        """Read the file now, raising ``MappingStoreError`` if corrupt.

        Entry points call this before processing any document so a bad
        mapping file aborts the whole invocation up front.
        """
        with self._lock:
            self._load()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load(self) -> dict:
        """Return the cached data, reading the file on first use."""
        if self._data is not None:
            return self._data

        if not self._path.exists():
            self._data = {"version": MAPPING_FORMAT_VERSION, "mappings": {}}
            return self._data

        try:
            with open(self._path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise MappingStoreError(
                f"Cannot read mapping file {self._path}: {exc}"
            ) from exc

        mappings = data.get("mappings") if isinstance(data, dict) else None
        if not isinstance(mappings, dict):
            raise MappingStoreError(
                f"Malformed mapping file {self._path}: "
                "expected an object with a 'mappings' object"
            )
        for file_path, entry in mappings.items():
            if not self._valid_entry(entry):
                raise MappingStoreError(
                    f"Malformed mapping entry for '{file_path}' "
                    f"in {self._path}"
                )

        data.setdefault("version", MAPPING_FORMAT_VERSION)
        self._data = data
        return data

    @staticmethod
    def _valid_entry(entry) -> bool:
        """``page_id`` is a non-empty string; optional fields are strings."""
        if not isinstance(entry, dict):
            return False
        page_id = entry.get("page_id")
        if not isinstance(page_id, str) or not page_id:
            return False
        if not isinstance(entry.get("checksum", ""), str):
            return False
        last_synced = entry.get("last_synced")
        return last_synced is None or isinstance(last_synced, str)

    def _copy(self) -> dict:
        """Shallow copy so a failed write leaves the cache untouched."""
        data = self._load()
        return {**data, "mappings": dict(data["mappings"])}

    def _write(self, data: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self._path.parent), suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2)
                fh.write("\n")
            os.replace(tmp_path, self._path)
        except BaseException as exc:
            # Clean up temp file on any failure.
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            if isinstance(exc, OSError):
                raise MappingStoreError(
                    f"Cannot write mapping file {self._path}: {exc}"
                ) from exc
            raise

    @staticmethod
    def _to_mapping(path: str, entry: dict) -> PageMapping:
        raw_synced = entry.get("last_synced")
        last_synced = None
        if raw_synced:
            try:
                last_synced = datetime.fromisoformat(
                    str(raw_synced).replace("Z", "+00:00")
                )
            except ValueError:
                logger.warning(
                    "Ignoring invalid last_synced %r for %s",
                    raw_synced,
                    path,
                )
        return PageMapping(
            file_path=path,
            page_id=entry["page_id"],
            checksum=entry.get("checksum", ""),
            last_synced=last_synced,
        )
