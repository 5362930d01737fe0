"""Shared pytest fixtures for md-notion-sync tests."""

from __future__ import annotations

import threading
import pytest

from md_notion_sync.config import Config
from md_notion_sync.errors import PageNotFoundError
from md_notion_sync.sync.models import Document, PageMapping, RemotePage


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require a real Notion workspace",
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------


class FakeGateway:
    """Page gateway storing pages in a dict.

    ``fail_on`` holds titles whose create/update raises ``RuntimeError``.
    """

    def __init__(self, pages: dict[str, RemotePage] | None = None) -> None:
        self.pages: dict[str, RemotePage] = dict(pages or {})
        self.calls: list[tuple[str, str]] = []
        self.fail_on: set[str] = set()
        self._next_id = 1
        self._lock = threading.Lock()

    def find_by_id(self, page_id: str) -> RemotePage | None:
        self.calls.append(("find_by_id", page_id))
        return self.pages.get(page_id)

    def create(self, page: RemotePage) -> RemotePage:
        self.calls.append(("create", page.title))
        if page.title in self.fail_on:
            raise RuntimeError(f"boom: {page.title}")
        with self._lock:
            page_id = f"page-{self._next_id}"
            self._next_id += 1
        created = page.model_copy(update={"id": page_id})
        self.pages[page_id] = created
        return created

    def update(self, page: RemotePage) -> RemotePage:
        self.calls.append(("update", page.id))
        if page.title in self.fail_on:
            raise RuntimeError(f"boom: {page.title}")
        if page.id not in self.pages:
            raise PageNotFoundError(page.id)
        self.pages[page.id] = page
        return page

    def validate_connection(self) -> str:
        self.calls.append(("validate_connection", ""))
        return "Docs Bot"

    @property
    def write_calls(self) -> list[tuple[str, str]]:
        return [c for c in self.calls if c[0] in ("create", "update")]


class InMemoryMappingStore:
    def __init__(self, mappings: list[PageMapping] | None = None) -> None:
        self.mappings = {m.file_path: m for m in mappings or []}
        self.saves: list[PageMapping] = []

    def find_by_path(self, path: str) -> PageMapping | None:
        return self.mappings.get(path)

    def save(self, mapping: PageMapping) -> None:
        self.saves.append(mapping)
        self.mappings[mapping.file_path] = mapping

    def delete(self, path: str) -> bool:
        return self.mappings.pop(path, None) is not None

    def find_all(self) -> list[PageMapping]:
        return [self.mappings[k] for k in sorted(self.mappings)]


class InMemoryDocumentSource:
    def __init__(self, files: dict[str, str] | None = None) -> None:
        self.documents: dict[str, Document] = {}
        self.saved: list[Document] = []
        for path, content in (files or {}).items():
            self.put(path, content)

    def put(self, path: str, content: str, **metadata) -> Document:
        existing = self.documents.get(path)
        merged = {**(existing.metadata if existing else {}), **metadata}
        document = Document.from_content(path, content, merged)
        self.documents[path] = document
        return document

    def find_by_path(self, path: str) -> Document | None:
        return self.documents.get(path)

    def save(self, document: Document) -> None:
        self.saved.append(document)
        self.documents[document.path] = document


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def mappings() -> InMemoryMappingStore:
    return InMemoryMappingStore()


@pytest.fixture
def documents() -> InMemoryDocumentSource:
    return InMemoryDocumentSource()


@pytest.fixture
def mock_config(tmp_path) -> Config:
    """A valid Config rooted in a temp directory."""
    return Config(
        notion_token="secret_test",
        parent_page_id="0123456789abcdef0123456789abcdef",
        source_root=str(tmp_path),
        mapping_file=str(tmp_path / ".notion-page-ids.json"),
    )
