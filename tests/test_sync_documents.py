"""Tests for front-metadata handling and the file-system document source."""

from __future__ import annotations

import logging

import pytest

from md_notion_sync.sync.documents import (
    FileSystemDocumentSource,
    parse_frontmatter,
    render_frontmatter,
)
from md_notion_sync.sync.models import Document


class TestParseFrontmatter:
    def test_no_frontmatter(self):
        assert parse_frontmatter("# Title\n\nBody") == ({}, "# Title\n\nBody")

    def test_basic(self):
        text = "---\ntitle: Intro\ntags: [a, b]\n---\n# Intro\n"
        metadata, body = parse_frontmatter(text)
        assert metadata == {"title": "Intro", "tags": ["a", "b"]}
        assert body == "# Intro\n"

    def test_crlf_delimiters(self):
        metadata, body = parse_frontmatter("---\r\ntitle: X\r\n---\r\nbody")
        assert metadata == {"title": "X"}
        assert body == "body"

    def test_empty_block(self):
        assert parse_frontmatter("---\n---\nbody") == ({}, "body")

    def test_block_at_end_of_file(self):
        assert parse_frontmatter("---\ntitle: X\n---") == ({"title": "X"}, "")

    def test_invalid_yaml_kept_as_body(self, caplog):
        text = "---\ntitle: [unclosed\n---\nbody"
        with caplog.at_level(logging.WARNING):
            metadata, body = parse_frontmatter(text, "a.md")
        assert metadata == {}
        assert body == text
        assert "a.md" in caplog.text

    def test_non_mapping_kept_as_body(self):
        text = "---\n- a\n- b\n---\nbody"
        assert parse_frontmatter(text) == ({}, text)

    def test_dashes_later_in_file_ignored(self):
        text = "intro\n---\ntitle: X\n---\n"
        assert parse_frontmatter(text) == ({}, text)

    def test_keys_stringified(self):
        metadata, _ = parse_frontmatter("---\n1: one\n---\n")
        assert metadata == {"1": "one"}


class TestRenderFrontmatter:
    def test_empty_metadata_returns_body(self):
        assert render_frontmatter({}, "body") == "body"

    def test_preserves_key_order(self):
        rendered = render_frontmatter({"title": "T", "notion_url": "u"}, "body")
        assert rendered == "---\ntitle: T\nnotion_url: u\n---\nbody"

    def test_parse_inverse(self):
        metadata = {"title": "Ünïcode", "tags": ["x"]}
        rendered = render_frontmatter(metadata, "# Body\n")
        assert parse_frontmatter(rendered) == (metadata, "# Body\n")


class TestFileSystemDocumentSource:
    def test_find_reads_document(self, tmp_path):
        (tmp_path / "docs").mkdir()
        (tmp_path / "docs" / "a.md").write_text("---\ntitle: A\n---\nbody\n")

        document = FileSystemDocumentSource(tmp_path).find_by_path("docs/a.md")

        assert document.path == "docs/a.md"
        assert document.title == "A"
        assert document.content == "body\n"
        assert document == Document.from_content("docs/a.md", "body\n", {"title": "A"})

    def test_find_missing(self, tmp_path):
        assert FileSystemDocumentSource(tmp_path).find_by_path("nope.md") is None

    def test_find_directory_is_missing(self, tmp_path):
        (tmp_path / "dir.md").mkdir()
        assert FileSystemDocumentSource(tmp_path).find_by_path("dir.md") is None

    def test_find_escape_rejected(self, tmp_path):
        root = tmp_path / "root"
        root.mkdir()
        (tmp_path / "secret.md").write_text("x")
        assert FileSystemDocumentSource(root).find_by_path("../secret.md") is None

    def test_save_writes_frontmatter(self, tmp_path):
        source = FileSystemDocumentSource(tmp_path)
        (tmp_path / "a.md").write_text("# A\n")
        document = source.find_by_path("a.md")

        source.save(document.with_notion_url("https://www.notion.so/abc"))

        assert (tmp_path / "a.md").read_text() == (
            "---\nnotion_url: https://www.notion.so/abc\n---\n# A\n"
        )

    def test_save_keeps_fingerprint_stable(self, tmp_path):
        source = FileSystemDocumentSource(tmp_path)
        (tmp_path / "a.md").write_text("# A\n")
        before = source.find_by_path("a.md")

        source.save(before.with_notion_url("https://www.notion.so/abc"))
        after = source.find_by_path("a.md")

        assert after.fingerprint == before.fingerprint
        assert after.notion_url == "https://www.notion.so/abc"

    def test_save_escape_raises(self, tmp_path):
        source = FileSystemDocumentSource(tmp_path / "root")
        with pytest.raises(ValueError):
            source.save(Document.from_content("../x.md", "x"))
