"""Tests for tool registration and routing in the MCP server.

Verifies:
- All tools appear in handle_list_tools, read-only mode filters them
- Tool calls route to the correct handler via ToolRegistry
- Unknown tools return an error response
- ping reports the connected bot or a failure
- run() maps CLI flags onto config overrides
"""

import sys
from unittest.mock import MagicMock, patch

import pytest

from md_notion_sync.mcp.server import (
    PING_SPEC,
    get_context,
    get_registry,
    handle_call_tool,
    handle_list_tools,
    run,
    set_context,
    set_registry,
)
from md_notion_sync.mcp.tools import ALL_SPECS
from md_notion_sync.mcp.tools.registry import ServerContext, ToolRegistry


@pytest.fixture
def server_state(mock_config, gateway):
    """Install a registry and context the way main() does."""
    set_registry(ToolRegistry([PING_SPEC] + ALL_SPECS))
    set_context(ServerContext(config=mock_config, gateway=gateway))
    yield
    set_context(None)
    set_registry(None)


class TestAccessors:
    def test_context_uninitialised(self):
        set_context(None)
        with pytest.raises(RuntimeError, match="not initialized"):
            get_context()

    def test_registry_uninitialised(self):
        set_registry(None)
        with pytest.raises(RuntimeError, match="not initialized"):
            get_registry()


class TestToolRegistration:
    async def test_all_tools_registered(self, server_state):
        names = [t.name for t in await handle_list_tools()]
        assert names == ["ping", "doc_sync", "doc_sync_status"]

    async def test_read_only_mode(self, server_state):
        set_registry(ToolRegistry([PING_SPEC] + ALL_SPECS, read_only=True))
        names = [t.name for t in await handle_list_tools()]
        assert names == ["ping", "doc_sync_status"]

    async def test_schemas_are_objects(self, server_state):
        for tool in await handle_list_tools():
            assert tool.inputSchema["type"] == "object"


class TestToolRouting:
    async def test_ping(self, server_state, gateway):
        result = await handle_call_tool("ping", {})

        assert not result.isError
        assert "connected successfully as Docs Bot" in result.content[0].text
        assert gateway.calls == [("validate_connection", "")]

    async def test_ping_failure(self, mock_config):
        failing = MagicMock()
        failing.validate_connection.side_effect = Exception("API token is invalid.")
        set_registry(ToolRegistry([PING_SPEC]))
        set_context(ServerContext(config=mock_config, gateway=failing))
        try:
            result = await handle_call_tool("ping", None)
        finally:
            set_context(None)
            set_registry(None)

        assert result.isError is True
        assert "API token is invalid." in result.content[0].text

    async def test_doc_sync_status_routed(self, server_state, tmp_path):
        (tmp_path / "a.md").write_text("# A\n")

        result = await handle_call_tool("doc_sync_status", {})

        assert result.structuredContent["pending"] == 1

    async def test_unknown_tool(self, server_state):
        result = await handle_call_tool("wiki_get", {})

        assert result.isError is True
        text = result.content[0].text
        assert text.startswith("Error (unknown_tool): Unknown tool: wiki_get")
        assert "list_tools" in text

    async def test_filtered_tool_is_unknown(self, server_state):
        set_registry(ToolRegistry([PING_SPEC] + ALL_SPECS, read_only=True))
        result = await handle_call_tool("doc_sync", {})
        assert "unknown_tool" in result.content[0].text


class TestRun:
    def _run(self, monkeypatch, argv, **asyncio_run):
        monkeypatch.setattr(sys, "argv", ["md-notion-sync-mcp", *argv])
        main = MagicMock(return_value=None)
        with (
            patch("md_notion_sync.mcp.server.main", main),
            patch("md_notion_sync.mcp.server.asyncio.run", **asyncio_run),
        ):
            run()
        return main

    def test_overrides_from_flags(self, monkeypatch):
        main = self._run(
            monkeypatch,
            ["--source-root", "docs", "--debug", "--read-only", "--log-file", "x.log"],
        )
        main.assert_called_once_with(
            config_overrides={"source_root": "docs", "debug": True},
            log_file="x.log",
            read_only=True,
        )

    def test_no_flags(self, monkeypatch):
        main = self._run(monkeypatch, [])
        assert main.call_args.kwargs["config_overrides"] is None
        assert main.call_args.kwargs["read_only"] is False

    def test_startup_failure_exits_1(self, monkeypatch):
        with pytest.raises(SystemExit) as exc:
            self._run(monkeypatch, [], side_effect=RuntimeError("bad config"))
        assert exc.value.code == 1
