"""Tests for md_notion_sync.mcp.lifespan -- server startup/shutdown lifecycle.

Tests the server_lifespan() async context manager which:
- Loads config from env vars, an optional YAML file and CLI overrides
- Creates the Notion gateway and validates the token
- Fails fast on config errors or a rejected token
- Prints status messages to stderr
"""

from unittest.mock import MagicMock, patch

import pytest

from md_notion_sync.config import Config
from md_notion_sync.mcp.lifespan import server_lifespan

PARENT_ID = "0123456789abcdef0123456789abcdef"


@pytest.fixture(autouse=True)
def clean_env(tmp_path, monkeypatch):
    """Run from an empty directory with only the required credentials."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for name in (
        "MD_NOTION_SYNC_CONFIG",
        "NOTION_DATABASE_ID",
        "INPUT_NOTION-TOKEN",
        "INPUT_PARENT-PAGE-ID",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("NOTION_TOKEN", "secret_test")
    monkeypatch.setenv("NOTION_PARENT_PAGE_ID", PARENT_ID)
    monkeypatch.setattr("md_notion_sync.mcp.lifespan.load_dotenv", lambda: False)


@pytest.fixture
def stderr_messages():
    messages: list[str] = []
    with patch(
        "md_notion_sync.mcp.lifespan._stderr_print",
        side_effect=messages.append,
    ):
        yield messages


@pytest.fixture
def gateway(gateway):
    """The shared fake gateway, returned by the patched factory."""
    with patch(
        "md_notion_sync.mcp.lifespan.create_gateway", return_value=gateway
    ) as factory:
        gateway.factory = factory
        yield gateway


# -------------------------------------------------------------------------
# server_lifespan() -- successful startup
# -------------------------------------------------------------------------


class TestServerLifespanSuccess:
    async def test_successful_startup(self, gateway, stderr_messages):
        async with server_lifespan() as ctx:
            assert ctx.gateway is gateway
            assert isinstance(ctx.config, Config)
            assert ctx.config.notion_token == "secret_test"
            assert ("validate_connection", "") in gateway.calls

        assert any("Connected to Notion as Docs Bot" in m for m in stderr_messages)
        assert any("shutting down" in m for m in stderr_messages)

    async def test_config_overrides_win(self, gateway, stderr_messages, tmp_path):
        overrides = {"source_root": "docs", "debug": True}

        async with server_lifespan(config_overrides=overrides) as ctx:
            assert ctx.config.source_root == "docs"
            assert ctx.config.debug is True

        assert any("CLI arguments" in m for m in stderr_messages)

    async def test_yaml_config_file(self, gateway, stderr_messages, tmp_path):
        (tmp_path / ".notion-sync.yml").write_text(
            "sync:\n  files_pattern: guides/*.md\n"
        )

        async with server_lifespan() as ctx:
            assert ctx.config.files_pattern == "guides/*.md"

        assert any(".notion-sync.yml" in m for m in stderr_messages)

    async def test_gateway_built_from_loaded_config(self, gateway, stderr_messages):
        async with server_lifespan() as ctx:
            gateway.factory.assert_called_once_with(ctx.config)


# -------------------------------------------------------------------------
# server_lifespan() -- config error path
# -------------------------------------------------------------------------


class TestServerLifespanConfigError:
    async def test_missing_token(self, gateway, stderr_messages, monkeypatch):
        monkeypatch.delenv("NOTION_TOKEN")

        with pytest.raises(RuntimeError, match="Configuration error"):
            async with server_lifespan() as _:
                pass  # pragma: no cover

        assert any("starting" in m.lower() for m in stderr_messages)
        assert any("NOTION_TOKEN" in m for m in stderr_messages)
        gateway.factory.assert_not_called()

    async def test_missing_config_file(self, gateway, stderr_messages):
        with pytest.raises(RuntimeError, match="Config file not found"):
            async with server_lifespan({"config_file": "nope.yml"}) as _:
                pass  # pragma: no cover

    async def test_malformed_yaml(self, gateway, stderr_messages, tmp_path):
        (tmp_path / ".notion-sync.yml").write_text("sync: [unclosed\n")

        with pytest.raises(RuntimeError, match="Configuration error"):
            async with server_lifespan() as _:
                pass  # pragma: no cover

    async def test_invalid_value(self, gateway, stderr_messages, monkeypatch):
        monkeypatch.setenv("NOTION_PARENT_PAGE_ID", "not-an-id")

        with pytest.raises(RuntimeError, match="parent page id"):
            async with server_lifespan() as _:
                pass  # pragma: no cover


# -------------------------------------------------------------------------
# server_lifespan() -- connection error path
# -------------------------------------------------------------------------


class TestServerLifespanConnectionError:
    async def test_rejected_token(self, stderr_messages):
        failing = MagicMock()
        failing.validate_connection.side_effect = Exception("API token is invalid.")

        with patch(
            "md_notion_sync.mcp.lifespan.create_gateway", return_value=failing
        ):
            with pytest.raises(RuntimeError, match="Notion connection failed"):
                async with server_lifespan() as _:
                    pass  # pragma: no cover

        assert any("connection failed" in m.lower() for m in stderr_messages)
        assert any("API token is invalid." in m for m in stderr_messages)
