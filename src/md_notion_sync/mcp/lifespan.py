"""Lifespan management for MCP server startup and shutdown."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import yaml
from dotenv import load_dotenv

from ..config import load_config, resolve_config_file
from ..config_loader import discover_config_files, load_hierarchical_config
from ..config_schema import build_config
from ..core.async_utils import run_sync
from ..factory import create_gateway
from .tools.registry import ServerContext

logger = logging.getLogger(__name__)


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[ServerContext]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Load .env (so values are visible to env lookups and YAML interpolation)
    - Load the YAML config file, if any
    - Merge all sources via load_config(): CLI > env vars > .env > YAML > defaults
    - Create the Notion gateway and validate the token
    - Fail fast on bad configuration or a rejected token

    Args:
        config_overrides: ``Config`` field values from the command line.

    Yields:
        ServerContext with the validated config and the shared gateway.

    Raises:
        RuntimeError: If configuration is invalid or Notion rejects the token.
    """
    logger.info("MCP server starting...")
    _stderr_print("md-notion-sync MCP server starting...")

    overrides = dict(config_overrides or {})
    try:
        load_dotenv()

        config_file = resolve_config_file(overrides.get("config_file"))
        sources = [f"config file: {p}" for p in discover_config_files(config_file)[:1]]
        unified = build_config(load_hierarchical_config(config_file))
        config = load_config(overrides, unified)

        if overrides:
            sources.append("CLI arguments")
        sources.append("environment variables")
        source_desc = ", ".join(sources)
        logger.info("Configuration loaded from: %s", source_desc)
        _stderr_print(f"  Configuration loaded from: {source_desc}")
        _stderr_print(f"  Source root: {config.source_root}")
    except (ValueError, OSError, yaml.YAMLError) as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        _stderr_print("  Ensure NOTION_TOKEN and NOTION_PARENT_PAGE_ID are set.")
        raise RuntimeError(f"Configuration error: {e}") from e

    logger.info("Validating Notion token...")
    _stderr_print("  Validating Notion token...")
    try:
        gateway = create_gateway(config)
        bot = await run_sync(gateway.validate_connection)
        logger.info("Connected to Notion as %s", bot)
        _stderr_print(f"  Connected to Notion as {bot}")
        _stderr_print(f"  Parallel requests: {config.max_parallel_requests}")
        _stderr_print("Server ready. Waiting for MCP client connection...")
    except Exception as e:
        logger.error("Failed to connect to Notion: %s", e)
        _stderr_print("ERROR: Notion connection failed.")
        _stderr_print(f"  {e}")
        raise RuntimeError(
            f"Notion connection failed: {e}. Check NOTION_TOKEN."
        ) from e

    yield ServerContext(config=config, gateway=gateway)

    logger.info("MCP server shutting down")
    _stderr_print("md-notion-sync MCP server shutting down.")
