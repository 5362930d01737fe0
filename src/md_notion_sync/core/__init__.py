"""Core Notion client functionality shared between CLI and MCP server."""

from .async_utils import map_limited, run_sync
from .client import NotionPageGateway

__all__ = ["NotionPageGateway", "map_limited", "run_sync"]
