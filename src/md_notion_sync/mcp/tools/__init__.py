"""MCP tool handlers for Notion sync.

Tools wrap the sync engine with async handlers and structured error
responses.
"""

from .errors import build_error_response, translate_sync_error
from .registry import ServerContext, ToolRegistry, ToolSpec
from .sync import SYNC_SPECS

ALL_SPECS: list[ToolSpec] = list(SYNC_SPECS)

__all__ = [
    "ALL_SPECS",
    "SYNC_SPECS",
    "ServerContext",
    "ToolRegistry",
    "ToolSpec",
    "build_error_response",
    "translate_sync_error",
]
