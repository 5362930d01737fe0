"""ToolSpec and ToolRegistry for the MCP server.

Key concepts:
- ToolSpec: Immutable dataclass linking a Tool definition and an async
  handler with standardized signature (context, args) -> CallToolResult.
- ToolRegistry: Optionally drops tools that are not read-only at
  construction time, then provides list_tools() and call_tool() dispatch
  with error translation.
- ServerContext: Configuration and gateway shared by all handlers.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import mcp.types as types

from ...config import Config
from ...core.client import NotionPageGateway
from .errors import translate_sync_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ServerContext:
    """State built once at startup and passed to every handler."""

    config: Config
    gateway: NotionPageGateway


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Immutable specification for a single MCP tool.

    Attributes:
        tool: The MCP Tool definition (name, description, inputSchema).
        handler: Async handler with signature (context, args) -> CallToolResult.
    """

    tool: types.Tool
    handler: Callable[[ServerContext, dict], Awaitable[types.CallToolResult]]

    @property
    def read_only(self) -> bool:
        annotations = self.tool.annotations
        return bool(annotations and annotations.readOnlyHint)


class ToolRegistry:
    """Registry of ToolSpecs.

    With ``read_only=True`` only tools annotated ``readOnlyHint`` are
    registered.
    """

    def __init__(self, specs: list[ToolSpec], read_only: bool = False):
        self._specs: dict[str, ToolSpec] = {
            spec.tool.name: spec
            for spec in specs
            if not read_only or spec.read_only
        }

    def list_tools(self) -> list[types.Tool]:
        return [spec.tool for spec in self._specs.values()]

    def tool_count(self) -> int:
        return len(self._specs)

    async def call_tool(
        self,
        name: str,
        arguments: dict | None,
        context: ServerContext,
    ) -> types.CallToolResult:
        """Dispatch tool call to registered handler.

        Exceptions from the handler are translated into structured
        ``CallToolResult`` errors.

        Raises:
            ValueError: If tool name is not registered (unknown or filtered out).
        """
        spec = self._specs.get(name)
        if spec is None:
            raise ValueError(f"Unknown tool: {name}")
        try:
            return await spec.handler(context, arguments or {})
        except Exception as e:
            logger.exception("Error in tool %s", name)
            return translate_sync_error(e)
