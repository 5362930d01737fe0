"""MCP server for Notion sync using stdio transport.

Exposes the sync engine to AI agents as tools (``ping``, ``doc_sync``,
``doc_sync_status``).

Transport: stdio (for Claude Desktop/Code integration)
Protocol: JSON-RPC 2.0 over MCP
"""

import argparse
import asyncio
import logging
import sys

import mcp.server.stdio
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .. import __version__
from ..core.async_utils import run_sync
from ..logger import DEFAULT_MCP_LOG_FILE, setup_logging
from .lifespan import server_lifespan
from .tools import ALL_SPECS, ServerContext, ToolRegistry, build_error_response
from .tools.registry import ToolSpec

logger = logging.getLogger(__name__)

SERVER_NAME = "md-notion-sync"

server = Server(SERVER_NAME)

# Set in main() once the lifespan has validated the configuration
_context: ServerContext | None = None
_registry: ToolRegistry | None = None


# ---------------------------------------------------------------------------
# Ping tool (always available)
# ---------------------------------------------------------------------------


async def _handle_ping(ctx: ServerContext, args: dict) -> types.CallToolResult:
    """Handle ping tool -- check the Notion token."""
    try:
        bot = await run_sync(ctx.gateway.validate_connection)
        return types.CallToolResult(
            content=[
                types.TextContent(
                    type="text",
                    text=f"Notion sync server connected successfully as {bot}",
                )
            ]
        )
    except Exception as e:
        return types.CallToolResult(
            content=[
                types.TextContent(
                    type="text",
                    text=f"Notion connection failed: {e}. Check NOTION_TOKEN.",
                )
            ],
            isError=True,
        )


PING_SPEC = ToolSpec(
    tool=types.Tool(
        name="ping",
        description="Check that the server can reach Notion with its token",
        annotations=types.ToolAnnotations(readOnlyHint=True),
        inputSchema={
            "type": "object",
            "properties": {},
            "required": [],
        },
    ),
    handler=_handle_ping,
)


# ---------------------------------------------------------------------------
# Global accessors
# ---------------------------------------------------------------------------


def get_context() -> ServerContext:
    """Raises RuntimeError if the server lifespan has not started."""
    if _context is None:
        raise RuntimeError("Server context not initialized. Server lifespan not started.")
    return _context


def set_context(context: ServerContext | None) -> None:
    global _context
    _context = context


def get_registry() -> ToolRegistry:
    if _registry is None:
        raise RuntimeError("ToolRegistry not initialized.")
    return _registry


def set_registry(registry: ToolRegistry | None) -> None:
    global _registry
    _registry = registry


# ---------------------------------------------------------------------------
# MCP protocol handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    return get_registry().list_tools()


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Handle tool execution via ToolRegistry dispatch."""
    context = get_context()
    try:
        return await get_registry().call_tool(name, arguments, context)
    except ValueError as e:
        return build_error_response(
            "unknown_tool",
            str(e),
            "Use list_tools to see available tools.",
        )


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


async def main(
    config_overrides: dict | None = None,
    log_file: str | None = None,
    read_only: bool = False,
):
    """Run the MCP server with stdio transport.

    Args:
        config_overrides: ``Config`` field values from the command line.
        log_file: Log file path (logging never goes to stdout).
        read_only: Register only read-only tools.
    """
    # Must run before stdio_server so nothing reaches stdout
    setup_logging(
        mode="mcp",
        debug=bool(config_overrides and config_overrides.get("debug")),
        log_file=log_file,
    )

    all_specs = [PING_SPEC] + ALL_SPECS
    registry = ToolRegistry(all_specs, read_only=read_only)
    logger.info(
        "Registered %d tools (of %d total)",
        registry.tool_count(),
        len(all_specs),
    )
    set_registry(registry)

    # set_context is called here, not in the lifespan, so that running via
    # `python -m md_notion_sync.mcp.server` updates this (__main__) module.
    async with server_lifespan(config_overrides=config_overrides) as ctx:
        set_context(ctx)
        try:
            async with mcp.server.stdio.stdio_server() as (
                read_stream,
                write_stream,
            ):
                init_options = InitializationOptions(
                    server_name=SERVER_NAME,
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
                await server.run(read_stream, write_stream, init_options)
        finally:
            set_context(None)
            set_registry(None)


def run() -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    parser = argparse.ArgumentParser(
        description="md-notion-sync MCP server - sync markdown documents to Notion from AI agents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config (.env, environment, .notion-sync.yml)
  md-notion-sync-mcp

  # Sync a specific directory under a given parent page
  md-notion-sync-mcp --source-root docs --parent-page-id 0123456789abcdef0123456789abcdef

  # Only expose read-only tools (ping, doc_sync_status)
  md-notion-sync-mcp --read-only

Note: This server uses stdio transport for JSON-RPC communication with MCP clients.
All user-facing messages are written to stderr.
        """,
    )
    parser.add_argument("--config-file", help="YAML config file")
    parser.add_argument("--source-root", help="Directory document paths are relative to")
    parser.add_argument("--parent-page-id", help="Parent page for new pages")
    parser.add_argument("--database-id", help="Parent database for new pages")
    parser.add_argument("--mapping-file", help="Page-id mapping JSON file")
    parser.add_argument(
        "--log-file",
        default=DEFAULT_MCP_LOG_FILE,
        help=f"Log file path (default: {DEFAULT_MCP_LOG_FILE})",
    )
    parser.add_argument("--debug", action="store_true", help="Enable DEBUG logging")
    parser.add_argument(
        "--read-only",
        action="store_true",
        help="Expose only read-only tools",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"md-notion-sync-mcp version {__version__}",
    )

    args = parser.parse_args()

    config_overrides = {
        key: value
        for key, value in {
            "config_file": args.config_file,
            "source_root": args.source_root,
            "parent_page_id": args.parent_page_id,
            "database_id": args.database_id,
            "mapping_file": args.mapping_file,
            "debug": True if args.debug else None,
        }.items()
        if value is not None
    }
    if config_overrides:
        print(
            f"Config overrides from CLI: {', '.join(config_overrides)}",
            file=sys.stderr,
        )

    try:
        asyncio.run(
            main(
                config_overrides=config_overrides or None,
                log_file=args.log_file,
                read_only=args.read_only,
            )
        )
    except RuntimeError:
        # Already reported on stderr by the lifespan
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
