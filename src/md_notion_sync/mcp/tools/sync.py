"""MCP tool handlers for document sync.

Defines two tools:

- ``doc_sync`` -- push matching documents to Notion (with optional dry-run).
- ``doc_sync_status`` -- offline summary of new / modified / missing
  documents.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any

import mcp.types as types

from ...config import validate_config
from ...core.async_utils import run_sync
from ...factory import create_engine, create_mapping_store, discover, source_root
from ...sync.documents import FileSystemDocumentSource
from ...sync.reporter import (
    format_dry_run_preview,
    format_sync_report,
    report_to_json,
)
from ...sync.status import collect_status, format_status, status_to_json
from .registry import ServerContext, ToolSpec

logger = logging.getLogger(__name__)

_SELECTION_PROPERTIES = {
    "files_pattern": {
        "type": "string",
        "description": (
            "Comma-separated include globs relative to the source root. "
            "Defaults to the server configuration."
        ),
    },
    "exclude": {
        "type": "array",
        "items": {"type": "string"},
        "description": "Exclude globs",
    },
    "source_root": {
        "type": "string",
        "description": "Override source directory (absolute path).",
    },
}


DOC_SYNC_TOOL = types.Tool(
    name="doc_sync",
    description=(
        "Push local markdown documents to Notion pages. Unchanged documents "
        "are skipped; changed documents replace their page content. Use "
        "dry_run to preview."
    ),
    annotations=types.ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=True,
    ),
    inputSchema={
        "type": "object",
        "properties": {
            **_SELECTION_PROPERTIES,
            "dry_run": {
                "type": "boolean",
                "default": False,
                "description": "Preview changes without applying them",
            },
        },
        "required": [],
    },
)

DOC_SYNC_STATUS_TOOL = types.Tool(
    name="doc_sync_status",
    description=(
        "Show sync state without calling Notion: last sync time, tracked "
        "files, and which documents are new, modified or missing."
    ),
    annotations=types.ToolAnnotations(
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
    inputSchema={
        "type": "object",
        "properties": dict(_SELECTION_PROPERTIES),
        "required": [],
    },
)


def _scoped_config(ctx: ServerContext, args: dict[str, Any], **extra):
    """Server config with per-call overrides applied and re-validated."""
    updates: dict[str, Any] = dict(extra)
    if args.get("files_pattern"):
        updates["files_pattern"] = args["files_pattern"]
    if args.get("exclude") is not None:
        exclude = args["exclude"]
        if isinstance(exclude, str):
            exclude = [exclude]
        updates["exclude"] = list(exclude)
    if args.get("source_root"):
        updates["source_root"] = args["source_root"]
    config = dataclasses.replace(ctx.config, **updates)
    validate_config(config)
    return config


async def _handle_doc_sync(
    ctx: ServerContext, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``doc_sync`` tool."""
    dry_run = bool(args.get("dry_run", False))
    config = _scoped_config(ctx, args, dry_run=dry_run)

    store = create_mapping_store(config)
    await run_sync(store.load)
    engine = create_engine(config, gateway=ctx.gateway, mappings=store)
    paths = await run_sync(discover, config)
    report = await engine.run_async(paths, dry_run=dry_run)

    text = format_dry_run_preview(report) if dry_run else format_sync_report(report)
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent=report_to_json(report),
        isError=bool(report.errors) and not report.synced_count,
    )


async def _handle_doc_sync_status(
    ctx: ServerContext, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``doc_sync_status`` tool."""
    config = _scoped_config(ctx, args)

    def collect():
        store = create_mapping_store(config)
        store.load()
        documents = FileSystemDocumentSource(source_root(config))
        return collect_status(documents, store, discover(config))

    summary = await run_sync(collect)
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=format_status(summary))],
        structuredContent=status_to_json(summary),
    )


SYNC_SPECS: list[ToolSpec] = [
    ToolSpec(tool=DOC_SYNC_TOOL, handler=_handle_doc_sync),
    ToolSpec(tool=DOC_SYNC_STATUS_TOOL, handler=_handle_doc_sync_status),
]
