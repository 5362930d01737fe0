"""Sync report formatting functions.

Provides human-readable and machine-readable output for sync runs:

- ``format_sync_report`` -- full post-sync summary.
- ``format_dry_run_preview`` -- dry-run preview grouped by action.
- ``report_to_json`` -- ``{total, created, updated, unchanged, errors,
  details}`` dict, also used for MCP ``structuredContent``.
- ``action_outputs`` / ``write_action_outputs`` -- GitHub Actions step
  outputs (``synced-count``, ``page-urls``, ``sync-report``).
"""

from __future__ import annotations

import json
import uuid
from pathlib import Path

from .models import SyncReport, SyncStatus

# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def format_sync_report(report: SyncReport) -> str:
    """Format a complete sync report as human-readable text.

    Sections are only included when they contain at least one result.
    Unchanged paths are summarised by count only to avoid excessive output.

    Args:
        report: The completed sync report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    header = "Notion sync report"
    if report.dry_run:
        header += " (DRY RUN)"
    lines.append(header)
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    lines.append(
        f"Processed {len(report.results)} files: "
        f"{len(report.created)} created, {len(report.updated)} updated, "
        f"{len(report.unchanged)} unchanged, {len(report.errors)} errors"
    )
    lines.append("")

    if report.created:
        lines.append("Created:")
        for r in report.created:
            lines.append(f"  {r.file} -> {r.url or r.page_id}")
        lines.append("")

    if report.updated:
        lines.append("Updated:")
        for r in report.updated:
            lines.append(f"  {r.file} -> {r.url or r.page_id}")
        lines.append("")

    warnings = [r for r in report.results if r.warning]
    if warnings:
        lines.append("Warnings:")
        for r in warnings:
            lines.append(f"  {r.file}: {r.warning}")
        lines.append("")

    if report.errors:
        lines.append("Errors:")
        for r in report.errors:
            lines.append(f"  {r.file}: {r.error}")
        lines.append("")

    if report.unchanged:
        lines.append(f"Unchanged: {len(report.unchanged)} files")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Dry-run preview
# ------------------------------------------------------------------


def format_dry_run_preview(report: SyncReport) -> str:
    """Format a dry-run preview grouped by action type.

    Args:
        report: A dry-run sync report (``dry_run=True``).

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []
    lines.append("DRY RUN -- No changes will be made")
    lines.append("")

    for status, label in (
        (SyncStatus.CREATED, "CREATE"),
        (SyncStatus.UPDATED, "UPDATE"),
        (SyncStatus.ERROR, "ERROR"),
    ):
        entries = [r for r in report.results if r.status == status]
        if not entries:
            continue
        lines.append(f"[{label}]")
        for r in entries:
            suffix = f": {r.error}" if r.error else ""
            lines.append(f"  {r.file}{suffix}")
        lines.append("")

    if report.unchanged:
        lines.append(f"Unchanged: {len(report.unchanged)} files")
        lines.append("")

    if not (report.created or report.updated or report.errors):
        lines.append("No changes needed.")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: SyncReport) -> dict:
    """Convert a sync report to a structured dict for JSON serialisation.

    Args:
        report: The sync report.

    Returns:
        Dict with counts and per-file details.
    """
    details = []
    for r in report.results:
        entry: dict = {
            "file": r.file,
            "status": r.status.value,
            "page_id": r.page_id,
        }
        if r.url:
            entry["url"] = r.url
        if r.error:
            entry["error"] = r.error
        if r.warning:
            entry["warning"] = r.warning
        details.append(entry)

    return {
        "dry_run": report.dry_run,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "total": len(report.results),
        "created": len(report.created),
        "updated": len(report.updated),
        "unchanged": len(report.unchanged),
        "errors": len(report.errors),
        "details": details,
    }


# ------------------------------------------------------------------
# GitHub Actions outputs
# ------------------------------------------------------------------


def action_outputs(report: SyncReport) -> dict[str, str]:
    """Step outputs as ``name -> string value``."""
    return {
        "synced-count": str(report.synced_count),
        "page-urls": json.dumps(report.page_urls),
        "sync-report": json.dumps(report_to_json(report), indent=2),
    }


def write_action_outputs(report: SyncReport, output_path: Path) -> None:
    """Append the step outputs to a ``$GITHUB_OUTPUT`` file.

    Values use the ``name<<DELIMITER`` form so they may span lines.
    """
    with open(output_path, "a", encoding="utf-8") as fh:
        for name, value in action_outputs(report).items():
            delimiter = f"ghadelimiter_{uuid.uuid4().hex}"
            fh.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
