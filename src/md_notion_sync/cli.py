"""Command-line entry point (``md-notion-sync``).

Designed to run both locally and as a GitHub Actions step: every option
falls back to an ``INPUT_*`` variable, and step outputs are appended to
``$GITHUB_OUTPUT`` when it is set.
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

import yaml
from dotenv import load_dotenv

from . import __version__
from .config import Config, load_config, resolve_config_file
from .config_loader import ensure_config, load_hierarchical_config
from .config_schema import UnifiedConfig, build_config
from .errors import DocSyncError
from .factory import create_engine, create_mapping_store, discover, source_root
from .logger import setup_logging
from .sync.documents import FileSystemDocumentSource
from .sync.reporter import (
    format_dry_run_preview,
    format_sync_report,
    report_to_json,
    write_action_outputs,
)
from .sync.status import collect_status, format_status, status_to_json

logger = logging.getLogger(__name__)


def _bool_arg(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("true", "1", "yes", "on"):
        return True
    if lowered in ("false", "0", "no", "off"):
        return False
    raise argparse.ArgumentTypeError(f"expected true or false, got '{value}'")


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config-file",
        help="YAML config file (default: .notion-sync.yml in the current directory)",
    )
    parser.add_argument(
        "--notion-token",
        help="Notion integration token (prefer NOTION_TOKEN; visible in process list)",
    )
    parser.add_argument("--files-pattern", help="Comma-separated include globs")
    parser.add_argument(
        "--exclude",
        action="append",
        help="Exclude glob (repeatable, or comma-separated)",
    )
    parser.add_argument("--source-root", help="Directory document paths are relative to")
    parser.add_argument("--mapping-file", help="Page-id mapping JSON file")
    parser.add_argument("--debug", action="store_true", help="Enable DEBUG logging")
    parser.add_argument(
        "--debug-format",
        choices=("text", "json"),
        default="text",
        help="Log line format (default: text)",
    )
    parser.add_argument("--log-file", help="Also write logs to this file")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="md-notion-sync",
        description="Sync markdown documents to Notion pages",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Preview what would change
  md-notion-sync sync --dry-run

  # Sync docs/ under a parent page
  NOTION_TOKEN=secret md-notion-sync sync --source-root docs \\
      --parent-page-id 0123456789abcdef0123456789abcdef

  # Show which documents are new or modified since the last sync
  md-notion-sync status
        """,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"md-notion-sync version {__version__}",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser("sync", help="Push documents to Notion")
    _add_common_options(sync_parser)
    sync_parser.add_argument("--parent-page-id", help="Parent page for new pages (id or URL)")
    sync_parser.add_argument("--database-id", help="Parent database for new pages (id or URL)")
    sync_parser.add_argument("--title-property", help="Database title property (default: Name)")
    sync_parser.add_argument(
        "--page-permissions",
        choices=("none", "read", "comment", "edit", "full"),
        help="Edit access for synced pages (default: none)",
    )
    sync_parser.add_argument(
        "--max-parallel-requests",
        type=int,
        help="Documents synced concurrently, 1-10 (default: 3)",
    )
    sync_parser.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Report intended actions without writing anything",
    )
    sync_parser.add_argument(
        "--preserve-ids",
        type=_bool_arg,
        metavar="{true,false}",
        help="Update existing pages instead of creating new ones (default: true)",
    )
    sync_parser.add_argument(
        "--enable-bidirectional-links",
        type=_bool_arg,
        metavar="{true,false}",
        help="Maintain document <-> page back-links (default: true)",
    )
    sync_parser.add_argument("--link-style", help="Comma-separated subset of yaml,callout")
    sync_parser.add_argument(
        "--json", action="store_true", help="Print the report as JSON"
    )

    status_parser = subparsers.add_parser(
        "status", help="Show pending changes without calling Notion"
    )
    _add_common_options(status_parser)
    status_parser.add_argument(
        "--json", action="store_true", help="Print the status as JSON"
    )

    init_parser = subparsers.add_parser(
        "init", help="Write a starter .notion-sync.yml"
    )
    init_parser.add_argument("--path", type=Path, help="Target file")
    return parser


def _cli_overrides(args: argparse.Namespace) -> dict:
    keys = (
        "notion_token",
        "parent_page_id",
        "database_id",
        "title_property",
        "page_permissions",
        "max_parallel_requests",
        "files_pattern",
        "source_root",
        "mapping_file",
        "preserve_ids",
        "enable_bidirectional_links",
        "link_style",
        "dry_run",
        "config_file",
    )
    overrides = {key: getattr(args, key, None) for key in keys}
    if args.exclude:
        overrides["exclude"] = [
            p.strip() for item in args.exclude for p in item.split(",") if p.strip()
        ]
    if args.debug:
        overrides["debug"] = True
    return overrides


def _load(
    args: argparse.Namespace, require_credentials: bool = True
) -> tuple[Config, UnifiedConfig]:
    config_file = resolve_config_file(args.config_file)
    unified = build_config(load_hierarchical_config(config_file))
    config = load_config(
        _cli_overrides(args),
        unified,
        require_credentials=require_credentials,
    )
    return config, unified


def _run_sync(args: argparse.Namespace, config: Config) -> int:
    store = create_mapping_store(config)
    store.load()
    engine = create_engine(config, mappings=store)
    paths = discover(config)
    if not paths:
        logger.warning("No documents matched %s", config.files_pattern)

    report = engine.run(paths, dry_run=config.dry_run)

    if args.json:
        print(json.dumps(report_to_json(report), indent=2))
    elif config.dry_run:
        print(format_dry_run_preview(report))
    else:
        print(format_sync_report(report))

    output_path = os.environ.get("GITHUB_OUTPUT")
    if output_path:
        write_action_outputs(report, Path(output_path))

    for result in report.errors:
        print(f"ERROR: {result.file}: {result.error}", file=sys.stderr)
    return 1 if report.errors else 0


def _run_status(args: argparse.Namespace, config: Config) -> int:
    store = create_mapping_store(config)
    store.load()
    summary = collect_status(
        FileSystemDocumentSource(source_root(config)), store, discover(config)
    )
    if args.json:
        print(json.dumps(status_to_json(summary), indent=2))
    else:
        print(format_status(summary))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the CLI; returns the process exit code."""
    args = build_parser().parse_args(argv)

    if args.command == "init":
        setup_logging(mode="cli")
        path = ensure_config(args.path)
        print(f"Config file: {path}")
        return 0

    load_dotenv()
    try:
        config, unified = _load(
            args, require_credentials=args.command == "sync"
        )
    except (ValueError, OSError, yaml.YAMLError) as e:
        setup_logging(mode="cli", debug=args.debug)
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    setup_logging(
        mode="cli",
        debug=config.debug,
        log_file=args.log_file or unified.logging.file,
        debug_format=args.debug_format,
        level=unified.logging.level,
    )

    try:
        if args.command == "sync":
            return _run_sync(args, config)
        return _run_status(args, config)
    except DocSyncError as e:
        logger.error("%s", e)
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


def run() -> None:
    """Console-script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
