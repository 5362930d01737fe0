"""Logging setup shared by the CLI and the MCP server.

The MCP server speaks JSON-RPC over stdout, so in ``mcp`` mode records go
to a file only.  The CLI logs to stderr, keeping stdout for the report.
"""

import json
import logging
import os
import sys

DEFAULT_MCP_LOG_FILE = "/tmp/md-notion-sync.log"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


class JsonFormatter(logging.Formatter):
    """One JSON object per record: ts, level, logger, msg (+ exc)."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _formatter(debug_format: str, with_name: bool = False) -> logging.Formatter:
    if debug_format == "json":
        return JsonFormatter(datefmt=_DATEFMT)
    name = " %(name)s" if with_name else ""
    return logging.Formatter(
        f"[%(asctime)s] [%(levelname)s]{name} %(message)s", datefmt=_DATEFMT
    )


def setup_logging(
    mode: str = "cli",
    debug: bool = False,
    log_file: str | None = None,
    debug_format: str = "text",
    level: str | None = None,
) -> None:
    """
    Configure root logging for a run.

    Args:
        mode: "mcp" logs to a file only, "cli" logs to stderr.
        debug: Force DEBUG level.
        log_file: Log file path (MCP default: ``LOG_FILE`` env var, then
            /tmp/md-notion-sync.log). In CLI mode, an additional file sink.
        debug_format: "text" or "json".
        level: Level name from the config file; ``LOG_LEVEL`` wins over it.

    Environment variables:
        LOG_LEVEL: DEBUG, INFO, WARNING or ERROR.
                   Default: WARNING for MCP mode, INFO for CLI mode.
        LOG_FILE: Log file path for MCP mode.
    """
    default_level = "WARNING" if mode == "mcp" else "INFO"
    level_name = os.getenv("LOG_LEVEL") or level or default_level

    if debug:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, level_name.upper(), logging.INFO)

    handlers: list[logging.Handler] = []
    if mode == "mcp":
        final_log_file = log_file or os.getenv("LOG_FILE", DEFAULT_MCP_LOG_FILE)
        file_handler = logging.FileHandler(final_log_file, mode="a")
        file_handler.setFormatter(_formatter(debug_format))
        handlers.append(file_handler)
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(_formatter(debug_format))
        handlers.append(stderr_handler)
        if log_file:
            file_handler = logging.FileHandler(log_file, mode="a")
            file_handler.setFormatter(_formatter(debug_format, with_name=True))
            handlers.append(file_handler)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    # notion-client logs every request at DEBUG through httpx
    if log_level != logging.DEBUG:
        for name in ("notion_client", "httpx", "httpcore"):
            logging.getLogger(name).setLevel(logging.WARNING)
