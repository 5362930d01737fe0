"""Unified configuration schema for md_notion_sync.

Defines Pydantic models for the YAML config file (``.notion-sync.yml``)
with dedicated sections for the Notion connection, sync behaviour,
GitHub context and logging. Includes an adapter to the flat ``Config``
dataclass used at runtime.

Usage:
    from md_notion_sync.config_schema import (
        UnifiedConfig, build_config, to_legacy_config,
    )

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = to_legacy_config(unified, cli_overrides={"dry_run": True})
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, field_validator

from .sync.discovery import DEFAULT_FILES_PATTERN, split_patterns
from .sync.models import EditAccess

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)

DEFAULT_MAPPING_FILE = ".notion-page-ids.json"
DEFAULT_LINK_STYLE = "yaml,callout"


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class NotionConfig(BaseModel):
    """Notion connection settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    token: str | None = Field(
        default=None, description="Notion integration token"
    )
    parent_page_id: str | None = Field(
        default=None, description="Parent page for new pages"
    )
    database_id: str | None = Field(
        default=None, description="Parent database for new pages"
    )
    title_property: str = Field(
        default="Name", description="Title property of the database"
    )
    page_permissions: EditAccess = Field(
        default=EditAccess.NONE,
        description="Edit access for synced pages",
    )
    max_parallel_requests: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum documents synced concurrently (1-10)",
    )

    model_config = {"frozen": True}


class SyncConfig(BaseModel):
    """Which files to sync and how.

    Attributes:
        files_pattern: Comma-separated include globs.
        exclude: Exclude globs.
        source_root: Directory document paths are relative to.
        mapping_file: Page-id mapping JSON file.
        preserve_ids: Update existing pages instead of creating new ones.
        enable_bidirectional_links: Maintain document <-> page back-links.
        link_style: Comma-separated subset of ``yaml,callout``.
        dry_run: Report intended actions without writing.
    """

    files_pattern: str = DEFAULT_FILES_PATTERN
    exclude: list[str] = Field(default_factory=list)
    source_root: str = "."
    mapping_file: str = DEFAULT_MAPPING_FILE
    preserve_ids: bool = True
    enable_bidirectional_links: bool = True
    link_style: str = DEFAULT_LINK_STYLE
    dry_run: bool = False

    model_config = {"frozen": True}

    @field_validator("exclude", mode="before")
    @classmethod
    def _split_exclude(cls, value):
        if isinstance(value, str):
            return split_patterns(value)
        return value


class GitHubConfig(BaseModel):
    """Repository coordinates for source links (normally from env)."""

    repository: str | None = None
    ref: str | None = None
    server_url: str | None = None
    sha: str | None = None

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Aggregates all config sections. Every section has sensible defaults,
    so ``UnifiedConfig()`` (zero-config) is always valid.
    """

    notion: NotionConfig = Field(default_factory=NotionConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully; anything absent gets defaults.
    Unknown top-level sections are ignored with a warning.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    known = set(UnifiedConfig.model_fields)
    unknown = sorted(set(raw_data) - known)
    if unknown:
        logger.warning(
            "Ignoring unknown config section(s): %s", ", ".join(unknown)
        )
    return UnifiedConfig(
        **{k: v for k, v in raw_data.items() if k in known and v is not None}
    )


# ---------------------------------------------------------------------------
# Adapter: UnifiedConfig -> runtime Config dataclass
# ---------------------------------------------------------------------------


def to_legacy_config(
    unified: UnifiedConfig,
    cli_overrides: dict | None = None,
) -> Config:
    """Convert a ``UnifiedConfig`` into the runtime ``Config`` dataclass,
    applying CLI overrides on top.

    The precedence applied here is:
        CLI override > unified config value > default

    Override keys are ``Config`` field names; ``None`` values are ignored.
    Environment variables are NOT consulted here -- use
    ``config.load_config()`` for the full precedence chain.

    Args:
        unified: The unified config produced by ``build_config()``.
        cli_overrides: Optional dict of CLI argument values.

    Returns:
        ``Config`` dataclass instance (NOT validated -- caller should run
        ``validate_config()`` separately if needed).
    """
    # Import here to avoid circular imports (config.py imports config_schema)
    from .config import Config

    overrides = {
        k: v for k, v in (cli_overrides or {}).items() if v is not None
    }
    notion, sync, github = unified.notion, unified.sync, unified.github

    values = {
        "notion_token": notion.token or "",
        "parent_page_id": notion.parent_page_id,
        "database_id": notion.database_id,
        "title_property": notion.title_property,
        "page_permissions": notion.page_permissions.value,
        "max_parallel_requests": notion.max_parallel_requests,
        "files_pattern": sync.files_pattern,
        "exclude": list(sync.exclude),
        "source_root": sync.source_root,
        "mapping_file": sync.mapping_file,
        "preserve_ids": sync.preserve_ids,
        "enable_bidirectional_links": sync.enable_bidirectional_links,
        "link_style": sync.link_style,
        "dry_run": sync.dry_run,
        "github_repository": github.repository,
        "github_ref": github.ref,
        "github_server_url": github.server_url,
        "github_sha": github.sha,
    }
    values.update(overrides)
    return Config(**values)
