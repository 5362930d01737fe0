"""Runtime configuration for md-notion-sync.

Reads settings from CLI args, environment variables (including GitHub
Actions ``INPUT_*`` inputs), .env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    NOTION_TOKEN: Notion integration token (required)
    NOTION_PARENT_PAGE_ID: Parent page for new pages
    NOTION_DATABASE_ID: Parent database for new pages
    NOTION_PAGE_PERMISSIONS: none | read | comment | edit | full (default: none)
    NOTION_MAX_PARALLEL_REQUESTS: Documents synced concurrently (default: 3)
    MD_NOTION_SYNC_FILES_PATTERN: Include globs (default: **/*.md)
    MD_NOTION_SYNC_EXCLUDE: Comma-separated exclude globs
    MD_NOTION_SYNC_CONFIG: YAML config file path
    GITHUB_REPOSITORY / GITHUB_REF_NAME / GITHUB_SERVER_URL / GITHUB_SHA:
        Source-link context (set by GitHub Actions)

Every option can also be given as a GitHub Actions input, e.g.
``INPUT_NOTION-TOKEN`` or ``INPUT_DRY-RUN``.
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields

from notion_client.helpers import extract_database_id, extract_page_id

from .config_schema import (
    DEFAULT_LINK_STYLE,
    DEFAULT_MAPPING_FILE,
    UnifiedConfig,
    to_legacy_config,
)
from .errors import InvalidConfigurationError
from .sync.discovery import DEFAULT_FILES_PATTERN, split_patterns
from .sync.links import GitHubContext, LinkStyle, parse_link_styles
from .sync.models import EditAccess

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = ".notion-sync.yml"
MAX_PARALLEL_LIMIT = 10


@dataclass
class Config:
    notion_token: str
    parent_page_id: str | None = None
    database_id: str | None = None
    title_property: str = "Name"
    page_permissions: str = EditAccess.NONE.value
    max_parallel_requests: int = 3
    files_pattern: str = DEFAULT_FILES_PATTERN
    exclude: list[str] = field(default_factory=list)
    source_root: str = "."
    config_file: str | None = None
    mapping_file: str = DEFAULT_MAPPING_FILE
    preserve_ids: bool = True
    enable_bidirectional_links: bool = True
    link_style: str = DEFAULT_LINK_STYLE
    dry_run: bool = False
    debug: bool = False
    github_repository: str | None = None
    github_ref: str | None = None
    github_server_url: str | None = None
    github_sha: str | None = None

    @property
    def edit_access(self) -> EditAccess:
        return EditAccess(self.page_permissions)

    @property
    def link_styles(self) -> frozenset[LinkStyle]:
        if not self.enable_bidirectional_links:
            return frozenset()
        return parse_link_styles(self.link_style)

    @property
    def github(self) -> GitHubContext | None:
        if not self.github_repository:
            return None
        return GitHubContext(
            repository=self.github_repository,
            ref=self.github_ref or "main",
            server_url=self.github_server_url or "https://github.com",
            sha=self.github_sha,
            path_prefix=""
            if os.path.isabs(self.source_root)
            else self.source_root,
        )


# Config field -> (action input name, environment variable names)
_ENV_SOURCES: dict[str, tuple[str | None, tuple[str, ...]]] = {
    "notion_token": ("notion-token", ("NOTION_TOKEN",)),
    "parent_page_id": ("parent-page-id", ("NOTION_PARENT_PAGE_ID",)),
    "database_id": ("database-id", ("NOTION_DATABASE_ID",)),
    "title_property": ("title-property", ("NOTION_TITLE_PROPERTY",)),
    "page_permissions": ("page-permissions", ("NOTION_PAGE_PERMISSIONS",)),
    "max_parallel_requests": (
        "max-parallel-requests",
        ("NOTION_MAX_PARALLEL_REQUESTS",),
    ),
    "files_pattern": ("files-pattern", ("MD_NOTION_SYNC_FILES_PATTERN",)),
    "exclude": ("exclude", ("MD_NOTION_SYNC_EXCLUDE",)),
    "source_root": ("source-root", ("MD_NOTION_SYNC_SOURCE_ROOT",)),
    "config_file": ("config-file", ("MD_NOTION_SYNC_CONFIG",)),
    "mapping_file": ("mapping-file", ("MD_NOTION_SYNC_MAPPING_FILE",)),
    "preserve_ids": ("preserve-ids", ()),
    "enable_bidirectional_links": ("enable-bidirectional-links", ()),
    "link_style": ("link-style", ()),
    "dry_run": ("dry-run", ("MD_NOTION_SYNC_DRY_RUN",)),
    "debug": (None, ("MD_NOTION_SYNC_DEBUG",)),
    "github_repository": (None, ("GITHUB_REPOSITORY",)),
    "github_ref": (None, ("GITHUB_REF_NAME",)),
    "github_server_url": (None, ("GITHUB_SERVER_URL",)),
    "github_sha": (None, ("GITHUB_SHA",)),
}

_BOOL_FIELDS = frozenset(
    {"preserve_ids", "enable_bidirectional_links", "dry_run", "debug"}
)
_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off")


def get_env_value(
    name: str, environ: Mapping[str, str] | None = None
) -> str | None:
    """Return the raw environment value for Config field *name*.

    Action inputs (``INPUT_FILES-PATTERN``, also accepted with
    underscores) win over plain variables.  Empty strings count as unset,
    because GitHub Actions passes unset inputs as ``""``.
    """
    env = os.environ if environ is None else environ
    input_name, env_names = _ENV_SOURCES[name]
    keys: list[str] = []
    if input_name:
        upper = input_name.upper()
        keys += [f"INPUT_{upper}", f"INPUT_{upper.replace('-', '_')}"]
    keys += list(env_names)
    for key in keys:
        value = env.get(key)
        if value is not None and value.strip() != "":
            return value.strip()
    return None


def parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise InvalidConfigurationError(
        f"'{name}' must be a boolean (true/false), got '{value}'"
    )


def resolve_config_file(
    cli_value: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> str | None:
    """Config file named on the command line or in the environment."""
    return cli_value or get_env_value("config_file", environ)


def validate_config(config: Config, require_credentials: bool = True) -> None:
    """Validate configuration values and normalise them in place.

    Args:
        config: Config instance to validate.
        require_credentials: Require the token and a parent. Offline
            commands (status) pass ``False``.

    Raises:
        InvalidConfigurationError: On a missing token, a missing parent
            (outside dry-run), or a malformed value.
    """
    config.notion_token = (config.notion_token or "").strip()
    if require_credentials and not config.notion_token:
        raise InvalidConfigurationError(
            "Notion token not found. Set NOTION_TOKEN environment variable, "
            "pass --notion-token, or add 'token' to the notion section of "
            f"{DEFAULT_CONFIG_FILE}."
        )

    if config.parent_page_id:
        page_id = extract_page_id(config.parent_page_id)
        if page_id is None:
            raise InvalidConfigurationError(
                f"Invalid parent page id '{config.parent_page_id}'"
            )
        config.parent_page_id = page_id
    else:
        config.parent_page_id = None

    if config.database_id:
        database_id = extract_database_id(config.database_id)
        if database_id is None:
            raise InvalidConfigurationError(
                f"Invalid database id '{config.database_id}'"
            )
        config.database_id = database_id
    else:
        config.database_id = None

    if (
        require_credentials
        and not (config.parent_page_id or config.database_id)
        and not config.dry_run
    ):
        raise InvalidConfigurationError(
            "A parent page id or database id is required. Set "
            "NOTION_PARENT_PAGE_ID or NOTION_DATABASE_ID, or pass "
            "--parent-page-id / --database-id."
        )
    if config.parent_page_id and config.database_id:
        logger.warning(
            "Both parent page and database configured; pages are created "
            "in database %s",
            config.database_id,
        )

    config.page_permissions = str(config.page_permissions).strip().lower()
    try:
        EditAccess(config.page_permissions)
    except ValueError:
        valid = ", ".join(a.value for a in EditAccess)
        raise InvalidConfigurationError(
            f"Invalid page permissions '{config.page_permissions}' "
            f"(expected: {valid})"
        ) from None

    if not (1 <= config.max_parallel_requests <= MAX_PARALLEL_LIMIT):
        raise InvalidConfigurationError(
            f"Invalid max parallel requests '{config.max_parallel_requests}': "
            f"must be a number between 1 and {MAX_PARALLEL_LIMIT}"
        )

    if not split_patterns(config.files_pattern):
        raise InvalidConfigurationError("files pattern cannot be empty")

    if config.enable_bidirectional_links and not parse_link_styles(
        config.link_style
    ):
        raise InvalidConfigurationError(
            "link style must name at least one of: "
            + ", ".join(s.value for s in LinkStyle)
        )


def load_config(
    cli_overrides: dict | None = None,
    unified: UnifiedConfig | None = None,
    environ: Mapping[str, str] | None = None,
    require_credentials: bool = True,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > YAML config > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        cli_overrides: ``Config`` field values from the command line;
            ``None`` means "not given".
        unified: Parsed YAML config (``build_config()``).
        environ: Environment mapping (defaults to ``os.environ``).
        require_credentials: Passed to ``validate_config``.

    Returns:
        Validated Config instance.

    Raises:
        InvalidConfigurationError: If a value is malformed or a required
            value is missing after checking all sources.
    """
    config = to_legacy_config(unified or UnifiedConfig())

    for f in fields(Config):
        raw = get_env_value(f.name, environ)
        if raw is None:
            continue
        if f.name in _BOOL_FIELDS:
            value: object = parse_bool(f.name, raw)
        elif f.name == "max_parallel_requests":
            try:
                value = int(raw)
            except ValueError:
                raise InvalidConfigurationError(
                    f"Invalid max parallel requests '{raw}': must be a "
                    f"number between 1 and {MAX_PARALLEL_LIMIT}"
                ) from None
        elif f.name == "exclude":
            value = split_patterns(raw)
        else:
            value = raw
        setattr(config, f.name, value)

    for key, value in (cli_overrides or {}).items():
        if value is None:
            continue
        if not hasattr(config, key):
            raise InvalidConfigurationError(f"Unknown option '{key}'")
        setattr(config, key, value)

    validate_config(config, require_credentials)

    return config
