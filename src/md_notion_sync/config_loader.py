"""
YAML configuration file loader for md_notion_sync.

Finds the sync config file (``.notion-sync.yml`` by convention), resolves
``!include`` directives and ``${VAR}`` / ``${VAR:-default}`` references,
and merges the project file over the user-wide one.

Usage:
    from md_notion_sync.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()
    raw = load_hierarchical_config("ci/notion-sync.yml")
"""

import logging
import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "MD_NOTION_SYNC_CONFIG"
PROJECT_CONFIG_NAMES = (".notion-sync.yml", ".notion-sync.yaml")

# ${VAR} and ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(
    value: str, environ: Mapping[str, str] | None = None
) -> str:
    """Replace ``${VAR}`` and ``${VAR:-default}`` with environment values.

    An unset or empty VAR yields *default*, or ``""`` without one.  A ``${``
    with no closing brace is left as is.
    """
    env = os.environ if environ is None else environ

    def _replace(match: re.Match) -> str:
        env_val = env.get(match.group(1))
        if env_val:
            return env_val
        return match.group(2) or ""

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _interpolate_recursive(obj: Any, environ: Mapping[str, str] | None) -> Any:
    if isinstance(obj, str):
        return interpolate_env_vars(obj, environ)
    if isinstance(obj, dict):
        return {k: _interpolate_recursive(v, environ) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_interpolate_recursive(item, environ) for item in obj]
    return obj


class ConfigLoader(yaml.SafeLoader):
    """SafeLoader with ``!include``; the global ``yaml.SafeLoader`` is untouched."""


def _include_constructor(loader: ConfigLoader, node: yaml.ScalarNode) -> Any:
    """Handle ``!include other.yml`` relative to the including file."""
    target = Path(loader.construct_scalar(node))
    if not target.is_absolute():
        target = Path(loader.name).resolve().parent / target
    target = target.resolve()

    include_stack: list[Path] = getattr(loader, "_include_stack", [])
    if target in include_stack:
        chain = " -> ".join(str(p) for p in [*include_stack, target])
        raise ValueError(f"Circular include detected: {chain}")
    if not target.exists():
        raise FileNotFoundError(
            f"Include file not found: {target} "
            f"(referenced from {Path(loader.name).resolve()})"
        )

    return load_yaml_file(target, _include_stack=[*include_stack, target])


ConfigLoader.add_constructor("!include", _include_constructor)


def load_yaml_file(
    path: Path, *, _include_stack: list[Path] | None = None
) -> Any:
    """Parse one YAML file with ``!include`` support (no interpolation)."""
    path = path.resolve()
    with open(path, encoding="utf-8") as fh:
        loader = ConfigLoader(fh)
        loader._include_stack = _include_stack or [path]  # type: ignore[attr-defined]
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


def discover_config_files(
    explicit_path: str | os.PathLike | None = None,
    environ: Mapping[str, str] | None = None,
) -> list[Path]:
    """Return config file paths in precedence order (highest first).

    An explicit path (argument, else ``MD_NOTION_SYNC_CONFIG``) is used
    alone and must exist.  Otherwise the search order is:

        1. ``.notion-sync.yml`` / ``.notion-sync.yaml`` in CWD (first found)
        2. ``~/.config/md-notion-sync/config.yml``

    Raises:
        FileNotFoundError: If an explicitly named file does not exist.
    """
    env = os.environ if environ is None else environ
    explicit = explicit_path or env.get(CONFIG_ENV_VAR) or None
    if explicit:
        path = Path(explicit).expanduser().resolve()
        if not path.is_file():
            raise FileNotFoundError(f"Config file not found: {path}")
        return [path]

    found: list[Path] = []
    cwd = Path.cwd()
    for name in PROJECT_CONFIG_NAMES:
        if (cwd / name).is_file():
            found.append(cwd / name)
            break
    user_config = Path.home() / ".config" / "md-notion-sync" / "config.yml"
    if user_config.is_file():
        found.append(user_config)
    return found


_STARTER_CONFIG = """\
# md-notion-sync configuration
#
# Every setting can also come from the environment (NOTION_TOKEN,
# NOTION_PARENT_PAGE_ID, ...) or from GitHub Actions inputs.
#
# notion:
#   token: ${NOTION_TOKEN}
#   parent_page_id: 0123456789abcdef0123456789abcdef
#   # database_id: ...
#   page_permissions: none      # none | read | comment | edit | full
#   max_parallel_requests: 3
#
# sync:
#   files_pattern: "docs/**/*.md"
#   exclude: ["docs/drafts/**"]
#   mapping_file: .notion-page-ids.json
#   preserve_ids: true
#   enable_bidirectional_links: true
#   link_style: yaml,callout
#
# logging:
#   level: INFO
#   file: null
"""


def ensure_config(target: Path | None = None) -> Path:
    """Write a commented starter config unless one already exists.

    Returns:
        Path to the existing or newly created config file.
    """
    if target is not None:
        existing = [target] if target.is_file() else []
    else:
        existing = discover_config_files()
    if existing:
        logger.debug("Config file already exists: %s", existing[0])
        return existing[0]

    config_path = target or Path.cwd() / PROJECT_CONFIG_NAMES[0]
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Created starter config: %s", config_path)
    return config_path


def load_hierarchical_config(
    explicit_path: str | os.PathLike | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Load and merge the discovered config files.

    Files merge from lowest precedence to highest; a top-level section in
    a higher file **replaces** the same section from a lower one.  Env var
    references are interpolated after the merge.

    Returns an empty dict when no config file exists (zero-config).
    """
    paths = discover_config_files(explicit_path, environ)
    if not paths:
        logger.debug("No config files found, using defaults")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        try:
            data = load_yaml_file(path)
        except Exception:
            logger.exception("Failed to load config file %s", path)
            raise

        if isinstance(data, dict):
            merged.update(data)
        elif data is not None:
            logger.warning(
                "Config file %s has non-dict root (%s), skipping",
                path,
                type(data).__name__,
            )

    return _interpolate_recursive(merged, environ)
