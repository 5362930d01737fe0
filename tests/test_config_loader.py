"""Tests for md_notion_sync.config_loader -- hierarchical config loading."""

import textwrap

import pytest
import yaml

from md_notion_sync.config_loader import (
    CONFIG_ENV_VAR,
    _interpolate_recursive,
    discover_config_files,
    ensure_config,
    interpolate_env_vars,
    load_hierarchical_config,
    load_yaml_file,
)


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """CWD and HOME in empty temp dirs, no config env var."""
    project = tmp_path / "project"
    home = tmp_path / "home"
    project.mkdir()
    home.mkdir()
    monkeypatch.chdir(project)
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    return project, home


def _write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(text))
    return path


# -------------------------------------------------------------------------
# Env var interpolation
# -------------------------------------------------------------------------


class TestInterpolateEnvVars:
    """Tests for ${VAR} and ${VAR:-default} substitution."""

    def test_replaces_set_var(self):
        assert interpolate_env_vars("${TOKEN}", {"TOKEN": "secret"}) == "secret"

    def test_unset_var_replaced_with_empty(self):
        assert interpolate_env_vars("${UNSET_VAR_XYZ}", {}) == ""

    def test_default_used_when_unset(self):
        assert interpolate_env_vars("${UNSET_VAR_XYZ:-fallback}", {}) == "fallback"

    def test_default_ignored_when_set(self):
        assert interpolate_env_vars("${N:-3}", {"N": "5"}) == "5"

    def test_empty_env_var_uses_default(self):
        assert interpolate_env_vars("${N:-3}", {"N": ""}) == "3"

    def test_multiple_vars_in_one_string(self):
        env = {"OWNER": "acme", "REPO": "docs"}
        assert interpolate_env_vars("${OWNER}/${REPO}", env) == "acme/docs"

    def test_literal_dollar_brace_no_closing(self):
        assert interpolate_env_vars("${UNCLOSED", {}) == "${UNCLOSED"

    def test_os_environ_default(self, monkeypatch):
        monkeypatch.setenv("MY_HOST", "localhost")
        assert interpolate_env_vars("${MY_HOST}") == "localhost"

    def test_nested_structures(self):
        data = {"notion": {"token": "${T}", "max": 3}, "list": ["${T}", 1]}
        assert _interpolate_recursive(data, {"T": "x"}) == {
            "notion": {"token": "x", "max": 3},
            "list": ["x", 1],
        }


# -------------------------------------------------------------------------
# !include
# -------------------------------------------------------------------------


class TestIncludeDirective:
    def test_include_relative_file(self, tmp_path):
        _write(tmp_path / "parts" / "notion.yml", "token: abc\n")
        main = _write(tmp_path / "main.yml", "notion: !include parts/notion.yml\n")

        assert load_yaml_file(main) == {"notion": {"token": "abc"}}

    def test_include_absolute_path(self, tmp_path):
        part = _write(tmp_path / "abs.yml", "value: 1\n")
        main = _write(tmp_path / "main.yml", f"x: !include {part}\n")

        assert load_yaml_file(main) == {"x": {"value": 1}}

    def test_include_nonexistent_raises(self, tmp_path):
        main = _write(tmp_path / "main.yml", "x: !include missing.yml\n")
        with pytest.raises(FileNotFoundError, match="missing.yml"):
            load_yaml_file(main)

    def test_circular_include_raises(self, tmp_path):
        _write(tmp_path / "a.yml", "b: !include b.yml\n")
        _write(tmp_path / "b.yml", "a: !include a.yml\n")
        with pytest.raises(ValueError, match="Circular include"):
            load_yaml_file(tmp_path / "a.yml")

    def test_self_include_raises(self, tmp_path):
        _write(tmp_path / "a.yml", "a: !include a.yml\n")
        with pytest.raises(ValueError, match="Circular include"):
            load_yaml_file(tmp_path / "a.yml")

    def test_global_safe_loader_not_polluted(self, tmp_path):
        with pytest.raises(yaml.constructor.ConstructorError):
            yaml.safe_load("x: !include other.yml\n")


# -------------------------------------------------------------------------
# Discovery
# -------------------------------------------------------------------------


class TestDiscoverConfigFiles:
    def test_empty_filesystem_returns_empty(self, isolated):
        assert discover_config_files() == []

    def test_project_before_user(self, isolated):
        project, home = isolated
        project_cfg = _write(project / ".notion-sync.yml", "{}\n")
        user_cfg = _write(home / ".config" / "md-notion-sync" / "config.yml", "{}\n")

        assert discover_config_files() == [project_cfg, user_cfg]

    def test_yaml_extension(self, isolated):
        project, _ = isolated
        cfg = _write(project / ".notion-sync.yaml", "{}\n")
        assert discover_config_files() == [cfg]

    def test_explicit_path_used_alone(self, isolated, tmp_path):
        project, _ = isolated
        _write(project / ".notion-sync.yml", "{}\n")
        explicit = _write(tmp_path / "ci.yml", "{}\n")

        assert discover_config_files(explicit) == [explicit.resolve()]

    def test_env_var_path(self, isolated, tmp_path):
        explicit = _write(tmp_path / "env.yml", "{}\n")
        assert discover_config_files(environ={CONFIG_ENV_VAR: str(explicit)}) == [
            explicit.resolve()
        ]

    def test_explicit_missing_raises(self, isolated, tmp_path):
        with pytest.raises(FileNotFoundError):
            discover_config_files(tmp_path / "nope.yml")


# -------------------------------------------------------------------------
# Hierarchical load
# -------------------------------------------------------------------------


class TestLoadHierarchicalConfig:
    def test_zero_config_returns_empty_dict(self, isolated):
        assert load_hierarchical_config() == {}

    def test_project_replaces_user_section(self, isolated):
        project, home = isolated
        _write(
            home / ".config" / "md-notion-sync" / "config.yml",
            """\
            notion:
              token: user-token
              page_permissions: read
            logging:
              level: DEBUG
            """,
        )
        _write(
            project / ".notion-sync.yml",
            """\
            notion:
              parent_page_id: abc
            """,
        )

        assert load_hierarchical_config() == {
            "notion": {"parent_page_id": "abc"},
            "logging": {"level": "DEBUG"},
        }

    def test_env_var_interpolation_after_merge(self, isolated):
        project, _ = isolated
        _write(project / ".notion-sync.yml", "notion:\n  token: ${NOTION_TOKEN}\n")

        data = load_hierarchical_config(environ={"NOTION_TOKEN": "secret_x"})

        assert data == {"notion": {"token": "secret_x"}}

    def test_non_dict_root_skipped(self, isolated):
        project, _ = isolated
        _write(project / ".notion-sync.yml", "- a\n- b\n")
        assert load_hierarchical_config() == {}

    def test_invalid_yaml_raises(self, isolated):
        project, _ = isolated
        _write(project / ".notion-sync.yml", "notion: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_hierarchical_config()


# -------------------------------------------------------------------------
# ensure_config
# -------------------------------------------------------------------------


class TestEnsureConfig:
    def test_creates_starter_in_cwd(self, isolated):
        project, _ = isolated
        path = ensure_config()

        assert path == project / ".notion-sync.yml"
        assert "md-notion-sync configuration" in path.read_text()
        # Starter content is entirely commented out
        assert yaml.safe_load(path.read_text()) is None

    def test_noop_when_exists(self, isolated):
        project, _ = isolated
        existing = _write(project / ".notion-sync.yml", "notion: {}\n")

        assert ensure_config() == existing
        assert existing.read_text() == "notion: {}\n"

    def test_explicit_target(self, isolated, tmp_path):
        project, _ = isolated
        _write(project / ".notion-sync.yml", "{}\n")
        target = tmp_path / "nested" / "cfg.yml"

        assert ensure_config(target) == target
        assert target.is_file()
