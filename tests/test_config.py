"""Tests for the configuration module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from docsession.config import (
    Config,
    clear_secret_cache,
    fetch_secret,
    get_config,
    load_config,
    reset_config,
)
from docsession.config.loader import dict_to_config, env_overrides, merge_dicts
from docsession.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)


class TestMergeDicts:
    """Test the deep merge algorithm."""

    def test_simple_override(self) -> None:
        """Test that override values replace base values."""
        result = merge_dicts({"a": 1, "b": 2}, {"b": 3, "c": 4})
        assert result == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self) -> None:
        """Test that nested dicts are recursively merged."""
        base = {"backend": {"endpoint": "https://a", "timeout": 30}}
        override = {"backend": {"timeout": 5}}
        result = merge_dicts(base, override)
        assert result["backend"] == {"endpoint": "https://a", "timeout": 5}

    def test_none_does_not_override(self) -> None:
        """Test that None values in override don't replace base values."""
        assert merge_dicts({"a": 1}, {"a": None}) == {"a": 1}

    def test_list_replaced_not_merged(self) -> None:
        """Test that lists are replaced, not concatenated."""
        result = merge_dicts({"items": [1, 2, 3]}, {"items": [4, 5]})
        assert result["items"] == [4, 5]

    def test_inputs_not_mutated(self) -> None:
        base = {"a": {"b": 1}}
        merge_dicts(base, {"a": {"b": 2}})
        assert base == {"a": {"b": 1}}


class TestConfigPaths:
    """Test platform-aware path resolution."""

    def test_windows_system_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "win32")
        monkeypatch.setenv("PROGRAMDATA", "C:\\ProgramData")

        path = get_system_config_path()
        assert path is not None
        assert "ProgramData" in str(path)
        assert "docsession" in str(path)

    def test_windows_user_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "win32")
        monkeypatch.setenv("APPDATA", "C:\\Users\\Test\\AppData\\Roaming")

        path = get_user_config_path()
        assert path is not None
        assert "AppData" in str(path)

    def test_unix_system_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        assert get_system_config_path() == Path("/etc/docsession/config.yaml")

    def test_unix_user_path_xdg(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test user config path respects XDG_CONFIG_HOME."""
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", "/home/test/.config-custom")

        assert get_user_config_path() == Path("/home/test/.config-custom/docsession/config.yaml")

    def test_project_config_path(self) -> None:
        path = get_project_config_path("/home/user/myproject")
        assert path == Path("/home/user/myproject/.docsession/config.yaml")

    def test_get_config_paths_order(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that config paths go system, user, project."""
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)

        paths = get_config_paths(project_root="/project")
        assert len(paths) == 3
        assert "etc" in paths[0].parts
        assert ".docsession" in str(paths[1]) or ".config" in str(paths[1])
        assert paths[2] == Path("/project/.docsession/config.yaml")


class TestConfigLoading:
    """Test configuration loading."""

    @pytest.fixture(autouse=True)
    def isolated(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        """Point user config at an empty dir and reset the cache."""
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
        for var in ("DOCSESSION_LOG", "DOCSESSION_ENDPOINT", "DOCSESSION_TELEMETRY_OPT_OUT"):
            monkeypatch.delenv(var, raising=False)
        reset_config()
        yield
        reset_config()

    @pytest.fixture
    def project(self, tmp_path: Path) -> Path:
        root = tmp_path / "project"
        (root / ".docsession").mkdir(parents=True)
        return root

    def test_defaults(self, tmp_path: Path) -> None:
        config = load_config(project_root=str(tmp_path))
        assert isinstance(config, Config)
        assert config.backend.poll_interval == 10.0
        assert config.telemetry.product == "DocGeneration"
        assert "**/.git/**" in config.session.ignore_patterns

    def test_load_project_yaml(self, project: Path) -> None:
        (project / ".docsession" / "config.yaml").write_text(
            """
backend:
  endpoint: https://docgen.example.com/v1/
  max_poll_attempts: 12
session:
  ignore_patterns: ["**/vendor/**"]
telemetry:
  opt_out: true
reference_log: ~/refs.log
custom:
  key: value
"""
        )
        config = load_config(project_root=str(project))
        assert config.backend.endpoint == "https://docgen.example.com/v1"
        assert config.backend.max_poll_attempts == 12
        assert config.session.ignore_patterns == ["**/vendor/**"]
        assert config.telemetry.opt_out is True
        assert config.reference_log == "~/refs.log"
        assert config.extra == {"custom": {"key": "value"}}

    def test_project_overrides_user(self, project: Path, tmp_path: Path) -> None:
        user_dir = tmp_path / "xdg" / "docsession"
        user_dir.mkdir(parents=True)
        (user_dir / "config.yaml").write_text("backend:\n  endpoint: https://user\n  timeout: 5\n")
        (project / ".docsession" / "config.yaml").write_text("backend:\n  endpoint: https://project\n")

        config = load_config(project_root=str(project))
        assert config.backend.endpoint == "https://project"
        assert config.backend.timeout == 5.0

    def test_env_overrides_files(self, project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (project / ".docsession" / "config.yaml").write_text("backend:\n  endpoint: https://file\n")
        monkeypatch.setenv("DOCSESSION_ENDPOINT", "https://env")
        monkeypatch.setenv("DOCSESSION_TELEMETRY_OPT_OUT", "yes")
        monkeypatch.setenv("DOCSESSION_LOG", "/tmp/docsession.log")

        config = load_config(project_root=str(project))
        assert config.backend.endpoint == "https://env"
        assert config.telemetry.opt_out is True
        assert config.logging.file == "/tmp/docsession.log"

    def test_env_overrides_empty(self) -> None:
        assert env_overrides() == {}

    def test_invalid_yaml_uses_defaults(self, project: Path) -> None:
        (project / ".docsession" / "config.yaml").write_text("invalid: yaml: :")

        config = load_config(project_root=str(project))
        assert config.backend.endpoint == "http://localhost:8080"

    def test_global_config_cached(self) -> None:
        first = get_config()
        assert get_config() is first
        assert load_config(reload=True) is not first

    def test_dict_to_config_drops_bad_patterns(self) -> None:
        config = dict_to_config({"session": {"ignore_patterns": ["*.log", 3, None]}})
        assert config.session.ignore_patterns == ["*.log"]


class TestSecrets:
    """Test bearer token lookup."""

    @pytest.fixture(autouse=True)
    def clear_cache(self):
        clear_secret_cache()
        yield
        clear_secret_cache()

    def test_environment_wins(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        secrets = tmp_path / ".env.secrets"
        secrets.write_text("DOCSESSION_TOKEN=from-file\n")
        monkeypatch.setenv("DOCSESSION_TOKEN", "from-env")

        assert fetch_secret("DOCSESSION_TOKEN", secrets_path=secrets) == "from-env"

    def test_secrets_file_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        secrets = tmp_path / ".env.secrets"
        secrets.write_text("DOCSESSION_TOKEN=from-file\n")
        monkeypatch.delenv("DOCSESSION_TOKEN", raising=False)

        assert fetch_secret("DOCSESSION_TOKEN", secrets_path=secrets) == "from-file"

    def test_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("DOCSESSION_MISSING", raising=False)

        assert fetch_secret("DOCSESSION_MISSING", "fallback", secrets_path=tmp_path / "none") == "fallback"
