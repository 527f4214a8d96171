"""
Unit tests for configuration loading.

Tests settings validation, user config merging, environment variable
overrides, caching, and .env loading.
"""

import json
import logging
import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from cvapi.core.config import (
    DEFAULT_SERVICE_URL,
    ClientSettings,
    clear_cache,
    get_user_config_path,
    load_layered_env,
    load_settings,
)
from cvapi.core.config.loader import (
    apply_env_overrides,
    deep_merge,
    get_xdg_config_home,
    load_json_file,
)

ENV_VARS = ("CVAPI_SERVICE_URL", "CVAPI_TIMEOUT", "CVAPI_CACHE_PATH")


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Point XDG_CONFIG_HOME at tmp_path and drop CVAPI_* variables."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    return tmp_path / "config"


class TestClientSettings:
    """Test ClientSettings model."""

    def test_defaults(self):
        """Test default values."""
        settings = ClientSettings()
        assert settings.service_url == "https://checkvist.com"
        assert settings.timeout == 30.0
        assert settings.cache_path is None

    def test_invalid_service_url(self):
        """Test a non-http URL is rejected."""
        with pytest.raises(ValidationError):
            ClientSettings(service_url="ftp://checkvist.com")

    def test_trailing_slash_stripped(self):
        """Test the service URL is normalised."""
        assert ClientSettings(service_url="http://mock/").service_url == "http://mock"

    def test_timeout_must_be_positive(self):
        """Test zero or negative timeouts are rejected."""
        with pytest.raises(ValidationError):
            ClientSettings(timeout=0)

    def test_cache_path_expanded(self):
        """Test ~ in cache_path is expanded."""
        settings = ClientSettings(cache_path="~/cvapi.db")
        assert settings.cache_path == Path.home() / "cvapi.db"


class TestHelpers:
    """Test loader helper functions."""

    def test_deep_merge(self):
        """Test nested dicts are merged and other values replaced."""
        assert deep_merge({"a": 1, "b": {"x": 1}}, {"b": {"y": 2}, "a": 3}) == {
            "a": 3,
            "b": {"x": 1, "y": 2},
        }

    def test_load_invalid_json(self, tmp_path, caplog):
        """Test invalid JSON returns None and logs a warning."""
        path = tmp_path / "config.json"
        path.write_text("{ invalid json }")

        with caplog.at_level(logging.WARNING):
            assert load_json_file(path) is None
        assert "Failed to parse config" in caplog.text

    def test_load_non_object(self, tmp_path):
        """Test a JSON array is ignored."""
        path = tmp_path / "config.json"
        path.write_text("[1, 2]")
        assert load_json_file(path) is None

    def test_load_missing(self, tmp_path):
        """Test a missing file returns None."""
        assert load_json_file(tmp_path / "missing.json") is None

    def test_xdg_paths(self, clean_env):
        """Test the user config lives under XDG_CONFIG_HOME/cvapi."""
        assert get_xdg_config_home() == clean_env
        assert get_user_config_path() == clean_env / "cvapi" / "config.json"


class TestApplyEnvOverrides:
    """Test environment variable override logic."""

    def test_all_overrides(self, clean_env, monkeypatch):
        """Test every supported variable."""
        monkeypatch.setenv("CVAPI_SERVICE_URL", "http://localhost:3000")
        monkeypatch.setenv("CVAPI_TIMEOUT", "5.5")
        monkeypatch.setenv("CVAPI_CACHE_PATH", "/tmp/cv.db")

        result = apply_env_overrides({})

        assert result == {
            "service_url": "http://localhost:3000",
            "timeout": 5.5,
            "cache_path": "/tmp/cv.db",
        }

    @pytest.mark.parametrize("value", ["soon", "0", "-3"])
    def test_invalid_timeout_ignored(self, clean_env, monkeypatch, caplog, value):
        """Test bad timeouts are logged and ignored."""
        monkeypatch.setenv("CVAPI_TIMEOUT", value)
        with caplog.at_level(logging.WARNING):
            result = apply_env_overrides({"timeout": 30.0})
        assert result["timeout"] == 30.0
        assert "CVAPI_TIMEOUT" in caplog.text


class TestLoadSettings:
    """Test the full loading chain."""

    def test_defaults_only(self, clean_env):
        """Test loading with no config file and no env."""
        settings = load_settings(use_cache=False)
        assert settings.service_url == DEFAULT_SERVICE_URL

    def test_user_config_then_env(self, clean_env, monkeypatch):
        """Test env vars win over the user config file."""
        config_dir = clean_env / "cvapi"
        config_dir.mkdir(parents=True)
        (config_dir / "config.json").write_text(
            json.dumps({"service_url": "http://from-file", "timeout": 12})
        )
        monkeypatch.setenv("CVAPI_SERVICE_URL", "http://from-env")

        settings = load_settings(use_cache=False)

        assert settings.service_url == "http://from-env"
        assert settings.timeout == 12

    def test_cached(self, clean_env, monkeypatch):
        """Test settings are cached until clear_cache."""
        first = load_settings()
        monkeypatch.setenv("CVAPI_TIMEOUT", "9")
        assert load_settings() is first

        clear_cache()
        assert load_settings().timeout == 9


    def test_env_files_opt_in(self, clean_env, tmp_path):
        """Test project .env values apply only when env_files is set."""
        project = tmp_path / "project"
        project.mkdir()
        (project / ".env").write_text("CVAPI_TIMEOUT=7\nOTHER_TOOL_TOKEN=x\n")

        assert load_settings(use_cache=False, project_dir=project).timeout == 30.0
        settings = load_settings(use_cache=False, env_files=True, project_dir=project)

        assert settings.timeout == 7
        assert "CVAPI_TIMEOUT" not in os.environ

    def test_env_beats_env_files(self, clean_env, tmp_path, monkeypatch):
        """Test exported variables win over .env files."""
        project = tmp_path / "project"
        project.mkdir()
        (project / ".env").write_text("CVAPI_SERVICE_URL=http://from-dotenv\n")
        monkeypatch.setenv("CVAPI_SERVICE_URL", "http://from-shell")

        settings = load_settings(use_cache=False, env_files=True, project_dir=project)

        assert settings.service_url == "http://from-shell"


class TestLoadLayeredEnv:
    """Test .env layering."""

    def test_project_file_read(self, tmp_path):
        """Test CVAPI_* values are read and other keys skipped."""
        (tmp_path / ".env").write_text("CVAPI_TIMEOUT=7\nUNRELATED=1\n")

        layered = load_layered_env(project_dir=tmp_path, user_env_paths=[], environ={})

        assert layered == {"CVAPI_TIMEOUT": "7"}

    def test_process_env_wins(self, tmp_path):
        """Test process variables override file values."""
        (tmp_path / ".env").write_text("CVAPI_TIMEOUT=7\n")

        layered = load_layered_env(
            project_dir=tmp_path, user_env_paths=[], environ={"CVAPI_TIMEOUT": "3"}
        )

        assert layered["CVAPI_TIMEOUT"] == "3"

    def test_project_overrides_user(self, tmp_path):
        """Test project .env beats user .env, and .env.local beats .env."""
        user_env = tmp_path / "user.env"
        user_env.write_text("CVAPI_SERVICE_URL=http://user\nCVAPI_TIMEOUT=1\n")
        (tmp_path / ".env").write_text("CVAPI_SERVICE_URL=http://project\n")
        (tmp_path / ".env.local").write_text("CVAPI_TIMEOUT=2\n")

        layered = load_layered_env(project_dir=tmp_path, user_env_paths=[user_env], environ={})

        assert layered == {"CVAPI_SERVICE_URL": "http://project", "CVAPI_TIMEOUT": "2"}

    def test_missing_files(self, tmp_path):
        """Test missing files contribute nothing."""
        assert load_layered_env(project_dir=tmp_path, user_env_paths=[tmp_path / "nope"], environ={}) == {}
