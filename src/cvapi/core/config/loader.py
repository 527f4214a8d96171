"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < .env files (opt-in) < env vars
"""

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from ..http import DEFAULT_TIMEOUT
from .env import load_layered_env
from .models import DEFAULT_SERVICE_URL, ClientSettings

logger = logging.getLogger(__name__)

# Global cache to avoid reloading settings multiple times per process
_settings_cache: ClientSettings | None = None


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """
    Get path to user configuration file.

    Returns:
        Path to ~/.config/cvapi/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "cvapi" / "config.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`; nested
    dicts are merged rather than replaced.

    Example:
        >>> deep_merge({"a": 1, "b": {"x": 1}}, {"b": {"y": 2}})
        {'a': 1, 'b': {'x': 1, 'y': 2}}
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON object, or None if the file is missing, unreadable or
        not a JSON object
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None

    if not isinstance(data, dict):
        logger.warning("Ignoring config at %s: top level is not an object", path)
        return None
    return data


def apply_env_overrides(
    config_dict: dict[str, Any], environ: Mapping[str, str] | None = None
) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Supported env vars:
        CVAPI_SERVICE_URL - overrides service_url
        CVAPI_TIMEOUT - overrides timeout (seconds, > 0)
        CVAPI_CACHE_PATH - overrides cache_path

    Invalid values are logged and ignored.

    Args:
        config_dict: Configuration dictionary to override
        environ: Variables to read (defaults to os.environ)

    Returns:
        Configuration dictionary with env var overrides applied
    """
    if environ is None:
        environ = os.environ
    result = config_dict.copy()

    if url := environ.get("CVAPI_SERVICE_URL"):
        result["service_url"] = url

    if timeout_str := environ.get("CVAPI_TIMEOUT"):
        try:
            timeout = float(timeout_str)
        except ValueError:
            logger.warning("Invalid CVAPI_TIMEOUT value %r, ignoring", timeout_str)
        else:
            if timeout <= 0:
                logger.warning("CVAPI_TIMEOUT must be > 0, got %s, ignoring", timeout)
            else:
                result["timeout"] = timeout

    if cache_path := environ.get("CVAPI_CACHE_PATH"):
        result["cache_path"] = cache_path

    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "service_url": DEFAULT_SERVICE_URL,
        "timeout": DEFAULT_TIMEOUT,
        "cache_path": None,
    }


def load_settings(
    use_cache: bool = True,
    *,
    env_files: bool = False,
    project_dir: Path | None = None,
) -> ClientSettings:
    """
    Load settings with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (CVAPI_*), optionally layered over .env files
        2. User config (~/.config/cvapi/config.json)
        3. Hardcoded defaults

    Args:
        use_cache: If True, return cached settings from a previous load
        env_files: Also read CVAPI_* values from user and project .env files
        project_dir: Directory holding the project .env files (defaults to cwd)

    Returns:
        Validated ClientSettings instance

    Raises:
        ValidationError: If the merged settings fail Pydantic validation
    """
    global _settings_cache

    if use_cache and _settings_cache is not None:
        return _settings_cache

    merged = get_default_config()

    user_config_path = get_user_config_path()
    if user_config := load_json_file(user_config_path):
        merged = deep_merge(merged, user_config)

    environ = load_layered_env(project_dir=project_dir) if env_files else None
    merged = apply_env_overrides(merged, environ)

    settings = ClientSettings(**merged)
    logger.debug("Loaded settings: service_url=%s timeout=%s", settings.service_url, settings.timeout)

    _settings_cache = settings
    return settings


def clear_cache() -> None:
    """
    Clear the cached settings.

    Useful for testing or when config files change during execution.
    """
    global _settings_cache
    _settings_cache = None
