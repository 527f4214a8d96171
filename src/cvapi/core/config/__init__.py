"""
Configuration models and loading.

This module provides the Pydantic settings model for cvapi with
multi-layer merging: defaults < user config < env vars.
"""

from .env import load_layered_env
from .loader import (
    clear_cache,
    get_user_config_path,
    get_xdg_config_home,
    load_settings,
)
from .models import DEFAULT_SERVICE_URL, ClientSettings

__all__ = [
    # Models
    "ClientSettings",
    "DEFAULT_SERVICE_URL",
    # Loader functions
    "clear_cache",
    "get_user_config_path",
    "get_xdg_config_home",
    "load_layered_env",
    "load_settings",
]
