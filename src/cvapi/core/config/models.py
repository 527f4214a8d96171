"""
Configuration data models for cvapi.

These models define the structure of ~/.config/cvapi/config.json, with
validation and type safety via Pydantic.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..http import DEFAULT_TIMEOUT, validate_base_url

DEFAULT_SERVICE_URL = "https://checkvist.com"


class ClientSettings(BaseModel):
    """
    Settings for the API client and the local cache.

    Example:
        >>> settings = ClientSettings(timeout=10)
        >>> settings.service_url
        'https://checkvist.com'
    """
    service_url: str = Field(
        default=DEFAULT_SERVICE_URL,
        description="Base URL of the Checkvist service"
    )
    timeout: float = Field(
        default=DEFAULT_TIMEOUT,
        gt=0,
        description="Connect/read timeout for API requests, in seconds"
    )
    cache_path: Optional[Path] = Field(
        default=None,
        description="SQLite cache file; None keeps the cache in memory"
    )

    model_config = ConfigDict(
        extra="ignore",
        validate_assignment=True,
    )

    @field_validator("service_url")
    @classmethod
    def validate_service_url(cls, v: str) -> str:
        """Reject URLs the client could not use."""
        validate_base_url(v)
        return v.strip().rstrip("/")

    @field_validator("cache_path", mode="before")
    @classmethod
    def expand_cache_path(cls, v: object) -> object:
        """Expand ``~`` in cache paths; empty strings mean no file."""
        if v == "":
            return None
        if isinstance(v, (str, Path)):
            return Path(v).expanduser()
        return v
