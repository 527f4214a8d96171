"""
Token acquisition.

Exchanges a username and Checkvist remote API key for a bearer token. This
runs once at login time and is not part of the regular request path; the
resulting token is handed to ApiClient.

Example:
    >>> from cvapi.core.auth import get_token
    >>> token = get_token("https://checkvist.com", "me@example.com", "remote-key")
"""

import logging

import httpx
from pydantic import TypeAdapter

from .http import DEFAULT_TIMEOUT, build_http_client, decode_response, send
from .models import TokenResponse

logger = logging.getLogger(__name__)

LOGIN_PATH = "/auth/login.json"
API_VERSION_PARAMS = {"version": 2}

_token_adapter = TypeAdapter(TokenResponse)


def get_token(
    base_url: str,
    username: str,
    remote_key: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.BaseTransport | None = None,
) -> str:
    """
    Log in and return a bearer token.

    Args:
        base_url: Service base URL
        username: Checkvist username (email)
        remote_key: Checkvist remote API key
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests)

    Returns:
        The token string

    Raises:
        ValueError: If base_url is invalid
        TransportError: Network failure or non-2xx status
        DecodeError: Response had no token
        UnknownApiError: Server replied with an error message
    """
    with build_http_client(base_url, timeout=timeout, transport=transport) as http:
        response = send(
            http,
            "POST",
            LOGIN_PATH,
            params=API_VERSION_PARAMS,
            json={"username": username, "remote_key": remote_key},
        )
        token = decode_response(response, _token_adapter).token

    logger.info("Obtained Checkvist token for %s", username)
    return token


__all__ = ["get_token"]
