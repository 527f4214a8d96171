"""
HTTP plumbing shared by the API client and token acquisition.

Wraps httpx so that every failure leaving this module is a CheckvistError:

- httpx.RequestError (connect, timeout, DNS, TLS) -> TransportError
- non-2xx responses -> ResourceNotFoundError when the body names a known
  missing resource, otherwise TransportError with the status code
- 2xx responses carrying the ``{"message": ...}`` envelope -> classified
  via classify_api_message
- bodies that are not JSON or not the expected shape -> DecodeError
"""

import logging
from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from .exceptions import (
    DecodeError,
    ResourceNotFoundError,
    TransportError,
    classify_api_message,
    match_not_found,
)
from .models import ApiMessage

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT = 30.0
USER_AGENT = "cvapi (python-httpx)"

_NO_JSON = object()


def validate_base_url(base_url: str) -> httpx.URL:
    """
    Validate a service base URL.

    Args:
        base_url: Base URL such as ``https://checkvist.com``

    Returns:
        Parsed URL

    Raises:
        ValueError: If the URL is empty, unparseable, not http(s) or has no host
    """
    if not base_url or not base_url.strip():
        raise ValueError("Base URL must not be empty")
    try:
        url = httpx.URL(base_url.strip())
    except httpx.InvalidURL as e:
        raise ValueError(f"Invalid base URL: {base_url!r}") from e
    if url.scheme not in ("http", "https") or not url.host:
        raise ValueError(f"Invalid base URL: {base_url!r}")
    return url


def build_http_client(
    base_url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """
    Create the underlying httpx client.

    Args:
        base_url: Service base URL (validated)
        timeout: Connect/read timeout in seconds
        transport: Optional transport, e.g. httpx.MockTransport in tests

    Returns:
        Configured httpx.Client
    """
    url = validate_base_url(base_url)
    return httpx.Client(
        base_url=url,
        timeout=timeout,
        transport=transport,
        headers={"Accept": "application/json", "User-Agent": USER_AGENT},
    )


def send(
    http: httpx.Client,
    method: str,
    path: str,
    *,
    headers: dict[str, str] | None = None,
    params: dict[str, Any] | None = None,
    json: Any = None,
) -> httpx.Response:
    """
    Send one request, translating transport failures.

    No status handling happens here; callers decide what a 401 means.

    Raises:
        TransportError: If no response was received
    """
    logger.debug("%s %s", method, path)
    try:
        response = http.request(method, path, headers=headers, params=params, json=json)
    except httpx.TimeoutException as e:
        raise TransportError(f"Request timed out: {method} {path}", url=path) from e
    except httpx.RequestError as e:
        raise TransportError(f"Request failed: {method} {path}: {e}", url=path) from e
    logger.debug("%s %s -> %s", method, path, response.status_code)
    return response


def _try_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return _NO_JSON


def _as_envelope(payload: Any) -> ApiMessage | None:
    # Entities always carry an id; the error envelope never does.
    if isinstance(payload, dict) and isinstance(payload.get("message"), str) and "id" not in payload:
        return ApiMessage(message=payload["message"])
    return None


def decode_response(response: httpx.Response, adapter: TypeAdapter[T]) -> T:
    """
    Decode a response into the expected type.

    Args:
        response: Response to decode
        adapter: Pydantic adapter for the expected shape

    Returns:
        Validated value

    Raises:
        ResourceNotFoundError: Body names a known missing list/parent task
        UnknownApiError: 2xx error envelope with an unrecognised message
        TransportError: Any other non-2xx status
        DecodeError: Body is not JSON, or JSON of the wrong shape
    """
    url = str(response.request.url)
    payload = _try_json(response)
    envelope = _as_envelope(payload) if payload is not _NO_JSON else None

    if not response.is_success:
        if envelope is not None:
            resource = match_not_found(envelope.message)
            if resource is not None:
                raise ResourceNotFoundError(
                    resource, envelope.message, url=url, status_code=response.status_code
                )
        detail = envelope.message if envelope is not None else response.reason_phrase
        raise TransportError(
            f"HTTP {response.status_code}: {detail}",
            status_code=response.status_code,
            url=url,
        )

    if payload is _NO_JSON:
        raise DecodeError("Response body is not valid JSON", url=url)

    if envelope is not None:
        raise classify_api_message(envelope.message, url=url)

    try:
        return adapter.validate_python(payload)
    except ValidationError as e:
        raise DecodeError(f"Unexpected response shape from {url}", url=url) from e


__all__ = [
    "DEFAULT_TIMEOUT",
    "build_http_client",
    "decode_response",
    "send",
    "validate_base_url",
]
