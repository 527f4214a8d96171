"""Tests for the shared HTTP plumbing."""

import httpx
import pytest
from pydantic import TypeAdapter

from cvapi.core.exceptions import (
    DecodeError,
    ResourceNotFoundError,
    TransportError,
    UnknownApiError,
)
from cvapi.core.http import build_http_client, decode_response, send, validate_base_url
from cvapi.core.models import Checklist

from conftest import checklist_json

_checklist = TypeAdapter(Checklist)


def _response(status: int, **kwargs) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("GET", "http://mock/checklists/1.json"), **kwargs)


class TestValidateBaseUrl:
    """Tests for validate_base_url."""

    @pytest.mark.parametrize("url", ["https://checkvist.com", "http://mock", "http://localhost:8080/api"])
    def test_valid(self, url: str) -> None:
        """Test accepted URLs."""
        assert validate_base_url(url).scheme in ("http", "https")

    @pytest.mark.parametrize("url", ["", "   ", "not a url", "ftp://checkvist.com", "checkvist.com"])
    def test_invalid(self, url: str) -> None:
        """Test rejected URLs raise ValueError."""
        with pytest.raises(ValueError):
            validate_base_url(url)


class TestSend:
    """Tests for send."""

    def test_connect_error_becomes_transport_error(self) -> None:
        """Test connection failures are wrapped with the cause kept."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        with build_http_client("http://mock", transport=httpx.MockTransport(handler)) as http:
            with pytest.raises(TransportError, match="Request failed") as exc_info:
                send(http, "GET", "/checklists.json")

        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_timeout_becomes_transport_error(self) -> None:
        """Test timeouts are wrapped."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out")

        with build_http_client("http://mock", transport=httpx.MockTransport(handler)) as http:
            with pytest.raises(TransportError, match="timed out"):
                send(http, "GET", "/checklists.json")

    def test_sends_default_headers(self) -> None:
        """Test Accept and User-Agent are set on every request."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        with build_http_client("http://mock", transport=httpx.MockTransport(handler)) as http:
            send(http, "GET", "/checklists.json", headers={"X-Client-Token": "t"})

        assert seen[0].headers["Accept"] == "application/json"
        assert seen[0].headers["User-Agent"].startswith("cvapi")
        assert seen[0].headers["X-Client-Token"] == "t"


class TestDecodeResponse:
    """Tests for decode_response."""

    def test_success(self) -> None:
        """Test a well-formed body decodes."""
        checklist = decode_response(_response(200, json=checklist_json()), _checklist)
        assert checklist.name == "inbox"

    def test_200_envelope_not_found(self) -> None:
        """Test a 200 envelope naming a missing list is ResourceNotFoundError."""
        response = _response(200, json={"message": "The list doesn't exist or is not available to you"})
        with pytest.raises(ResourceNotFoundError) as exc_info:
            decode_response(response, _checklist)
        assert exc_info.value.resource == "list"

    def test_200_envelope_unknown(self) -> None:
        """Test a 200 envelope with another message is UnknownApiError."""
        with pytest.raises(UnknownApiError, match="Quota exceeded"):
            decode_response(_response(200, json={"message": "Quota exceeded"}), _checklist)

    def test_non_2xx_envelope_not_found(self) -> None:
        """Test a known message on an error status is still ResourceNotFoundError."""
        response = _response(403, json={"message": "The list doesn't exist or is not available to you"})
        with pytest.raises(ResourceNotFoundError):
            decode_response(response, _checklist)

    def test_non_2xx_plain(self) -> None:
        """Test other error statuses are TransportError with the code."""
        with pytest.raises(TransportError, match="HTTP 404") as exc_info:
            decode_response(_response(404, text="Not Found"), _checklist)
        assert exc_info.value.status_code == 404

    def test_non_2xx_unknown_envelope(self) -> None:
        """Test an unknown message on an error status keeps the message."""
        with pytest.raises(TransportError, match="HTTP 500: boom"):
            decode_response(_response(500, json={"message": "boom"}), _checklist)

    def test_not_json(self) -> None:
        """Test a non-JSON 200 body is DecodeError."""
        with pytest.raises(DecodeError, match="not valid JSON"):
            decode_response(_response(200, content=b"<html>oops</html>"), _checklist)

    def test_wrong_shape(self) -> None:
        """Test JSON of the wrong shape is DecodeError with the validation cause."""
        with pytest.raises(DecodeError) as exc_info:
            decode_response(_response(200, json={"unexpected": True}), _checklist)
        assert exc_info.value.__cause__ is not None

    def test_entity_with_message_field_not_envelope(self) -> None:
        """Test a body carrying an id is decoded as an entity, not an envelope."""
        response = _response(200, json={**checklist_json(), "message": "hello"})
        assert decode_response(response, _checklist).id == 1
