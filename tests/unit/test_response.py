"""
Unit tests for Response and HTTP status codes.
"""

import io
from datetime import datetime, timedelta, timezone

import pytest

from httpmessage.errors import InvalidArgumentError
from httpmessage.http.response import Response, format_http_date
from httpmessage.http.status_codes import HTTPStatus
from httpmessage.http.stream import ByteStream


class TestHTTPStatus:
    """Tests for HTTPStatus enum."""

    def test_status_values(self):
        """Test that status codes have correct values."""
        assert HTTPStatus.OK == 200
        assert HTTPStatus.CREATED == 201
        assert HTTPStatus.NOT_FOUND == 404
        assert HTTPStatus.INTERNAL_SERVER_ERROR == 500

    def test_status_phrases(self):
        """Test that status codes have correct phrases."""
        assert HTTPStatus.OK.phrase == "OK"
        assert HTTPStatus(404).phrase == "Not Found"
        assert HTTPStatus.IM_A_TEAPOT.phrase == "I'm a teapot"

    def test_status_categories(self):
        """Test status code category checks."""
        assert HTTPStatus.CONTINUE.is_informational
        assert HTTPStatus.OK.is_success
        assert HTTPStatus.FOUND.is_redirect
        assert HTTPStatus.NOT_FOUND.is_client_error
        assert HTTPStatus.BAD_GATEWAY.is_server_error
        assert HTTPStatus.NOT_FOUND.is_error
        assert not HTTPStatus.OK.is_error


class TestResponse:
    """Tests for Response."""

    def test_defaults(self):
        """Test a default response."""
        response = Response()

        assert response.status == HTTPStatus.OK
        assert response.get_reason_phrase() == "OK"
        assert response.status_line == "HTTP/1.1 200 OK"

    def test_with_status(self):
        """Test changing the status on a copy."""
        original = Response()
        updated = original.with_status(404)

        assert original.get_status_code() == 200
        assert updated.get_status_code() is HTTPStatus.NOT_FOUND
        assert updated.status_line == "HTTP/1.1 404 Not Found"

    def test_custom_reason(self):
        """Test an explicit reason phrase."""
        response = Response().with_status(200, "Fine")

        assert response.get_reason_phrase() == "Fine"
        assert response.status_line == "HTTP/1.1 200 Fine"

    def test_unknown_code_has_no_phrase(self):
        """Test a valid but unregistered status code."""
        response = Response(299)

        assert response.get_status_code() == 299
        assert response.get_reason_phrase() == ""
        assert response.status_line == "HTTP/1.1 299"

    @pytest.mark.parametrize("code", [99, 600, "200", True, None])
    def test_invalid_status(self, code):
        """Test that invalid codes are rejected."""
        with pytest.raises(InvalidArgumentError):
            Response().with_status(code)

    def test_with_header_returns_response(self):
        """Test that inherited with_* keep the Response type and status."""
        response = Response(HTTPStatus.CREATED).with_header("Location", "/items/1")

        assert isinstance(response, Response)
        assert response.status == HTTPStatus.CREATED
        assert response.get_header("Location") == ["/items/1"]

    def test_protocol_in_status_line(self):
        """Test the status line for another protocol version."""
        assert Response(protocol_version="1.0").status_line == "HTTP/1.0 200 OK"

    def test_to_bytes(self):
        """Test serialization with generated Content-Length and Date."""
        body = ByteStream(io.BytesIO(b'{"ok": true}'))
        response = Response(body=body, headers={"Content-Type": "application/json"})

        raw = response.to_bytes()
        head, _, payload = raw.partition(b"\r\n\r\n")

        assert raw.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"Content-Length: 12\r\n" in head
        assert b"Date:" in head
        assert payload == b'{"ok": true}'
        assert not response.has_header("Content-Length")

    def test_to_bytes_keeps_explicit_headers(self):
        """Test that existing Content-Length and Date are not overwritten."""
        response = Response(headers={"Content-Length": "0", "Date": "Thu, 01 Jan 1970 00:00:00 GMT"})

        raw = response.to_bytes()

        assert b"Content-Length: 0\r\n" in raw
        assert b"Thu, 01 Jan 1970 00:00:00 GMT" in raw

    def test_to_bytes_is_repeatable(self):
        """Test that serializing twice gives the same body."""
        response = Response(body=ByteStream(io.BytesIO(b"abc")))

        assert response.to_bytes().endswith(b"abc")
        assert response.to_bytes().endswith(b"abc")

    def test_repr(self):
        """Test the debugging representation."""
        assert repr(Response(404)) == "<Response 'HTTP/1.1 404 Not Found'>"


class TestFormatHttpDate:
    """Tests for format_http_date()."""

    def test_utc(self):
        """Test formatting a UTC datetime."""
        dt = datetime(2015, 10, 21, 7, 28, tzinfo=timezone.utc)

        assert format_http_date(dt) == "Wed, 21 Oct 2015 07:28:00 GMT"

    def test_converts_to_gmt(self):
        """Test that aware datetimes are converted to GMT."""
        dt = datetime(2015, 10, 21, 9, 28, tzinfo=timezone(timedelta(hours=2)))

        assert format_http_date(dt) == "Wed, 21 Oct 2015 07:28:00 GMT"
