"""
=============================================================================
HTTP RESPONSE
=============================================================================

An immutable response message: status code, reason phrase, headers, body.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 200 OK\r\n                     ← status_line            │
    │    Cache-Control:  max-age=3600\r\n        ← str(headers)           │
    │    Content-Length: 27\r\n                                           │
    │    Content-Type:   application/json\r\n                             │
    │    \r\n                                                              │
    │    {"message": "Hello World"}              ← body stream            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Like every Message, a Response is never modified in place:

    response = Response().with_status(404).with_header("X-Reason", "gone")

=============================================================================
"""

from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

from ..errors import InvalidArgumentError, StreamError
from .headers import HeaderCollection
from .message import Message
from .status_codes import HTTPStatus
from .stream import ByteStream


StatusCode = Union[HTTPStatus, int]


def _validate_status(code: Any) -> StatusCode:
    if isinstance(code, bool) or not isinstance(code, int) or not 100 <= code <= 599:
        raise InvalidArgumentError(f"Invalid HTTP status code: {code!r}. Must be an integer between 100 and 599.")
    try:
        return HTTPStatus(code)
    except ValueError:
        return code


class Response(Message):
    """
    An outgoing HTTP response.

    Example:
        response = (Response()
            .with_status(HTTPStatus.CREATED)
            .with_header("Location", "/items/1"))
        response.status_line        # "HTTP/1.1 201 Created"
    """

    def __init__(
        self,
        status: StatusCode = HTTPStatus.OK,
        headers: Union[HeaderCollection, Mapping[str, Any], None] = None,
        body: Optional[ByteStream] = None,
        protocol_version: Optional[str] = None,
        reason: str = "",
    ):
        super().__init__(headers=headers, body=body, protocol_version=protocol_version)
        self._status = _validate_status(status)
        self._reason = reason

    # =========================================================================
    # STATUS
    # =========================================================================

    def get_status_code(self) -> StatusCode:
        return self._status

    @property
    def status(self) -> StatusCode:
        return self._status

    def get_reason_phrase(self) -> str:
        """The explicit reason phrase, else the standard one, else ""."""
        if self._reason:
            return self._reason
        if isinstance(self._status, HTTPStatus):
            return self._status.phrase
        return ""

    def with_status(self, code: StatusCode, reason: str = "") -> "Response":
        """
        Return a copy with a different status.

        Raises:
            InvalidArgumentError: If code is not an integer in 100-599.
        """
        status = _validate_status(code)
        clone = self._clone()
        clone._status = status
        clone._reason = reason
        return clone

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 404 Not Found"."""
        return f"HTTP/{self.protocol_version} {int(self._status)} {self.get_reason_phrase()}".rstrip()

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def to_bytes(self) -> bytes:
        """
        Serialize the whole response.

        Content-Length and Date are filled in on the serialized copy when
        they are missing; the response itself is not changed.
        """
        body = self._body_bytes()

        headers = self._headers.copy()
        if not headers.has("Content-Length"):
            headers.set("Content-Length", str(len(body)))
        if not headers.has("Date"):
            headers.set("Date", format_http_date(datetime.now(timezone.utc)))

        head = f"{self.status_line}\r\n{headers}\r\n"
        return head.encode("latin-1", errors="replace") + body

    def _body_bytes(self) -> bytes:
        stream = self._body
        if not stream.is_attached():
            return b""
        try:
            if stream.is_seekable():
                stream.rewind()
            contents = stream.get_contents()
        except StreamError:
            return b""
        if isinstance(contents, str):
            return contents.encode("utf-8")
        return contents

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.status_line!r}>"


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date: "Wed, 01 Jan 2026 12:00:00 GMT".

    Always GMT; aware datetimes are converted to UTC first.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    days = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
    months = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )
