"""
=============================================================================
HTTP MESSAGE (base for Request and Response)
=============================================================================

A message is a protocol version, a set of headers and a body stream.

=============================================================================
IMMUTABILITY
=============================================================================

Messages are never modified in place. Every with_*() method returns a NEW
message:

    original = Response()
    updated = original.with_header("X-Trace", "abc")

    original.has_header("X-Trace")   # False
    updated.has_header("X-Trace")    # True

A plain shallow copy is not enough here. The header collection is a
mutable object, so a shallow copy would leave both messages pointing at
the same collection and a change through one would show up in the other:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                 SHALLOW COPY              COPY-ON-WRITE             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   original ──┐                     original ──► HeaderCollection A  │
    │              ├──► HeaderCollection                                  │
    │   updated ───┘                     updated ───► HeaderCollection B  │
    │                                                                      │
    │   (mutating one mutates both)      (independent)                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

So _clone() copies the header collection every time. The body stream is
shared between copies; replace it with with_body().

=============================================================================
"""

import copy
import io
from typing import Any, Dict, List, Mapping, Optional, Union

from ..config import SUPPORTED_PROTOCOL_VERSIONS, get_default_config
from ..errors import InvalidArgumentError
from .headers import HeaderCollection, HeaderValue
from .stream import ByteStream


def _validate_protocol_version(version: str) -> str:
    if version not in SUPPORTED_PROTOCOL_VERSIONS:
        raise InvalidArgumentError(
            f"Invalid HTTP version. Must be one of: {', '.join(SUPPORTED_PROTOCOL_VERSIONS)}"
        )
    return version


class Message:
    """
    Common state and behaviour of HTTP requests and responses.

    Attributes are private; use the get_*/with_* methods.
    """

    def __init__(
        self,
        headers: Union[HeaderCollection, Mapping[str, Any], None] = None,
        body: Optional[ByteStream] = None,
        protocol_version: Optional[str] = None,
    ):
        """
        Args:
            headers: A HeaderCollection (copied, never shared) or a mapping.
            body: Body stream. Defaults to an empty in-memory stream.
            protocol_version: "1.0", "1.1" or "2.0". Defaults to the
                              configured default.

        Raises:
            InvalidArgumentError: For an unknown protocol version or a body
                                  that isn't a ByteStream.
        """
        if protocol_version is None:
            protocol_version = get_default_config().default_protocol_version
        self._protocol_version = _validate_protocol_version(protocol_version)

        if isinstance(headers, HeaderCollection):
            self._headers = headers.copy()
        else:
            self._headers = HeaderCollection(headers)

        if body is None:
            body = ByteStream(io.BytesIO())
        elif not isinstance(body, ByteStream):
            raise InvalidArgumentError("Message body must be a ByteStream")
        self._body = body

    def _clone(self) -> "Message":
        """Shallow copy plus an independent header collection."""
        clone = copy.copy(self)
        clone._headers = self._headers.copy()
        return clone

    # =========================================================================
    # PROTOCOL
    # =========================================================================

    def get_protocol_version(self) -> str:
        return self._protocol_version

    @property
    def protocol_version(self) -> str:
        return self._protocol_version

    def with_protocol_version(self, version: str) -> "Message":
        """
        Return a copy with a different protocol version.

        Raises:
            InvalidArgumentError: Unless version is 1.0, 1.1 or 2.0.
        """
        _validate_protocol_version(version)
        clone = self._clone()
        clone._protocol_version = version
        return clone

    # =========================================================================
    # HEADERS
    # =========================================================================

    def get_headers(self) -> Dict[str, List[str]]:
        """Return {original header name: values}."""
        return self._headers.all()

    def get_headers_bag(self) -> HeaderCollection:
        """
        Return this message's own header collection.

        This is the live object; mutating it mutates this message. Prefer
        the with_*() methods.
        """
        return self._headers

    def has_header(self, name: str) -> bool:
        return self._headers.has(name)

    def get_header(self, name: str) -> List[str]:
        """Return every value of a header, or [] if it isn't set."""
        return self._headers.get(name, [])

    def get_header_line(self, name: str) -> str:
        """Return the values of a header joined with ",", or ""."""
        return ",".join(self._headers.get(name, []))

    def with_header(self, name: str, value: HeaderValue) -> "Message":
        clone = self._clone()
        clone._headers.set(name, value)
        return clone

    def with_added_header(self, name: str, value: HeaderValue) -> "Message":
        clone = self._clone()
        clone._headers.add(name, value)
        return clone

    def without_header(self, name: str) -> "Message":
        clone = self._clone()
        clone._headers.remove(name)
        return clone

    # =========================================================================
    # BODY
    # =========================================================================

    def get_body(self) -> ByteStream:
        return self._body

    @property
    def body(self) -> ByteStream:
        return self._body

    def with_body(self, body: ByteStream) -> "Message":
        """
        Return a copy with a different body stream.

        Raises:
            InvalidArgumentError: If body is not a ByteStream.
        """
        if not isinstance(body, ByteStream):
            raise InvalidArgumentError("Message body must be a ByteStream")
        clone = self._clone()
        clone._body = body
        return clone
