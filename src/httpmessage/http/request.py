"""
=============================================================================
HTTP REQUEST (server side)
=============================================================================

An immutable server-side request: everything a Message has, plus the
method, the resolved URI and the parameters a gateway hands over.

=============================================================================
FROM ENVIRON TO REQUEST
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Request.from_environ(environ)                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   environ ──► ServerBag ──┬─► get_headers() ──► HeaderCollection    │
    │                           │                                          │
    │                           ├─► RequestUriResolver ──► Uri            │
    │                           │                                          │
    │                           ├─► QUERY_STRING ──► query params         │
    │                           ├─► HTTP_COOKIE  ──► cookie params        │
    │                           ├─► REQUEST_METHOD, SERVER_PROTOCOL       │
    │                           └─► wsgi.input   ──► ByteStream body      │
    │                                                                      │
    │   files ──► UploadedFileTree                                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The parameter collections are copied on every with_*() call, so requests
derived from one another never share mutable state (the body stream
excepted, as for every Message).

    request = Request.from_environ(environ)
    request = request.with_attribute("user_id", 42)
    request.get_attribute("user_id")     # 42

=============================================================================
"""

import copy
import io
import logging
import re
from http.cookies import CookieError, SimpleCookie
from typing import Any, Dict, Mapping, Optional, Union
from urllib.parse import parse_qs

from ..config import MessageConfig, SUPPORTED_PROTOCOL_VERSIONS, get_default_config
from ..errors import InvalidArgumentError
from .bags import ServerBag
from .headers import HeaderCollection
from .message import Message
from .stream import ByteStream
from .uploads import UploadedFileTree
from .uri import DEFAULT_PORTS, RequestUriResolver, Uri


logger = logging.getLogger(__name__)


# RFC 9110 token characters
_METHOD_PATTERN = re.compile(r"^[!#$%&'*+.^_`|~0-9A-Za-z-]+$")


def _validate_method(method: Any) -> str:
    if not isinstance(method, str) or not _METHOD_PATTERN.match(method):
        raise InvalidArgumentError(f"Invalid HTTP method: {method!r}")
    return method.upper()


def _protocol_from_server(server_protocol: str, default: str) -> str:
    # "HTTP/1.1" -> "1.1", "HTTP/2" -> "2.0"
    version = server_protocol.rpartition("/")[2]
    if version == "2":
        version = "2.0"
    if version in SUPPORTED_PROTOCOL_VERSIONS:
        return version
    if server_protocol:
        logger.debug(f"Unsupported SERVER_PROTOCOL {server_protocol!r}, using {default}")
    return default


class Request(Message):
    """
    A server-side HTTP request.

    Attributes are private; use the get_*/with_* methods.
    """

    def __init__(
        self,
        method: str = "GET",
        uri: Union[Uri, str, None] = None,
        headers: Union[HeaderCollection, Mapping[str, Any], None] = None,
        body: Optional[ByteStream] = None,
        protocol_version: Optional[str] = None,
        server: Optional[Mapping[str, Any]] = None,
        query_params: Optional[Mapping[str, Any]] = None,
        cookie_params: Optional[Mapping[str, Any]] = None,
        uploaded_files: Union[UploadedFileTree, Mapping[str, Any], None] = None,
        parsed_body: Any = None,
        attributes: Optional[Mapping[str, Any]] = None,
    ):
        """
        Args:
            method: HTTP method, stored uppercased.
            uri: A Uri or a URI string.
            headers: See Message.
            body: See Message.
            protocol_version: See Message.
            server: Server variables (CGI/WSGI environ style).
            query_params: Parsed query string.
            cookie_params: Cookie name -> value.
            uploaded_files: An UploadedFileTree or a raw upload descriptor.
            parsed_body: Deserialized body (form fields, JSON...), or None.
            attributes: Values derived by the application (route params...).

        Raises:
            InvalidArgumentError: For an invalid method, plus what Message raises.
        """
        super().__init__(headers=headers, body=body, protocol_version=protocol_version)
        self._method = _validate_method(method)
        self._uri = Uri.parse(uri) if isinstance(uri, str) else (uri or Uri())
        self._server = server.copy() if isinstance(server, ServerBag) else ServerBag(server)
        self._query_params = dict(query_params or {})
        self._cookie_params = dict(cookie_params or {})
        if isinstance(uploaded_files, UploadedFileTree):
            self._uploaded_files = uploaded_files.copy()
        else:
            self._uploaded_files = UploadedFileTree(uploaded_files)
        self._parsed_body = parsed_body
        self._attributes = dict(attributes or {})

    @classmethod
    def from_environ(
        cls,
        environ: Mapping[str, Any],
        files: Optional[Mapping[str, Any]] = None,
        body: Optional[ByteStream] = None,
        config: Optional[MessageConfig] = None,
    ) -> "Request":
        """
        Build a request from server variables.

        The environ mapping itself is left untouched; the resolver works on
        the request's own server bag.

        Args:
            environ: CGI/WSGI-style server variables.
            files: Upload descriptor, keyed by form field name.
            body: Body stream. Defaults to wsgi.input when present.
            config: Configuration; defaults to get_default_config().

        Example:
            request = Request.from_environ({
                "REQUEST_METHOD": "POST",
                "REQUEST_URI": "/cgi-bin/app.cgi/users?page=2",
                "SCRIPT_NAME": "/cgi-bin/app.cgi",
                "QUERY_STRING": "page=2",
                "HTTP_HOST": "example.com",
            })
            request.uri.path            # "/users"
            request.get_query("page")   # "2"
        """
        config = config or get_default_config()
        server = ServerBag(environ)
        headers = server.get_headers()

        resolver = RequestUriResolver(headers, server)
        uri = resolver.resolve()
        if not uri.host:
            host, port = resolver.get_host_and_port()
            if host:
                uri = uri.with_scheme(resolver.get_scheme()).with_host(host).with_port(port)

        cookies = {}
        cookie_header = server.get("HTTP_COOKIE", "")
        if cookie_header:
            try:
                parsed = SimpleCookie()
                parsed.load(cookie_header)
                cookies = {name: morsel.value for name, morsel in parsed.items()}
            except CookieError as e:
                logger.warning(f"Ignoring malformed Cookie header: {e}")

        if body is None:
            body = cls._body_from_environ(server)

        request = cls(
            method=server.get("REQUEST_METHOD", "GET") or "GET",
            uri=uri,
            headers=headers,
            body=body,
            protocol_version=_protocol_from_server(
                server.get("SERVER_PROTOCOL", "") or "", config.default_protocol_version
            ),
            server=server,
            query_params=parse_qs(server.get("QUERY_STRING", "") or "", keep_blank_values=True),
            cookie_params=cookies,
            uploaded_files=UploadedFileTree(files or {}, config),
        )
        logger.debug(f"Built {request!r} from environ")
        return request

    @staticmethod
    def _body_from_environ(server: ServerBag) -> ByteStream:
        stream = server.get("wsgi.input")
        if isinstance(stream, io.IOBase):
            return ByteStream(stream)
        if stream is not None and hasattr(stream, "read"):
            # Non-IOBase WSGI inputs are buffered into memory
            try:
                length = int(server.get("CONTENT_LENGTH") or 0)
            except ValueError:
                length = 0
            return ByteStream(io.BytesIO(stream.read(length) if length > 0 else b""))
        return ByteStream(io.BytesIO())

    def _clone(self) -> "Request":
        clone = super()._clone()
        clone._server = self._server.copy()
        clone._query_params = copy.copy(self._query_params)
        clone._cookie_params = copy.copy(self._cookie_params)
        clone._attributes = copy.copy(self._attributes)
        clone._uploaded_files = self._uploaded_files.copy()
        return clone

    # =========================================================================
    # METHOD AND URI
    # =========================================================================

    def get_method(self) -> str:
        return self._method

    @property
    def method(self) -> str:
        return self._method

    def with_method(self, method: str) -> "Request":
        method = _validate_method(method)
        clone = self._clone()
        clone._method = method
        return clone

    def get_uri(self) -> Uri:
        return self._uri

    @property
    def uri(self) -> Uri:
        return self._uri

    def with_uri(self, uri: Union[Uri, str], preserve_host: bool = False) -> "Request":
        """
        Return a copy with a different URI.

        The Host header follows the new URI's host unless preserve_host is
        set and the request already has a Host header.
        """
        if isinstance(uri, str):
            uri = Uri.parse(uri)
        clone = self._clone()
        clone._uri = uri
        if uri.host and not (preserve_host and self.has_header("Host")):
            host = uri.host
            if uri.port is not None and uri.port != DEFAULT_PORTS.get(uri.scheme):
                host = f"{host}:{uri.port}"
            clone._headers.set("Host", host)
        return clone

    def get_request_target(self) -> str:
        """Origin-form target: path plus query, "/" when empty."""
        target = str(Uri(path=self._uri.path, query=self._uri.query, base_path=self._uri.base_path))
        return target or "/"

    # =========================================================================
    # SERVER AND REQUEST PARAMETERS
    # =========================================================================

    def get_server_params(self) -> Dict[str, Any]:
        return self._server.all()

    def get_server_bag(self) -> ServerBag:
        return self._server

    def get_query_params(self) -> Dict[str, Any]:
        return dict(self._query_params)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get the first value of a query parameter.

        Example:
            # URL: /users?page=1&page=2
            request.get_query("page")  # Returns "1"
        """
        values = self._query_params.get(name)
        if isinstance(values, (list, tuple)):
            return values[0] if values else default
        return default if values is None else values

    def with_query_params(self, query: Mapping[str, Any]) -> "Request":
        clone = self._clone()
        clone._query_params = dict(query)
        return clone

    def get_cookie_params(self) -> Dict[str, Any]:
        return dict(self._cookie_params)

    def with_cookie_params(self, cookies: Mapping[str, Any]) -> "Request":
        clone = self._clone()
        clone._cookie_params = dict(cookies)
        return clone

    def get_uploaded_files(self) -> UploadedFileTree:
        return self._uploaded_files

    def with_uploaded_files(self, uploaded_files: Union[UploadedFileTree, Mapping[str, Any]]) -> "Request":
        if isinstance(uploaded_files, UploadedFileTree):
            uploaded_files = uploaded_files.copy()
        else:
            uploaded_files = UploadedFileTree(uploaded_files)
        clone = self._clone()
        clone._uploaded_files = uploaded_files
        return clone

    def get_parsed_body(self) -> Any:
        return self._parsed_body

    def with_parsed_body(self, data: Any) -> "Request":
        """
        Return a copy with a different parsed body.

        Raises:
            InvalidArgumentError: Unless data is None, a mapping, a list or
                                  an object.
        """
        if data is not None and isinstance(data, (str, bytes, int, float, bool)):
            raise InvalidArgumentError("Parsed body must be None, a mapping, a list or an object")
        clone = self._clone()
        clone._parsed_body = data
        return clone

    # =========================================================================
    # ATTRIBUTES
    # =========================================================================

    def get_attributes(self) -> Dict[str, Any]:
        return dict(self._attributes)

    def get_attribute(self, name: str, default: Any = None) -> Any:
        return self._attributes.get(name, default)

    def with_attribute(self, name: str, value: Any) -> "Request":
        clone = self._clone()
        clone._attributes[name] = value
        return clone

    def without_attribute(self, name: str) -> "Request":
        clone = self._clone()
        clone._attributes.pop(name, None)
        return clone

    # =========================================================================
    # CONVENIENCE PROPERTIES
    # =========================================================================

    @property
    def content_type(self) -> Optional[str]:
        """Content-Type without parameters, lowercased; None when absent."""
        content_type = self.get_header_line("Content-Type").split(";")[0].strip().lower()
        return content_type or None

    @property
    def content_length(self) -> int:
        """Content-Length as an int; 0 if missing or invalid."""
        try:
            return int(self.get_header_line("Content-Length") or 0)
        except ValueError:
            return 0

    @property
    def is_keep_alive(self) -> bool:
        """
        HTTP/1.1 keeps the connection alive unless "Connection: close";
        HTTP/1.0 closes it unless "Connection: keep-alive".
        """
        connection = self.get_header_line("Connection").lower()
        if self.protocol_version == "1.0":
            return connection == "keep-alive"
        return connection != "close"

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._method} {self.get_request_target()!r}>"
