"""
=============================================================================
REQUEST URI RESOLUTION
=============================================================================

Reconstructs the URI a client actually asked for from server variables.

=============================================================================
WHY THIS IS HARD
=============================================================================

There is no single place where servers put the request URI. Depending on
the web server, rewrite module and proxy in front of the application, the
same request shows up in one of several mutually exclusive places:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                 WHERE THE REQUEST URI COMES FROM                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. X-Original-Url header      IIS + Microsoft URL Rewrite          │
    │  2. X-Rewrite-Url header       IIS + ISAPI_Rewrite                  │
    │  3. UNENCODED_URL              IIS7 URL Rewrite (avoids double      │
    │     (IIS_WasUrlRewritten=1)    decoding of "//" in the path)        │
    │  4. REQUEST_URI                Apache, nginx, most CGI gateways     │
    │     (may be absolute when      "http://host:port/path?q" via proxy  │
    │      sent through a proxy)                                          │
    │  5. ORIG_PATH_INFO             IIS 5 in CGI mode, no query string   │
    │     + QUERY_STRING                                                  │
    │  6. nothing                    ""                                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The first rule that matches wins. Each rule removes the signals it used, so
a sub-request built from the same server variables resolves the same way,
and the canonical result is written back to REQUEST_URI.

=============================================================================
BASE PATH
=============================================================================

    REQUEST_URI  = /cgi-bin/app.cgi/users/42?tab=posts
    SCRIPT_NAME  = /cgi-bin/app.cgi
                   ──────┬───────
                         │
                   base_path         path = /users/42, query = tab=posts

=============================================================================
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, List, Optional, Tuple
from urllib.parse import urlsplit

from ..errors import InvalidArgumentError


logger = logging.getLogger(__name__)


DEFAULT_PORTS = {
    "http": 80,
    "https": 443,
}


def _valid_port(port: Optional[int], source: str) -> Optional[int]:
    if port is not None and not 1 <= port <= 65535:
        logger.warning(f"Ignoring out-of-range port from {source}")
        return None
    return port


@dataclass(frozen=True)
class Uri:
    """
    An immutable URI value.

    Attributes:
        scheme: "http", "https" or "" when unknown.
        host: Host name without port.
        port: Port number, or None.
        path: Path relative to base_path.
        query: Query string without the leading "?".
        fragment: Fragment without the leading "#".
        user: User name from the authority, or "".
        password: Password from the authority, or "".
        base_path: Deployment script prefix stripped from the path.
    """

    scheme: str = ""
    host: str = ""
    port: Optional[int] = None
    path: str = ""
    query: str = ""
    fragment: str = ""
    user: str = ""
    password: str = ""
    base_path: str = ""

    @classmethod
    def parse(cls, uri: str, base_path: str = "") -> "Uri":
        """
        Split a URI string into its components.

        Missing components are "" (port: None). A port that isn't a number
        in range is dropped with a warning.
        """
        parts = urlsplit(uri)
        try:
            port = parts.port
        except ValueError:
            logger.warning(f"Ignoring invalid port in URI: {uri}")
            port = None

        return cls(
            scheme=parts.scheme,
            host=parts.hostname or "",
            port=port,
            path=parts.path,
            query=parts.query,
            fragment=parts.fragment,
            user=parts.username or "",
            password=parts.password or "",
            base_path=base_path,
        )

    # =========================================================================
    # DERIVED PARTS
    # =========================================================================

    @property
    def user_info(self) -> str:
        if self.user and self.password:
            return f"{self.user}:{self.password}"
        return self.user

    @property
    def authority(self) -> str:
        """[user-info@]host[:port], with the port left out when it's the default."""
        if not self.host:
            return ""
        authority = self.host
        if self.user_info:
            authority = f"{self.user_info}@{authority}"
        if self.port is not None and self.port != DEFAULT_PORTS.get(self.scheme):
            authority = f"{authority}:{self.port}"
        return authority

    # =========================================================================
    # WITH-ERS (each returns a new Uri)
    # =========================================================================

    def with_scheme(self, scheme: str) -> "Uri":
        scheme = scheme.lower().rstrip(":/")
        if scheme not in ("", *DEFAULT_PORTS):
            raise InvalidArgumentError("Uri scheme must be one of: \"\", \"http\", \"https\"")
        return replace(self, scheme=scheme)

    def with_user_info(self, user: str, password: str = "") -> "Uri":
        return replace(self, user=user, password=password if user else "")

    def with_host(self, host: str) -> "Uri":
        return replace(self, host=host)

    def with_port(self, port: Optional[int]) -> "Uri":
        if port is not None and not 1 <= int(port) <= 65535:
            raise InvalidArgumentError(f"Invalid port: {port}. Must be 1-65535.")
        return replace(self, port=None if port is None else int(port))

    def with_path(self, path: str) -> "Uri":
        return replace(self, path=path)

    def with_base_path(self, base_path: str) -> "Uri":
        return replace(self, base_path=base_path)

    def with_query(self, query: str) -> "Uri":
        return replace(self, query=query.lstrip("?"))

    def with_fragment(self, fragment: str) -> "Uri":
        return replace(self, fragment=fragment.lstrip("#"))

    def __str__(self) -> str:
        path = self.path
        if self.base_path:
            path = self.base_path.rstrip("/") + "/" + path.lstrip("/")

        authority = self.authority
        if authority and path and not path.startswith("/"):
            path = "/" + path

        uri = ""
        if self.scheme:
            uri += f"{self.scheme}:"
        if authority:
            uri += f"//{authority}"
        uri += path
        if self.query:
            uri += f"?{self.query}"
        if self.fragment:
            uri += f"#{self.fragment}"
        return uri


class RequestUriResolver:
    """
    Resolves the canonical request URI from a header bag and a server bag.

    Both collaborators are modified: consumed signals are removed and
    REQUEST_URI is overwritten with the canonical value.

    Example:
        server = ServerBag({"REQUEST_URI": "/a/b?q=1", "SCRIPT_NAME": "/a"})
        uri = RequestUriResolver(server.get_headers(), server).resolve()
        uri.path, uri.query, uri.base_path   # ("/b", "q=1", "/a")
    """

    def __init__(self, headers: Any, server: Any):
        """
        Args:
            headers: Header bag with has/get/remove (e.g. HeaderCollection).
            server: Server bag with has/get/set/remove (e.g. ServerBag).
        """
        self.headers = headers
        self.server = server

    def resolve(self) -> Uri:
        """
        Resolve, write back REQUEST_URI and split off the base path.

        Returns:
            The resolved Uri. Components absent from the request URI are
            empty (port: None).
        """
        request_uri = self.resolve_request_uri()

        # Normalized so sub-requests built from this server bag agree
        self.server.set("REQUEST_URI", request_uri)

        script = self.server.get("SCRIPT_NAME", self.server.get("ORIG_SCRIPT_NAME", "")) or ""
        if script and request_uri.startswith(script):
            request_uri = request_uri[len(script):]

        return Uri.parse(request_uri, base_path=script)

    def resolve_request_uri(self) -> str:
        """Pick the raw request URI using the first convention that applies."""
        if self.headers.has("X-Original-Url"):
            request_uri = self._header("X-Original-Url")
            self.headers.remove("X-Original-Url")
            self.server.remove("HTTP_X_ORIGINAL_URL")
            self.server.remove("UNENCODED_URL")
            self.server.remove("IIS_WasUrlRewritten")
            logger.debug(f"Request URI from X-Original-Url: {request_uri}")
            return request_uri

        if self.headers.has("X-Rewrite-Url"):
            request_uri = self._header("X-Rewrite-Url")
            self.headers.remove("X-Rewrite-Url")
            logger.debug(f"Request URI from X-Rewrite-Url: {request_uri}")
            return request_uri

        if str(self.server.get("IIS_WasUrlRewritten", "")) == "1" and self.server.get("UNENCODED_URL", ""):
            request_uri = self.server.get("UNENCODED_URL")
            self.server.remove("UNENCODED_URL")
            self.server.remove("IIS_WasUrlRewritten")
            logger.debug(f"Request URI from UNENCODED_URL: {request_uri}")
            return request_uri

        if self.server.has("REQUEST_URI"):
            request_uri = self.server.get("REQUEST_URI") or ""
            stripped = self._strip_scheme_and_host(request_uri)
            logger.debug(f"Request URI from REQUEST_URI: {stripped}")
            return stripped

        if self.server.has("ORIG_PATH_INFO"):
            request_uri = self.server.get("ORIG_PATH_INFO") or ""
            query_string = self.server.get("QUERY_STRING", "")
            if query_string:
                request_uri += f"?{query_string}"
            self.server.remove("ORIG_PATH_INFO")
            logger.debug(f"Request URI from ORIG_PATH_INFO: {request_uri}")
            return request_uri

        logger.debug("No request URI signal found")
        return ""

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _header(self, name: str) -> str:
        value = self.headers.get(name)
        if isinstance(value, (list, tuple)):
            return value[0] if value else ""
        return value or ""

    def get_scheme(self) -> str:
        https = str(self.server.get("HTTPS", "") or "").lower()
        return "https" if https and https != "off" else "http"

    def get_host_and_port(self) -> Tuple[str, Optional[int]]:
        """The request's host and port, from the Host header or SERVER_NAME/SERVER_PORT."""
        host_header = self._header("Host")
        if host_header:
            parts = urlsplit(f"//{host_header}")
            try:
                port = parts.port
            except ValueError:
                logger.warning(f"Ignoring invalid port in Host header: {host_header}")
                port = None
            return parts.hostname or "", _valid_port(port, f"Host header {host_header}")

        port = self.server.get("SERVER_PORT")
        try:
            port = int(port) if port not in (None, "") else None
        except (TypeError, ValueError):
            port = None
        return self.server.get("SERVER_NAME", "") or "", _valid_port(port, f"SERVER_PORT={port}")

    def _scheme_and_http_host_candidates(self) -> List[str]:
        # Every spelling of "scheme://host[:port]" this request could carry
        scheme = self.get_scheme()
        host = self._header("Host")
        if host:
            candidates = [f"{scheme}://{host}"]
            default_port = DEFAULT_PORTS.get(scheme)
            if ":" not in host.rsplit("]", 1)[-1] and default_port:
                candidates.append(f"{scheme}://{host}:{default_port}")
            return candidates

        name, port = self.get_host_and_port()
        if not name:
            return []

        if port is None:
            return [f"{scheme}://{name}"]
        if port == DEFAULT_PORTS.get(scheme):
            return [f"{scheme}://{name}", f"{scheme}://{name}:{port}"]
        return [f"{scheme}://{name}:{port}"]

    def _strip_scheme_and_host(self, request_uri: str) -> str:
        # Proxied requests carry an absolute URI; keep only path + query
        lowered = request_uri.lower()
        for prefix in self._scheme_and_http_host_candidates():
            if not lowered.startswith(prefix.lower()):
                continue
            rest = request_uri[len(prefix):]
            if rest == "" or rest[0] in "/?#":
                return rest
        return request_uri


def resolve_request_uri(headers: Any, server: Any) -> Uri:
    """Convenience wrapper around RequestUriResolver(headers, server).resolve()."""
    return RequestUriResolver(headers, server).resolve()
