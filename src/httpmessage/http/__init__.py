"""
=============================================================================
HTTP MESSAGE COMPONENTS
=============================================================================

The building blocks of a server-side HTTP message, from the smallest part
to the whole:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ HEADERS (headers.py)                                                │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Case-insensitive, multi-valued header collection. Keeps the         │
    │ Cache-Control header and its parsed directives in sync.             │
    │                                                                      │
    │   headers.set("Cache-Control", "public, max-age=60")                │
    │   headers.get_cache_control_directive("max-age")    # "60"          │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ BAGS (bags.py)                                                      │
    │ ─────────────────────────────────────────────────────────────────── │
    │ ParameterBag for query/cookie/attribute values, ServerBag for       │
    │ environ-style server variables (and the headers hidden in them).    │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ URI (uri.py)                                                        │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Immutable Uri value and the RequestUriResolver that recovers the    │
    │ URI a client asked for from whatever the web server provided.       │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ STREAM (stream.py)                                                  │
    │ ─────────────────────────────────────────────────────────────────── │
    │ ByteStream wraps one open file-like handle with cached capability   │
    │ checks and uniform StreamError failures.                            │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ UPLOADS (uploads.py)                                                │
    │ ─────────────────────────────────────────────────────────────────── │
    │ UploadedFile (single-use move_to) and UploadedFileTree, which turns │
    │ parallel-array upload descriptors into a tree of UploadedFiles.     │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ MESSAGES (message.py, request.py, response.py)                      │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Immutable Message base with copy-on-write headers, and the Request  │
    │ and Response built on it.                                           │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .bags import ParameterBag, ServerBag
from .filters import FilterKind, apply_filter
from .headers import HeaderCollection, parse_cache_control, serialize_cache_control
from .message import Message
from .request import Request
from .response import Response, format_http_date
from .status_codes import HTTPStatus
from .stream import ByteStream
from .uploads import UploadedFile, UploadedFileTree, UploadStatus, is_uploaded_file
from .uri import RequestUriResolver, Uri, resolve_request_uri

# Public API - what you get when you do:
# from httpmessage.http import *
__all__ = [
    # Headers
    "HeaderCollection",
    "parse_cache_control",
    "serialize_cache_control",

    # Parameters
    "ParameterBag",
    "ServerBag",
    "FilterKind",
    "apply_filter",

    # URI
    "Uri",
    "RequestUriResolver",
    "resolve_request_uri",

    # Streams and uploads
    "ByteStream",
    "UploadedFile",
    "UploadedFileTree",
    "UploadStatus",
    "is_uploaded_file",

    # Messages
    "Message",
    "Request",
    "Response",
    "HTTPStatus",
    "format_http_date",
]
