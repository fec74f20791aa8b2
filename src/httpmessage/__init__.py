"""
=============================================================================
HTTPMESSAGE - Server-side HTTP message abstractions
=============================================================================

Value objects a server-side application uses to read an incoming request
and build a response, independent of any particular web server:

    from httpmessage import Request, Response, HTTPStatus

    request = Request.from_environ(environ, files=uploads)
    avatar = request.get_uploaded_files().get("avatar")
    avatar.move_to("/srv/media/avatar.png")

    response = (Response(HTTPStatus.CREATED)
        .with_header("Location", str(request.uri)))

=============================================================================
PACKAGE LAYOUT
=============================================================================

    httpmessage/
    ├── config.py        MessageConfig, configure_logging()
    ├── errors.py        HTTPMessageError and its subclasses
    └── http/
        ├── headers.py       HeaderCollection (+ Cache-Control sync)
        ├── bags.py          ParameterBag, ServerBag
        ├── filters.py       FilterKind, apply_filter()
        ├── uri.py           Uri, RequestUriResolver
        ├── stream.py        ByteStream
        ├── uploads.py       UploadedFile, UploadedFileTree
        ├── message.py       Message (copy-on-write base)
        ├── request.py       Request
        ├── response.py      Response
        └── status_codes.py  HTTPStatus

=============================================================================
"""

__version__ = "1.0.0"

from .config import MessageConfig, configure_logging, get_default_config, set_default_config
from .errors import HTTPMessageError, InvalidArgumentError, ParseError, StreamError, UploadError
from .http import (
    ByteStream,
    HeaderCollection,
    HTTPStatus,
    Message,
    ParameterBag,
    Request,
    RequestUriResolver,
    Response,
    ServerBag,
    UploadedFile,
    UploadedFileTree,
    UploadStatus,
    Uri,
)

__all__ = [
    "ByteStream",
    "HeaderCollection",
    "HTTPMessageError",
    "HTTPStatus",
    "InvalidArgumentError",
    "Message",
    "MessageConfig",
    "ParameterBag",
    "ParseError",
    "Request",
    "RequestUriResolver",
    "Response",
    "ServerBag",
    "StreamError",
    "UploadError",
    "UploadedFile",
    "UploadedFileTree",
    "UploadStatus",
    "Uri",
    "configure_logging",
    "get_default_config",
    "set_default_config",
    "__version__",
]
