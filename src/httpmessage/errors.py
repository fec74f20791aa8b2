"""
=============================================================================
EXCEPTION HIERARCHY
=============================================================================

All errors raised by httpmessage derive from HTTPMessageError, and each one
also derives from the builtin exception a caller would naturally catch:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ERROR TAXONOMY                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HTTPMessageError                                                  │
    │   ├── InvalidArgumentError (ValueError)                             │
    │   │     bad protocol version, non-handle stream argument,           │
    │   │     unwritable move target, bad status code                     │
    │   ├── ParseError (ValueError)                                       │
    │   │     header present but malformed (e.g. a Date header)           │
    │   ├── StreamError (RuntimeError)                                    │
    │   │     seek/read/write/tell failed or capability missing           │
    │   └── UploadError (RuntimeError)                                    │
    │         already moved, not a real upload, copy/rename failed        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Validation errors are raised before any state changes, so the caller can
fix the argument and retry. Stream and upload errors are runtime failures.

=============================================================================
"""

from typing import Optional


class HTTPMessageError(Exception):
    """Base class for every error raised by this package."""


class InvalidArgumentError(HTTPMessageError, ValueError):
    """An argument failed validation. Nothing was modified."""


class ParseError(HTTPMessageError, ValueError):
    """
    Raised when a header is present but its value cannot be parsed.

    Carries the offending header name and raw value so callers can report
    them (e.g. turn them into a 400 Bad Request).
    """

    def __init__(self, message: str, header: str = "", value: Optional[str] = None):
        super().__init__(message)
        self.header = header
        self.value = value


class StreamError(HTTPMessageError, RuntimeError):
    """A byte stream operation failed or is not supported by the handle."""


class UploadError(HTTPMessageError, RuntimeError):
    """
    An uploaded file could not be accessed or moved.

    The file's ``moved`` flag is never set when this is raised. Retry with a
    different target path; the source cannot be re-acquired.
    """
