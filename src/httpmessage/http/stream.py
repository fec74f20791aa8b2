"""
=============================================================================
BYTE STREAM
=============================================================================

Wraps one already-open file object (anything derived from io.IOBase) and
answers capability questions about it: can I read? write? seek? how big?

=============================================================================
CAPABILITY CACHING
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    ByteStream Responsibilities                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. OWNERSHIP                                                        │
    │     └── Exactly one handle attached at a time                       │
    │     └── attach() detaches (does NOT close) the previous handle      │
    │     └── detach() hands the handle back to the caller                │
    │                                                                      │
    │  2. CAPABILITY FLAGS                                                 │
    │     └── readable / writable derived from the open mode               │
    │     └── seekable mirrors handle.seekable()                           │
    │     └── computed once, cached until the handle changes              │
    │                                                                      │
    │  3. GUARDED I/O                                                      │
    │     └── read/write/seek/tell check the flag first                   │
    │     └── every failure surfaces as StreamError                       │
    │                                                                      │
    │  4. BEST-EFFORT str()                                                │
    │     └── rewind + read everything, "" on any failure                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
OPEN MODES
=============================================================================

    Mode   Readable  Writable        Mode   Readable  Writable
    ────   ────────  ────────        ────   ────────  ────────
    r         ✓                      a                   ✓
    r+        ✓         ✓            a+        ✓         ✓
    w                   ✓            x                   ✓
    w+        ✓         ✓            x+        ✓         ✓
    c                   ✓            c+        ✓         ✓

The binary/text flags are dropped before matching, so "rb+" is "r+".

=============================================================================
"""

import io
import logging
import os
from typing import Any, Dict, Optional, Union

from ..errors import InvalidArgumentError, StreamError


logger = logging.getLogger(__name__)


Data = Union[bytes, str]


def _normalize_mode(mode: str) -> str:
    return mode.replace("b", "").replace("t", "")


class ByteStream:
    """
    A data stream over one underlying file object.

    Example:
        stream = ByteStream(open("body.bin", "rb"))
        stream.is_readable()   # True
        stream.is_writable()   # False
        data = stream.read(1024)
        stream.close()
    """

    READABLE_MODES = ("r", "r+", "w+", "a+", "x+", "c+")
    WRITABLE_MODES = ("r+", "w", "w+", "a", "a+", "x", "x+", "c", "c+")

    def __init__(self, handle: io.IOBase):
        """
        Args:
            handle: An open file object (open(), io.BytesIO, ...).

        Raises:
            InvalidArgumentError: If handle is not a file object.
        """
        self._handle: Optional[io.IOBase] = None
        self._meta: Optional[Dict[str, Any]] = None
        self._readable: Optional[bool] = None
        self._writable: Optional[bool] = None
        self._seekable: Optional[bool] = None
        self._size: Optional[int] = None
        self._eof = False

        self.attach(handle)

    # =========================================================================
    # OWNERSHIP
    # =========================================================================

    def is_attached(self) -> bool:
        return self._handle is not None

    def attach(self, handle: io.IOBase) -> None:
        """
        Attach a new handle, detaching (not closing) any current one.

        Raises:
            InvalidArgumentError: If handle is not a file object.
        """
        if not isinstance(handle, io.IOBase):
            raise InvalidArgumentError(
                f"ByteStream.attach() argument must be a file object, got {type(handle).__name__}"
            )

        if self.is_attached():
            self.detach()

        self._handle = handle
        logger.debug(f"Attached {type(handle).__name__} ({getattr(handle, 'name', '<memory>')})")

    def detach(self) -> Optional[io.IOBase]:
        """Release the handle to the caller and clear every cached value."""
        old_handle = self._handle
        self._handle = None
        self._meta = None
        self._readable = None
        self._writable = None
        self._seekable = None
        self._size = None
        self._eof = False
        return old_handle

    def close(self) -> None:
        """Close the underlying handle, then detach it."""
        if self._handle is not None:
            self._handle.close()
        self.detach()

    # =========================================================================
    # METADATA
    # =========================================================================

    def get_metadata(self, key: Optional[str] = None) -> Any:
        """
        Query the handle's metadata.

        Keys: mode, seekable, uri, closed, wrapper_type.

        Returns:
            The whole map when key is None, else the value or None.
        """
        if self._handle is None:
            return {} if key is None else None

        self._meta = self._query_metadata(self._handle)
        if key is None:
            return dict(self._meta)
        return self._meta.get(key)

    @staticmethod
    def _query_metadata(handle: io.IOBase) -> Dict[str, Any]:
        closed = handle.closed
        mode = getattr(handle, "mode", None)

        # In-memory handles (BytesIO, StringIO) and some wrappers have no
        # textual mode; derive one from what the handle reports.
        if not isinstance(mode, str):
            readable = not closed and handle.readable()
            writable = not closed and handle.writable()
            if readable and writable:
                mode = "r+"
            elif writable:
                mode = "w"
            elif readable:
                mode = "r"
            else:
                mode = ""

        try:
            seekable = not closed and handle.seekable()
        except (OSError, ValueError):
            seekable = False

        return {
            "mode": mode,
            "seekable": seekable,
            "uri": getattr(handle, "name", None),
            "closed": closed,
            "wrapper_type": type(handle).__name__,
        }

    def get_size(self) -> Optional[int]:
        """
        Size of the stream in bytes, or None if it can't be determined.

        Uses fstat() for real files and falls back to seeking to the end
        for in-memory handles.
        """
        if self._size is None and self._handle is not None:
            self._size = self._measure(self._handle)
        return self._size

    @staticmethod
    def _measure(handle: io.IOBase) -> Optional[int]:
        try:
            if handle.writable():
                handle.flush()
            return os.fstat(handle.fileno()).st_size
        except (OSError, ValueError):
            pass

        try:
            if not handle.seekable():
                return None
            position = handle.tell()
            end = handle.seek(0, io.SEEK_END)
            handle.seek(position)
            return end
        except (OSError, ValueError):
            return None

    # =========================================================================
    # CAPABILITIES
    # =========================================================================

    def is_readable(self) -> bool:
        if self._readable is None:
            self._readable = False
            if self.is_attached():
                mode = _normalize_mode(self.get_metadata("mode"))
                self._readable = any(mode.startswith(m) for m in self.READABLE_MODES)
        return self._readable

    def is_writable(self) -> bool:
        if self._writable is None:
            self._writable = False
            if self.is_attached():
                mode = _normalize_mode(self.get_metadata("mode"))
                self._writable = any(mode.startswith(m) for m in self.WRITABLE_MODES)
        return self._writable

    def is_seekable(self) -> bool:
        if self._seekable is None:
            self._seekable = False
            if self.is_attached():
                self._seekable = bool(self.get_metadata("seekable"))
        return self._seekable

    # =========================================================================
    # POSITIONING
    # =========================================================================

    def tell(self) -> int:
        if self._handle is None:
            raise StreamError("Could not get the position of the pointer in stream")
        try:
            return self._handle.tell()
        except (OSError, ValueError) as e:
            raise StreamError("Could not get the position of the pointer in stream") from e

    def eof(self) -> bool:
        """True when detached or once a read has run into the end of data."""
        if self._handle is None:
            return True
        return self._eof

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> None:
        if not self.is_seekable():
            raise StreamError("Could not seek in stream")
        try:
            self._handle.seek(offset, whence)
        except (OSError, ValueError) as e:
            raise StreamError("Could not seek in stream") from e
        self._eof = False

    def rewind(self) -> None:
        if not self.is_seekable():
            raise StreamError("Could not rewind stream")
        try:
            self._handle.seek(0)
        except (OSError, ValueError) as e:
            raise StreamError("Could not rewind stream") from e
        self._eof = False

    # =========================================================================
    # READING AND WRITING
    # =========================================================================

    def read(self, length: int) -> Data:
        """
        Read up to length bytes (characters for text handles).

        Raises:
            StreamError: If the stream is not readable or the read fails.
        """
        if not self.is_readable():
            raise StreamError("Could not read from stream")
        try:
            data = self._handle.read(length)
        except (OSError, ValueError) as e:
            raise StreamError("Could not read from stream") from e

        if data is None:
            # Non-blocking handle with nothing available right now
            return b""
        if length > 0 and len(data) < length:
            self._eof = True
        return data

    def write(self, data: Data) -> int:
        """
        Write data and return the number of bytes/characters written.

        Raises:
            StreamError: If the stream is not writable or the write fails.
        """
        if not self.is_writable():
            raise StreamError("Could not write to stream")
        try:
            written = self._handle.write(data)
        except (OSError, ValueError, TypeError) as e:
            raise StreamError("Could not write to stream") from e

        # Size is recalculated on the next get_size()
        self._size = None
        return len(data) if written is None else written

    def get_contents(self) -> Data:
        """Read everything from the current position to the end."""
        if not self.is_readable():
            raise StreamError("Could not get contents of stream")
        try:
            contents = self._handle.read()
        except (OSError, ValueError) as e:
            raise StreamError("Could not get contents of stream") from e

        self._eof = True
        return b"" if contents is None else contents

    # =========================================================================
    # CONVERSION AND CONTEXT MANAGER
    # =========================================================================

    def __str__(self) -> str:
        """
        Rewind and return the whole stream as text.

        Never raises: a detached, unreadable or unseekable stream gives "".
        Bytes are decoded as UTF-8 with replacement characters.
        """
        if not self.is_attached():
            return ""

        try:
            self.rewind()
            contents = self.get_contents()
        except StreamError:
            return ""

        if isinstance(contents, bytes):
            return contents.decode("utf-8", errors="replace")
        return contents

    def __repr__(self) -> str:
        if self._handle is None:
            return f"<{type(self).__name__} detached>"
        return f"<{type(self).__name__} {type(self._handle).__name__}>"

    def __enter__(self) -> "ByteStream":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
