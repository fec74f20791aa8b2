"""
Unit tests for ByteStream.
"""

import io
from pathlib import Path

import pytest

from httpmessage.errors import InvalidArgumentError, StreamError
from httpmessage.http.stream import ByteStream


class TestByteStreamOwnership:
    """Tests for attach/detach/close."""

    def test_rejects_non_file_objects(self):
        """Test that only file objects can be wrapped."""
        with pytest.raises(InvalidArgumentError):
            ByteStream("not a handle")

    def test_detach_returns_handle_and_keeps_it_open(self):
        """Test that detach hands the handle back untouched."""
        handle = io.BytesIO(b"data")
        stream = ByteStream(handle)

        assert stream.detach() is handle
        assert not stream.is_attached()
        assert not handle.closed

    def test_detached_stream_reports_nothing(self):
        """Test the state of a detached stream."""
        stream = ByteStream(io.BytesIO(b"data"))
        stream.detach()

        assert stream.get_size() is None
        assert stream.get_metadata() == {}
        assert stream.get_metadata("mode") is None
        assert not stream.is_readable()
        assert not stream.is_writable()
        assert not stream.is_seekable()
        assert stream.eof()
        assert str(stream) == ""

    def test_attach_replaces_without_closing(self):
        """Test that attaching detaches (but doesn't close) the old handle."""
        first = io.BytesIO(b"first")
        second = io.BytesIO(b"second!")
        stream = ByteStream(first)
        assert stream.get_size() == 5

        stream.attach(second)

        assert not first.closed
        assert stream.get_size() == 7

    def test_close(self):
        """Test that close() closes and detaches."""
        handle = io.BytesIO(b"data")
        stream = ByteStream(handle)
        stream.close()

        assert handle.closed
        assert not stream.is_attached()

    def test_context_manager_closes(self):
        """Test usage in a with block."""
        handle = io.BytesIO(b"data")
        with ByteStream(handle) as stream:
            assert stream.read(2) == b"da"

        assert handle.closed


class TestByteStreamCapabilities:
    """Tests for mode-derived capabilities and metadata."""

    def test_read_only_file(self, tmp_path: Path):
        """Test a file opened for reading."""
        path = tmp_path / "body.bin"
        path.write_bytes(b"hello")

        with open(path, "rb") as handle:
            stream = ByteStream(handle)

            assert stream.is_readable()
            assert not stream.is_writable()
            assert stream.is_seekable()
            assert stream.get_size() == 5
            assert stream.get_metadata("uri") == str(path)
            assert stream.get_metadata("mode") == "rb"

    def test_write_only_file(self, tmp_path: Path):
        """Test a file opened for writing."""
        with open(tmp_path / "out.bin", "wb") as handle:
            stream = ByteStream(handle)

            assert stream.is_writable()
            assert not stream.is_readable()

    def test_read_write_file(self, tmp_path: Path):
        """Test that "+" modes are both readable and writable."""
        path = tmp_path / "rw.bin"
        path.write_bytes(b"")

        with open(path, "rb+") as handle:
            stream = ByteStream(handle)

            assert stream.is_readable()
            assert stream.is_writable()

    def test_in_memory_handle(self):
        """Test that BytesIO gets a derived mode."""
        stream = ByteStream(io.BytesIO())

        assert stream.get_metadata("mode") == "r+"
        assert stream.get_metadata("wrapper_type") == "BytesIO"
        assert stream.get_metadata("closed") is False
        assert stream.is_readable()
        assert stream.is_writable()

    def test_metadata_unknown_key(self):
        """Test that unknown keys return None."""
        assert ByteStream(io.BytesIO()).get_metadata("nope") is None


class TestByteStreamIO:
    """Tests for reading, writing and positioning."""

    def test_write_then_read(self):
        """Test a write/rewind/read cycle."""
        stream = ByteStream(io.BytesIO())

        assert stream.write(b"hello world") == 11
        assert stream.get_size() == 11
        stream.rewind()
        assert stream.read(5) == b"hello"
        assert stream.tell() == 5
        assert stream.get_contents() == b" world"

    def test_write_invalidates_size(self):
        """Test that the cached size follows writes."""
        stream = ByteStream(io.BytesIO(b"abc"))
        assert stream.get_size() == 3

        stream.seek(0, io.SEEK_END)
        stream.write(b"def")

        assert stream.get_size() == 6

    def test_eof_after_short_read(self):
        """Test end-of-stream tracking."""
        stream = ByteStream(io.BytesIO(b"abc"))

        assert not stream.eof()
        stream.read(10)
        assert stream.eof()
        stream.rewind()
        assert not stream.eof()

    def test_read_unreadable_raises(self, tmp_path: Path):
        """Test reading a write-only stream."""
        with open(tmp_path / "out.bin", "wb") as handle:
            stream = ByteStream(handle)

            with pytest.raises(StreamError):
                stream.read(1)
            with pytest.raises(StreamError):
                stream.get_contents()

    def test_write_unwritable_raises(self, tmp_path: Path):
        """Test writing a read-only stream."""
        path = tmp_path / "in.bin"
        path.write_bytes(b"x")

        with open(path, "rb") as handle:
            with pytest.raises(StreamError):
                ByteStream(handle).write(b"y")

    def test_detached_operations_raise(self):
        """Test that I/O on a detached stream raises StreamError."""
        stream = ByteStream(io.BytesIO(b"abc"))
        stream.detach()

        with pytest.raises(StreamError):
            stream.tell()
        with pytest.raises(StreamError):
            stream.seek(0)
        with pytest.raises(StreamError):
            stream.rewind()
        with pytest.raises(StreamError):
            stream.read(1)
        with pytest.raises(StreamError):
            stream.write(b"x")

    def test_str_returns_whole_stream(self):
        """Test that str() rewinds and decodes."""
        stream = ByteStream(io.BytesIO("héllo".encode("utf-8")))
        stream.read(2)

        assert str(stream) == "héllo"

    def test_str_never_raises(self, tmp_path: Path):
        """Test str() on an unreadable stream."""
        with open(tmp_path / "out.bin", "wb") as handle:
            assert str(ByteStream(handle)) == ""
