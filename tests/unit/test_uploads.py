"""
Unit tests for uploaded files and the uploaded file tree.
"""

import os
from pathlib import Path

import pytest

from httpmessage.config import MessageConfig
from httpmessage.errors import InvalidArgumentError, UploadError
from httpmessage.http.uploads import (
    UploadedFile,
    UploadedFileTree,
    UploadStatus,
    is_uploaded_file,
)


class TestUploadStatus:
    """Tests for UploadStatus."""

    def test_phrases(self):
        """Test that every status has a phrase."""
        assert UploadStatus.OK.is_ok
        assert not UploadStatus.PARTIAL.is_ok
        assert UploadStatus.NO_FILE.phrase == "No file was uploaded"
        assert all(status.phrase != "Unknown" for status in UploadStatus)

    def test_uploaded_file_converts_error_codes(self):
        """Test int → UploadStatus, keeping unknown codes as ints."""
        assert UploadedFile("/tmp/x", error=4).get_error() is UploadStatus.NO_FILE
        assert UploadedFile("/tmp/x", error="3").get_error() is UploadStatus.PARTIAL
        assert UploadedFile("/tmp/x", error=5).get_error() == 5


class TestUploadedFile:
    """Tests for a single UploadedFile."""

    def test_accessors(self):
        """Test the client-reported values."""
        upload = UploadedFile("/tmp/x", name="me.png", type="image/png", size="1234")

        assert upload.get_client_filename() == "me.png"
        assert upload.get_client_media_type() == "image/png"
        assert upload.get_size() == 1234
        assert upload.get_error() is UploadStatus.OK
        assert not upload.moved

    def test_empty_size_is_none(self):
        """Test that an empty size means unknown."""
        assert UploadedFile("/tmp/x", size="").get_size() is None

    def test_get_stream(self, make_upload):
        """Test reading the upload through its stream."""
        path = make_upload("upload1", b"contents")
        upload = UploadedFile(str(path))

        stream = upload.get_stream()
        assert stream.is_readable()
        assert stream.get_contents() == b"contents"
        assert upload.get_stream() is stream
        stream.close()

    def test_get_stream_missing_file(self, tmp_path: Path):
        """Test that an unopenable file raises UploadError."""
        with pytest.raises(UploadError):
            UploadedFile(str(tmp_path / "missing")).get_stream()

    def test_move_to_renames(self, make_upload, tmp_path: Path):
        """Test moving a non-server upload."""
        source = make_upload("upload1", b"data")
        target = tmp_path / "moved.bin"
        upload = UploadedFile(str(source))

        upload.move_to(str(target))

        assert upload.moved
        assert target.read_bytes() == b"data"
        assert not source.exists()

    def test_move_twice_and_stream_after_move_raise(self, make_upload, tmp_path: Path):
        """Test that a moved file is single use."""
        upload = UploadedFile(str(make_upload("upload1")))
        upload.move_to(str(tmp_path / "first.bin"))

        with pytest.raises(UploadError):
            upload.move_to(str(tmp_path / "second.bin"))
        with pytest.raises(UploadError):
            upload.get_stream()

    def test_move_closes_open_stream(self, make_upload, tmp_path: Path):
        """Test that moving releases the cached stream."""
        upload = UploadedFile(str(make_upload("upload1")))
        stream = upload.get_stream()

        upload.move_to(str(tmp_path / "moved.bin"))

        assert not stream.is_attached()

    def test_move_to_unwritable_directory(self, make_upload, tmp_path: Path):
        """Test that a missing target directory is rejected before moving."""
        source = make_upload("upload1")
        upload = UploadedFile(str(source))

        with pytest.raises(InvalidArgumentError):
            upload.move_to(str(tmp_path / "no" / "such" / "dir" / "file.bin"))

        assert not upload.moved
        assert source.exists()

    def test_move_to_stream_target(self, make_upload, tmp_path: Path, config: MessageConfig):
        """Test copy-then-delete for file:// targets."""
        source = make_upload("upload1", b"0123456789")
        target = tmp_path / "copied.bin"
        upload = UploadedFile(str(source), config=config)

        upload.move_to(target.as_uri())

        assert upload.moved
        assert target.read_bytes() == b"0123456789"
        assert not source.exists()

    def test_move_to_unsupported_stream_target(self, make_upload):
        """Test that non-file stream targets are refused."""
        upload = UploadedFile(str(make_upload("upload1")))

        with pytest.raises(UploadError):
            upload.move_to("ftp://example.com/file.bin")

        assert not upload.moved

    def test_server_upload_moved_from_upload_dir(self, make_upload, tmp_path: Path, config: MessageConfig):
        """Test moving a server upload that lives in the upload directory."""
        source = make_upload("upload1", b"data")
        target = tmp_path / "final.bin"
        upload = UploadedFile(str(source), sapi=True, config=config)

        upload.move_to(str(target))

        assert target.read_bytes() == b"data"

    def test_server_upload_outside_upload_dir_refused(self, tmp_path: Path, config: MessageConfig):
        """Test that a forged tmp_name is not moved."""
        outside = tmp_path / "secret.txt"
        outside.write_bytes(b"secret")
        upload = UploadedFile(str(outside), sapi=True, config=config)

        with pytest.raises(UploadError):
            upload.move_to(str(tmp_path / "stolen.txt"))

        assert outside.exists()
        assert not upload.moved

    def test_rename_failure_raises_upload_error(self, tmp_path: Path):
        """Test that an OSError becomes UploadError."""
        upload = UploadedFile(str(tmp_path / "missing"))

        with pytest.raises(UploadError) as exc_info:
            upload.move_to(str(tmp_path / "target"))

        assert isinstance(exc_info.value.__cause__, OSError)


class TestIsUploadedFile:
    """Tests for is_uploaded_file()."""

    def test_inside_and_outside(self, make_upload, upload_dir: Path, tmp_path: Path):
        """Test the containment check."""
        inside = make_upload("upload1")
        outside = tmp_path / "other"
        outside.write_bytes(b"")

        assert is_uploaded_file(str(inside), str(upload_dir))
        assert not is_uploaded_file(str(outside), str(upload_dir))
        assert not is_uploaded_file(str(upload_dir / ".." / "other"), str(upload_dir))
        assert not is_uploaded_file("", str(upload_dir))
        assert not is_uploaded_file(str(upload_dir), str(upload_dir))


class TestUploadedFileTree:
    """Tests for descriptor normalization."""

    def test_single_file(self):
        """Test a scalar descriptor."""
        tree = UploadedFileTree({
            "avatar": {"tmp_name": "/tmp/upload1", "name": "me.png", "type": "image/png", "size": 10, "error": 0},
        })
        avatar = tree.get("avatar")

        assert isinstance(avatar, UploadedFile)
        assert avatar.file == "/tmp/upload1"
        assert avatar.get_client_filename() == "me.png"
        assert avatar.sapi

    def test_multi_file(self):
        """Test parallel arrays."""
        tree = UploadedFileTree({
            "docs": {
                "tmp_name": ["/tmp/a", "/tmp/b"],
                "name": ["a.pdf", "b.pdf"],
                "error": [0, 0],
            },
        })
        docs = tree.get("docs")

        assert len(docs) == 2
        assert [d.get_client_filename() for d in docs] == ["a.pdf", "b.pdf"]
        assert [d.file for d in docs] == ["/tmp/a", "/tmp/b"]
        assert docs[0].get_client_media_type() is None

    def test_nested_group(self):
        """Test a group without an error key."""
        tree = UploadedFileTree({
            "user": {"avatar": {"tmp_name": "/tmp/u", "name": "u.png", "error": 0}},
        })

        assert tree["user"]["avatar"].get_client_filename() == "u.png"

    def test_nested_parallel_collections(self):
        """Test parallel mappings of lists (docs[a][], docs[b][])."""
        tree = UploadedFileTree({
            "docs": {
                "tmp_name": {"a": ["/tmp/1", "/tmp/2"], "b": ["/tmp/3"]},
                "name": {"a": ["1.txt", "2.txt"], "b": ["3.txt"]},
                "error": {"a": [0, 4], "b": [0]},
            },
        })
        docs = tree.get("docs")

        assert [f.file for f in docs["a"]] == ["/tmp/1", "/tmp/2"]
        assert docs["a"][1].get_error() is UploadStatus.NO_FILE
        assert docs["b"][0].get_client_filename() == "3.txt"

    def test_existing_uploaded_files_kept(self):
        """Test that UploadedFile nodes pass through unchanged."""
        upload = UploadedFile("/tmp/x")
        tree = UploadedFileTree({"one": upload, "many": [upload, upload]})

        assert tree.get("one") is upload
        assert tree.get("many") == [upload, upload]

    def test_scalar_nodes_skipped(self):
        """Test that scalar descriptor nodes are dropped."""
        tree = UploadedFileTree({"junk": "not a descriptor"})

        assert tree.keys() == []

    def test_set_and_add(self):
        """Test bag operations normalizing their input."""
        tree = UploadedFileTree()
        tree.set("avatar", {"tmp_name": "/tmp/a", "error": 0})
        tree.add({"cv": {"tmp_name": "/tmp/cv", "error": 0}})
        tree.set("avatar", {"tmp_name": "/tmp/b", "error": 0}, replace=False)
        tree.set("junk", "x")

        assert tree.get("avatar").file == "/tmp/a"
        assert isinstance(tree.get("cv"), UploadedFile)
        assert not tree.has("junk")

    def test_remove_replace(self):
        """Test remove() and replace()."""
        tree = UploadedFileTree({"a": {"tmp_name": "/tmp/a", "error": 0}})
        tree.remove("a")
        assert len(tree) == 0

        tree.replace({"b": {"tmp_name": "/tmp/b", "error": 0}})
        assert list(tree) == ["b"]
        assert "b" in tree

    def test_iter_files(self):
        """Test flattening the tree to its leaves."""
        tree = UploadedFileTree({
            "avatar": {"tmp_name": "/tmp/a", "error": 0},
            "docs": {"tmp_name": ["/tmp/b", "/tmp/c"], "error": [0, 0]},
        })

        assert [f.file for f in tree.iter_files()] == ["/tmp/a", "/tmp/b", "/tmp/c"]

    def test_config_passed_to_files(self, config: MessageConfig):
        """Test that normalized files carry the tree's config."""
        tree = UploadedFileTree({"a": {"tmp_name": "/tmp/a", "error": 0}}, config)

        assert tree.get("a").config is config

    def test_end_to_end_move(self, make_upload, tmp_path: Path, config: MessageConfig):
        """Test moving a normalized server upload."""
        source = make_upload("upload1", b"payload")
        tree = UploadedFileTree({"f": {"tmp_name": str(source), "name": "f.txt", "error": 0}}, config)
        target = tmp_path / "f.txt"

        tree.get("f").move_to(str(target))

        assert target.read_bytes() == b"payload"
        assert not os.path.exists(source)

    def test_copy_has_own_groups(self):
        """Test that a copy's groups are independent but its files are shared."""
        tree = UploadedFileTree({
            "avatar": {"tmp_name": "/tmp/a", "error": 0},
            "docs": {"tmp_name": ["/tmp/b", "/tmp/c"], "error": [0, 0]},
            "user": {"cv": {"tmp_name": "/tmp/cv", "error": 0}},
        })
        clone = tree.copy()
        clone.remove("avatar")
        clone.get("docs").pop()
        clone.get("user")["extra"] = UploadedFile("/tmp/x")

        assert tree.has("avatar")
        assert len(tree.get("docs")) == 2
        assert list(tree.get("user")) == ["cv"]
        assert clone.get("docs")[0] is tree.get("docs")[0]
        assert clone.get("user")["cv"] is tree.get("user")["cv"]
