"""
=============================================================================
UPLOADED FILES
=============================================================================

Turns the raw upload descriptor a multipart/form-data decoder hands us into
a uniform tree of single-use UploadedFile objects.

=============================================================================
DESCRIPTOR SHAPES
=============================================================================

The raw descriptor is shape-ambiguous. The same "field → info" mapping can
mean three different things:

    SINGLE FILE  (<input type="file" name="avatar">)
    ─────────────
        "avatar": {"tmp_name": "/tmp/upload1", "name": "me.png",
                   "type": "image/png", "size": 1234, "error": 0}

    MULTI-FILE   (<input type="file" name="docs[]" multiple>)
    ──────────
        "docs": {"tmp_name": ["/tmp/upload2", "/tmp/upload3"],
                 "name":     ["a.pdf",     "b.pdf"],
                 "error":    [0,           0]}          ← parallel arrays

    NESTED GROUP (<input type="file" name="user[avatar]">)
    ────────────
        "user": {"avatar": {... single file ...}}       ← no "error" key

The rule: a node without "error" is a group (recurse); a scalar "error" is
one file; a collection "error" means every field is a parallel collection
to be zipped by index (or by key, for nested names like docs[a][]).

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        NORMALIZED TREE                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   {                                                                 │
    │     "avatar": UploadedFile(me.png),                                 │
    │     "docs":   [UploadedFile(a.pdf), UploadedFile(b.pdf)],           │
    │     "user":   {"avatar": UploadedFile(...)},                        │
    │   }                                                                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
FILE LIFECYCLE
=============================================================================

    PENDING ──move_to()──► MOVED        (no way back)

    get_stream()  works only while PENDING
    move_to()     works exactly once; a failure leaves the file PENDING

=============================================================================
"""

import logging
import os
import shutil
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import urlsplit
from urllib.request import url2pathname

from ..config import MessageConfig, get_default_config
from ..errors import InvalidArgumentError, UploadError
from .stream import ByteStream


logger = logging.getLogger(__name__)


class UploadStatus(IntEnum):
    """Upload status codes reported by the server for each file."""

    OK = 0              # Uploaded successfully
    INI_SIZE = 1        # Larger than the server-wide limit
    FORM_SIZE = 2       # Larger than the form's MAX_FILE_SIZE
    PARTIAL = 3         # Only part of the file arrived
    NO_FILE = 4         # Field was submitted empty
    NO_TMP_DIR = 6      # Server has no temp directory
    CANT_WRITE = 7      # Server couldn't write the temp file
    EXTENSION = 8       # A server extension stopped the upload

    @property
    def phrase(self) -> str:
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_ok(self) -> bool:
        return self == UploadStatus.OK


_STATUS_PHRASES = {
    UploadStatus.OK: "There is no error, the file uploaded with success",
    UploadStatus.INI_SIZE: "The uploaded file exceeds the maximum upload size",
    UploadStatus.FORM_SIZE: "The uploaded file exceeds the MAX_FILE_SIZE directive of the form",
    UploadStatus.PARTIAL: "The uploaded file was only partially uploaded",
    UploadStatus.NO_FILE: "No file was uploaded",
    UploadStatus.NO_TMP_DIR: "Missing a temporary folder",
    UploadStatus.CANT_WRITE: "Failed to write file to disk",
    UploadStatus.EXTENSION: "A server extension stopped the file upload",
}


def is_uploaded_file(path: str, upload_dir: str) -> bool:
    """
    Check that path is a regular file inside the server's upload directory.

    Guards against a forged descriptor pointing tmp_name at an arbitrary
    file such as /etc/passwd.
    """
    if not path:
        return False
    try:
        real_path = os.path.realpath(path)
        root = os.path.realpath(upload_dir)
        return os.path.isfile(real_path) and os.path.commonpath([real_path, root]) == root
    except (OSError, ValueError):
        return False


@dataclass
class UploadedFile:
    """
    One uploaded file.

    Attributes:
        file: Path of the temp file holding the upload.
        name: Filename as sent by the client (untrusted).
        type: Media type as sent by the client (untrusted).
        size: Size in bytes as reported by the server.
        error: UploadStatus (or the raw int for unknown codes).
        sapi: True when the file came from the server's native upload
              handling; it must then pass is_uploaded_file() to be moved.
        config: Overrides the default MessageConfig.
    """

    file: str
    name: Optional[str] = None
    type: Optional[str] = None
    size: Optional[int] = None
    error: Union[UploadStatus, int] = UploadStatus.OK
    sapi: bool = False
    config: Optional[MessageConfig] = field(default=None, repr=False, compare=False)

    _stream: Optional[ByteStream] = field(default=None, init=False, repr=False, compare=False)
    _moved: bool = field(default=False, init=False, repr=False, compare=False)

    def __post_init__(self):
        if self.size is not None and self.size != "":
            self.size = int(self.size)
        else:
            self.size = None
        code = int(self.error)
        try:
            self.error = UploadStatus(code)
        except ValueError:
            self.error = code

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    @property
    def moved(self) -> bool:
        return self._moved

    def get_error(self) -> Union[UploadStatus, int]:
        return self.error

    def get_client_filename(self) -> Optional[str]:
        return self.name

    def get_client_media_type(self) -> Optional[str]:
        return self.type

    def get_size(self) -> Optional[int]:
        return self.size

    def _get_config(self) -> MessageConfig:
        return self.config or get_default_config()

    # =========================================================================
    # STREAM
    # =========================================================================

    def get_stream(self) -> ByteStream:
        """
        Return a read-only stream over the uploaded file.

        Opened on first call and reused afterwards.

        Raises:
            UploadError: If the file was already moved or can't be opened.
        """
        if self._moved:
            raise UploadError(f"Uploaded file {self.name} has already been moved")

        if self._stream is None:
            try:
                handle = open(self.file, "rb")
            except OSError as e:
                raise UploadError(f"Could not open uploaded file {self.name}") from e
            self._stream = ByteStream(handle)

        return self._stream

    # =========================================================================
    # MOVE
    # =========================================================================

    def move_to(self, target_path: str) -> None:
        """
        Move the uploaded file to target_path. Works exactly once.

        =====================================================================
        MOVE STRATEGIES
        =====================================================================

            target is "file://..."  →  copy, then delete the source
            sapi upload             →  verify it's a real upload, then move
            anything else           →  os.rename()

        =====================================================================

        Raises:
            UploadError: Already moved, not a valid upload, or the
                         copy/move/delete failed.
            InvalidArgumentError: The target directory is not writable.
        """
        if self._moved:
            raise UploadError("Uploaded file already moved")

        target_is_stream = target_path.find("://") > 0
        local_target = self._local_target(target_path) if target_is_stream else target_path

        directory = os.path.dirname(local_target) or "."
        if not os.access(directory, os.W_OK):
            raise InvalidArgumentError("Upload target path is not writable")

        if target_is_stream:
            logger.debug(f"Copying upload {self.file} to stream target {target_path}")
            self._copy_then_delete(local_target, target_path)
        elif self.sapi:
            logger.debug(f"Moving server upload {self.file} to {target_path}")
            self._move_uploaded(target_path)
        else:
            logger.debug(f"Renaming {self.file} to {target_path}")
            self._rename(target_path)

        if self._stream is not None:
            self._stream.close()
            self._stream = None
        self._moved = True

    @staticmethod
    def _local_target(target_path: str) -> str:
        parts = urlsplit(target_path)
        if parts.scheme.lower() != "file":
            raise UploadError(f"Unsupported upload target scheme: {parts.scheme}")
        return url2pathname(parts.path)

    def _copy_then_delete(self, local_target: str, target_path: str) -> None:
        chunk_size = self._get_config().copy_chunk_size
        try:
            with open(self.file, "rb") as source, open(local_target, "wb") as target:
                shutil.copyfileobj(source, target, chunk_size)
        except OSError as e:
            logger.error(f"Error moving uploaded file {self.name} to {target_path}: {e}")
            raise UploadError(f"Error moving uploaded file {self.name} to {target_path}") from e

        try:
            os.unlink(self.file)
        except OSError as e:
            logger.error(f"Error removing uploaded file {self.name}: {e}")
            raise UploadError(f"Error removing uploaded file {self.name}") from e

    def _move_uploaded(self, target_path: str) -> None:
        if not is_uploaded_file(self.file, self._get_config().upload_dir):
            logger.error(f"Refusing to move {self.file}: not inside the upload directory")
            raise UploadError(f"{self.file} is not a valid uploaded file")

        try:
            shutil.move(self.file, target_path)
        except OSError as e:
            logger.error(f"Error moving uploaded file {self.name} to {target_path}: {e}")
            raise UploadError(f"Error moving uploaded file {self.name} to {target_path}") from e

    def _rename(self, target_path: str) -> None:
        try:
            os.rename(self.file, target_path)
        except OSError as e:
            logger.error(f"Error moving uploaded file {self.name} to {target_path}: {e}")
            raise UploadError(f"Error moving uploaded file {self.name} to {target_path}") from e


# A node of the normalized tree
UploadedFileNode = Union[UploadedFile, List[Any], Dict[str, Any]]


def _dig(value: Any, keys: Tuple[Any, ...], default: Any = None) -> Any:
    # Follow the same index path through one of the parallel collections
    for key in keys:
        if value is None:
            return default
        try:
            value = value[key]
        except (KeyError, IndexError, TypeError):
            return default
    return default if value is None else value


class UploadedFileTree:
    """
    Normalized uploaded files, keyed by form field name.

    Example:
        tree = UploadedFileTree({
            "docs": {
                "tmp_name": ["/tmp/a", "/tmp/b"],
                "name": ["a.pdf", "b.pdf"],
                "error": [0, 0],
            },
        })
        [f.get_client_filename() for f in tree.get("docs")]   # ["a.pdf", "b.pdf"]
    """

    def __init__(
        self,
        descriptor: Optional[Mapping[str, Any]] = None,
        config: Optional[MessageConfig] = None,
    ):
        self._config = config
        self._files: Dict[str, UploadedFileNode] = self.normalize(descriptor or {}, config)

    # =========================================================================
    # NORMALIZATION
    # =========================================================================

    @classmethod
    def normalize(
        cls,
        descriptor: Mapping[str, Any],
        config: Optional[MessageConfig] = None,
    ) -> Dict[str, UploadedFileNode]:
        """
        Convert a raw upload descriptor into a tree of UploadedFile objects.

        Nodes that are already UploadedFile objects (or lists of them) are
        kept as they are. Anything else that isn't a mapping is skipped.
        """
        parsed: Dict[str, UploadedFileNode] = {}

        for name, node in descriptor.items():
            if isinstance(node, UploadedFile):
                parsed[name] = node
            elif isinstance(node, (list, tuple)) and all(isinstance(n, UploadedFile) for n in node):
                parsed[name] = list(node)
            elif not isinstance(node, Mapping):
                logger.debug(f"Skipping non-mapping upload descriptor node {name!r}")
            elif node.get("error") is None:
                parsed[name] = cls.normalize(node, config)
            else:
                parsed[name] = cls._zip(node, node["error"], (), config)

        return parsed

    @classmethod
    def _zip(
        cls,
        node: Mapping[str, Any],
        errors: Any,
        keys: Tuple[Any, ...],
        config: Optional[MessageConfig],
    ) -> UploadedFileNode:
        if isinstance(errors, Mapping):
            return {
                key: cls._zip(node, error, keys + (key,), config)
                for key, error in errors.items()
            }
        if isinstance(errors, (list, tuple)):
            return [
                cls._zip(node, error, keys + (index,), config)
                for index, error in enumerate(errors)
            ]

        return UploadedFile(
            file=_dig(node.get("tmp_name"), keys, ""),
            name=_dig(node.get("name"), keys),
            type=_dig(node.get("type"), keys),
            size=_dig(node.get("size"), keys),
            error=errors,
            sapi=True,
            config=config,
        )

    # =========================================================================
    # BAG OPERATIONS
    # =========================================================================

    def all(self) -> Dict[str, UploadedFileNode]:
        return dict(self._files)

    def keys(self) -> List[str]:
        return list(self._files)

    def get(self, key: str, default: Any = None) -> Any:
        return self._files.get(key, default)

    def has(self, key: str) -> bool:
        return key in self._files

    def remove(self, key: str) -> None:
        self._files.pop(key, None)

    def replace(self, descriptor: Optional[Mapping[str, Any]] = None) -> None:
        self._files = self.normalize(descriptor or {}, self._config)

    def set(self, key: str, descriptor: Any, replace: bool = True) -> None:
        """Normalize one field's descriptor and store it. Empty results are ignored."""
        if not replace and key in self._files:
            return
        values = self.normalize({key: descriptor}, self._config)
        if values.get(key):
            self._files[key] = values[key]

    def add(self, key: Union[str, Mapping[str, Any]], descriptor: Any = None) -> None:
        if isinstance(key, Mapping):
            for name, item in key.items():
                self.set(name, item)
        else:
            self.set(key, descriptor)

    def iter_files(self) -> Iterator[UploadedFile]:
        """Yield every UploadedFile leaf, depth first, in field order."""
        yield from _iter_leaves(self._files)

    def copy(self) -> "UploadedFileTree":
        """
        Return a tree with its own groups. The UploadedFile leaves are shared.
        """
        clone = type(self)(config=self._config)
        clone._files = _copy_groups(self._files)
        return clone

    def __copy__(self) -> "UploadedFileTree":
        return self.copy()

    def __getitem__(self, key: str) -> UploadedFileNode:
        return self._files[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, key: object) -> bool:
        return key in self._files

    def __repr__(self) -> str:
        return f"<{type(self).__name__}({self._files!r})>"


def _copy_groups(node: Any) -> Any:
    if isinstance(node, Mapping):
        return {key: _copy_groups(child) for key, child in node.items()}
    if isinstance(node, list):
        return [_copy_groups(child) for child in node]
    return node


def _iter_leaves(node: Any) -> Iterator[UploadedFile]:
    if isinstance(node, UploadedFile):
        yield node
    elif isinstance(node, Mapping):
        for child in node.values():
            yield from _iter_leaves(child)
    elif isinstance(node, Sequence) and not isinstance(node, str):
        for child in node:
            yield from _iter_leaves(child)
