"""Content-addressable object storage for SnapVCS.

This module implements a Git-like object store using SHA-1 hashing for
content addressing. Objects are stored flat in .snapvcs/objects/ with
automatic deduplication and optional gzip compression.

The id of an object is the hash of its STORED representation. With
compression enabled that is the gzip stream, so the same logical content
gets a different id in a compressed repository than in a plain one. The
compression regime is fixed when the store is constructed.
"""

import gzip
import hashlib
import logging
from pathlib import Path
from typing import Iterator

from snapvcs.constants import (
    GZIP_LEVEL,
    HASH_ALGORITHM,
    HASH_LENGTH,
    OBJECTS_DIR,
)
from snapvcs.exceptions import (
    InvalidInputError,
    ObjectCorruptedError,
    ObjectNotFoundError,
    StorageIOError,
)
from snapvcs.storage.fileio import atomic_write

logger = logging.getLogger(__name__)


class ObjectStore:
    """Content-addressable storage for blobs, trees and commits.

    Storage layout:
        .snapvcs/objects/<hash>      # one file per object, raw or gzip bytes

    Attributes:
        repo_dir: Path to the .snapvcs directory
        objects_dir: Path to the objects directory
        compress: Whether objects are gzip-compressed before hashing

    Example:
        >>> store = ObjectStore(Path(".snapvcs"))
        >>> object_id = store.put(b"hello\\n")
        >>> assert store.get(object_id) == b"hello\\n"
    """

    def __init__(self, repo_dir: Path, compress: bool = False) -> None:
        """Initialize the object store.

        The objects directory is created lazily on the first ``put``.

        Args:
            repo_dir: Path to .snapvcs directory
            compress: Compression regime, fixed for this store's lifetime
        """
        self.repo_dir = Path(repo_dir)
        self.objects_dir = self.repo_dir / OBJECTS_DIR
        self._compress = bool(compress)

    @property
    def compress(self) -> bool:
        return self._compress

    def put(self, content: bytes) -> str:
        """Write an object to the store.

        If an object with the same id already exists, returns the id without
        writing (deduplication). Uses atomic write (tmp file + rename) to
        prevent corruption.

        Args:
            content: Logical object bytes

        Returns:
            SHA-1 hash of the stored representation (40 hex characters)

        Raises:
            StorageIOError: If the objects directory or the object cannot be
                written (permissions, disk full, etc.)

        Example:
            >>> id1 = store.put(b"data")
            >>> id2 = store.put(b"data")
            >>> assert id1 == id2  # Deduplication
        """
        stored = self._encode(content)
        object_id = self._hash(stored)

        object_path = self._get_object_path(object_id)
        if object_path.exists():
            logger.debug("Object already exists: %s", object_id)
            return object_id

        try:
            self.objects_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageIOError(
                f"Failed to create objects directory {self.objects_dir}: {e}"
            ) from e

        atomic_write(object_path, stored, prefix=".tmp_obj_")
        logger.debug("Object created: %s (%d bytes)", object_id, len(stored))
        return object_id

    def is_new(self, content: bytes) -> bool:
        """Check whether ``put(content)`` would create a new object."""
        return not self._get_object_path(self.compute_id(content)).exists()

    def get(self, object_id: str, verify_hash: bool = True) -> bytes:
        """Read an object from the store.

        Args:
            object_id: SHA-1 hash of the object (40 hex characters)
            verify_hash: Whether to recompute and verify the hash

        Returns:
            Logical object bytes (decompressed if the store compresses)

        Raises:
            ObjectNotFoundError: If the object doesn't exist
            ObjectCorruptedError: If hash verification or decompression fails
            InvalidInputError: If object_id is not a valid hash
        """
        self._validate_hash(object_id)

        object_path = self._get_object_path(object_id)
        if not object_path.exists():
            raise ObjectNotFoundError(f"Object not found: {object_id}")

        try:
            with open(object_path, "rb") as f:
                stored = f.read()
        except OSError as e:
            raise StorageIOError(f"Failed to read object {object_id}: {e}") from e

        if verify_hash:
            actual_id = self._hash(stored)
            if actual_id != object_id:
                raise ObjectCorruptedError(
                    f"Object corrupted: expected {object_id}, got {actual_id}"
                )

        return self._decode(object_id, stored)

    def contains(self, object_id: str) -> bool:
        """Check if an object exists in the store.

        Malformed ids are reported as absent rather than raising.
        """
        try:
            self._validate_hash(object_id)
        except InvalidInputError:
            return False

        return self._get_object_path(object_id).exists()

    def compute_id(self, content: bytes) -> str:
        """Compute the id ``content`` would be stored under, without writing."""
        return self._hash(self._encode(content))

    def get_size(self, object_id: str) -> int:
        """Get the size of an object on disk (after compression if applicable).

        Raises:
            ObjectNotFoundError: If the object doesn't exist
        """
        self._validate_hash(object_id)
        object_path = self._get_object_path(object_id)
        if not object_path.exists():
            raise ObjectNotFoundError(f"Object not found: {object_id}")
        return object_path.stat().st_size

    def iter_ids(self) -> Iterator[str]:
        """Yield the ids of all stored objects in sorted order.

        Temp files left by an interrupted write are skipped.
        """
        if not self.objects_dir.exists():
            return
        for name in sorted(p.name for p in self.objects_dir.iterdir()):
            if len(name) == HASH_LENGTH and not name.startswith("."):
                yield name

    def _encode(self, content: bytes) -> bytes:
        """Apply the store's transform to logical bytes.

        ``mtime=0`` keeps the gzip header, and so the id, deterministic.
        """
        if self._compress:
            return gzip.compress(content, compresslevel=GZIP_LEVEL, mtime=0)
        return content

    def _decode(self, object_id: str, stored: bytes) -> bytes:
        if not self._compress:
            return stored
        try:
            return gzip.decompress(stored)
        except (OSError, EOFError) as e:
            raise ObjectCorruptedError(
                f"Object {object_id} is not a valid gzip stream: {e}"
            ) from e

    def _hash(self, data: bytes) -> str:
        """Compute the SHA-1 hash of stored bytes."""
        hasher = hashlib.new(HASH_ALGORITHM)
        hasher.update(data)
        return hasher.hexdigest()

    def _get_object_path(self, object_id: str) -> Path:
        return self.objects_dir / object_id

    def _validate_hash(self, object_id: str) -> None:
        validate_object_id(object_id)


def validate_object_id(object_id: str) -> str:
    """Validate that a hash string is properly formatted.

    Returns:
        The id unchanged

    Raises:
        InvalidInputError: If hash is invalid format
    """
    if not isinstance(object_id, str):
        raise InvalidInputError(f"Hash must be string, got {type(object_id)}")

    if len(object_id) != HASH_LENGTH:
        raise InvalidInputError(
            f"Hash must be {HASH_LENGTH} characters, got {len(object_id)}"
        )

    # Lower-case hex only, matching hexdigest() output
    if any(c not in "0123456789abcdef" for c in object_id):
        raise InvalidInputError(f"Hash must be lower-case hexadecimal: {object_id}")

    return object_id
