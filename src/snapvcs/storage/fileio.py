"""Atomic file replacement shared by every persisted SnapVCS record."""

import os
import tempfile
from pathlib import Path

from snapvcs.exceptions import StorageIOError


def atomic_write(path: Path, data: bytes, prefix: str = ".tmp_") -> None:
    """Replace ``path`` with ``data`` via tmp file + rename.

    The temp file lives in the target directory so the final ``os.replace``
    never crosses filesystems. Readers observe either the old content or the
    new content, never a partial write.

    Raises:
        StorageIOError: If the temp file cannot be created, written or renamed
    """
    path = Path(path)
    try:
        tmp_fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=prefix)
    except OSError as e:
        raise StorageIOError(f"Failed to write {path}: {e}") from e

    try:
        with os.fdopen(tmp_fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())  # Ensure written to disk

        os.replace(tmp_path, path)

    except OSError as e:
        # Clean up temp file on error
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise StorageIOError(f"Failed to write {path}: {e}") from e
