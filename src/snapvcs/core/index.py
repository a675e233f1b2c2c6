"""Working-tree index for SnapVCS.

The index records what the store last observed at every repo-relative path.
Entries are never removed when a path disappears from the working tree; they
are tombstoned (``deleted=True``) and keep their last object id, so a later
reader can still find the content that used to live there.

Index format (text, one entry per line, sorted by path):

    blob 3b18e512dba79e4c8300dd08aeb37f8e728b8dad file1.txt
    tree 4f1c...  dir1
    blob 9a2c...  dir1/file2.txt deleted

Backslash, newline and carriage return in a path are backslash-escaped. A
path that itself ends in `` deleted`` has that space written as ``\\s`` so
the tombstone suffix is never ambiguous.
"""

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional

from snapvcs.constants import DELETED_MARKER, INDEX_FILE, OBJECT_KINDS
from snapvcs.exceptions import (
    IndexEntryNotFoundError,
    InvalidInputError,
    StorageIOError,
)
from snapvcs.storage.fileio import atomic_write
from snapvcs.storage.object_store import validate_object_id

logger = logging.getLogger(__name__)

_DELETED_SUFFIX = " " + DELETED_MARKER
_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\r": "\\r"}
_UNESCAPES = {"\\": "\\", "n": "\n", "r": "\r", "s": " "}


@dataclass(frozen=True)
class IndexEntry:
    """One path's last observed state.

    Attributes:
        path: Repo-relative POSIX path
        kind: "blob" or "tree"
        object_id: Id of the object last seen at this path
        deleted: Whether the path has disappeared from the working tree
    """

    path: str
    kind: str
    object_id: str
    deleted: bool = False

    def to_line(self) -> str:
        line = f"{self.kind} {self.object_id} {_escape_path(self.path)}"
        if self.deleted:
            line += _DELETED_SUFFIX
        return line

    @classmethod
    def from_line(cls, line: str) -> "IndexEntry":
        """Parse one index line.

        Raises:
            InvalidInputError: If the line is malformed
        """
        parts = line.split(" ", 2)
        if len(parts) != 3:
            raise InvalidInputError(f"Malformed index line: {line!r}")

        kind, object_id, raw_path = parts
        deleted = raw_path.endswith(_DELETED_SUFFIX)
        if deleted:
            raw_path = raw_path[: -len(_DELETED_SUFFIX)]

        return _make_entry(_unescape_path(raw_path), kind, object_id, deleted)


class Index:
    """In-memory ordered map of index entries, keyed by path.

    The map is loaded once per logical operation, mutated in memory, and
    written back with a full-file atomic replace. Nothing is written until
    ``save()`` is called (or a ``with`` block exits cleanly).

    Attributes:
        index_path: Path to the index file (.snapvcs/index)

    Example:
        >>> with Index(Path(".snapvcs")) as index:
        ...     index.upsert("notes.txt", "blob", object_id)
    """

    def __init__(self, repo_dir: Path) -> None:
        self.repo_dir = Path(repo_dir)
        self.index_path = self.repo_dir / INDEX_FILE
        self._entries: Dict[str, IndexEntry] = {}

    def __enter__(self) -> "Index":
        self.load()
        return self

    def __exit__(self, exc_type: Any, *args: Any) -> None:
        if exc_type is None:
            self.save()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def __iter__(self) -> Iterator[IndexEntry]:
        return iter(self.entries())

    def load(self) -> List[IndexEntry]:
        """Load the index from disk, replacing the in-memory state.

        A missing index file is an empty index.

        Returns:
            All entries sorted by path

        Raises:
            InvalidInputError: If a line is malformed
            StorageIOError: If the file cannot be read
        """
        self._entries = {}
        if not self.index_path.exists():
            return []

        try:
            content = self.index_path.read_text(encoding="utf-8", errors="surrogateescape")
        except OSError as e:
            raise StorageIOError(f"Failed to read index: {e}") from e

        for lineno, line in enumerate(content.split("\n"), start=1):
            if not line:
                continue
            try:
                entry = IndexEntry.from_line(line)
            except InvalidInputError as e:
                raise InvalidInputError(f"Corrupted index file, line {lineno}: {e}") from e
            # Last write wins
            self._entries[entry.path] = entry

        return self.entries()

    def save(self, entries: Optional[Iterable[IndexEntry]] = None) -> None:
        """Write the complete index to disk, sorted by path.

        Args:
            entries: Replace the in-memory state with these first

        Raises:
            StorageIOError: If the write fails
        """
        if entries is not None:
            self._entries = {}
            for entry in entries:
                self._entries[entry.path] = entry

        content = "".join(entry.to_line() + "\n" for entry in self.entries())
        atomic_write(
            self.index_path,
            content.encode("utf-8", errors="surrogateescape"),
            prefix=".tmp_index_",
        )
        logger.debug("Index saved (%d entries)", len(self._entries))

    def entries(self) -> List[IndexEntry]:
        """All entries, sorted by path."""
        return [self._entries[path] for path in sorted(self._entries)]

    def get(self, path: str) -> Optional[IndexEntry]:
        return self._entries.get(path)

    def upsert(self, path: str, kind: str, object_id: str) -> IndexEntry:
        """Record a fresh, live entry for ``path``.

        Any existing entry for the path, deleted or not, is replaced.

        Raises:
            InvalidInputError: If path, kind or object_id is malformed
        """
        entry = _make_entry(path, kind, object_id, deleted=False)
        self._entries[path] = entry
        return entry

    def mark_deleted(self, path: str) -> None:
        """Tombstone the entry for ``path``, keeping its object id.

        Marking an already deleted entry is a no-op.

        Raises:
            IndexEntryNotFoundError: If the index has no entry for path
        """
        entry = self._entries.get(path)
        if entry is None:
            raise IndexEntryNotFoundError(f"No index entry for path: {path}")
        if not entry.deleted:
            self._entries[path] = replace(entry, deleted=True)
            logger.debug("Marked deleted: %s", path)

    def reconcile_deletions(self, live_paths: Iterable[str]) -> List[str]:
        """Tombstone every live entry whose path is not in ``live_paths``.

        Returns:
            Paths newly marked deleted, sorted
        """
        live = set(live_paths)
        removed = [
            entry.path
            for entry in self.entries()
            if not entry.deleted and entry.path not in live
        ]
        for path in removed:
            self.mark_deleted(path)
        return removed

    def purge(self) -> List[str]:
        """Drop all tombstoned entries.

        Returns:
            Paths that were removed, sorted
        """
        purged = [entry.path for entry in self.entries() if entry.deleted]
        for path in purged:
            del self._entries[path]
        if purged:
            logger.info("Purged %d deleted index entries", len(purged))
        return purged

    def live_entries(self) -> List[IndexEntry]:
        return [entry for entry in self.entries() if not entry.deleted]


def _make_entry(path: str, kind: str, object_id: str, deleted: bool) -> IndexEntry:
    if not path or path.startswith("/"):
        raise InvalidInputError(f"Index path must be repo-relative: {path!r}")
    if kind not in OBJECT_KINDS:
        raise InvalidInputError(f"Unknown object kind: {kind!r}")
    validate_object_id(object_id)
    return IndexEntry(path=path, kind=kind, object_id=object_id, deleted=deleted)


def _escape_path(path: str) -> str:
    escaped = "".join(_ESCAPES.get(c, c) for c in path)
    if escaped.endswith(_DELETED_SUFFIX):
        escaped = escaped[: -len(_DELETED_SUFFIX)] + "\\s" + DELETED_MARKER
    return escaped


def _unescape_path(raw: str) -> str:
    chars = []
    i = 0
    while i < len(raw):
        c = raw[i]
        if c == "\\":
            if i + 1 >= len(raw) or raw[i + 1] not in _UNESCAPES:
                raise InvalidInputError(f"Bad escape in index path: {raw!r}")
            chars.append(_UNESCAPES[raw[i + 1]])
            i += 2
            continue
        chars.append(c)
        i += 1
    return "".join(chars)
