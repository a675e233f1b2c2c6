"""Directory snapshots as content-addressed tree objects.

A tree object is a manifest of a directory's immediate children, one line
per child:

    blob <hash> <name>
    tree <hash> <name>

Lines are sorted byte-wise by name, so the manifest (and therefore the tree
id) depends only on directory contents, never on filesystem listing order.
Backslash, newline and carriage return in a name are backslash-escaped.
The manifest carries no path information, so identical directories share
one tree object wherever they appear.

Snapshotting runs in three steps:

1. ``scan`` reads the directory layout into an in-memory description
   (``DirectoryNode``/``FileNode``).
2. ``build`` computes every blob and tree id over that description without
   writing anything, collecting the objects and the index records.
3. ``persist`` writes the collected objects; ``Snapshot.apply`` folds the
   records into the index.

``build`` works on any node tree, so hashing can be exercised on nodes
constructed in memory.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar, Dict, List, Optional, Union

from snapvcs.constants import KIND_BLOB, KIND_TREE, OBJECT_KINDS, SNAPVCS_DIR
from snapvcs.core.index import Index, IndexEntry
from snapvcs.exceptions import InvalidInputError, StorageIOError
from snapvcs.storage.object_store import ObjectStore, validate_object_id

logger = logging.getLogger(__name__)

_NAME_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\r": "\\r"}
_NAME_UNESCAPES = {"\\": "\\", "n": "\n", "r": "\r"}


@dataclass(frozen=True)
class ManifestEntry:
    """One child of a directory, as recorded in its tree object."""

    kind: str
    object_id: str
    name: str


def _name_key(name: str) -> bytes:
    return name.encode("utf-8", errors="surrogateescape")


def _validate_name(name: str) -> None:
    if not name or name in (".", "..") or "/" in name:
        raise InvalidInputError(f"Invalid tree entry name: {name!r}")


def _escape_name(name: str) -> str:
    return "".join(_NAME_ESCAPES.get(c, c) for c in name)


def _unescape_name(raw: str) -> str:
    chars = []
    i = 0
    while i < len(raw):
        c = raw[i]
        if c == "\\":
            if i + 1 >= len(raw) or raw[i + 1] not in _NAME_UNESCAPES:
                raise InvalidInputError(f"Bad escape in tree entry name: {raw!r}")
            chars.append(_NAME_UNESCAPES[raw[i + 1]])
            i += 2
            continue
        chars.append(c)
        i += 1
    return "".join(chars)


def serialize_manifest(entries: List[ManifestEntry]) -> bytes:
    """Serialize manifest entries into canonical tree bytes.

    Raises:
        InvalidInputError: On an unknown kind, a bad name, or a duplicate name
    """
    ordered = sorted(entries, key=lambda e: _name_key(e.name))
    lines = []
    previous: Optional[str] = None
    for entry in ordered:
        if entry.kind not in OBJECT_KINDS:
            raise InvalidInputError(f"Unknown object kind: {entry.kind!r}")
        _validate_name(entry.name)
        if entry.name == previous:
            raise InvalidInputError(f"Duplicate tree entry name: {entry.name!r}")
        previous = entry.name
        lines.append(f"{entry.kind} {entry.object_id} {_escape_name(entry.name)}\n")
    return "".join(lines).encode("utf-8", errors="surrogateescape")


def parse_manifest(data: bytes) -> List[ManifestEntry]:
    """Parse tree bytes back into manifest entries.

    Raises:
        InvalidInputError: If the data is not a tree manifest
    """
    entries = []
    text = data.decode("utf-8", errors="surrogateescape")
    for line in text.split("\n"):
        if not line:
            continue
        parts = line.split(" ", 2)
        if len(parts) != 3 or parts[0] not in OBJECT_KINDS:
            raise InvalidInputError(f"Malformed tree line: {line!r}")
        kind, object_id, name = parts
        entries.append(
            ManifestEntry(kind, validate_object_id(object_id), _unescape_name(name))
        )
    return entries


@dataclass
class FileNode:
    """A file in an in-memory directory description.

    Content is either given directly or read lazily from ``source``.
    """

    kind: ClassVar[str] = KIND_BLOB

    name: str
    content: Optional[bytes] = None
    source: Optional[Path] = None

    def read(self) -> bytes:
        if self.content is not None:
            return self.content
        if self.source is None:
            raise InvalidInputError(f"File node {self.name!r} has no content")
        try:
            return self.source.read_bytes()
        except OSError as e:
            raise StorageIOError(f"Failed to read {self.source}: {e}") from e


@dataclass
class DirectoryNode:
    """A directory in an in-memory directory description."""

    kind: ClassVar[str] = KIND_TREE

    name: str
    children: List[Union["DirectoryNode", FileNode]] = field(default_factory=list)


@dataclass
class Snapshot:
    """Result of hashing a directory description.

    Attributes:
        tree_id: Id of the root tree
        objects: Every object the snapshot references, id -> logical bytes
        records: Index entries for every path below the root, sorted by path
    """

    tree_id: str
    objects: Dict[str, bytes]
    records: List[IndexEntry]

    @property
    def live_paths(self) -> List[str]:
        return [record.path for record in self.records]

    def apply(self, index: Index) -> List[str]:
        """Fold this snapshot into an (already loaded) index.

        Paths missing from the snapshot are tombstoned first, then every
        observed path gets a fresh live entry.

        Returns:
            Paths newly marked deleted
        """
        removed = index.reconcile_deletions(self.live_paths)
        for record in self.records:
            index.upsert(record.path, record.kind, record.object_id)
        return removed


class TreeBuilder:
    """Builds tree objects for directories and records them in the index.

    Attributes:
        store: ObjectStore receiving blob and tree objects
        index: Index updated by ``snapshot``
        storage_dir_name: Directory name excluded from every listing
    """

    def __init__(
        self,
        store: ObjectStore,
        index: Index,
        storage_dir_name: str = SNAPVCS_DIR,
    ) -> None:
        self.store = store
        self.index = index
        self.storage_dir_name = storage_dir_name

    def snapshot(self, directory: Path) -> str:
        """Snapshot ``directory`` into the store and update the index.

        Args:
            directory: Working directory to snapshot

        Returns:
            Root tree id

        Raises:
            InvalidInputError: If directory is not a directory
            StorageIOError: If reading files or writing objects fails
        """
        snapshot = self.prepare(directory)

        self.index.load()
        removed = snapshot.apply(self.index)
        self.index.save()

        if removed:
            logger.info("Marked %d path(s) deleted", len(removed))
        return snapshot.tree_id

    def prepare(self, directory: Path) -> Snapshot:
        """Scan, hash and persist ``directory`` without touching the index."""
        snapshot = self.build(self.scan(directory))
        self.persist(snapshot)
        return snapshot

    def scan(self, directory: Path) -> DirectoryNode:
        """Describe ``directory`` as an in-memory node tree.

        Raises:
            InvalidInputError: If directory is not a directory
        """
        root = Path(directory)
        if not root.is_dir():
            raise InvalidInputError(f"Invalid working directory: {directory}")
        return self._scan_dir(root, root.name)

    def build(self, root: DirectoryNode) -> Snapshot:
        """Compute ids for every object under ``root`` without writing.

        Children are visited depth-first in byte-wise name order; each tree
        id is computed after all of its children (post-order).
        """
        objects: Dict[str, bytes] = {}
        records: List[IndexEntry] = []
        tree_id = self._build_dir(root, "", objects, records)
        records.sort(key=lambda r: r.path)
        return Snapshot(tree_id=tree_id, objects=objects, records=records)

    def persist(self, snapshot: Snapshot) -> int:
        """Write every object of ``snapshot`` to the store.

        Returns:
            Number of objects that did not exist before
        """
        created = 0
        for content in snapshot.objects.values():
            if self.store.is_new(content):
                created += 1
            self.store.put(content)
        logger.info(
            "Snapshot tree %s: %d object(s), %d new",
            snapshot.tree_id,
            len(snapshot.objects),
            created,
        )
        return created

    def read_tree(self, tree_id: str) -> List[ManifestEntry]:
        """Read the manifest of a stored tree.

        Raises:
            ObjectNotFoundError: If the tree does not exist
            InvalidInputError: If the object is not a tree
        """
        return parse_manifest(self.store.get(tree_id))

    def _build_dir(
        self,
        node: DirectoryNode,
        prefix: str,
        objects: Dict[str, bytes],
        records: List[IndexEntry],
    ) -> str:
        manifest = []
        for child in sorted(node.children, key=lambda c: _name_key(c.name)):
            _validate_name(child.name)
            path = prefix + child.name
            if isinstance(child, DirectoryNode):
                child_id = self._build_dir(child, path + "/", objects, records)
            else:
                content = child.read()
                child_id = self.store.compute_id(content)
                objects.setdefault(child_id, content)

            records.append(IndexEntry(path=path, kind=child.kind, object_id=child_id))
            manifest.append(ManifestEntry(child.kind, child_id, child.name))

        data = serialize_manifest(manifest)
        tree_id = self.store.compute_id(data)
        objects.setdefault(tree_id, data)
        return tree_id

    def _scan_dir(self, path: Path, name: str) -> DirectoryNode:
        try:
            with os.scandir(path) as it:
                dir_entries = list(it)
        except OSError as e:
            raise StorageIOError(f"Failed to list directory {path}: {e}") from e

        node = DirectoryNode(name=name)
        for entry in sorted(dir_entries, key=lambda e: _name_key(e.name)):
            if entry.name == self.storage_dir_name:
                continue

            if entry.is_dir(follow_symlinks=False):
                node.children.append(self._scan_dir(Path(entry.path), entry.name))
            elif entry.is_symlink() and entry.is_dir():
                logger.warning("Skipping symlinked directory: %s", entry.path)
            elif entry.is_file():
                node.children.append(FileNode(name=entry.name, source=Path(entry.path)))
            else:
                logger.warning("Skipping special or dangling file: %s", entry.path)

        return node
