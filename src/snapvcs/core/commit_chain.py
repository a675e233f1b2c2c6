"""Commit objects and the linear commit chain.

A commit links a root tree to its parent commit, with an author, a
timestamp and a message. Commits are stored as ordinary objects in the
object store and chained through their parent ids; HEAD points at the
newest one.

Serialized form (fixed field order, UTF-8):

    tree: <tree id>
    parent: <parent id>        # omitted for the first commit
    author: <author>
    date: <ISO-8601 timestamp>
    message: <message, may span lines>
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional, Tuple

from snapvcs.core.index import Index
from snapvcs.core.tree_builder import TreeBuilder
from snapvcs.exceptions import InvalidInputError, SnapVCSError
from snapvcs.storage.object_store import ObjectStore, validate_object_id
from snapvcs.storage.refs import Head

logger = logging.getLogger(__name__)

_FIELDS = ("tree", "parent", "author", "date", "message")


@dataclass(frozen=True)
class Commit:
    """Immutable commit record.

    Attributes:
        tree_id: Root tree of the snapshot
        parent_id: Previous commit, or None for the first commit
        author: Author identifier (e.g., "user@hostname")
        timestamp: ISO-8601 creation time
        message: Commit message
    """

    tree_id: str
    parent_id: Optional[str]
    author: str
    timestamp: str
    message: str

    def serialize(self) -> bytes:
        lines = [f"tree: {self.tree_id}"]
        if self.parent_id:
            lines.append(f"parent: {self.parent_id}")
        lines.append(f"author: {self.author}")
        lines.append(f"date: {self.timestamp}")
        lines.append(f"message: {self.message}")
        return ("\n".join(lines) + "\n").encode("utf-8")

    @classmethod
    def parse(cls, data: bytes) -> "Commit":
        """Parse serialized commit bytes.

        Everything after ``message: `` belongs to the message.

        Raises:
            InvalidInputError: If the data is not a commit
        """
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidInputError(f"Not a commit object: {e}") from e

        if text.endswith("\n"):
            text = text[:-1]
        lines = text.split("\n")

        fields = {}
        for lineno, line in enumerate(lines):
            key, sep, value = line.partition(": ")
            if not sep or key not in _FIELDS or key in fields:
                raise InvalidInputError(f"Not a commit object: bad line {line!r}")
            if key == "message":
                fields[key] = "\n".join([value] + lines[lineno + 1:])
                break
            fields[key] = value

        if any(key not in fields for key in ("tree", "author", "date", "message")):
            raise InvalidInputError("Not a commit object: missing required fields")

        parent_id = fields.get("parent")
        return cls(
            tree_id=validate_object_id(fields["tree"]),
            parent_id=validate_object_id(parent_id) if parent_id else None,
            author=fields["author"],
            timestamp=fields["date"],
            message=fields["message"],
        )


class CommitChain:
    """Creates commits and advances HEAD.

    Attributes:
        store: ObjectStore holding trees, blobs and commits
        tree_builder: TreeBuilder used to snapshot the working directory
        head: HEAD reference
        index: Index updated once the commit is recorded
    """

    def __init__(
        self,
        store: ObjectStore,
        tree_builder: TreeBuilder,
        head: Head,
        index: Index,
    ) -> None:
        self.store = store
        self.tree_builder = tree_builder
        self.head = head
        self.index = index

    def commit(self, author: str, message: str, working_dir: Path) -> str:
        """Snapshot ``working_dir`` and record it as the next commit.

        Objects are written first. The index is loaded and updated in
        memory, then HEAD moves, then the index is saved. If saving the
        index fails, HEAD is moved back to the parent. A failed commit
        leaves HEAD and the index as they were; at worst some unreferenced
        objects remain in the store.

        Args:
            author: Author identifier (single line, non-empty)
            message: Commit message (non-empty)
            working_dir: Directory to snapshot

        Returns:
            Commit id

        Raises:
            PreconditionError: If HEAD is missing (repository not initialized)
            InvalidInputError: If author/message are invalid or working_dir
                is not a directory
            StorageIOError: If any read or write fails
        """
        _validate_author(author)
        if not message or not message.strip():
            raise InvalidInputError("Commit message is required")

        parent_id = self.head.read()
        snapshot = self.tree_builder.prepare(working_dir)

        commit = Commit(
            tree_id=snapshot.tree_id,
            parent_id=parent_id,
            author=author,
            timestamp=datetime.now(timezone.utc).isoformat(),
            message=message,
        )
        data = commit.serialize()
        is_new = self.store.is_new(data)
        commit_id = self.store.put(data)
        if is_new:
            logger.info("Commit created: %s", commit_id)
        else:
            logger.info("Commit %s already exists, reusing it", commit_id)

        self.index.load()
        snapshot.apply(self.index)

        self.head.write(commit_id)
        try:
            self.index.save()
        except SnapVCSError:
            logger.error("Index update failed, moving HEAD back to %s", parent_id)
            self.head.restore(parent_id)
            raise

        return commit_id

    def read_commit(self, commit_id: str) -> Commit:
        """Read a commit object.

        Raises:
            ObjectNotFoundError: If the commit does not exist
            InvalidInputError: If the object is not a commit
        """
        return Commit.parse(self.store.get(commit_id))

    def history(
        self,
        start: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Iterator[Tuple[str, Commit]]:
        """Walk the chain from ``start`` (default: HEAD) back to the root.

        Yields:
            (commit id, commit) pairs, newest first
        """
        commit_id = start if start is not None else self.head.read()
        count = 0
        while commit_id and (limit is None or count < limit):
            commit = self.read_commit(commit_id)
            yield commit_id, commit
            commit_id = commit.parent_id
            count += 1


def _validate_author(author: str) -> None:
    if not author or not author.strip():
        raise InvalidInputError("Commit author is required")
    if "\n" in author or "\r" in author:
        raise InvalidInputError("Commit author must be a single line")
