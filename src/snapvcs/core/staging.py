"""Ad-hoc staging and working-tree status for SnapVCS.

Staging stores individual files outside a full snapshot: each file becomes a
blob and gets a live index entry. Because the index is always rewritten in
full, staging and snapshots can be interleaved freely.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Union

from snapvcs.constants import KIND_BLOB, SNAPVCS_DIR
from snapvcs.core.index import Index
from snapvcs.core.tree_builder import DirectoryNode, TreeBuilder
from snapvcs.exceptions import InvalidInputError, SnapVCSError
from snapvcs.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)


@dataclass
class StatusReport:
    """Differences between the working tree and the index (files only).

    Attributes:
        new: Files with no live index entry
        modified: Files whose content no longer matches their entry
        deleted: Live blob entries whose file is gone
    """

    new: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not (self.new or self.modified or self.deleted)


class StagingManager:
    """Stages single files into the store and index.

    Attributes:
        workspace_root: Root directory of the workspace
        repo_dir: Path to the .snapvcs directory
        store: ObjectStore for blob storage
        index: Index receiving staged entries
    """

    def __init__(self, workspace_root: Path, store: ObjectStore, index: Index):
        self.workspace_root = Path(workspace_root).resolve()
        self.repo_dir = self.workspace_root / SNAPVCS_DIR
        self.store = store
        self.index = index

    def add(self, paths: List[Union[str, Path]]) -> Dict[str, List[str]]:
        """Stage files.

        Args:
            paths: Files (absolute or relative to the workspace root)

        Returns:
            Dictionary with statistics:
            {
                "added": ["file1"],
                "updated": ["file2"],
                "errors": ["dir1: is a directory"]
            }
        """
        self.index.load()

        stats: Dict[str, List[str]] = {
            "added": [],
            "updated": [],
            "errors": [],
        }

        for path in paths:
            try:
                abs_path = self._resolve_path(Path(path))

                if not abs_path.exists():
                    stats["errors"].append(f"{path}: file not found")
                    continue

                if abs_path.is_dir():
                    stats["errors"].append(f"{path}: cannot stage a directory")
                    continue

                if self._is_repo_path(abs_path):
                    stats["errors"].append(f"{path}: inside {SNAPVCS_DIR}/")
                    continue

                rel_path_str = abs_path.relative_to(self.workspace_root).as_posix()

                content = abs_path.read_bytes()
                blob_id = self.store.put(content)

                previous = self.index.get(rel_path_str)
                self.index.upsert(rel_path_str, KIND_BLOB, blob_id)

                if previous is not None and not previous.deleted:
                    stats["updated"].append(rel_path_str)
                else:
                    stats["added"].append(rel_path_str)
                logger.debug("Staged %s -> %s", rel_path_str, blob_id)

            except (OSError, SnapVCSError) as e:
                stats["errors"].append(f"{path}: {e}")

        self.index.save()
        return stats

    def status(self, tree_builder: TreeBuilder) -> StatusReport:
        """Compare working-tree files against the index without writing."""
        self.index.load()
        report = StatusReport()

        seen = set()
        for rel_path, content in _iter_files(tree_builder.scan(self.workspace_root)):
            seen.add(rel_path)
            entry = self.index.get(rel_path)
            if entry is None or entry.deleted or entry.kind != KIND_BLOB:
                report.new.append(rel_path)
            elif entry.object_id != self.store.compute_id(content()):
                report.modified.append(rel_path)

        for entry in self.index.live_entries():
            if entry.kind == KIND_BLOB and entry.path not in seen:
                report.deleted.append(entry.path)

        report.new.sort()
        report.modified.sort()
        return report

    def _resolve_path(self, path: Path) -> Path:
        """Resolve path to absolute path within workspace."""
        if path.is_absolute():
            abs_path = path.resolve()
        else:
            abs_path = (self.workspace_root / path).resolve()

        # Verify path is within workspace
        try:
            abs_path.relative_to(self.workspace_root)
        except ValueError:
            raise InvalidInputError(
                f"Path {path} is outside workspace root {self.workspace_root}"
            )

        return abs_path

    def _is_repo_path(self, abs_path: Path) -> bool:
        """Check if path is within .snapvcs directory."""
        try:
            abs_path.relative_to(self.repo_dir)
            return True
        except ValueError:
            return False


def _iter_files(node: DirectoryNode, prefix: str = ""):
    for child in node.children:
        path = prefix + child.name
        if isinstance(child, DirectoryNode):
            yield from _iter_files(child, path + "/")
        else:
            yield path, child.read
