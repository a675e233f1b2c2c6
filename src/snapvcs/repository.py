"""Repository layout, initialization and wiring of the core components."""

import logging
import shutil
from pathlib import Path
from typing import Optional

from snapvcs.config import (
    RepositoryConfig,
    default_compression,
    load_config,
    resolve_compression,
    save_config,
)
from snapvcs.constants import HEAD_FILE, INDEX_FILE, OBJECTS_DIR, SNAPVCS_DIR
from snapvcs.core.commit_chain import CommitChain
from snapvcs.core.index import Index
from snapvcs.core.staging import StagingManager, StatusReport
from snapvcs.core.tree_builder import TreeBuilder
from snapvcs.exceptions import PreconditionError, StorageIOError
from snapvcs.storage.object_store import ObjectStore
from snapvcs.storage.refs import Head

logger = logging.getLogger(__name__)


class Repository:
    """A working tree plus its .snapvcs storage directory.

    Storage layout:
        .snapvcs/objects/<hash>   # content-addressed objects
        .snapvcs/index            # last observed state of every path
        .snapvcs/HEAD             # id of the newest commit, or empty
        .snapvcs/config           # per-repository settings (JSON)

    Attributes:
        workspace_root: Root directory of the working tree
        repo_dir: Path to the .snapvcs directory
        config: Settings fixed at initialization
    """

    def __init__(self, workspace_root: Path, config: RepositoryConfig) -> None:
        self.workspace_root = Path(workspace_root).resolve()
        self.repo_dir = self.workspace_root / SNAPVCS_DIR
        self.config = config

        self.store = ObjectStore(self.repo_dir, compress=config.compression)
        self.index = Index(self.repo_dir)
        self.head = Head(self.repo_dir)
        self.tree_builder = TreeBuilder(self.store, self.index, SNAPVCS_DIR)
        self.commit_chain = CommitChain(
            self.store, self.tree_builder, self.head, self.index
        )
        self.staging = StagingManager(self.workspace_root, self.store, self.index)

    @classmethod
    def init(
        cls,
        workspace_root: Path,
        compression: Optional[bool] = None,
        force: bool = False,
    ) -> "Repository":
        """Create an empty repository in ``workspace_root``.

        Args:
            workspace_root: Working tree root
            compression: Compression regime; defaults to the environment
            force: Remove an existing repository first (dangerous!)

        Raises:
            PreconditionError: If a repository exists and force is False
            StorageIOError: If the layout cannot be created
        """
        workspace_root = Path(workspace_root).resolve()
        repo_dir = workspace_root / SNAPVCS_DIR

        if repo_dir.exists():
            if not force:
                raise PreconditionError(
                    f"SnapVCS repository already exists in {workspace_root}"
                )
            logger.warning("Removing existing repository at %s", repo_dir)
            _remove_tree(repo_dir)

        if compression is None:
            compression = default_compression()
        config = RepositoryConfig(compression=compression)

        try:
            repo_dir.mkdir(parents=True)
            (repo_dir / OBJECTS_DIR).mkdir()
            (repo_dir / HEAD_FILE).write_bytes(b"")
            (repo_dir / INDEX_FILE).write_bytes(b"")
            save_config(repo_dir, config)
        except (OSError, StorageIOError) as e:
            # Clean up partial initialization
            shutil.rmtree(repo_dir, ignore_errors=True)
            raise StorageIOError(f"Failed to initialize repository: {e}") from e

        logger.info("Initialized empty SnapVCS repository in %s", repo_dir)
        return cls(workspace_root, config)

    @classmethod
    def open(
        cls,
        workspace_root: Path,
        compression: Optional[bool] = None,
    ) -> "Repository":
        """Open an existing repository.

        Raises:
            PreconditionError: If workspace_root has no .snapvcs directory
            ConfigError: If ``compression`` contradicts the stored regime
        """
        workspace_root = Path(workspace_root).resolve()
        repo_dir = workspace_root / SNAPVCS_DIR
        if not repo_dir.is_dir():
            raise PreconditionError(
                f"Not a SnapVCS repository (no {SNAPVCS_DIR}/ found in {workspace_root})"
            )

        stored = load_config(repo_dir)
        resolve_compression(stored, compression)
        return cls(workspace_root, stored)

    def snapshot(self) -> str:
        """Snapshot the working tree; returns the root tree id."""
        return self.tree_builder.snapshot(self.workspace_root)

    def commit(self, author: str, message: str) -> str:
        """Snapshot the working tree and commit it; returns the commit id."""
        return self.commit_chain.commit(author, message, self.workspace_root)

    def status(self) -> StatusReport:
        return self.staging.status(self.tree_builder)

    def reset(self) -> None:
        """Delete the whole storage directory, objects included."""
        _remove_tree(self.repo_dir)
        logger.info("Repository reset: removed %s", self.repo_dir)


def _remove_tree(path: Path) -> None:
    try:
        shutil.rmtree(path)
    except OSError as e:
        raise StorageIOError(f"Failed to remove {path}: {e}") from e
