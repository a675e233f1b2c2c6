"""Core engine layer for SnapVCS.

This module provides the index, directory snapshots, the commit chain and
ad-hoc staging.
"""

from snapvcs.core.commit_chain import Commit, CommitChain
from snapvcs.core.index import Index, IndexEntry
from snapvcs.core.staging import StagingManager, StatusReport
from snapvcs.core.tree_builder import (
    DirectoryNode,
    FileNode,
    ManifestEntry,
    Snapshot,
    TreeBuilder,
    parse_manifest,
    serialize_manifest,
)

__all__ = [
    "Commit",
    "CommitChain",
    "DirectoryNode",
    "FileNode",
    "Index",
    "IndexEntry",
    "ManifestEntry",
    "Snapshot",
    "StagingManager",
    "StatusReport",
    "TreeBuilder",
    "parse_manifest",
    "serialize_manifest",
]
