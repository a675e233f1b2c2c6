"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from snapvcs.repository import Repository


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Create a temporary directory for testing."""
    return tmp_path


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a working tree with a few files and nested directories."""
    root = tmp_path / "workspace"
    root.mkdir()

    (root / "file1.txt").write_text("Content of file 1")
    (root / "dir1").mkdir()
    (root / "dir1" / "file2.txt").write_text("Content of file 2")
    (root / "dir2" / "subdir").mkdir(parents=True)
    (root / "dir2" / "file3.txt").write_text("Content of file 3")
    (root / "dir2" / "subdir" / "file4.txt").write_text("Content of file 4")

    return root


@pytest.fixture
def repo(workspace: Path) -> Repository:
    """Initialize an uncompressed repository inside the workspace."""
    return Repository.init(workspace, compression=False)
