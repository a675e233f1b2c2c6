"""Integration tests for snapvcs commit, add and snapshot commands."""

import os
from pathlib import Path

from typer.testing import CliRunner

from snapvcs.cli.main import app
from snapvcs.constants import SNAPVCS_DIR

runner = CliRunner()


class TestCommitCommand:
    """Test snapvcs commit command."""

    def test_commit_basic(self, tmp_path: Path) -> None:
        """Test basic commit workflow."""
        original_cwd = Path.cwd()
        os.chdir(tmp_path)

        try:
            runner.invoke(app, ["init", "--quiet"])
            (tmp_path / "notes.txt").write_text("hello\n")

            result = runner.invoke(app, ["commit", "-m", "Initial commit", "--author", "tester@host"])

            assert result.exit_code == 0
            assert "Committed" in result.stdout
            assert "Initial commit" in result.stdout
            assert "(root commit)" in result.stdout

            # Verify HEAD was updated and the commit object exists
            head_file = tmp_path / SNAPVCS_DIR / "HEAD"
            commit_hash = head_file.read_text().strip()
            assert len(commit_hash) == 40
            assert (tmp_path / SNAPVCS_DIR / "objects" / commit_hash).exists()

            # The index now records the file
            index_text = (tmp_path / SNAPVCS_DIR / "index").read_text()
            assert index_text.startswith("blob ")
            assert index_text.rstrip().endswith(" notes.txt")
        finally:
            os.chdir(original_cwd)

    def test_commit_requires_message(self, tmp_path: Path) -> None:
        """Test that commit requires a message."""
        original_cwd = Path.cwd()
        os.chdir(tmp_path)

        try:
            runner.invoke(app, ["init", "--quiet"])

            result = runner.invoke(app, ["commit"])

            assert result.exit_code == 1
            assert "message is required" in result.stdout.lower()
        finally:
            os.chdir(original_cwd)

    def test_commit_without_repo(self, tmp_path: Path) -> None:
        """Test that commit outside a repository fails cleanly."""
        original_cwd = Path.cwd()
        os.chdir(tmp_path)

        try:
            result = runner.invoke(app, ["commit", "-m", "nope"])

            assert result.exit_code == 1
            assert "Not a SnapVCS repository" in result.stdout
        finally:
            os.chdir(original_cwd)

    def test_commit_missing_head(self, tmp_path: Path) -> None:
        """Test that a repository without HEAD reports the precondition."""
        original_cwd = Path.cwd()
        os.chdir(tmp_path)

        try:
            runner.invoke(app, ["init", "--quiet"])
            (tmp_path / SNAPVCS_DIR / "HEAD").unlink()

            result = runner.invoke(app, ["commit", "-m", "broken"])

            assert result.exit_code == 1
            assert "HEAD" in result.stdout
        finally:
            os.chdir(original_cwd)

    def test_second_commit_shows_parent(self, tmp_path: Path) -> None:
        """Test that the second commit reports its parent."""
        original_cwd = Path.cwd()
        os.chdir(tmp_path)

        try:
            runner.invoke(app, ["init", "--quiet"])
            (tmp_path / "a.txt").write_text("a")
            runner.invoke(app, ["commit", "-m", "first"])
            first = (tmp_path / SNAPVCS_DIR / "HEAD").read_text()

            (tmp_path / "a.txt").write_text("b")
            result = runner.invoke(app, ["commit", "-m", "second"])

            assert result.exit_code == 0
            assert first[:7] in result.stdout
            assert (tmp_path / SNAPVCS_DIR / "HEAD").read_text() != first
        finally:
            os.chdir(original_cwd)


class TestAddCommand:
    """Test snapvcs add command."""

    def test_add_files(self, tmp_path: Path) -> None:
        original_cwd = Path.cwd()
        os.chdir(tmp_path)

        try:
            runner.invoke(app, ["init", "--quiet"])
            (tmp_path / "a.txt").write_text("a")
            (tmp_path / "b.txt").write_text("b")

            result = runner.invoke(app, ["add", "a.txt", "b.txt"])

            assert result.exit_code == 0
            assert "2 file(s) staged" in result.stdout
        finally:
            os.chdir(original_cwd)

    def test_add_directory_fails(self, tmp_path: Path) -> None:
        original_cwd = Path.cwd()
        os.chdir(tmp_path)

        try:
            runner.invoke(app, ["init", "--quiet"])
            (tmp_path / "d").mkdir()

            result = runner.invoke(app, ["add", "d"])

            assert result.exit_code == 1
            assert "cannot stage a directory" in result.stdout
        finally:
            os.chdir(original_cwd)


class TestSnapshotAndCatObject:
    """Test snapvcs snapshot and cat-object commands."""

    def test_snapshot_then_cat_tree(self, tmp_path: Path) -> None:
        original_cwd = Path.cwd()
        os.chdir(tmp_path)

        try:
            runner.invoke(app, ["init", "--quiet"])
            (tmp_path / "a.txt").write_text("alpha")
            (tmp_path / "sub").mkdir()
            (tmp_path / "sub" / "b.txt").write_text("beta")

            result = runner.invoke(app, ["snapshot"])
            assert result.exit_code == 0
            tree_id = result.stdout.split("Tree")[1].strip()
            assert len(tree_id) == 40

            shown = runner.invoke(app, ["cat-object", "--tree", tree_id])
            assert shown.exit_code == 0
            assert "a.txt" in shown.stdout
            assert "sub" in shown.stdout
            assert (tmp_path / SNAPVCS_DIR / "HEAD").read_text() == ""
        finally:
            os.chdir(original_cwd)

    def test_cat_blob(self, tmp_path: Path) -> None:
        original_cwd = Path.cwd()
        os.chdir(tmp_path)

        try:
            runner.invoke(app, ["init", "--quiet"])
            (tmp_path / "a.txt").write_text("alpha\n")
            runner.invoke(app, ["add", "a.txt"])
            blob_id = (tmp_path / SNAPVCS_DIR / "index").read_text().split()[1]

            result = runner.invoke(app, ["cat-object", blob_id])

            assert result.exit_code == 0
            assert result.stdout == "alpha\n"
        finally:
            os.chdir(original_cwd)

    def test_cat_binary_blob(self, tmp_path: Path) -> None:
        """Test that blob bytes are written unchanged."""
        original_cwd = Path.cwd()
        os.chdir(tmp_path)

        try:
            runner.invoke(app, ["init", "--quiet"])
            payload = b"\x00\xff\xfe binary\r\n\x80"
            (tmp_path / "data.bin").write_bytes(payload)
            runner.invoke(app, ["add", "data.bin"])
            blob_id = (tmp_path / SNAPVCS_DIR / "index").read_text().split()[1]

            result = runner.invoke(app, ["cat-object", blob_id])

            assert result.exit_code == 0
            assert result.stdout_bytes == payload
        finally:
            os.chdir(original_cwd)

    def test_cat_missing_object(self, tmp_path: Path) -> None:
        original_cwd = Path.cwd()
        os.chdir(tmp_path)

        try:
            runner.invoke(app, ["init", "--quiet"])

            result = runner.invoke(app, ["cat-object", "0" * 40])

            assert result.exit_code == 1
            assert "Object not found" in result.stdout
        finally:
            os.chdir(original_cwd)
