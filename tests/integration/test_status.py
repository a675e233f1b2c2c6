"""Integration tests for snapvcs status command."""

import os
from pathlib import Path

from typer.testing import CliRunner

from snapvcs.cli.main import app

runner = CliRunner()


class TestStatusCommand:
    """Test snapvcs status command."""

    def test_status_empty_repo(self, tmp_path: Path) -> None:
        """Test status on an empty repository."""
        original_cwd = Path.cwd()
        os.chdir(tmp_path)

        try:
            runner.invoke(app, ["init", "--quiet"])

            result = runner.invoke(app, ["status"])

            assert result.exit_code == 0
            assert "no commits yet" in result.stdout.lower()
            assert "working tree clean" in result.stdout

        finally:
            os.chdir(original_cwd)

    def test_status_new_files(self, tmp_path: Path) -> None:
        """Test that untracked files are reported as new."""
        original_cwd = Path.cwd()
        os.chdir(tmp_path)

        try:
            runner.invoke(app, ["init", "--quiet"])
            (tmp_path / "a.txt").write_text("a")

            result = runner.invoke(app, ["status"])

            assert result.exit_code == 0
            assert "new:" in result.stdout
            assert "a.txt" in result.stdout

        finally:
            os.chdir(original_cwd)

    def test_status_staged_file_is_clean(self, tmp_path: Path) -> None:
        """Test that a staged file no longer shows as new."""
        original_cwd = Path.cwd()
        os.chdir(tmp_path)

        try:
            runner.invoke(app, ["init", "--quiet"])
            (tmp_path / "a.txt").write_text("a")
            runner.invoke(app, ["add", "a.txt"])

            result = runner.invoke(app, ["status"])

            assert result.exit_code == 0
            assert "working tree clean" in result.stdout

        finally:
            os.chdir(original_cwd)

    def test_status_after_commit(self, tmp_path: Path) -> None:
        """Test status reports HEAD and a clean tree after commit."""
        original_cwd = Path.cwd()
        os.chdir(tmp_path)

        try:
            runner.invoke(app, ["init", "--quiet"])
            (tmp_path / "a.txt").write_text("a")
            runner.invoke(app, ["commit", "-m", "first"])
            head = (tmp_path / ".snapvcs" / "HEAD").read_text()

            result = runner.invoke(app, ["status"])

            assert result.exit_code == 0
            assert head[:7] in result.stdout
            assert "working tree clean" in result.stdout

        finally:
            os.chdir(original_cwd)

    def test_status_short_format(self, tmp_path: Path) -> None:
        """Test the short status format."""
        original_cwd = Path.cwd()
        os.chdir(tmp_path)

        try:
            runner.invoke(app, ["init", "--quiet"])
            (tmp_path / "keep.txt").write_text("keep")
            (tmp_path / "change.txt").write_text("v1")
            (tmp_path / "gone.txt").write_text("bye")
            runner.invoke(app, ["commit", "-m", "first"])

            (tmp_path / "change.txt").write_text("v2")
            (tmp_path / "gone.txt").unlink()
            (tmp_path / "fresh.txt").write_text("new")

            result = runner.invoke(app, ["status", "--short"])

            assert result.exit_code == 0
            assert result.stdout.splitlines() == [
                "?? fresh.txt",
                " M change.txt",
                " D gone.txt",
            ]

        finally:
            os.chdir(original_cwd)

    def test_status_does_not_write(self, tmp_path: Path) -> None:
        """Test that status leaves the index and objects untouched."""
        original_cwd = Path.cwd()
        os.chdir(tmp_path)

        try:
            runner.invoke(app, ["init", "--quiet"])
            (tmp_path / "a.txt").write_text("a")
            runner.invoke(app, ["commit", "-m", "first"])
            (tmp_path / "a.txt").write_text("b")

            objects_dir = tmp_path / ".snapvcs" / "objects"
            before = sorted(p.name for p in objects_dir.iterdir())
            index_before = (tmp_path / ".snapvcs" / "index").read_text()

            runner.invoke(app, ["status"])

            assert sorted(p.name for p in objects_dir.iterdir()) == before
            assert (tmp_path / ".snapvcs" / "index").read_text() == index_before

        finally:
            os.chdir(original_cwd)

    def test_status_not_initialized(self, tmp_path: Path) -> None:
        """Test status outside a repository."""
        original_cwd = Path.cwd()
        os.chdir(tmp_path)

        try:
            result = runner.invoke(app, ["status"])

            assert result.exit_code == 1
            assert "Not a SnapVCS repository" in result.stdout

        finally:
            os.chdir(original_cwd)
