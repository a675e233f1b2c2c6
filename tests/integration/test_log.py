"""Integration tests for snapvcs log command."""

import os
from pathlib import Path

from typer.testing import CliRunner

from snapvcs.cli.main import app

runner = CliRunner()


class TestLogCommand:
    """Test snapvcs log command."""

    def test_log_empty_repo(self, tmp_path: Path) -> None:
        """Test log on newly initialized repo with no commits."""
        original_cwd = Path.cwd()
        os.chdir(tmp_path)

        try:
            runner.invoke(app, ["init", "--quiet"])

            result = runner.invoke(app, ["log"])

            assert result.exit_code == 0
            assert "no commits yet" in result.stdout.lower()

        finally:
            os.chdir(original_cwd)

    def test_log_single_commit(self, tmp_path: Path) -> None:
        """Test log with a single commit."""
        original_cwd = Path.cwd()
        os.chdir(tmp_path)

        try:
            runner.invoke(app, ["init", "--quiet"])

            (tmp_path / "file.txt").write_text("content")
            runner.invoke(app, ["commit", "-m", "First commit", "--author", "Test Author"])

            result = runner.invoke(app, ["log"])

            assert result.exit_code == 0
            assert "commit" in result.stdout.lower()
            assert "First commit" in result.stdout
            assert "Author: Test Author" in result.stdout
            assert "Date:" in result.stdout
            assert "(root commit)" in result.stdout

        finally:
            os.chdir(original_cwd)

    def test_log_multiple_commits(self, tmp_path: Path) -> None:
        """Test log lists commits newest first."""
        original_cwd = Path.cwd()
        os.chdir(tmp_path)

        try:
            runner.invoke(app, ["init", "--quiet"])

            (tmp_path / "file1.txt").write_text("content1")
            runner.invoke(app, ["commit", "-m", "First commit"])

            (tmp_path / "file2.txt").write_text("content2")
            runner.invoke(app, ["commit", "-m", "Second commit"])

            (tmp_path / "file3.txt").write_text("content3")
            runner.invoke(app, ["commit", "-m", "Third commit"])

            result = runner.invoke(app, ["log"])

            assert result.exit_code == 0
            output = result.stdout
            assert output.index("Third commit") < output.index("Second commit")
            assert output.index("Second commit") < output.index("First commit")
            assert output.count("Author:") == 3

        finally:
            os.chdir(original_cwd)

    def test_log_max_count(self, tmp_path: Path) -> None:
        """Test that -n limits the number of commits shown."""
        original_cwd = Path.cwd()
        os.chdir(tmp_path)

        try:
            runner.invoke(app, ["init", "--quiet"])

            (tmp_path / "file.txt").write_text("v1")
            runner.invoke(app, ["commit", "-m", "Older"])
            (tmp_path / "file.txt").write_text("v2")
            runner.invoke(app, ["commit", "-m", "Newer"])

            result = runner.invoke(app, ["log", "-n", "1"])

            assert result.exit_code == 0
            assert "Newer" in result.stdout
            assert "Older" not in result.stdout

        finally:
            os.chdir(original_cwd)

    def test_log_oneline(self, tmp_path: Path) -> None:
        """Test the compact one-line format."""
        original_cwd = Path.cwd()
        os.chdir(tmp_path)

        try:
            runner.invoke(app, ["init", "--quiet"])

            (tmp_path / "file.txt").write_text("content")
            runner.invoke(app, ["commit", "-m", "Summary line\n\nBody text"])
            head = (tmp_path / ".snapvcs" / "HEAD").read_text()

            result = runner.invoke(app, ["log", "--oneline"])

            assert result.exit_code == 0
            assert result.stdout.strip() == f"{head[:7]} Summary line"

        finally:
            os.chdir(original_cwd)

    def test_log_not_initialized(self, tmp_path: Path) -> None:
        """Test log outside a repository."""
        original_cwd = Path.cwd()
        os.chdir(tmp_path)

        try:
            result = runner.invoke(app, ["log"])

            assert result.exit_code == 1
            assert "Not a SnapVCS repository" in result.stdout

        finally:
            os.chdir(original_cwd)
