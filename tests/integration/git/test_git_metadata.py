"""Tests for the git-backed metadata provider.

Real-repo scenarios cover commit counting, clean/dirty detection and the
split between skippable and fatal failures.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from herfish.git_metadata import (
    GitMetadataProvider,
    MetadataProviderError,
    NotARepositoryError,
    is_clean_status_output,
)
from herfish.types import CleanStatus, NotARepository, RepoMetadata


class PorcelainParsingTests(unittest.TestCase):
    def test_empty_output_is_clean(self) -> None:
        self.assertTrue(is_clean_status_output(""))

    def test_untracked_entries_are_clean(self) -> None:
        self.assertTrue(is_clean_status_output("?? scratch.py\0?? notes/\0"))

    def test_untracked_entry_next_to_a_change_is_still_dirty(self) -> None:
        self.assertFalse(is_clean_status_output("?? scratch.py\0 M main.py\0"))

    def test_modified_or_staged_entries_are_dirty(self) -> None:
        self.assertFalse(is_clean_status_output(" M src/main.py\0"))
        self.assertFalse(is_clean_status_output("A  new.py\0"))
        self.assertFalse(is_clean_status_output(" D gone.py\0"))

    def test_rename_source_token_is_not_parsed_as_a_record(self) -> None:
        self.assertFalse(is_clean_status_output("R  new.py\0?? old.py\0"))


@unittest.skipIf(shutil.which("git") is None, "git is required for metadata provider tests")
class GitMetadataProviderTests(unittest.TestCase):
    def _init_repo(self, root: Path) -> None:
        root.mkdir(parents=True, exist_ok=True)
        subprocess.run(["git", "init", "-q"], cwd=root, check=True)
        subprocess.run(["git", "config", "user.email", "tests@example.com"], cwd=root, check=True)
        subprocess.run(["git", "config", "user.name", "Tests"], cwd=root, check=True)
        subprocess.run(["git", "config", "commit.gpgsign", "false"], cwd=root, check=True)

    def _commit_all(self, root: Path, message: str) -> None:
        subprocess.run(["git", "add", "-A"], cwd=root, check=True)
        subprocess.run(["git", "commit", "-q", "-m", message], cwd=root, check=True)

    def _repo_with_commits(self, root: Path, count: int) -> Path:
        self._init_repo(root)
        tracked = root / "main.py"
        for index in range(count):
            tracked.write_text(f"print({index})\n", encoding="utf-8")
            self._commit_all(root, f"commit {index}")
        return tracked

    def test_collect_counts_commits_and_reports_clean_tree(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve() / "repo"
            self._repo_with_commits(root, 3)

            outcome = GitMetadataProvider().collect(root)

            self.assertEqual(outcome, RepoMetadata(revision_count=3, status=CleanStatus.CLEAN))

    def test_untracked_files_do_not_make_tree_dirty(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve() / "repo"
            self._repo_with_commits(root, 1)
            (root / "scratch.txt").write_text("notes\n", encoding="utf-8")

            outcome = GitMetadataProvider().collect(root)

            self.assertEqual(outcome, RepoMetadata(revision_count=1, status=CleanStatus.CLEAN))

    def test_modified_tracked_file_makes_tree_dirty(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve() / "repo"
            tracked = self._repo_with_commits(root, 2)
            tracked.write_text("print('changed')\n", encoding="utf-8")

            outcome = GitMetadataProvider().collect(root)

            self.assertEqual(outcome, RepoMetadata(revision_count=2, status=CleanStatus.DIRTY))

    def test_staged_new_file_makes_tree_dirty(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve() / "repo"
            self._repo_with_commits(root, 1)
            (root / "added.py").write_text("x = 1\n", encoding="utf-8")
            subprocess.run(["git", "add", "added.py"], cwd=root, check=True)

            provider = GitMetadataProvider()
            handle = provider.open_working_copy(root)

            self.assertEqual(provider.working_tree_status(handle), CleanStatus.DIRTY)

    def test_repository_without_commits_is_skipped(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve() / "empty"
            self._init_repo(root)

            outcome = GitMetadataProvider().collect(root)

            self.assertIsInstance(outcome, NotARepository)
            self.assertEqual(outcome.directory, root)

    def test_marker_without_repository_is_skipped(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve() / "fake"
            (root / ".git").mkdir(parents=True)

            outcome = GitMetadataProvider().collect(root)

            self.assertIsInstance(outcome, NotARepository)

    def test_subdirectory_of_working_copy_is_not_a_repository(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve() / "repo"
            self._repo_with_commits(root, 1)
            nested = root / "pkg"
            nested.mkdir()

            with self.assertRaises(NotARepositoryError):
                GitMetadataProvider().open_working_copy(nested)

    def test_open_returns_handle_with_git_dir(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve() / "repo"
            self._repo_with_commits(root, 1)

            handle = GitMetadataProvider().open_working_copy(root)

            self.assertEqual(handle.root, root)
            self.assertEqual(handle.git_dir.resolve(), (root / ".git").resolve())

    def test_inaccessible_git_entry_is_fatal_not_skipped(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve() / "locked"
            (root / ".git").mkdir(parents=True)

            with mock.patch("herfish.git_metadata.os.access", return_value=False):
                with self.assertRaises(MetadataProviderError) as exc_info:
                    GitMetadataProvider().collect(root)

            self.assertNotIsInstance(exc_info.exception, NotARepositoryError)
            self.assertEqual(exc_info.exception.operation, "open")
            self.assertIn("permission denied", str(exc_info.exception))

    @unittest.skipIf(not hasattr(os, "geteuid") or os.geteuid() == 0, "permission bits are ignored for root")
    def test_unreadable_git_directory_aborts_collect(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve() / "repo"
            self._repo_with_commits(root, 1)
            git_dir = root / ".git"
            git_dir.chmod(0)
            try:
                with self.assertRaises(MetadataProviderError) as exc_info:
                    GitMetadataProvider().collect(root)
            finally:
                git_dir.chmod(0o755)

            self.assertNotIsInstance(exc_info.exception, NotARepositoryError)
            self.assertEqual(exc_info.exception.directory, root)

    def test_missing_git_executable_is_fatal(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            provider = GitMetadataProvider(git_executable=str(root / "no-such-git"))

            with self.assertRaises(MetadataProviderError) as exc_info:
                provider.collect(root)

            self.assertNotIsInstance(exc_info.exception, NotARepositoryError)
            self.assertEqual(exc_info.exception.operation, "open")
            self.assertEqual(exc_info.exception.directory, root)


if __name__ == "__main__":
    unittest.main()
