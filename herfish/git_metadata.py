"""Repository metadata provider backed by the ``git`` executable.

Validates that a resolved directory is a working-copy root, counts the
commits reachable from ``HEAD`` and reports whether tracked content is clean.
Recoverable outcomes are folded into ``NotARepository``; anything else raises.
"""

from __future__ import annotations

import logging
import os
import stat
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .types import CleanStatus, NotARepository, RepoMetadata

logger = logging.getLogger(__name__)

_NOT_A_REPOSITORY_MARKERS = (
    "not a git repository",
    "must be run in a work tree",
)


class MetadataProviderError(Exception):
    """Fatal failure while inspecting a repository."""

    def __init__(self, directory: Path, operation: str, detail: str) -> None:
        super().__init__(f"{operation} failed for {directory}: {detail}")
        self.directory = directory
        self.operation = operation
        self.detail = detail


class NotARepositoryError(MetadataProviderError):
    """The directory is not the root of a git working copy."""


class LogUnavailableError(MetadataProviderError):
    """The working copy has no history to walk (unborn ``HEAD``)."""


class StatusUnavailableError(MetadataProviderError):
    """``git status`` could not be evaluated."""


@dataclass(frozen=True)
class WorkingCopy:
    """Handle for an opened working copy; holds no open resources."""

    root: Path
    git_dir: Path


class MetadataProvider(Protocol):
    """Interface the aggregator needs from a metadata provider."""

    def collect(self, directory: Path) -> RepoMetadata | NotARepository:
        """Return metadata for ``directory`` or a skip outcome.

        Raises:
            MetadataProviderError: On any non-recoverable failure.
        """
        ...


def _status_codes(output: str) -> list[str]:
    """Two-letter status codes from ``git status --porcelain=v1 -z`` output."""
    codes: list[str] = []
    tokens = iter(output.split("\0"))
    for token in tokens:
        if len(token) < 4:
            continue
        code = token[:2]
        codes.append(code)
        # Renames and copies carry the source path in the following token.
        if "R" in code or "C" in code:
            next(tokens, None)
    return codes


def is_clean_status_output(output: str) -> bool:
    """Return whether porcelain ``-z`` output lists no tracked changes.

    Untracked (``??``) entries do not make a tree dirty.
    """
    return all(code == "??" for code in _status_codes(output))


def _check_git_entry_access(directory: Path) -> None:
    """Raise ``MetadataProviderError`` when ``directory/.git`` exists but cannot be read.

    A missing entry is left for the caller to report as "not a repository".
    """
    git_entry = directory / ".git"
    try:
        st = os.stat(git_entry)
    except FileNotFoundError:
        return
    except OSError as exc:
        raise MetadataProviderError(directory, "open", f"cannot access {git_entry}: {exc}") from exc

    mode = os.R_OK | os.X_OK if stat.S_ISDIR(st.st_mode) else os.R_OK
    if not os.access(git_entry, mode):
        raise MetadataProviderError(directory, "open", f"permission denied: {git_entry}")


class GitMetadataProvider:
    """Read-only metadata provider that shells out to ``git``.

    Every call is a blocking subprocess run with ``--no-optional-locks`` so
    that inspection never rewrites the index.
    """

    def __init__(self, git_executable: str = "git", timeout_seconds: float | None = None) -> None:
        self.git_executable = git_executable
        self.timeout_seconds = timeout_seconds

    def _run_git(
        self,
        directory: Path,
        args: list[str],
        operation: str,
        env: dict[str, str] | None = None,
    ) -> subprocess.CompletedProcess[str]:
        try:
            return subprocess.run(
                [self.git_executable, "--no-optional-locks", "-C", str(directory), *args],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
                timeout=self.timeout_seconds,
                env=env,
            )
        except subprocess.TimeoutExpired as exc:
            raise MetadataProviderError(directory, operation, f"timed out after {exc.timeout}s") from exc
        except OSError as exc:
            raise MetadataProviderError(directory, operation, str(exc)) from exc

    def open_working_copy(self, directory: Path) -> WorkingCopy:
        """Validate that ``directory`` is a working-copy root and return a handle.

        Raises:
            NotARepositoryError: ``directory`` is not the top level of a
                working copy.
            MetadataProviderError: git could not be run or reported any
                other failure (corrupt repository, permissions).
        """
        directory = Path(directory)
        env = dict(os.environ)
        # Keep git from adopting a repository further up the tree.
        env["GIT_CEILING_DIRECTORIES"] = str(directory.parent)
        proc = self._run_git(directory, ["rev-parse", "--show-toplevel", "--git-dir"], "open", env=env)
        if proc.returncode != 0:
            message = proc.stderr.strip()
            if any(marker in message.lower() for marker in _NOT_A_REPOSITORY_MARKERS):
                # git reports an unreadable .git the same way as a missing one.
                _check_git_entry_access(directory)
                raise NotARepositoryError(directory, "open", message or "not a git repository")
            raise MetadataProviderError(directory, "open", message or f"git exited with {proc.returncode}")

        lines = [line.strip() for line in proc.stdout.splitlines() if line.strip()]
        if len(lines) < 2:
            raise MetadataProviderError(directory, "open", f"unexpected rev-parse output: {proc.stdout!r}")

        top_level = Path(lines[0]).resolve()
        if top_level != directory.resolve():
            raise NotARepositoryError(directory, "open", f"working copy root is {top_level}")

        git_dir_raw = Path(lines[1])
        git_dir = git_dir_raw if git_dir_raw.is_absolute() else directory / git_dir_raw
        return WorkingCopy(root=directory, git_dir=git_dir)

    def revision_count(self, handle: WorkingCopy) -> int:
        """Count the commits reachable from ``HEAD``.

        Raises:
            LogUnavailableError: ``HEAD`` does not point at a commit yet.
            MetadataProviderError: history traversal failed.
        """
        head = self._run_git(handle.root, ["rev-parse", "--verify", "--quiet", "HEAD^{commit}"], "log")
        if head.returncode != 0:
            logger.debug("failed to query git log", extra={"dir": str(handle.root)})
            raise LogUnavailableError(handle.root, "log", "HEAD does not resolve to a commit")

        proc = self._run_git(handle.root, ["rev-list", "--count", "HEAD"], "log")
        if proc.returncode != 0:
            raise MetadataProviderError(handle.root, "log", proc.stderr.strip() or "rev-list failed")
        try:
            return int(proc.stdout.strip())
        except ValueError as exc:
            raise MetadataProviderError(handle.root, "log", f"unexpected rev-list output: {proc.stdout!r}") from exc

    def working_tree_status(self, handle: WorkingCopy) -> CleanStatus:
        """Return ``clean`` unless a tracked file is added, modified, deleted or staged.

        Raises:
            StatusUnavailableError: ``git status`` failed.
        """
        proc = self._run_git(
            handle.root,
            ["status", "--porcelain=v1", "-z", "--untracked-files=normal"],
            "status",
        )
        if proc.returncode != 0:
            raise StatusUnavailableError(handle.root, "status", proc.stderr.strip() or "git status failed")
        return CleanStatus.CLEAN if is_clean_status_output(proc.stdout) else CleanStatus.DIRTY

    def collect(self, directory: Path) -> RepoMetadata | NotARepository:
        """Gather revision count and status for ``directory``.

        "Not a repository" and "no log" come back as ``NotARepository``;
        every other failure propagates as ``MetadataProviderError``.
        """
        try:
            handle = self.open_working_copy(directory)
            logger.debug("counting commits", extra={"dir": str(directory)})
            count = self.revision_count(handle)
        except (NotARepositoryError, LogUnavailableError) as exc:
            return NotARepository(directory=Path(directory), reason=exc.detail)

        logger.debug("counted commits", extra={"dir": str(directory), "count": count})
        status = self.working_tree_status(handle)
        return RepoMetadata(revision_count=count, status=status)
