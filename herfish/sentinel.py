"""Upward sentinel search across a batch of input paths.

Walks each path toward the filesystem root until a directory holding the
sentinel entry is found. Resolved directories are deduplicated batch-wide.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_SENTINEL = ".git"


class SentinelResolutionError(OSError):
    """Raised when an input path cannot be turned into an absolute directory."""


def _absolute(path: str | os.PathLike[str]) -> Path:
    """Absolute, normalised form of ``path`` without following symlinks."""
    try:
        return Path(os.path.abspath(os.fspath(path)))
    except OSError as exc:
        raise SentinelResolutionError(f"failed to get absolute path for {os.fspath(path)!r}: {exc}") from exc


def _has_sentinel(directory: Path, sentinel: str) -> bool:
    """Return whether ``directory/sentinel`` exists; stat errors count as absent.

    Unrepresentable paths (embedded NUL bytes) raise ``ValueError`` from
    ``os.stat`` and are treated the same way.
    """
    candidate = directory / sentinel
    try:
        os.stat(candidate)
    except (OSError, ValueError):
        return False
    return True


def start_directory(path: str | os.PathLike[str], treat_dir_as_start: bool = True) -> Path:
    """Directory where the upward search for ``path`` begins.

    Existing directories start at themselves when ``treat_dir_as_start`` is
    set; everything else (files, missing paths) starts at the parent.
    """
    absolute = _absolute(path)
    if treat_dir_as_start and absolute.is_dir():
        return absolute
    return absolute.parent


def resolve_sentinel_dirs(
    paths: Iterable[str | os.PathLike[str]],
    sentinel: str = DEFAULT_SENTINEL,
    *,
    first_item_quirk: bool = False,
) -> list[Path]:
    """Resolve the nearest sentinel-marked ancestor for every path in ``paths``.

    Results are unique and keep discovery order. A walk stops at the first
    marked directory, at a directory already recorded for an earlier path, or
    just below the filesystem root (the root itself is never probed).

    ``first_item_quirk`` restores the legacy rule where only the first item
    of the batch may start at a directory input; later directory inputs start
    at their parent.
    """
    if not sentinel:
        raise ValueError("sentinel name must not be empty")

    seen: set[str] = set()
    # Unmarked directories already walked through; their upward outcome is known.
    visited: set[str] = set()
    result: list[Path] = []

    for index, raw_path in enumerate(paths):
        treat_dir_as_start = index == 0 if first_item_quirk else True
        current = start_directory(raw_path, treat_dir_as_start=treat_dir_as_start)
        logger.debug(
            "searching for sentinel dir",
            extra={"path": os.fspath(raw_path), "current_dir": str(current), "sentinel": sentinel},
        )

        while True:
            parent = current.parent
            if parent == current:
                break
            key = str(current)
            if key in seen or key in visited:
                break
            if _has_sentinel(current, sentinel):
                seen.add(key)
                result.append(current)
                logger.debug("found sentinel dir", extra={"dir": key})
                break
            visited.add(key)
            current = parent

    return result
