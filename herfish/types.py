"""Record datatypes shared by the aggregator, provider and renderer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path


class CleanStatus(StrEnum):
    """Working-tree state of a resolved repository."""

    CLEAN = "clean"
    DIRTY = "dirty"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class RepoMetadata:
    """Revision count and working-tree status reported for one directory."""

    revision_count: int
    status: CleanStatus


@dataclass(frozen=True)
class NotARepository:
    """Provider outcome for a marked directory that has no usable history.

    Covers both "not a working copy" and "no log available"; the aggregator
    skips such directories instead of failing the run.
    """

    directory: Path
    reason: str


@dataclass(frozen=True)
class RepoRecord:
    """One output row: a resolved directory plus optional metadata."""

    directory: Path
    has_metadata: bool = False
    revision_count: int = 0
    status: CleanStatus = CleanStatus.UNKNOWN
