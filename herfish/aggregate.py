"""Metadata aggregation over resolved sentinel directories.

Turns each resolved directory into a ``RepoRecord``, asking the metadata
provider for revision counts and working-tree status when requested, then
applies the revision-count cap.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from .config import HerfishConfig
from .git_metadata import GitMetadataProvider, MetadataProvider
from .types import NotARepository, RepoMetadata, RepoRecord

logger = logging.getLogger(__name__)


def filter_by_revision_cap(records: Iterable[RepoRecord], cap: int | None) -> list[RepoRecord]:
    """Drop records whose revision count exceeds ``cap``.

    Records without metadata have nothing to compare and always pass.
    """
    if cap is None:
        return list(records)
    return [record for record in records if not record.has_metadata or record.revision_count <= cap]


def aggregate_records(
    dirs: Iterable[Path],
    config: HerfishConfig,
    provider: MetadataProvider | None = None,
) -> list[RepoRecord]:
    """Build filtered records for ``dirs`` in the order given.

    Directories the provider reports as not being repositories are skipped.
    ``MetadataProviderError`` from the provider aborts the aggregation.
    """
    if config.want_metadata and provider is None:
        provider = GitMetadataProvider(timeout_seconds=config.git_timeout_seconds)

    records: list[RepoRecord] = []
    for directory in dirs:
        if not config.want_metadata:
            records.append(RepoRecord(directory=directory))
            continue

        outcome = provider.collect(directory)
        if isinstance(outcome, NotARepository):
            logger.error("no log found", extra={"dir": str(directory), "reason": outcome.reason})
            continue
        if not isinstance(outcome, RepoMetadata):
            raise TypeError(f"unexpected metadata outcome: {outcome!r}")
        records.append(
            RepoRecord(
                directory=directory,
                has_metadata=True,
                revision_count=outcome.revision_count,
                status=outcome.status,
            )
        )

    return filter_by_revision_cap(records, config.revision_count_cap)
