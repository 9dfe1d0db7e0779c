"""Line rendering for result records.

Records with metadata get a padded revision count and status word before the
directory. The status word can be coloured for terminal output.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TextIO

from pygments.console import colorize

from .types import CleanStatus, RepoRecord

logger = logging.getLogger(__name__)

STATUS_COLORS = {
    CleanStatus.CLEAN: "green",
    CleanStatus.DIRTY: "red",
    CleanStatus.UNKNOWN: "yellow",
}


def format_status(status: CleanStatus, color: bool = False) -> str:
    word = str(status)
    if not color:
        return word
    return colorize(STATUS_COLORS[status], word)


def format_record(record: RepoRecord, color: bool = False) -> str:
    """Render ``record`` as ``"{count:4d} {status} {dir}"`` or just ``"{dir}"``."""
    if not record.has_metadata:
        return str(record.directory)
    return f"{record.revision_count:4d} {format_status(record.status, color)} {record.directory}"


def render_records(records: Iterable[RepoRecord], stream: TextIO, color: bool = False) -> int:
    """Write one line per record to ``stream`` and return the number written.

    A record that fails to format is logged and skipped; the rest still render.
    """
    written = 0
    lines: list[str] = []
    for record in records:
        try:
            lines.append(format_record(record, color=color) + "\n")
        except Exception:
            logger.exception("failed to render record", extra={"dir": str(record.directory)})
            continue
        written += 1
    stream.write("".join(lines))
    return written
