"""Command-line front door for herfish.

Reads paths from stdin, resolves their nearest sentinel directories and
prints one line per surviving directory, optionally with commit counts.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import TextIO

from .aggregate import aggregate_records
from .config import LOG_FORMATS, NO_REVISION_CAP, HerfishConfig, load_defaults
from .git_metadata import MetadataProvider, MetadataProviderError
from .logging_config import LoggingSetupError, configure_logging
from .render import render_records
from .sentinel import DEFAULT_SENTINEL, resolve_sentinel_dirs

logger = logging.getLogger(__name__)


def _revision_cap(value: str) -> int:
    """argparse type for ``--commit-count-max``: ``-1`` or a non-negative integer."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed < NO_REVISION_CAP:
        raise argparse.ArgumentTypeError("value must be >= 0, or -1 for no limit")
    return parsed


def _positive_float(value: str) -> float:
    """argparse type for positive float values."""
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be > 0")
    return parsed


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="herfish",
        description="Find the nearest sentinel-marked directory for each path read from stdin.",
    )
    parser.add_argument(
        "-s",
        "--sentinel",
        default=None,
        help=f"Sentinel entry that stops the upward search (default: {DEFAULT_SENTINEL}).",
    )
    parser.add_argument(
        "-c",
        "--count-commits",
        action="store_true",
        help="Show commit count and working-tree status for each directory.",
    )
    parser.add_argument(
        "-m",
        "--commit-count-max",
        type=_revision_cap,
        default=NO_REVISION_CAP,
        help="Only keep repositories with at most this many commits; implies --count-commits (-1: no limit).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Show verbose debug information; each -v bumps the log level.",
    )
    parser.add_argument("--log-format", choices=LOG_FORMATS, default=None, help="Log format (default: text).")
    parser.add_argument("--no-sort", action="store_true", help="Keep input order instead of sorting paths.")
    parser.add_argument("--no-color", action="store_true", help="Disable color output even on TTY.")
    parser.add_argument(
        "--git-timeout",
        type=_positive_float,
        default=None,
        metavar="SECONDS",
        help="Abort when a single git call takes longer than this.",
    )
    parser.add_argument("--legacy-first-dir", action="store_true", help=argparse.SUPPRESS)
    return parser


def build_config(args: argparse.Namespace, stdout: TextIO, defaults: dict[str, object] | None = None) -> HerfishConfig:
    """Merge persisted defaults with parsed arguments; flags win."""
    if defaults is None:
        defaults = load_defaults()

    cap = None if args.commit_count_max == NO_REVISION_CAP else args.commit_count_max
    color_allowed = bool(defaults.get("color", True)) and not args.no_color
    return HerfishConfig(
        sentinel=args.sentinel or str(defaults.get("sentinel", DEFAULT_SENTINEL)),
        want_revision_count=args.count_commits or cap is not None,
        revision_count_cap=cap,
        log_verbosity=args.verbose,
        log_format=args.log_format or str(defaults.get("log_format", "text")),
        sort_input=bool(defaults.get("sort_input", True)) and not args.no_sort,
        color=color_allowed and stdout.isatty(),
        git_timeout_seconds=args.git_timeout or defaults.get("git_timeout_seconds"),
        first_item_quirk=args.legacy_first_dir,
    )


def read_paths(stream: TextIO) -> list[str]:
    """Read newline-delimited paths, dropping line endings and blank lines."""
    paths: list[str] = []
    for line in stream:
        path = line.rstrip("\r\n")
        if path:
            paths.append(path)
    return paths


def run(
    config: HerfishConfig,
    stdin: TextIO,
    stdout: TextIO,
    provider: MetadataProvider | None = None,
) -> int:
    """Execute one batch and return the number of lines written.

    Raises:
        OSError: stdin could not be read or a path could not be resolved.
        MetadataProviderError: a repository could not be inspected.
    """
    paths = read_paths(stdin)
    if config.sort_input:
        paths.sort()
    logger.debug("paths", extra={"paths": paths})

    dirs = resolve_sentinel_dirs(paths, config.sentinel, first_item_quirk=config.first_item_quirk)

    records = aggregate_records(dirs, config, provider=provider)
    return render_records(records, stdout, color=config.color)


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, configure logging and run one batch.

    Returns:
        Exit code: 0 on success (including no matches), 1 on failure.
    """
    parser = create_parser()
    args = parser.parse_args(argv)
    config = build_config(args, sys.stdout)

    try:
        configure_logging(config.log_verbosity, config.log_format)
    except LoggingSetupError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if sys.stdin.isatty():
        print("Waiting for stdin...", file=sys.stderr)

    try:
        run(config, sys.stdin, sys.stdout)
    except (OSError, MetadataProviderError, UnicodeDecodeError) as exc:
        logger.error("run failed: %s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.exception("Unexpected error: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
