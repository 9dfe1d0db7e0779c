"""Public package surface for herfish.

Exports ``main`` for programmatic CLI invocation.
The resolver and aggregator live in ``herfish.sentinel`` and ``herfish.aggregate``.
"""

from __future__ import annotations


def main(*args, **kwargs):
    """Lazily import CLI entrypoint to keep package imports lightweight."""
    from .cli import main as _main

    return _main(*args, **kwargs)

__all__ = ["main"]
