"""Module entrypoint for ``python -m herfish``.

All argument parsing and logging setup happen in ``herfish.cli``.
"""

import sys

from .cli import main


if __name__ == "__main__":
    sys.exit(main())
