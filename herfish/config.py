"""Run configuration and persisted user defaults.

``HerfishConfig`` is built once by the CLI and handed to the core.
Defaults may be stored as JSON under the platform config directory; all
access is defensive so a malformed file falls back to built-in values.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_config_dir

from .sentinel import DEFAULT_SENTINEL

APP_NAME = "herfish"
CONFIG_FILENAME = "config.json"
CONFIG_ENV_VAR = "HERFISH_CONFIG"
DEFAULT_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME

LOG_FORMATS = ("text", "json")
NO_REVISION_CAP = -1


@dataclass(frozen=True)
class HerfishConfig:
    """Immutable settings for one run."""

    sentinel: str = DEFAULT_SENTINEL
    want_revision_count: bool = False
    revision_count_cap: int | None = None
    log_verbosity: int = 0
    log_format: str = "text"
    sort_input: bool = True
    color: bool = False
    git_timeout_seconds: float | None = None
    first_item_quirk: bool = False

    @property
    def want_metadata(self) -> bool:
        """Metadata is gathered when requested explicitly or implied by a cap."""
        return self.want_revision_count or self.revision_count_cap is not None


def config_path() -> Path:
    """Return the defaults file location, honouring ``HERFISH_CONFIG``."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return DEFAULT_CONFIG_PATH


def load_config(path: Path | None = None) -> dict[str, object]:
    """Load the persisted JSON defaults object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    target = path if path is not None else config_path()
    try:
        data = json.loads(target.read_text(encoding="utf-8"))
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def load_defaults(path: Path | None = None) -> dict[str, object]:
    """Return only the recognised, well-typed keys of the defaults file."""
    data = load_config(path)
    defaults: dict[str, object] = {}

    sentinel = data.get("sentinel")
    if isinstance(sentinel, str) and sentinel:
        defaults["sentinel"] = sentinel

    log_format = data.get("log_format")
    if isinstance(log_format, str) and log_format in LOG_FORMATS:
        defaults["log_format"] = log_format

    for key in ("sort_input", "color"):
        value = data.get(key)
        if isinstance(value, bool):
            defaults[key] = value

    timeout = data.get("git_timeout_seconds")
    if isinstance(timeout, (int, float)) and not isinstance(timeout, bool) and timeout > 0:
        defaults["git_timeout_seconds"] = float(timeout)

    return defaults
