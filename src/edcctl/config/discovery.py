"""Config file discovery.

``edcctl.toml`` is looked up in the working directory and its parents so
the tool can be run from anywhere inside a deployment checkout.  The
``EDCCTL_CONFIG`` env var and the ``--config`` flag pin an explicit file.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "edcctl.toml"
CONFIG_ENV_VAR = "EDCCTL_CONFIG"


class ConfigNotFoundError(FileNotFoundError):
    """An explicitly requested config file does not exist."""


def find_config(start: Path | None = None) -> Path | None:
    """Return the nearest edcctl.toml at or above *start* (default: cwd)."""
    origin = (start or Path.cwd()).resolve()
    for directory in (origin, *origin.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def resolve_config(explicit: str | None = None, start: Path | None = None) -> Path | None:
    """Pick the config file for this invocation.

    Order: *explicit* (``--config``), then ``EDCCTL_CONFIG``, then walk-up
    discovery.  An explicit path or env path that is not a file raises
    :class:`ConfigNotFoundError`; discovery finding nothing returns None.
    """
    pinned = explicit or os.environ.get(CONFIG_ENV_VAR)
    if pinned:
        path = Path(pinned).expanduser()
        if not path.is_file():
            msg = f"Config file not found: {path}"
            raise ConfigNotFoundError(msg)
        return path
    return find_config(start)
