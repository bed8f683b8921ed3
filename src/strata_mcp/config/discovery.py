"""Locating and reading ``strata-mcp.toml``.

Lookup order: the ``STRATA_MCP_CONFIG`` env var, then the nearest
``strata-mcp.toml`` in the start directory or any of its parents.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

CONFIG_FILENAME = "strata-mcp.toml"
CONFIG_ENV_VAR = "STRATA_MCP_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Return the config file that applies to *start* (default: cwd), if any.

    A ``STRATA_MCP_CONFIG`` value that names no file disables discovery.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        candidate = Path(override)
        return candidate if candidate.is_file() else None

    origin = (start or Path.cwd()).resolve()
    for directory in (origin, *origin.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def load_toml(path: Path) -> dict[str, Any]:
    """Parse *path*; raises ``tomllib.TOMLDecodeError`` on bad syntax."""
    with path.open("rb") as fh:
        return tomllib.load(fh)
