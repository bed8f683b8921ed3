"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, strata-mcp.toml only contains
overrides, e.g.::

    [database]
    path = "./data"
    read_only = true
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from strata_mcp.protocol import PROTOCOL_VERSION, SERVER_NAME

# --- strata-mcp.toml sections ---


class ServerConfig(BaseModel):
    """[server] section: identity reported by ``initialize``."""

    model_config = {"frozen": True}

    name: str = SERVER_NAME
    protocol_version: str = PROTOCOL_VERSION


class DatabaseConfig(BaseModel):
    """[database] section.

    Exactly one of ``path`` and ``cache`` must be set by the time the server
    starts; the CLI enforces this after all sources are merged.
    """

    model_config = {"frozen": True}

    path: str | None = None
    cache: bool = False
    read_only: bool = False
    retention_max_versions: int | None = Field(default=None, ge=1)
