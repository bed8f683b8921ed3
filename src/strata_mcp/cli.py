"""Command-line entry point: open the database and serve MCP over stdio."""

from __future__ import annotations

import logging
from typing import Any

import click

from strata_mcp import __version__
from strata_mcp.config.logging import configure_logging
from strata_mcp.config.settings import McpSettings
from strata_mcp.engine import AccessMode, Strata, StrataError
from strata_mcp.server import McpServer
from strata_mcp.session import McpSession

logger = logging.getLogger(__name__)


def open_database(settings: McpSettings) -> Strata:
    """Build the database handle described by ``settings.database``.

    Raises:
        click.UsageError: Neither or both of ``path`` and ``cache`` are set.
        StrataError: The database could not be opened.
    """
    db_config = settings.database
    path = db_config.path
    if path and db_config.cache:
        raise click.UsageError("--db and --cache are mutually exclusive")

    if db_config.cache:
        if db_config.read_only:
            logger.warning("--read-only has no effect on a cache database")
        return Strata.cache(retention_max_versions=db_config.retention_max_versions)

    if not path:
        raise click.UsageError("Must specify either --db <PATH> or --cache")
    access_mode = AccessMode.READ_ONLY if db_config.read_only else AccessMode.READ_WRITE
    return Strata.open(
        path,
        access_mode=access_mode,
        retention_max_versions=db_config.retention_max_versions,
    )


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="strata-mcp")
@click.option("--db", "db_path", default=None, metavar="PATH", help="Database directory.")
@click.option("--cache", is_flag=True, help="Use an in-memory database (nothing persisted).")
@click.option("--read-only", is_flag=True, help="Reject every write operation.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging to stderr.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
def cli(
    db_path: str | None,
    cache: bool,
    read_only: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
) -> None:
    """strata-mcp: Strata database tools for AI agents over MCP.

    Speaks JSON-RPC 2.0 on stdin/stdout, one message per line.
    """
    # Flags only ever switch things on so env vars and TOML still apply.
    flags: dict[str, Any] = {}
    if verbose:
        flags["verbose"] = True
    if log_json:
        flags["log_json"] = True
    database: dict[str, Any] = {}
    if db_path is not None:
        database["path"] = db_path
    if cache:
        database["cache"] = True
    if read_only:
        database["read_only"] = True
    if database:
        flags["database"] = database

    settings = McpSettings.from_cli(config_path=config_path, **flags)
    configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    try:
        db = open_database(settings)
    except StrataError as exc:
        target = settings.database.path or "cache"
        click.echo(f"Error: Failed to open database at '{target}': {exc.message}", err=True)
        raise SystemExit(1) from exc

    server = McpServer(McpSession(db), config=settings.server)
    try:
        server.run()
    finally:
        db.close()
