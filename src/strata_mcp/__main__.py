"""Allow ``python -m strata_mcp``."""

from strata_mcp.cli import cli

cli()
