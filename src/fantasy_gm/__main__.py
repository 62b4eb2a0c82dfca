"""Allow ``python -m fantasy_gm``."""

from .cli import cli

cli()
