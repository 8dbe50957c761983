"""Settings loading shared by the CLI commands."""

import typer

from estmail.config import SearchSettings, get_settings
from estmail.config.schema import EstmailConfig
from estmail.exceptions import ConfigError


def settings_or_exit(config: EstmailConfig) -> SearchSettings:
    """Resolve settings, exiting with status 1 on an unusable config."""
    try:
        return get_settings(config)
    except ConfigError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(1)
