"""Config command implementation.

Creates, displays and edits ~/.config/estmail/config.toml.
"""

import typer
from typing_extensions import Annotated

from estmail.config import init_config, load_config, paths, set_config_value

app = typer.Typer(help="Manage the configuration file")


@app.command()
def init(
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Replace an existing config file")
    ] = False,
):
    """Write a commented template config file."""
    if not init_config(overwrite=force):
        typer.echo(f"{paths.CONFIG_FILE} already exists (use --force to replace it)")
        return

    typer.echo(f"Wrote {paths.CONFIG_FILE}")
    typer.echo("Set index.target_directories and the [paths] section to your mail folders.")


@app.command()
def show(
    section: Annotated[
        str | None, typer.Option("--section", "-s", help="Only show this section")
    ] = None,
):
    """Print the configuration file's contents by section."""
    config = load_config()

    if not config:
        typer.echo(f"No configuration at {paths.CONFIG_FILE}")
        typer.echo("Run 'estmail config init' to create one.")
        return

    names = [section] if section else list(config)
    for name in names:
        if name not in config:
            typer.echo(f"Section '{name}' not found.", err=True)
            raise typer.Exit(1)
        _print_section(name, config[name])


def _format_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return "[" + ", ".join(_format_value(v) for v in value) + "]"
    if isinstance(value, str):
        return f'"{value}"'
    return str(value)


def _print_section(name: str, value) -> None:
    # [[remote_groups]] is an array of tables
    if isinstance(value, list) and all(isinstance(item, dict) for item in value):
        tables = value
        header = f"[[{name}]]"
    elif isinstance(value, dict):
        tables = [value]
        header = f"[{name}]"
    else:
        typer.echo(f"{name} = {_format_value(value)}")
        return

    for table in tables:
        typer.echo(header)
        for key, item in table.items():
            typer.echo(f"  {key} = {_format_value(item)}")
        typer.echo()


@app.command("set")
def set_value(
    key: Annotated[
        str, typer.Argument(help="Dotted key, e.g. 'index.refresh_interval'")
    ],
    value: Annotated[
        str, typer.Argument(help="New value; lists are space-separated")
    ],
):
    """Set one configuration value.

    Examples:
        estmail config set index.refresh_interval 7200
        estmail config set paths.case_sensitive false
        estmail config set index.target_directories "~/Mail ~/News"
    """
    try:
        set_config_value(key, value)
    except ValueError as e:
        typer.echo(f"Invalid value for {key}: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"{key} = {value}")
