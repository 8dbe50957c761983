"""Main CLI entry point for estmail."""

import logging

import typer
from typing_extensions import Annotated

from estmail import __version__
from estmail.cli import commands

app = typer.Typer(
    name="estmail",
    help="Full-text search of nnml/nnmh mail folders with Hyper Estraier",
    no_args_is_help=True,
)

# Register commands and command groups
app.command("search")(commands.search.search)
app.command("mailboxes")(commands.mailboxes.mailboxes)
app.command("highlight")(commands.highlight.highlight)
app.add_typer(commands.index.app, name="index")
app.add_typer(commands.config.app, name="config")


@app.callback()
def main_callback(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Show debug logging")
    ] = False,
):
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )


@app.command()
def version():
    """Show version information."""
    typer.echo(f"estmail version {__version__}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
