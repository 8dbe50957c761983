"""Index command implementation.

Creates, refreshes and inspects the search index.
"""

import typer
from typing_extensions import Annotated

from estmail.cli.settings import settings_or_exit
from estmail.config import load_config
from estmail.exceptions import ConcurrentRefreshError, IndexBuildError
from estmail.index import IndexRefresher, RefreshResult, create_index

app = typer.Typer(help="Create, update or inspect the search index")


def _format_age(seconds: float) -> str:
    """Format an index age for display."""
    if seconds < 60:
        return f"{seconds:.0f} seconds ago"
    if seconds < 3600:
        return f"{seconds / 60:.0f} minutes ago"
    if seconds < 86400:
        return f"{seconds / 3600:.1f} hours ago"
    return f"{seconds / 86400:.1f} days ago"


@app.command()
def create():
    """Create the index, gathering each target directory in turn.

    Runs in the foreground and stops at the first failing directory.
    """
    settings = settings_or_exit(load_config())

    typer.echo(f"Index location: {settings.index_directory}")
    try:
        count = create_index(settings)
    except IndexBuildError as e:
        typer.echo(f"Index creation failed: {e}", err=True)
        if e.output:
            typer.echo(e.output, err=True)
        raise typer.Exit(1)

    typer.echo(f"Gathered {count} director{'y' if count == 1 else 'ies'}")


@app.command()
def update(
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Update even if the index is fresh")
    ] = False,
):
    """Update the index in a background process and wait for it."""
    settings = settings_or_exit(load_config())
    results: list[RefreshResult] = []
    refresher = IndexRefresher(settings, on_complete=results.append)

    try:
        started = refresher.check_and_maybe_start(force=force)
    except (ConcurrentRefreshError, IndexBuildError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if not started:
        typer.echo("Index is up to date. Use --force to update anyway.")
        return

    typer.echo("Updating index...")
    refresher.wait()

    failed = [r for r in results if not r.success]
    if failed:
        result = failed[0]
        detail = result.errors[0] if result.errors else f"status {result.returncode}"
        typer.echo(f"Index update failed: {detail}", err=True)
        raise typer.Exit(1)

    typer.echo("Index updated.")


@app.command()
def status():
    """Show index location, age and staleness."""
    settings = settings_or_exit(load_config())
    info = IndexRefresher(settings).status()

    typer.echo(f"Location:     {settings.index_directory}")
    if not info.exists:
        typer.echo("Last update:  Never")
        typer.echo()
        typer.echo("No index found. Run 'estmail index create' to build it.")
        raise typer.Exit(1)

    typer.echo(f"Last update:  {info.last_update:%Y-%m-%d %H:%M:%S}")
    typer.echo(f"Age:          {_format_age(info.age_seconds or 0.0)}")

    interval = settings.refresh_interval
    typer.echo(
        f"Interval:     {'disabled' if interval is None else f'{interval} seconds'}"
    )
    if info.stale:
        typer.echo()
        typer.echo("Index is stale. Run 'estmail index update' to refresh.")
