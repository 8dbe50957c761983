"""Search command implementation."""

import json
from enum import Enum

import typer
from typing_extensions import Annotated

from estmail.cli.settings import settings_or_exit
from estmail.config import load_config
from estmail.exceptions import (
    EngineInvocationError,
    EngineNotFoundError,
    IndexBuildError,
    InvalidMaximumError,
)
from estmail.index import IndexRefresher
from estmail.search.models import SearchOutcome
from estmail.search.service import search as run_query
from estmail.storage import DirectoryTableCache, MailboxRegistry


class OutputFormat(str, Enum):
    """Output formats for search results."""

    summary = "summary"
    json = "json"
    ids = "ids"


def _prompt_maximum(count: int) -> str:
    return typer.prompt(
        f"{count} articles found. Maximum to show (empty for all)",
        default="",
        show_default=False,
    )


def search(
    query: Annotated[str, typer.Argument(help="Search query, e.g. '+from:alice budget'")],
    mailbox: Annotated[
        list[str] | None,
        typer.Option("--mailbox", "-m", help="Only show hits in this mailbox (repeatable)"),
    ] = None,
    format: Annotated[
        OutputFormat, typer.Option("--format", help="Output format: summary, json, ids")
    ] = OutputFormat.summary,
    refresh: Annotated[
        bool,
        typer.Option("--refresh/--no-refresh", help="Check index freshness before searching"),
    ] = True,
):
    """Search indexed mail and list matching articles."""
    settings = settings_or_exit(load_config())
    registry = MailboxRegistry.from_settings(settings)
    table_cache = DirectoryTableCache()
    refresher = IndexRefresher(settings, table_cache=table_cache) if refresh else None

    try:
        outcome = run_query(
            query,
            settings,
            registry,
            table_cache,
            refresher=refresher,
            mailbox_filter=set(mailbox) if mailbox else None,
            prompt=_prompt_maximum if format is OutputFormat.summary else None,
        )
    except EngineNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    except EngineInvocationError as e:
        typer.echo(f"Search failed: {e}", err=True)
        raise typer.Exit(1)
    except IndexBuildError as e:
        typer.echo(f"Index creation failed: {e}", err=True)
        raise typer.Exit(1)
    except InvalidMaximumError as e:
        typer.echo(f"Invalid maximum: {e}", err=True)
        raise typer.Exit(1)

    _render(outcome, format)

    if refresher is not None and refresher.is_running:
        # The gather child would be cut off if the process exited now
        typer.echo("Index update in progress...", err=True)
        refresher.wait()


def _render(outcome: SearchOutcome, format: OutputFormat) -> None:
    if format is OutputFormat.json:
        typer.echo(json.dumps(outcome.to_dict(), indent=2))
        return

    if format is OutputFormat.ids:
        for article in outcome.articles:
            typer.echo(f"{article.mailbox_id}\t{article.sequence_number}")
        return

    if not outcome.articles:
        typer.echo("No matching articles.")
        return

    for article in outcome.articles:
        typer.echo(f"{article.mailbox_id:<40} {article.sequence_number:>8}")

    shown = len(outcome.articles)
    if shown < outcome.total_hits:
        typer.echo(f"\n{shown} of {outcome.total_hits} articles shown")
    else:
        typer.echo(f"\n{shown} articles")
