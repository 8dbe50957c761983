"""Highlight command implementation."""

import typer
from typing_extensions import Annotated

from estmail.cli.settings import settings_or_exit
from estmail.config import load_config
from estmail.search.highlight import extract, highlight_text


def highlight(
    query: Annotated[str, typer.Argument(help="Search query")],
    text: Annotated[
        str | None,
        typer.Option("--text", "-t", help="Mark the query's words in this text instead"),
    ] = None,
):
    """Print the highlight patterns derived from a query."""
    settings = settings_or_exit(load_config())
    rules = extract(
        query,
        settings.field_keywords,
        narrow_face=settings.narrow_face,
        wide_face=settings.wide_face,
    )

    if not rules:
        typer.echo("No words to highlight.")
        return

    if text is not None:
        marked = []
        pos = 0
        for start, end, _face in highlight_text(text, rules):
            if start < pos:
                continue
            marked.append(text[pos:start])
            marked.append(f"[{text[start:end]}]")
            pos = end
        marked.append(text[pos:])
        typer.echo("".join(marked))
        return

    for rule in rules:
        typer.echo(f"{rule.face}\t{rule.group}\t{rule.pattern}")
