"""Mailboxes command implementation."""

import typer
from typing_extensions import Annotated

from estmail.cli.settings import settings_or_exit
from estmail.config import load_config
from estmail.storage import MailboxRegistry, build_table
from estmail.storage.directory import describe_mailbox


def mailboxes(
    ids_only: Annotated[
        bool, typer.Option("--ids", help="Only print mailbox ids")
    ] = False,
):
    """List known mailboxes and the directories mapped to them."""
    settings = settings_or_exit(load_config())
    registry = MailboxRegistry.from_settings(settings)

    if ids_only:
        for mailbox_id in registry.mailbox_ids():
            typer.echo(mailbox_id)
        return

    table = build_table(registry, settings.remote_groups, settings.case_sensitive)
    if not table:
        typer.echo("No mailbox directories found.")
        return

    for path, mailbox_id in sorted(table.items()):
        typer.echo(f"{path}\t{describe_mailbox(mailbox_id)}")
