"""Mailbox locations on disk and the path-to-mailbox table."""

from .directory import (
    DirectoryTable,
    DirectoryTableCache,
    MailboxLocation,
    build_table,
)
from .registry import MailboxId, MailboxRegistry

__all__ = [
    "DirectoryTable",
    "DirectoryTableCache",
    "MailboxId",
    "MailboxLocation",
    "MailboxRegistry",
    "build_table",
]
