"""CLI commands module."""

from . import config, highlight, index, mailboxes, search

__all__ = ["search", "index", "mailboxes", "highlight", "config"]
