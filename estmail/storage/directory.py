"""Path-to-mailbox table used to resolve engine results.

The engine reports hits as file paths. Every known mailbox contributes the
directories its articles may live in; the table maps each directory back to
the mailbox id. Candidates are merged in this order, later entries
replacing earlier ones for the same directory:

    1. offline agent storage
    2. article cache
    3. backend-native directory (nnml/nnmh)
    4. remote-group rewrite rules

The first three are included only if the directory exists.
"""

import logging
import re
import threading
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path, PurePath

from estmail.config.settings import RemoteGroupRule

from .registry import MailboxId, MailboxRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MailboxLocation:
    """A directory holding articles of one mailbox."""

    path: Path
    mailbox_id: str


def normalize_key(path: str | PurePath, case_sensitive: bool) -> str:
    """Normalize a directory path for table keys and lookups.

    Uses forward slashes, drops trailing slashes and folds case when the
    filesystem is case-insensitive.
    """
    key = path.as_posix() if isinstance(path, PurePath) else str(path)
    if len(key) > 1:
        key = key.rstrip("/") or "/"
    if not case_sensitive:
        key = key.lower()
    return key


class DirectoryTable(Mapping[str, str]):
    """Immutable mapping from normalized directory path to mailbox id."""

    def __init__(self, locations: Iterable[MailboxLocation], case_sensitive: bool = True):
        self._case_sensitive = case_sensitive
        entries: dict[str, str] = {}
        for location in locations:
            entries[normalize_key(location.path, case_sensitive)] = location.mailbox_id
        self._entries = entries

    @property
    def case_sensitive(self) -> bool:
        return self._case_sensitive

    def lookup(self, path: str | PurePath) -> str | None:
        """Return the mailbox id owning a directory, or None."""
        return self._entries.get(normalize_key(path, self._case_sensitive))

    def __getitem__(self, key: str) -> str:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"DirectoryTable({len(self)} entries, case_sensitive={self._case_sensitive})"


def remote_location(mailbox_id: str, rule: RemoteGroupRule) -> Path | None:
    """Apply a remote-group rule to a mailbox id.

    The part of the id matched by the rule's pattern is replaced with the
    rule's base path; the rest is the group, dots becoming directories.

    Example:
        >>> rule = RemoteGroupRule(r"^nntp\\+news:", Path("/var/spool/news"))
        >>> remote_location("nntp+news:comp.lang.python", rule)
        PosixPath('/var/spool/news/comp/lang/python')
    """
    match = re.match(rule.pattern, mailbox_id)
    if match is None:
        return None
    remainder = mailbox_id[match.end():]
    return rule.base_path.joinpath(*[part for part in remainder.split(".") if part])


def collect_locations(
    registry: MailboxRegistry,
    remote_rules: Sequence[RemoteGroupRule] = (),
    mailbox_ids: Sequence[str] | None = None,
) -> list[MailboxLocation]:
    """Collect candidate (directory, mailbox) pairs in merge order."""
    if mailbox_ids is None:
        mailbox_ids = registry.mailbox_ids()

    agent: list[MailboxLocation] = []
    cache: list[MailboxLocation] = []
    backend: list[MailboxLocation] = []
    remote: list[MailboxLocation] = []

    for mailbox_id in mailbox_ids:
        agent_dir = registry.agent_location(mailbox_id)
        if agent_dir is not None and agent_dir.is_dir():
            agent.append(MailboxLocation(agent_dir, mailbox_id))

        cache_dir = registry.cache_location(mailbox_id)
        if cache_dir is not None and cache_dir.is_dir():
            cache.append(MailboxLocation(cache_dir, mailbox_id))

        native = registry.backend_location(mailbox_id)
        if native is not None and native[1].is_dir():
            backend.append(MailboxLocation(native[1], mailbox_id))

        for rule in remote_rules:
            path = remote_location(mailbox_id, rule)
            if path is not None:
                remote.append(MailboxLocation(path, mailbox_id))

    return agent + cache + backend + remote


def build_table(
    registry: MailboxRegistry,
    remote_rules: Sequence[RemoteGroupRule] = (),
    case_sensitive: bool = True,
    mailbox_ids: Sequence[str] | None = None,
) -> DirectoryTable:
    """Scan all mailbox locations into a new DirectoryTable."""
    locations = collect_locations(registry, remote_rules, mailbox_ids)
    table = DirectoryTable(locations, case_sensitive)
    logger.debug("Built directory table with %d entries", len(table))
    return table


class DirectoryTableCache:
    """Holds the current DirectoryTable and rebuilds it when needed.

    A rebuild happens when forced, when no table exists yet, after
    invalidate(), when the case-sensitivity setting changes, or when the
    set of mailboxes or remote rules differs from the last build. The new
    table is fully built before it replaces the old one.
    """

    def __init__(self):
        self._table: DirectoryTable | None = None
        self._fingerprint: tuple | None = None
        self._stale = False
        self._lock = threading.Lock()

    @property
    def table(self) -> DirectoryTable | None:
        """The current table, or None if never built."""
        return self._table

    @property
    def needs_rebuild(self) -> bool:
        return self._table is None or self._stale

    def invalidate(self) -> None:
        """Mark the table for rebuild on next access."""
        self._stale = True

    def get(
        self,
        registry: MailboxRegistry,
        remote_rules: Sequence[RemoteGroupRule] = (),
        case_sensitive: bool = True,
        *,
        force: bool = False,
    ) -> DirectoryTable:
        """Return the table, rebuilding it first if required."""
        mailbox_ids = tuple(registry.mailbox_ids())
        fingerprint = (mailbox_ids, tuple(remote_rules))

        current = self._table
        if (
            not force
            and current is not None
            and not self._stale
            and current.case_sensitive == case_sensitive
            and fingerprint == self._fingerprint
        ):
            return current

        table = build_table(registry, remote_rules, case_sensitive, mailbox_ids)
        with self._lock:
            self._table = table
            self._fingerprint = fingerprint
            self._stale = False
        return table


def describe_mailbox(mailbox_id: str) -> str:
    """Short human-readable description of a mailbox id."""
    parsed = MailboxId.parse(mailbox_id)
    if parsed.server:
        return f"{parsed.group} ({parsed.backend} on {parsed.server})"
    return f"{parsed.group} ({parsed.backend})"
