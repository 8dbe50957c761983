"""Mailbox registry for flat-file-per-message mail stores.

Two backends store one article per numbered file:

- nnml: <root>/<group path>/<number> plus a .overview index file
- nnmh: <root>/<group path>/<number> (MH folders, no overview)

Mailbox ids have the form "<backend>[+<server>]:<group>", e.g.
"nnml:INBOX", "nnmh:lists.python" or "nntp+news.example.com:comp.lang.python".
Group names map to directories by turning "." into path separators, so
"lists.python" lives in <root>/lists/python.

Besides the backend directory, a mailbox may have articles in the local
article cache and in the offline agent storage:

    <cache root>/<group path>/
    <agent root>/<backend>/<server or backend>/<group path>/
"""

import os
from dataclasses import dataclass
from pathlib import Path

from estmail.config.settings import SearchSettings

# Backends whose articles are plain files the engine can index
FLAT_FILE_BACKENDS = ("nnml", "nnmh")

OVERVIEW_FILE = ".overview"


@dataclass(frozen=True)
class MailboxId:
    """A parsed mailbox id."""

    backend: str
    server: str
    group: str

    @classmethod
    def parse(cls, mailbox_id: str) -> "MailboxId":
        """Parse "<backend>[+<server>]:<group>".

        An id without a colon is treated as a group of the nnml backend.
        """
        method, sep, group = mailbox_id.partition(":")
        if not sep:
            return cls("nnml", "", mailbox_id)
        backend, _, server = method.partition("+")
        return cls(backend, server, group)

    @property
    def group_path(self) -> Path:
        """Relative directory of the group ("a.b.c" -> a/b/c)."""
        return Path(*self.group.split("."))


def group_from_path(relative: Path) -> str:
    """Inverse of MailboxId.group_path."""
    return ".".join(relative.parts)


class MailboxRegistry:
    """Enumerates known mailboxes and resolves their on-disk locations.

    Example:
        registry = MailboxRegistry(nnml_directory=Path("~/Mail"))
        for mailbox_id in registry.mailbox_ids():
            print(mailbox_id, registry.backend_location(mailbox_id))
    """

    def __init__(
        self,
        nnml_directory: Path | None = None,
        nnmh_directory: Path | None = None,
        cache_directory: Path | None = None,
        agent_directory: Path | None = None,
        extra_mailboxes: tuple[str, ...] | list[str] = (),
    ):
        """Initialize the registry.

        Args:
            nnml_directory: Root of the nnml backend (not scanned if None).
            nnmh_directory: Root of the nnmh backend (not scanned if None).
            cache_directory: Root of the article cache.
            agent_directory: Root of the offline agent storage.
            extra_mailboxes: Ids registered without scanning (e.g. news groups).
        """
        self._roots = {
            "nnml": nnml_directory.expanduser() if nnml_directory else None,
            "nnmh": nnmh_directory.expanduser() if nnmh_directory else None,
        }
        self._cache_directory = cache_directory.expanduser() if cache_directory else None
        self._agent_directory = agent_directory.expanduser() if agent_directory else None
        self._extra_mailboxes = tuple(extra_mailboxes)

    @classmethod
    def from_settings(cls, settings: SearchSettings) -> "MailboxRegistry":
        """Create a registry from resolved settings."""
        return cls(
            nnml_directory=settings.nnml_directory,
            nnmh_directory=settings.nnmh_directory,
            cache_directory=settings.cache_directory,
            agent_directory=settings.agent_directory,
            extra_mailboxes=settings.extra_mailboxes,
        )

    def mailbox_ids(self) -> list[str]:
        """List every known mailbox id.

        Scans both backend roots, then appends configured extra ids.
        Duplicates are dropped, first occurrence kept.
        """
        found: dict[str, None] = {}
        for backend in FLAT_FILE_BACKENDS:
            root = self._roots[backend]
            if root is None or not root.is_dir():
                continue
            for group in self._scan_groups(root, backend):
                found.setdefault(f"{backend}:{group}", None)

        for mailbox_id in self._extra_mailboxes:
            found.setdefault(mailbox_id, None)

        return list(found)

    def _scan_groups(self, root: Path, backend: str) -> list[str]:
        """Find group directories under a backend root.

        nnml groups are recognised by their overview file, nnmh groups by
        numbered article files without one, so both backends can share a root.
        """
        groups = []
        for dirpath, dirnames, filenames in os.walk(root):
            # Hidden directories hold backend metadata, not groups
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))

            has_overview = OVERVIEW_FILE in filenames
            if backend == "nnml":
                is_group = has_overview
            else:
                is_group = not has_overview and any(f.isdigit() for f in filenames)

            current = Path(dirpath)
            if is_group and current != root:
                groups.append(group_from_path(current.relative_to(root)))

        return groups

    def backend_location(self, mailbox_id: str) -> tuple[str, Path] | None:
        """Return (backend, directory) for flat-file mailboxes, else None."""
        parsed = MailboxId.parse(mailbox_id)
        if parsed.backend not in FLAT_FILE_BACKENDS:
            return None
        root = self._roots[parsed.backend]
        if root is None:
            return None
        return parsed.backend, root / parsed.group_path

    def cache_location(self, mailbox_id: str) -> Path | None:
        """Directory of cached articles for a mailbox."""
        if self._cache_directory is None:
            return None
        return self._cache_directory / MailboxId.parse(mailbox_id).group_path

    def agent_location(self, mailbox_id: str) -> Path | None:
        """Directory of offline agent articles for a mailbox."""
        if self._agent_directory is None:
            return None
        parsed = MailboxId.parse(mailbox_id)
        server = parsed.server or parsed.backend
        return self._agent_directory / parsed.backend / server / parsed.group_path
