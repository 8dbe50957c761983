"""Resolved, read-only settings.

The TOML config is sparse: every key is optional. get_settings() fills in
defaults once so the rest of the package reads a single frozen object.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path

from estmail.exceptions import ConfigError

from .paths import (
    DEFAULT_AGENT_DIR,
    DEFAULT_CACHE_DIR,
    DEFAULT_INDEX_DIR,
    DEFAULT_NNMH_DIR,
    DEFAULT_NNML_DIR,
)
from .schema import EstmailConfig, RemoteGroupConfig

DEFAULT_FIELD_KEYWORDS = (
    "cdate",
    "mdate",
    "title",
    "author",
    "from",
    "to",
    "cc",
    "size",
)
DEFAULT_BUILDER_ARGS = ("gather", "-cl", "-fm", "-cm")


@dataclass(frozen=True)
class RemoteGroupRule:
    """Rewrite rule mapping matching mailbox ids under base_path."""

    pattern: str
    base_path: Path


@dataclass(frozen=True)
class SearchSettings:
    """Every recognised option, with defaults applied."""

    # Engine
    engine: str = "estcmd"
    prefix: tuple[str, ...] = ()
    additional_args: tuple[str, ...] = ()
    coding: str = "utf-8"
    index_directory: Path = DEFAULT_INDEX_DIR
    large_result_threshold: int = 200
    highlight: bool = True

    # Index refresh
    builder: str = "estcmd"
    builder_args: tuple[str, ...] = DEFAULT_BUILDER_ARGS
    target_directories: tuple[Path, ...] = (DEFAULT_NNML_DIR,)
    refresh_interval: int | None = 3600

    # Query
    field_keywords: tuple[str, ...] = DEFAULT_FIELD_KEYWORDS
    date_attribute: str = "cdate"

    # Paths
    path_normalization: bool = False
    case_sensitive: bool = os.name != "nt"
    nnml_directory: Path = DEFAULT_NNML_DIR
    nnmh_directory: Path = DEFAULT_NNMH_DIR
    cache_directory: Path = DEFAULT_CACHE_DIR
    agent_directory: Path = DEFAULT_AGENT_DIR
    extra_mailboxes: tuple[str, ...] = ()
    remote_groups: tuple[RemoteGroupRule, ...] = field(default_factory=tuple)

    # Highlighting
    narrow_face: str = "bold"
    wide_face: str = "bold"


def _path(value: str | None, default: Path) -> Path:
    """Expand a configured path, falling back to the default."""
    if not value:
        return default
    return Path(value).expanduser()


def _remote_group_rules(entries: list[RemoteGroupConfig]) -> tuple[RemoteGroupRule, ...]:
    """Validate [[remote_groups]] tables and turn them into rules.

    Raises:
        ConfigError: If a table lacks a key or its pattern does not compile.
    """
    rules = []
    for position, entry in enumerate(entries, start=1):
        try:
            pattern = entry["pattern"]
            base_path = entry["base_path"]
        except KeyError as e:
            raise ConfigError(f"remote_groups entry {position} has no {e.args[0]}") from None
        try:
            re.compile(pattern)
        except re.error as e:
            raise ConfigError(
                f"remote_groups entry {position}: invalid pattern {pattern!r}: {e}"
            ) from None
        rules.append(RemoteGroupRule(pattern, Path(base_path).expanduser()))
    return tuple(rules)


def get_settings(config: EstmailConfig) -> SearchSettings:
    """Build SearchSettings from a loaded configuration dictionary.

    Missing sections and keys take their defaults. A refresh_interval of 0
    (or a negative number) disables staleness checks.

    Args:
        config: The loaded configuration dictionary.

    Returns:
        Frozen settings object.

    Raises:
        ConfigError: If a [[remote_groups]] table is unusable.
    """
    engine = config.get("engine", {})
    index = config.get("index", {})
    query = config.get("query", {})
    paths = config.get("paths", {})
    highlight = config.get("highlight", {})
    defaults = SearchSettings()

    interval = index.get("refresh_interval", defaults.refresh_interval)
    if interval is not None and interval <= 0:
        interval = None

    targets = index.get("target_directories")
    target_directories = (
        tuple(Path(t).expanduser() for t in targets)
        if targets is not None
        else defaults.target_directories
    )

    rules = _remote_group_rules(config.get("remote_groups", []))

    return SearchSettings(
        engine=engine.get("executable", defaults.engine),
        prefix=tuple(engine.get("prefix", ())),
        additional_args=tuple(engine.get("additional_args", ())),
        coding=engine.get("coding", defaults.coding),
        index_directory=_path(engine.get("index_directory"), DEFAULT_INDEX_DIR),
        large_result_threshold=engine.get(
            "large_result_threshold", defaults.large_result_threshold
        ),
        highlight=engine.get("highlight", defaults.highlight),
        builder=index.get("builder", defaults.builder),
        builder_args=tuple(index.get("builder_args", DEFAULT_BUILDER_ARGS)),
        target_directories=target_directories,
        refresh_interval=interval,
        field_keywords=tuple(query.get("field_keywords", DEFAULT_FIELD_KEYWORDS)),
        date_attribute=query.get("date_attribute", defaults.date_attribute),
        path_normalization=paths.get("normalize", defaults.path_normalization),
        case_sensitive=paths.get("case_sensitive", defaults.case_sensitive),
        nnml_directory=_path(paths.get("nnml_directory"), DEFAULT_NNML_DIR),
        nnmh_directory=_path(paths.get("nnmh_directory"), DEFAULT_NNMH_DIR),
        cache_directory=_path(paths.get("cache_directory"), DEFAULT_CACHE_DIR),
        agent_directory=_path(paths.get("agent_directory"), DEFAULT_AGENT_DIR),
        extra_mailboxes=tuple(paths.get("mailboxes", ())),
        remote_groups=rules,
        narrow_face=highlight.get("narrow_face", defaults.narrow_face),
        wide_face=highlight.get("wide_face", defaults.wide_face),
    )
