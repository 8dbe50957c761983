"""Configuration schema definitions.

Uses TypedDict for type safety without runtime overhead.
These types match the structure of config.toml.
"""

from typing import TypedDict


class EngineConfig(TypedDict, total=False):
    """Search engine invocation settings.

    Attributes:
        executable: Engine binary name or path (e.g., "estcmd").
        prefix: Command prefix for remote execution (e.g., ["ssh", "host"]).
        additional_args: Extra arguments inserted before the index directory.
        coding: Text encoding of the engine's input and output.
        index_directory: Index (casket) directory searched by the engine.
        large_result_threshold: Result count above which a maximum is asked for.
        highlight: Whether search results carry highlight patterns.
    """

    executable: str
    prefix: list[str]
    additional_args: list[str]
    coding: str
    index_directory: str
    large_result_threshold: int
    highlight: bool


class IndexConfig(TypedDict, total=False):
    """Index refresh settings.

    Attributes:
        builder: Index builder binary (usually the same as the engine).
        builder_args: Arguments placed before the index and target directories.
        target_directories: Mail directories gathered into the index.
        refresh_interval: Seconds before the index is stale; 0 disables.
    """

    builder: str
    builder_args: list[str]
    target_directories: list[str]
    refresh_interval: int


class QueryConfig(TypedDict, total=False):
    """Query translation settings.

    Attributes:
        field_keywords: Attributes usable as +keyword predicates.
        date_attribute: Attribute whose ":" operator means equality.
    """

    field_keywords: list[str]
    date_attribute: str


class PathsConfig(TypedDict, total=False):
    """Mail store locations and path matching rules.

    Attributes:
        normalize: Rewrite "/c|/" style result paths to "c:/".
        case_sensitive: Whether the filesystem distinguishes path case.
        nnml_directory: Root of the nnml backend.
        nnmh_directory: Root of the nnmh backend.
        cache_directory: Root of the article cache.
        agent_directory: Root of the offline agent storage.
        mailboxes: Extra mailbox ids to register (e.g., news groups).
    """

    normalize: bool
    case_sensitive: bool
    nnml_directory: str
    nnmh_directory: str
    cache_directory: str
    agent_directory: str
    mailboxes: list[str]


class RemoteGroupConfig(TypedDict):
    """Path rewrite rule for mailboxes served from elsewhere.

    Attributes:
        pattern: Regular expression matched against the mailbox id.
        base_path: Directory replacing the matched prefix.
    """

    pattern: str
    base_path: str


class HighlightConfig(TypedDict, total=False):
    """Face names attached to highlight patterns."""

    narrow_face: str
    wide_face: str


class EstmailConfig(TypedDict, total=False):
    """Root configuration structure."""

    engine: EngineConfig
    index: IndexConfig
    query: QueryConfig
    paths: PathsConfig
    remote_groups: list[RemoteGroupConfig]
    highlight: HighlightConfig
