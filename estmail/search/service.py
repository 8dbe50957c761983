"""End-to-end search: refresh check, translation, engine run, resolution.

The host (the CLI here) supplies the mailbox registry, the directory table
cache and, optionally, a refresher and a prompt for large result sets.
"""

from __future__ import annotations

import logging
from collections.abc import Collection
from typing import TYPE_CHECKING

from .engine import run_search
from .highlight import extract
from .models import SearchOutcome
from .query import translate
from .results import PromptCallback, resolve, truncate_results

if TYPE_CHECKING:
    from estmail.config.settings import SearchSettings
    from estmail.index.refresher import IndexRefresher
    from estmail.storage.directory import DirectoryTableCache
    from estmail.storage.registry import MailboxRegistry

logger = logging.getLogger(__name__)


def search(
    raw_query: str,
    settings: SearchSettings,
    registry: MailboxRegistry,
    table_cache: DirectoryTableCache,
    *,
    refresher: IndexRefresher | None = None,
    mailbox_filter: Collection[str] | None = None,
    prompt: PromptCallback | None = None,
) -> SearchOutcome:
    """Run a hybrid query and resolve its hits to articles.

    The index is created synchronously if missing; a stale index only
    triggers a background refresh, so results may come from the old index.

    Args:
        raw_query: Free text mixed with +keyword predicates.
        settings: Resolved settings.
        registry: Known mailboxes.
        table_cache: Directory table cache (rebuilt when needed).
        refresher: Index refresher, or None to skip the freshness check.
        mailbox_filter: Restrict hits to these mailbox ids.
        prompt: Asked for a maximum when hits exceed the threshold.

    Returns:
        SearchOutcome with articles in engine order and highlight rules.

    Raises:
        EngineInvocationError: If the engine fails.
        EngineNotFoundError: If the engine cannot be launched.
        IndexBuildError: If the missing index cannot be created.
    """
    if refresher is not None:
        refresher.ensure_index()
        refresher.check_and_maybe_start()

    query = translate(raw_query, settings.field_keywords, settings.date_attribute)
    output = run_search(query, settings)

    table = table_cache.get(
        registry, settings.remote_groups, settings.case_sensitive
    )
    hits = resolve(
        output,
        table,
        mailbox_filter,
        path_normalization=settings.path_normalization,
    )
    articles = truncate_results(hits, settings.large_result_threshold, prompt)
    logger.debug("Query %r: %d hits, %d kept", raw_query, len(hits), len(articles))

    highlights = []
    if settings.highlight:
        highlights = extract(
            raw_query,
            settings.field_keywords,
            narrow_face=settings.narrow_face,
            wide_face=settings.wide_face,
        )

    return SearchOutcome(
        query=query,
        articles=articles,
        highlights=highlights,
        total_hits=len(hits),
    )
