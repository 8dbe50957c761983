"""Resolution of engine output into (mailbox, article number) hits.

With -vu the engine prints a header block followed by one URI per hit:

    --------[02D18ADF]--------
    VERSION	1.0
    ...
    --------[02D18ADF]--------
    1	file:///home/user/Mail/inbox/42
    2	file:///home/user/Mail/lists/python/7
    --------[02D18ADF]--------:END

Article files are named by their number, so each hit splits into the
mailbox directory and the trailing digits. The directory is looked up in a
DirectoryTable; paths belonging to no known mailbox are dropped.
"""

import logging
import os
import re
from collections.abc import Callable, Collection, Iterator
from urllib.parse import unquote

from estmail.exceptions import InvalidMaximumError
from estmail.storage.directory import DirectoryTable

from .models import ArticleRef

logger = logging.getLogger(__name__)

FILE_URI_MARKER = "file://"

# "/c|/Mail" as written by the engine for drive-letter paths
DRIVE_PATTERN = re.compile(r"^/([A-Za-z])\|/")

# Called with the hit count, returns the user's answer ("" keeps all)
PromptCallback = Callable[[int], str]


def split_trailing_digits(line: str) -> tuple[str, str]:
    """Split a line into (prefix, trailing digits) by scanning backward.

    Example:
        >>> split_trailing_digits("/home/user/Mail/inbox42")
        ('/home/user/Mail/inbox', '42')
    """
    end = len(line)
    while end > 0 and "0" <= line[end - 1] <= "9":
        end -= 1
    return line[:end], line[end:]


def parse_result_lines(raw_output: str) -> Iterator[tuple[str, int]]:
    """Yield (directory path, article number) for each hit in engine output.

    Everything up to and including the first file:// marker is discarded.
    Lines carrying their own marker contribute the text after it; lines
    without trailing digits (separators, blanks) are skipped.
    """
    marker_at = raw_output.find(FILE_URI_MARKER)
    if marker_at == -1:
        return

    body = raw_output[marker_at + len(FILE_URI_MARKER):]
    for line in body.splitlines():
        line = line.strip()
        marker = line.find(FILE_URI_MARKER)
        if marker != -1:
            line = line[marker + len(FILE_URI_MARKER):]

        path, digits = split_trailing_digits(line)
        if not digits:
            continue

        path = unquote(path)
        if len(path) > 1:
            path = path.rstrip("/")
        if not path:
            continue

        yield path, int(digits)


def normalize_path(path: str, path_normalization: bool = False) -> str:
    """Turn an engine path into a filesystem path.

    With path_normalization, "/c|/..." becomes "c:/..."; otherwise a leading
    "~" is expanded to the home directory.
    """
    if path_normalization:
        return DRIVE_PATTERN.sub(r"\1:/", path)
    if path.startswith("~"):
        return os.path.expanduser(path)
    return path


def resolve(
    raw_output: str,
    table: DirectoryTable,
    mailbox_filter: Collection[str] | None = None,
    *,
    path_normalization: bool = False,
) -> list[ArticleRef]:
    """Resolve engine output into article references.

    Args:
        raw_output: Captured engine stdout.
        table: Directory-to-mailbox table.
        mailbox_filter: If non-empty, only hits in these mailboxes are kept.
        path_normalization: Rewrite drive-letter paths before lookup.

    Returns:
        ArticleRefs in the order the engine reported them.
    """
    articles = []
    misses = 0

    for path, number in parse_result_lines(raw_output):
        mailbox_id = table.lookup(normalize_path(path, path_normalization))
        if mailbox_id is None:
            misses += 1
            continue
        if mailbox_filter and mailbox_id not in mailbox_filter:
            continue
        articles.append(ArticleRef(mailbox_id, number))

    if misses:
        logger.debug("Dropped %d hits outside known mailboxes", misses)

    return articles


def truncate_results(
    articles: list[ArticleRef],
    threshold: int | None,
    prompt: PromptCallback | None,
) -> list[ArticleRef]:
    """Ask for a maximum when there are more hits than the threshold.

    Args:
        articles: Resolved hits.
        threshold: Hit count above which the prompt is shown (None disables).
        prompt: Called with the hit count; returns the maximum as text.
            An empty or blank answer keeps every hit.

    Returns:
        The leading articles, at most the number answered.

    Raises:
        InvalidMaximumError: If the answer is not a non-negative integer.
    """
    if prompt is None or threshold is None or threshold <= 0:
        return articles
    if len(articles) <= threshold:
        return articles

    answer = prompt(len(articles)).strip()
    if not answer:
        return articles

    try:
        limit = int(answer)
    except ValueError:
        raise InvalidMaximumError(f"Not a number: {answer!r}") from None
    if limit < 0:
        raise InvalidMaximumError(f"Maximum must not be negative: {limit}")
    return articles[:limit]
