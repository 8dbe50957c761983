"""Highlight patterns derived from a search query.

Only the positive free-text words are highlighted: NOT clauses, field
predicates, /regexp/ clauses, grouping and quoting punctuation and boolean
operators are removed first. Words in wide (East Asian) scripts and other
words get separate patterns so each can use its own face.
"""

import re
import unicodedata
from collections.abc import Sequence

from estmail.config.settings import DEFAULT_FIELD_KEYWORDS

from .models import HighlightRule
from .query import TokenKind, tokenize

NOT_CLAUSE = re.compile(r"(?:\b(?:ANDNOT|NOT)\s+|(?:^|(?<=\s))[!-])\S+")
REGEXP_CLAUSE = re.compile(r"/[^/\s][^/]*/")
GROUPING_CHARS = re.compile(r"[()\[\]{}\"']")
BOOLEAN_WORDS = {"AND", "OR", "ANDNOT", "NOT", "|", "&", "&&", "||"}


def is_wide(token: str) -> bool:
    """True if the token contains wide or fullwidth characters."""
    return any(unicodedata.east_asian_width(char) in ("W", "F") for char in token)


def keywords_from_query(
    raw_query: str,
    keywords: Sequence[str] = DEFAULT_FIELD_KEYWORDS,
) -> list[str]:
    """Extract the positive free-text words of a query, first occurrence kept."""
    text = NOT_CLAUSE.sub(" ", raw_query)
    text = " ".join(
        token.text
        for token in tokenize(text, keywords)
        if token.kind is TokenKind.TEXT
    )
    text = REGEXP_CLAUSE.sub(" ", text)
    text = GROUPING_CHARS.sub(" ", text)

    words: dict[str, None] = {}
    for word in text.split():
        if word in BOOLEAN_WORDS:
            continue
        words.setdefault(word, None)
    return list(words)


def _alternation(words: list[str]) -> str:
    # Longest first so a word is not shadowed by its own prefix
    ordered = sorted(words, key=len, reverse=True)
    return r"\b(" + "|".join(re.escape(word) for word in ordered) + r")\b"


def extract(
    raw_query: str,
    keywords: Sequence[str] = DEFAULT_FIELD_KEYWORDS,
    narrow_face: str = "bold",
    wide_face: str = "bold",
) -> list[HighlightRule]:
    """Build highlight rules for a query.

    Returns at most two rules (narrow-script words, wide-script words), each
    a word-boundary anchored alternation highlighting capture group 1. A rule
    is omitted when it would have no words.
    """
    words = keywords_from_query(raw_query, keywords)
    narrow = [w for w in words if not is_wide(w)]
    wide = [w for w in words if is_wide(w)]

    rules = []
    if narrow:
        rules.append(HighlightRule(_alternation(narrow), 1, narrow_face))
    if wide:
        rules.append(HighlightRule(_alternation(wide), 1, wide_face))
    return rules


def highlight_text(text: str, rules: Sequence[HighlightRule]) -> list[tuple[int, int, str]]:
    """Find (start, end, face) spans of every rule match in text, sorted."""
    spans = []
    for rule in rules:
        for match in re.finditer(rule.pattern, text, flags=re.IGNORECASE):
            spans.append((match.start(rule.group), match.end(rule.group), rule.face))
    return sorted(spans)
