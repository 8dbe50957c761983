"""Hybrid query translation.

A query mixes engine free text with field predicates:

    +cdate>2011/01/01 +title:important budget report

Predicates have the form +<keyword><operator><value>. The keyword must be
one of the configured field keywords, the operator is a single punctuation
character, and the value runs to the next whitespace. Everything that is
not a predicate is passed to the engine verbatim (whitespace collapsed).

Operator characters:
    ":"  contains (string match); equality on the date attribute
    "<"  less than or equal
    any other punctuation  greater than or equal
"""

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from enum import Enum

from estmail.config.settings import DEFAULT_FIELD_KEYWORDS

from .models import FieldPredicate, Operator, TranslatedQuery


class TokenKind(str, Enum):
    """Kinds of tokens produced by tokenize()."""

    PREDICATE = "predicate"
    TEXT = "text"


@dataclass(frozen=True)
class Token:
    """A whitespace-delimited run of the query.

    For PREDICATE tokens, keyword/operator_char/value hold the parsed parts.
    """

    kind: TokenKind
    text: str
    start: int
    keyword: str = ""
    operator_char: str = ""
    value: str = ""


def _is_operator_char(char: str) -> bool:
    return not (char.isalnum() or char == "_" or char.isspace())


def _match_predicate(text: str, keywords: Sequence[str]) -> tuple[str, str, str] | None:
    """Split "+<keyword><op><value>" into its parts, or None if not a predicate.

    Keywords are tried longest first so "mdate" wins over a shorter keyword
    sharing its prefix.
    """
    if not text.startswith("+"):
        return None

    body = text[1:]
    for keyword in sorted(keywords, key=len, reverse=True):
        if not body.startswith(keyword):
            continue
        rest = body[len(keyword):]
        # Needs an operator character and at least one value character
        if len(rest) < 2 or not _is_operator_char(rest[0]):
            continue
        return keyword, rest[0], rest[1:]

    return None


def tokenize(raw_query: str, keywords: Sequence[str] = DEFAULT_FIELD_KEYWORDS) -> Iterator[Token]:
    """Scan a query left to right into predicate and text tokens."""
    pos = 0
    length = len(raw_query)

    while pos < length:
        # Skip whitespace between runs
        while pos < length and raw_query[pos].isspace():
            pos += 1
        if pos >= length:
            break

        start = pos
        while pos < length and not raw_query[pos].isspace():
            pos += 1
        text = raw_query[start:pos]

        parts = _match_predicate(text, keywords)
        if parts is None:
            yield Token(TokenKind.TEXT, text, start)
        else:
            keyword, operator_char, value = parts
            yield Token(
                TokenKind.PREDICATE,
                text,
                start,
                keyword=keyword,
                operator_char=operator_char,
                value=value,
            )


def classify_operator(keyword: str, operator_char: str, date_attribute: str = "cdate") -> Operator:
    """Map a predicate's operator character to an Operator.

    Unknown punctuation falls back to GREATER_OR_EQUAL.
    """
    if operator_char == ":":
        if keyword == date_attribute:
            return Operator.EQUALS
        return Operator.CONTAINS
    if operator_char == "<":
        return Operator.LESS_OR_EQUAL
    return Operator.GREATER_OR_EQUAL


def translate(
    raw_query: str,
    keywords: Sequence[str] = DEFAULT_FIELD_KEYWORDS,
    date_attribute: str = "cdate",
) -> TranslatedQuery:
    """Split a hybrid query into free text and field predicates.

    Args:
        raw_query: Query as typed by the user.
        keywords: Attributes recognised as +keyword predicates.
        date_attribute: Attribute whose ":" operator means equality.

    Returns:
        TranslatedQuery with predicates in order of appearance. Repeated
        attributes are all kept.

    Example:
        >>> q = translate("+cdate>2011/01/01 +title:important moge")
        >>> q.free_text
        'moge'
        >>> [p.to_attr_expression() for p in q.predicates]
        ['@cdate NUMGE 2011/01/01', '@title STRINC important']
    """
    predicates: list[FieldPredicate] = []
    text_parts: list[str] = []

    for token in tokenize(raw_query, keywords):
        if token.kind is TokenKind.PREDICATE:
            operator = classify_operator(
                token.keyword, token.operator_char, date_attribute
            )
            predicates.append(FieldPredicate(token.keyword, operator, token.value))
        else:
            text_parts.append(token.text)

    return TranslatedQuery(" ".join(text_parts), tuple(predicates))
