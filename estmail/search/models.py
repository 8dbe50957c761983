"""Data models for query translation and search results."""

from dataclasses import dataclass, field
from enum import Enum


class Operator(str, Enum):
    """Comparison applied by a field predicate.

    The value is the engine's attribute operator keyword.
    """

    EQUALS = "NUMEQ"
    CONTAINS = "STRINC"
    GREATER_OR_EQUAL = "NUMGE"
    LESS_OR_EQUAL = "NUMLE"


@dataclass(frozen=True)
class FieldPredicate:
    """A field-restricted filter extracted from a query string."""

    attribute: str
    operator: Operator
    value: str

    def to_attr_expression(self) -> str:
        """Render as an engine attribute expression, e.g. "@title STRINC foo"."""
        return f"@{self.attribute} {self.operator.value} {self.value}"

    def to_query_token(self) -> str:
        """Render back into the +keyword form accepted by translate()."""
        if self.operator in (Operator.EQUALS, Operator.CONTAINS):
            char = ":"
        elif self.operator is Operator.LESS_OR_EQUAL:
            char = "<"
        else:
            char = ">"
        return f"+{self.attribute}{char}{self.value}"


@dataclass(frozen=True)
class TranslatedQuery:
    """A query split into engine free text and structured predicates."""

    free_text: str
    predicates: tuple[FieldPredicate, ...] = ()

    def to_query(self) -> str:
        """Rebuild a query string with the same selection semantics."""
        tokens = [p.to_query_token() for p in self.predicates]
        if self.free_text:
            tokens.append(self.free_text)
        return " ".join(tokens)


@dataclass(frozen=True)
class ArticleRef:
    """A search hit: an article number within a mailbox."""

    mailbox_id: str  # e.g. "nnml:INBOX"
    sequence_number: int

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "mailbox": self.mailbox_id,
            "article": self.sequence_number,
        }


@dataclass(frozen=True)
class HighlightRule:
    """A regular expression whose capture group should be highlighted."""

    pattern: str
    group: int
    face: str


@dataclass
class SearchOutcome:
    """Everything a host needs to render one search."""

    query: TranslatedQuery
    articles: list[ArticleRef] = field(default_factory=list)
    highlights: list[HighlightRule] = field(default_factory=list)
    total_hits: int = 0  # Resolved hits before truncation

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "free_text": self.query.free_text,
            "predicates": [
                p.to_attr_expression() for p in self.query.predicates
            ],
            "total_hits": self.total_hits,
            "articles": [a.to_dict() for a in self.articles],
            "highlights": [
                {"pattern": h.pattern, "group": h.group, "face": h.face}
                for h in self.highlights
            ],
        }
