"""Tests for highlight pattern extraction."""

import re

from estmail.search.highlight import extract, highlight_text, is_wide, keywords_from_query
from estmail.search.models import HighlightRule


class TestKeywordsFromQuery:
    """Tests for keywords_from_query()."""

    def test_plain_words(self):
        """Free-text words are returned in order."""
        assert keywords_from_query("budget report") == ["budget", "report"]

    def test_strips_predicates_and_not_clauses(self):
        """Predicates and negated words are not highlighted."""
        query = "+from:alice budget ANDNOT draft !spam +cdate>2011/01/01"

        assert keywords_from_query(query) == ["budget"]

    def test_strips_regexp_and_grouping(self):
        """/regexp/ clauses, brackets and quotes are removed."""
        query = '(budget | "annual report") /inv[0-9]+/'

        assert keywords_from_query(query) == ["budget", "annual", "report"]

    def test_strips_boolean_operators(self):
        """AND and OR are not keywords."""
        assert keywords_from_query("budget AND report OR memo") == [
            "budget",
            "report",
            "memo",
        ]

    def test_duplicates_removed(self):
        """Each word appears once."""
        assert keywords_from_query("memo memo") == ["memo"]


class TestExtract:
    """Tests for extract()."""

    def test_single_narrow_pattern(self):
        """ASCII words give one word-boundary alternation."""
        rules = extract("budget report", narrow_face="hl")

        assert rules == [HighlightRule(r"\b(budget|report)\b", 1, "hl")]

    def test_wide_and_narrow_partitions(self):
        """Wide-script words get their own rule and face."""
        rules = extract("会議 budget", narrow_face="n", wide_face="w")

        assert [r.face for r in rules] == ["n", "w"]
        assert "会議" in rules[1].pattern
        assert "budget" in rules[0].pattern

    def test_no_words_no_rules(self):
        """A predicate-only query has nothing to highlight."""
        assert extract("+from:alice") == []

    def test_special_characters_escaped(self):
        """Regex metacharacters in words are escaped."""
        rules = extract("c++")

        assert rules[0].pattern == r"\b(c\+\+)\b"


class TestHighlightText:
    """Tests for highlight_text()."""

    def test_spans_case_insensitive(self):
        """Matches are found regardless of case and sorted by position."""
        rules = extract("budget")

        assert highlight_text("Budget and budget", rules) == [
            (0, 6, "bold"),
            (11, 17, "bold"),
        ]

    def test_word_boundaries(self):
        """Words inside longer words are not highlighted."""
        rules = extract("port")

        assert highlight_text("report port", rules) == [(7, 11, "bold")]


def test_is_wide():
    """East Asian wide characters are detected."""
    assert is_wide("会議")
    assert is_wide("ｆｕｌｌ")
    assert not is_wide("budget")
