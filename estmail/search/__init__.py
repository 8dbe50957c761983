"""Search module: query translation, engine invocation, result resolution.

v1: Hyper Estraier via the estcmd command line.
"""

from estmail.exceptions import EngineInvocationError, EngineNotFoundError

from .engine import build_search_command, invoke, run_search
from .highlight import extract
from .models import (
    ArticleRef,
    FieldPredicate,
    HighlightRule,
    Operator,
    SearchOutcome,
    TranslatedQuery,
)
from .query import translate
from .results import resolve, truncate_results
from .service import search

__all__ = [
    "ArticleRef",
    "EngineInvocationError",
    "EngineNotFoundError",
    "FieldPredicate",
    "HighlightRule",
    "Operator",
    "SearchOutcome",
    "TranslatedQuery",
    "build_search_command",
    "extract",
    "invoke",
    "resolve",
    "run_search",
    "search",
    "translate",
    "truncate_results",
]
