__version__ = "0.1.0"

from smtdiff.comparator import SmtBlockComparator
from smtdiff.errors import (
    NoSynchronizationPointException,
    OutOfTimeException,
    SmtDiffException,
    UnsupportedOperationException,
)
from smtdiff.matching import MatchingSnapshot, MatchingState
from smtdiff.outcome import CompareResult, FailureKind, ResyncOutcome
from smtdiff.sync import FunctionComparator, SnippetSynchronizer

__all__ = [
    "SmtBlockComparator",
    "SnippetSynchronizer",
    "FunctionComparator",
    "MatchingState",
    "MatchingSnapshot",
    "CompareResult",
    "FailureKind",
    "ResyncOutcome",
    "SmtDiffException",
    "NoSynchronizationPointException",
    "UnsupportedOperationException",
    "OutOfTimeException",
]
