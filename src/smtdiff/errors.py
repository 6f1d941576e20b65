from __future__ import annotations

import typing

from smtdiff.outcome import FailureKind


class SmtDiffException(Exception):
    """Base class for conditions that abort an SMT snippet comparison."""

    kind: typing.ClassVar[FailureKind]


class NoSynchronizationPointException(SmtDiffException):
    kind = FailureKind.NO_SYNCHRONIZATION_POINT

    def __init__(self, message: str = "No synchronization point found"):
        super().__init__(message)


class UnsupportedOperationException(SmtDiffException):
    kind = FailureKind.UNSUPPORTED_OPERATION


class OutOfTimeException(SmtDiffException):
    kind = FailureKind.OUT_OF_TIME

    def __init__(self, message: str = "SMT solving ran out of time"):
        super().__init__(message)
