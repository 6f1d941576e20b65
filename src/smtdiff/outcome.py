"""Result types shared by the comparator components."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class CompareResult(enum.IntEnum):
    """Comparison verdict, ordered the way function comparators return them."""

    EQUAL = 0
    NOT_EQUAL = 1


class FailureKind(enum.Enum):
    """Conditions that abort a resynchronization attempt."""

    NO_SYNCHRONIZATION_POINT = "no_synchronization_point"
    UNSUPPORTED_OPERATION = "unsupported_operation"
    OUT_OF_TIME = "out_of_time"


@dataclass(frozen=True, slots=True)
class ResyncOutcome:
    """Tagged result of one resynchronization.

    Exactly one of ``result`` and ``failure`` is set.
    """

    result: CompareResult | None = None
    failure: FailureKind | None = None
    message: str = ""

    @property
    def is_equal(self) -> bool:
        return self.result is CompareResult.EQUAL

    @property
    def failed(self) -> bool:
        return self.failure is not None
