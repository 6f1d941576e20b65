from __future__ import annotations

import dataclasses
import json
from collections import defaultdict
from typing import Any, Dict

from .logging import getLogger

logger = getLogger("smtdiff")


@dataclasses.dataclass
class ComparisonStatistics:
    """Counters for SMT-based snippet comparison.

    One instance is usually shared by a comparator and the components it
    drives, so a single ``report()`` covers synchronization search and
    solver work alike.
    """

    resynchronizations: int = 0
    probes: int = 0
    synchronization_points: int = 0
    queries: Dict[str, int] = dataclasses.field(
        default_factory=lambda: defaultdict(int)
    )
    solver_seconds: float = 0.0
    failures: Dict[str, int] = dataclasses.field(
        default_factory=lambda: defaultdict(int)
    )

    def reset(self) -> None:
        self.resynchronizations = 0
        self.probes = 0
        self.synchronization_points = 0
        self.queries.clear()
        self.solver_seconds = 0.0
        self.failures.clear()

    # -------------------------------------------------------------------------
    # Recording APIs
    # -------------------------------------------------------------------------

    def record_resynchronization(self) -> None:
        self.resynchronizations += 1

    def record_probe(self, synchronized: bool) -> None:
        self.probes += 1
        if synchronized:
            self.synchronization_points += 1

    def record_query(self, status: str, elapsed: float) -> None:
        self.queries[status] += 1
        self.solver_seconds += elapsed

    def record_failure(self, kind: str) -> None:
        self.failures[kind] += 1

    # -------------------------------------------------------------------------
    # Query APIs
    # -------------------------------------------------------------------------

    @property
    def total_queries(self) -> int:
        return sum(self.queries.values())

    def get_query_count(self, status: str) -> int:
        return self.queries.get(status, 0)

    # -------------------------------------------------------------------------
    # Reporting APIs
    # -------------------------------------------------------------------------

    def report(self) -> None:
        logger.info(
            "SMT comparator: %d resynchronizations, %d probes, %d synchronization points",
            self.resynchronizations,
            self.probes,
            self.synchronization_points,
        )
        for status, count in sorted(self.queries.items()):
            if count > 0:
                logger.info("Solver returned '%s' %d times", status, count)
        if self.total_queries:
            logger.info("Total solver time: %.3f s", self.solver_seconds)
        for kind, count in sorted(self.failures.items()):
            if count > 0:
                logger.info("Comparison failed with '%s' %d times", kind, count)

    def summary(self) -> Dict[str, Any]:
        """Get a summary dict for programmatic access."""
        return {
            "resynchronizations": self.resynchronizations,
            "probes": self.probes,
            "synchronization_points": self.synchronization_points,
            "queries": dict(self.queries),
            "solver_seconds": self.solver_seconds,
            "failures": dict(self.failures),
        }

    def to_json(self, indent: int = 2) -> str:
        """Serialize statistics to JSON string."""
        return json.dumps(self.summary(), indent=indent, sort_keys=True)
