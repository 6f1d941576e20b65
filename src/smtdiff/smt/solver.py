from __future__ import annotations

import dataclasses
import time
import typing

from smtdiff.core import ComparisonStatistics, SmtOptions, getLogger
from smtdiff.errors import (
    OutOfTimeException,
    SmtDiffException,
    UnsupportedOperationException,
)
from smtdiff.ir import Instruction, InstructionCursor, Value
from smtdiff.matching import MatchingState
from smtdiff.outcome import CompareResult
from smtdiff.smt.encoder import (
    LEFT_PREFIX,
    RIGHT_PREFIX,
    Z3_INSTALLED,
    SemanticEncoder,
    requires_z3_installed,
)

if Z3_INSTALLED:
    import z3

logger = getLogger("smtdiff.smt")
queries_logger = getLogger("smtdiff.smt_queries")
debug_on = logger.debug_on

Clock = typing.Callable[[], float]


@dataclasses.dataclass(slots=True)
class TimeBudget:
    """Remaining SMT solving time of one resynchronization, in seconds.

    A non-positive ``total`` disables the budget: queries get no timeout and
    nothing is ever deducted.

    >>> budget = TimeBudget(10)
    >>> budget.consume(4.0)
    >>> budget.remaining
    6.0
    >>> budget.timeout_ms()
    6000
    >>> TimeBudget(0).timeout_ms() is None
    True
    """

    total: int
    remaining: float = dataclasses.field(init=False)

    def __post_init__(self):
        self.remaining = float(self.total)

    @property
    def limited(self) -> bool:
        return self.total > 0

    def reset(self, total: int | None = None) -> None:
        if total is not None:
            self.total = total
        self.remaining = float(self.total)

    def timeout_ms(self) -> int | None:
        if not self.limited:
            return None
        return max(1, int(self.remaining * 1000))

    def consume(self, elapsed: float) -> None:
        """Deduct *elapsed* seconds of an inconclusive query.

        Raises:
            OutOfTimeException: *elapsed* reached the remaining budget.
        """
        if not self.limited:
            return
        if elapsed >= self.remaining:
            self.remaining = 0.0
            raise OutOfTimeException()
        self.remaining -= elapsed


@dataclasses.dataclass(frozen=True, slots=True)
class SolverVerdict:
    """Outcome of one solver query."""

    status: str
    elapsed: float
    counterexample: dict[str, str] | None = None

    @property
    def proven(self) -> bool:
        return self.status == "unsat"


def _snippet(start: InstructionCursor, end: InstructionCursor) -> list[Instruction]:
    if end.block is not start.block:
        raise ValueError("Snippet boundaries must lie in the same block")
    return [start.block[i] for i in range(start.index, end.index)]


def _describe(start: InstructionCursor, end: InstructionCursor) -> str:
    return f"{start.block.name}[{start.index}:{end.index}]"


class EquivalenceSolver:
    """Proves two snippets equivalent given the values matched so far.

    The formula is satisfiable iff some assignment of the inputs, consistent
    with the already matched input pairs, lets the snippets disagree. UNSAT
    therefore means equal; SAT and unknown both mean "not proven".
    """

    def __init__(
        self,
        state: MatchingState,
        options: SmtOptions | None = None,
        budget: TimeBudget | None = None,
        clock: Clock = time.monotonic,
        stats: ComparisonStatistics | None = None,
    ):
        self.state = state
        self.options = options if options is not None else SmtOptions()
        self.budget = budget if budget is not None else TimeBudget(self.options.smt_timeout)
        self.clock = clock
        self.stats = stats if stats is not None else ComparisonStatistics()
        self.last_verdict: SolverVerdict | None = None

    @requires_z3_installed
    def compare_snippets(
        self,
        start_l: InstructionCursor,
        end_l: InstructionCursor,
        start_r: InstructionCursor,
        end_r: InstructionCursor,
        input_map: typing.Mapping[Value, int] | None = None,
    ) -> CompareResult:
        """Compare ``[start_l, end_l)`` with ``[start_r, end_r)``.

        Args:
            input_map: left value -> serial number map used to equate the
                snippet inputs. Defaults to the live ``sn_map_l``.

        Raises:
            UnsupportedOperationException: a snippet instruction cannot be
                encoded or z3 failed.
            OutOfTimeException: the query exhausted the time budget.
        """
        snippet_l = _snippet(start_l, end_l)
        snippet_r = _snippet(start_r, end_r)
        if not snippet_l or not snippet_r:
            logger.debug("Empty snippet, nothing to prove")
            return CompareResult.NOT_EQUAL

        label = f"{_describe(start_l, end_l)} ~ {_describe(start_r, end_r)}"
        try:
            return self._check(snippet_l, snippet_r, input_map, label)
        except UnsupportedOperationException as e:
            logger.warning("Cannot verify %s: %s", label, e)
            raise
        except SmtDiffException:
            raise
        except (z3.Z3Exception, TypeError, ValueError) as e:
            logger.warning("z3 failed on %s: %s", label, e)
            raise UnsupportedOperationException(str(e)) from e

    def _check(
        self,
        snippet_l: list[Instruction],
        snippet_r: list[Instruction],
        input_map: typing.Mapping[Value, int] | None,
        label: str,
    ) -> CompareResult:
        encoder = SemanticEncoder(z3.Context())
        solver = z3.Solver(ctx=encoder.ctx)
        timeout = self.budget.timeout_ms()
        if timeout is not None:
            solver.set("timeout", timeout)

        for left, right in self._input_pairs(snippet_l, input_map):
            solver.add(
                encoder.value_expr(left, LEFT_PREFIX)
                == encoder.value_expr(right, RIGHT_PREFIX)
            )
        for prefix, snippet in ((LEFT_PREFIX, snippet_l), (RIGHT_PREFIX, snippet_r)):
            for inst in snippet:
                expr = encoder.encode(inst, prefix)
                if expr is not None:
                    solver.add(expr)

        if self.options.assert_outputs:
            outputs = self._output_pairs(snippet_l, snippet_r)
            if not outputs:
                logger.debug("No snippet outputs to relate in %s", label)
                return CompareResult.NOT_EQUAL
            differs = [
                encoder.value_expr(left, LEFT_PREFIX)
                != encoder.value_expr(right, RIGHT_PREFIX)
                for left, right in outputs
            ]
            solver.add(differs[0] if len(differs) == 1 else z3.Or(differs))

        if self.options.dump_queries:
            queries_logger.info("; %s\n%s(check-sat)\n", label, solver.sexpr())

        start = self.clock()
        status = solver.check()
        elapsed = self.clock() - start
        self.stats.record_query(str(status), elapsed)

        if status == z3.unsat:
            self.last_verdict = SolverVerdict("unsat", elapsed)
            logger.debug("Proved %s equal in %.3f s", label, elapsed)
            return CompareResult.EQUAL

        counterexample = None
        if status == z3.sat:
            model = solver.model()
            counterexample = {d.name(): str(model[d]) for d in model.decls()}
            if debug_on:
                logger.debug("Counterexample for %s: %s", label, counterexample)
        else:
            logger.debug("Solver gave up on %s: %s", label, solver.reason_unknown())
        self.last_verdict = SolverVerdict(str(status), elapsed, counterexample)

        try:
            self.budget.consume(elapsed)
        except OutOfTimeException:
            logger.warning(
                "SMT budget of %d s exhausted while verifying %s",
                self.budget.total,
                label,
            )
            raise
        return CompareResult.NOT_EQUAL

    def _input_pairs(
        self,
        snippet_l: list[Instruction],
        input_map: typing.Mapping[Value, int] | None,
    ) -> typing.Iterator[tuple[Value, Value]]:
        """Matched (left, right) pairs for the operands of the left snippet."""
        sn_map = self.state.sn_map_l if input_map is None else input_map
        for inst in snippet_l:
            for operand in inst.operands:
                sn = sn_map.get(operand)
                if sn is None:
                    continue
                pair = self.state.mapped_values_by_sn.get(sn)
                if pair is not None:
                    yield pair

    def _output_pairs(
        self, snippet_l: list[Instruction], snippet_r: list[Instruction]
    ) -> list[tuple[Value, Value]]:
        """Matched pairs whose values are produced inside the two snippets."""
        produced_l = set(snippet_l)
        produced_r = set(snippet_r)
        return [
            (left, right)
            for _, (left, right) in sorted(self.state.mapped_values_by_sn.items())
            if left in produced_l and right in produced_r
        ]
