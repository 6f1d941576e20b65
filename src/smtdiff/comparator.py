from __future__ import annotations

import time
import typing

from smtdiff.core import ComparisonStatistics, SmtOptions, getLogger
from smtdiff.errors import SmtDiffException
from smtdiff.outcome import CompareResult, ResyncOutcome
from smtdiff.smt import EquivalenceSolver, TimeBudget
from smtdiff.sync import FunctionComparator, SnippetSynchronizer

if typing.TYPE_CHECKING:
    from smtdiff.ir import InstructionCursor

logger = getLogger("smtdiff.comparator")


class SmtBlockComparator:
    """Resynchronizes two diverged blocks by proving snippets equivalent.

    The function comparator calls :meth:`resynchronize` right after the
    instructions at ``inst_l``/``inst_r`` compared unequal. Candidate
    synchronization points are searched in stream order and the snippets
    leading up to each of them are handed to z3; the first proven pair
    wins.

    On return both cursors point one instruction before the synchronization
    point (or before the block end), so the caller's usual "advance, then
    compare" loop resumes at the right place. The matching state is always
    left as it was on entry.

    Example:
        >>> comparator = SmtBlockComparator(function_comparator)  # doctest: +SKIP
        >>> comparator.resynchronize(inst_l, inst_r)  # doctest: +SKIP
        <CompareResult.EQUAL: 0>
    """

    def __init__(
        self,
        function_comparator: FunctionComparator,
        options: SmtOptions | None = None,
        clock: typing.Callable[[], float] | None = None,
        stats: ComparisonStatistics | None = None,
    ):
        self.function_comparator = function_comparator
        self.options = options if options is not None else SmtOptions()
        self.clock = clock if clock is not None else time.monotonic
        self.stats = stats if stats is not None else ComparisonStatistics()
        self.budget = TimeBudget(self.options.smt_timeout)
        self.synchronizer = SnippetSynchronizer(function_comparator, self.stats)
        self.solver: EquivalenceSolver | None = None

    def resynchronize(
        self, inst_l: InstructionCursor, inst_r: InstructionCursor
    ) -> CompareResult:
        """Find a synchronization point with provably equal snippets.

        Returns:
            EQUAL when some snippet pair was proven equivalent, NOT_EQUAL
            when every candidate synchronization point was refuted.

        Raises:
            NoSynchronizationPointException: the synchronization search
                reached the block ends.
            UnsupportedOperationException: a snippet cannot be encoded.
            OutOfTimeException: the SMT time budget was exhausted.
        """
        self.budget.reset(self.options.smt_timeout)
        self.stats.record_resynchronization()

        comparator = self.function_comparator
        state = comparator.state
        self.solver = EquivalenceSolver(
            state, self.options, self.budget, self.clock, self.stats
        )

        start_l = inst_l.copy()
        start_r = inst_r.copy()
        comparator.undo_last_inst_compare(inst_l, inst_r)
        entry = state.snapshot()

        try:
            while True:
                self.synchronizer.find_snippet_end(inst_l, inst_r)
                logger.update_snippet(
                    f"{inst_l.block.name}[{start_l.index}:{inst_l.index}] ~ "
                    f"{inst_r.block.name}[{start_r.index}:{inst_r.index}]"
                )
                result = self.solver.compare_snippets(
                    start_l, inst_l, start_r, inst_r, input_map=entry.sn_map_l
                )
                if result == CompareResult.EQUAL:
                    logger.debug("Snippets proven equal")
                    return CompareResult.EQUAL

                logger.debug("Snippets not proven equal, trying next candidate")
                state.restore(entry)
                inst_r.advance()
                if inst_r.at_end:
                    inst_r.move_to(start_r)
                    inst_l.advance()
                    if inst_l.at_end:
                        logger.debug("Candidates exhausted, blocks differ")
                        return CompareResult.NOT_EQUAL
        finally:
            inst_l.retreat()
            inst_r.retreat()
            state.restore(entry)
            logger.reset_snippet()

    compare = resynchronize

    def try_resynchronize(
        self, inst_l: InstructionCursor, inst_r: InstructionCursor
    ) -> ResyncOutcome:
        """Like :meth:`resynchronize` but reports failures as a value."""
        try:
            result = self.resynchronize(inst_l, inst_r)
        except SmtDiffException as e:
            self.stats.record_failure(e.kind.value)
            return ResyncOutcome(failure=e.kind, message=str(e))
        return ResyncOutcome(result=result)
