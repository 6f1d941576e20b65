"""Search for the point where two diverged instruction streams meet again."""

from __future__ import annotations

import typing

from smtdiff.core import ComparisonStatistics, getLogger
from smtdiff.errors import NoSynchronizationPointException
from smtdiff.outcome import CompareResult

if typing.TYPE_CHECKING:
    from smtdiff.ir import BasicBlock, Instruction, InstructionCursor
    from smtdiff.matching import MatchingState

logger = getLogger("smtdiff.sync")
debug_on = logger.debug_on


@typing.runtime_checkable
class FunctionComparator(typing.Protocol):
    """Protocol of the structural comparator that drives smtdiff.

    The comparator owns the matching state and knows how to compare two
    blocks instruction by instruction. smtdiff calls back into it to probe
    candidate synchronization points.
    """

    state: MatchingState

    def may_skip_instruction(self, inst: Instruction) -> bool:
        """True for instructions the comparison may ignore."""
        ...

    def cmp_basic_blocks_from_instructions(
        self,
        block_l: BasicBlock,
        block_r: BasicBlock,
        inst_l: InstructionCursor,
        inst_r: InstructionCursor,
        match_within_block: bool,
        allow_speculative: bool,
    ) -> CompareResult:
        """Compare the rest of two blocks starting at the given cursors."""
        ...

    def undo_last_inst_compare(
        self, inst_l: InstructionCursor, inst_r: InstructionCursor
    ) -> None:
        """Revert the side effects of comparing the instructions at the cursors."""
        ...


class SnippetSynchronizer:
    def __init__(
        self,
        function_comparator: FunctionComparator,
        stats: ComparisonStatistics | None = None,
    ):
        self.function_comparator = function_comparator
        self.stats = stats if stats is not None else ComparisonStatistics()

    def _skippable(self, inst: Instruction) -> bool:
        return inst.is_debug_info or self.function_comparator.may_skip_instruction(inst)

    def find_snippet_end(
        self, inst_l: InstructionCursor, inst_r: InstructionCursor
    ) -> None:
        """Move both cursors to the nearest synchronization point.

        Left positions are tried in stream order; for each of them every
        right position from the one given at call time is probed. The first
        pair on which the function comparator reports equality wins and the
        matching state it produced is kept.

        Raises:
            NoSynchronizationPointException: no pair of positions before the
                block ends compares equal.
        """
        comparator = self.function_comparator
        block_l, block_r = inst_l.block, inst_r.block
        start_r = inst_r.copy()

        while not inst_l.at_end:
            if self._skippable(inst_l.instruction):
                inst_l.advance()
                continue
            inst_r.move_to(start_r)
            while not inst_r.at_end:
                if self._skippable(inst_r.instruction):
                    inst_r.advance()
                    continue
                snapshot = comparator.state.snapshot()
                result = comparator.cmp_basic_blocks_from_instructions(
                    block_l, block_r, inst_l.copy(), inst_r.copy(), True, True
                )
                synchronized = result == CompareResult.EQUAL
                self.stats.record_probe(synchronized)
                if debug_on:
                    logger.debug(
                        "Probe %s ~ %s: %s",
                        inst_l.instruction,
                        inst_r.instruction,
                        CompareResult(result).name,
                    )
                if synchronized:
                    return
                comparator.state.restore(snapshot)
                inst_r.advance()
            inst_l.advance()

        logger.info(
            "No synchronization point between %s and %s", block_l.name, block_r.name
        )
        raise NoSynchronizationPointException()
