"""Tests for snippet equivalence queries and the SMT time budget."""

import logging

import pytest

from smtdiff.core import ComparisonStatistics, SmtOptions
from smtdiff.errors import OutOfTimeException, UnsupportedOperationException
from smtdiff.ir import (
    Argument,
    BasicBlock,
    IRBuilder,
    const_int,
    declare,
    f64,
    fmuladd_intrinsic,
    i1,
    i32,
    i64,
    ptr,
)
from smtdiff.matching import MatchingState
from smtdiff.outcome import CompareResult
from smtdiff.smt import EquivalenceSolver, TimeBudget

from tests.helpers.comparators import FakeClock

EQUAL = CompareResult.EQUAL
NOT_EQUAL = CompareResult.NOT_EQUAL


class TestTimeBudget:
    def test_consume(self):
        budget = TimeBudget(10)
        budget.consume(4)
        budget.consume(4)
        assert budget.remaining == pytest.approx(2)
        with pytest.raises(OutOfTimeException):
            budget.consume(2)

    def test_timeout_tracks_remaining_time(self):
        budget = TimeBudget(3)
        assert budget.timeout_ms() == 3000
        budget.consume(1.5)
        assert budget.timeout_ms() == 1500

    def test_unlimited(self):
        for total in (0, -1):
            budget = TimeBudget(total)
            assert not budget.limited
            assert budget.timeout_ms() is None
            budget.consume(10**6)

    def test_reset(self):
        budget = TimeBudget(5)
        budget.consume(3)
        budget.reset()
        assert budget.remaining == 5
        budget.reset(7)
        assert budget.total == 7
        assert budget.remaining == 7


class SnippetPair:
    """Two blocks over shared, pre-matched i32 arguments ``a`` and ``b``."""

    def __init__(self, type=i32):
        self.state = MatchingState()
        self.a = Argument(type, "a")
        self.b = Argument(type, "b")
        self.a_r = Argument(type, "a")
        self.b_r = Argument(type, "b")
        self.state.map_values(self.a, self.a_r)
        self.state.map_values(self.b, self.b_r)
        self.left = IRBuilder(BasicBlock("left"))
        self.right = IRBuilder(BasicBlock("right"))

    def bounds(self):
        left, right = self.left.block, self.right.block
        return left.begin(), left.end(), right.begin(), right.end()

    def match_results(self):
        """Match the last results, as a synchronization probe would."""
        self.state.map_values(self.left.block[-1], self.right.block[-1])


def make_solver(pair, options=None, budget=None, clock=None, stats=None):
    options = options if options is not None else SmtOptions()
    return EquivalenceSolver(
        pair.state,
        options,
        budget if budget is not None else TimeBudget(options.smt_timeout),
        clock if clock is not None else FakeClock(),
        stats,
    )


class TestCompareSnippets:
    def test_identical_sequences_are_equal(self):
        pair = SnippetPair()
        for bld, (a, b) in ((pair.left, (pair.a, pair.b)), (pair.right, (pair.a_r, pair.b_r))):
            t = bld.mul(a, b)
            bld.sub(t, a)
        pair.match_results()
        assert make_solver(pair).compare_snippets(*pair.bounds()) == EQUAL

    def test_commutative_reordering(self):
        pair = SnippetPair()
        pair.left.add(pair.a, pair.b)
        pair.right.add(pair.b_r, pair.a_r)
        pair.match_results()
        solver = make_solver(pair)
        assert solver.compare_snippets(*pair.bounds()) == EQUAL
        assert solver.last_verdict.proven

    def test_non_commutative_reordering(self):
        pair = SnippetPair()
        pair.left.sub(pair.a, pair.b)
        pair.right.sub(pair.b_r, pair.a_r)
        pair.match_results()
        solver = make_solver(pair)
        assert solver.compare_snippets(*pair.bounds()) == NOT_EQUAL
        assert solver.last_verdict.status == "sat"
        assert solver.last_verdict.counterexample

    def test_unsigned_vs_signed_comparison(self):
        pair = SnippetPair()
        pair.left.icmp("ugt", pair.a, pair.b)
        pair.right.icmp("sgt", pair.a_r, pair.b_r)
        pair.match_results()
        assert make_solver(pair).compare_snippets(*pair.bounds()) == NOT_EQUAL

    def test_swapped_predicate(self):
        pair = SnippetPair()
        pair.left.icmp("ugt", pair.a, pair.b)
        pair.right.icmp("ult", pair.b_r, pair.a_r)
        pair.match_results()
        assert make_solver(pair).compare_snippets(*pair.bounds()) == EQUAL

    def test_different_lengths(self):
        pair = SnippetPair()
        pair.left.shl(pair.a, pair.b)
        pair.left.add(pair.left.block[0], pair.left.block[0])
        pair.right.shl(pair.a_r, pair.b_r)
        pair.right.mul(pair.right.block[0], const_int(i32, 2))
        pair.match_results()
        assert make_solver(pair).compare_snippets(*pair.bounds()) == EQUAL

    def test_unmatched_inputs_are_independent(self):
        pair = SnippetPair()
        pair.state = MatchingState()
        pair.left.add(pair.a, pair.b)
        pair.right.add(pair.a_r, pair.b_r)
        pair.match_results()
        assert make_solver(pair).compare_snippets(*pair.bounds()) == NOT_EQUAL

    def test_input_map_overrides_live_map(self):
        pair = SnippetPair()
        before = pair.state.snapshot()
        pair.left.add(pair.a, pair.b)
        pair.right.add(pair.a_r, pair.b_r)
        pair.match_results()
        solver = make_solver(pair)
        assert solver.compare_snippets(*pair.bounds(), input_map={}) == NOT_EQUAL
        assert solver.compare_snippets(*pair.bounds(), input_map=before.sn_map_l) == EQUAL

    def test_uninterpreted_calls(self):
        pair = SnippetPair(f64)
        cos = declare("cos", f64, (f64,))
        sin = declare("sin", f64, (f64,))
        pair.left.call(cos, (pair.a,))
        pair.right.call(cos, (pair.a_r,))
        pair.match_results()
        assert make_solver(pair).compare_snippets(*pair.bounds()) == EQUAL

        other = SnippetPair(f64)
        other.left.call(cos, (other.a,))
        other.right.call(sin, (other.a_r,))
        other.match_results()
        assert make_solver(other).compare_snippets(*other.bounds()) == NOT_EQUAL

    def test_unmatched_outputs_are_not_guessed(self):
        pair = SnippetPair()
        pair.left.add(pair.a, pair.b)
        pair.left.mul(pair.a, pair.b)
        pair.right.sub(pair.a_r, pair.b_r)
        pair.right.mul(pair.a_r, pair.b_r)
        stats = ComparisonStatistics()
        # the last results agree, but nothing tells which results are outputs
        assert make_solver(pair, stats=stats).compare_snippets(*pair.bounds()) == NOT_EQUAL
        assert stats.total_queries == 0

    def test_boolean_add_wraps(self):
        pair = SnippetPair(i1)
        pair.left.add(pair.a, pair.b)
        pair.right.or_(pair.a_r, pair.b_r)
        pair.match_results()
        # true + true is false in i1, true | true is not
        assert make_solver(pair).compare_snippets(*pair.bounds()) == NOT_EQUAL

        same = SnippetPair(i1)
        same.left.add(same.a, same.b)
        same.right.xor(same.a_r, same.b_r)
        same.match_results()
        assert make_solver(same).compare_snippets(*same.bounds()) == EQUAL

    def test_nothing_to_relate(self):
        pair = SnippetPair()
        pair.left.add(pair.a, pair.b)
        pair.right.zext(pair.a_r, i64)
        stats = ComparisonStatistics()
        assert make_solver(pair, stats=stats).compare_snippets(*pair.bounds()) == NOT_EQUAL
        assert stats.total_queries == 0

    def test_body_only_query(self):
        pair = SnippetPair()
        pair.left.add(pair.a, pair.b)
        pair.right.add(pair.a_r, pair.b_r)
        pair.match_results()
        options = SmtOptions(assert_outputs=False)
        # without a postcondition the instruction encodings are satisfiable
        assert make_solver(pair, options).compare_snippets(*pair.bounds()) == NOT_EQUAL


class TestEmptySnippets:
    @pytest.mark.parametrize("timeout", [500, 0])
    def test_empty_side_is_not_equal(self, timeout):
        pair = SnippetPair()
        pair.left.add(pair.a, pair.b)
        clock = FakeClock(step=1000)
        stats = ComparisonStatistics()
        budget = TimeBudget(timeout)
        solver = make_solver(pair, SmtOptions(smt_timeout=timeout), budget, clock, stats)
        start_l, end_l, start_r, _ = pair.bounds()
        assert solver.compare_snippets(start_l, end_l, start_r, start_r) == NOT_EQUAL
        assert solver.compare_snippets(start_l, start_l, start_r, start_r) == NOT_EQUAL
        assert clock.readings == 0
        assert budget.remaining == timeout
        assert stats.total_queries == 0


class TestBudget:
    def _refuted_pair(self):
        pair = SnippetPair()
        pair.left.sub(pair.a, pair.b)
        pair.right.sub(pair.b_r, pair.a_r)
        pair.match_results()
        return pair

    def test_exhausted_exactly_at_the_limit(self):
        pair = self._refuted_pair()
        budget = TimeBudget(10)
        solver = make_solver(pair, SmtOptions(smt_timeout=10), budget, FakeClock(step=2.5))
        for _ in range(3):
            assert solver.compare_snippets(*pair.bounds()) == NOT_EQUAL
        assert budget.remaining == pytest.approx(2.5)
        with pytest.raises(OutOfTimeException):
            solver.compare_snippets(*pair.bounds())

    def test_proofs_do_not_consume_budget(self):
        pair = SnippetPair()
        pair.left.add(pair.a, pair.b)
        pair.right.add(pair.b_r, pair.a_r)
        pair.match_results()
        budget = TimeBudget(10)
        solver = make_solver(pair, SmtOptions(smt_timeout=10), budget, FakeClock(step=100))
        assert solver.compare_snippets(*pair.bounds()) == EQUAL
        assert budget.remaining == 10

    def test_unlimited_budget_never_runs_out(self):
        pair = self._refuted_pair()
        budget = TimeBudget(0)
        stats = ComparisonStatistics()
        solver = make_solver(pair, SmtOptions(smt_timeout=0), budget, FakeClock(step=10**6), stats)
        for _ in range(3):
            assert solver.compare_snippets(*pair.bounds()) == NOT_EQUAL
        assert stats.get_query_count("sat") == 3
        assert stats.solver_seconds == pytest.approx(3 * 10**6)


class TestFailures:
    def test_unsupported_instruction(self):
        pair = SnippetPair()
        pair.left.load(Argument(ptr, "p"), i32)
        pair.right.add(pair.a_r, pair.b_r)
        with pytest.raises(UnsupportedOperationException, match="load"):
            make_solver(pair).compare_snippets(*pair.bounds())

    def test_z3_errors_are_wrapped(self):
        pair = SnippetPair()
        # operands of different widths cannot be added
        pair.left.add(pair.a, Argument(i64, "wide"))
        pair.right.add(pair.a_r, pair.b_r)
        with pytest.raises(UnsupportedOperationException):
            make_solver(pair).compare_snippets(*pair.bounds())

    def test_malformed_fmuladd(self):
        pair = SnippetPair(f64)
        pair.left.call(fmuladd_intrinsic(f64), (pair.a, pair.b))
        pair.right.call(fmuladd_intrinsic(f64), (pair.a_r, pair.b_r))
        pair.match_results()
        with pytest.raises(UnsupportedOperationException, match="llvm.fmuladd"):
            make_solver(pair).compare_snippets(*pair.bounds())

    def test_float_opcode_on_integers(self):
        pair = SnippetPair()
        pair.left.fadd(pair.a, pair.b)
        pair.right.add(pair.a_r, pair.b_r)
        pair.match_results()
        with pytest.raises(UnsupportedOperationException, match="fadd"):
            make_solver(pair).compare_snippets(*pair.bounds())


def test_dump_queries():
    pair = SnippetPair()
    pair.left.add(pair.a, pair.b)
    pair.right.add(pair.b_r, pair.a_r)
    pair.match_results()

    records = []

    class ListHandler(logging.Handler):
        def emit(self, record):
            records.append(record.getMessage())

    handler = ListHandler()
    queries = logging.getLogger("smtdiff.smt_queries")
    queries.addHandler(handler)
    try:
        make_solver(pair, SmtOptions(dump_queries=True)).compare_snippets(*pair.bounds())
    finally:
        queries.removeHandler(handler)
    assert len(records) == 1
    assert "(check-sat)" in records[0]
    assert "left[0:1] ~ right[0:1]" in records[0]
