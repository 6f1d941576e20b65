"""Tests for the transactional value matching state."""

import pytest

from smtdiff.ir import Argument, i32
from smtdiff.matching import MatchingState


@pytest.fixture
def values():
    return [Argument(i32, name) for name in ("a", "b", "c", "d")]


class TestMatchingState:
    def test_map_values_assigns_serials(self, values):
        a, b, c, d = values
        state = MatchingState()
        assert state.map_values(a, b) == 0
        assert state.map_values(c, d) == 1
        assert state.sn_map_l == {a: 0, c: 1}
        assert state.sn_map_r == {b: 0, d: 1}
        assert state.mapped_pair(c) == (c, d)
        assert state.mapped_pair(b) is None

    def test_unmap_values(self, values):
        a, b, c, d = values
        state = MatchingState()
        state.map_values(a, b)
        state.map_values(c, d)
        state.unmap_values(a, b)
        assert a not in state.sn_map_l
        assert b not in state.sn_map_r
        assert 0 not in state.mapped_values_by_sn
        # unmapping twice is harmless
        state.unmap_values(a, b)
        assert state.next_serial() == 2

    def test_snapshot_restore_round_trip(self, values):
        a, b, c, d = values
        state = MatchingState()
        state.map_values(a, b)
        snapshot = state.snapshot()

        state.map_values(c, d)
        state.try_inline = ("f", "g")
        assert not state.matches(snapshot)

        state.restore(snapshot)
        assert state.matches(snapshot)
        assert state.sn_map_l == {a: 0}
        assert state.try_inline is None

    def test_snapshot_can_be_restored_repeatedly(self, values):
        a, b, c, d = values
        state = MatchingState()
        snapshot = state.snapshot()
        for _ in range(3):
            state.map_values(a, b)
            state.map_values(c, d)
            state.restore(snapshot)
            assert state.sn_map_l == {}
            assert state.mapped_values_by_sn == {}

    def test_snapshot_is_read_only(self, values):
        a, b, _, _ = values
        snapshot = MatchingState().snapshot()
        with pytest.raises(TypeError):
            snapshot.sn_map_l[a] = 0
