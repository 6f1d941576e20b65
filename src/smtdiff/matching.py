"""Value matching state shared between the function comparator and smtdiff.

The outer comparator assigns serial numbers to values it considers
equivalent: ``sn_map_l``/``sn_map_r`` map each side's values to serials and
``mapped_values_by_sn`` records which pair of values received a serial.
Speculative comparisons run inside a snapshot/restore transaction so that a
failed probe leaves no partial matches behind.
"""

from __future__ import annotations

import typing
from dataclasses import dataclass, field
from types import MappingProxyType

if typing.TYPE_CHECKING:
    from smtdiff.ir import Value


@dataclass(frozen=True, slots=True)
class MatchingSnapshot:
    """Immutable copy of a :class:`MatchingState`."""

    sn_map_l: typing.Mapping[Value, int]
    sn_map_r: typing.Mapping[Value, int]
    mapped_values_by_sn: typing.Mapping[int, tuple[Value, Value]]
    try_inline: typing.Any = None


@dataclass(slots=True)
class MatchingState:
    sn_map_l: dict[Value, int] = field(default_factory=dict)
    sn_map_r: dict[Value, int] = field(default_factory=dict)
    mapped_values_by_sn: dict[int, tuple[Value, Value]] = field(default_factory=dict)
    # Pending inlining decision of the module-level comparator.
    try_inline: typing.Any = None

    def snapshot(self) -> MatchingSnapshot:
        return MatchingSnapshot(
            sn_map_l=MappingProxyType(dict(self.sn_map_l)),
            sn_map_r=MappingProxyType(dict(self.sn_map_r)),
            mapped_values_by_sn=MappingProxyType(dict(self.mapped_values_by_sn)),
            try_inline=self.try_inline,
        )

    def restore(self, snapshot: MatchingSnapshot) -> None:
        """Replace the live state with fresh copies of *snapshot*."""
        self.sn_map_l = dict(snapshot.sn_map_l)
        self.sn_map_r = dict(snapshot.sn_map_r)
        self.mapped_values_by_sn = dict(snapshot.mapped_values_by_sn)
        self.try_inline = snapshot.try_inline

    def matches(self, snapshot: MatchingSnapshot) -> bool:
        """True when the live state equals *snapshot*."""
        return (
            self.sn_map_l == dict(snapshot.sn_map_l)
            and self.sn_map_r == dict(snapshot.sn_map_r)
            and self.mapped_values_by_sn == dict(snapshot.mapped_values_by_sn)
            and self.try_inline == snapshot.try_inline
        )

    def next_serial(self) -> int:
        return max(self.mapped_values_by_sn, default=-1) + 1

    def map_values(self, left: Value, right: Value) -> int:
        """Give *left* and *right* a fresh common serial number."""
        sn = self.next_serial()
        self.sn_map_l[left] = sn
        self.sn_map_r[right] = sn
        self.mapped_values_by_sn[sn] = (left, right)
        return sn

    def unmap_values(self, left: Value, right: Value) -> None:
        """Forget the serial numbers of *left* and *right*."""
        for sn_map, value in ((self.sn_map_l, left), (self.sn_map_r, right)):
            sn = sn_map.pop(value, None)
            if sn is not None:
                self.mapped_values_by_sn.pop(sn, None)

    def mapped_pair(self, left: Value) -> tuple[Value, Value] | None:
        """Registry pair of the serial that *left* is mapped to, if any."""
        sn = self.sn_map_l.get(left)
        if sn is None:
            return None
        return self.mapped_values_by_sn.get(sn)
