from __future__ import annotations

import typing

if typing.TYPE_CHECKING:
    from .values import BasicBlock, Instruction


class InstructionCursor:
    """A mutable position inside a basic block.

    Positions range over ``[-1, len(block)]``. ``len(block)`` is the block
    end; ``-1`` is the position before the first instruction, reached when a
    comparator steps back from the block start and expects to step forward
    again before dereferencing.

    >>> from smtdiff.ir import BasicBlock
    >>> cur = BasicBlock("entry").begin()
    >>> cur.at_end
    True
    """

    __slots__ = ("block", "index")

    def __init__(self, block: BasicBlock, index: int = 0):
        if not -1 <= index <= len(block):
            raise IndexError(f"Position {index} out of range for {block!r}")
        self.block = block
        self.index = index

    @property
    def at_end(self) -> bool:
        return self.index >= len(self.block)

    @property
    def instruction(self) -> Instruction:
        if self.index < 0 or self.at_end:
            raise IndexError(f"Cursor at position {self.index} of {self.block!r} is not dereferenceable")
        return self.block[self.index]

    def advance(self) -> "InstructionCursor":
        if self.at_end:
            raise IndexError(f"Cannot advance past the end of {self.block!r}")
        self.index += 1
        return self

    def retreat(self) -> "InstructionCursor":
        if self.index < 0:
            raise IndexError(f"Cannot retreat before the start of {self.block!r}")
        self.index -= 1
        return self

    def copy(self) -> "InstructionCursor":
        return InstructionCursor(self.block, self.index)

    def move_to(self, other: "InstructionCursor") -> None:
        """Make this cursor point where *other* points."""
        if other.block is not self.block:
            raise ValueError("Cannot move a cursor to a different block")
        self.index = other.index

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InstructionCursor):
            return NotImplemented
        return self.block is other.block and self.index == other.index

    def __repr__(self) -> str:
        where = "end" if self.at_end else self.index
        return f"<InstructionCursor {self.block.name}:{where}>"
