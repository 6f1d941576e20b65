"""Values, instructions and basic blocks.

Values hash and compare by identity: two instructions that print the same
are still distinct SSA values. Each instruction stream is owned by its
producer and is not mutated while it is being compared.
"""

from __future__ import annotations

import enum
import typing

from .types import IRType

if typing.TYPE_CHECKING:
    from .cursor import InstructionCursor


class Opcode(enum.Enum):
    # Unary
    FNEG = "fneg"
    # Binary integer
    ADD = "add"
    SUB = "sub"
    MUL = "mul"
    SDIV = "sdiv"
    UDIV = "udiv"
    SREM = "srem"
    UREM = "urem"
    SHL = "shl"
    LSHR = "lshr"
    ASHR = "ashr"
    AND = "and"
    OR = "or"
    XOR = "xor"
    # Binary floating point
    FADD = "fadd"
    FSUB = "fsub"
    FMUL = "fmul"
    FDIV = "fdiv"
    FREM = "frem"
    # Comparisons
    ICMP = "icmp"
    FCMP = "fcmp"
    # Casts
    ZEXT = "zext"
    SEXT = "sext"
    TRUNC = "trunc"
    FPTRUNC = "fptrunc"
    FPEXT = "fpext"
    FPTOUI = "fptoui"
    FPTOSI = "fptosi"
    UITOFP = "uitofp"
    SITOFP = "sitofp"
    BITCAST = "bitcast"
    PTRTOINT = "ptrtoint"
    INTTOPTR = "inttoptr"
    # Other
    CALL = "call"
    SELECT = "select"
    PHI = "phi"
    # Memory
    ALLOCA = "alloca"
    LOAD = "load"
    STORE = "store"
    GETELEMENTPTR = "getelementptr"
    # Terminators
    RET = "ret"
    BR = "br"
    SWITCH = "switch"
    UNREACHABLE = "unreachable"

    @property
    def is_binary(self) -> bool:
        return self in _BINARY_OPCODES

    @property
    def is_cast(self) -> bool:
        return self in _CAST_OPCODES

    @property
    def is_overflowing(self) -> bool:
        """Opcodes that may carry the nsw/nuw flags."""
        return self in _OVERFLOWING_OPCODES

    @property
    def is_terminator(self) -> bool:
        return self in _TERMINATOR_OPCODES

    def __str__(self) -> str:
        return self.value


_BINARY_OPCODES = frozenset(
    {
        Opcode.ADD,
        Opcode.SUB,
        Opcode.MUL,
        Opcode.SDIV,
        Opcode.UDIV,
        Opcode.SREM,
        Opcode.UREM,
        Opcode.SHL,
        Opcode.LSHR,
        Opcode.ASHR,
        Opcode.AND,
        Opcode.OR,
        Opcode.XOR,
        Opcode.FADD,
        Opcode.FSUB,
        Opcode.FMUL,
        Opcode.FDIV,
        Opcode.FREM,
    }
)
_CAST_OPCODES = frozenset(
    {
        Opcode.ZEXT,
        Opcode.SEXT,
        Opcode.TRUNC,
        Opcode.FPTRUNC,
        Opcode.FPEXT,
        Opcode.FPTOUI,
        Opcode.FPTOSI,
        Opcode.UITOFP,
        Opcode.SITOFP,
        Opcode.BITCAST,
        Opcode.PTRTOINT,
        Opcode.INTTOPTR,
    }
)
_OVERFLOWING_OPCODES = frozenset({Opcode.ADD, Opcode.SUB, Opcode.MUL, Opcode.SHL})
_TERMINATOR_OPCODES = frozenset(
    {Opcode.RET, Opcode.BR, Opcode.SWITCH, Opcode.UNREACHABLE}
)


class Predicate(enum.IntEnum):
    """Comparison predicates, numbered as in LLVM's CmpInst."""

    FCMP_FALSE = 0
    FCMP_OEQ = 1
    FCMP_OGT = 2
    FCMP_OGE = 3
    FCMP_OLT = 4
    FCMP_OLE = 5
    FCMP_ONE = 6
    FCMP_ORD = 7
    FCMP_UNO = 8
    FCMP_UEQ = 9
    FCMP_UGT = 10
    FCMP_UGE = 11
    FCMP_ULT = 12
    FCMP_ULE = 13
    FCMP_UNE = 14
    FCMP_TRUE = 15
    ICMP_EQ = 32
    ICMP_NE = 33
    ICMP_UGT = 34
    ICMP_UGE = 35
    ICMP_ULT = 36
    ICMP_ULE = 37
    ICMP_SGT = 38
    ICMP_SGE = 39
    ICMP_SLT = 40
    ICMP_SLE = 41

    @property
    def is_fp(self) -> bool:
        return self <= Predicate.FCMP_TRUE

    @property
    def is_int(self) -> bool:
        return self >= Predicate.ICMP_EQ

    @property
    def mnemonic(self) -> str:
        return self.name.split("_", 1)[1].lower()


class Value:
    """Anything that can be used as an operand."""

    __slots__ = ("name", "type")

    def __init__(self, type: IRType, name: str = ""):
        self.type = type
        self.name = name

    def is_constant(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.type} %{self.name or hex(id(self))}>"

    def __str__(self) -> str:
        return f"%{self.name}" if self.name else f"%<{id(self):x}>"


class Argument(Value):
    """Function argument, or any value defined outside the compared blocks."""

    __slots__ = ()


class Constant(Value):
    __slots__ = ()

    def is_constant(self) -> bool:
        return True


class ConstantInt(Constant):
    __slots__ = ("value",)

    def __init__(self, type: IRType, value: int):
        if not type.is_integer():
            raise TypeError(f"ConstantInt requires an integer type, got {type}")
        super().__init__(type)
        self.value = value

    @property
    def sext_value(self) -> int:
        """The constant interpreted as a signed integer of its width."""
        width = self.type.width  # type: ignore[attr-defined]
        value = self.value & ((1 << width) - 1)
        if width > 1 and value >> (width - 1):
            value -= 1 << width
        elif width == 1 and value:
            value = -1
        return value

    def __str__(self) -> str:
        return f"{self.type} {self.value}"


class ConstantFP(Constant):
    __slots__ = ("value",)

    def __init__(self, type: IRType, value: float):
        if not type.is_floating_point():
            raise TypeError(f"ConstantFP requires a floating point type, got {type}")
        super().__init__(type)
        self.value = float(value)

    def __str__(self) -> str:
        return f"{self.type} {self.value!r}"


class Function(Value):
    """A call target. Only its name and signature matter here."""

    __slots__ = ("return_type", "param_types")

    def __init__(
        self,
        name: str,
        return_type: IRType,
        param_types: typing.Sequence[IRType] = (),
    ):
        super().__init__(return_type, name)
        self.return_type = return_type
        self.param_types = tuple(param_types)

    @property
    def is_intrinsic(self) -> bool:
        return self.name.startswith("llvm.")

    def __str__(self) -> str:
        return f"@{self.name}"


class Instruction(Value):
    __slots__ = (
        "opcode",
        "operands",
        "predicate",
        "nsw",
        "nuw",
        "exact",
        "callee",
        "parent",
    )

    def __init__(
        self,
        opcode: Opcode,
        type: IRType,
        operands: typing.Sequence[Value] = (),
        name: str = "",
        *,
        predicate: Predicate | None = None,
        nsw: bool = False,
        nuw: bool = False,
        exact: bool = False,
        callee: Function | None = None,
    ):
        super().__init__(type, name)
        self.opcode = opcode
        self.operands = tuple(operands)
        self.predicate = predicate
        self.nsw = nsw
        self.nuw = nuw
        self.exact = exact
        self.callee = callee
        self.parent: BasicBlock | None = None

    def operand(self, index: int) -> Value:
        return self.operands[index]

    @property
    def is_debug_info(self) -> bool:
        """Calls to the llvm.dbg.* intrinsics carry no semantics."""
        return (
            self.opcode is Opcode.CALL
            and self.callee is not None
            and self.callee.name.startswith("llvm.dbg.")
        )

    @property
    def produces_value(self) -> bool:
        return not self.type.is_void()

    @property
    def index(self) -> int:
        if self.parent is None:
            raise ValueError(f"{self!r} is not inserted in a block")
        return self.parent.index_of(self)

    def __str__(self) -> str:
        parts = [str(self.opcode)]
        if self.nuw:
            parts.append("nuw")
        if self.nsw:
            parts.append("nsw")
        if self.exact:
            parts.append("exact")
        if self.predicate is not None:
            parts.append(self.predicate.mnemonic)
        if self.callee is not None:
            parts.append(str(self.callee))
        operands = ", ".join(str(op) for op in self.operands)
        text = " ".join(parts) + (f" {operands}" if operands else "")
        if self.produces_value:
            return f"{Value.__str__(self)} = {text}"
        return text


class BasicBlock:
    """An ordered, append-only list of instructions."""

    def __init__(self, name: str = "", instructions: typing.Iterable[Instruction] = ()):
        self.name = name
        self.instructions: list[Instruction] = []
        self._positions: dict[int, int] = {}
        for inst in instructions:
            self.append(inst)

    def append(self, inst: Instruction) -> Instruction:
        if inst.parent is not None:
            raise ValueError(f"{inst!r} already belongs to block {inst.parent.name}")
        inst.parent = self
        self._positions[id(inst)] = len(self.instructions)
        self.instructions.append(inst)
        return inst

    def index_of(self, inst: Instruction) -> int:
        try:
            return self._positions[id(inst)]
        except KeyError:
            raise ValueError(f"{inst!r} is not in block {self.name}") from None

    def begin(self) -> "InstructionCursor":
        from .cursor import InstructionCursor

        return InstructionCursor(self, 0)

    def end(self) -> "InstructionCursor":
        from .cursor import InstructionCursor

        return InstructionCursor(self, len(self.instructions))

    def cursor(self, position: int | Instruction) -> "InstructionCursor":
        from .cursor import InstructionCursor

        if isinstance(position, Instruction):
            position = self.index_of(position)
        return InstructionCursor(self, position)

    def __len__(self) -> int:
        return len(self.instructions)

    def __getitem__(self, index: int) -> Instruction:
        return self.instructions[index]

    def __iter__(self) -> typing.Iterator[Instruction]:
        return iter(self.instructions)

    def __repr__(self) -> str:
        return f"<BasicBlock {self.name} ({len(self)} instructions)>"

    def __str__(self) -> str:
        body = "\n".join(f"  {inst}" for inst in self.instructions)
        return f"{self.name}:\n{body}"


__all__ = [
    "Opcode",
    "Predicate",
    "Value",
    "Argument",
    "Constant",
    "ConstantInt",
    "ConstantFP",
    "Function",
    "Instruction",
    "BasicBlock",
]
