"""
smtdiff.ir: the instruction streams compared by smtdiff.

The comparator only reads these objects: opcodes, typed operands, result
types, predicates and flags. Streams are built by a frontend (or by
:class:`IRBuilder` in tests) and stay immutable during a comparison.
"""

from .types import (
    IRType,
    IntegerType,
    FloatType,
    DoubleType,
    PointerType,
    VoidType,
    MetadataType,
    i1,
    i8,
    i16,
    i32,
    i64,
    f32,
    f64,
    ptr,
    void,
    metadata,
)
from .values import (
    Opcode,
    Predicate,
    Value,
    Argument,
    Constant,
    ConstantInt,
    ConstantFP,
    Function,
    Instruction,
    BasicBlock,
)
from .cursor import InstructionCursor
from .builder import (
    IRBuilder,
    const_int,
    const_fp,
    declare,
    fmuladd_intrinsic,
    DBG_VALUE,
)

__all__ = [
    # types
    "IRType",
    "IntegerType",
    "FloatType",
    "DoubleType",
    "PointerType",
    "VoidType",
    "MetadataType",
    "i1",
    "i8",
    "i16",
    "i32",
    "i64",
    "f32",
    "f64",
    "ptr",
    "void",
    "metadata",
    # values
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
    "InstructionCursor",
    # builder
    "IRBuilder",
    "const_int",
    "const_fp",
    "declare",
    "fmuladd_intrinsic",
    "DBG_VALUE",
]
