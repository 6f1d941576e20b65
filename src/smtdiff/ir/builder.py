"""Helpers for building instruction streams.

Example:
    >>> from smtdiff.ir import BasicBlock, IRBuilder, Argument, i32
    >>> a, b = Argument(i32, "a"), Argument(i32, "b")
    >>> bld = IRBuilder(BasicBlock("entry"))
    >>> c = bld.add(a, b, "c", nsw=True)
    >>> str(c)
    '%c'
    >>> str(bld.block[0])
    '%c = add nsw %a, %b'
"""

from __future__ import annotations

import typing

from .types import IRType, f32, f64, i1, void, metadata
from .values import (
    BasicBlock,
    ConstantFP,
    ConstantInt,
    Function,
    Instruction,
    Opcode,
    Predicate,
    Value,
)


def const_int(type: IRType, value: int) -> ConstantInt:
    return ConstantInt(type, value)


def const_fp(type: IRType, value: float) -> ConstantFP:
    return ConstantFP(type, value)


def declare(
    name: str, return_type: IRType, param_types: typing.Sequence[IRType] = ()
) -> Function:
    return Function(name, return_type, param_types)


def fmuladd_intrinsic(type: IRType) -> Function:
    """The llvm.fmuladd intrinsic overloaded for *type*."""
    suffix = "f32" if type == f32 else "f64"
    return Function(f"llvm.fmuladd.{suffix}", type, (type, type, type))


DBG_VALUE = Function("llvm.dbg.value", void, (metadata, metadata, metadata))


def _resolve_predicate(predicate: Predicate | str, family: str) -> Predicate:
    if isinstance(predicate, Predicate):
        return predicate
    try:
        return Predicate[f"{family}_{predicate.upper()}"]
    except KeyError:
        raise ValueError(f"Unknown {family.lower()} predicate: {predicate}") from None


class IRBuilder:
    """Appends instructions to a basic block."""

    def __init__(self, block: BasicBlock):
        self.block = block
        self._counter = 0

    def _name(self, name: str) -> str:
        if name:
            return name
        name = f"t{self._counter}"
        self._counter += 1
        return name

    def insert(self, inst: Instruction) -> Instruction:
        if inst.produces_value and not inst.name:
            inst.name = self._name("")
        return self.block.append(inst)

    # ------------------------------------------------------------------
    # Arithmetic and logic
    # ------------------------------------------------------------------
    def binop(
        self,
        opcode: Opcode,
        lhs: Value,
        rhs: Value,
        name: str = "",
        *,
        nsw: bool = False,
        nuw: bool = False,
        exact: bool = False,
    ) -> Instruction:
        if not opcode.is_binary:
            raise ValueError(f"{opcode} is not a binary opcode")
        return self.insert(
            Instruction(
                opcode,
                lhs.type,
                (lhs, rhs),
                self._name(name),
                nsw=nsw,
                nuw=nuw,
                exact=exact,
            )
        )

    def add(self, lhs, rhs, name="", *, nsw=False, nuw=False):
        return self.binop(Opcode.ADD, lhs, rhs, name, nsw=nsw, nuw=nuw)

    def sub(self, lhs, rhs, name="", *, nsw=False, nuw=False):
        return self.binop(Opcode.SUB, lhs, rhs, name, nsw=nsw, nuw=nuw)

    def mul(self, lhs, rhs, name="", *, nsw=False, nuw=False):
        return self.binop(Opcode.MUL, lhs, rhs, name, nsw=nsw, nuw=nuw)

    def shl(self, lhs, rhs, name="", *, nsw=False, nuw=False):
        return self.binop(Opcode.SHL, lhs, rhs, name, nsw=nsw, nuw=nuw)

    def sdiv(self, lhs, rhs, name="", *, exact=False):
        return self.binop(Opcode.SDIV, lhs, rhs, name, exact=exact)

    def udiv(self, lhs, rhs, name="", *, exact=False):
        return self.binop(Opcode.UDIV, lhs, rhs, name, exact=exact)

    def srem(self, lhs, rhs, name=""):
        return self.binop(Opcode.SREM, lhs, rhs, name)

    def urem(self, lhs, rhs, name=""):
        return self.binop(Opcode.UREM, lhs, rhs, name)

    def lshr(self, lhs, rhs, name=""):
        return self.binop(Opcode.LSHR, lhs, rhs, name)

    def ashr(self, lhs, rhs, name=""):
        return self.binop(Opcode.ASHR, lhs, rhs, name)

    def and_(self, lhs, rhs, name=""):
        return self.binop(Opcode.AND, lhs, rhs, name)

    def or_(self, lhs, rhs, name=""):
        return self.binop(Opcode.OR, lhs, rhs, name)

    def xor(self, lhs, rhs, name=""):
        return self.binop(Opcode.XOR, lhs, rhs, name)

    def fadd(self, lhs, rhs, name=""):
        return self.binop(Opcode.FADD, lhs, rhs, name)

    def fsub(self, lhs, rhs, name=""):
        return self.binop(Opcode.FSUB, lhs, rhs, name)

    def fmul(self, lhs, rhs, name=""):
        return self.binop(Opcode.FMUL, lhs, rhs, name)

    def fdiv(self, lhs, rhs, name=""):
        return self.binop(Opcode.FDIV, lhs, rhs, name)

    def frem(self, lhs, rhs, name=""):
        return self.binop(Opcode.FREM, lhs, rhs, name)

    def fneg(self, operand: Value, name: str = "") -> Instruction:
        return self.insert(
            Instruction(Opcode.FNEG, operand.type, (operand,), self._name(name))
        )

    # ------------------------------------------------------------------
    # Comparisons
    # ------------------------------------------------------------------
    def icmp(self, predicate: Predicate | str, lhs: Value, rhs: Value, name: str = ""):
        pred = _resolve_predicate(predicate, "ICMP")
        return self.insert(
            Instruction(Opcode.ICMP, i1, (lhs, rhs), self._name(name), predicate=pred)
        )

    def fcmp(self, predicate: Predicate | str, lhs: Value, rhs: Value, name: str = ""):
        pred = _resolve_predicate(predicate, "FCMP")
        return self.insert(
            Instruction(Opcode.FCMP, i1, (lhs, rhs), self._name(name), predicate=pred)
        )

    # ------------------------------------------------------------------
    # Casts
    # ------------------------------------------------------------------
    def cast(self, opcode: Opcode, operand: Value, dest_type: IRType, name: str = ""):
        if not opcode.is_cast:
            raise ValueError(f"{opcode} is not a cast opcode")
        return self.insert(Instruction(opcode, dest_type, (operand,), self._name(name)))

    def zext(self, operand, dest_type, name=""):
        return self.cast(Opcode.ZEXT, operand, dest_type, name)

    def sext(self, operand, dest_type, name=""):
        return self.cast(Opcode.SEXT, operand, dest_type, name)

    def trunc(self, operand, dest_type, name=""):
        return self.cast(Opcode.TRUNC, operand, dest_type, name)

    def fptrunc(self, operand, dest_type=f32, name=""):
        return self.cast(Opcode.FPTRUNC, operand, dest_type, name)

    def fpext(self, operand, dest_type=f64, name=""):
        return self.cast(Opcode.FPEXT, operand, dest_type, name)

    def fptoui(self, operand, dest_type, name=""):
        return self.cast(Opcode.FPTOUI, operand, dest_type, name)

    def fptosi(self, operand, dest_type, name=""):
        return self.cast(Opcode.FPTOSI, operand, dest_type, name)

    def uitofp(self, operand, dest_type, name=""):
        return self.cast(Opcode.UITOFP, operand, dest_type, name)

    def sitofp(self, operand, dest_type, name=""):
        return self.cast(Opcode.SITOFP, operand, dest_type, name)

    # ------------------------------------------------------------------
    # Other
    # ------------------------------------------------------------------
    def select(self, cond: Value, true_value: Value, false_value: Value, name: str = ""):
        return self.insert(
            Instruction(
                Opcode.SELECT,
                true_value.type,
                (cond, true_value, false_value),
                self._name(name),
            )
        )

    def call(self, callee: Function | None, args: typing.Sequence[Value], name: str = "",
             *, return_type: IRType | None = None):
        """Emit a call. ``callee=None`` models an indirect call."""
        if callee is None and return_type is None:
            raise ValueError("Indirect calls need an explicit return type")
        type = return_type if return_type is not None else callee.return_type  # type: ignore[union-attr]
        return self.insert(
            Instruction(
                Opcode.CALL,
                type,
                tuple(args),
                "" if type.is_void() else self._name(name),
                callee=callee,
            )
        )

    def fmuladd(self, a: Value, b: Value, c: Value, name: str = ""):
        return self.call(fmuladd_intrinsic(a.type), (a, b, c), name)

    def dbg_value(self, value: Value) -> Instruction:
        return self.call(DBG_VALUE, (value,))

    def load(self, pointer: Value, type: IRType, name: str = ""):
        return self.insert(Instruction(Opcode.LOAD, type, (pointer,), self._name(name)))

    def store(self, value: Value, pointer: Value):
        return self.insert(Instruction(Opcode.STORE, void, (value, pointer)))

    def ret(self, value: Value | None = None) -> Instruction:
        operands = () if value is None else (value,)
        return self.insert(Instruction(Opcode.RET, void, operands))
