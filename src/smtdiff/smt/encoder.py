"""Translation of single instructions into z3 assertions.

Every instruction ``%r = op ...`` becomes one assertion over the symbols of
its operands, usually ``r == <expression>``. Overflow-flagged arithmetic and
exact division become implications, which leave the result unconstrained
(a poison value) when the flag's condition is violated.

Sorts:
    i1      -> Bool
    iN      -> BitVec(N)
    float   -> Float32 (IEEE binary32)
    double  -> Float64 (IEEE binary64)

Non-constant values are named ``<prefix><hex id>``. The prefix keeps the two
sides apart: the same argument used by the left and the right snippet yields
two distinct symbols unless an equality between them is asserted.
"""

from __future__ import annotations

import functools
import typing

from smtdiff.core import getLogger
from smtdiff.errors import UnsupportedOperationException
from smtdiff.ir import (
    ConstantFP,
    ConstantInt,
    Instruction,
    IRType,
    Opcode,
    Predicate,
    Value,
    i1,
)

logger = getLogger("smtdiff.smt")
debug_on = logger.debug_on

try:
    import z3

    Z3_INSTALLED = True
except ImportError:
    logger.info("Z3 features disabled. Install z3-solver to enable them")
    Z3_INSTALLED = False


LEFT_PREFIX = "L_"
RIGHT_PREFIX = "R_"

# One-argument libm functions modeled as uninterpreted Float64 -> Float64.
UNINTERPRETED_FUNCTIONS = frozenset(
    {
        "acos",
        "asin",
        "atan",
        "cos",
        "cosh",
        "sin",
        "sinh",
        "tanh",
        "exp",
        "log",
        "log10",
        "sqrt",
    }
)

FMULADD_PREFIX = "llvm.fmuladd"

_INT_CASTS = frozenset({Opcode.ZEXT, Opcode.SEXT, Opcode.TRUNC})
_BOOLEAN_LOGIC = frozenset({Opcode.AND, Opcode.OR, Opcode.XOR})
_FP_OPCODES = frozenset(
    {Opcode.FNEG, Opcode.FADD, Opcode.FSUB, Opcode.FMUL, Opcode.FDIV, Opcode.FREM, Opcode.FCMP}
)


def _well_formed(inst: Instruction) -> bool:
    """Check operand count and kinds against what the opcode is defined on."""
    opcode = inst.opcode
    types = [op.type for op in inst.operands]
    if opcode in _FP_OPCODES:
        arity = 1 if opcode is Opcode.FNEG else 2
        return len(types) == arity and all(t.is_floating_point() for t in types)
    if opcode.is_binary or opcode is Opcode.ICMP:
        return len(types) == 2 and all(t.is_integer() for t in types)
    if opcode is Opcode.SELECT:
        return len(types) == 3 and types[0] == i1
    if opcode.is_cast:
        return len(types) == 1
    return True


def requires_z3_installed(func: typing.Callable[..., typing.Any]):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        if not Z3_INSTALLED:
            raise UnsupportedOperationException("Z3 is not installed")
        return func(*args, **kwargs)

    return wrapper


def symbol_name(value: Value, prefix: str) -> str:
    """Stable symbol name of *value*, unique per side."""
    return f"{prefix}{id(value):x}"


class SemanticEncoder:
    """Encodes instructions into assertions of one z3 context.

    Example:
        >>> from smtdiff.ir import Argument, BasicBlock, IRBuilder, i32
        >>> a, b = Argument(i32, "a"), Argument(i32, "b")
        >>> add = IRBuilder(BasicBlock()).add(a, b)
        >>> enc = SemanticEncoder()
        >>> z3.is_bool(enc.encode(add, LEFT_PREFIX))
        True
    """

    @requires_z3_installed
    def __init__(self, ctx: z3.Context | None = None):
        self.ctx = ctx if ctx is not None else z3.Context()

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------
    def sort_of(self, type: IRType) -> z3.SortRef:
        if type.is_double():
            return z3.Float64(self.ctx)
        if type.is_float():
            return z3.Float32(self.ctx)
        if type.is_integer():
            width = type.width  # type: ignore[attr-defined]
            if width == 1:
                return z3.BoolSort(self.ctx)
            return z3.BitVecSort(width, self.ctx)
        raise UnsupportedOperationException(f"Unsupported operand type {type}")

    def create_var(self, name: str, type: IRType) -> z3.ExprRef:
        return z3.Const(name, self.sort_of(type))

    def create_constant(self, constant: Value) -> z3.ExprRef:
        if isinstance(constant, ConstantInt):
            width = constant.type.width  # type: ignore[attr-defined]
            if width == 1:
                return z3.BoolVal(constant.sext_value != 0, self.ctx)
            return z3.BitVecVal(constant.sext_value, width, self.ctx)
        if isinstance(constant, ConstantFP):
            return z3.FPVal(constant.value, None, self.sort_of(constant.type), self.ctx)
        raise UnsupportedOperationException(
            f"Unsupported constant type {constant.type}"
        )

    def value_expr(self, value: Value, prefix: str) -> z3.ExprRef:
        """Literal for constants, side-prefixed symbol for everything else."""
        if value.is_constant():
            return self.create_constant(value)
        return self.create_var(symbol_name(value, prefix), value.type)

    # ------------------------------------------------------------------
    # Instructions
    # ------------------------------------------------------------------
    def encode(self, inst: Instruction, prefix: str) -> z3.BoolRef | None:
        """Return the assertion describing *inst*, or None for debug info.

        Raises:
            UnsupportedOperationException: the instruction, one of its
                operand types or its call target has no modeled semantics.
        """
        if inst.is_debug_info:
            return None
        try:
            expr = self._encode(inst, prefix) if _well_formed(inst) else None
        except (z3.Z3Exception, TypeError, ValueError) as e:
            raise UnsupportedOperationException(
                f"Cannot encode '{inst}': {e}"
            ) from e
        if expr is None:
            raise UnsupportedOperationException(
                f"Unsupported instruction with opcode {inst.opcode}"
            )
        if debug_on:
            logger.debug("%s%s => %s", prefix, inst, expr)
        return expr

    def _encode(self, inst: Instruction, prefix: str) -> z3.BoolRef | None:
        opcode = inst.opcode
        if opcode is Opcode.FNEG:
            res = self.value_expr(inst, prefix)
            return res == -self.value_expr(inst.operand(0), prefix)
        if opcode.is_binary:
            return self._encode_binary(inst, prefix)
        if opcode in (Opcode.ICMP, Opcode.FCMP):
            return self._encode_cmp(inst, prefix)
        if opcode is Opcode.CALL:
            return self._encode_call(inst, prefix)
        if opcode is Opcode.SELECT:
            res = self.value_expr(inst, prefix)
            cond, true_value, false_value = (
                self.value_expr(op, prefix) for op in inst.operands
            )
            return res == z3.If(cond, true_value, false_value, self.ctx)
        if opcode.is_cast:
            return self._encode_cast(inst, prefix)
        return None

    def _encode_cmp(self, inst: Instruction, prefix: str) -> z3.BoolRef | None:
        res = self.value_expr(inst, prefix)
        op1 = self.value_expr(inst.operand(0), prefix)
        op2 = self.value_expr(inst.operand(1), prefix)
        if inst.opcode is Opcode.ICMP:
            op1, op2 = self._as_bitvec(op1), self._as_bitvec(op2)

        # z3 relational operator overloads are signed on bit-vectors, unsigned
        # predicates need the explicit U* functions.
        # fcmp predicates come in two flavours:
        #   - ordered (O**): false if either operand is NaN
        #   - unordered (U**): true if either operand is NaN
        def ordered(cmp):
            return z3.And(z3.Not(z3.fpIsNaN(op1, self.ctx)), z3.Not(z3.fpIsNaN(op2, self.ctx)), cmp)

        def unordered(cmp):
            return z3.Or(z3.fpIsNaN(op1, self.ctx), z3.fpIsNaN(op2, self.ctx), cmp)

        match inst.predicate:
            case Predicate.ICMP_EQ:
                e = op1 == op2
            case Predicate.ICMP_NE:
                e = op1 != op2
            case Predicate.ICMP_UGE:
                e = z3.UGE(op1, op2)
            case Predicate.ICMP_SGE:
                e = op1 >= op2
            case Predicate.ICMP_ULE:
                e = z3.ULE(op1, op2)
            case Predicate.ICMP_SLE:
                e = op1 <= op2
            case Predicate.ICMP_UGT:
                e = z3.UGT(op1, op2)
            case Predicate.ICMP_SGT:
                e = op1 > op2
            case Predicate.ICMP_ULT:
                e = z3.ULT(op1, op2)
            case Predicate.ICMP_SLT:
                e = op1 < op2
            case Predicate.FCMP_OEQ:
                e = ordered(z3.fpEQ(op1, op2, self.ctx))
            case Predicate.FCMP_UEQ:
                e = unordered(z3.fpEQ(op1, op2, self.ctx))
            case Predicate.FCMP_ONE:
                e = ordered(z3.fpNEQ(op1, op2, self.ctx))
            case Predicate.FCMP_UNE:
                e = unordered(z3.fpNEQ(op1, op2, self.ctx))
            case Predicate.FCMP_OGE:
                e = ordered(z3.fpGEQ(op1, op2, self.ctx))
            case Predicate.FCMP_UGE:
                e = unordered(z3.fpGEQ(op1, op2, self.ctx))
            case Predicate.FCMP_OLE:
                e = ordered(z3.fpLEQ(op1, op2, self.ctx))
            case Predicate.FCMP_ULE:
                e = unordered(z3.fpLEQ(op1, op2, self.ctx))
            case Predicate.FCMP_OGT:
                e = ordered(z3.fpGT(op1, op2, self.ctx))
            case Predicate.FCMP_UGT:
                e = unordered(z3.fpGT(op1, op2, self.ctx))
            case Predicate.FCMP_OLT:
                e = ordered(z3.fpLT(op1, op2, self.ctx))
            case Predicate.FCMP_ULT:
                e = unordered(z3.fpLT(op1, op2, self.ctx))
            case Predicate.FCMP_ORD:
                e = ordered(z3.BoolVal(True, self.ctx))
            case Predicate.FCMP_UNO:
                e = unordered(z3.BoolVal(False, self.ctx))
            case Predicate.FCMP_TRUE:
                e = z3.BoolVal(True, self.ctx)
            case Predicate.FCMP_FALSE:
                e = z3.BoolVal(False, self.ctx)
            case _:
                return None
        return res == e

    def _encode_cast(self, inst: Instruction, prefix: str) -> z3.BoolRef | None:
        res = self.value_expr(inst, prefix)
        src_type = inst.operand(0).type
        dest_type = inst.type
        op = self.value_expr(inst.operand(0), prefix)
        if inst.opcode in _INT_CASTS and not (
            src_type.is_integer() and dest_type.is_integer()
        ):
            return None

        match inst.opcode:
            case Opcode.ZEXT:
                bits = dest_type.width - src_type.width  # type: ignore[attr-defined]
                return res == z3.ZeroExt(bits, self._as_bitvec(op))
            case Opcode.SEXT:
                bits = dest_type.width - src_type.width  # type: ignore[attr-defined]
                return res == z3.SignExt(bits, self._as_bitvec(op))
            case Opcode.TRUNC:
                extract = z3.Extract(dest_type.width - 1, 0, op)  # type: ignore[attr-defined]
                if z3.is_bool(res):
                    return res == (extract == z3.BitVecVal(1, 1, self.ctx))
                return res == extract
            case Opcode.FPTRUNC | Opcode.FPEXT:
                return res == z3.fpFPToFP(z3.RNE(self.ctx), op, res.sort(), self.ctx)
            case Opcode.FPTOUI:
                # fpto[us]i truncate towards zero
                return res == z3.fpToUBV(
                    z3.RTZ(self.ctx), op, z3.BitVecSort(dest_type.width, self.ctx), self.ctx  # type: ignore[attr-defined]
                )
            case Opcode.FPTOSI:
                return res == z3.fpToSBV(
                    z3.RTZ(self.ctx), op, z3.BitVecSort(dest_type.width, self.ctx), self.ctx  # type: ignore[attr-defined]
                )
            case Opcode.UITOFP:
                return res == z3.fpUnsignedToFP(
                    z3.RNE(self.ctx), self._as_bitvec(op), res.sort(), self.ctx
                )
            case Opcode.SITOFP:
                return res == z3.fpSignedToFP(
                    z3.RNE(self.ctx), self._as_bitvec(op), res.sort(), self.ctx
                )
        return None

    def _encode_overflowing(
        self, inst: Instruction, res: z3.ExprRef, op1: z3.ExprRef, op2: z3.ExprRef
    ) -> z3.BoolRef | None:
        # With nsw/nuw the instruction yields poison when it overflows. Encode
        # it as <no overflow> => res == op1 <op> op2 so that res stays a free
        # variable whenever the operation may overflow.
        match inst.opcode:
            case Opcode.ADD:
                plain = res == op1 + op2
                if inst.nsw:
                    precond = z3.And(
                        z3.BVAddNoOverflow(op1, op2, True), z3.BVAddNoUnderflow(op1, op2)
                    )
                elif inst.nuw:
                    precond = z3.And(
                        z3.BVAddNoOverflow(op1, op2, False), z3.BVAddNoUnderflow(op1, op2)
                    )
                else:
                    return plain
            case Opcode.SUB:
                plain = res == op1 - op2
                if inst.nsw:
                    precond = z3.And(
                        z3.BVSubNoOverflow(op1, op2), z3.BVSubNoUnderflow(op1, op2, True)
                    )
                elif inst.nuw:
                    precond = z3.And(
                        z3.BVSubNoOverflow(op1, op2), z3.BVSubNoUnderflow(op1, op2, False)
                    )
                else:
                    return plain
            case Opcode.MUL:
                plain = res == op1 * op2
                if inst.nsw:
                    precond = z3.And(
                        z3.BVMulNoOverflow(op1, op2, True), z3.BVMulNoUnderflow(op1, op2)
                    )
                elif inst.nuw:
                    precond = z3.And(
                        z3.BVMulNoOverflow(op1, op2, False), z3.BVMulNoUnderflow(op1, op2)
                    )
                else:
                    return plain
            case Opcode.SHL:
                # TODO: model poison of shl nsw/nuw (bits shifted out must be
                # zero, resp. equal to the resulting sign bit).
                return res == op1 << op2
            case _:
                return None
        return z3.Implies(precond, plain)

    def _encode_binary(self, inst: Instruction, prefix: str) -> z3.BoolRef | None:
        res = self.value_expr(inst, prefix)
        op1 = self.value_expr(inst.operand(0), prefix)
        op2 = self.value_expr(inst.operand(1), prefix)

        if z3.is_bool(op1) and inst.opcode not in _BOOLEAN_LOGIC:
            # i1 arithmetic wraps modulo 2: compute it on 1-bit vectors.
            res, op1, op2 = self._as_bitvec(res), self._as_bitvec(op1), self._as_bitvec(op2)

        if inst.opcode.is_overflowing:
            return self._encode_overflowing(inst, res, op1, op2)

        match inst.opcode:
            case Opcode.FADD:
                return res == op1 + op2
            case Opcode.FSUB:
                return res == op1 - op2
            case Opcode.FMUL:
                return res == op1 * op2
            case Opcode.FDIV:
                return res == op1 / op2
            case Opcode.FREM:
                return res == z3.fpRem(op1, op2)
            case Opcode.SDIV:
                # Signed division is what the z3 '/' overload does on bit-vectors.
                div = res == op1 / op2
                if inst.exact:
                    return z3.Implies(z3.SRem(op1, op2) == 0, div)
                return div
            case Opcode.UDIV:
                div = res == z3.UDiv(op1, op2)
                if inst.exact:
                    return z3.Implies(z3.URem(op1, op2) == 0, div)
                return div
            case Opcode.SREM:
                return res == z3.SRem(op1, op2)
            case Opcode.UREM:
                return res == z3.URem(op1, op2)
            case Opcode.ASHR:
                return res == op1 >> op2
            case Opcode.LSHR:
                return res == z3.LShR(op1, op2)
            case Opcode.AND:
                if z3.is_bool(op1):
                    return res == z3.And(op1, op2)
                return res == op1 & op2
            case Opcode.OR:
                if z3.is_bool(op1):
                    return res == z3.Or(op1, op2)
                return res == op1 | op2
            case Opcode.XOR:
                if z3.is_bool(op1):
                    return res == z3.Xor(op1, op2)
                return res == op1 ^ op2
        return None

    def _encode_call(self, inst: Instruction, prefix: str) -> z3.BoolRef | None:
        callee = inst.callee
        if callee is None:
            raise UnsupportedOperationException("Unsupported indirect call")
        name = callee.name
        args = inst.operands
        if name.startswith(FMULADD_PREFIX):
            if len(args) != 3 or not all(
                arg.type == inst.type and arg.type.is_floating_point() for arg in args
            ):
                raise UnsupportedOperationException(f"Malformed call to {name}")
            res = self.value_expr(inst, prefix)
            a, b, c = (self.value_expr(op, prefix) for op in args)
            return res == a * b + c
        if name in UNINTERPRETED_FUNCTIONS:
            if len(args) != 1 or not (args[0].type.is_double() and inst.type.is_double()):
                raise UnsupportedOperationException(
                    f"Unsupported call to function {name} on {inst.type}"
                )
            # z3 has no floating point transcendental functions; the same
            # function symbol is shared by both sides so equal arguments give
            # provably equal results.
            res = self.value_expr(inst, prefix)
            sort = z3.Float64(self.ctx)
            func = z3.Function(name, sort, sort)
            return res == func(self.value_expr(inst.operand(0), prefix))
        raise UnsupportedOperationException(f"Unsupported call to function {name}")

    def _as_bitvec(self, expr: z3.ExprRef) -> z3.ExprRef:
        """View an i1 (Bool) operand as a 1-bit bit-vector."""
        if z3.is_bool(expr):
            return z3.If(
                expr, z3.BitVecVal(1, 1, self.ctx), z3.BitVecVal(0, 1, self.ctx), self.ctx
            )
        return expr
