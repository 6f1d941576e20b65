"""First-class types of the instruction streams being compared."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class IRType:
    """Base class for value types. Types compare by value."""

    def is_integer(self) -> bool:
        return False

    def is_float(self) -> bool:
        """IEEE binary32."""
        return False

    def is_double(self) -> bool:
        """IEEE binary64."""
        return False

    def is_floating_point(self) -> bool:
        return self.is_float() or self.is_double()

    def is_void(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class IntegerType(IRType):
    width: int

    def __post_init__(self):
        if self.width < 1:
            raise ValueError(f"Integer width must be positive, got {self.width}")

    def is_integer(self) -> bool:
        return True

    def __str__(self) -> str:
        return f"i{self.width}"


@dataclass(frozen=True, slots=True)
class FloatType(IRType):
    def is_float(self) -> bool:
        return True

    def __str__(self) -> str:
        return "float"


@dataclass(frozen=True, slots=True)
class DoubleType(IRType):
    def is_double(self) -> bool:
        return True

    def __str__(self) -> str:
        return "double"


@dataclass(frozen=True, slots=True)
class PointerType(IRType):
    def __str__(self) -> str:
        return "ptr"


@dataclass(frozen=True, slots=True)
class VoidType(IRType):
    def is_void(self) -> bool:
        return True

    def __str__(self) -> str:
        return "void"


@dataclass(frozen=True, slots=True)
class MetadataType(IRType):
    def __str__(self) -> str:
        return "metadata"


i1 = IntegerType(1)
i8 = IntegerType(8)
i16 = IntegerType(16)
i32 = IntegerType(32)
i64 = IntegerType(64)
f32 = FloatType()
f64 = DoubleType()
ptr = PointerType()
void = VoidType()
metadata = MetadataType()
