"""
smtdiff.smt: z3 encoding of instruction snippets and equivalence queries.
"""

from .encoder import (
    LEFT_PREFIX,
    RIGHT_PREFIX,
    UNINTERPRETED_FUNCTIONS,
    Z3_INSTALLED,
    SemanticEncoder,
    requires_z3_installed,
    symbol_name,
)
from .solver import EquivalenceSolver, SolverVerdict, TimeBudget

__all__ = [
    "LEFT_PREFIX",
    "RIGHT_PREFIX",
    "UNINTERPRETED_FUNCTIONS",
    "Z3_INSTALLED",
    "SemanticEncoder",
    "requires_z3_installed",
    "symbol_name",
    "EquivalenceSolver",
    "SolverVerdict",
    "TimeBudget",
]
