"""Operator tables: abstract operator -> z3 formula constructor.

Each table is built once at import time and indexed by the operator enum.
"""

from __future__ import annotations

from typing import Callable

import z3

from modelverify.ast_nodes import (
    ArithmeticOperator, ComparisonOperator, ConditionalOperator,
    EqualityOperator, LogicalOperator, UnaryArithmeticOperator,
    UnaryLogicalOperator,
)


BinaryBuilder = Callable[[z3.ExprRef, z3.ExprRef], z3.ExprRef]
UnaryBuilder = Callable[[z3.ExprRef], z3.ExprRef]


# z3 '/' and '%' on Int terms are integer division and modulus with a
# non-negative remainder; on Real terms '/' is real division.
ARITHMETIC: dict[ArithmeticOperator, BinaryBuilder] = {
    ArithmeticOperator.ADD: lambda l, r: l + r,
    ArithmeticOperator.SUBTRACT: lambda l, r: l - r,
    ArithmeticOperator.MULTIPLY: lambda l, r: l * r,
    ArithmeticOperator.DIVIDE: lambda l, r: l / r,
    ArithmeticOperator.MODULO: lambda l, r: l % r,
}

UNARY_ARITHMETIC: dict[UnaryArithmeticOperator, UnaryBuilder] = {
    UnaryArithmeticOperator.NEGATE: lambda e: -e,
    UnaryArithmeticOperator.PLUS: lambda e: e,
}

COMPARISON: dict[ComparisonOperator, BinaryBuilder] = {
    ComparisonOperator.LESS: lambda l, r: l < r,
    ComparisonOperator.LESS_EQUAL: lambda l, r: l <= r,
    ComparisonOperator.GREATER: lambda l, r: l > r,
    ComparisonOperator.GREATER_EQUAL: lambda l, r: l >= r,
}

EQUALITY: dict[EqualityOperator, BinaryBuilder] = {
    EqualityOperator.EQUAL: lambda l, r: l == r,
    EqualityOperator.NOT_EQUAL: lambda l, r: l != r,
}

LOGICAL: dict[LogicalOperator, BinaryBuilder] = {
    LogicalOperator.AND: lambda l, r: z3.And(l, r),
    LogicalOperator.OR: lambda l, r: z3.Or(l, r),
}

CONDITIONAL: dict[ConditionalOperator, BinaryBuilder] = {
    ConditionalOperator.AND: lambda l, r: z3.And(l, r),
    ConditionalOperator.OR: lambda l, r: z3.Or(l, r),
}

UNARY_LOGICAL: dict[UnaryLogicalOperator, UnaryBuilder] = {
    UnaryLogicalOperator.NOT: lambda e: z3.Not(e),
}


def is_division(op: ArithmeticOperator) -> bool:
    return op in (ArithmeticOperator.DIVIDE, ArithmeticOperator.MODULO)
