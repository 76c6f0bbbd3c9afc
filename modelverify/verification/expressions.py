"""Lower typed expressions to z3 formulas under the current alias table."""

from __future__ import annotations

from typing import TYPE_CHECKING

import z3

from modelverify.ast_nodes import (
    BinaryArithmetic, BinaryConditional, BinaryLogical, BoolLiteral,
    Comparison, ConditionalOperator, Equality, Expr, FloatLiteral,
    FunctionCall, IntLiteral, Parenthesized, UnaryArithmetic, UnaryLogical,
    VariableRef,
)
from modelverify.class_model import Field, Local, Parameter, Property, ResultLocal
from modelverify.errors import MalformedModelError
from modelverify.verification import operators
from modelverify.verification.context import VerificationContext

if TYPE_CHECKING:
    from modelverify.verification.verifier import SequenceRun


class ExpressionBuilder:
    def __init__(self, run: SequenceRun):
        self.run = run

    def build(self, expr: Expr, ctx: VerificationContext) -> z3.ExprRef:
        if isinstance(expr, BoolLiteral):
            return z3.BoolVal(expr.value)
        if isinstance(expr, IntLiteral):
            return z3.IntVal(expr.value)
        if isinstance(expr, FloatLiteral):
            return z3.RealVal(expr.value)
        if isinstance(expr, Parenthesized):
            return self.build(expr.inner, ctx)
        if isinstance(expr, VariableRef):
            return self.run.objects.current(self.variable_name(expr, ctx))

        if isinstance(expr, BinaryArithmetic):
            left = self.build(expr.left, ctx)
            right = self.build(expr.right, ctx)
            if operators.is_division(expr.op):
                self.run.contracts.check_divisor(right, ctx, str(expr), expr.location)
            return operators.ARITHMETIC[expr.op](left, right)

        if isinstance(expr, UnaryArithmetic):
            return operators.UNARY_ARITHMETIC[expr.op](self.build(expr.operand, ctx))

        if isinstance(expr, Comparison):
            left = self.build(expr.left, ctx)
            right = self.build(expr.right, ctx)
            return operators.COMPARISON[expr.op](left, right)

        if isinstance(expr, Equality):
            left = self.build(expr.left, ctx)
            right = self.build(expr.right, ctx)
            return operators.EQUALITY[expr.op](left, right)

        if isinstance(expr, BinaryLogical):
            left = self.build(expr.left, ctx)
            right = self.build(expr.right, ctx)
            return operators.LOGICAL[expr.op](left, right)

        if isinstance(expr, BinaryConditional):
            # The right operand is only evaluated when the left one does not
            # decide the result, like the single arm of a conditional.
            left = self.build(expr.left, ctx)
            evaluated = left if expr.op == ConditionalOperator.AND else z3.Not(left)
            right_ctx = ctx.narrow(evaluated)
            objects = self.run.objects
            before = objects.begin_branch()
            right = self.build(expr.right, right_ctx)
            done = objects.end_branch()
            objects.merge_branches(before, done, done, right_ctx.branch, ctx.violation(evaluated))
            return operators.CONDITIONAL[expr.op](left, right)

        if isinstance(expr, UnaryLogical):
            return operators.UNARY_LOGICAL[expr.op](self.build(expr.operand, ctx))

        if isinstance(expr, FunctionCall):
            result = self.run.calls.call(expr, ctx)
            if result is None:
                raise MalformedModelError(f"Void call '{expr}' used as a value", expr.location)
            return result

        raise MalformedModelError(f"Cannot build expression {type(expr).__name__}", expr.location)

    def variable_name(self, ref: VariableRef, ctx: VerificationContext) -> str:
        """Qualified alias-table name of a resolved variable reference."""
        var = ref.variable
        if isinstance(var, (Field, Property)):
            return ctx.instance.state_name(var.name, ref.chain)
        if isinstance(var, (Parameter, Local, ResultLocal)):
            if ctx.method is None:
                raise MalformedModelError(f"'{ref}' used outside of a method", ref.location)
            return ctx.local_name(var.name)
        raise MalformedModelError(f"Unresolved name '{ref}'", ref.location)
