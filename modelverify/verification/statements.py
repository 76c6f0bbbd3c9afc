"""Lower statement lists to solver assertions and alias-table updates."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import z3

from modelverify.ast_nodes import (
    Assignment, Conditional, MethodCallStatement, Return, Statement,
)
from modelverify.class_model import RESULT_NAME
from modelverify.errors import MalformedModelError
from modelverify.verification.context import VerificationContext

if TYPE_CHECKING:
    from modelverify.verification.verifier import SequenceRun


class StatementExecutor:
    def __init__(self, run: SequenceRun):
        self.run = run

    def execute(self, statements: list[Statement], ctx: VerificationContext) -> Optional[VerificationContext]:
        """Execute ``statements`` and return the context control continues in.

        The result is ``ctx`` itself when no path returned, a context with a
        narrower branch when some paths returned, and ``None`` when all did.
        """
        for i, stmt in enumerate(statements):
            if isinstance(stmt, Return):
                self._return(stmt, ctx)
                return None
            if isinstance(stmt, Conditional):
                after = self._conditional(stmt, ctx)
                if after is None:
                    return None
                if after is not ctx:
                    return self._execute_remaining(statements[i + 1:], ctx, after)
            elif isinstance(stmt, Assignment):
                self._assignment(stmt, ctx)
            elif isinstance(stmt, MethodCallStatement):
                self.run.calls.call(stmt.call, ctx)
            else:
                raise MalformedModelError(f"Cannot execute {type(stmt).__name__}", stmt.location)
        return ctx

    def _assignment(self, stmt: Assignment, ctx: VerificationContext) -> None:
        value = self.run.expressions.build(stmt.source, ctx)
        name = self.run.expressions.variable_name(stmt.destination, ctx)
        self.run.objects.assign(name, value, ctx)

    def _return(self, stmt: Return, ctx: VerificationContext) -> None:
        if stmt.value is None:
            return
        value = self.run.expressions.build(stmt.value, ctx)
        self.run.objects.assign(ctx.local_name(RESULT_NAME), value, ctx)

    def _conditional(self, stmt: Conditional, ctx: VerificationContext) -> Optional[VerificationContext]:
        objects = self.run.objects
        condition = self.run.expressions.build(stmt.condition, ctx)
        true_ctx = ctx.narrow(condition)
        false_ctx = ctx.narrow(z3.Not(condition))

        before = objects.begin_branch()
        after_true = self.execute(stmt.true_body, true_ctx)
        when_true = objects.end_branch()
        after_false = self.execute(stmt.false_body, false_ctx)
        when_false = objects.end_branch()
        objects.merge_branches(before, when_true, when_false, true_ctx.branch, false_ctx.branch)

        if after_true is true_ctx and after_false is false_ctx:
            return ctx
        continuing = [after.branch for after in (after_true, after_false) if after is not None]
        if not continuing:
            return None
        branch = continuing[0] if len(continuing) == 1 else z3.Or(*continuing)
        return ctx.with_branch(branch)

    def _execute_remaining(
        self,
        statements: list[Statement],
        ctx: VerificationContext,
        after: VerificationContext,
    ) -> Optional[VerificationContext]:
        """Run the statements following a conditional some of whose paths returned.

        They act as the single arm of a conditional on ``after.branch`` so
        that writes they make leave returned paths untouched.
        """
        objects = self.run.objects
        before = objects.begin_branch()
        result = self.execute(statements, after)
        when_done = objects.end_branch()
        objects.merge_branches(before, when_done, when_done, after.branch, ctx.violation(after.branch))
        return result
