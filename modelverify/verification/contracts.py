"""Contract obligations discharged against the solver.

Both obligations assert something and ask whether it is satisfiable:

* prove P: push, assert "path reached and not P"; a satisfiable answer is a
  counterexample. The scope is popped whatever happens; with
  ``keep_normal`` P is then kept as a fact for the rest of the sequence.
* consistency of P: assert P and require the solver state to stay
  satisfiable.

A violation unwinds the current call sequence with VerificationFailure.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import z3

from modelverify.class_model import ContractClause
from modelverify.errors import SourceLocation
from modelverify.result import VerificationErrorType, VerificationResult
from modelverify.verification.context import VerificationContext
from modelverify.verification.solver import SolverStatus

if TYPE_CHECKING:
    from modelverify.verification.verifier import SequenceRun


class VerificationFailure(Exception):
    """Carries the result that ends the current call sequence."""

    def __init__(self, result: VerificationResult):
        self.result = result
        super().__init__(str(result))


class ContractChecker:
    def __init__(self, run: SequenceRun):
        self.run = run

    def prove_always_true(
        self,
        formula: z3.BoolRef,
        ctx: VerificationContext,
        error_type: VerificationErrorType,
        text: str,
        location: Optional[SourceLocation] = None,
        index: Optional[int] = None,
        method_name: Optional[str] = None,
        keep_normal: bool = False,
    ) -> None:
        session = self.run.session
        with session.scope():
            session.add(ctx.violation(formula))
            status = session.check()
            if status == SolverStatus.UNKNOWN:
                raise VerificationFailure(self.run.timeout_result())
            if status == SolverStatus.SATISFIABLE:
                model = session.model_text()
                self.run.logger.info("Violation of '%s' (%s)\n%s", text, error_type.value, model)
                raise VerificationFailure(self.run.error_result(
                    error_type, ctx, text, location, index, model, method_name,
                ))
        if keep_normal:
            self.run.objects.add(ctx.guard(formula))

    def assume_consistent(
        self,
        formula: z3.BoolRef,
        ctx: VerificationContext,
        error_type: VerificationErrorType,
        text: str,
        location: Optional[SourceLocation] = None,
        index: Optional[int] = None,
    ) -> None:
        """Assert ``formula`` for good and fail if nothing can satisfy it."""
        self.run.objects.add(ctx.guard(formula))
        status = self.run.session.check()
        if status == SolverStatus.UNKNOWN:
            raise VerificationFailure(self.run.timeout_result())
        if status == SolverStatus.UNSATISFIABLE:
            self.run.logger.info("Unsatisfiable '%s' (%s)", text, error_type.value)
            raise VerificationFailure(self.run.error_result(error_type, ctx, text, location, index))

    # -------------------------------------------------------------------
    # Clause lists
    # -------------------------------------------------------------------

    def assume_requires(self, ctx: VerificationContext) -> None:
        """Requires of a method entered from outside the class."""
        for i, clause in enumerate(ctx.method.requires):
            self.assume_consistent(
                self._build(clause, ctx), ctx, VerificationErrorType.REQUIRE_ERROR,
                clause.text, clause.location, i,
            )

    def check_requires(self, ctx: VerificationContext, keep_normal: bool) -> None:
        """Requires of a callee, which the call site must satisfy."""
        for i, clause in enumerate(ctx.method.requires):
            self.prove_always_true(
                self._build(clause, ctx), ctx, VerificationErrorType.REQUIRE_ERROR,
                clause.text, clause.location, i, keep_normal=keep_normal,
            )

    def check_ensures(self, ctx: VerificationContext, keep_normal: bool) -> None:
        for i, clause in enumerate(ctx.method.ensures):
            self.prove_always_true(
                self._build(clause, ctx), ctx, VerificationErrorType.ENSURE_ERROR,
                clause.text, clause.location, i, keep_normal=keep_normal,
            )

    def assume_ensures(self, ctx: VerificationContext) -> None:
        for clause in ctx.method.ensures:
            self.run.objects.add(ctx.guard(self._build(clause, ctx)))

    def assume_invariants(self, ctx: VerificationContext) -> None:
        for clause in ctx.instance.class_model.invariants:
            self.run.objects.add(ctx.guard(self._build(clause, ctx)))

    def check_invariants(self, ctx: VerificationContext, method_name: Optional[str]) -> None:
        for i, clause in enumerate(ctx.instance.class_model.invariants):
            self.prove_always_true(
                self._build(clause, ctx), ctx, VerificationErrorType.INVARIANT_ERROR,
                clause.text, clause.location, i, method_name=method_name,
            )

    def check_divisor(self, divisor: z3.ExprRef, ctx: VerificationContext, text: str,
                      location: Optional[SourceLocation]) -> None:
        self.prove_always_true(divisor != 0, ctx, VerificationErrorType.ASSUME_ERROR, text, location)

    def _build(self, clause: ContractClause, ctx: VerificationContext) -> z3.BoolRef:
        return self.run.expressions.build(clause.expression, ctx)
