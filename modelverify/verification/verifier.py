"""Bounded verification of one class.

The Verifier enumerates call sequences of the class's public methods and
evaluates each in a fresh solver session:

1. the initial state (properties then fields) is asserted from literal
   initializers or type defaults;
2. for every method of the sequence, parameters get fresh unconstrained
   aliases, requires are assumed and must stay satisfiable, locals and
   ``Result`` are initialised, the body is executed and every ensure must
   hold;
3. every class invariant must hold in the final state.

The first violation found is the result of the run.

References:
  Biere, Cimatti, Clarke, Zhu. "Symbolic Model Checking without BDDs"
  TACAS 1999 (bounded model checking)

  Cytron et al. "Efficiently Computing Static Single Assignment Form and the
  Control Dependence Graph" TOPLAS 1991 (SSA, phi nodes)
"""

from __future__ import annotations

import logging
from typing import Optional

from modelverify.analysis_logger import null_logger
from modelverify.class_model import ClassModel, ClassModelTable, Method
from modelverify.config import RecursionPolicy, VerifierConfig
from modelverify.errors import MalformedModelError, SourceLocation
from modelverify.result import VerificationErrorType, VerificationResult
from modelverify.verification.call_graph import CallGraph
from modelverify.verification.call_sequence import CallSequenceExplorer
from modelverify.verification.calls import CallInliner
from modelverify.verification.context import Instance, VerificationContext, method_context
from modelverify.verification.contracts import ContractChecker, VerificationFailure
from modelverify.verification.expressions import ExpressionBuilder
from modelverify.verification.object_manager import ObjectManager
from modelverify.verification.solver import SessionFactory, SolverSession, z3_session_factory
from modelverify.verification.statements import StatementExecutor


class SequenceRun:
    """State of one call sequence: solver session, alias table and components."""

    def __init__(
        self,
        cls: ClassModel,
        classes: ClassModelTable,
        config: VerifierConfig,
        session: SolverSession,
        sequence: tuple[Method, ...],
        logger: logging.Logger,
    ):
        self.cls = cls
        self.classes = classes
        self.config = config
        self.session = session
        self.sequence = sequence
        self.logger = logger
        self.root = Instance.root(cls)

        self.objects = ObjectManager(session, classes, logger)
        self.expressions = ExpressionBuilder(self)
        self.statements = StatementExecutor(self)
        self.calls = CallInliner(self)
        self.contracts = ContractChecker(self)

    @property
    def sequence_names(self) -> tuple[str, ...]:
        return tuple(m.name for m in self.sequence)

    def run(self) -> VerificationResult:
        names = ", ".join(self.sequence_names) or "<empty>"
        self.logger.info("Call sequence: %s", names)

        top = VerificationContext(instance=self.root)
        self.logger.debug("Initial state of %s", self.cls.name)
        self.objects.create_state(self.root, top)

        for method in self.sequence:
            self._run_public_method(method)

        last = self.sequence[-1].name if self.sequence else None
        self.contracts.check_invariants(top, last)
        return VerificationResult.success(self.cls.name)

    def _run_public_method(self, method: Method) -> None:
        ctx = method_context(self.root, method)
        for param in method.parameters.values():
            self.objects.create_variable(ctx.local_name(param.name), param.type, ctx)
        self.contracts.assume_requires(ctx)
        self.calls.prepare_frame(ctx)
        self.statements.execute(method.body, ctx)
        self.contracts.check_ensures(ctx, keep_normal=False)

    # -------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------

    def error_result(
        self,
        error_type: VerificationErrorType,
        ctx: VerificationContext,
        text: str,
        location: Optional[SourceLocation] = None,
        index: Optional[int] = None,
        model: str = "",
        method_name: Optional[str] = None,
    ) -> VerificationResult:
        if method_name is None and ctx.method is not None:
            method = ctx.method
            method_name = method.name if method.owner == self.cls.name else method.qualified_name
        return VerificationResult(
            error_type=error_type,
            class_name=self.cls.name,
            method_name=method_name,
            clause_index=index,
            text=text,
            location=location,
            call_sequence=self.sequence_names,
            model=model,
        )

    def timeout_result(self) -> VerificationResult:
        self.logger.info("Solver gave up on sequence %s", ", ".join(self.sequence_names))
        return VerificationResult.timeout(self.cls.name, self.sequence_names)


class Verifier:
    """Checks that no call sequence up to ``max_depth`` breaks a contract of ``cls``."""

    def __init__(
        self,
        cls: ClassModel,
        classes: Optional[ClassModelTable] = None,
        config: Optional[VerifierConfig] = None,
        logger: Optional[logging.Logger] = None,
        session_factory: Optional[SessionFactory] = None,
    ):
        self.cls = cls
        self.classes = classes if classes is not None else ClassModelTable([cls])
        self.config = config or VerifierConfig()
        self.logger = logger or null_logger()
        self.session_factory = session_factory or z3_session_factory(self.config.solver_timeout_ms)
        self.explorer: Optional[CallSequenceExplorer] = None

    def run(self) -> VerificationResult:
        if self.cls.is_preloaded:
            raise MalformedModelError(f"Preloaded class '{self.cls.name}' cannot be verified", self.cls.location)
        self._check_recursion()

        self.logger.info(
            "Verifying %s (max depth %d, max duration %ss)",
            self.cls.name, self.config.max_depth, self.config.max_duration,
        )
        self.explorer = CallSequenceExplorer(
            self.cls.name,
            self.cls.public_methods(),
            self.config.max_depth,
            self.config.max_duration,
            self.logger,
        )
        result = self.explorer.explore(self._verify_sequence)
        self.logger.info(
            "%s after %d sequence(s) in %.3fs",
            result, self.explorer.sequences_explored, self.explorer.elapsed(),
        )
        return result

    def _check_recursion(self) -> None:
        cycle = CallGraph(self.cls).find_cycle()
        if cycle is None:
            return
        if self.config.recursion == RecursionPolicy.REJECT:
            method = self.cls.methods[cycle[0]]
            raise MalformedModelError(
                f"Recursive calls in class '{self.cls.name}': {' -> '.join(cycle)}",
                method.location,
            )
        self.logger.info("Recursive calls %s abstracted beyond depth %d",
                         " -> ".join(cycle), self.config.max_inline_depth)

    def _verify_sequence(self, sequence: tuple[Method, ...]) -> VerificationResult:
        with self.session_factory() as session:
            run = SequenceRun(self.cls, self.classes, self.config, session, sequence, self.logger)
            try:
                return run.run()
            except VerificationFailure as failure:
                return failure.result


def verify(
    cls: ClassModel,
    classes: Optional[ClassModelTable] = None,
    config: Optional[VerifierConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> VerificationResult:
    """Convenience function to verify one class."""
    return Verifier(cls, classes, config, logger).run()
