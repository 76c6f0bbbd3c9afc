"""Method calls: inlining and contract abstraction.

Calls between methods of the same class are inlined: arguments are bound
to fresh parameter aliases, the callee's requires are proved at the call
site, its body is executed and its ensures are proved and kept as facts.

Calls through an object field and calls to preloaded static methods are
abstracted by the callee's contract: requires are proved, the callee state
is forgotten, then ensures (and, for objects, class invariants) are assumed.
With RecursionPolicy.ABSTRACT, intra-class calls nested deeper than
``max_inline_depth`` are abstracted the same way.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import z3

from modelverify.ast_nodes import CallKind, FunctionCall
from modelverify.class_model import RESULT_NAME, Method
from modelverify.config import RecursionPolicy
from modelverify.errors import MalformedModelError
from modelverify.verification.context import Instance, VerificationContext
from modelverify.verification.object_manager import default_value

if TYPE_CHECKING:
    from modelverify.verification.verifier import SequenceRun


class CallInliner:
    def __init__(self, run: SequenceRun):
        self.run = run

    def call(self, call: FunctionCall, ctx: VerificationContext) -> Optional[z3.ExprRef]:
        if call.method is None:
            raise MalformedModelError(f"Unresolved call '{call}'", call.location)

        if call.kind == CallKind.INTRA_CLASS:
            if self._beyond_inline_depth(ctx):
                self.run.logger.debug("Abstracting call %s at depth %d", call, ctx.call_depth)
                return self._abstract(call, ctx, ctx.instance, havoc=ctx.instance, with_invariants=False)
            return self._inline(call, ctx)

        if call.kind == CallKind.INSTANCE:
            instance = self._instance_at(ctx.instance, call.chain)
            return self._abstract(call, ctx, instance, havoc=instance, with_invariants=True)

        instance = Instance.static(call.callee_class)
        return self._abstract(call, ctx, instance, havoc=None, with_invariants=False)

    def prepare_frame(self, ctx: VerificationContext) -> None:
        """Locals and ``Result`` of a method about to run."""
        objects = self.run.objects
        method = ctx.method
        for local in method.locals.values():
            objects.create_initialized(ctx.local_name(local.name), local, ctx)
        if not method.is_void:
            objects.create_variable(
                ctx.local_name(RESULT_NAME), method.return_type, ctx, default_value(method.return_type),
            )

    def result_of(self, ctx: VerificationContext) -> Optional[z3.ExprRef]:
        if ctx.method.is_void:
            return None
        return self.run.objects.current(ctx.local_name(RESULT_NAME))

    # -------------------------------------------------------------------
    # Inlining
    # -------------------------------------------------------------------

    def _inline(self, call: FunctionCall, ctx: VerificationContext) -> Optional[z3.ExprRef]:
        method = call.method
        callee = ctx.enter(ctx.instance, method)
        self.run.logger.debug("Inlining %s at depth %d", call, callee.call_depth)

        self._bind_arguments(call, ctx, callee)
        self.run.contracts.check_requires(callee, keep_normal=True)
        self.prepare_frame(callee)
        self.run.statements.execute(method.body, callee)
        self.run.contracts.check_ensures(callee, keep_normal=True)
        return self.result_of(callee)

    def _beyond_inline_depth(self, ctx: VerificationContext) -> bool:
        config = self.run.config
        return config.recursion == RecursionPolicy.ABSTRACT and ctx.call_depth >= config.max_inline_depth

    # -------------------------------------------------------------------
    # Contract abstraction
    # -------------------------------------------------------------------

    def _abstract(
        self,
        call: FunctionCall,
        ctx: VerificationContext,
        instance: Instance,
        havoc: Optional[Instance],
        with_invariants: bool,
    ) -> Optional[z3.ExprRef]:
        method = call.method
        callee = ctx.enter(instance, method)

        self._bind_arguments(call, ctx, callee)
        self.run.contracts.check_requires(callee, keep_normal=False)
        if havoc is not None:
            self.run.objects.clear_state(havoc)
        if not method.is_void:
            self.run.objects.create_variable(callee.local_name(RESULT_NAME), method.return_type, callee)
        self.run.contracts.assume_ensures(callee)
        if with_invariants:
            self.run.contracts.assume_invariants(callee)
        return self.result_of(callee)

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------

    def _bind_arguments(self, call: FunctionCall, caller: VerificationContext, callee: VerificationContext) -> None:
        method: Method = call.method
        values = [self.run.expressions.build(arg, caller) for arg in call.args]
        for param, value in zip(method.parameters.values(), values):
            self.run.objects.create_variable(callee.local_name(param.name), param.type, caller, value)

    def _instance_at(self, instance: Instance, chain: list[str]) -> Instance:
        for segment in chain:
            var = instance.class_model.lookup_state(segment)
            if var is None or not var.is_object:
                raise MalformedModelError(f"'{segment}' is not an object of '{instance.class_model.name}'")
            instance = instance.child(segment, self.run.classes[var.type.name])
        return instance
