"""Object manager: variables, their solver constants and branch merging.

Variables live in the alias table under qualified names (see Instance).
Every fresh alias is a solver constant whose name is the alias string; the
manager asserts the constraints that give it a value.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import z3

from modelverify.ast_nodes import literal_value
from modelverify.class_model import ClassModelTable, Variable
from modelverify.errors import MalformedModelError
from modelverify.types import ClassType, ExpressionType, TypeRef
from modelverify.verification.alias_table import AliasTable, VariableAlias
from modelverify.verification.context import Instance, VerificationContext
from modelverify.verification.solver import SolverSession


def make_constant(name: str, t: TypeRef) -> z3.ExprRef:
    if t == ExpressionType.BOOL:
        return z3.Bool(name)
    if t == ExpressionType.INT:
        return z3.Int(name)
    if t == ExpressionType.FLOAT:
        return z3.Real(name)
    raise MalformedModelError(f"No solver sort for type '{t}' of '{name}'")


def make_value(value: Any, t: TypeRef) -> z3.ExprRef:
    if t == ExpressionType.BOOL:
        return z3.BoolVal(bool(value))
    if t == ExpressionType.INT:
        return z3.IntVal(int(value))
    if t == ExpressionType.FLOAT:
        return z3.RealVal(value)
    raise MalformedModelError(f"No solver value for type '{t}'")


def default_value(t: TypeRef) -> z3.ExprRef:
    """false, 0 or 0.0."""
    return make_value(0, t)


class ObjectManager:
    def __init__(self, session: SolverSession, classes: ClassModelTable, logger: logging.Logger):
        self.session = session
        self.classes = classes
        self.logger = logger
        self.aliases = AliasTable()
        self._types: dict[str, TypeRef] = {}

    # -------------------------------------------------------------------
    # Constants and assertions
    # -------------------------------------------------------------------

    def constant(self, alias: VariableAlias) -> z3.ExprRef:
        return make_constant(str(alias), self._types[alias.variable])

    def current(self, name: str) -> z3.ExprRef:
        if name not in self.aliases:
            raise MalformedModelError(f"Variable '{name}' has no value at this point")
        return self.constant(self.aliases.get_alias(name))

    def add(self, formula: z3.BoolRef) -> None:
        self.logger.debug("Assert: %s", formula)
        self.session.add(formula)

    # -------------------------------------------------------------------
    # Variables
    # -------------------------------------------------------------------

    def create_variable(
        self,
        name: str,
        t: TypeRef,
        ctx: VerificationContext,
        initial: Optional[z3.ExprRef] = None,
    ) -> z3.ExprRef:
        """Register a fresh alias for ``name``, constrained to ``initial`` if given."""
        self._types[name] = t
        const = self.constant(self.aliases.add_or_increment(name))
        if initial is not None:
            self.add(ctx.guard(const == initial))
        return const

    def create_initialized(self, name: str, var: Variable, ctx: VerificationContext) -> z3.ExprRef:
        """Fresh alias holding the literal initializer of ``var`` or its type default."""
        init = getattr(var, "initializer", None)
        value = literal_value(init) if init is not None else None
        initial = make_value(value, var.type) if value is not None else default_value(var.type)
        return self.create_variable(name, var.type, ctx, initial)

    def create_state(self, instance: Instance, ctx: VerificationContext) -> None:
        """Initial state of ``instance``, object fields included."""
        for var in instance.class_model.state_variables():
            if isinstance(var.type, ClassType):
                self.create_state(instance.child(var.name, self.classes[var.type.name]), ctx)
            else:
                self.create_initialized(instance.state_name(var.name), var, ctx)

    def assign(self, name: str, value: z3.ExprRef, ctx: VerificationContext) -> z3.ExprRef:
        if name not in self.aliases:
            raise MalformedModelError(f"Assignment to unknown variable '{name}'")
        const = self.constant(self.aliases.increment_alias(name))
        self.add(ctx.guard(const == value))
        return const

    def clear_state(self, instance: Instance) -> None:
        """Forget everything known about the state of ``instance``."""
        for var in instance.class_model.state_variables():
            if isinstance(var.type, ClassType):
                self.clear_state(instance.child(var.name, self.classes[var.type.name]))
            else:
                name = instance.state_name(var.name)
                self._types[name] = var.type
                alias = self.aliases.add_or_increment(name)
                self.logger.debug("Havoc: %s", alias)

    # -------------------------------------------------------------------
    # Branches
    # -------------------------------------------------------------------

    def begin_branch(self) -> AliasTable:
        return self.aliases.clone()

    def end_branch(self) -> AliasTable:
        return self.aliases.clone()

    def merge_branches(
        self,
        before: AliasTable,
        when_true: AliasTable,
        when_false: AliasTable,
        true_branch: z3.BoolRef,
        false_branch: z3.BoolRef,
    ) -> None:
        """Join the two arms of a conditional.

        The false arm ran on top of the true arm's table, so an alias made
        in one arm is only defined under that arm's predicate. Under the
        opposite predicate it is tied to the value the variable had before
        the conditional. Variables whose versions differ between the arms
        get one more alias equal to either arm's value.
        """
        only_true = when_true.get_alias_difference(before)
        only_false = when_false.get_alias_difference(when_true)
        updated = self.aliases.merge(when_true)

        self._add_conditional_aliases(false_branch, only_true, before)
        self._add_conditional_aliases(true_branch, only_false, before)

        for name in updated:
            merged = self.current(name)
            self.add(z3.Implies(true_branch, merged == self.constant(when_true.get_alias(name))))
            self.add(z3.Implies(false_branch, merged == self.constant(when_false.get_alias(name))))

    def _add_conditional_aliases(
        self,
        predicate: z3.BoolRef,
        aliases: list[VariableAlias],
        before: AliasTable,
    ) -> None:
        for alias in aliases:
            if alias.variable in before:
                previous = self.constant(before.get_alias(alias.variable))
            else:
                previous = default_value(self._types[alias.variable])
            self.add(z3.Implies(predicate, self.constant(alias) == previous))
