"""Instances and the per-statement verification context."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional

import z3

from modelverify.class_model import ClassModel, Method


@dataclass(frozen=True, eq=False)
class Instance:
    """A live object whose state variables are tracked by the alias table.

    The verified object has path ``""``; an object field ``child`` of it has
    path ``"child."``; a static class ``Math`` has path ``"Math."``.
    """
    class_model: ClassModel
    path: str = ""
    is_static: bool = False

    @classmethod
    def root(cls, class_model: ClassModel) -> Instance:
        return cls(class_model)

    @classmethod
    def static(cls, class_model: ClassModel) -> Instance:
        return cls(class_model, f"{class_model.name}.", True)

    def child(self, field_name: str, class_model: ClassModel) -> Instance:
        return Instance(class_model, f"{self.path}{field_name}.")

    def state_name(self, name: str, chain: tuple[str, ...] | list[str] = ()) -> str:
        prefix = "".join(f"{segment}." for segment in chain)
        return f"{self.path}{prefix}{name}"

    def local_name(self, frame: str, name: str) -> str:
        return f"{self.path}{frame}::{name}"


@dataclass(frozen=True, eq=False)
class VerificationContext:
    """Where a statement or expression is evaluated.

    ``branch`` is the path condition of the current code, ``None`` outside
    of any conditional. ``frame`` names the activation whose parameters and
    locals are visible; it differs from the method name only for a
    recursive activation. ``call_stack`` lists the activations currently
    being inlined.
    """
    instance: Instance
    method: Optional[Method] = None
    frame: str = ""
    branch: Optional[z3.BoolRef] = None
    call_depth: int = 0
    call_stack: tuple[str, ...] = field(default_factory=tuple)

    def narrow(self, condition: z3.BoolRef) -> VerificationContext:
        if self.branch is None:
            return replace(self, branch=condition)
        return replace(self, branch=z3.And(self.branch, condition))

    def with_branch(self, branch: Optional[z3.BoolRef]) -> VerificationContext:
        return replace(self, branch=branch)

    def guard(self, formula: z3.BoolRef) -> z3.BoolRef:
        """``formula`` holding only on the current path."""
        if self.branch is None:
            return formula
        return z3.Implies(self.branch, formula)

    def violation(self, formula: z3.BoolRef) -> z3.BoolRef:
        """Current path reached and ``formula`` false."""
        if self.branch is None:
            return z3.Not(formula)
        return z3.And(self.branch, z3.Not(formula))

    def local_name(self, name: str) -> str:
        return self.instance.local_name(self.frame, name)

    def enter(self, instance: Instance, method: Method) -> VerificationContext:
        """Context of a callee activation."""
        key = f"{instance.path}{method.name}"
        frame = method.name
        if key in self.call_stack:
            frame = f"{method.name}@{len(self.call_stack)}"
        return replace(
            self,
            instance=instance,
            method=method,
            frame=frame,
            call_depth=self.call_depth + 1,
            call_stack=self.call_stack + (key,),
        )


def method_context(instance: Instance, method: Method) -> VerificationContext:
    """Context of a method called from outside the class."""
    return VerificationContext(
        instance=instance,
        method=method,
        frame=method.name,
        call_stack=(f"{instance.path}{method.name}",),
    )
