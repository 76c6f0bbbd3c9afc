"""Solver capability used by the verifier, and its z3 implementation.

The verifier only needs to add formulas, open and close scopes, ask for
satisfiability and print a model. Anything offering these can be injected
through a session factory.
"""

from __future__ import annotations

import abc
from contextlib import contextmanager
from enum import Enum
from typing import Callable, Iterator

import z3


class SolverStatus(Enum):
    SATISFIABLE = "sat"
    UNSATISFIABLE = "unsat"
    UNKNOWN = "unknown"


class SolverSession(abc.ABC):
    """One solver context, owned by a single call sequence."""

    @abc.abstractmethod
    def add(self, formula: z3.BoolRef) -> None:
        ...

    @abc.abstractmethod
    def push(self) -> None:
        ...

    @abc.abstractmethod
    def pop(self) -> None:
        ...

    @abc.abstractmethod
    def check(self) -> SolverStatus:
        ...

    @abc.abstractmethod
    def model_text(self) -> str:
        """Printable assignment of the last satisfiable check."""

    def close(self) -> None:
        pass

    @contextmanager
    def scope(self) -> Iterator[SolverSession]:
        """Push a scope that is popped however the block exits."""
        self.push()
        try:
            yield self
        finally:
            self.pop()

    def __enter__(self) -> SolverSession:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


SessionFactory = Callable[[], SolverSession]


class Z3SolverSession(SolverSession):
    def __init__(self, timeout_ms: int = 0):
        self.solver = z3.Solver()
        self.solver.set("model", True)
        if timeout_ms > 0:
            self.solver.set("timeout", timeout_ms)
        self._depth = 0

    def add(self, formula: z3.BoolRef) -> None:
        self.solver.add(formula)

    def push(self) -> None:
        self.solver.push()
        self._depth += 1

    def pop(self) -> None:
        if self._depth == 0:
            raise RuntimeError("Solver scope underflow")
        self.solver.pop()
        self._depth -= 1

    @property
    def depth(self) -> int:
        return self._depth

    def check(self) -> SolverStatus:
        status = self.solver.check()
        if status == z3.sat:
            return SolverStatus.SATISFIABLE
        if status == z3.unsat:
            return SolverStatus.UNSATISFIABLE
        return SolverStatus.UNKNOWN

    def model_text(self) -> str:
        model = self.solver.model()
        entries = sorted((str(d.name()), str(model[d])) for d in model.decls())
        return "\n".join(f"{name} = {value}" for name, value in entries)

    def close(self) -> None:
        self.solver.reset()


def z3_session_factory(timeout_ms: int = 0) -> SessionFactory:
    def factory() -> SolverSession:
        return Z3SolverSession(timeout_ms)
    return factory
