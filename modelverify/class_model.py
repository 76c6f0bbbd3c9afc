"""Class model: the resolved description of a class the engine verifies.

A ClassModel holds ordered property and field tables, a method table and the
class invariants. Methods carry their parameters, hoisted locals, body and
require/ensure clauses. Nothing here is mutated once the resolver is done.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional

from modelverify.ast_nodes import Expr, Statement
from modelverify.errors import SourceLocation
from modelverify.types import ClassType, ExpressionType, TypeRef


RESULT_NAME = "Result"


class AccessModifier(Enum):
    PUBLIC = "public"
    PRIVATE = "private"


# ---------------------------------------------------------------------------
# Variables
# ---------------------------------------------------------------------------

@dataclass
class Variable:
    name: str = ""
    type: TypeRef = ExpressionType.INT
    location: Optional[SourceLocation] = None

    @property
    def is_object(self) -> bool:
        return isinstance(self.type, ClassType)


@dataclass
class Field(Variable):
    initializer: Optional[Expr] = None


@dataclass
class Property(Variable):
    initializer: Optional[Expr] = None


@dataclass
class Parameter(Variable):
    pass


@dataclass
class Local(Variable):
    initializer: Optional[Expr] = None


@dataclass
class ResultLocal(Variable):
    """The ``Result`` pseudo-local of a non-void method."""
    name: str = RESULT_NAME


# ---------------------------------------------------------------------------
# Contract clauses
# ---------------------------------------------------------------------------

@dataclass
class ContractClause:
    expression: Expr = field(default_factory=Expr)
    text: str = ""
    location: Optional[SourceLocation] = None


@dataclass
class Invariant(ContractClause):
    pass


@dataclass
class Require(ContractClause):
    pass


@dataclass
class Ensure(ContractClause):
    pass


# ---------------------------------------------------------------------------
# Methods and classes
# ---------------------------------------------------------------------------

@dataclass
class Method:
    name: str = ""
    access: AccessModifier = AccessModifier.PRIVATE
    is_static: bool = False
    is_preloaded: bool = False
    return_type: TypeRef = ExpressionType.VOID
    parameters: dict[str, Parameter] = field(default_factory=dict)
    locals: dict[str, Local] = field(default_factory=dict)
    body: list[Statement] = field(default_factory=list)
    has_body: bool = True
    requires: list[Require] = field(default_factory=list)
    ensures: list[Ensure] = field(default_factory=list)
    owner: str = ""
    location: Optional[SourceLocation] = None

    @property
    def is_public(self) -> bool:
        return self.access == AccessModifier.PUBLIC

    @property
    def is_void(self) -> bool:
        return self.return_type == ExpressionType.VOID

    @property
    def result(self) -> Optional[ResultLocal]:
        if self.is_void:
            return None
        return ResultLocal(type=self.return_type, location=self.location)

    @property
    def qualified_name(self) -> str:
        return f"{self.owner}.{self.name}" if self.owner else self.name

    def __str__(self) -> str:
        params = ", ".join(f"{p.type} {p.name}" for p in self.parameters.values())
        return f"{self.return_type} {self.name}({params})"


@dataclass
class ClassModel:
    name: str = ""
    properties: dict[str, Property] = field(default_factory=dict)
    fields: dict[str, Field] = field(default_factory=dict)
    methods: dict[str, Method] = field(default_factory=dict)
    invariants: list[Invariant] = field(default_factory=list)
    is_preloaded: bool = False
    location: Optional[SourceLocation] = None

    def state_variables(self) -> list[Variable]:
        """Properties then fields, in declaration order."""
        return [*self.properties.values(), *self.fields.values()]

    def lookup_state(self, name: str) -> Optional[Variable]:
        return self.properties.get(name) or self.fields.get(name)

    def public_methods(self) -> list[Method]:
        """Methods an outside caller may invoke, in table order."""
        return [
            m for m in self.methods.values()
            if m.is_public and not m.is_preloaded and not m.is_static
        ]


class ClassModelTable:
    """Ordered collection of every class known to one verification run."""

    def __init__(self, classes: Optional[list[ClassModel]] = None):
        self._classes: dict[str, ClassModel] = {}
        for cls in classes or []:
            self.add(cls)

    def add(self, cls: ClassModel) -> None:
        if cls.name in self._classes:
            raise ValueError(f"Class '{cls.name}' is already defined")
        self._classes[cls.name] = cls

    def get(self, name: str) -> Optional[ClassModel]:
        return self._classes.get(name)

    def __getitem__(self, name: str) -> ClassModel:
        return self._classes[name]

    def __contains__(self, name: object) -> bool:
        return name in self._classes

    def __iter__(self) -> Iterator[ClassModel]:
        return iter(self._classes.values())

    def __len__(self) -> int:
        return len(self._classes)

    def verifiable(self) -> list[ClassModel]:
        """Classes declared by the user, excluding preloaded ones."""
        return [c for c in self._classes.values() if not c.is_preloaded]
