"""Static types of the model description language.

The engine knows three value types (bool, int and double) plus void for
method return types. Object-typed fields carry a ClassType naming the class
they instantiate; they never appear as values inside expressions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class ExpressionType(Enum):
    BOOL = "bool"
    INT = "int"
    FLOAT = "double"
    VOID = "void"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ClassType:
    name: str

    def __str__(self) -> str:
        return self.name


TypeRef = Union[ExpressionType, ClassType]


_TYPE_NAMES: dict[str, ExpressionType] = {
    "bool": ExpressionType.BOOL,
    "int": ExpressionType.INT,
    "double": ExpressionType.FLOAT,
    "float": ExpressionType.FLOAT,
    "void": ExpressionType.VOID,
}


def type_from_name(name: str) -> TypeRef:
    """Map a type name written in a model to its static type.

    Names that are not primitive types are assumed to name a class; the
    resolver checks that the class exists.
    """
    return _TYPE_NAMES.get(name) or ClassType(name)


def is_numeric(t: Optional[TypeRef]) -> bool:
    return t in (ExpressionType.INT, ExpressionType.FLOAT)


def is_value_type(t: Optional[TypeRef]) -> bool:
    return t in (ExpressionType.BOOL, ExpressionType.INT, ExpressionType.FLOAT)


def numeric_join(left: TypeRef, right: TypeRef) -> ExpressionType:
    """Result type of a binary arithmetic operation."""
    if ExpressionType.FLOAT in (left, right):
        return ExpressionType.FLOAT
    return ExpressionType.INT


def is_assignable(target: TypeRef, source: TypeRef) -> bool:
    if target == source:
        return True
    # int promotes to double
    return target == ExpressionType.FLOAT and source == ExpressionType.INT
