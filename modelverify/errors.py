"""Structured error objects for modelverify.

Loader errors are machine-readable: each one carries a kind, a message, an
optional source location and free-form details, and serializes to JSON for
the CLI. Contract violations found by the engine are *not* errors in this
sense; they are reported as VerificationResult values.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    SYNTAX_ERROR = "syntax_error"
    NAME_ERROR = "name_error"
    TYPE_ERROR = "type_error"
    UNSUPPORTED = "unsupported"
    MODEL_ERROR = "model_error"


@dataclass(frozen=True)
class SourceLocation:
    line: int
    column: int
    file: str = "<stdin>"

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


@dataclass
class ModelError:
    kind: ErrorKind
    message: str
    location: Optional[SourceLocation] = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "kind": self.kind.value,
            "message": self.message,
        }
        if self.location:
            d["location"] = {
                "file": self.location.file,
                "line": self.location.line,
                "column": self.location.column,
            }
        if self.details:
            d["details"] = self.details
        return d

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __str__(self) -> str:
        loc = f" at {self.location}" if self.location else ""
        return f"[{self.kind.value}]{loc}: {self.message}"


def syntax_error(
    message: str,
    location: Optional[SourceLocation] = None,
) -> ModelError:
    return ModelError(
        kind=ErrorKind.SYNTAX_ERROR,
        message=message,
        location=location,
    )


def name_error(
    name: str,
    location: Optional[SourceLocation] = None,
    scope: str = "",
) -> ModelError:
    details: dict[str, Any] = {"name": name}
    if scope:
        details["scope"] = scope
    return ModelError(
        kind=ErrorKind.NAME_ERROR,
        message=f"Undefined name '{name}'",
        location=location,
        details=details,
    )


def type_error(
    expected_type: str,
    actual_type: str,
    location: Optional[SourceLocation] = None,
    context: str = "",
) -> ModelError:
    details: dict[str, Any] = {
        "expected_type": expected_type,
        "actual_type": actual_type,
    }
    if context:
        details["context"] = context
    return ModelError(
        kind=ErrorKind.TYPE_ERROR,
        message=f"Expected type '{expected_type}', got '{actual_type}'",
        location=location,
        details=details,
    )


def unsupported_error(
    construct: str,
    location: Optional[SourceLocation] = None,
) -> ModelError:
    return ModelError(
        kind=ErrorKind.UNSUPPORTED,
        message=f"Unsupported construct: {construct}",
        location=location,
        details={"construct": construct},
    )


class ModelLoadError(Exception):
    """Exception wrapping one or more ModelErrors found while loading a model."""

    def __init__(self, errors: list[ModelError] | ModelError):
        if isinstance(errors, ModelError):
            errors = [errors]
        self.errors = errors
        super().__init__(self._format())

    def _format(self) -> str:
        return "\n".join(str(e) for e in self.errors)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps([e.to_dict() for e in self.errors], indent=indent)


class MalformedModelError(Exception):
    """The engine received a class model that breaks its input contract.

    Raised for names that do not resolve, objects used as values, or call
    graphs rejected by the recursion policy. The engine does not try to
    recover from it.
    """

    def __init__(self, message: str, location: Optional[SourceLocation] = None):
        self.location = location
        loc = f" at {location}" if location else ""
        super().__init__(f"{message}{loc}")
