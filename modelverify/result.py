"""Outcome of verifying one class."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from modelverify.errors import SourceLocation


class VerificationErrorType(Enum):
    SUCCESS = "success"
    INVARIANT_ERROR = "invariant_error"
    REQUIRE_ERROR = "require_error"
    ENSURE_ERROR = "ensure_error"
    ASSUME_ERROR = "assume_error"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class VerificationResult:
    """One verification run's verdict plus the context of a counterexample.

    ``clause_index`` is the position of the violated require, ensure or
    invariant in its list; ``text`` the offending source text and ``model``
    the solver's satisfying assignment of the negated property.
    """
    error_type: VerificationErrorType
    class_name: str = ""
    method_name: Optional[str] = None
    clause_index: Optional[int] = None
    text: str = ""
    location: Optional[SourceLocation] = None
    call_sequence: tuple[str, ...] = field(default_factory=tuple)
    model: str = ""

    @classmethod
    def success(cls, class_name: str) -> VerificationResult:
        return cls(VerificationErrorType.SUCCESS, class_name)

    @classmethod
    def timeout(cls, class_name: str, call_sequence: tuple[str, ...] = ()) -> VerificationResult:
        return cls(VerificationErrorType.TIMEOUT, class_name, call_sequence=call_sequence)

    @property
    def is_success(self) -> bool:
        return self.error_type == VerificationErrorType.SUCCESS

    @property
    def is_error(self) -> bool:
        return not self.is_success

    @property
    def is_timeout(self) -> bool:
        return self.error_type == VerificationErrorType.TIMEOUT

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "result": self.error_type.value,
            "class": self.class_name,
        }
        if self.method_name is not None:
            d["method"] = self.method_name
        if self.clause_index is not None:
            d["index"] = self.clause_index
        if self.text:
            d["text"] = self.text
        if self.location:
            d["location"] = {
                "file": self.location.file,
                "line": self.location.line,
                "column": self.location.column,
            }
        if self.call_sequence:
            d["call_sequence"] = list(self.call_sequence)
        if self.model:
            d["model"] = self.model
        return d

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __str__(self) -> str:
        if self.is_success:
            return f"{self.class_name}: verified"
        if self.is_timeout:
            return f"{self.class_name}: timeout"
        where = f"{self.class_name}.{self.method_name}" if self.method_name else self.class_name
        loc = f" at {self.location}" if self.location else ""
        text = f": {self.text}" if self.text else ""
        return f"[{self.error_type.value}] {where}{loc}{text}"
