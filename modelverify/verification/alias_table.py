"""SSA alias table.

Every write to a variable gets a fresh version. An alias ``(name, index)``
prints as ``name_index`` and that string is the name of the solver constant
standing for the variable at that point in time. Version numbers only grow
and are never used for arithmetic.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator


@dataclass(frozen=True)
class VariableAlias:
    variable: str
    index: int

    def __str__(self) -> str:
        return f"{self.variable}_{self.index}"


class AliasTable:
    """Current version of every variable of one call sequence."""

    def __init__(self) -> None:
        self._indices: dict[str, int] = {}
        self._all: list[VariableAlias] = []
        self._seen: set[VariableAlias] = set()

    def _record(self, alias: VariableAlias) -> VariableAlias:
        if alias not in self._seen:
            self._seen.add(alias)
            self._all.append(alias)
        return alias

    def add_variable(self, variable: str) -> VariableAlias:
        if variable in self._indices:
            raise ValueError(f"Variable '{variable}' is already in the alias table")
        self._indices[variable] = 0
        return self._record(VariableAlias(variable, 0))

    def add_or_increment(self, variable: str) -> VariableAlias:
        if variable in self._indices:
            return self.increment_alias(variable)
        return self.add_variable(variable)

    def get_alias(self, variable: str) -> VariableAlias:
        try:
            return VariableAlias(variable, self._indices[variable])
        except KeyError:
            raise KeyError(f"Variable '{variable}' is not in the alias table") from None

    def increment_alias(self, variable: str) -> VariableAlias:
        if variable not in self._indices:
            raise KeyError(f"Variable '{variable}' is not in the alias table")
        self._indices[variable] += 1
        return self._record(VariableAlias(variable, self._indices[variable]))

    def clone(self) -> AliasTable:
        copy = AliasTable()
        copy._indices = dict(self._indices)
        copy._all = list(self._all)
        copy._seen = set(self._seen)
        return copy

    def get_alias_difference(self, other: AliasTable) -> list[VariableAlias]:
        """Aliases created in this table that ``other`` never had."""
        return [a for a in self._all if a not in other._seen]

    def merge(self, other: AliasTable) -> list[str]:
        """Give a fresh version to every shared variable whose versions differ.

        Returns the names of the variables that got one; each needs its new
        alias tied to both branch values by the caller.
        """
        updated: list[str] = []
        for variable, index in list(self._indices.items()):
            if variable in other._indices and other._indices[variable] != index:
                self.increment_alias(variable)
                updated.append(variable)
        return updated

    @property
    def all_aliases(self) -> list[VariableAlias]:
        return list(self._all)

    def __contains__(self, variable: object) -> bool:
        return variable in self._indices

    def __iter__(self) -> Iterator[VariableAlias]:
        for variable, index in self._indices.items():
            yield VariableAlias(variable, index)

    def __len__(self) -> int:
        return len(self._indices)
