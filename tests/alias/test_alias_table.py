"""Alias Table Tests — ALIAS-001 through ALIAS-006.

The SSA alias table hands out versioned names for every write to a
variable and reconciles the two arms of a conditional.
"""

import pytest

from modelverify.verification.alias_table import AliasTable, VariableAlias


class TestALIAS001:
    """ALIAS-001: Registration starts at version zero and names print as name_index."""

    def test_add_variable_is_version_zero(self):
        table = AliasTable()
        alias = table.add_variable("X")
        assert alias == VariableAlias("X", 0)
        assert str(alias) == "X_0"

    def test_add_variable_twice_fails(self):
        table = AliasTable()
        table.add_variable("X")
        with pytest.raises(ValueError):
            table.add_variable("X")

    def test_get_alias_of_unknown_variable_fails(self):
        with pytest.raises(KeyError):
            AliasTable().get_alias("missing")

    def test_qualified_names_print_with_suffix(self):
        table = AliasTable()
        table.add_variable("child.Reset::v")
        assert str(table.get_alias("child.Reset::v")) == "child.Reset::v_0"


class TestALIAS002:
    """ALIAS-002: increment_alias and add_or_increment bump versions."""

    def test_increment(self):
        table = AliasTable()
        table.add_variable("X")
        table.increment_alias("X")
        table.increment_alias("X")
        assert table.get_alias("X").index == 2

    def test_add_or_increment_registers_then_bumps(self):
        table = AliasTable()
        assert table.add_or_increment("Write::x").index == 0
        assert table.add_or_increment("Write::x").index == 1

    def test_increment_unknown_fails(self):
        with pytest.raises(KeyError):
            AliasTable().increment_alias("X")


class TestALIAS003:
    """ALIAS-003: clone is deep and independent."""

    def test_clone_does_not_share_state(self):
        table = AliasTable()
        table.add_variable("X")
        copy = table.clone()
        table.increment_alias("X")
        copy.add_variable("Y")
        assert copy.get_alias("X").index == 0
        assert "Y" not in table
        assert table.get_alias("X").index == 1


class TestALIAS004:
    """ALIAS-004: get_alias_difference reports aliases the other table never had."""

    def test_difference_lists_new_versions_in_order(self):
        table = AliasTable()
        table.add_variable("X")
        before = table.clone()
        table.increment_alias("X")
        table.add_variable("Y")
        table.increment_alias("X")
        assert table.get_alias_difference(before) == [
            VariableAlias("X", 1), VariableAlias("Y", 0), VariableAlias("X", 2),
        ]

    def test_difference_with_self_is_empty(self):
        table = AliasTable()
        table.add_variable("X")
        assert table.get_alias_difference(table.clone()) == []


class TestALIAS005:
    """ALIAS-005: merge gives a fresh version to shared variables whose versions differ."""

    def test_merge_updates_only_diverging_variables(self):
        table = AliasTable()
        table.add_variable("X")
        table.add_variable("Y")
        when_true = table.clone()
        table.increment_alias("X")

        updated = table.merge(when_true)

        assert updated == ["X"]
        assert table.get_alias("X").index == 2
        assert table.get_alias("Y").index == 0

    def test_merge_records_new_alias(self):
        table = AliasTable()
        table.add_variable("X")
        other = table.clone()
        table.increment_alias("X")
        table.merge(other)
        assert VariableAlias("X", 2) in table.all_aliases

    def test_merge_ignores_variables_missing_from_other(self):
        table = AliasTable()
        other = table.clone()
        table.add_variable("Z")
        assert table.merge(other) == []
        assert table.get_alias("Z").index == 0


class TestALIAS006:
    """ALIAS-006: iteration yields the current alias of every variable."""

    def test_iteration(self):
        table = AliasTable()
        table.add_variable("A")
        table.add_variable("B")
        table.increment_alias("B")
        assert list(table) == [VariableAlias("A", 0), VariableAlias("B", 1)]
        assert len(table) == 2
