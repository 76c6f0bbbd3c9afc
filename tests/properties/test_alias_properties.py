"""Property-Based Tests for the SSA alias table.

Random sequences of table operations must keep versions monotone, every
alias name unique, and clones independent of the table they came from.
"""

from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from modelverify.verification.alias_table import AliasTable


VARIABLES = ["X", "Y", "Z", "M::p", "child.V"]

operation = st.tuples(st.sampled_from(["add_or_increment", "increment"]), st.sampled_from(VARIABLES))


def apply(table: AliasTable, ops) -> None:
    for op, variable in ops:
        if op == "add_or_increment" or variable not in table:
            table.add_or_increment(variable)
        else:
            table.increment_alias(variable)


class TestAliasTableProperties:

    @given(st.lists(operation, max_size=40))
    @settings(max_examples=100)
    def test_versions_never_decrease(self, ops):
        table = AliasTable()
        last: dict[str, int] = {}
        for op in ops:
            apply(table, [op])
            variable = op[1]
            index = table.get_alias(variable).index
            assert index >= last.get(variable, 0)
            last[variable] = index

    @given(st.lists(operation, max_size=40))
    @settings(max_examples=100)
    def test_alias_names_are_unique(self, ops):
        table = AliasTable()
        apply(table, ops)
        names = [str(a) for a in table.all_aliases]
        assert len(names) == len(set(names))

    @given(st.lists(operation, max_size=20), st.lists(operation, max_size=20))
    @settings(max_examples=100)
    def test_clone_is_unaffected_by_later_writes(self, first, second):
        table = AliasTable()
        apply(table, first)
        snapshot = table.clone()
        expected = list(snapshot)
        apply(table, second)
        assert list(snapshot) == expected

    @given(st.lists(operation, max_size=20), st.lists(operation, max_size=20))
    @settings(max_examples=100)
    def test_difference_is_exactly_the_new_aliases(self, first, second):
        table = AliasTable()
        apply(table, first)
        before = table.clone()
        apply(table, second)
        new = table.get_alias_difference(before)
        assert set(new).isdisjoint(before.all_aliases)
        assert set(new) | set(before.all_aliases) == set(table.all_aliases)

    @given(st.lists(operation, max_size=20), st.lists(operation, max_size=20))
    @settings(max_examples=100)
    def test_merge_updates_exactly_the_diverging_variables(self, first, second):
        table = AliasTable()
        apply(table, first)
        other = table.clone()
        apply(table, second)
        diverging = {
            a.variable for a in table
            if a.variable in other and other.get_alias(a.variable) != a
        }
        before_merge = {a.variable: a.index for a in table}
        updated = table.merge(other)
        assert set(updated) == diverging
        for variable in updated:
            assert table.get_alias(variable).index == before_merge[variable] + 1
