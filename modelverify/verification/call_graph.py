"""Call graph between the methods of one class, and recursion detection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from modelverify.ast_nodes import (
    CallKind, FunctionCall, statement_expressions, walk_expression,
    walk_statements,
)
from modelverify.class_model import ClassModel, Method


@dataclass
class CallGraphNode:
    """Node in the method call graph."""
    name: str
    method: Method
    calls: list[str] = field(default_factory=list)  # intra-class callees, in body order


class CallGraph:
    def __init__(self, cls: ClassModel):
        self.cls = cls
        self.nodes: dict[str, CallGraphNode] = {}
        for method in cls.methods.values():
            self.nodes[method.name] = CallGraphNode(method.name, method, self._collect_calls(method))

    @staticmethod
    def _collect_calls(method: Method) -> list[str]:
        calls: list[str] = []
        for stmt in walk_statements(method.body):
            for top in statement_expressions(stmt):
                for expr in walk_expression(top):
                    if isinstance(expr, FunctionCall) and expr.kind == CallKind.INTRA_CLASS:
                        if expr.method is not None and expr.method.name not in calls:
                            calls.append(expr.method.name)
        return calls

    def callees(self, name: str) -> list[str]:
        node = self.nodes.get(name)
        return node.calls if node else []

    def find_cycle(self) -> Optional[list[str]]:
        """First recursive cycle found by DFS in method table order, as a closed path."""
        visited: set[str] = set()
        on_stack: list[str] = []

        def dfs(name: str) -> Optional[list[str]]:
            if name in on_stack:
                return on_stack[on_stack.index(name):] + [name]
            if name in visited:
                return None
            visited.add(name)
            on_stack.append(name)
            for callee in self.callees(name):
                cycle = dfs(callee)
                if cycle:
                    return cycle
            on_stack.pop()
            return None

        for name in self.nodes:
            cycle = dfs(name)
            if cycle:
                return cycle
        return None
