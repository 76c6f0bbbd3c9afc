"""Name resolution and type checking of parsed class models.

Every name is bound to its declaration, every call to its target method,
and every expression node gets its static type. All problems found are
collected and raised together as one ModelLoadError.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from modelverify.ast_nodes import (
    ArithmeticOperator, Assignment, BinaryArithmetic, BinaryConditional,
    BinaryLogical, BoolLiteral, CallKind, Comparison, Conditional, Equality,
    Expr, FloatLiteral, FunctionCall, IntLiteral, MethodCallStatement,
    NewObject, Parenthesized, Return, Statement, UnaryArithmetic,
    UnaryLogical, VariableRef, literal_value,
)
from modelverify.class_model import (
    RESULT_NAME, ClassModel, ClassModelTable, Method, Variable,
)
from modelverify.errors import (
    ErrorKind, ModelError, ModelLoadError, name_error, type_error,
    unsupported_error,
)
from modelverify.types import (
    ClassType, ExpressionType, TypeRef, is_assignable, is_numeric,
    is_value_type, numeric_join,
)


@dataclass
class _Scope:
    """What names an expression may see."""
    cls: ClassModel
    method: Optional[Method] = None
    allow_locals: bool = False
    allow_result: bool = False
    allow_calls: bool = False
    context: str = ""


class Resolver:
    """Resolves and type-checks every class of a ClassModelTable."""

    def __init__(self, table: ClassModelTable):
        self.table = table
        self.errors: list[ModelError] = []

    def resolve(self) -> ClassModelTable:
        for cls in self.table:
            self._resolve_class(cls)
        self._check_object_containment()
        if self.errors:
            raise ModelLoadError(self.errors)
        return self.table

    # -------------------------------------------------------------------
    # Classes
    # -------------------------------------------------------------------

    def _resolve_class(self, cls: ClassModel) -> None:
        for var in cls.state_variables():
            self._resolve_state_variable(cls, var)

        for method in cls.methods.values():
            self._resolve_method(cls, method)

        scope = _Scope(cls=cls, context="invariant")
        for inv in cls.invariants:
            self._expect_bool(self._resolve_expr(inv.expression, scope), inv.expression, "invariant")

    def _resolve_state_variable(self, cls: ClassModel, var: Variable) -> None:
        init = getattr(var, "initializer", None)
        if isinstance(var.type, ClassType):
            if var.type.name not in self.table:
                self._error(name_error(var.type.name, var.location, scope=cls.name))
                return
            if not isinstance(init, NewObject) or init.class_name != var.type.name:
                self.errors.append(ModelError(
                    kind=ErrorKind.MODEL_ERROR,
                    message=f"Object member '{var.name}' must be initialised with 'new {var.type.name}()'",
                    location=var.location,
                ))
            elif self.table[var.type.name].is_preloaded:
                self._error(unsupported_error(f"instance of preloaded class '{var.type.name}'", var.location))
            return
        if var.type == ExpressionType.VOID:
            self._error(type_error("value type", "void", var.location, context=var.name))
            return
        if init is not None:
            self._check_literal_initializer(var, init)

    def _check_literal_initializer(self, var: Variable, init: Expr) -> None:
        if literal_value(init) is None:
            self._error(unsupported_error(f"non-literal initializer of '{var.name}'", init.location))
            return
        init_type = self._resolve_expr(init, _Scope(cls=ClassModel()))
        if init_type is not None and not is_assignable(var.type, init_type):
            self._error(type_error(str(var.type), str(init_type), init.location, context=var.name))

    def _check_object_containment(self) -> None:
        """Reject classes that contain themselves through object fields."""
        def find_cycle(name: str, path: list[str]) -> Optional[list[str]]:
            if name in path:
                return path[path.index(name):] + [name]
            cls = self.table.get(name)
            if cls is None:
                return None
            for var in cls.state_variables():
                if isinstance(var.type, ClassType):
                    cycle = find_cycle(var.type.name, path + [name])
                    if cycle:
                        return cycle
            return None

        for cls in self.table:
            cycle = find_cycle(cls.name, [])
            if cycle:
                self.errors.append(ModelError(
                    kind=ErrorKind.MODEL_ERROR,
                    message=f"Recursive object containment: {' -> '.join(cycle)}",
                    location=cls.location,
                ))
                return

    # -------------------------------------------------------------------
    # Methods
    # -------------------------------------------------------------------

    def _resolve_method(self, cls: ClassModel, method: Method) -> None:
        if method.is_static and not cls.is_preloaded:
            self._error(unsupported_error(f"static method '{method.name}' in a verified class", method.location))
        if not method.has_body and not cls.is_preloaded:
            self._error(unsupported_error(f"method '{method.name}' without a body", method.location))
        if isinstance(method.return_type, ClassType):
            self._error(unsupported_error(f"object return type of '{method.name}'", method.location))

        for var in [*method.parameters.values(), *method.locals.values()]:
            if not is_value_type(var.type):
                self._error(unsupported_error(f"variable '{var.name}' of type '{var.type}'", var.location))
        for local in method.locals.values():
            if local.initializer is not None:
                self._check_literal_initializer(local, local.initializer)

        requires = _Scope(cls=cls, method=method, context="require")
        for clause in method.requires:
            self._expect_bool(self._resolve_expr(clause.expression, requires), clause.expression, "require")

        ensures = _Scope(cls=cls, method=method, allow_result=not method.is_void, context="ensure")
        for clause in method.ensures:
            self._expect_bool(self._resolve_expr(clause.expression, ensures), clause.expression, "ensure")

        body = _Scope(cls=cls, method=method, allow_locals=True, allow_calls=True, context="body")
        self._resolve_statements(method.body, body)

    def _resolve_statements(self, statements: list[Statement], scope: _Scope) -> None:
        for i, stmt in enumerate(statements):
            if isinstance(stmt, Return) and i != len(statements) - 1:
                self._error(unsupported_error("statements after 'return'", statements[i + 1].location))
            self._resolve_statement(stmt, scope)

    def _resolve_statement(self, stmt: Statement, scope: _Scope) -> None:
        method = scope.method
        if isinstance(stmt, Assignment):
            target = self._resolve_variable(stmt.destination, scope)
            source = self._resolve_expr(stmt.source, scope)
            if target is not None and source is not None and not is_assignable(target, source):
                self._error(type_error(str(target), str(source), stmt.location, context=str(stmt.destination)))
        elif isinstance(stmt, Conditional):
            self._expect_bool(self._resolve_expr(stmt.condition, scope), stmt.condition, "if condition")
            self._resolve_statements(stmt.true_body, scope)
            self._resolve_statements(stmt.false_body, scope)
        elif isinstance(stmt, MethodCallStatement):
            self._resolve_call(stmt.call, scope, as_statement=True)
        elif isinstance(stmt, Return):
            if stmt.value is None:
                if not method.is_void:
                    self._error(type_error(str(method.return_type), "void", stmt.location, context="return"))
                return
            value = self._resolve_expr(stmt.value, scope)
            if method.is_void:
                self._error(type_error("void", str(value), stmt.location, context="return"))
            elif value is not None and not is_assignable(method.return_type, value):
                self._error(type_error(str(method.return_type), str(value), stmt.location, context="return"))

    # -------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------

    def _resolve_expr(self, expr: Expr, scope: _Scope) -> Optional[TypeRef]:
        t = self._expr_type(expr, scope)
        expr.type = t
        return t

    def _expr_type(self, expr: Expr, scope: _Scope) -> Optional[TypeRef]:
        if isinstance(expr, BoolLiteral):
            return ExpressionType.BOOL
        if isinstance(expr, IntLiteral):
            return ExpressionType.INT
        if isinstance(expr, FloatLiteral):
            return ExpressionType.FLOAT
        if isinstance(expr, Parenthesized):
            return self._resolve_expr(expr.inner, scope)
        if isinstance(expr, VariableRef):
            return self._resolve_variable(expr, scope)
        if isinstance(expr, FunctionCall):
            return self._resolve_call(expr, scope, as_statement=False)
        if isinstance(expr, NewObject):
            self._error(unsupported_error("object construction outside a field initializer", expr.location))
            return None

        if isinstance(expr, BinaryArithmetic):
            left = self._resolve_expr(expr.left, scope)
            right = self._resolve_expr(expr.right, scope)
            if left is None or right is None:
                return None
            if not (is_numeric(left) and is_numeric(right)):
                self._error(type_error("numeric", f"{left}, {right}", expr.location, context=expr.op.value))
                return None
            if expr.op == ArithmeticOperator.MODULO and ExpressionType.FLOAT in (left, right):
                self._error(unsupported_error("modulo on double operands", expr.location))
                return None
            return numeric_join(left, right)

        if isinstance(expr, UnaryArithmetic):
            operand = self._resolve_expr(expr.operand, scope)
            if operand is not None and not is_numeric(operand):
                self._error(type_error("numeric", str(operand), expr.location, context=expr.op.value))
                return None
            return operand

        if isinstance(expr, Comparison):
            left = self._resolve_expr(expr.left, scope)
            right = self._resolve_expr(expr.right, scope)
            if left is not None and right is not None and not (is_numeric(left) and is_numeric(right)):
                self._error(type_error("numeric", f"{left}, {right}", expr.location, context=expr.op.value))
            return ExpressionType.BOOL

        if isinstance(expr, Equality):
            left = self._resolve_expr(expr.left, scope)
            right = self._resolve_expr(expr.right, scope)
            if left is not None and right is not None:
                comparable = (is_numeric(left) and is_numeric(right)) or left == right == ExpressionType.BOOL
                if not comparable:
                    self._error(type_error(str(left), str(right), expr.location, context=expr.op.value))
            return ExpressionType.BOOL

        if isinstance(expr, (BinaryLogical, BinaryConditional)):
            self._expect_bool(self._resolve_expr(expr.left, scope), expr.left, expr.op.value)
            self._expect_bool(self._resolve_expr(expr.right, scope), expr.right, expr.op.value)
            return ExpressionType.BOOL

        if isinstance(expr, UnaryLogical):
            self._expect_bool(self._resolve_expr(expr.operand, scope), expr.operand, "!")
            return ExpressionType.BOOL

        self._error(unsupported_error(type(expr).__name__, expr.location))
        return None

    def _resolve_variable(self, ref: VariableRef, scope: _Scope) -> Optional[TypeRef]:
        head, rest = ref.path[0], ref.path[1:]
        method = scope.method

        if not rest:
            var: Optional[Variable] = None
            if method is not None and head in method.parameters:
                var = method.parameters[head]
            elif method is not None and scope.allow_locals and head in method.locals:
                var = method.locals[head]
            elif head == RESULT_NAME and method is not None and scope.allow_result:
                var = method.result
            else:
                var = scope.cls.lookup_state(head)
            if var is None:
                self._error(name_error(head, ref.location, scope=scope.cls.name))
                return None
            return self._bind(ref, var, [])

        cls = scope.cls
        chain: list[str] = []
        for segment in ref.path[:-1]:
            owner = cls.lookup_state(segment)
            if owner is None or not isinstance(owner.type, ClassType):
                self._error(name_error(".".join(chain + [segment]), ref.location, scope=cls.name))
                return None
            chain.append(segment)
            cls = self.table[owner.type.name]
        var = cls.lookup_state(ref.path[-1])
        if var is None:
            self._error(name_error(str(ref), ref.location, scope=cls.name))
            return None
        return self._bind(ref, var, chain)

    def _bind(self, ref: VariableRef, var: Variable, chain: list[str]) -> Optional[TypeRef]:
        if var.is_object:
            self._error(unsupported_error(f"object '{ref}' used as a value", ref.location))
            return None
        ref.variable = var
        ref.chain = chain
        return var.type

    def _resolve_call(self, call: FunctionCall, scope: _Scope, as_statement: bool) -> Optional[TypeRef]:
        if not scope.allow_calls:
            self._error(unsupported_error(f"method call in {scope.context}", call.location))
            return None

        target = self._resolve_call_target(call, scope)
        if target is None:
            return None
        method = call.method

        if len(call.args) != len(method.parameters):
            self.errors.append(ModelError(
                kind=ErrorKind.TYPE_ERROR,
                message=(
                    f"'{'.'.join(call.target)}' expects {len(method.parameters)} "
                    f"argument(s), got {len(call.args)}"
                ),
                location=call.location,
            ))
        for arg, param in zip(call.args, method.parameters.values()):
            arg_type = self._resolve_expr(arg, scope)
            if arg_type is not None and not is_assignable(param.type, arg_type):
                self._error(type_error(str(param.type), str(arg_type), arg.location, context=param.name))
        for arg in call.args[len(method.parameters):]:
            self._resolve_expr(arg, scope)

        if not as_statement and method.is_void:
            self._error(type_error("value", "void", call.location, context=str(call)))
            return None
        return method.return_type

    def _resolve_call_target(self, call: FunctionCall, scope: _Scope) -> Optional[Method]:
        *owners, name = call.target
        cls = scope.cls

        if not owners:
            method = cls.methods.get(name)
            if method is None:
                self._error(name_error(name, call.location, scope=cls.name))
                return None
            call.kind = CallKind.INTRA_CLASS
            call.method, call.callee_class = method, cls
            return method

        static_owner = cls.lookup_state(owners[0]) is None and owners[0] in self.table
        if static_owner and len(owners) == 1:
            callee_class = self.table[owners[0]]
            method = callee_class.methods.get(name)
            if method is None or not method.is_static:
                self._error(name_error(".".join(call.target), call.location, scope=callee_class.name))
                return None
            call.kind = CallKind.STATIC
            call.method, call.callee_class = method, callee_class
            return method

        chain: list[str] = []
        for segment in owners:
            owner = cls.lookup_state(segment)
            if owner is None or not isinstance(owner.type, ClassType):
                self._error(name_error(".".join(chain + [segment]), call.location, scope=cls.name))
                return None
            chain.append(segment)
            cls = self.table[owner.type.name]
        method = cls.methods.get(name)
        if method is None or method.is_static:
            self._error(name_error(".".join(call.target), call.location, scope=cls.name))
            return None
        if not method.is_public:
            self._error(unsupported_error(f"call of private method '{cls.name}.{name}'", call.location))
            return None
        call.kind = CallKind.INSTANCE
        call.method, call.callee_class, call.chain = method, cls, chain
        return method

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------

    def _expect_bool(self, t: Optional[TypeRef], expr: Expr, context: str) -> None:
        if t is not None and t != ExpressionType.BOOL:
            self._error(type_error("bool", str(t), expr.location, context=context))

    def _error(self, error: ModelError) -> None:
        self.errors.append(error)


def resolve(table: ClassModelTable) -> ClassModelTable:
    """Resolve every class of ``table`` in place and return it."""
    return Resolver(table).resolve()
