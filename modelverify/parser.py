"""LL(1) recursive-descent parser for the model description language.

Grammar:
  program    := class*
  class      := 'class' IDENT '{' member* '}'
  member     := 'invariant' expr ';'
              | modifier* TYPE IDENT '(' params ')' contract* (block | ';')
              | modifier* TYPE IDENT '{' accessor* '}' ['=' expr ';']
              | modifier* TYPE IDENT ['=' expr] ';'
  contract   := 'require' expr | 'ensure' expr
  statement  := TYPE IDENT ['=' expr] ';'
              | path '=' expr ';'
              | path '(' args ')' ';'
              | 'if' '(' expr ')' body ['else' body]
              | 'return' [expr] ';'
              | block

Local declarations are hoisted into the method's local table. A literal
initializer becomes the local's initial value; any other initializer stays
in place as an assignment.
"""

from __future__ import annotations

from typing import Optional

from modelverify.ast_nodes import (
    ArithmeticOperator, Assignment, BinaryArithmetic, BinaryConditional,
    BinaryLogical, BoolLiteral, Comparison, ComparisonOperator, Conditional,
    ConditionalOperator, Equality, EqualityOperator, Expr, FloatLiteral,
    FunctionCall, IntLiteral, LogicalOperator, MethodCallStatement, NewObject,
    Parenthesized, Return, Statement, UnaryArithmetic,
    UnaryArithmeticOperator, UnaryLogical, VariableRef, literal_value,
)
from modelverify.class_model import (
    AccessModifier, ClassModel, Ensure, Field, Invariant, Local, Method,
    Parameter, Property, Require,
)
from modelverify.errors import (
    ModelLoadError, SourceLocation, syntax_error, unsupported_error,
)
from modelverify.lexer import Token, TokenType, tokenize
from modelverify.types import type_from_name


_COMPARISONS: dict[TokenType, ComparisonOperator] = {
    TokenType.LT: ComparisonOperator.LESS,
    TokenType.LTE: ComparisonOperator.LESS_EQUAL,
    TokenType.GT: ComparisonOperator.GREATER,
    TokenType.GTE: ComparisonOperator.GREATER_EQUAL,
}

_ARITHMETIC: dict[TokenType, ArithmeticOperator] = {
    TokenType.PLUS: ArithmeticOperator.ADD,
    TokenType.MINUS: ArithmeticOperator.SUBTRACT,
    TokenType.STAR: ArithmeticOperator.MULTIPLY,
    TokenType.SLASH: ArithmeticOperator.DIVIDE,
    TokenType.PERCENT: ArithmeticOperator.MODULO,
}

_LOOPS = (TokenType.WHILE, TokenType.FOR, TokenType.DO, TokenType.FOREACH)


class Parser:
    """LL(1) recursive-descent parser producing class models."""

    def __init__(self, tokens: list[Token], source: str = "", filename: str = "<stdin>"):
        self.tokens = tokens
        self.source = source
        self.pos = 0
        self.filename = filename
        self._last: Optional[Token] = None
        self._locals: Optional[dict[str, Local]] = None

    def _current(self) -> Token:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return self.tokens[-1]  # EOF

    def _peek(self) -> TokenType:
        return self._current().type

    def _peek_ahead(self, offset: int = 1) -> TokenType:
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx].type
        return TokenType.EOF

    def _loc(self) -> SourceLocation:
        return self._current().location

    def _advance(self) -> Token:
        tok = self._current()
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        self._last = tok
        return tok

    def _expect(self, tt: TokenType) -> Token:
        tok = self._current()
        if tok.type != tt:
            raise ModelLoadError(syntax_error(
                f"Expected {tt.name}, got {tok.type.name} ('{tok.value}')",
                tok.location,
            ))
        return self._advance()

    def _match(self, tt: TokenType) -> Optional[Token]:
        if self._peek() == tt:
            return self._advance()
        return None

    def _text_since(self, start: Token) -> str:
        if self._last is None or not self.source:
            return ""
        return self.source[start.offset:self._last.end]

    # -------------------------------------------------------------------
    # Classes and members
    # -------------------------------------------------------------------

    def parse(self) -> list[ClassModel]:
        classes: list[ClassModel] = []
        while self._peek() != TokenType.EOF:
            classes.append(self._parse_class())
        return classes

    def _parse_class(self) -> ClassModel:
        loc = self._loc()
        self._expect(TokenType.CLASS)
        name = self._expect(TokenType.IDENT).value
        cls = ClassModel(name=name, location=loc)
        self._expect(TokenType.LBRACE)
        while self._peek() not in (TokenType.RBRACE, TokenType.EOF):
            self._parse_member(cls)
        self._expect(TokenType.RBRACE)
        return cls

    def _parse_member(self, cls: ClassModel) -> None:
        if self._peek() == TokenType.INVARIANT:
            loc = self._loc()
            self._advance()
            start = self._current()
            expr = self._parse_expression()
            cls.invariants.append(Invariant(expression=expr, text=self._text_since(start), location=loc))
            self._expect(TokenType.SEMICOLON)
            return

        loc = self._loc()
        access = AccessModifier.PRIVATE
        is_static = False
        while self._peek() in (TokenType.PUBLIC, TokenType.PRIVATE, TokenType.STATIC):
            tok = self._advance()
            if tok.type == TokenType.PUBLIC:
                access = AccessModifier.PUBLIC
            elif tok.type == TokenType.PRIVATE:
                access = AccessModifier.PRIVATE
            else:
                is_static = True

        type_name = self._expect(TokenType.IDENT).value
        name_tok = self._expect(TokenType.IDENT)
        name = name_tok.value
        if name in cls.methods or cls.lookup_state(name) is not None:
            raise ModelLoadError(syntax_error(f"Duplicate member '{name}' in class '{cls.name}'", name_tok.location))

        if self._peek() == TokenType.LPAREN:
            method = self._parse_method(name, type_name, access, is_static, loc)
            method.owner = cls.name
            cls.methods[name] = method
            return

        if is_static:
            raise ModelLoadError(unsupported_error("static field or property", loc))

        if self._peek() == TokenType.LBRACE:
            self._parse_accessors()
            initializer = None
            if self._match(TokenType.ASSIGN):
                initializer = self._parse_expression()
                self._expect(TokenType.SEMICOLON)
            cls.properties[name] = Property(
                name=name, type=type_from_name(type_name), location=loc, initializer=initializer,
            )
            return

        initializer = None
        if self._match(TokenType.ASSIGN):
            initializer = self._parse_expression()
        self._expect(TokenType.SEMICOLON)
        cls.fields[name] = Field(name=name, type=type_from_name(type_name), location=loc, initializer=initializer)

    def _parse_accessors(self) -> None:
        """Parse ``{ get; set; }``; accessor bodies are not supported."""
        self._expect(TokenType.LBRACE)
        while self._peek() != TokenType.RBRACE:
            while self._peek() in (TokenType.PUBLIC, TokenType.PRIVATE):
                self._advance()
            tok = self._expect(TokenType.IDENT)
            if tok.value not in ("get", "set"):
                raise ModelLoadError(syntax_error(f"Expected 'get' or 'set', got '{tok.value}'", tok.location))
            if self._peek() == TokenType.LBRACE:
                raise ModelLoadError(unsupported_error("property accessor body", tok.location))
            self._expect(TokenType.SEMICOLON)
        self._expect(TokenType.RBRACE)

    def _parse_method(
        self,
        name: str,
        type_name: str,
        access: AccessModifier,
        is_static: bool,
        loc: SourceLocation,
    ) -> Method:
        method = Method(
            name=name,
            access=access,
            is_static=is_static,
            return_type=type_from_name(type_name),
            location=loc,
        )
        self._expect(TokenType.LPAREN)
        if self._peek() != TokenType.RPAREN:
            self._parse_parameter(method)
            while self._match(TokenType.COMMA):
                self._parse_parameter(method)
        self._expect(TokenType.RPAREN)

        while self._peek() in (TokenType.REQUIRE, TokenType.ENSURE):
            clause_loc = self._loc()
            kind = self._advance().type
            start = self._current()
            expr = self._parse_expression()
            text = self._text_since(start)
            if kind == TokenType.REQUIRE:
                method.requires.append(Require(expression=expr, text=text, location=clause_loc))
            else:
                method.ensures.append(Ensure(expression=expr, text=text, location=clause_loc))

        if self._match(TokenType.SEMICOLON):
            method.has_body = False
            return method

        self._locals = method.locals
        try:
            method.body = self._parse_block()
        finally:
            self._locals = None
        for local in method.locals.values():
            if local.name in method.parameters:
                raise ModelLoadError(syntax_error(
                    f"Local '{local.name}' shadows a parameter of '{name}'", local.location,
                ))
        return method

    def _parse_parameter(self, method: Method) -> None:
        loc = self._loc()
        type_name = self._expect(TokenType.IDENT).value
        name = self._expect(TokenType.IDENT).value
        if name in method.parameters:
            raise ModelLoadError(syntax_error(f"Duplicate parameter '{name}'", loc))
        method.parameters[name] = Parameter(name=name, type=type_from_name(type_name), location=loc)

    # -------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------

    def _parse_block(self) -> list[Statement]:
        self._expect(TokenType.LBRACE)
        stmts: list[Statement] = []
        while self._peek() not in (TokenType.RBRACE, TokenType.EOF):
            stmts.extend(self._parse_statement())
        self._expect(TokenType.RBRACE)
        return stmts

    def _parse_body(self) -> list[Statement]:
        """A braced block or a single statement, as in an if arm."""
        if self._peek() == TokenType.LBRACE:
            return self._parse_block()
        return self._parse_statement()

    def _parse_statement(self) -> list[Statement]:
        tt = self._peek()

        if tt == TokenType.LBRACE:
            return self._parse_block()
        if tt == TokenType.IF:
            return [self._parse_if()]
        if tt == TokenType.RETURN:
            return [self._parse_return()]
        if tt in _LOOPS:
            raise ModelLoadError(unsupported_error(f"'{self._current().value}' loop", self._loc()))
        if tt == TokenType.IDENT and self._peek_ahead() == TokenType.IDENT:
            return self._parse_local_declaration()
        return [self._parse_assignment_or_call()]

    def _parse_if(self) -> Conditional:
        loc = self._loc()
        self._expect(TokenType.IF)
        self._expect(TokenType.LPAREN)
        condition = self._parse_expression()
        self._expect(TokenType.RPAREN)
        true_body = self._parse_body()
        false_body: list[Statement] = []
        if self._match(TokenType.ELSE):
            false_body = self._parse_body()
        return Conditional(condition=condition, true_body=true_body, false_body=false_body, location=loc)

    def _parse_return(self) -> Return:
        loc = self._loc()
        self._expect(TokenType.RETURN)
        value: Optional[Expr] = None
        if self._peek() != TokenType.SEMICOLON:
            value = self._parse_expression()
        self._expect(TokenType.SEMICOLON)
        return Return(value=value, location=loc)

    def _parse_local_declaration(self) -> list[Statement]:
        loc = self._loc()
        type_name = self._expect(TokenType.IDENT).value
        name_tok = self._expect(TokenType.IDENT)
        name = name_tok.value
        if self._locals is None:
            raise ModelLoadError(syntax_error("Local declaration outside of a method body", loc))
        if name in self._locals:
            raise ModelLoadError(syntax_error(f"Duplicate local '{name}'", name_tok.location))

        local = Local(name=name, type=type_from_name(type_name), location=loc)
        self._locals[name] = local
        stmts: list[Statement] = []
        if self._match(TokenType.ASSIGN):
            value = self._parse_expression()
            if literal_value(value) is not None:
                local.initializer = value
            else:
                target = VariableRef(path=[name], location=name_tok.location)
                stmts.append(Assignment(destination=target, source=value, location=loc))
        self._expect(TokenType.SEMICOLON)
        return stmts

    def _parse_assignment_or_call(self) -> Statement:
        loc = self._loc()
        path = self._parse_path()
        if self._peek() == TokenType.LPAREN:
            call = self._parse_call(path, loc)
            self._expect(TokenType.SEMICOLON)
            return MethodCallStatement(call=call, location=loc)
        self._expect(TokenType.ASSIGN)
        value = self._parse_expression()
        self._expect(TokenType.SEMICOLON)
        return Assignment(destination=VariableRef(path=path, location=loc), source=value, location=loc)

    def _parse_path(self) -> list[str]:
        path = [self._expect(TokenType.IDENT).value]
        while self._match(TokenType.DOT):
            path.append(self._expect(TokenType.IDENT).value)
        return path

    def _parse_call(self, target: list[str], loc: SourceLocation) -> FunctionCall:
        self._expect(TokenType.LPAREN)
        args: list[Expr] = []
        if self._peek() != TokenType.RPAREN:
            args.append(self._parse_expression())
            while self._match(TokenType.COMMA):
                args.append(self._parse_expression())
        self._expect(TokenType.RPAREN)
        return FunctionCall(target=target, args=args, location=loc)

    # -------------------------------------------------------------------
    # Expressions (precedence climbing)
    # -------------------------------------------------------------------

    def _parse_expression(self) -> Expr:
        return self._parse_or()

    def _parse_or(self) -> Expr:
        left = self._parse_and()
        while self._peek() == TokenType.OR_OR:
            loc = self._loc()
            self._advance()
            right = self._parse_and()
            left = BinaryConditional(op=ConditionalOperator.OR, left=left, right=right, location=loc)
        return left

    def _parse_and(self) -> Expr:
        left = self._parse_logical_or()
        while self._peek() == TokenType.AND_AND:
            loc = self._loc()
            self._advance()
            right = self._parse_logical_or()
            left = BinaryConditional(op=ConditionalOperator.AND, left=left, right=right, location=loc)
        return left

    def _parse_logical_or(self) -> Expr:
        left = self._parse_logical_and()
        while self._peek() == TokenType.PIPE:
            loc = self._loc()
            self._advance()
            right = self._parse_logical_and()
            left = BinaryLogical(op=LogicalOperator.OR, left=left, right=right, location=loc)
        return left

    def _parse_logical_and(self) -> Expr:
        left = self._parse_equality()
        while self._peek() == TokenType.AMP:
            loc = self._loc()
            self._advance()
            right = self._parse_equality()
            left = BinaryLogical(op=LogicalOperator.AND, left=left, right=right, location=loc)
        return left

    def _parse_equality(self) -> Expr:
        left = self._parse_comparison()
        while self._peek() in (TokenType.EQ, TokenType.NEQ):
            loc = self._loc()
            tok = self._advance()
            op = EqualityOperator.EQUAL if tok.type == TokenType.EQ else EqualityOperator.NOT_EQUAL
            right = self._parse_comparison()
            left = Equality(op=op, left=left, right=right, location=loc)
        return left

    def _parse_comparison(self) -> Expr:
        left = self._parse_additive()
        while self._peek() in _COMPARISONS:
            loc = self._loc()
            op = _COMPARISONS[self._advance().type]
            right = self._parse_additive()
            left = Comparison(op=op, left=left, right=right, location=loc)
        return left

    def _parse_additive(self) -> Expr:
        left = self._parse_multiplicative()
        while self._peek() in (TokenType.PLUS, TokenType.MINUS):
            loc = self._loc()
            op = _ARITHMETIC[self._advance().type]
            right = self._parse_multiplicative()
            left = BinaryArithmetic(op=op, left=left, right=right, location=loc)
        return left

    def _parse_multiplicative(self) -> Expr:
        left = self._parse_unary()
        while self._peek() in (TokenType.STAR, TokenType.SLASH, TokenType.PERCENT):
            loc = self._loc()
            op = _ARITHMETIC[self._advance().type]
            right = self._parse_unary()
            left = BinaryArithmetic(op=op, left=left, right=right, location=loc)
        return left

    def _parse_unary(self) -> Expr:
        if self._peek() == TokenType.MINUS:
            loc = self._loc()
            self._advance()
            operand = self._parse_unary()
            return UnaryArithmetic(op=UnaryArithmeticOperator.NEGATE, operand=operand, location=loc)
        if self._peek() == TokenType.PLUS:
            loc = self._loc()
            self._advance()
            operand = self._parse_unary()
            return UnaryArithmetic(op=UnaryArithmeticOperator.PLUS, operand=operand, location=loc)
        if self._peek() == TokenType.NOT:
            loc = self._loc()
            self._advance()
            operand = self._parse_unary()
            return UnaryLogical(operand=operand, location=loc)
        return self._parse_primary()

    def _parse_primary(self) -> Expr:
        tt = self._peek()
        loc = self._loc()

        if tt == TokenType.INT_LIT:
            tok = self._advance()
            return IntLiteral(value=int(tok.value), location=loc)

        if tt == TokenType.FLOAT_LIT:
            tok = self._advance()
            digits = tok.value.rstrip("dDfFmM")
            return FloatLiteral(value=float(digits), raw=tok.value, location=loc)

        if tt in (TokenType.TRUE, TokenType.FALSE):
            self._advance()
            return BoolLiteral(value=tt == TokenType.TRUE, location=loc)

        if tt == TokenType.LPAREN:
            self._advance()
            inner = self._parse_expression()
            self._expect(TokenType.RPAREN)
            return Parenthesized(inner=inner, location=loc)

        if tt == TokenType.NEW:
            self._advance()
            class_name = self._expect(TokenType.IDENT).value
            self._expect(TokenType.LPAREN)
            if self._peek() != TokenType.RPAREN:
                raise ModelLoadError(unsupported_error("constructor arguments", self._loc()))
            self._expect(TokenType.RPAREN)
            return NewObject(class_name=class_name, location=loc)

        if tt == TokenType.IDENT:
            path = self._parse_path()
            if self._peek() == TokenType.LPAREN:
                return self._parse_call(path, loc)
            return VariableRef(path=path, location=loc)

        raise ModelLoadError(syntax_error(
            f"Unexpected token in expression: {tt.name} ('{self._current().value}')",
            loc,
        ))


def parse(source: str, filename: str = "<stdin>") -> list[ClassModel]:
    """Parse model source text into unresolved class models."""
    tokens = tokenize(source, filename)
    return Parser(tokens, source, filename).parse()
