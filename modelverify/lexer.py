"""Tokenizer for the model description language, with line/column tracking.

The language is a small C#-flavoured subset: classes with fields,
properties, methods, require/ensure clauses and invariants.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from modelverify.errors import ModelLoadError, SourceLocation, syntax_error


class TokenType(Enum):
    # Keywords
    CLASS = auto()
    PUBLIC = auto()
    PRIVATE = auto()
    STATIC = auto()
    IF = auto()
    ELSE = auto()
    RETURN = auto()
    REQUIRE = auto()
    ENSURE = auto()
    INVARIANT = auto()
    TRUE = auto()
    FALSE = auto()
    NEW = auto()
    WHILE = auto()
    FOR = auto()
    DO = auto()
    FOREACH = auto()

    # Literals
    INT_LIT = auto()
    FLOAT_LIT = auto()

    # Identifier
    IDENT = auto()

    # Operators
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    PERCENT = auto()
    EQ = auto()
    NEQ = auto()
    GTE = auto()
    LTE = auto()
    GT = auto()
    LT = auto()
    AND_AND = auto()
    OR_OR = auto()
    AMP = auto()
    PIPE = auto()
    NOT = auto()
    ASSIGN = auto()
    DOT = auto()

    # Delimiters
    LBRACE = auto()
    RBRACE = auto()
    LPAREN = auto()
    RPAREN = auto()
    COMMA = auto()
    SEMICOLON = auto()

    # Special
    EOF = auto()


KEYWORDS: dict[str, TokenType] = {
    "class": TokenType.CLASS,
    "public": TokenType.PUBLIC,
    "private": TokenType.PRIVATE,
    "static": TokenType.STATIC,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "return": TokenType.RETURN,
    "require": TokenType.REQUIRE,
    "ensure": TokenType.ENSURE,
    "invariant": TokenType.INVARIANT,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "new": TokenType.NEW,
    "while": TokenType.WHILE,
    "for": TokenType.FOR,
    "do": TokenType.DO,
    "foreach": TokenType.FOREACH,
}

# Single characters that always form a token on their own.
_SIMPLE_TOKENS: dict[str, TokenType] = {
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "%": TokenType.PERCENT,
    ".": TokenType.DOT,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    ",": TokenType.COMMA,
    ";": TokenType.SEMICOLON,
}

# Characters that may be doubled or followed by '=' to form another token.
_PAIRED_TOKENS: dict[str, tuple[TokenType, str, TokenType]] = {
    "=": (TokenType.ASSIGN, "=", TokenType.EQ),
    "!": (TokenType.NOT, "=", TokenType.NEQ),
    ">": (TokenType.GT, "=", TokenType.GTE),
    "<": (TokenType.LT, "=", TokenType.LTE),
    "&": (TokenType.AMP, "&", TokenType.AND_AND),
    "|": (TokenType.PIPE, "|", TokenType.OR_OR),
}


@dataclass
class Token:
    type: TokenType
    value: str
    location: SourceLocation
    offset: int = 0

    @property
    def end(self) -> int:
        return self.offset + len(self.value)

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.location})"


class Lexer:
    """Tokenizer for model source text."""

    def __init__(self, source: str, filename: str = "<stdin>"):
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.column = 1

    def _loc(self) -> SourceLocation:
        return SourceLocation(self.line, self.column, self.filename)

    def _peek(self) -> Optional[str]:
        if self.pos < len(self.source):
            return self.source[self.pos]
        return None

    def _peek_ahead(self, offset: int = 1) -> Optional[str]:
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return None

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _skip_whitespace_and_comments(self) -> None:
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch in (" ", "\t", "\r", "\n"):
                self._advance()
            elif ch == "/" and self._peek_ahead() == "/":
                while self.pos < len(self.source) and self.source[self.pos] != "\n":
                    self._advance()
            elif ch == "/" and self._peek_ahead() == "*":
                loc = self._loc()
                self._advance()
                self._advance()
                while True:
                    if self.pos >= len(self.source):
                        raise ModelLoadError(syntax_error("Unterminated block comment", loc))
                    if self.source[self.pos] == "*" and self._peek_ahead() == "/":
                        self._advance()
                        self._advance()
                        break
                    self._advance()
            else:
                break

    def _read_number(self) -> Token:
        loc = self._loc()
        start = self.pos
        is_float = False
        while self.pos < len(self.source) and (self.source[self.pos].isdigit() or self.source[self.pos] == "."):
            if self.source[self.pos] == ".":
                if is_float:
                    break
                ahead = self._peek_ahead()
                if ahead and ahead.isdigit():
                    is_float = True
                else:
                    break
            self._advance()
        # Exponent: 1e3, 2.5E-4
        if self._peek() in ("e", "E"):
            sign = self._peek_ahead() in ("+", "-")
            digit = self._peek_ahead(2 if sign else 1)
            if digit and digit.isdigit():
                self._advance()
                if sign:
                    self._advance()
                while self.pos < len(self.source) and self.source[self.pos].isdigit():
                    self._advance()
                is_float = True
        # C# style suffix on real literals: 1.5d, 2f
        if self._peek() in ("d", "D", "f", "F", "m", "M"):
            self._advance()
            is_float = True
        value = self.source[start:self.pos]
        token_type = TokenType.FLOAT_LIT if is_float else TokenType.INT_LIT
        return Token(token_type, value, loc, start)

    def _read_identifier(self) -> Token:
        loc = self._loc()
        start = self.pos
        while self.pos < len(self.source) and (self.source[self.pos].isalnum() or self.source[self.pos] == "_"):
            self._advance()
        value = self.source[start:self.pos]
        token_type = KEYWORDS.get(value, TokenType.IDENT)
        return Token(token_type, value, loc, start)

    def tokenize(self) -> list[Token]:
        tokens: list[Token] = []
        while self.pos < len(self.source):
            self._skip_whitespace_and_comments()
            if self.pos >= len(self.source):
                break

            ch = self._peek()
            loc = self._loc()
            start = self.pos

            if ch.isdigit():
                tokens.append(self._read_number())
            elif ch.isalpha() or ch == "_":
                tokens.append(self._read_identifier())
            elif ch in _SIMPLE_TOKENS:
                self._advance()
                tokens.append(Token(_SIMPLE_TOKENS[ch], ch, loc, start))
            elif ch in _PAIRED_TOKENS:
                single, follower, double = _PAIRED_TOKENS[ch]
                self._advance()
                if self._peek() == follower:
                    self._advance()
                    tokens.append(Token(double, ch + follower, loc, start))
                else:
                    tokens.append(Token(single, ch, loc, start))
            else:
                self._advance()
                raise ModelLoadError(syntax_error(f"Unexpected character '{ch}'", loc))

        tokens.append(Token(TokenType.EOF, "", self._loc(), self.pos))
        return tokens


def tokenize(source: str, filename: str = "<stdin>") -> list[Token]:
    """Convenience function to tokenize model source text."""
    return Lexer(source, filename).tokenize()
