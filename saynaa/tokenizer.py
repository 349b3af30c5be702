"""Lexical scanner for the source language."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, auto
from typing import Iterator


class TokenType(IntEnum):
    """Kinds of token the scanner produces."""

    LPARAN = 0
    RPARAN = auto()
    LBRACE = auto()
    RBRACE = auto()
    COMMA = auto()
    DOT = auto()
    MINUS = auto()
    PLUS = auto()
    SCOLON = auto()
    SLASH = auto()
    STAR = auto()
    NOT = auto()
    NOTEQ = auto()
    EQ = auto()
    EQEQ = auto()
    GT = auto()
    GTEQ = auto()
    LT = auto()
    LTEQ = auto()
    NAME = auto()
    STRING = auto()
    NUMBER = auto()
    AND = auto()
    ELSE = auto()
    FALSE = auto()
    FOR = auto()
    FUNCTION = auto()
    IF = auto()
    NULL = auto()
    OR = auto()
    PRINT = auto()
    RETURN = auto()
    TRUE = auto()
    LET = auto()
    WHILE = auto()
    ERROR = auto()
    EOF = auto()


KEYWORDS: dict[str, TokenType] = {
    "print": TokenType.PRINT,
    "and": TokenType.AND,
    "else": TokenType.ELSE,
    "false": TokenType.FALSE,
    "for": TokenType.FOR,
    "function": TokenType.FUNCTION,
    "if": TokenType.IF,
    "null": TokenType.NULL,
    "or": TokenType.OR,
    "return": TokenType.RETURN,
    "true": TokenType.TRUE,
    "let": TokenType.LET,
    "while": TokenType.WHILE,
}

_SINGLE = {
    "(": TokenType.LPARAN,
    ")": TokenType.RPARAN,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    ";": TokenType.SCOLON,
    ",": TokenType.COMMA,
    ".": TokenType.DOT,
    "-": TokenType.MINUS,
    "+": TokenType.PLUS,
    "/": TokenType.SLASH,
    "*": TokenType.STAR,
}

# character -> (type when followed by '=', type otherwise)
_WITH_EQUALS = {
    "!": (TokenType.NOTEQ, TokenType.NOT),
    "=": (TokenType.EQEQ, TokenType.EQ),
    "<": (TokenType.LTEQ, TokenType.LT),
    ">": (TokenType.GTEQ, TokenType.GT),
}


@dataclass(frozen=True)
class Token:
    """A token; for ERROR tokens the lexeme holds the error message."""

    type: TokenType
    lexeme: str
    line: int


def _is_alpha(c: str) -> bool:
    return "a" <= c <= "z" or "A" <= c <= "Z" or c == "_"


def _is_digit(c: str) -> bool:
    return "0" <= c <= "9"


class Scanner:
    """Produces tokens from source text on demand."""

    def __init__(self, source: str = "") -> None:
        # A NUL character terminates the source text.
        self._source = source.split("\0", 1)[0]
        self._start = 0
        self._current = 0
        self.line = 1

    def scan_token(self) -> Token:
        """Return the next token; EOF is returned once input is exhausted."""
        self._skip_whitespace()
        self._start = self._current

        if self._at_end():
            return self._make(TokenType.EOF)

        c = self._advance()
        if _is_alpha(c):
            return self._identifier()
        if _is_digit(c):
            return self._number()
        if c in _SINGLE:
            return self._make(_SINGLE[c])
        if c in _WITH_EQUALS:
            double, single = _WITH_EQUALS[c]
            return self._make(double if self._match("=") else single)
        if c == '"':
            return self._string()
        return self._error(f"Unexpected character: '{c}")

    def tokens(self) -> Iterator[Token]:
        """Yield tokens up to and including the EOF token."""
        while True:
            token = self.scan_token()
            yield token
            if token.type is TokenType.EOF:
                return

    def _at_end(self) -> bool:
        return self._current >= len(self._source)

    def _advance(self) -> str:
        self._current += 1
        return self._source[self._current - 1]

    def _peek(self) -> str:
        return "" if self._at_end() else self._source[self._current]

    def _peek_next(self) -> str:
        nxt = self._current + 1
        return self._source[nxt] if nxt < len(self._source) else ""

    def _match(self, expected: str) -> bool:
        if self._at_end() or self._source[self._current] != expected:
            return False
        self._current += 1
        return True

    def _skip_whitespace(self) -> None:
        while True:
            c = self._peek()
            if c in (" ", "\r", "\t"):
                self._advance()
            elif c == "\n":
                self.line += 1
                self._advance()
            elif c == "/" and self._peek_next() == "/":
                while self._peek() != "\n" and not self._at_end():
                    self._advance()
            else:
                return

    def _string(self) -> Token:
        while self._peek() != '"' and not self._at_end():
            if self._peek() == "\n":
                self.line += 1
            self._advance()
        if self._at_end():
            return self._error("Unterminated string.")
        self._advance()
        return self._make(TokenType.STRING)

    def _number(self) -> Token:
        while _is_digit(self._peek()):
            self._advance()
        if self._peek() == "." and _is_digit(self._peek_next()):
            self._advance()
            while _is_digit(self._peek()):
                self._advance()
        return self._make(TokenType.NUMBER)

    def _identifier(self) -> Token:
        while _is_alpha(self._peek()) or _is_digit(self._peek()):
            self._advance()
        text = self._source[self._start : self._current]
        return self._make(KEYWORDS.get(text, TokenType.NAME))

    def _make(self, type_: TokenType) -> Token:
        return Token(type_, self._source[self._start : self._current], self.line)

    def _error(self, message: str) -> Token:
        return Token(TokenType.ERROR, message, self.line)