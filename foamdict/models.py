"""
Core token model for the dictionary reader.

A :class:`Token` is the atomic lexical unit produced by the tokenizer and
stored (after expansion) inside primitive entries.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


# ---------------------------------------------------------------------------
# Token kinds
# ---------------------------------------------------------------------------


class TokenKind(Enum):
    WORD = "WORD"                  # Bare word: uniform, div(phi,U), true
    STRING = "STRING"              # Double-quoted string
    NUMBER = "NUMBER"              # Integer or floating point literal
    PUNCTUATION = "PUNCTUATION"    # ( ) { } [ ] ,
    VARIABLE = "VARIABLE"          # $name / ${name}
    DIRECTIVE = "DIRECTIVE"        # #name
    END_STATEMENT = "END_STATEMENT"  # ;


BEGIN_BLOCK = "{"
END_BLOCK = "}"
BEGIN_LIST = "("
END_LIST = ")"
BEGIN_SQR = "["
END_SQR = "]"
COMMA = ","

PUNCTUATION_CHARS = frozenset("(){}[],")

#: Opening punctuation mapped to the closer that balances it.
CLOSERS = {BEGIN_LIST: END_LIST, BEGIN_BLOCK: END_BLOCK, BEGIN_SQR: END_SQR}
OPENERS = {v: k for k, v in CLOSERS.items()}

TokenValue = Union[str, int, float]


# ---------------------------------------------------------------------------
# Token
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Token:
    """A single lexical unit with the source line it was read from."""

    kind: TokenKind
    value: TokenValue
    line: int = field(default=-1, compare=False)

    # -- constructors ------------------------------------------------------

    @classmethod
    def word(cls, value: str, line: int = -1) -> Token:
        return cls(TokenKind.WORD, value, line)

    @classmethod
    def string(cls, value: str, line: int = -1) -> Token:
        return cls(TokenKind.STRING, value, line)

    @classmethod
    def number(cls, value: Union[int, float], line: int = -1) -> Token:
        return cls(TokenKind.NUMBER, value, line)

    @classmethod
    def punctuation(cls, value: str, line: int = -1) -> Token:
        return cls(TokenKind.PUNCTUATION, value, line)

    @classmethod
    def variable(cls, name: str, line: int = -1) -> Token:
        return cls(TokenKind.VARIABLE, name, line)

    @classmethod
    def directive(cls, name: str, line: int = -1) -> Token:
        return cls(TokenKind.DIRECTIVE, name, line)

    @classmethod
    def end_statement(cls, line: int = -1) -> Token:
        return cls(TokenKind.END_STATEMENT, ";", line)

    # -- queries -----------------------------------------------------------

    def is_punctuation(self, char: str = "") -> bool:
        if self.kind is not TokenKind.PUNCTUATION:
            return False
        return not char or self.value == char

    def is_opener(self) -> bool:
        return self.kind is TokenKind.PUNCTUATION and self.value in CLOSERS

    def is_closer(self) -> bool:
        return self.kind is TokenKind.PUNCTUATION and self.value in OPENERS

    def is_end_statement(self) -> bool:
        return self.kind is TokenKind.END_STATEMENT

    def is_directive(self, *names: str) -> bool:
        if self.kind is not TokenKind.DIRECTIVE:
            return False
        return not names or self.value in names

    @property
    def text(self) -> str:
        """The token rendered in source syntax."""
        if self.kind is TokenKind.STRING:
            escaped = str(self.value).replace("\\", "\\\\").replace('"', '\\"')
            return f'"{escaped}"'
        if self.kind is TokenKind.NUMBER:
            return format_number(self.value)
        if self.kind is TokenKind.VARIABLE:
            name = str(self.value)
            if all(ch.isalnum() or ch in "_./!:" for ch in name):
                return f"${name}"
            return f"${{{name}}}"
        if self.kind is TokenKind.DIRECTIVE:
            return f"#{self.value}"
        return str(self.value)

    def with_line(self, line: int) -> Token:
        return Token(self.kind, self.value, line)

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"Token({self.kind.value}, {self.value!r}, line={self.line})"


def format_number(value: TokenValue) -> str:
    """Render an int or float so that the tokenizer reads it back unchanged."""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    return repr(float(value))
