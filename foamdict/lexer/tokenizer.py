"""
Tokenizer
=========

Turns dictionary source text into :class:`~foamdict.models.Token` objects and
exposes them through the :class:`TokenStream` interface used by the entry
builder:

* ``read()``       – next token, or ``None`` at the end of input
* ``expect()``     – next token, raising at the end of input
* ``push_back()``  – return one token to the stream
* ``line``         – line number of the last token read

Lexical rules:

+-------------------------+----------------------------------------------+
| Input                   | Token                                        |
+=========================+==============================================+
| ``// …`` / ``/* … */``  | skipped (comments)                           |
+-------------------------+----------------------------------------------+
| ``"text"``              | STRING (``\\"`` and ``\\\\`` are escapes)    |
+-------------------------+----------------------------------------------+
| ``;``                   | END_STATEMENT                                |
+-------------------------+----------------------------------------------+
| ``( ) { } [ ] ,``       | PUNCTUATION                                  |
+-------------------------+----------------------------------------------+
| ``$name`` ``${name}``   | VARIABLE                                     |
+-------------------------+----------------------------------------------+
| ``#name``               | DIRECTIVE                                    |
+-------------------------+----------------------------------------------+
| ``12`` ``-1.5e-3``      | NUMBER                                       |
+-------------------------+----------------------------------------------+
| anything else           | WORD (may hold balanced parens: ``div(a,b)``)|
+-------------------------+----------------------------------------------+
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

from ..errors import ParseError, UnexpectedEndOfStream
from ..models import PUNCTUATION_CHARS, Token

logger = logging.getLogger(__name__)

_INT_RE = re.compile(r"[+-]?\d+")
_FLOAT_RE = re.compile(r"[+-]?(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?")
_VARIABLE_CHARS = re.compile(r"[\w./!:]")
_DIRECTIVE_CHARS = re.compile(r"\w")

# Characters that always end a word lexeme
_WORD_BREAK = frozenset(';{}[]"')


def classify_lexeme(lexeme: str, line: int = -1) -> Token:
    """Return a NUMBER token when *lexeme* is numeric, else a WORD token."""
    if _INT_RE.fullmatch(lexeme):
        return Token.number(int(lexeme), line)
    if _FLOAT_RE.fullmatch(lexeme):
        return Token.number(float(lexeme), line)
    return Token.word(lexeme, line)


# ---------------------------------------------------------------------------
# Stream interface
# ---------------------------------------------------------------------------


class TokenStream:
    """Pull-based token source with a single put-back slot."""

    def __init__(self, name: str = "<stream>") -> None:
        self.name = name
        self._put_back: Optional[Token] = None
        self._line = 0

    def _next_token(self) -> Optional[Token]:
        raise NotImplementedError

    @property
    def line(self) -> int:
        """Line number of the most recently read token."""
        return self._line

    def read(self) -> Optional[Token]:
        if self._put_back is not None:
            token, self._put_back = self._put_back, None
        else:
            token = self._next_token()
        if token is not None and token.line >= 0:
            self._line = token.line
        return token

    def expect(self, what: str = "token") -> Token:
        token = self.read()
        if token is None:
            raise UnexpectedEndOfStream(
                f"unexpected end of input while reading {what}",
                line=self._line,
                source=self.name,
            )
        return token

    def push_back(self, token: Token) -> None:
        if self._put_back is not None:
            raise RuntimeError(f"{self.name}: stream already holds a put-back token")
        self._put_back = token

    def eof(self) -> bool:
        token = self.read()
        if token is None:
            return True
        self.push_back(token)
        return False

    def __iter__(self) -> Iterator[Token]:
        while True:
            token = self.read()
            if token is None:
                return
            yield token


class ListTokenStream(TokenStream):
    """Replays an existing list of tokens."""

    def __init__(self, tokens: Iterable[Token], name: str = "<tokens>") -> None:
        super().__init__(name)
        self._tokens: List[Token] = list(tokens)
        self._index = 0

    def _next_token(self) -> Optional[Token]:
        if self._index >= len(self._tokens):
            return None
        token = self._tokens[self._index]
        self._index += 1
        return token


# ---------------------------------------------------------------------------
# Character-level lexer
# ---------------------------------------------------------------------------


class Tokenizer(TokenStream):
    """
    Lazily lexes dictionary source text.

    Parameters
    ----------
    text:
        Source text.
    name:
        Name used in error messages; for files this is the file path and is
        also used by ``#include`` to resolve relative paths.
    first_line:
        Line number assigned to the first line of *text*.
    """

    def __init__(self, text: str, name: str = "<inline>", first_line: int = 1) -> None:
        super().__init__(name)
        self._text = text
        self._pos = 0
        self._cur_line = first_line
        self._tokens = self._scan()

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> Tokenizer:
        source_path = Path(path)
        logger.debug("Tokenizing file: %s", source_path)
        text = source_path.read_text(encoding="utf-8", errors="replace")
        return cls(text, name=str(source_path))

    def _next_token(self) -> Optional[Token]:
        return next(self._tokens, None)

    # ------------------------------------------------------------------
    # Scanner
    # ------------------------------------------------------------------

    def _peek(self, offset: int = 0) -> str:
        idx = self._pos + offset
        return self._text[idx] if idx < len(self._text) else ""

    def _scan(self) -> Iterator[Token]:
        text = self._text
        while self._pos < len(text):
            ch = text[self._pos]

            if ch == "\n":
                self._cur_line += 1
                self._pos += 1
            elif ch.isspace():
                self._pos += 1
            elif ch == "/" and self._peek(1) == "/":
                end = text.find("\n", self._pos)
                self._pos = len(text) if end < 0 else end
            elif ch == "/" and self._peek(1) == "*":
                self._skip_block_comment()
            elif ch == '"':
                yield self._read_string()
            elif ch == ";":
                self._pos += 1
                yield Token.end_statement(self._cur_line)
            elif ch in PUNCTUATION_CHARS:
                self._pos += 1
                yield Token.punctuation(ch, self._cur_line)
            elif ch == "$":
                yield self._read_variable()
            elif ch == "#":
                yield self._read_directive()
            else:
                yield classify_lexeme(self._read_word(), self._cur_line)

    def _skip_block_comment(self) -> None:
        start_line = self._cur_line
        end = self._text.find("*/", self._pos + 2)
        if end < 0:
            raise UnexpectedEndOfStream(
                "unterminated block comment", line=start_line, source=self.name
            )
        self._cur_line += self._text.count("\n", self._pos, end)
        self._pos = end + 2

    def _read_string(self) -> Token:
        start_line = self._cur_line
        chars: List[str] = []
        self._pos += 1  # opening quote
        while self._pos < len(self._text):
            ch = self._text[self._pos]
            if ch == "\\" and self._peek(1) in ('"', "\\"):
                chars.append(self._peek(1))
                self._pos += 2
                continue
            if ch == '"':
                self._pos += 1
                return Token.string("".join(chars), start_line)
            if ch == "\n":
                self._cur_line += 1
            chars.append(ch)
            self._pos += 1
        raise UnexpectedEndOfStream(
            "unterminated string", line=start_line, source=self.name
        )

    def _read_variable(self) -> Token:
        line = self._cur_line
        self._pos += 1  # '$'
        if self._peek() == "{":
            depth = 0
            start = self._pos + 1
            while self._pos < len(self._text):
                ch = self._text[self._pos]
                if ch == "{":
                    depth += 1
                elif ch == "}":
                    depth -= 1
                    if depth == 0:
                        name = self._text[start:self._pos].strip()
                        self._pos += 1
                        if not name:
                            raise ParseError("empty variable name", line, self.name)
                        return Token.variable(name, line)
                elif ch == "\n":
                    raise ParseError("unterminated ${...} variable", line, self.name)
                self._pos += 1
            raise UnexpectedEndOfStream("unterminated ${...} variable", line, self.name)

        start = self._pos
        while self._pos < len(self._text) and _VARIABLE_CHARS.match(self._text[self._pos]):
            self._pos += 1
        name = self._text[start:self._pos]
        if not name:
            raise ParseError("empty variable name after '$'", line, self.name)
        return Token.variable(name, line)

    def _read_directive(self) -> Token:
        line = self._cur_line
        self._pos += 1  # '#'
        start = self._pos
        while self._pos < len(self._text) and _DIRECTIVE_CHARS.match(self._text[self._pos]):
            self._pos += 1
        name = self._text[start:self._pos]
        if not name:
            raise ParseError("empty directive name after '#'", line, self.name)
        return Token.directive(name, line)

    def _read_word(self) -> str:
        """Read a word lexeme, keeping balanced parentheses inside it."""
        text = self._text
        start = self._pos
        depth = 0
        while self._pos < len(text):
            ch = text[self._pos]
            if ch.isspace() or ch in _WORD_BREAK:
                break
            if ch == "/" and self._peek(1) in ("/", "*"):
                break
            if ch == "(":
                depth += 1
            elif ch == ")":
                if depth == 0:
                    break
                depth -= 1
            elif ch == "," and depth == 0:
                break
            self._pos += 1
        return text[start:self._pos]


def tokenize(text: str, name: str = "<inline>") -> List[Token]:
    """Lex *text* completely and return the token list."""
    return list(Tokenizer(text, name))
