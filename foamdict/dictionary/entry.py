"""
Entry and PrimitiveEntry.

An :class:`Entry` is any named node stored in a
:class:`~foamdict.dictionary.dictionary.Dictionary`.  There are exactly two
kinds: :class:`PrimitiveEntry` (a keyword bound to a token list) and
``Dictionary`` (a nested scope).  Callers test the kind with
:meth:`Entry.is_dictionary` / :meth:`Entry.is_primitive` and convert with
the checked accessors, which raise :class:`~foamdict.errors.WrongEntryKind`
instead of failing later.
"""
from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Iterable, Iterator, List, Optional, TextIO

from ..errors import ParseError, WrongEntryKind
from ..lexer.tokenizer import ListTokenStream
from ..models import Token, TokenKind

if TYPE_CHECKING:
    from .dictionary import Dictionary


class Entry:
    """
    Common identity of every dictionary node.

    Parameters
    ----------
    keyword:
        Entry name.  When *is_pattern* is true the keyword is a regular
        expression matched against whole lookup names.
    start_line / end_line:
        Source line range; ``end_line`` stays ``-1`` until the entry is
        closed by the builder.
    """

    def __init__(
        self,
        keyword: str,
        start_line: int = -1,
        end_line: int = -1,
        is_pattern: bool = False,
    ) -> None:
        self.start_line = start_line
        self.end_line = end_line
        self._regex: Optional[re.Pattern] = None
        self.is_pattern = is_pattern
        self.keyword = keyword

    @property
    def keyword(self) -> str:
        return self._keyword

    @keyword.setter
    def keyword(self, value: str) -> None:
        self._keyword = value
        self._regex = None
        if self.is_pattern:
            try:
                self._regex = re.compile(value)
            except re.error as exc:
                raise ParseError(
                    f"invalid keyword pattern {value!r}: {exc}", self.start_line
                ) from exc

    def matches(self, name: str) -> bool:
        """True when this entry's keyword selects *name*."""
        if self._regex is not None:
            return self._regex.fullmatch(name) is not None
        return self._keyword == name

    # ------------------------------------------------------------------
    # Kind queries
    # ------------------------------------------------------------------

    def is_dictionary(self) -> bool:
        return False

    def is_primitive(self) -> bool:
        return False

    def as_dictionary(self) -> Dictionary:
        raise WrongEntryKind(
            f"entry {self.keyword!r} is not a dictionary", self.start_line
        )

    def as_primitive(self) -> PrimitiveEntry:
        raise WrongEntryKind(
            f"entry {self.keyword!r} is a dictionary, not a primitive entry",
            self.start_line,
        )

    # ------------------------------------------------------------------
    # Copy / output
    # ------------------------------------------------------------------

    def clone(self, keyword: Optional[str] = None) -> Entry:
        raise NotImplementedError

    def write(self, out: TextIO, full_form: bool = True) -> None:
        """Write the entry in dictionary syntax.

        With ``full_form=False`` only the contents are written: the token
        list of a primitive entry, or the children of a dictionary.
        """
        from ..output.writer import DictionaryWriter

        DictionaryWriter(out).write_entry(self, full_form)

    def __str__(self) -> str:
        from ..output.writer import entry_to_string

        return entry_to_string(self)


class PrimitiveEntry(Entry):
    """A keyword bound to an ordered list of literal tokens."""

    def __init__(
        self,
        keyword: str,
        tokens: Iterable[Token] = (),
        start_line: int = -1,
        end_line: int = -1,
        is_pattern: bool = False,
    ) -> None:
        super().__init__(keyword, start_line, end_line, is_pattern)
        self._tokens: List[Token] = list(tokens)

    @property
    def tokens(self) -> List[Token]:
        return list(self._tokens)

    def stream(self) -> ListTokenStream:
        """A fresh token stream over this entry's tokens."""
        return ListTokenStream(self._tokens, name=self.keyword)

    @property
    def value(self) -> Any:
        """Tokens as Python values: one token gives a scalar, several a list."""
        return tokens_to_python(self._tokens)

    def is_primitive(self) -> bool:
        return True

    def as_primitive(self) -> PrimitiveEntry:
        return self

    def clone(self, keyword: Optional[str] = None) -> PrimitiveEntry:
        return PrimitiveEntry(
            self.keyword if keyword is None else keyword,
            self._tokens,
            self.start_line,
            self.end_line,
            self.is_pattern,
        )

    def info(self) -> str:
        """Token-level diagnostics: line, kind and value of each token."""
        from ..output.writer import format_info

        return format_info(self)

    def __len__(self) -> int:
        return len(self._tokens)

    def __iter__(self) -> Iterator[Token]:
        return iter(self._tokens)

    def __repr__(self) -> str:
        return f"PrimitiveEntry(keyword={self.keyword!r}, tokens={len(self._tokens)})"


# ---------------------------------------------------------------------------
# Python value conversion
# ---------------------------------------------------------------------------


def _token_value(token: Token) -> Any:
    if token.kind in (TokenKind.VARIABLE, TokenKind.DIRECTIVE):
        return token.text
    return token.value


def tokens_to_python(tokens: List[Token]) -> Any:
    """
    Convert a token list to plain Python values.

    Bracketed groups become nested lists; a lone token becomes a scalar and
    an empty list stays empty.
    """
    stack: List[List[Any]] = [[]]
    for token in tokens:
        if token.is_opener():
            stack.append([])
        elif token.is_closer() and len(stack) > 1:
            group = stack.pop()
            stack[-1].append(group)
        elif token.is_punctuation(",") or token.is_end_statement():
            continue
        else:
            stack[-1].append(_token_value(token))
    while len(stack) > 1:
        group = stack.pop()
        stack[-1].append(group)
    values = stack[0]
    if len(values) == 1:
        return values[0]
    return values
