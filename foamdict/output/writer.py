"""
DictionaryWriter
================

Serializes entries back to dictionary syntax.

Full form::

    keyword         value tokens;
    subDict
    {
        inner           1;
    }

Contents-only form writes the token list of a primitive entry (no keyword,
no ``;``) or the children of a dictionary (no name, no braces).  Because
entries are stored fully expanded, reading the output back gives the same
token lists without re-running any expansion.
"""
from __future__ import annotations

import io
from typing import Iterable, List, Optional, TextIO

from ..dictionary.entry import Entry
from ..models import BEGIN_BLOCK, END_BLOCK, Token

KEYWORD_WIDTH = 16
INDENT = "    "

_NO_SPACE_AFTER = {"(", "["}
_NO_SPACE_BEFORE = {")", "]"}


def format_tokens(tokens: Iterable[Token]) -> str:
    """Join tokens with single spaces, without padding inside brackets."""
    parts: List[str] = []
    previous: Optional[Token] = None
    for token in tokens:
        text = token.text
        if previous is not None:
            tight = (
                previous.is_punctuation() and previous.value in _NO_SPACE_AFTER
            ) or (token.is_punctuation() and token.value in _NO_SPACE_BEFORE)
            if not tight:
                parts.append(" ")
        parts.append(text)
        previous = token
    return "".join(parts)


def format_keyword(entry: Entry) -> str:
    if entry.is_pattern:
        return Token.string(entry.keyword).text
    return entry.keyword


class DictionaryWriter:
    """
    Writes entries to a text stream.

    Parameters
    ----------
    out:
        Destination text stream.
    indent:
        Initial indentation level (four spaces per level).
    """

    def __init__(self, out: TextIO, indent: int = 0) -> None:
        self._out = out
        self._indent = indent

    def write_entry(self, entry: Entry, full_form: bool = True) -> None:
        if entry.is_dictionary():
            self._write_dictionary(entry, full_form)
        else:
            self._write_primitive(entry, full_form)

    def write_entries(self, entries: Iterable[Entry]) -> None:
        for entry in entries:
            self.write_entry(entry)

    # ------------------------------------------------------------------

    def _pad(self) -> str:
        return INDENT * self._indent

    def _write_primitive(self, entry: Entry, full_form: bool) -> None:
        body = format_tokens(entry.as_primitive().tokens)
        if not full_form:
            self._out.write(body)
            return
        keyword = format_keyword(entry)
        if not body:
            self._out.write(f"{self._pad()}{keyword};\n")
            return
        self._out.write(f"{self._pad()}{keyword.ljust(KEYWORD_WIDTH - 1)} {body};\n")

    def _write_dictionary(self, entry: Entry, full_form: bool) -> None:
        dictionary = entry.as_dictionary()
        if not full_form:
            self.write_entries(dictionary)
            return
        pad = self._pad()
        self._out.write(f"{pad}{format_keyword(entry)}\n{pad}{BEGIN_BLOCK}\n")
        self._indent += 1
        try:
            self.write_entries(dictionary)
        finally:
            self._indent -= 1
        self._out.write(f"{pad}{END_BLOCK}\n")


def entry_to_string(entry: Entry, full_form: bool = True) -> str:
    buffer = io.StringIO()
    DictionaryWriter(buffer).write_entry(entry, full_form)
    return buffer.getvalue()


def format_info(entry: Entry) -> str:
    """
    Token diagnostics for error reports: one line per token giving its
    source line, kind and value.
    """
    tokens = entry.as_primitive().tokens
    lines = [
        f"{entry.keyword}: {len(tokens)} token{'s' if len(tokens) != 1 else ''}"
        f" (lines {entry.start_line}-{entry.end_line})"
    ]
    for index, token in enumerate(tokens):
        lines.append(
            f"  [{index}] line {token.line:>4}  {token.kind.value:<13} {token.text}"
        )
    return "\n".join(lines)
