"""
Exception taxonomy for dictionary reading.

Every error except :class:`NotFound` is fatal to the read in progress: it
aborts the statement being built and propagates to the caller with the
offending line attached.  Callers decide whether a fatal error ends the
whole configuration load or only skips the offending input.
"""
from __future__ import annotations

from typing import Optional


class DictionaryError(Exception):
    """Base class for all dictionary reading errors."""

    def __init__(
        self,
        message: str,
        line: int = -1,
        source: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.source = source

    def __str__(self) -> str:
        location = self.source or ""
        if self.line >= 0:
            location = f"{location}:{self.line}" if location else f"line {self.line}"
        return f"{location}: {self.message}" if location else self.message


class UnexpectedEndOfStream(DictionaryError):
    """Input ended where another token was required."""


class MismatchedScope(DictionaryError):
    """Unbalanced ``{}``, ``()`` or ``[]`` delimiters."""


class UndefinedVariable(DictionaryError):
    """A ``$variable`` did not resolve in any scope or the environment."""

    def __init__(self, name: str, line: int = -1, source: Optional[str] = None) -> None:
        super().__init__(f"undefined variable ${name}", line, source)
        self.name = name


class UnknownDirective(DictionaryError):
    """A ``#directive`` has no registered handler."""

    def __init__(self, name: str, line: int = -1, source: Optional[str] = None) -> None:
        super().__init__(f"unknown directive #{name}", line, source)
        self.name = name


class MacroExpansionOverflow(DictionaryError):
    """Variable, directive or include expansion nested beyond the limit."""


class NestingDepthExceeded(DictionaryError):
    """Sub-dictionaries nested beyond the configured limit."""


class WrongEntryKind(DictionaryError):
    """A primitive entry was used as a dictionary, or the reverse."""


class NotFound(DictionaryError, KeyError):
    """Strict lookup of a keyword that no scope defines."""

    def __init__(self, keyword: str, scope: str = "") -> None:
        where = f" in dictionary {scope!r}" if scope else ""
        super().__init__(f"keyword {keyword!r} not found{where}")
        self.keyword = keyword

    def __str__(self) -> str:
        return DictionaryError.__str__(self)


class ParseError(DictionaryError):
    """Malformed keyword or lexeme."""


class DirectiveError(DictionaryError):
    """A directive was given bad arguments or used in the wrong position."""


class IncludeError(DirectiveError):
    """A required include file could not be found or read."""


class DuplicateEntry(DictionaryError):
    """A keyword was redefined while the input mode is ``error``."""
