"""
VariableResolver
================

Resolves ``$name`` references at read time.

Lookup order:

1. the current dictionary,
2. each enclosing dictionary outwards to the root,
3. the environment table (plain names only).

The first match wins.  A reference that matches nothing raises
:class:`~foamdict.errors.UndefinedVariable`; unresolved references are never
treated as empty.
"""
from __future__ import annotations

import logging
import re
from typing import List, Mapping, Optional

from ..dictionary.dictionary import Dictionary
from ..dictionary.entry import Entry
from ..errors import ParseError, UndefinedVariable, WrongEntryKind
from ..lexer.tokenizer import Tokenizer
from ..models import Token, TokenKind

logger = logging.getLogger(__name__)

# $name or ${scoped/name} inside a string
_STRING_VARIABLE_RE = re.compile(r"\$(?:\{([^}]+)\}|(\w+))")


class VariableResolver:
    """
    Scope-chain variable resolution with an environment fallback.

    Parameters
    ----------
    environment:
        Table consulted after the scope chain, usually ``os.environ``.
        ``None`` or an empty mapping disables the fallback.
    """

    def __init__(self, environment: Optional[Mapping[str, str]] = None) -> None:
        self.environment: Mapping[str, str] = environment or {}

    def lookup(self, name: str, scope: Dictionary) -> Optional[Entry]:
        return scope.lookup_scoped(name)

    def resolve_entry(self, name: str, scope: Dictionary, line: int = -1) -> Entry:
        """Like :meth:`lookup` but raising :class:`UndefinedVariable`."""
        entry = self.lookup(name, scope)
        if entry is None:
            raise UndefinedVariable(name, line)
        return entry

    def resolve(self, name: str, scope: Dictionary, line: int = -1) -> List[Token]:
        """
        Return the tokens a ``$name`` reference stands for.

        Tokens coming from the environment are lexed from the variable's
        text and stamped with *line*.  They may themselves contain
        ``$references``; expanding those is the caller's job.  A value
        containing ``;`` is a :class:`ParseError`.
        """
        entry = self.lookup(name, scope)
        if entry is not None:
            if entry.is_dictionary():
                raise WrongEntryKind(
                    f"${name} names a dictionary and cannot be used as a value", line
                )
            logger.debug("Resolved $%s from dictionary %r", name, scope.name)
            return entry.as_primitive().tokens

        value = self._environment_value(name)
        if value is not None:
            logger.debug("Resolved $%s from the environment", name)
            tokens = [t.with_line(line) for t in Tokenizer(value, name=f"${name}")]
            if any(t.is_end_statement() for t in tokens):
                raise ParseError(
                    f"environment variable ${name} contains ';' and cannot be used as a value",
                    line,
                )
            return tokens

        raise UndefinedVariable(name, line)

    def expand_string(self, text: str, scope: Dictionary, line: int = -1) -> str:
        """Substitute ``$name`` / ``${name}`` references inside *text*."""

        def _substitute(match: re.Match) -> str:
            name = match.group(1) or match.group(2)
            entry = self.lookup(name, scope)
            if entry is not None:
                if entry.is_dictionary():
                    raise WrongEntryKind(
                        f"${name} names a dictionary and cannot be used in a string",
                        line,
                    )
                return " ".join(_plain_text(t) for t in entry.as_primitive().tokens)
            value = self._environment_value(name)
            if value is not None:
                return value
            raise UndefinedVariable(name, line)

        return _STRING_VARIABLE_RE.sub(_substitute, text)

    def _environment_value(self, name: str) -> Optional[str]:
        if not name.isidentifier():
            return None
        return self.environment.get(name)


def _plain_text(token: Token) -> str:
    if token.kind is TokenKind.STRING:
        return str(token.value)
    return token.text
