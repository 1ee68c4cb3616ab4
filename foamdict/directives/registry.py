"""
Directive registry
==================

``#name`` tokens dispatch to :class:`Directive` handlers looked up in a
:class:`DirectiveRegistry`.  A handler may be used in two positions:

* **inline** – inside an entry's value (``x #calc "1+2";``); the handler's
  :meth:`Directive.expand` returns replacement tokens.
* **keyword position** – where a keyword is expected (``#include "f"``);
  :meth:`Directive.execute` returns finished entries that the builder
  inserts into the enclosing dictionary.

Handlers leave dictionary state alone apart from what they return, except
for ``#include`` (reads external files), ``#remove`` and ``#inputMode``
(which document their effects).

The registry is filled once and then frozen; :func:`standard_directives`
returns the shared, frozen registry of built-in directives.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional

from ..errors import DirectiveError, UnknownDirective
from ..models import Token

if TYPE_CHECKING:
    from ..dictionary.dictionary import Dictionary
    from ..dictionary.entry import Entry
    from ..expansion.entry_builder import EntryBuilder
    from ..lexer.tokenizer import TokenStream

logger = logging.getLogger(__name__)


@dataclass
class DirectiveContext:
    """Everything a handler may use while it runs."""

    builder: EntryBuilder
    stream: TokenStream
    scope: Dictionary
    token: Token
    depth: int

    @property
    def line(self) -> int:
        return self.token.line

    @property
    def source(self) -> str:
        return self.stream.name

    def read_argument(self) -> List[Token]:
        """Read one expanded argument (token, variable or bracketed group)."""
        return self.builder.read_argument(self.stream, self.scope, self.depth)

    def error(self, message: str) -> DirectiveError:
        return DirectiveError(f"#{self.token.value}: {message}", self.line, self.source)


class Directive:
    """Base class for ``#name`` handlers."""

    name: str = ""

    def expand(self, context: DirectiveContext) -> List[Token]:
        """Inline form: return tokens spliced into the entry being read."""
        raise context.error("cannot be used inside an entry value")

    def execute(self, context: DirectiveContext) -> List[Entry]:
        """Keyword-position form: return entries to insert into the scope."""
        raise context.error("cannot be used in place of a keyword")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class DirectiveRegistry:
    """Name → :class:`Directive` table, read-only once frozen."""

    def __init__(self) -> None:
        self._directives: Dict[str, Directive] = {}
        self._frozen = False

    def register(self, directive: Directive, name: Optional[str] = None) -> None:
        if self._frozen:
            raise RuntimeError("directive registry is frozen")
        key = name or directive.name
        if not key:
            raise ValueError(f"{directive!r} has no name")
        logger.debug("Registering directive #%s", key)
        self._directives[key] = directive

    def freeze(self) -> DirectiveRegistry:
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str, line: int = -1, source: Optional[str] = None) -> Directive:
        try:
            return self._directives[name]
        except KeyError:
            raise UnknownDirective(name, line, source) from None

    def names(self) -> List[str]:
        return sorted(self._directives)

    def __contains__(self, name: object) -> bool:
        return name in self._directives

    def copy(self) -> DirectiveRegistry:
        """An unfrozen copy, for callers that add their own directives."""
        clone = DirectiveRegistry()
        clone._directives = dict(self._directives)
        return clone


_STANDARD: Optional[DirectiveRegistry] = None


def standard_directives() -> DirectiveRegistry:
    """The process-wide frozen registry of built-in directives."""
    global _STANDARD
    if _STANDARD is None:
        from .calc import CalcDirective, NegDirective
        from .conditional import ElseDirective, EndifDirective, IfDirective, IfEqDirective
        from .include import IncludeDirective, IncludeIfPresentDirective
        from .scope_control import InputModeDirective, RemoveDirective

        registry = DirectiveRegistry()
        for directive in (
            CalcDirective(),
            NegDirective(),
            IncludeDirective(),
            IncludeIfPresentDirective(),
            IfEqDirective(),
            IfDirective(),
            ElseDirective(),
            EndifDirective(),
            RemoveDirective(),
            InputModeDirective(),
        ):
            registry.register(directive)
        _STANDARD = registry.freeze()
    return _STANDARD
