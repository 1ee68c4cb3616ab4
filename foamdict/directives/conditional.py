"""
Conditional blocks: ``#ifeq``, ``#if``, ``#else``, ``#endif``.

::

    #ifeq $solver PISO
        nCorrectors 2;
    #else
        nCorrectors 1;
    #endif

``#ifeq a b`` compares the expanded arguments token by token.  ``#if arg``
tests a switch word (``true/on/yes/y/t`` versus ``false/off/no/n/f/none``)
or a number (non-zero is true).

The branch taken is read into a staging scope and its entries are returned
for insertion; the branch not taken is skipped token by token without any
expansion, so it may reference names that do not exist.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional

from ..errors import UnexpectedEndOfStream
from ..models import Token, TokenKind
from .registry import Directive, DirectiveContext

if TYPE_CHECKING:
    from ..dictionary.entry import Entry

logger = logging.getLogger(__name__)

OPENING_NAMES = ("if", "ifeq")
ELSE = "else"
ENDIF = "endif"

_TRUE_WORDS = {"true", "on", "yes", "y", "t"}
_FALSE_WORDS = {"false", "off", "no", "n", "f", "none"}


def switch_value(tokens: List[Token]) -> Optional[bool]:
    """Interpret *tokens* as a boolean switch; ``None`` when it is not one."""
    if len(tokens) != 1:
        return None
    token = tokens[0]
    if token.kind is TokenKind.NUMBER:
        return token.value != 0
    if token.kind in (TokenKind.WORD, TokenKind.STRING):
        word = str(token.value).lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    return None


class _ConditionalDirective(Directive):
    """Shared branch handling for ``#if`` and ``#ifeq``."""

    def condition(self, context: DirectiveContext) -> bool:
        raise NotImplementedError

    def execute(self, context: DirectiveContext) -> List[Entry]:
        taken = self.condition(context)
        logger.debug("#%s at line %d is %s", self.name, context.line, taken)
        builder, stream, scope = context.builder, context.stream, context.scope

        if taken:
            staging, terminator = builder.read_staged(
                stream, scope, context.depth, stop_directives=(ELSE, ENDIF)
            )
            self._require(terminator, context)
            if terminator.is_directive(ELSE):
                self._skip(context, allow_else=False)
            return staging.entries

        terminator = self._skip(context, allow_else=True)
        if terminator.is_directive(ENDIF):
            return []
        staging, terminator = builder.read_staged(
            stream, scope, context.depth, stop_directives=(ELSE, ENDIF)
        )
        self._require(terminator, context)
        if terminator.is_directive(ELSE):
            raise context.error(f"second #else at line {terminator.line}")
        return staging.entries

    def _require(self, terminator: Optional[Token], context: DirectiveContext) -> None:
        if terminator is None:
            raise UnexpectedEndOfStream(
                f"#{self.name} without a matching #endif", context.line, context.source
            )

    def _skip(self, context: DirectiveContext, allow_else: bool) -> Token:
        """Discard tokens up to this block's ``#else`` or ``#endif``."""
        nested = 0
        for token in context.stream:
            if token.kind is not TokenKind.DIRECTIVE:
                continue
            if token.value in OPENING_NAMES:
                nested += 1
            elif token.value == ENDIF:
                if nested == 0:
                    return token
                nested -= 1
            elif token.value == ELSE and nested == 0:
                if not allow_else:
                    raise context.error(f"second #else at line {token.line}")
                return token
        raise UnexpectedEndOfStream(
            f"#{self.name} without a matching #endif", context.line, context.source
        )


class IfEqDirective(_ConditionalDirective):
    """``#ifeq a b`` – true when both arguments expand to the same tokens."""

    name = "ifeq"

    def condition(self, context: DirectiveContext) -> bool:
        left = context.read_argument()
        right = context.read_argument()
        return [t.text for t in left] == [t.text for t in right]


class IfDirective(_ConditionalDirective):
    """``#if switch`` – true when the argument is a true switch value."""

    name = "if"

    def condition(self, context: DirectiveContext) -> bool:
        argument = context.read_argument()
        value = switch_value(argument)
        if value is None:
            shown = " ".join(t.text for t in argument)
            raise context.error(f"{shown!r} is not a switch value")
        return value


class ElseDirective(Directive):
    """``#else`` outside a conditional block is an error."""

    name = ELSE

    def execute(self, context: DirectiveContext) -> List[Entry]:
        raise context.error("#else without a matching #if or #ifeq")


class EndifDirective(Directive):
    """``#endif`` outside a conditional block is an error."""

    name = ENDIF

    def execute(self, context: DirectiveContext) -> List[Entry]:
        raise context.error("#endif without a matching #if or #ifeq")
