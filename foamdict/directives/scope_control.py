"""
Scope-changing directives: ``#remove`` and ``#inputMode``.

Unlike the other directives these act on state outside the entries they
return:

* ``#remove kw`` / ``#remove (kw1 "pat.*")`` deletes entries from the
  enclosing scope (quoted names are regular expressions).  Inside an
  include or conditional block the removal reaches through the staging
  scope to the real enclosing dictionary.
* ``#inputMode mode`` switches the builder's duplicate-keyword policy for
  the rest of the read; ``default`` restores the configured policy.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List

from ..models import TokenKind
from ..settings import InputMode
from .registry import Directive, DirectiveContext

if TYPE_CHECKING:
    from ..dictionary.entry import Entry

logger = logging.getLogger(__name__)


class RemoveDirective(Directive):
    """``#remove`` – delete entries by keyword or pattern."""

    name = "remove"

    def execute(self, context: DirectiveContext) -> List[Entry]:
        argument = context.read_argument()
        names = [t for t in argument if t.kind in (TokenKind.WORD, TokenKind.STRING)]
        if not names:
            raise context.error("expected a keyword or a list of keywords")

        scope = context.scope
        while True:
            for token in names:
                scope.remove(str(token.value), pattern=token.kind is TokenKind.STRING)
            if not scope.transparent or scope.parent is None:
                break
            scope = scope.parent
        return []


class InputModeDirective(Directive):
    """``#inputMode`` – change how redefined keywords are stored."""

    name = "inputMode"

    def execute(self, context: DirectiveContext) -> List[Entry]:
        argument = context.stream.expect("#inputMode mode")
        if argument.kind is not TokenKind.WORD:
            raise context.error(f"expected a mode name, found {argument.text!r}")
        builder = context.builder
        if argument.value == "default":
            builder.input_mode = builder.settings.input_mode
        else:
            try:
                builder.input_mode = InputMode.from_name(str(argument.value))
            except ValueError as exc:
                raise context.error(str(exc)) from exc
        logger.debug("Input mode set to %s", builder.input_mode.value)
        return []
