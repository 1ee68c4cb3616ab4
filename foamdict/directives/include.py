"""
File inclusion: ``#include`` and ``#includeIfPresent``.

In keyword position the included file is read as a sequence of entries in
the including scope; used inline, its tokens are expanded and spliced into
the value being read.

File names may contain ``$variables`` and are resolved against:

1. the directory of the including file (absolute names are used as-is),
2. each configured include path, in order.

Every include level counts towards the expansion depth limit, so a file
that includes itself fails with
:class:`~foamdict.errors.MacroExpansionOverflow` instead of recursing
without bound.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from ..errors import IncludeError
from ..lexer.tokenizer import Tokenizer
from ..models import Token, TokenKind
from .registry import Directive, DirectiveContext

if TYPE_CHECKING:
    from ..dictionary.entry import Entry

logger = logging.getLogger(__name__)


class IncludeDirective(Directive):
    """``#include "file"``"""

    name = "include"
    optional = False

    def execute(self, context: DirectiveContext) -> List[Entry]:
        path = self._locate(context)
        if path is None:
            return []
        logger.info("Including %s", path)
        stream = self._open(path, context)
        staging, _ = context.builder.read_staged(stream, context.scope, context.depth)
        return staging.entries

    def expand(self, context: DirectiveContext) -> List[Token]:
        path = self._locate(context)
        if path is None:
            return []
        logger.info("Including %s inline", path)
        stream = self._open(path, context)
        return context.builder.expand_stream(stream, context.scope, context.depth)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _locate(self, context: DirectiveContext) -> Optional[Path]:
        argument = context.stream.expect(f"#{self.name} file name")
        if argument.kind not in (TokenKind.STRING, TokenKind.WORD):
            raise context.error(f"expected a file name, found {argument.text!r}")
        raw_name = context.builder.resolver.expand_string(
            str(argument.value), context.scope, context.line
        )
        candidates = self._candidates(Path(raw_name).expanduser(), context)
        for candidate in candidates:
            if candidate.is_file():
                return candidate

        searched = ", ".join(str(c) for c in candidates)
        if self.optional:
            logger.debug("Optional include %r not found (searched: %s)", raw_name, searched)
            return None
        logger.error("Include file %r not found (searched: %s)", raw_name, searched)
        raise IncludeError(
            f"cannot find include file {raw_name!r} (searched: {searched})",
            context.line,
            context.source,
        )

    @staticmethod
    def _candidates(name: Path, context: DirectiveContext) -> List[Path]:
        if name.is_absolute():
            return [name]
        candidates: List[Path] = []
        source = Path(context.source)
        if source.is_file():
            candidates.append(source.parent / name)
        else:
            candidates.append(Path.cwd() / name)
        for directory in context.builder.settings.include_paths:
            candidates.append(Path(directory) / name)
        return candidates

    @staticmethod
    def _open(path: Path, context: DirectiveContext) -> Tokenizer:
        try:
            return Tokenizer.from_file(path)
        except OSError as exc:
            logger.error("Failed to read include file %s: %s", path, exc)
            raise IncludeError(
                f"cannot read include file {str(path)!r}: {exc}",
                context.line,
                context.source,
            ) from exc


class IncludeIfPresentDirective(IncludeDirective):
    """``#includeIfPresent "file"`` – as ``#include``, missing files are skipped."""

    name = "includeIfPresent"
    optional = True
