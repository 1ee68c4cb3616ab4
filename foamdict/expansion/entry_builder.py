"""
EntryBuilder
============

Reads entries from a :class:`~foamdict.lexer.tokenizer.TokenStream` into a
:class:`~foamdict.dictionary.dictionary.Dictionary`, expanding variables and
directives as it goes.

Each statement is read by a small state machine:

+-----------+-------------------------------------------------------------+
| State     | Action                                                      |
+===========+=============================================================+
| START     | Read the keyword.  ``#directive`` → hand the statement to   |
|           | the directive; ``$dict`` → splice a copy of its entries;    |
|           | word / quoted pattern → continue                            |
+-----------+-------------------------------------------------------------+
| READING   | Accumulate tokens.  ``$var`` and inline ``#directive`` are  |
|           | expanded in place; brackets must balance; ``;`` at bracket  |
|           | depth 0 (or end of input) moves to CLOSING                  |
+-----------+-------------------------------------------------------------+
| NESTED    | ``{`` after the keyword: read child entries into a new      |
|           | dictionary until the matching ``}``                         |
+-----------+-------------------------------------------------------------+
| CLOSING   | Build the entry, set its end line, insert it according to   |
|           | the active input mode                                       |
+-----------+-------------------------------------------------------------+

Expansion is eager: by the time an entry is stored it holds only literal
tokens, so later entries can reference earlier ones by value.  Forward
references are not supported.

Error policy
------------
Any :class:`~foamdict.errors.DictionaryError` raised while a statement is
read propagates out of :meth:`EntryBuilder.build_entry` before anything is
inserted for that statement.  The builder never recovers; whether a failed
statement ends the whole load or is skipped is up to the caller.
"""
from __future__ import annotations

import logging
from enum import Enum, auto
from typing import Iterable, List, Optional, Sequence, Tuple

from ..dictionary.dictionary import Dictionary
from ..dictionary.entry import Entry, PrimitiveEntry
from ..directives.registry import DirectiveContext, DirectiveRegistry, standard_directives
from ..errors import (
    DictionaryError,
    DirectiveError,
    DuplicateEntry,
    MacroExpansionOverflow,
    MismatchedScope,
    NestingDepthExceeded,
    ParseError,
    WrongEntryKind,
)
from ..lexer.tokenizer import ListTokenStream, TokenStream
from ..models import BEGIN_BLOCK, CLOSERS, END_BLOCK, Token, TokenKind
from ..settings import InputMode, ReaderSettings
from .variables import VariableResolver

logger = logging.getLogger(__name__)

_MACRO_KINDS = (TokenKind.VARIABLE, TokenKind.DIRECTIVE)


class _State(Enum):
    START = auto()
    READING = auto()
    NESTED = auto()
    CLOSING = auto()
    DONE = auto()


class EntryBuilder:
    """
    Builds dictionary entries from a token stream.

    Parameters
    ----------
    registry:
        Directive table; defaults to :func:`standard_directives`.
    settings:
        Reader options; defaults to :class:`ReaderSettings`.
    resolver:
        Variable resolver; defaults to one over
        ``settings.environment_table()``.
    """

    def __init__(
        self,
        registry: Optional[DirectiveRegistry] = None,
        settings: Optional[ReaderSettings] = None,
        resolver: Optional[VariableResolver] = None,
    ) -> None:
        self.settings = settings or ReaderSettings()
        self.registry = registry or standard_directives()
        self.resolver = resolver or VariableResolver(self.settings.environment_table())
        #: Active duplicate-keyword policy; ``#inputMode`` changes it.
        self.input_mode: InputMode = self.settings.input_mode
        self._nesting = 0

    # ------------------------------------------------------------------
    # Statement level
    # ------------------------------------------------------------------

    def build_entry(
        self,
        stream: TokenStream,
        scope: Dictionary,
        depth: int = 0,
    ) -> List[Entry]:
        """
        Read one statement from *stream* and insert the result into *scope*.

        Returns the entries inserted: normally one, zero or more for
        keyword-position directives and ``$dict`` splices.  On error nothing
        is inserted for the statement and the error propagates.
        """
        try:
            return self._build(stream, scope, depth)
        except DictionaryError as exc:
            if exc.source is None:
                exc.source = stream.name
            raise

    def read_entries(
        self,
        stream: TokenStream,
        scope: Dictionary,
        depth: int = 0,
        closing: bool = False,
        stop_directives: Sequence[str] = (),
    ) -> Optional[Token]:
        """
        Read statements into *scope* until the input is exhausted.

        With *closing* the dictionary body must end with ``}``; with
        *stop_directives* reading stops at a keyword-position directive of
        one of those names.  Returns the terminating token (``None`` at the
        end of input).
        """
        while True:
            token = stream.read()
            if token is None:
                if closing:
                    raise MismatchedScope(
                        f"dictionary {scope.keyword!r} is missing its closing '}}'",
                        scope.start_line,
                        stream.name,
                    )
                return None
            if token.is_punctuation(END_BLOCK):
                if closing:
                    return token
                raise MismatchedScope("'}' without an open dictionary", token.line, stream.name)
            if token.is_end_statement():
                continue
            if stop_directives and token.is_directive(*stop_directives):
                return token
            stream.push_back(token)
            self.build_entry(stream, scope, depth)

    def read_staged(
        self,
        stream: TokenStream,
        scope: Dictionary,
        depth: int,
        stop_directives: Sequence[str] = (),
    ) -> Tuple[Dictionary, Optional[Token]]:
        """
        Read statements into a transparent staging dictionary under *scope*.

        The staging dictionary sees *scope* for lookups, so the statements
        read behave as if written in *scope*; nothing reaches *scope* itself
        until the caller splices the staged entries in.
        """
        staging = Dictionary(
            scope.keyword, parent=scope, start_line=stream.line, transparent=True
        )
        terminator = self.read_entries(
            stream, staging, depth, stop_directives=stop_directives
        )
        return staging, terminator

    # ------------------------------------------------------------------
    # Token level
    # ------------------------------------------------------------------

    def expand_variable(
        self,
        token: Token,
        scope: Dictionary,
        depth: int,
        source: Optional[str] = None,
    ) -> List[Token]:
        """Resolve a ``$name`` token, expanding whatever it resolves to."""
        self._check_depth(depth, token, source)
        resolved = self.resolver.resolve(str(token.value), scope, token.line)
        if not any(t.kind in _MACRO_KINDS for t in resolved):
            return resolved
        return self.expand_stream(
            ListTokenStream(resolved, name=f"${token.value}"), scope, depth
        )

    def expand_directive(
        self,
        token: Token,
        stream: TokenStream,
        scope: Dictionary,
        depth: int,
    ) -> List[Token]:
        """Run the inline form of a ``#directive`` and return its tokens."""
        self._check_depth(depth, token, stream.name)
        directive = self.registry.get(str(token.value), token.line, stream.name)
        logger.debug("Expanding #%s inline at %s:%d", token.value, stream.name, token.line)
        return directive.expand(DirectiveContext(self, stream, scope, token, depth))

    def execute_directive(
        self,
        token: Token,
        stream: TokenStream,
        scope: Dictionary,
        depth: int,
    ) -> List[Entry]:
        """Run the keyword-position form of a ``#directive``."""
        self._check_depth(depth, token, stream.name)
        directive = self.registry.get(str(token.value), token.line, stream.name)
        logger.debug("Executing #%s at %s:%d", token.value, stream.name, token.line)
        return directive.execute(DirectiveContext(self, stream, scope, token, depth))

    def expand_stream(
        self,
        stream: TokenStream,
        scope: Dictionary,
        depth: int,
    ) -> List[Token]:
        """Expand every variable and directive in *stream* until it ends."""
        result: List[Token] = []
        for token in stream:
            if token.kind is TokenKind.VARIABLE:
                result.extend(self.expand_variable(token, scope, depth + 1, stream.name))
            elif token.kind is TokenKind.DIRECTIVE:
                result.extend(self.expand_directive(token, stream, scope, depth + 1))
            else:
                result.append(token)
        return result

    def read_argument(
        self,
        stream: TokenStream,
        scope: Dictionary,
        depth: int,
    ) -> List[Token]:
        """
        Read one directive argument.

        An argument is a single token, an expanded ``$variable`` or inline
        directive, or a complete bracketed group (returned with its
        brackets).
        """
        token = stream.expect("directive argument")
        if token.is_end_statement() or token.is_closer():
            stream.push_back(token)
            raise DirectiveError(f"expected an argument, found {token.text!r}", token.line, stream.name)
        if token.kind is TokenKind.VARIABLE:
            return self.expand_variable(token, scope, depth + 1, stream.name)
        if token.kind is TokenKind.DIRECTIVE:
            return self.expand_directive(token, stream, scope, depth + 1)
        if not token.is_opener():
            return [token]

        group = [token]
        openers = [token]
        while openers:
            current = stream.expect(f"closing '{CLOSERS[openers[-1].value]}'")
            if current.is_opener():
                openers.append(current)
                group.append(current)
            elif current.is_closer():
                self._close_group(openers, current, stream)
                group.append(current)
            elif current.kind is TokenKind.VARIABLE:
                group.extend(self.expand_variable(current, scope, depth + 1, stream.name))
            elif current.kind is TokenKind.DIRECTIVE:
                group.extend(self.expand_directive(current, stream, scope, depth + 1))
            else:
                group.append(current)
        return group

    def insert(self, scope: Dictionary, entry: Entry) -> List[Entry]:
        """Insert *entry* into *scope* following the active input mode."""
        mode = self.input_mode
        existing = None
        if mode is not InputMode.RETAIN:
            existing = next(
                (e for e in reversed(scope.entries) if e.keyword == entry.keyword), None
            )
        if existing is None:
            scope.insert(entry)
            return [entry]

        if mode is InputMode.MERGE and existing.is_dictionary() and entry.is_dictionary():
            existing.as_dictionary().merge(entry.as_dictionary())
            return [existing]
        if mode in (InputMode.MERGE, InputMode.OVERWRITE):
            scope.remove(entry.keyword)
            scope.insert(entry)
            return [entry]
        if mode is InputMode.PROTECT:
            logger.debug("Keeping protected entry %r (line %d)", entry.keyword, existing.start_line)
            return []
        if mode is InputMode.WARN:
            logger.warning(
                "Ignoring redefinition of %r at line %d; first defined at line %d",
                entry.keyword,
                entry.start_line,
                existing.start_line,
            )
            return []
        raise DuplicateEntry(
            f"keyword {entry.keyword!r} redefined; first defined at line {existing.start_line}",
            entry.start_line,
        )

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _build(self, stream: TokenStream, scope: Dictionary, depth: int) -> List[Entry]:
        state = _State.START
        keyword_token: Optional[Token] = None
        current: Optional[Token] = None
        tokens: List[Token] = []
        openers: List[Token] = []
        entry: Optional[Entry] = None
        end_line = -1
        inserted: List[Entry] = []

        while state is not _State.DONE:
            if state is _State.START:
                keyword_token = stream.expect("keyword")
                if keyword_token.kind is TokenKind.DIRECTIVE:
                    entries = self.execute_directive(keyword_token, stream, scope, depth + 1)
                    return self._insert_all(scope, entries)
                if keyword_token.kind is TokenKind.VARIABLE:
                    entries = self._splice_dictionary(keyword_token, stream, scope)
                    return self._insert_all(scope, entries)
                if keyword_token.kind not in (TokenKind.WORD, TokenKind.STRING):
                    raise ParseError(
                        f"expected a keyword, found {keyword_token.text!r}",
                        keyword_token.line,
                        stream.name,
                    )
                current = stream.read()
                if current is None:
                    # bare keyword at end of input: same as ``keyword;``
                    end_line = keyword_token.line
                    state = _State.CLOSING
                    continue
                if current.is_punctuation(BEGIN_BLOCK):
                    state = _State.NESTED
                    continue
                if current.kind is TokenKind.VARIABLE:
                    entry = self._dictionary_reference(keyword_token, current, stream, scope)
                    if entry is not None:
                        state = _State.CLOSING
                        continue
                state = _State.READING

            elif state is _State.READING:
                if current is None:
                    if openers:
                        opener = openers[-1]
                        raise MismatchedScope(
                            f"'{opener.value}' is never closed", opener.line, stream.name
                        )
                    end_line = stream.line
                    state = _State.CLOSING
                    continue
                if current.is_end_statement() and not openers:
                    end_line = current.line
                    state = _State.CLOSING
                    continue
                if current.is_opener():
                    openers.append(current)
                    tokens.append(current)
                elif current.is_closer():
                    self._close_group(openers, current, stream)
                    tokens.append(current)
                elif current.kind is TokenKind.VARIABLE:
                    tokens.extend(self.expand_variable(current, scope, depth + 1, stream.name))
                elif current.kind is TokenKind.DIRECTIVE:
                    tokens.extend(self.expand_directive(current, stream, scope, depth + 1))
                else:
                    tokens.append(current)
                current = stream.read()

            elif state is _State.NESTED:
                if self._nesting >= self.settings.max_nesting_depth:
                    raise NestingDepthExceeded(
                        f"dictionaries nested deeper than {self.settings.max_nesting_depth}",
                        keyword_token.line,
                        stream.name,
                    )
                child = Dictionary(
                    str(keyword_token.value),
                    parent=scope,
                    start_line=keyword_token.line,
                    is_pattern=keyword_token.kind is TokenKind.STRING,
                )
                self._nesting += 1
                try:
                    closer = self.read_entries(stream, child, depth, closing=True)
                finally:
                    self._nesting -= 1
                child.end_line = closer.line
                entry = child
                state = _State.CLOSING

            elif state is _State.CLOSING:
                if entry is None:
                    entry = PrimitiveEntry(
                        str(keyword_token.value),
                        tokens,
                        start_line=keyword_token.line,
                        end_line=end_line,
                        is_pattern=keyword_token.kind is TokenKind.STRING,
                    )
                inserted = self.insert(scope, entry)
                state = _State.DONE

        return inserted

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_depth(self, depth: int, token: Token, source: Optional[str]) -> None:
        if depth > self.settings.max_expansion_depth:
            raise MacroExpansionOverflow(
                f"expansion of {token.text} nested deeper than "
                f"{self.settings.max_expansion_depth} levels (self-referencing definition?)",
                token.line,
                source,
            )

    @staticmethod
    def _close_group(openers: List[Token], closer: Token, stream: TokenStream) -> None:
        if not openers:
            raise MismatchedScope(
                f"'{closer.value}' without a matching opener", closer.line, stream.name
            )
        expected = CLOSERS[openers[-1].value]
        if closer.value != expected:
            raise MismatchedScope(
                f"expected '{expected}' to close '{openers[-1].value}' "
                f"from line {openers[-1].line}, found '{closer.value}'",
                closer.line,
                stream.name,
            )
        openers.pop()

    def _insert_all(self, scope: Dictionary, entries: Iterable[Entry]) -> List[Entry]:
        entries = list(entries)
        if self.input_mode is InputMode.ERROR:
            self._check_duplicates(scope, entries)
        inserted: List[Entry] = []
        for entry in entries:
            inserted.extend(self.insert(scope, entry))
        return inserted

    @staticmethod
    def _check_duplicates(scope: Dictionary, entries: List[Entry]) -> None:
        """Reject the whole batch before any of it is inserted."""
        first_lines = {}
        for existing in scope:
            first_lines.setdefault(existing.keyword, existing.start_line)
        for entry in entries:
            if entry.keyword in first_lines:
                raise DuplicateEntry(
                    f"keyword {entry.keyword!r} redefined; first defined at line "
                    f"{first_lines[entry.keyword]}",
                    entry.start_line,
                )
            first_lines[entry.keyword] = entry.start_line

    def _dictionary_reference(
        self,
        keyword_token: Token,
        variable: Token,
        stream: TokenStream,
        scope: Dictionary,
    ) -> Optional[Dictionary]:
        """
        Handle ``keyword $dict;``: return a copy of the dictionary renamed to
        *keyword*, or ``None`` when the variable is not a dictionary.
        """
        target = self.resolver.lookup(str(variable.value), scope)
        if target is None or not target.is_dictionary():
            return None
        following = stream.read()
        if following is not None and following.is_closer():
            self._close_group([], following, stream)
        if following is not None and not following.is_end_statement():
            raise WrongEntryKind(
                f"${variable.value} is a dictionary and cannot be combined with other tokens",
                variable.line,
                stream.name,
            )
        copy = target.as_dictionary().clone(str(keyword_token.value))
        copy.start_line = keyword_token.line
        copy.end_line = following.line if following is not None else variable.line
        logger.debug("Copied dictionary $%s as %r", variable.value, copy.keyword)
        return copy

    def _splice_dictionary(
        self,
        variable: Token,
        stream: TokenStream,
        scope: Dictionary,
    ) -> List[Entry]:
        """Handle ``$dict;`` in keyword position: copies of its entries."""
        target = self.resolver.resolve_entry(str(variable.value), scope, variable.line)
        if not target.is_dictionary():
            raise WrongEntryKind(
                f"${variable.value} in keyword position must name a dictionary",
                variable.line,
                stream.name,
            )
        following = stream.read()
        if following is not None and not following.is_end_statement():
            stream.push_back(following)
        return [child.clone() for child in target.as_dictionary()]
