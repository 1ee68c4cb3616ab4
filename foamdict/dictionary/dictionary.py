"""
Dictionary
==========

An ordered scope of :class:`~foamdict.dictionary.entry.Entry` objects.

* Children are owned by the dictionary and kept in insertion order.
* The parent link is a ``weakref``: parents own children, never the
  reverse, so the tree holds no strong cycles.
* Lookups search this dictionary newest-first (exact keywords before
  pattern keywords) and then escalate to the parent, never to siblings.
* Redefined keywords stay in the entry list; the newest shadows the rest
  for lookup.

Scoped names (used by ``$variable`` references):

+----------------+-------------------------------------------------------+
| ``a``          | ``a`` in this scope or any enclosing scope            |
+----------------+-------------------------------------------------------+
| ``a/b/c``      | ``b`` inside ``a``, then ``c`` inside ``b``           |
+----------------+-------------------------------------------------------+
| ``../a``       | start the search one scope further out                |
+----------------+-------------------------------------------------------+
| ``!a/b``       | start at the root dictionary                          |
+----------------+-------------------------------------------------------+
"""
from __future__ import annotations

import logging
import re
import weakref
from typing import Any, Dict, Iterator, List, Optional

from ..errors import NotFound
from .entry import Entry

logger = logging.getLogger(__name__)

SCOPE_SEPARATOR = "/"
PARENT_SCOPE = ".."
ROOT_SCOPE = "!"


class Dictionary(Entry):
    """
    A named scope holding child entries.

    Parameters
    ----------
    keyword:
        Name of this dictionary inside its parent (the source name for a
        root dictionary).
    parent:
        Enclosing dictionary, or ``None`` for a root.
    transparent:
        Staging scopes used while reading includes and conditional blocks
        are transparent: they take part in lookups but ``..`` skips them.
    """

    def __init__(
        self,
        keyword: str = "",
        parent: Optional[Dictionary] = None,
        start_line: int = -1,
        end_line: int = -1,
        is_pattern: bool = False,
        transparent: bool = False,
    ) -> None:
        super().__init__(keyword, start_line, end_line, is_pattern)
        self._entries: List[Entry] = []
        self._parent: Optional[weakref.ref] = None
        self.transparent = transparent
        if parent is not None:
            self._parent = weakref.ref(parent)

    # ------------------------------------------------------------------
    # Scope chain
    # ------------------------------------------------------------------

    @property
    def parent(self) -> Optional[Dictionary]:
        return self._parent() if self._parent is not None else None

    def scope_parent(self) -> Optional[Dictionary]:
        """Nearest enclosing scope that is not a transparent staging scope.

        A transparent scope stands for the dictionary it stages into, so its
        scope parent is that dictionary's parent.
        """
        current: Optional[Dictionary] = self
        while current is not None and current.transparent:
            current = current.parent
        parent = current.parent if current is not None else None
        while parent is not None and parent.transparent:
            parent = parent.parent
        return parent

    def root(self) -> Dictionary:
        current = self
        while current.parent is not None:
            current = current.parent
        return current

    @property
    def name(self) -> str:
        """Scoped path of this dictionary from the root, e.g. ``a/b``."""
        parts: List[str] = []
        current: Optional[Dictionary] = self
        while current is not None and current.parent is not None:
            if not current.transparent:
                parts.append(current.keyword)
            current = current.parent
        return SCOPE_SEPARATOR.join(reversed(parts))

    # ------------------------------------------------------------------
    # Container interface
    # ------------------------------------------------------------------

    def insert(self, entry: Entry, keyword: Optional[str] = None) -> Entry:
        """Append *entry* (optionally renamed).  Duplicate keywords are kept."""
        if keyword is not None:
            entry.keyword = keyword
        if isinstance(entry, Dictionary):
            entry._parent = weakref.ref(self)
        self._entries.append(entry)
        return entry

    def remove(self, keyword: str, pattern: bool = False) -> int:
        """
        Remove every local entry named *keyword*.

        With ``pattern=True`` *keyword* is a regular expression and all local
        entries whose keyword fully matches it are removed.  Returns the
        number of entries removed.
        """
        if pattern:
            regex = re.compile(keyword)
            keep = [e for e in self._entries if not regex.fullmatch(e.keyword)]
        else:
            keep = [e for e in self._entries if e.keyword != keyword]
        removed = len(self._entries) - len(keep)
        self._entries = keep
        if removed:
            logger.debug("Removed %d entr%s %r from %r", removed,
                         "y" if removed == 1 else "ies", keyword, self.keyword)
        return removed

    @property
    def entries(self) -> List[Entry]:
        return list(self._entries)

    def keys(self) -> List[str]:
        """Keywords in insertion order, each listed once."""
        seen: Dict[str, None] = {}
        for entry in self._entries:
            seen.setdefault(entry.keyword, None)
        return list(seen)

    def __iter__(self) -> Iterator[Entry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, keyword: object) -> bool:
        return isinstance(keyword, str) and self.lookup(keyword, recursive=False) is not None

    def found(self, keyword: str, recursive: bool = False) -> bool:
        return self.lookup(keyword, recursive=recursive) is not None

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(
        self,
        keyword: str,
        recursive: bool = True,
        patterns: bool = True,
    ) -> Optional[Entry]:
        """
        Find the newest entry for *keyword*, or ``None``.

        Exact keywords are searched first, then pattern keywords (both
        newest-first); when nothing matches and *recursive* is true the
        search continues in the parent scope.
        """
        scope: Optional[Dictionary] = self
        while scope is not None:
            for entry in reversed(scope._entries):
                if not entry.is_pattern and entry.keyword == keyword:
                    return entry
            if patterns:
                for entry in reversed(scope._entries):
                    if entry.is_pattern and entry.matches(keyword):
                        return entry
            if not recursive:
                return None
            scope = scope.parent
        return None

    def entry(self, keyword: str, recursive: bool = True) -> Entry:
        """Strict :meth:`lookup` raising :class:`NotFound`."""
        found = self.lookup(keyword, recursive=recursive)
        if found is None:
            raise NotFound(keyword, self.name or self.keyword)
        return found

    def subdict(self, keyword: str) -> Dictionary:
        """Strict lookup of a sub-dictionary in this scope."""
        return self.entry(keyword, recursive=False).as_dictionary()

    def lookup_scoped(self, name: str) -> Optional[Entry]:
        """
        Resolve a scoped name (``a/b``, ``../a``, ``!a``) from this scope.

        The first plain component is searched through the scope chain; the
        following components are searched only inside the dictionary found
        so far.  Returns ``None`` when any component is missing or names a
        primitive entry that would have to be descended into.
        """
        scope: Optional[Dictionary] = self
        path = name
        if path.startswith(ROOT_SCOPE):
            scope = self.root()
            path = path[len(ROOT_SCOPE):].lstrip(SCOPE_SEPARATOR)
            recursive = False
        else:
            recursive = True

        parts = [p for p in path.split(SCOPE_SEPARATOR) if p]
        while parts and parts[0] == PARENT_SCOPE:
            scope = scope.scope_parent() if scope is not None else None
            parts.pop(0)
            recursive = False
        if scope is None or not parts:
            return None

        found = scope.lookup(parts[0], recursive=recursive)
        for part in parts[1:]:
            if found is None or not found.is_dictionary():
                return None
            found = found.as_dictionary().lookup(part, recursive=False)
        return found

    # ------------------------------------------------------------------
    # Entry interface
    # ------------------------------------------------------------------

    def is_dictionary(self) -> bool:
        return True

    def as_dictionary(self) -> Dictionary:
        return self

    def clone(self, keyword: Optional[str] = None) -> Dictionary:
        """Deep copy; only the copy's own keyword is changed."""
        copy = Dictionary(
            self.keyword if keyword is None else keyword,
            parent=None,
            start_line=self.start_line,
            end_line=self.end_line,
            is_pattern=self.is_pattern,
        )
        copy._parent = self._parent
        for child in self._entries:
            copy.insert(child.clone())
        return copy

    def merge(self, other: Dictionary) -> None:
        """
        Merge *other* into this dictionary.

        Sub-dictionaries present in both are merged recursively; any other
        entry from *other* replaces the local entries of the same keyword.
        """
        for incoming in other:
            existing = self.lookup(incoming.keyword, recursive=False, patterns=False)
            if existing is not None and existing.is_dictionary() and incoming.is_dictionary():
                existing.as_dictionary().merge(incoming.as_dictionary())
                continue
            self.remove(incoming.keyword)
            self.insert(incoming.clone())
        if other.end_line >= 0:
            self.end_line = max(self.end_line, other.end_line)

    def to_dict(self) -> Dict[str, Any]:
        """Plain Python rendering; for duplicate keywords the newest wins."""
        result: Dict[str, Any] = {}
        for entry in self._entries:
            if entry.is_dictionary():
                result[entry.keyword] = entry.as_dictionary().to_dict()
            else:
                result[entry.keyword] = entry.as_primitive().value
        return result

    def __repr__(self) -> str:
        return f"Dictionary(keyword={self.keyword!r}, entries={len(self._entries)})"
