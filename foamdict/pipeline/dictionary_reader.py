"""
DictionaryReader
================

High-level entry point: reads a whole dictionary file or string into a root
:class:`~foamdict.dictionary.dictionary.Dictionary`.

Each call builds a fresh :class:`~foamdict.expansion.entry_builder.EntryBuilder`
(so ``#inputMode`` changes never leak between reads) and a fresh root.  The
root is only returned after the whole input has been read; on any
:class:`~foamdict.errors.DictionaryError` the partially built tree is
discarded and the error propagates.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from ..dictionary.dictionary import Dictionary
from ..directives.registry import DirectiveRegistry, standard_directives
from ..expansion.entry_builder import EntryBuilder
from ..lexer.tokenizer import Tokenizer, TokenStream
from ..settings import ReaderSettings

logger = logging.getLogger(__name__)


class DictionaryReader:
    """
    Facade over tokenizer, builder and directive registry.

    Parameters
    ----------
    settings:
        Reader options shared by every read.
    registry:
        Directive table; defaults to the built-in directives.
    """

    def __init__(
        self,
        settings: Optional[ReaderSettings] = None,
        registry: Optional[DirectiveRegistry] = None,
    ) -> None:
        self.settings = settings or ReaderSettings()
        self.registry = registry or standard_directives()

    # ------------------------------------------------------------------
    # Primary API
    # ------------------------------------------------------------------

    def read_file(self, file_path: Union[str, Path]) -> Dictionary:
        """
        Read a dictionary file.

        Parameters
        ----------
        file_path:
            Path to the dictionary file.  Relative ``#include`` names inside
            it resolve against the file's directory.

        Returns
        -------
        Dictionary
            Root dictionary named after the file.
        """
        logger.info("Reading dictionary file: %s", file_path)
        return self.read_stream(Tokenizer.from_file(file_path))

    def read_text(self, source: str, source_name: str = "<inline>") -> Dictionary:
        """
        Read dictionary source supplied as a **string**.

        Parameters
        ----------
        source:
            Dictionary text.
        source_name:
            Name used for the root dictionary and in error messages.
        """
        return self.read_stream(Tokenizer(source, name=source_name))

    def read_stream(self, stream: TokenStream) -> Dictionary:
        """Read every statement of *stream* into a new root dictionary."""
        builder = self.new_builder()
        root = Dictionary(stream.name, start_line=1)
        builder.read_entries(stream, root)
        root.end_line = stream.line
        logger.info("Read %d top-level entr%s from %s",
                    len(root), "y" if len(root) == 1 else "ies", stream.name)
        return root

    def new_builder(self) -> EntryBuilder:
        return EntryBuilder(registry=self.registry, settings=self.settings)
