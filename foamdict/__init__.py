"""
foamdict
========

A reader for OpenFOAM-style hierarchical dictionaries with parse-time
macro expansion: ``$variable`` references resolved through the enclosing
scopes, and ``#directives`` (``#calc``, ``#include``, ``#ifeq`` …) that
compute, include or conditionally alter entries while the file is read.

Quick start
-----------
>>> from foamdict import DictionaryReader
>>> root = DictionaryReader().read_text("a 1; b { c $a; }")
>>> root.subdict("b").entry("c").as_primitive().value
1
"""

from .dictionary.dictionary import Dictionary
from .dictionary.entry import Entry, PrimitiveEntry
from .directives.registry import Directive, DirectiveRegistry, standard_directives
from .expansion.entry_builder import EntryBuilder
from .expansion.variables import VariableResolver
from .lexer.tokenizer import ListTokenStream, Tokenizer, TokenStream
from .models import Token, TokenKind
from .pipeline.dictionary_reader import DictionaryReader
from .settings import InputMode, ReaderSettings

__version__ = "0.1.0"
__all__ = [
    "Dictionary",
    "Directive",
    "DirectiveRegistry",
    "DictionaryReader",
    "Entry",
    "EntryBuilder",
    "InputMode",
    "ListTokenStream",
    "PrimitiveEntry",
    "ReaderSettings",
    "Token",
    "TokenKind",
    "TokenStream",
    "Tokenizer",
    "VariableResolver",
    "standard_directives",
]
