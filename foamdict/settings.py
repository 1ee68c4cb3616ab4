"""
Reader configuration.

:class:`ReaderSettings` collects the knobs shared by the builder, the
variable resolver and the directive handlers.  The command line maps its
options onto an instance; library callers construct one directly.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Mapping, Optional


class InputMode(Enum):
    """How a keyword redefined within one dictionary is stored."""

    RETAIN = "retain"        # Keep both; the newest shadows the older
    MERGE = "merge"          # Merge dictionaries, replace primitives
    OVERWRITE = "overwrite"  # Remove the older entry
    PROTECT = "protect"      # Keep the older entry, ignore the new one
    WARN = "warn"            # As PROTECT, with a logged warning
    ERROR = "error"          # Raise DuplicateEntry

    @classmethod
    def from_name(cls, name: str) -> InputMode:
        try:
            return cls(name.lower())
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ValueError(f"unknown input mode {name!r} (expected one of: {valid})") from None


@dataclass
class ReaderSettings:
    """
    Options controlling a dictionary read.

    Parameters
    ----------
    input_mode:
        Initial duplicate-keyword policy; ``#inputMode`` may change it and
        ``#inputMode default`` restores it.
    max_expansion_depth:
        Limit for nested variable, directive and include expansion.
    max_nesting_depth:
        Limit for nested sub-dictionaries.
    include_paths:
        Extra directories searched by ``#include`` after the including
        file's own directory.
    environment:
        Environment table consulted after the scope chain.  ``None`` means
        the process environment.
    use_environment:
        Set to ``False`` to disable the environment fallback entirely.
    """

    input_mode: InputMode = InputMode.RETAIN
    max_expansion_depth: int = 64
    max_nesting_depth: int = 64
    include_paths: List[Path] = field(default_factory=list)
    environment: Optional[Mapping[str, str]] = None
    use_environment: bool = True

    def environment_table(self) -> Mapping[str, str]:
        if not self.use_environment:
            return {}
        if self.environment is None:
            return os.environ
        return self.environment
