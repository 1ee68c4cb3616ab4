"""
foamdict – command-line interface
=================================

Usage
-----
::

    python -m foamdict.cli SOURCE [OPTIONS]

Options
-------
--format, -f            Output format: ``foam`` (default), ``json`` or ``info``.
--lookup, -l NAME       Print only the entry at scoped NAME (e.g. ``solvers/p``).
--include-path, -I DIR  Extra directory searched by ``#include`` (repeatable).
--input-mode MODE       Initial duplicate-keyword policy (default: retain).
--no-env                Do not fall back to environment variables.
--max-expansion-depth N Limit for nested variable / directive expansion.
--output, -o            Output file path (default: stdout).
--verbose, -v           Enable DEBUG logging.

Examples
--------
::

    python -m foamdict.cli system/controlDict
    python -m foamdict.cli system/fvSolution -l solvers/p -f json
    python -m foamdict.cli case.dict -I ./common --input-mode merge
    python -m foamdict.cli case.dict -l endTime -f info
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .dictionary.entry import Entry
from .errors import DictionaryError
from .output.writer import entry_to_string, format_info
from .pipeline.dictionary_reader import DictionaryReader
from .settings import InputMode, ReaderSettings


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="foamdict",
        description="foamdict – read a dictionary file and print it fully expanded",
    )
    p.add_argument("source", help="Dictionary file to read")
    p.add_argument(
        "--format", "-f",
        choices=["foam", "json", "info"],
        default="foam",
        help="Output format (default: foam)",
    )
    p.add_argument(
        "--lookup", "-l",
        default="",
        metavar="NAME",
        help="Only output the entry at scoped NAME, e.g. 'solvers/p'",
    )
    p.add_argument(
        "--include-path", "-I",
        action="append",
        default=[],
        metavar="DIR",
        help="Directory searched by #include after the including file's own directory",
    )
    p.add_argument(
        "--input-mode",
        choices=[m.value for m in InputMode],
        default=InputMode.RETAIN.value,
        help="How redefined keywords are stored (default: retain)",
    )
    p.add_argument(
        "--no-env",
        action="store_true",
        help="Do not resolve $variables from the process environment",
    )
    p.add_argument(
        "--max-expansion-depth",
        type=int,
        default=ReaderSettings.max_expansion_depth,
        metavar="N",
        help="Maximum nesting of variable, directive and include expansion",
    )
    p.add_argument(
        "--output", "-o",
        default="-",
        metavar="FILE",
        help="Output file (default: stdout)",
    )
    p.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    return p


def _render(entry: Entry, fmt: str, contents_only: bool) -> str:
    if fmt == "json":
        if entry.is_dictionary():
            payload = entry.as_dictionary().to_dict()
        else:
            payload = entry.as_primitive().value
        return json.dumps(payload, indent=2) + "\n"
    if fmt == "info":
        if entry.is_dictionary():
            parts = [_render(child, fmt, False) for child in entry.as_dictionary()
                     if child.is_primitive()]
            return "".join(parts)
        return format_info(entry) + "\n"
    return entry_to_string(entry, full_form=not contents_only)


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    settings = ReaderSettings(
        input_mode=InputMode.from_name(args.input_mode),
        max_expansion_depth=args.max_expansion_depth,
        include_paths=[Path(d) for d in args.include_path],
        use_environment=not args.no_env,
    )
    reader = DictionaryReader(settings=settings)

    try:
        root = reader.read_file(args.source)
    except DictionaryError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"error: cannot read {args.source}: {exc}", file=sys.stderr)
        return 1

    if args.lookup:
        entry = root.lookup_scoped(args.lookup)
        if entry is None:
            print(f"error: {args.lookup!r} not found in {args.source}", file=sys.stderr)
            return 2
        text = _render(entry, args.format, contents_only=False)
    else:
        text = _render(root, args.format, contents_only=True)

    if args.output == "-":
        sys.stdout.write(text)
    else:
        Path(args.output).write_text(text, encoding="utf-8")
        print(f"  wrote {args.output}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
