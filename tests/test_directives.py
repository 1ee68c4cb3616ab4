"""
Tests for the built-in directives and the directive registry.
"""
from __future__ import annotations

import pytest

from foamdict.dictionary.dictionary import Dictionary
from foamdict.directives.calc import CalcError, evaluate_expression
from foamdict.directives.conditional import switch_value
from foamdict.directives.registry import Directive, DirectiveRegistry, standard_directives
from foamdict.errors import (
    DirectiveError,
    IncludeError,
    MacroExpansionOverflow,
    UndefinedVariable,
    UnexpectedEndOfStream,
    UnknownDirective,
)
from foamdict.expansion.entry_builder import EntryBuilder
from foamdict.lexer.tokenizer import Tokenizer, tokenize
from foamdict.models import Token
from foamdict.pipeline.dictionary_reader import DictionaryReader
from foamdict.settings import ReaderSettings


def read(text, **settings):
    settings.setdefault("use_environment", False)
    return DictionaryReader(ReaderSettings(**settings)).read_text(text)


def value(root, name):
    return root.lookup_scoped(name).as_primitive().value


# ─────────────────────────────────────────────────────────────────────────────
# #calc / #neg
# ─────────────────────────────────────────────────────────────────────────────


class TestCalc:
    def test_inline_calc(self):
        root = read('x #calc "1+2";')
        assert root.entry("x").as_primitive().tokens == [Token.number(3)]

    def test_calc_substitutes_variables(self):
        root = read('a 3; b #calc "$a * 2";')
        assert value(root, "b") == 6

    def test_calc_braced_scoped_variable(self):
        root = read('geo { len 2.5; } area #calc "${geo/len} * 4";')
        assert value(root, "area") == 10.0

    def test_calc_float_division(self):
        assert value(read('x #calc "1/4";'), "x") == 0.25

    def test_calc_functions_and_constants(self):
        assert value(read('x #calc "sqrt(16) + max(1, 2)";'), "x") == 6.0
        assert value(read('x #calc "round(pi, 2)";'), "x") == 3.14

    def test_calc_comparison_gives_switch_word(self):
        assert value(read('x #calc "2 > 1";'), "x") == "true"

    def test_calc_inside_list(self):
        root = read('n 4; v (0 #calc "$n / 2" $n);')
        assert value(root, "v") == [0, 2.0, 4]

    def test_calc_rejects_arbitrary_code(self):
        with pytest.raises(DirectiveError) as info:
            read("x #calc \"__import__('os')\";")
        assert "#calc" in str(info.value)

    def test_calc_division_by_zero(self):
        with pytest.raises(DirectiveError):
            read('x #calc "1/0";')

    def test_calc_syntax_error(self):
        with pytest.raises(DirectiveError):
            read('x #calc "1 +";')

    def test_calc_undefined_variable(self):
        with pytest.raises(UndefinedVariable):
            read('x #calc "$nope + 1";')

    def test_calc_in_keyword_position(self):
        with pytest.raises(DirectiveError) as info:
            read('#calc "1+2";')
        assert "in place of a keyword" in str(info.value)

    def test_evaluate_expression_directly(self):
        assert evaluate_expression("2 ** 3 % 5") == 3
        assert evaluate_expression("1 if 0 else 2") == 2
        with pytest.raises(CalcError):
            evaluate_expression("x.y")


class TestNeg:
    def test_neg_variable(self):
        root = read("a 2; b #neg $a;")
        assert value(root, "b") == -2

    def test_neg_literal(self):
        assert value(read("b #neg 1.5;"), "b") == -1.5

    def test_neg_word_rejected(self):
        with pytest.raises(DirectiveError):
            read("b #neg x;")


# ─────────────────────────────────────────────────────────────────────────────
# #include / #includeIfPresent
# ─────────────────────────────────────────────────────────────────────────────


class TestInclude:
    def _case(self, tmp_path, main, **files):
        for name, text in files.items():
            path = tmp_path / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        main_path = tmp_path / "main"
        main_path.write_text(main, encoding="utf-8")
        return main_path

    def test_include_entries(self, tmp_path):
        main = self._case(tmp_path, '#include "common"\nb $a;\n', common="a 1;\n")
        root = DictionaryReader(ReaderSettings(use_environment=False)).read_file(main)
        assert value(root, "a") == 1
        assert value(root, "b") == 1

    def test_included_file_sees_including_scope(self, tmp_path):
        main = self._case(tmp_path, 'n 4;\nsub { #include "use" }\n', use="m $n;\n")
        root = DictionaryReader().read_file(main)
        assert value(root, "sub/m") == 4

    def test_include_relative_to_including_file(self, tmp_path):
        main = self._case(
            tmp_path,
            '#include "parts/first"\n',
            **{"parts/first": '#include "second"\n', "parts/second": "deep yes;\n"},
        )
        root = DictionaryReader().read_file(main)
        assert value(root, "deep") == "yes"

    def test_include_inline(self, tmp_path):
        main = self._case(tmp_path, 'v (#include "vals");\n', vals="1 2 3\n")
        root = DictionaryReader().read_file(main)
        assert value(root, "v") == [1, 2, 3]

    def test_include_name_with_variable(self, tmp_path):
        main = self._case(
            tmp_path, 'dir sub;\n#include "$dir/common"\n', **{"sub/common": "z 9;\n"}
        )
        root = DictionaryReader().read_file(main)
        assert value(root, "z") == 9

    def test_include_paths(self, tmp_path):
        shared = tmp_path / "shared"
        shared.mkdir()
        (shared / "defaults").write_text("k 7;\n", encoding="utf-8")
        reader = DictionaryReader(ReaderSettings(include_paths=[shared]))
        root = reader.read_text('#include "defaults"\n')
        assert value(root, "k") == 7

    def test_missing_include(self, tmp_path):
        main = self._case(tmp_path, '#include "absent"\n')
        with pytest.raises(IncludeError) as info:
            DictionaryReader().read_file(main)
        assert "absent" in str(info.value)
        assert info.value.line == 1

    def test_include_if_present_missing(self, tmp_path):
        main = self._case(tmp_path, '#includeIfPresent "absent"\na 1;\n')
        root = DictionaryReader().read_file(main)
        assert root.keys() == ["a"]

    def test_include_if_present_found(self, tmp_path):
        main = self._case(tmp_path, '#includeIfPresent "extra"\n', extra="x 1;\n")
        assert value(DictionaryReader().read_file(main), "x") == 1

    def test_self_include_overflows(self, tmp_path):
        main = self._case(tmp_path, '#include "main"\n')
        with pytest.raises(MacroExpansionOverflow):
            DictionaryReader(ReaderSettings(max_expansion_depth=8)).read_file(main)

    def test_failed_include_inserts_nothing(self, tmp_path):
        (tmp_path / "bad").write_text("a 1;\nb $missing;\n", encoding="utf-8")
        builder = EntryBuilder(
            settings=ReaderSettings(include_paths=[tmp_path], use_environment=False)
        )
        scope = Dictionary("root")
        with pytest.raises(UndefinedVariable) as info:
            builder.build_entry(Tokenizer('#include "bad"'), scope)
        assert len(scope) == 0
        assert info.value.source == str(tmp_path / "bad")


# ─────────────────────────────────────────────────────────────────────────────
# Conditionals
# ─────────────────────────────────────────────────────────────────────────────


class TestConditionals:
    def test_ifeq_taken(self):
        root = read("#ifeq a a\n x 1;\n#else\n x 2;\n#endif\n")
        assert value(root, "x") == 1
        assert len(root) == 1

    def test_ifeq_with_variable(self):
        root = read("solver PISO;\n#ifeq $solver PIMPLE\n n 1;\n#else\n n 2;\n#endif\n")
        assert value(root, "n") == 2

    def test_if_switch_words(self):
        assert value(read("#if on a 1; #else a 2; #endif"), "a") == 1
        assert value(read("#if no a 1; #else a 2; #endif"), "a") == 2
        assert value(read("#if 0 a 1; #else a 2; #endif"), "a") == 2

    def test_skipped_branch_is_not_expanded(self):
        root = read("#if false y $missing; #calc; #endif z 1;")
        assert root.keys() == ["z"]

    def test_nested_in_taken_branch(self):
        root = read("#if true #if false a 1; #else a 2; #endif #endif")
        assert value(root, "a") == 2

    def test_nested_in_skipped_branch(self):
        root = read("#if false #if true a 1; #endif b 2; #else c 3; #endif")
        assert root.keys() == ["c"]

    def test_conditional_inside_dictionary(self):
        root = read("d { #if on a 1; #endif b 2; }")
        assert root.subdict("d").keys() == ["a", "b"]

    def test_taken_branch_sees_scope(self):
        root = read("n 1; d { #if yes m $n; #endif }")
        assert value(root, "d/m") == 1

    def test_not_a_switch(self):
        with pytest.raises(DirectiveError):
            read("#if maybe a 1; #endif")

    def test_missing_endif(self):
        with pytest.raises(UnexpectedEndOfStream):
            read("#if true a 1;")
        with pytest.raises(UnexpectedEndOfStream):
            read("#if false a 1;")

    def test_second_else(self):
        with pytest.raises(DirectiveError):
            read("#if false a 1; #else a 2; #else a 3; #endif")
        with pytest.raises(DirectiveError):
            read("#if true a 1; #else a 2; #else a 3; #endif")

    def test_stray_else_and_endif(self):
        with pytest.raises(DirectiveError):
            read("#else")
        with pytest.raises(DirectiveError):
            read("#endif")

    def test_failed_branch_inserts_nothing(self):
        builder = EntryBuilder(settings=ReaderSettings(use_environment=False))
        scope = Dictionary("root")
        with pytest.raises(UndefinedVariable):
            builder.build_entry(Tokenizer("#if true a 1; b $missing; #endif"), scope)
        assert len(scope) == 0

    def test_switch_value(self):
        assert switch_value(tokenize("TRUE")) is True
        assert switch_value(tokenize('"off"')) is False
        assert switch_value(tokenize("2.5")) is True
        assert switch_value(tokenize("maybe")) is None
        assert switch_value(tokenize("(1)")) is None


# ─────────────────────────────────────────────────────────────────────────────
# #remove / #inputMode
# ─────────────────────────────────────────────────────────────────────────────


class TestRemove:
    def test_remove_keyword(self):
        assert read("a 1; b 2; #remove a").keys() == ["b"]

    def test_remove_list(self):
        assert read("a 1; b 2; c 3; #remove (a c)").keys() == ["b"]

    def test_remove_pattern(self):
        assert read('p 1; pFinal 2; U 3; #remove "p.*"').keys() == ["U"]

    def test_remove_all_duplicates(self):
        assert len(read("a 1; a 2; #remove a")) == 0

    def test_remove_reaches_through_conditional(self):
        root = read("a 1; b 2; #if true #remove a #endif")
        assert root.keys() == ["b"]

    def test_remove_inside_dictionary_is_local(self):
        root = read("a 1; d { a 2; #remove a }")
        assert root.keys() == ["a", "d"]
        assert len(root.subdict("d")) == 0

    def test_remove_without_argument(self):
        with pytest.raises(DirectiveError):
            read("a 1; #remove ;")


class TestInputMode:
    def test_switch_to_overwrite(self):
        root = read("#inputMode overwrite a 1; a 2;")
        assert [e.as_primitive().value for e in root] == [2]

    def test_default_restores_configured_mode(self):
        root = read("#inputMode protect a 1; a 2; #inputMode default a 3;")
        assert [e.as_primitive().value for e in root] == [1, 3]

    def test_unknown_mode(self):
        with pytest.raises(DirectiveError) as info:
            read("#inputMode bogus")
        assert "bogus" in str(info.value)

    def test_mode_does_not_leak_between_reads(self):
        reader = DictionaryReader(ReaderSettings(use_environment=False))
        reader.read_text("#inputMode error a 1;")
        root = reader.read_text("a 1; a 2;")
        assert len(root) == 2


# ─────────────────────────────────────────────────────────────────────────────
# Registry
# ─────────────────────────────────────────────────────────────────────────────


class _Upper(Directive):
    name = "upper"

    def expand(self, context):
        return [Token.word(str(t.value).upper(), context.line) for t in context.read_argument()]


class TestRegistry:
    def test_unknown_directive_in_keyword_position(self):
        with pytest.raises(UnknownDirective) as info:
            read("#nope x;")
        assert info.value.name == "nope"

    def test_unknown_directive_inline(self):
        with pytest.raises(UnknownDirective):
            read("a #nope;")

    def test_standard_registry_is_frozen(self):
        registry = standard_directives()
        assert registry.frozen
        assert registry is standard_directives()
        with pytest.raises(RuntimeError):
            registry.register(_Upper())

    def test_standard_names(self):
        assert standard_directives().names() == sorted([
            "calc", "neg", "include", "includeIfPresent", "ifeq", "if",
            "else", "endif", "remove", "inputMode",
        ])

    def test_custom_directive_on_copy(self):
        registry = standard_directives().copy()
        registry.register(_Upper())
        registry.freeze()
        root = DictionaryReader(registry=registry).read_text("a #upper word;")
        assert value(root, "a") == "WORD"
        assert "upper" not in standard_directives()

    def test_nameless_directive_rejected(self):
        with pytest.raises(ValueError):
            DirectiveRegistry().register(Directive())

    def test_inline_only_directive_in_keyword_position(self):
        registry = DirectiveRegistry()
        registry.register(_Upper())
        with pytest.raises(DirectiveError):
            DictionaryReader(registry=registry).read_text("#upper x")
