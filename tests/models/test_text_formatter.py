"""Tests for the prompt formatters."""

import random

import pytest

from models.text_formatter import (
    BRACKETS,
    MATH_SYMBOLS,
    PROGRAMMING_SYMBOLS,
    PUNCTUATION_SYMBOLS,
    BasicFormatter,
    CapitalizationFormatter,
    CombinedFormatter,
    FormatterKind,
    SymbolFormatter,
    build_formatter,
    capitalize_first_letter,
    format_words,
    tidy_punctuation,
    uppercase_first_alpha,
)

WORDS = ["hello", "world", "quick", "brown", "fox", "jumps"]
SYMBOL_CHARS = set("".join(MATH_SYMBOLS + PROGRAMMING_SYMBOLS)) | {b for pair in BRACKETS for b in pair}


class TestHelpers:
    def test_capitalize_first_letter(self) -> None:
        assert capitalize_first_letter("hello") == "Hello"
        assert capitalize_first_letter("WORLD") == "WORLD"
        assert capitalize_first_letter("123abc") == "123abc"
        assert capitalize_first_letter("") == ""

    def test_tidy_punctuation(self) -> None:
        assert tidy_punctuation("a , b ; c : d .") == "a, b; c: d."
        assert tidy_punctuation("wow ! really ?") == "wow! really?"

    def test_uppercase_first_alpha(self) -> None:
        assert uppercase_first_alpha("(#hello) world") == "(#Hello) world"
        assert uppercase_first_alpha("123") == "123"


class TestBuildFormatter:
    @pytest.mark.parametrize(
        "capitalize,symbols,expected",
        [
            (False, False, BasicFormatter),
            (True, False, CapitalizationFormatter),
            (False, True, SymbolFormatter),
            (True, True, CombinedFormatter),
        ],
    )
    def test_flags_select_formatter(self, capitalize: bool, symbols: bool, expected: type) -> None:
        assert isinstance(build_formatter(capitalize, symbols), expected)

    def test_kinds(self) -> None:
        assert build_formatter(True, True).kind is FormatterKind.COMBINED

    @pytest.mark.parametrize("capitalize", [False, True])
    @pytest.mark.parametrize("symbols", [False, True])
    def test_empty_input(self, capitalize: bool, symbols: bool) -> None:
        assert format_words([], capitalize, symbols) == ""


class TestBasicFormatter:
    def test_joins_with_spaces(self) -> None:
        assert format_words(["a", "b", "c"]) == "a b c"


class TestCapitalizationFormatter:
    @pytest.mark.parametrize("seed", range(20))
    def test_shape(self, seed: int) -> None:
        text = format_words(WORDS, capitalize=True, rng=random.Random(seed))
        assert text.startswith("Hello")
        assert text[-1] in ".!?"
        assert not SYMBOL_CHARS & set(text)
        assert " ," not in text and " ." not in text
        assert text.lower().replace(",", "")[:-1].split() == WORDS

    def test_final_punctuation_distribution(self) -> None:
        formatter = CapitalizationFormatter(random.Random(42))
        endings = [formatter.format(["x"])[-1] for _ in range(2000)]
        assert 0.75 < endings.count(".") / 2000 < 0.85
        assert endings.count("?") > 0


class TestSymbolFormatter:
    @pytest.mark.parametrize("seed", range(20))
    def test_words_survive_and_no_space_before_punctuation(self, seed: int) -> None:
        text = format_words(WORDS, symbols=True, rng=random.Random(seed))
        for word in WORDS:
            assert word in text
        for mark in (",", ".", "!", "?", ";", ":"):
            assert " " + mark not in text

    def test_symbols_appear(self) -> None:
        formatter = SymbolFormatter(random.Random(0))
        text = " ".join(formatter.format(WORDS) for _ in range(20))
        assert SYMBOL_CHARS & set(text)

    def test_decoration_kinds(self) -> None:
        formatter = SymbolFormatter(random.Random(8))
        allowed_suffix = set(MATH_SYMBOLS + PUNCTUATION_SYMBOLS)
        allowed_prefix = set(MATH_SYMBOLS + PROGRAMMING_SYMBOLS)
        for _ in range(200):
            out = formatter._decorate("word")
            if (out[0], out[-1]) in BRACKETS:
                assert out[1:-1] == "word"
            elif out.startswith("word"):
                assert out[4:] in allowed_suffix
            else:
                assert out.endswith("word") and out[:-4] in allowed_prefix


class TestCombinedFormatter:
    @pytest.mark.parametrize("seed", range(50))
    def test_first_letter_always_uppercase(self, seed: int) -> None:
        text = format_words(WORDS, capitalize=True, symbols=True, rng=random.Random(seed))
        first_alpha = next(ch for ch in text if ch.isalpha())
        assert first_alpha.isupper()

    def test_deterministic_with_seed(self) -> None:
        first = format_words(WORDS, True, True, random.Random(99))
        second = format_words(WORDS, True, True, random.Random(99))
        assert first == second
