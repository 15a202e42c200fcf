"""Formatters that turn a word list into punctuated practice prose."""

import abc
import enum
import random
from typing import List, Optional, Sequence, Tuple

CAPITALIZE_PROBABILITY = 0.2
COMMA_PROBABILITY = 0.15
SYMBOL_PROBABILITY = 0.25

BRACKETS: Tuple[Tuple[str, str], ...] = (("(", ")"), ("[", "]"), ("{", "}"))
MATH_SYMBOLS = ("+", "-", "*", "/", "=", "<", ">")
PROGRAMMING_SYMBOLS = ("@", "#", "$", "%", "^", "&", "|", "\\", "~", "`")
PUNCTUATION_SYMBOLS = (":", ";", '"', "'")

# (threshold out of 100, punctuation); the first threshold above the roll wins.
CAPITALIZE_FINAL_PUNCTUATION = ((80, "."), (95, "!"), (100, "?"))
SYMBOL_FINAL_PUNCTUATION = ((51, "."), (66, "!"), (76, "?"), (86, ";"), (93, ":"), (100, "..."))

NO_SPACE_BEFORE = (",", ".", "!", "?", ";", ":")


class FormatterKind(str, enum.Enum):
    BASIC = "basic"
    CAPITALIZE = "capitalize"
    SYMBOLS = "symbols"
    COMBINED = "combined"


def capitalize_first_letter(word: str) -> str:
    """Uppercase the first character when it is a letter."""
    if word and word[0].isalpha():
        return word[0].upper() + word[1:]
    return word


def tidy_punctuation(text: str) -> str:
    """Remove the space the joiner leaves before separators and terminators."""
    for mark in NO_SPACE_BEFORE:
        text = text.replace(" " + mark, mark)
    return text


class TextFormatter(abc.ABC):
    kind: FormatterKind

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()

    @abc.abstractmethod
    def format(self, words: Sequence[str]) -> str:
        """Render ``words`` as a single prompt string."""

    def _final_punctuation(self, table: Sequence[Tuple[int, str]]) -> str:
        roll = self.rng.randrange(100)
        for threshold, mark in table:
            if roll < threshold:
                return mark
        return table[-1][1]

    def _decorate(self, word: str) -> str:
        kind = self.rng.randrange(4)
        if kind == 0:
            opening, closing = self.rng.choice(BRACKETS)
            return f"{opening}{word}{closing}"
        if kind == 1:
            symbol = self.rng.choice(MATH_SYMBOLS)
            return f"{symbol}{word}" if self.rng.random() < 0.5 else f"{word}{symbol}"
        if kind == 2:
            return f"{self.rng.choice(PROGRAMMING_SYMBOLS)}{word}"
        return f"{word}{self.rng.choice(PUNCTUATION_SYMBOLS)}"

    def _symbol_separator(self) -> Optional[str]:
        choice = self.rng.randrange(10)
        if choice == 0:
            return ","
        if choice == 1:
            return ";"
        return None


class BasicFormatter(TextFormatter):
    kind = FormatterKind.BASIC

    def format(self, words: Sequence[str]) -> str:
        return " ".join(words)


class CapitalizationFormatter(TextFormatter):
    kind = FormatterKind.CAPITALIZE

    def format(self, words: Sequence[str]) -> str:
        if not words:
            return ""
        parts: List[str] = []
        last = len(words) - 1
        for i, word in enumerate(words):
            if i == 0 or self.rng.random() < CAPITALIZE_PROBABILITY:
                word = capitalize_first_letter(word)
            parts.append(word)
            if i < last and self.rng.random() < COMMA_PROBABILITY:
                parts.append(",")
        parts.append(self._final_punctuation(CAPITALIZE_FINAL_PUNCTUATION))
        return tidy_punctuation(" ".join(parts))


class SymbolFormatter(TextFormatter):
    kind = FormatterKind.SYMBOLS

    def format(self, words: Sequence[str]) -> str:
        if not words:
            return ""
        parts: List[str] = []
        last = len(words) - 1
        for i, word in enumerate(words):
            if self.rng.random() < SYMBOL_PROBABILITY:
                word = self._decorate(word)
            parts.append(word)
            if i < last:
                separator = self._symbol_separator()
                if separator:
                    parts.append(separator)
        parts.append(self._final_punctuation(SYMBOL_FINAL_PUNCTUATION))
        return tidy_punctuation(" ".join(parts))


class CombinedFormatter(TextFormatter):
    """Capitalization and symbols applied together, word by word.

    Decorating a word can push its letter behind a symbol, so the first
    alphabetic character of the result is uppercased afterwards.
    """

    kind = FormatterKind.COMBINED

    def format(self, words: Sequence[str]) -> str:
        if not words:
            return ""
        parts: List[str] = []
        last = len(words) - 1
        for i, word in enumerate(words):
            if i == 0 or self.rng.random() < CAPITALIZE_PROBABILITY:
                word = capitalize_first_letter(word)
            if self.rng.random() < SYMBOL_PROBABILITY:
                word = self._decorate(word)
            parts.append(word)
            if i < last:
                separator = self._symbol_separator()
                if separator:
                    parts.append(separator)
        parts.append(self._final_punctuation(SYMBOL_FINAL_PUNCTUATION))
        return uppercase_first_alpha(tidy_punctuation(" ".join(parts)))


def uppercase_first_alpha(text: str) -> str:
    for i, ch in enumerate(text):
        if ch.isalpha():
            return text[:i] + ch.upper() + text[i + 1 :]
    return text


_FORMATTERS = {
    FormatterKind.BASIC: BasicFormatter,
    FormatterKind.CAPITALIZE: CapitalizationFormatter,
    FormatterKind.SYMBOLS: SymbolFormatter,
    FormatterKind.COMBINED: CombinedFormatter,
}


def formatter_kind(capitalize: bool, symbols: bool) -> FormatterKind:
    if capitalize and symbols:
        return FormatterKind.COMBINED
    if capitalize:
        return FormatterKind.CAPITALIZE
    if symbols:
        return FormatterKind.SYMBOLS
    return FormatterKind.BASIC


def build_formatter(
    capitalize: bool, symbols: bool, rng: Optional[random.Random] = None
) -> TextFormatter:
    return _FORMATTERS[formatter_kind(capitalize, symbols)](rng)


def format_words(
    words: Sequence[str],
    capitalize: bool = False,
    symbols: bool = False,
    rng: Optional[random.Random] = None,
) -> str:
    """Format ``words`` with the formatter the two flags select."""
    return build_formatter(capitalize, symbols, rng).format(words)
