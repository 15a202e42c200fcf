"""Tests for the word selection strategies."""

import random
from collections import Counter

import pytest

from models.character_difficulty import CharacterDifficulty
from models.corpus import Corpus
from models.word_selector import (
    IntelligentSelector,
    RandomSelector,
    SelectionStrategy,
    SubstitutionSelector,
    build_selector,
    strategy_from_flags,
)

WORDS = ["cat", "dog", "zip", "sun", "fog", "hat", "jazz", "ice", "map", "pen"]


@pytest.fixture
def corpus() -> Corpus:
    return Corpus(name="test", words=WORDS)


@pytest.fixture
def difficulty_map() -> dict:
    easy = CharacterDifficulty(miss_rate=1.0, avg_time_ms=100.0, total_attempts=40)
    mapping = {ch: easy for ch in "abcdefghijklmnopqrstuvwxyz"}
    mapping["z"] = CharacterDifficulty(miss_rate=40.0, avg_time_ms=600.0, total_attempts=40)
    return mapping


class TestStrategyFlags:
    def test_precedence(self) -> None:
        assert strategy_from_flags() is SelectionStrategy.INTELLIGENT
        assert strategy_from_flags(substitute=True) is SelectionStrategy.SUBSTITUTION
        assert strategy_from_flags(random_words=True, substitute=True) is SelectionStrategy.RANDOM

    def test_build_selector(self, rng: random.Random) -> None:
        assert isinstance(build_selector(SelectionStrategy.RANDOM, rng), RandomSelector)
        assert isinstance(build_selector(SelectionStrategy.INTELLIGENT), IntelligentSelector)
        assert isinstance(build_selector("substitution"), SubstitutionSelector)


class TestColdStart:
    """An empty difficulty map always means a plain random sample."""

    @pytest.mark.parametrize("strategy", list(SelectionStrategy))
    def test_empty_map_returns_random_sample(
        self, strategy: SelectionStrategy, corpus: Corpus
    ) -> None:
        words = build_selector(strategy, random.Random(7)).select(corpus, 5, {})
        assert len(words) == 5
        assert len(set(words)) == 5
        assert set(words) <= set(WORDS)

    @pytest.mark.parametrize("strategy", list(SelectionStrategy))
    def test_same_seed_same_sample(self, strategy: SelectionStrategy, corpus: Corpus) -> None:
        first = build_selector(strategy, random.Random(3)).select(corpus, 4, {})
        second = build_selector(SelectionStrategy.RANDOM, random.Random(3)).select(corpus, 4, {})
        assert first == second


class TestBounds:
    @pytest.mark.parametrize("strategy", list(SelectionStrategy))
    def test_more_words_than_corpus(
        self, strategy: SelectionStrategy, corpus: Corpus, difficulty_map: dict
    ) -> None:
        for mapping in ({}, difficulty_map):
            words = build_selector(strategy, random.Random(1)).select(corpus, 500, mapping)
            assert len(words) <= corpus.size
            assert len(words) == corpus.size

    @pytest.mark.parametrize("strategy", list(SelectionStrategy))
    def test_zero_words(self, strategy: SelectionStrategy, corpus: Corpus, difficulty_map: dict) -> None:
        assert build_selector(strategy).select(corpus, 0, difficulty_map) == []

    def test_accepts_plain_word_list(self, rng: random.Random) -> None:
        assert sorted(RandomSelector(rng).select(WORDS, 10, {})) == sorted(WORDS)


class TestIntelligentSelector:
    def test_prefers_words_with_weak_characters(
        self, corpus: Corpus, difficulty_map: dict
    ) -> None:
        """With a pool of 3 from 10 words, the two z-words are always in the pool."""
        selector = IntelligentSelector(random.Random(11))
        counts: Counter = Counter()
        for _ in range(200):
            counts.update(selector.select(corpus, 3, difficulty_map))
        assert counts["jazz"] == 200
        assert counts["zip"] == 200

    def test_pool_is_at_least_thirty_percent(self, difficulty_map: dict) -> None:
        words = [f"w{i}" for i in range(20)] + ["zz"]
        selector = IntelligentSelector(random.Random(5))
        seen = set()
        for _ in range(300):
            seen.update(selector.select(words, 1, difficulty_map))
        # pool = max(1, int(21 * 0.3)) = 6 words
        assert len(seen) == 6
        assert "zz" in seen


class TestSubstitutionSelector:
    def test_only_letters_are_substituted_with_weak_characters(
        self, difficulty_map: dict
    ) -> None:
        selector = SubstitutionSelector(random.Random(2))
        weak = ["z", "a"]
        for _ in range(50):
            out = selector.substitute("Ab-c1", weak)
            assert out[2] == "-" and out[4] == "1"
            assert out[0] in ("A", "Z")
            assert out[1] in ("b", "z", "a")

    def test_substitution_rate_is_roughly_thirty_percent(self) -> None:
        selector = SubstitutionSelector(random.Random(9))
        word = "b" * 2000
        replaced = selector.substitute(word, ["q"]).count("q")
        assert 500 < replaced < 700

    def test_select_keeps_word_count(self, corpus: Corpus, difficulty_map: dict) -> None:
        words = SubstitutionSelector(random.Random(4)).select(corpus, 6, difficulty_map)
        assert len(words) == 6
        assert all(len(w) in {len(x) for x in WORDS} for w in words)
