"""Unit tests for text normalization utilities."""

from __future__ import annotations

from studylens.utils.text_normalizer import (
    collapse_whitespace,
    count_words,
    dedupe_topics,
    estimate_tokens,
    normalize_topic,
    stable_hash,
    truncate,
)


class TestWhitespaceAndWords:
    def test_collapse_whitespace(self) -> None:
        assert collapse_whitespace("  a\n\n b\t c  ") == "a b c"

    def test_count_words_matches_split(self) -> None:
        text = "Chapter 1 introduces vectors."
        assert count_words(text) == len(text.split()) == 4

    def test_count_words_empty(self) -> None:
        assert count_words("   ") == 0


class TestBudgets:
    def test_truncate(self) -> None:
        assert truncate("abcdef", 3) == "abc"
        assert truncate("abc", 10) == "abc"
        assert truncate("abc", 0) == ""

    def test_estimate_tokens_rounds_up(self) -> None:
        assert estimate_tokens("") == 0
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcde") == 2


class TestHashing:
    def test_stable_hash_deterministic(self) -> None:
        assert stable_hash("physics") == stable_hash("physics")
        assert len(stable_hash("physics")) == 16

    def test_stable_hash_differs(self) -> None:
        assert stable_hash("physics") != stable_hash("chemistry")


class TestTopics:
    def test_normalize_topic(self) -> None:
        assert normalize_topic("Chapter 2: Matrices!") == "chapter 2 matrices"

    def test_dedupe_folds_spelling_variants(self) -> None:
        topics = ["Chapter 2: Matrices", "CHAPTER 2 - MATRICES", "Unit 4 Probability"]
        assert dedupe_topics(topics) == ["Chapter 2: Matrices", "Unit 4 Probability"]

    def test_dedupe_drops_empty(self) -> None:
        assert dedupe_topics(["!!!", "Unit 1 Sets"]) == ["Unit 1 Sets"]
