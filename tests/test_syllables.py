"""Tests for the syllable-count heuristic."""

from __future__ import annotations

import pytest

from collab_reader.core.syllables import count_syllables


class TestCountSyllables:
    @pytest.mark.parametrize("word", ["the", "fast", "dog", "blue", "strength"])
    def test_single_syllable(self, word):
        assert count_syllables(word) == 1

    @pytest.mark.parametrize("word,expected", [
        ("happy", 2),
        ("rabbit", 2),
        ("elephant", 3),
        ("forever", 3),
        ("wounded", 2),
    ])
    def test_multi_syllable(self, word, expected):
        assert count_syllables(word) == expected

    def test_trailing_e_removed_when_more_than_one(self):
        # final e is silent
        assert count_syllables("cake") == 1
        assert count_syllables("table") == 1

    def test_trailing_e_kept_for_single_group(self):
        assert count_syllables("be") == 1
        assert count_syllables("free") == 1

    def test_y_is_a_vowel(self):
        assert count_syllables("rhythm") == 1
        assert count_syllables("yo") == 1

    def test_case_insensitive(self):
        assert count_syllables("ELEPHANT") == count_syllables("elephant")

    def test_never_below_one(self):
        assert count_syllables("") == 1
        assert count_syllables("hmm") == 1
        assert count_syllables("42") == 1
