"""Tests for target span extraction."""

from __future__ import annotations

import pytest

from collab_reader.core.models import TargetSpan
from collab_reader.core.target import (
    carrier_text,
    extract_target,
    first_target_word,
    strip_punctuation,
)


class TestExtractTarget:
    def test_single_syllable_last_word_takes_two_tokens(self):
        assert extract_target("The dog ran fast.") == TargetSpan("ran fast.", 8, 17)

    def test_multi_syllable_last_word_alone(self):
        target = extract_target("I saw an elephant.")
        assert target.phrase == "elephant."
        assert target.char_range == (9, 18)

    def test_two_tokens_single_syllable_is_whole_sentence(self):
        assert extract_target("Run fast.") == TargetSpan("Run fast.", 0, 9)

    def test_two_tokens_multi_syllable_is_last_word(self):
        assert extract_target("Run away.").phrase == "away."

    def test_one_token(self):
        assert extract_target("Go.") == TargetSpan("Go.", 0, 3)

    def test_empty(self):
        assert extract_target("") == TargetSpan("", 0, 0)
        assert extract_target("   ").phrase == ""

    def test_offsets_index_untrimmed_text(self):
        text = "   The cat sat.  "
        target = extract_target(text)
        assert target.phrase == "cat sat."
        assert text[target.start:target.end] == target.phrase

    def test_whitespace_runs_inside_phrase_preserved(self):
        text = "We were  so   glad."
        target = extract_target(text)
        assert target.phrase == "so   glad."
        assert text[target.start:target.end] == target.phrase

    def test_punctuation_ignored_for_syllables(self):
        # "dog!" counts as "dog": one syllable
        assert extract_target('He said, "Good dog!"').phrase == '"Good dog!"'

    @pytest.mark.parametrize("text", [
        "The dog ran fast.",
        "Once upon a time there was a rabbit.",
        "  She went home.",
        "Hello",
        "Is that that?",
    ])
    def test_range_slices_to_phrase(self, text):
        target = extract_target(text)
        assert text[target.start:target.end] == target.phrase
        assert text.rstrip().endswith(target.phrase)


class TestHelpers:
    def test_carrier_text(self):
        text = "The dog ran fast."
        assert carrier_text(text, extract_target(text)) == "The dog"

    def test_carrier_empty_when_target_is_sentence(self):
        assert carrier_text("Go.", extract_target("Go.")) == ""

    def test_first_target_word_strips_punctuation(self):
        assert first_target_word(TargetSpan('"Wow," she', 0, 10)) == "Wow"
        assert first_target_word(TargetSpan("", 0, 0)) == ""

    def test_strip_punctuation_edges_only(self):
        assert strip_punctuation("(don't!)") == "don't"
