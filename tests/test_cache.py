"""Tests for the on-disk audio cache and its word-timestamp lookup."""

from __future__ import annotations

import hashlib
import json
import logging

import pytest

from collab_reader.audio.cache import (
    AudioCache,
    TimestampFormatError,
    WordTimestamp,
    validate_timestamps,
)

SENTENCE = "The dog ran fast."

TIMESTAMPS = [
    {"word": "The", "start_time": 0.0, "end_time": 0.125},
    {"word": "dog", "start_time": 0.125, "end_time": 0.5},
    {"word": "ran", "start_time": 0.625, "end_time": 0.875},
    {"word": "fast", "start_time": 0.875, "end_time": 1.25},
    {"word": ".", "start_time": 1.25, "end_time": 1.25},
]


@pytest.fixture
def cache(tmp_path):
    return AudioCache(cache_dir=tmp_path / "tts", voice="bm_lewis")


class TestPaths:
    def test_filename_is_hash_of_trimmed_sentence_and_voice(self, cache):
        digest = hashlib.md5(SENTENCE.encode("utf-8")).hexdigest()
        assert cache.audio_path("  " + SENTENCE + "\n").name == "{}_bm_lewis.mp3".format(digest)

    def test_non_kokoro_voice_disabled(self, tmp_path):
        cache = AudioCache(cache_dir=tmp_path, voice="en-us-x-sfg")
        cache.save(SENTENCE, b"audio", TIMESTAMPS)
        assert not cache.enabled
        assert not cache.is_cached(SENTENCE)
        assert cache.find_word_timestamp_ms(SENTENCE, "ran") is None


class TestSaveLoad:
    def test_save_creates_audio_and_sidecar(self, cache):
        path = cache.save(SENTENCE, b"mp3-bytes", TIMESTAMPS)
        assert path.read_bytes() == b"mp3-bytes"
        sidecar = path.with_name(path.name + ".json")
        assert json.loads(sidecar.read_text(encoding="utf-8")) == TIMESTAMPS
        assert cache.is_cached(SENTENCE)

    def test_load_converts_seconds_to_ms(self, cache):
        cache.save(SENTENCE, b"mp3-bytes", TIMESTAMPS)
        loaded = cache.load(SENTENCE)
        assert loaded.audio_bytes == b"mp3-bytes"
        assert loaded.timestamps[2] == WordTimestamp("ran", 625, 875)

    def test_fractional_milliseconds_are_truncated(self):
        stamp = WordTimestamp.from_dict({"word": "ran", "start_time": 0.6409, "end_time": 0.9999})
        assert (stamp.start_ms, stamp.end_ms) == (640, 999)

    def test_miss_returns_none(self, cache):
        assert cache.load(SENTENCE) is None

    def test_invalid_timestamps_rejected(self, cache):
        with pytest.raises(TimestampFormatError):
            cache.save(SENTENCE, b"x", [{"word": "The", "start_time": "zero"}])
        assert not cache.is_cached(SENTENCE)

    def test_corrupt_sidecar_is_a_miss_for_lookup(self, cache, caplog):
        path = cache.save(SENTENCE, b"mp3-bytes", TIMESTAMPS)
        path.with_name(path.name + ".json").write_text("{not json", encoding="utf-8")

        with caplog.at_level(logging.WARNING):
            loaded = cache.load(SENTENCE)
        assert loaded.timestamps == []
        assert "corrupt" in caplog.text
        assert cache.find_word_timestamp_ms(SENTENCE, "ran") is None

    def test_validate_timestamps_accepts_empty(self):
        validate_timestamps([])


class TestFindWordTimestamp:
    def test_finds_word_start(self, cache):
        cache.save(SENTENCE, b"mp3", TIMESTAMPS)
        assert cache.find_word_timestamp_ms(SENTENCE, "ran") == 625

    def test_case_and_punctuation_ignored(self, cache):
        cache.save(SENTENCE, b"mp3", TIMESTAMPS)
        assert cache.find_word_timestamp_ms(SENTENCE, "Fast.") == 875

    def test_punctuation_entries_never_match(self, cache):
        cache.save(SENTENCE, b"mp3", TIMESTAMPS)
        assert cache.find_word_timestamp_ms(SENTENCE, ".") is None

    def test_occurrence_counts_from_the_end(self, cache):
        sentence = "He said that that."
        cache.save(sentence, b"mp3", [
            {"word": "He", "start_time": 0.0, "end_time": 0.25},
            {"word": "said", "start_time": 0.25, "end_time": 0.5},
            {"word": "that", "start_time": 0.5, "end_time": 0.75},
            {"word": "that", "start_time": 0.75, "end_time": 1.0},
        ])
        assert cache.find_word_timestamp_ms(sentence, "that") == 750
        assert cache.find_word_timestamp_ms(sentence, "that", occurrence=1) == 500
        assert cache.find_word_timestamp_ms(sentence, "that", occurrence=2) is None

    def test_unknown_word(self, cache):
        cache.save(SENTENCE, b"mp3", TIMESTAMPS)
        assert cache.find_word_timestamp_ms(SENTENCE, "cat") is None
        assert cache.find_word_timestamp_ms(SENTENCE, "") is None
