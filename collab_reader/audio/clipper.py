"""Clipped playback of the carrier and of the correct reading.

WHY: The listener hears the sentence read up to, but not including, the
target. Re-synthesizing that prefix would sound different from the full
sentence and costs a round trip; clipping the cached full-sentence audio
at the target's first word is instant and seamless.

HOW: Look up the target's first word in the WordTimestampIndex.
  carrier, hit      → play cached audio from 0 until the word's offset
  carrier, miss     → synthesize and play the whole sentence (warms the
                      cache, so the next visit clips correctly)
  correction, hit   → play cached audio from the word's offset to the end
  correction, miss  → synthesize just the target phrase
An empty carrier (one-word sentence) skips playback entirely.

RULES:
- on_done is invoked exactly once per call (by the TTS, or directly when
  playback is skipped)
- The returned ClipDecision says which path was taken
- The cache miss path is degraded, not an error
"""

from __future__ import annotations

import enum
import logging

from collab_reader.core.models import Sentence, TargetSpan
from collab_reader.core.target import carrier_text, first_target_word, strip_punctuation
from collab_reader.session.protocols import DoneCallback, TextToSpeech, WordTimestampIndex

logger = logging.getLogger(__name__)


class ClipDecision(str, enum.Enum):
    SKIPPED = "skipped"
    CACHED = "cached"
    FULL = "full"


def _occurrence_within_target(target: TargetSpan, word: str) -> int:
    """How many later copies of word the target holds (0 for most targets).

    For "that that" the first word is the second-to-last "that" in the
    sentence, so the lookup must skip one match counted from the end.
    """
    wanted = word.lower()
    tokens = [strip_punctuation(t).lower() for t in target.phrase.split()]
    return max(tokens.count(wanted) - 1, 0)


class PlaybackClipper:
    """Plays carrier and correction audio through a TextToSpeech collaborator."""

    def __init__(self, tts: TextToSpeech, index: WordTimestampIndex) -> None:
        self.tts = tts
        self.index = index

    def _target_offset_ms(self, sentence: Sentence, target: TargetSpan):
        word = first_target_word(target)
        if not word:
            return None
        return self.index.find_word_timestamp_ms(
            sentence.text, word, _occurrence_within_target(target, word)
        )

    def play_carrier(
        self,
        sentence: Sentence,
        target: TargetSpan,
        on_done: DoneCallback,
    ) -> ClipDecision:
        """Read everything before the target, then call on_done."""
        if not carrier_text(sentence.text, target):
            logger.debug("Empty carrier for %r, skipping playback", sentence.text[:40])
            on_done()
            return ClipDecision.SKIPPED

        stop_at_ms = self._target_offset_ms(sentence, target)
        if stop_at_ms is not None:
            logger.debug("Carrier from cache until %dms: %s", stop_at_ms, sentence.text[:40])
            self.tts.play_carrier_until(sentence.text, stop_at_ms, on_done)
            return ClipDecision.CACHED

        logger.info("No cached timing for %r, reading full sentence", sentence.text[:40])
        self.tts.play_full(sentence.text, on_done)
        return ClipDecision.FULL

    def play_correction(
        self,
        sentence: Sentence,
        target: TargetSpan,
        on_done: DoneCallback,
    ) -> ClipDecision:
        """Read the target phrase correctly, then call on_done."""
        from_ms = self._target_offset_ms(sentence, target)
        if from_ms is not None:
            logger.debug("Correction from cache at %dms: %s", from_ms, target.phrase)
            self.tts.play_from(sentence.text, from_ms, on_done)
            return ClipDecision.CACHED

        self.tts.play_full(target.phrase, on_done)
        return ClipDecision.FULL
