"""On-disk cache of synthesized sentences and their word timestamps.

WHY: Stopping the voice exactly before the target needs the millisecond
offset of the target's first word in audio that already exists.
Synthesizing the carrier fresh each visit would be slow and would not
line up with the full sentence the listener heard before. The cache
keeps the full-sentence audio plus the word timing the synthesizer
returned with it.

HOW: One audio file per (sentence, voice), named by the MD5 of the
trimmed sentence, with a ``.json`` sidecar holding the timestamp array
as returned by the Kokoro server ([{word, start_time, end_time}] in
seconds). The audio file's existence is the hit test; there is no
index database.

RULES:
- Filename: {md5(sentence.strip())}_{voice}.mp3, sidecar: same + ".json"
- Only Kokoro voices are cached; other voices always miss
- Timestamps are validated with jsonschema on save and on load
- A corrupt sidecar is logged and treated as "no timestamps", never raised
- Punctuation-only timestamp entries are ignored by word lookup
- Word lookup scans from the end of the sentence (targets are trailing)
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import jsonschema

from collab_reader.config import CACHE_DIR, KOKORO_VOICE, is_kokoro_voice
from collab_reader.core.target import strip_punctuation
from collab_reader.session.protocols import WordTimestampIndex

logger = logging.getLogger(__name__)

TIMESTAMPS_SCHEMA: Dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "required": ["word", "start_time", "end_time"],
        "properties": {
            "word": {"type": "string"},
            "start_time": {"type": "number", "minimum": 0},
            "end_time": {"type": "number", "minimum": 0},
        },
    },
}


class TimestampFormatError(ValueError):
    """Raised when a timestamp array does not match TIMESTAMPS_SCHEMA."""


@dataclass
class WordTimestamp:
    """One synthesized word and its position in the audio, in milliseconds."""

    word: str
    start_ms: int
    end_ms: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> WordTimestamp:
        return cls(
            word=data["word"],
            start_ms=int(data["start_time"] * 1000),
            end_ms=int(data["end_time"] * 1000),
        )


@dataclass
class CachedAudio:
    """Full-sentence audio plus its word timing."""

    audio_bytes: bytes
    timestamps: List[WordTimestamp] = field(default_factory=list)


def validate_timestamps(timestamps: Any) -> None:
    """Raise TimestampFormatError unless timestamps matches TIMESTAMPS_SCHEMA."""
    try:
        jsonschema.validate(instance=timestamps, schema=TIMESTAMPS_SCHEMA)
    except jsonschema.ValidationError as exc:
        raise TimestampFormatError(
            "Invalid word timestamps: {}".format(exc.message)
        ) from exc


def _is_word(text: str) -> bool:
    return any(c.isalnum() for c in text)


def _normalize_word(text: str) -> str:
    return strip_punctuation(text.lower().replace("’", "'"))


class AudioCache(WordTimestampIndex):
    """File-backed audio cache that doubles as the WordTimestampIndex.

    WHY: The clipper asks "where does this word start in the audio for
    this sentence?" and the TTS collaborator fills the cache as a side
    effect of synthesizing full sentences. Both go through this class.

    HOW: Paths are derived from the sentence hash and the voice. Loads
    read the sidecar through the schema validator.

    RULES:
    - save() creates the cache directory on demand
    - load() returns None on a miss or a non-Kokoro voice
    - find_word_timestamp_ms() returns None on any miss
    """

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        voice: str = KOKORO_VOICE,
    ) -> None:
        self.cache_dir = Path(cache_dir) if cache_dir is not None else CACHE_DIR
        self.voice = voice

    @property
    def enabled(self) -> bool:
        return is_kokoro_voice(self.voice)

    def audio_path(self, sentence_text: str) -> Path:
        digest = hashlib.md5(sentence_text.strip().encode("utf-8")).hexdigest()
        return self.cache_dir / "{}_{}.mp3".format(digest, self.voice)

    def _sidecar_path(self, sentence_text: str) -> Path:
        audio = self.audio_path(sentence_text)
        return audio.with_name(audio.name + ".json")

    def is_cached(self, sentence_text: str) -> bool:
        return self.enabled and self.audio_path(sentence_text).is_file()

    def save(
        self,
        sentence_text: str,
        audio_bytes: bytes,
        timestamps: List[Dict[str, Any]],
    ) -> Path:
        """Store full-sentence audio and its raw timestamp array.

        Raises:
            TimestampFormatError: If timestamps do not match the schema.
        """
        validate_timestamps(timestamps)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        audio = self.audio_path(sentence_text)
        audio.write_bytes(audio_bytes)
        self._sidecar_path(sentence_text).write_text(
            json.dumps(timestamps), encoding="utf-8"
        )
        logger.debug("Cached %d bytes for %r", len(audio_bytes), sentence_text[:40])
        return audio

    def load(self, sentence_text: str) -> Optional[CachedAudio]:
        if not self.is_cached(sentence_text):
            return None
        try:
            audio_bytes = self.audio_path(sentence_text).read_bytes()
        except OSError:
            logger.warning("Error reading cached audio for %r", sentence_text[:40])
            return None
        return CachedAudio(
            audio_bytes=audio_bytes,
            timestamps=self._load_timestamps(sentence_text),
        )

    def _load_timestamps(self, sentence_text: str) -> List[WordTimestamp]:
        sidecar = self._sidecar_path(sentence_text)
        if not sidecar.is_file():
            return []
        try:
            raw = json.loads(sidecar.read_text(encoding="utf-8"))
            validate_timestamps(raw)
        except (OSError, ValueError) as exc:
            # TimestampFormatError and JSONDecodeError are both ValueErrors
            logger.warning("Ignoring corrupt timestamp sidecar %s: %s", sidecar, exc)
            return []
        return [WordTimestamp.from_dict(item) for item in raw]

    def find_word_timestamp_ms(
        self,
        sentence_text: str,
        word: str,
        occurrence: int = 0,
    ) -> Optional[int]:
        """Start offset of a word in the cached audio for a sentence.

        WHY: Carrier playback stops at this offset and correction playback
        starts from it.

        HOW: Walk the word entries from the end of the sentence and count
        matches of the normalized word; occurrence=0 is the last one,
        occurrence=1 the one before it, and so on.

        Args:
            sentence_text: The full sentence the audio was synthesized from.
            word: The word to locate (punctuation and case are ignored).
            occurrence: Which match to return, counted from the end.

        Returns:
            Milliseconds from the start of the cached audio, or None.
        """
        wanted = _normalize_word(word)
        if not wanted:
            return None
        cached = self.load(sentence_text)
        if cached is None:
            return None

        seen = 0
        for stamp in reversed(cached.timestamps):
            if not _is_word(stamp.word):
                continue
            if _normalize_word(stamp.word) != wanted:
                continue
            if seen == occurrence:
                return stamp.start_ms
            seen += 1
        return None
