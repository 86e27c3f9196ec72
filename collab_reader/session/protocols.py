"""Contracts for the collaborators the engine drives but does not implement.

WHY: Text-to-speech, speech recognition, sound cues, and the text source
are platform services. The session only needs a narrow slice of each,
and naming that slice as an interface keeps the state machine testable
with fakes and portable across platforms.

HOW: One ABC per collaborator. Every long-running operation takes a
completion callback instead of blocking; the session turns those
callbacks into events on its queue.

RULES:
- Methods must return promptly; work completes through callbacks
- Callbacks may fire synchronously from inside the call or later from
  the event loop; the session handles both
- TextToSpeech.play_full() populates the audio cache as a side effect
- SpeechRecognizer instances are reused across start() calls until destroy()
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from collab_reader.core.models import Sentence

DoneCallback = Callable[[], None]


class TextSource(ABC):
    """Supplies sentences in reading order."""

    @abstractmethod
    def current_sentence(self) -> Optional[Sentence]:
        """The sentence under the reader's finger, or None."""

    @abstractmethod
    def next_sentence(self) -> Optional[Sentence]:
        """Move forward one sentence and return it, or None at the end."""


class TextToSpeech(ABC):
    """Speech output, with clipped playback of cached full-sentence audio."""

    @abstractmethod
    def play_carrier_until(self, sentence_text: str, stop_at_ms: int, on_done: DoneCallback) -> None:
        """Play cached audio of the sentence from the start up to stop_at_ms."""

    @abstractmethod
    def play_full(self, text: str, on_done: DoneCallback) -> None:
        """Synthesize and play text in full."""

    @abstractmethod
    def play_from(self, sentence_text: str, from_ms: int, on_done: DoneCallback) -> None:
        """Play cached audio of the sentence from from_ms to the end."""

    @abstractmethod
    def stop(self) -> None:
        """Stop any playback; pending on_done callbacks must not fire."""


class WordTimestampIndex(ABC):
    """Read-only view of word offsets in cached sentence audio."""

    @abstractmethod
    def find_word_timestamp_ms(
        self, sentence_text: str, word: str, occurrence: int = 0
    ) -> Optional[int]:
        """Start of the word in ms, counting occurrences from the end, or None."""


class SpeechRecognizer(ABC):
    """One reusable recognizer instance.

    on_error receives a RecognizerErrorCode (see session.events).
    on_rms receives the input level in dB, roughly -2..10.
    """

    @abstractmethod
    def start(
        self,
        on_ready: DoneCallback,
        on_partial: Callable[[List[str]], None],
        on_result: Callable[[List[str]], None],
        on_error: Callable[..., None],
        on_rms: Optional[Callable[[float], None]] = None,
    ) -> None:
        """Open a listening window."""

    @abstractmethod
    def cancel(self) -> None:
        """Close the listening window; the instance stays usable."""

    @abstractmethod
    def destroy(self) -> None:
        """Release the instance; it must not be used afterwards."""


class SoundCues(ABC):
    """Short feedback sounds."""

    @abstractmethod
    def play_success(self) -> None:
        ...

    @abstractmethod
    def play_failure(self) -> None:
        ...
