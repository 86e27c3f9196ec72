"""Terminal stand-ins for the platform collaborators.

WHY: The session engine is platform-agnostic; on a device it drives a
real TTS engine and speech recognizer. Rehearsing a text from the
terminal (and debugging matcher decisions) needs the same contracts
fulfilled by print() and input().

HOW:
  ConsoleTTS        — prints what would be spoken; clipped playback uses
                      the cache's word timing to print only the words
                      inside the clip
  ConsoleRecognizer — each listening window reads one typed line on a
                      worker thread; the line is the single hypothesis,
                      an empty line is "no speech detected"
  ConsoleCues       — prints a check mark or a cross
  ListTextSource    — a list of sentences with a cursor

RULES:
- Output goes to the given stream (the current sys.stdout by default)
- ConsoleTTS completes synchronously; ConsoleRecognizer completes from
  the event loop, so rehearsals must use CollaborativeSession.run()
- ConsoleRecognizer.start() needs a running event loop
"""

from __future__ import annotations

import asyncio
import sys
from typing import Callable, List, Optional, TextIO

from collab_reader.audio.cache import AudioCache
from collab_reader.core.models import Sentence
from collab_reader.session.events import RecognizerErrorCode
from collab_reader.session.protocols import (
    DoneCallback,
    SoundCues,
    SpeechRecognizer,
    TextSource,
    TextToSpeech,
)


class ListTextSource(TextSource):
    """Sentences held in memory, read front to back."""

    def __init__(self, sentences: List[Sentence]) -> None:
        self.sentences = list(sentences)
        self.position = 0

    @classmethod
    def from_lines(cls, lines: List[str]) -> ListTextSource:
        return cls([Sentence(line.strip()) for line in lines if line.strip()])

    def current_sentence(self) -> Optional[Sentence]:
        if self.position < len(self.sentences):
            return self.sentences[self.position]
        return None

    def next_sentence(self) -> Optional[Sentence]:
        if self.position < len(self.sentences):
            self.position += 1
        return self.current_sentence()

    @property
    def at_end(self) -> bool:
        return self.position >= len(self.sentences) - 1


class ConsoleTTS(TextToSpeech):
    """Prints speech instead of playing it."""

    def __init__(self, cache: Optional[AudioCache] = None, stream: Optional[TextIO] = None) -> None:
        self.cache = cache
        self.stream = stream

    def _say(self, text: str) -> None:
        print("  🔊 {}".format(text), file=self.stream or sys.stdout, flush=True)

    def _clip_words(self, sentence_text: str, lo_ms: int, hi_ms: Optional[int]) -> Optional[str]:
        if self.cache is None:
            return None
        cached = self.cache.load(sentence_text)
        if cached is None or not cached.timestamps:
            return None
        words = [
            stamp.word
            for stamp in cached.timestamps
            if stamp.start_ms >= lo_ms and (hi_ms is None or stamp.start_ms < hi_ms)
        ]
        return " ".join(words)

    def play_carrier_until(self, sentence_text: str, stop_at_ms: int, on_done: DoneCallback) -> None:
        clipped = self._clip_words(sentence_text, 0, stop_at_ms)
        self._say(clipped if clipped is not None else "{} [until {}ms]".format(sentence_text, stop_at_ms))
        on_done()

    def play_full(self, text: str, on_done: DoneCallback) -> None:
        self._say(text)
        on_done()

    def play_from(self, sentence_text: str, from_ms: int, on_done: DoneCallback) -> None:
        clipped = self._clip_words(sentence_text, from_ms, None)
        self._say(clipped if clipped is not None else "{} [from {}ms]".format(sentence_text, from_ms))
        on_done()

    def stop(self) -> None:
        pass


class ConsoleRecognizer(SpeechRecognizer):
    """Reads typed attempts from stdin."""

    def __init__(
        self,
        prompt: str = "  🎤 > ",
        read_line: Optional[Callable[[str], str]] = None,
    ) -> None:
        self.prompt = prompt
        self._read_line = read_line or input
        self._task: Optional[asyncio.Task] = None
        self._destroyed = False

    def start(
        self,
        on_ready: DoneCallback,
        on_partial: Callable[[List[str]], None],
        on_result: Callable[[List[str]], None],
        on_error: Callable[..., None],
        on_rms: Optional[Callable[[float], None]] = None,
    ) -> None:
        if self._destroyed:
            raise RuntimeError("ConsoleRecognizer used after destroy()")
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._listen(on_ready, on_result, on_error))

    async def _listen(
        self,
        on_ready: DoneCallback,
        on_result: Callable[[List[str]], None],
        on_error: Callable[..., None],
    ) -> None:
        on_ready()
        loop = asyncio.get_running_loop()
        try:
            line = await loop.run_in_executor(None, self._read_line, self.prompt)
        except EOFError:
            on_error(RecognizerErrorCode.CLIENT)
            return
        if line.strip():
            on_result([line.strip()])
        else:
            on_error(RecognizerErrorCode.NO_MATCH)

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def destroy(self) -> None:
        self.cancel()
        self._destroyed = True


class ConsoleCues(SoundCues):
    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream = stream

    def play_success(self) -> None:
        print("  ✓", file=self.stream or sys.stdout, flush=True)

    def play_failure(self) -> None:
        print("  ✗", file=self.stream or sys.stdout, flush=True)
