"""Shared fakes and fixtures for the collab_reader test suite.

WHY: The session drives four platform collaborators. Tests need
stand-ins that record every call and let each test decide when (and
whether) an asynchronous operation completes.

HOW:
  FakeTTS         — records calls; completes on_done synchronously unless
                    auto_complete is False, in which case callbacks are
                    kept in .pending for the test to fire
  FakeRecognizer  — answers each start() from a script; a string is one
                    hypothesis, a list is several, a RecognizerErrorCode
                    is an error, and an empty script leaves the window
                    open for respond() / fail() / rms()
  FakeIndex       — dict-backed WordTimestampIndex
  FakeCues        — counts success and failure cues

RULES:
- Dwell times are always 0 in tests
- Sessions are constructed outside the loop and driven inside asyncio.run()
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import pytest

from collab_reader.console import ListTextSource
from collab_reader.core.models import Sentence
from collab_reader.session.events import RecognizerErrorCode
from collab_reader.session.machine import CollaborativeSession, SessionOptions
from collab_reader.session.protocols import (
    SoundCues,
    SpeechRecognizer,
    TextToSpeech,
    WordTimestampIndex,
)


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------


class FakeTTS(TextToSpeech):
    def __init__(self, auto_complete: bool = True) -> None:
        self.auto_complete = auto_complete
        self.calls: List[Tuple[Any, ...]] = []
        self.pending: List[Any] = []
        self.stops = 0

    def _finish(self, on_done) -> None:
        if self.auto_complete:
            on_done()
        else:
            self.pending.append(on_done)

    def play_carrier_until(self, sentence_text, stop_at_ms, on_done) -> None:
        self.calls.append(("carrier_until", sentence_text, stop_at_ms))
        self._finish(on_done)

    def play_full(self, text, on_done) -> None:
        self.calls.append(("full", text))
        self._finish(on_done)

    def play_from(self, sentence_text, from_ms, on_done) -> None:
        self.calls.append(("from", sentence_text, from_ms))
        self._finish(on_done)

    def stop(self) -> None:
        self.stops += 1


class FakeRecognizer(SpeechRecognizer):
    def __init__(self, script: Optional[List[Any]] = None) -> None:
        self.script = list(script or [])
        self.starts = 0
        self.cancels = 0
        self.destroyed = False
        self._callbacks: Dict[str, Any] = {}

    def start(self, on_ready, on_partial, on_result, on_error, on_rms=None) -> None:
        assert not self.destroyed, "recognizer used after destroy()"
        self.starts += 1
        self._callbacks = {
            "ready": on_ready,
            "partial": on_partial,
            "result": on_result,
            "error": on_error,
            "rms": on_rms,
        }
        on_ready()
        if self.script:
            step = self.script.pop(0)
            if isinstance(step, RecognizerErrorCode):
                self.fail(step)
            else:
                self.respond(step)

    def respond(self, hypotheses) -> None:
        if isinstance(hypotheses, str):
            hypotheses = [hypotheses]
        self._callbacks["partial"](list(hypotheses)[:1])
        self._callbacks["result"](list(hypotheses))

    def fail(self, code) -> None:
        self._callbacks["error"](code)

    def rms(self, rms_db: float) -> None:
        self._callbacks["rms"](rms_db)

    def cancel(self) -> None:
        self.cancels += 1

    def destroy(self) -> None:
        self.destroyed = True


class FakeIndex(WordTimestampIndex):
    def __init__(self, offsets: Optional[Dict[Tuple[str, str, int], int]] = None) -> None:
        self.offsets = dict(offsets or {})
        self.lookups: List[Tuple[str, str, int]] = []

    def find_word_timestamp_ms(self, sentence_text, word, occurrence=0):
        self.lookups.append((sentence_text, word, occurrence))
        return self.offsets.get((sentence_text, word, occurrence))


class FakeCues(SoundCues):
    def __init__(self) -> None:
        self.successes = 0
        self.failures = 0

    def play_success(self) -> None:
        self.successes += 1

    def play_failure(self) -> None:
        self.failures += 1


# ---------------------------------------------------------------------------
# Session harness
# ---------------------------------------------------------------------------


class Harness:
    """A session wired to fakes, plus everything it reported."""

    def __init__(
        self,
        script: Optional[List[Any]] = None,
        offsets: Optional[Dict[Tuple[str, str, int], int]] = None,
        sentences: Optional[List[str]] = None,
        auto_complete: bool = True,
        factory_error: Optional[Exception] = None,
        **option_overrides: Any,
    ) -> None:
        self.tts = FakeTTS(auto_complete=auto_complete)
        self.recognizer = FakeRecognizer(script)
        self.cues = FakeCues()
        self.index = FakeIndex(offsets)
        self.source = ListTextSource([Sentence(s) for s in (sentences or [])])
        self.factory_calls = 0
        self.states: List[Any] = []
        self.advanced: List[Sentence] = []
        self.disabled: List[str] = []

        def factory() -> SpeechRecognizer:
            self.factory_calls += 1
            if factory_error is not None:
                raise factory_error
            return self.recognizer

        options = dict(
            collaborative_mode=True,
            auto_advance=False,
            kid_mode=False,
            success_dwell_s=0.0,
            failure_dwell_s=0.0,
        )
        options.update(option_overrides)

        self.session = CollaborativeSession(
            tts=self.tts,
            recognizer_factory=factory,
            cues=self.cues,
            index=self.index,
            text_source=self.source,
            options=SessionOptions(**options),
            on_state=self.states.append,
            on_advance=self.advanced.append,
            on_disabled=self.disabled.append,
        )


@pytest.fixture
def make_harness():
    """Factory fixture: make_harness(script=[...], offsets={...}, **options)."""
    return Harness
