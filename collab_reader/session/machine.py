"""The collaborative reading state machine.

WHY: A collaborative turn is a chain of asynchronous steps: read the
carrier, open the microphone, judge the attempt, pause on feedback,
retry or play the correction, move on. Written as nested callbacks it
becomes a pyramid where a late TTS callback can overwrite a newer
sentence's state. Here every step is an event on one queue and a single
dispatch function owns all transitions.

HOW: CollaborativeSession holds one SessionState. Host commands
(start, cancel, mode toggle, close) and collaborator completions
(carrier done, recognizer results, dwell elapsed, ...) are posted to an
asyncio.Queue. run() (or settle() in tests and the terminal CLI) pulls
events and hands them to _dispatch(). Every operation started by the
session is stamped with a fresh epoch; a completion whose epoch is not
the current one is stale and dropped.

  IDLE ──carrier done──▶ LISTENING ──match──▶ FEEDBACK(success) ──dwell──▶ advance
                            ▲   │
                            │   └─no match / timeout / transient fault──▶ FEEDBACK(fail)
                            │                                                │ dwell
                            ├──── count < 3 ◀────────────────────────────────┤
                            └──── correction done ◀── play correction ◀── count == 3

RULES:
- Only _dispatch() and the handlers it calls mutate SessionState
- Recognition never starts while carrier or correction audio is playing
- The recognizer is created when carrier playback starts and reused
  across retries; cancel() on cancel, destroy() on close or fatal fault
- cancel is idempotent: cancelling an idle session changes nothing
- Fatal recognizer faults disable collaboration once, report upward once,
  and fall back to plain reading of the sentence
- No exception escapes run(); handler errors are logged
- Host observer errors are logged and the transition still completes
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Set

from collab_reader.audio.clipper import PlaybackClipper
from collab_reader.config import (
    DEFAULT_AUTO_ADVANCE,
    DEFAULT_COLLABORATIVE_MODE,
    DEFAULT_KID_MODE,
    FAILURE_DWELL_S,
    SUCCESS_DWELL_S,
)
from collab_reader.core.models import Phase, Sentence, SessionState
from collab_reader.core.target import extract_target
from collab_reader.matching.matcher import PhoneticMatcher
from collab_reader.session.events import (
    Cancel,
    CarrierDone,
    CorrectionDone,
    DwellElapsed,
    DwellKind,
    ErrorSeverity,
    Event,
    MicLevel,
    PartialResults,
    PlainReadingDone,
    RecognitionError,
    RecognitionResults,
    RecognizerErrorCode,
    RecognizerReady,
    SetCollaborativeMode,
    Shutdown,
    StartSentence,
    classify_error,
)
from collab_reader.session.protocols import (
    SoundCues,
    SpeechRecognizer,
    TextSource,
    TextToSpeech,
    WordTimestampIndex,
)

logger = logging.getLogger(__name__)

# Recognizer RMS range (dB) mapped onto the 0..100 mic level.
_RMS_FLOOR_DB = -2.0
_RMS_CEILING_DB = 10.0


def mic_level_from_rms(rms_db: float) -> int:
    """Map recognizer RMS in dB linearly onto 0..100, clamped."""
    span = _RMS_CEILING_DB - _RMS_FLOOR_DB
    level = (rms_db - _RMS_FLOOR_DB) / span * 100.0
    return int(round(min(max(level, 0.0), 100.0)))


@dataclass
class SessionOptions:
    """Reader preferences that shape the session.

    RULES:
    - collaborative_mode: False means plain, non-interactive reading
    - auto_advance: after success, start the next sentence immediately
    - kid_mode: locks collaborative_mode on; turning it off is ignored
    - dwell times: pause on the feedback cue before moving on (seconds)
    """

    collaborative_mode: bool = DEFAULT_COLLABORATIVE_MODE
    auto_advance: bool = DEFAULT_AUTO_ADVANCE
    kid_mode: bool = DEFAULT_KID_MODE
    success_dwell_s: float = SUCCESS_DWELL_S
    failure_dwell_s: float = FAILURE_DWELL_S


class CollaborativeSession:
    """Event-driven controller for one reader's collaborative session.

    WHY: Keeps the listen / judge / retry / escalate loop in one place
    with one owned state, so the UI can render from snapshots and the
    collaborators only ever report what happened.

    HOW: Construct with the collaborators, then post commands with
    start() / cancel() / set_collaborative_mode() / close() while
    run() is being awaited.

    RULES:
    - recognizer_factory is called lazily and at most once per instance
      until a fatal fault or shutdown destroys it
    - on_state receives a snapshot after every transition
    - on_advance receives the sentence just completed
    - on_disabled receives a reason string, once
    """

    def __init__(
        self,
        tts: TextToSpeech,
        recognizer_factory: Callable[[], SpeechRecognizer],
        cues: SoundCues,
        index: WordTimestampIndex,
        text_source: Optional[TextSource] = None,
        matcher: Optional[PhoneticMatcher] = None,
        options: Optional[SessionOptions] = None,
        on_state: Optional[Callable[[SessionState], None]] = None,
        on_advance: Optional[Callable[[Sentence], None]] = None,
        on_disabled: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._tts = tts
        self._recognizer_factory = recognizer_factory
        self._cues = cues
        self._clipper = PlaybackClipper(tts, index)
        self._text_source = text_source
        self._matcher = matcher or PhoneticMatcher()
        self.options = options or SessionOptions()
        self._on_state = on_state
        self._on_advance = on_advance
        self._on_disabled = on_disabled

        self._state = SessionState()
        self._queue: Optional[asyncio.Queue] = None
        self._epoch = 0
        self._recognizer: Optional[SpeechRecognizer] = None
        self._listening = False
        self._playing = False
        self._disabled = False
        self._closed = False
        self._dwell_tasks: Set[asyncio.Task] = set()

        self._handlers: Dict[type, Callable] = {
            StartSentence: self._on_start,
            Cancel: self._on_cancel,
            SetCollaborativeMode: self._on_set_mode,
            Shutdown: self._on_shutdown,
            CarrierDone: self._on_carrier_done,
            CorrectionDone: self._on_correction_done,
            PlainReadingDone: self._on_plain_done,
            RecognizerReady: self._on_ready,
            PartialResults: self._on_partial,
            RecognitionResults: self._on_results,
            RecognitionError: self._on_error,
            MicLevel: self._on_mic_level,
            DwellElapsed: self._on_dwell,
        }

    # ------------------------------------------------------------------
    # Public surface
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state.snapshot()

    @property
    def disabled(self) -> bool:
        """True once a fatal recognizer fault has disabled collaboration."""
        return self._disabled

    @property
    def recognizer_warm(self) -> bool:
        return self._recognizer is not None

    @property
    def listening(self) -> bool:
        return self._listening

    def post(self, event: Event) -> None:
        """Queue an event; safe to call from any collaborator callback."""
        self._events().put_nowait(event)

    def start(self, sentence: Sentence) -> None:
        self.post(StartSentence(sentence))

    def start_current(self) -> bool:
        """Start the text source's current sentence, if there is one."""
        if self._text_source is None:
            return False
        sentence = self._text_source.current_sentence()
        if sentence is None:
            return False
        self.start(sentence)
        return True

    def cancel(self, reason: str = "cancel") -> None:
        self.post(Cancel(reason))

    def set_collaborative_mode(self, enabled: bool) -> None:
        self.post(SetCollaborativeMode(enabled))

    def close(self) -> None:
        """Stop the session and release the recognizer; run() then returns."""
        self.post(Shutdown())

    async def run(self) -> None:
        """Process events until shutdown."""
        while not self._closed:
            event = await self._events().get()
            self._dispatch_safely(event)

    async def settle(self) -> None:
        """Process queued events and pending dwells until nothing is left.

        Collaborators that complete asynchronously (a real TTS engine)
        will not have posted yet; use run() for those.
        """
        queue = self._events()
        while True:
            while not queue.empty():
                self._dispatch_safely(queue.get_nowait())
            pending = [t for t in self._dwell_tasks if not t.done()]
            if not pending:
                if queue.empty():
                    return
                continue
            await asyncio.wait(pending)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _events(self) -> asyncio.Queue:
        # Created on first use so it binds to the loop that runs the session
        if self._queue is None:
            self._queue = asyncio.Queue()
        return self._queue

    def _dispatch_safely(self, event: Event) -> None:
        try:
            self._dispatch(event)
        except Exception:
            logger.exception("Error handling %s", type(event).__name__)

    def _dispatch(self, event: Event) -> None:
        epoch = getattr(event, "epoch", None)
        if epoch is not None and epoch != self._epoch:
            logger.debug("Dropping stale %s (epoch %d, now %d)", type(event).__name__, epoch, self._epoch)
            return
        if self._closed and not isinstance(event, Shutdown):
            return
        self._handlers[type(event)](event)

    def _next_epoch(self) -> int:
        self._epoch += 1
        return self._epoch

    def _notify(self, callback: Optional[Callable[..., None]], *args: object) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception("Session observer %r failed", callback)

    def _emit(self) -> None:
        if self._on_state is not None:
            self._notify(self._on_state, self._state.snapshot())

    @property
    def _collaborative_active(self) -> bool:
        return self.options.collaborative_mode and not self._disabled

    # ------------------------------------------------------------------
    # Host commands
    # ------------------------------------------------------------------

    def _on_start(self, event: StartSentence) -> None:
        self._reset_to_idle()
        self._state.sentence = event.sentence
        logger.info("Starting sentence: %s", event.sentence.text[:60])

        if not self._collaborative_active:
            self._read_plain()
            self._emit()
            return

        if self._ensure_recognizer() is None:
            return

        target = extract_target(event.sentence.text)
        epoch = self._next_epoch()
        self._playing = True
        self._emit()
        self._clipper.play_carrier(
            event.sentence, target, lambda: self.post(CarrierDone(epoch))
        )

    def _on_cancel(self, event: Cancel) -> None:
        if (
            self._state.phase == Phase.IDLE
            and not self._playing
            and not self._listening
            and not self._dwell_tasks
        ):
            return
        logger.info("Session cancelled (%s)", event.reason)
        self._reset_to_idle()
        self._emit()

    def _on_set_mode(self, event: SetCollaborativeMode) -> None:
        if not event.enabled and self.options.kid_mode:
            logger.info("Kid mode is on; collaborative mode stays enabled")
            return
        if self.options.collaborative_mode == event.enabled:
            return
        self.options.collaborative_mode = event.enabled
        logger.info("Collaborative mode %s", "enabled" if event.enabled else "disabled")
        if not event.enabled:
            self._reset_to_idle()
            self._emit()

    def _on_shutdown(self, event: Shutdown) -> None:
        if self._closed:
            return
        self._reset_to_idle()
        self._destroy_recognizer()
        self._closed = True
        self._emit()

    # ------------------------------------------------------------------
    # Playback completions
    # ------------------------------------------------------------------

    def _on_carrier_done(self, event: CarrierDone) -> None:
        self._playing = False
        if self._state.phase != Phase.IDLE or self._state.sentence is None:
            return
        self._state.target = extract_target(self._state.sentence.text)
        self._state.phase = Phase.LISTENING
        self._start_listening()
        self._emit()

    def _on_correction_done(self, event: CorrectionDone) -> None:
        self._playing = False
        self._state.attempts.reset()
        self._state.phase = Phase.LISTENING
        logger.info("Correction played; fresh attempts granted")
        self._start_listening()
        self._emit()

    def _on_plain_done(self, event: PlainReadingDone) -> None:
        self._playing = False
        sentence = self._state.sentence
        if sentence is not None:
            self._advance(sentence)

    # ------------------------------------------------------------------
    # Recognizer completions
    # ------------------------------------------------------------------

    def _on_ready(self, event: RecognizerReady) -> None:
        logger.debug("Recognizer ready")

    def _on_partial(self, event: PartialResults) -> None:
        logger.debug("Partial results: %s", list(event.hypotheses))

    def _on_mic_level(self, event: MicLevel) -> None:
        if not self._listening:
            return
        level = mic_level_from_rms(event.rms_db)
        if level != self._state.mic_level:
            self._state.mic_level = level
            self._emit()

    def _on_results(self, event: RecognitionResults) -> None:
        if self._state.phase != Phase.LISTENING or self._state.target is None:
            return
        self._listening = False
        self._state.mic_level = 0
        if self._matcher.is_match(event.hypotheses, self._state.target.phrase):
            logger.info("Matched %r", self._state.target.phrase)
            self._succeed()
        else:
            logger.info(
                "No match for %r in %s", self._state.target.phrase, list(event.hypotheses)
            )
            self._fail()

    def _on_error(self, event: RecognitionError) -> None:
        if self._state.phase != Phase.LISTENING:
            return
        self._listening = False
        self._state.mic_level = 0
        severity = classify_error(event.code)
        if severity == ErrorSeverity.FATAL:
            self._disable("speech recognizer error: {}".format(event.code.value))
            return
        if severity == ErrorSeverity.TRANSIENT:
            logger.warning("Transient recognizer error %s; counting as a failed attempt", event.code.value)
        else:
            logger.debug("Recognizer reported %s", event.code.value)
        self._fail()

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------

    def _succeed(self) -> None:
        self._state.phase = Phase.FEEDBACK
        self._state.attempts.record_success()
        self._cues.play_success()
        self._schedule_dwell(DwellKind.SUCCESS, self.options.success_dwell_s)
        self._emit()

    def _fail(self) -> None:
        self._state.phase = Phase.FEEDBACK
        self._state.attempts.record_failure()
        self._cues.play_failure()
        self._schedule_dwell(DwellKind.FAILURE, self.options.failure_dwell_s)
        self._emit()

    def _on_dwell(self, event: DwellElapsed) -> None:
        if self._state.phase != Phase.FEEDBACK:
            return
        if event.kind == DwellKind.SUCCESS:
            sentence = self._state.sentence
            self._state.attempts.reset()
            self._state.target = None
            self._state.phase = Phase.IDLE
            self._emit()
            if sentence is not None:
                self._advance(sentence)
            return

        if self._state.attempts.exhausted:
            self._escalate()
            return
        self._state.attempts.last_success = None
        self._state.phase = Phase.LISTENING
        self._start_listening()
        self._emit()

    def _escalate(self) -> None:
        sentence = self._state.sentence
        target = self._state.target
        if sentence is None or target is None:
            return
        logger.info("Three failed attempts on %r; playing correction", target.phrase)
        epoch = self._next_epoch()
        self._playing = True
        self._emit()
        self._clipper.play_correction(
            sentence, target, lambda: self.post(CorrectionDone(epoch))
        )

    def _advance(self, sentence: Sentence) -> None:
        self._notify(self._on_advance, sentence)
        if not self.options.auto_advance or self._text_source is None or self._closed:
            return
        following = self._text_source.next_sentence()
        if following is None:
            logger.info("Reached the last sentence")
            return
        self._on_start(StartSentence(following))

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def _ensure_recognizer(self) -> Optional[SpeechRecognizer]:
        if self._recognizer is None:
            try:
                self._recognizer = self._recognizer_factory()
            except Exception:
                logger.exception("Failed to create speech recognizer")
                self._disable("speech recognizer unavailable")
                return None
            logger.debug("Speech recognizer pre-warmed")
        return self._recognizer

    def _start_listening(self) -> None:
        recognizer = self._ensure_recognizer()
        if recognizer is None:
            return
        epoch = self._next_epoch()
        self._listening = True
        self._state.mic_level = 0
        try:
            recognizer.start(
                on_ready=lambda: self.post(RecognizerReady(epoch)),
                on_partial=lambda hyps: self.post(PartialResults(epoch, tuple(hyps))),
                on_result=lambda hyps: self.post(RecognitionResults(epoch, tuple(hyps))),
                on_error=lambda code: self.post(
                    RecognitionError(epoch, RecognizerErrorCode.parse(code))
                ),
                on_rms=lambda rms_db: self.post(MicLevel(epoch, rms_db)),
            )
        except Exception:
            logger.exception("Speech recognizer failed to start")
            self._listening = False
            self._disable("speech recognizer failed to start")

    def _stop_listening(self) -> None:
        if self._listening and self._recognizer is not None:
            self._recognizer.cancel()
        self._listening = False

    def _destroy_recognizer(self) -> None:
        self._stop_listening()
        if self._recognizer is not None:
            self._recognizer.destroy()
            self._recognizer = None

    def _cancel_dwells(self) -> None:
        for task in list(self._dwell_tasks):
            task.cancel()
        self._dwell_tasks.clear()

    def _schedule_dwell(self, kind: DwellKind, delay_s: float) -> None:
        event = DwellElapsed(self._next_epoch(), kind)
        task = asyncio.get_running_loop().create_task(self._dwell(delay_s, event))
        self._dwell_tasks.add(task)
        task.add_done_callback(self._dwell_tasks.discard)

    async def _dwell(self, delay_s: float, event: DwellElapsed) -> None:
        await asyncio.sleep(delay_s)
        self.post(event)

    def _reset_to_idle(self) -> None:
        self._next_epoch()
        self._cancel_dwells()
        self._stop_listening()
        if self._playing:
            self._tts.stop()
            self._playing = False
        self._state.phase = Phase.IDLE
        self._state.target = None
        self._state.attempts.reset()
        self._state.mic_level = 0

    def _read_plain(self) -> None:
        sentence = self._state.sentence
        if sentence is None:
            return
        epoch = self._next_epoch()
        self._playing = True
        self._tts.play_full(sentence.text, lambda: self.post(PlainReadingDone(epoch)))

    def _disable(self, reason: str) -> None:
        if self._disabled:
            return
        self._disabled = True
        logger.warning("Collaborative mode disabled: %s", reason)
        self._reset_to_idle()
        self._destroy_recognizer()
        self._notify(self._on_disabled, reason)
        self._read_plain()
        self._emit()
