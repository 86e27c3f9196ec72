"""Events consumed by the session state machine, and recognizer error taxonomy.

WHY: Playback, recognition, and timers all finish asynchronously. If
each callback wrote session state directly, a late TTS-done callback
could clobber a newer sentence's state. Callbacks only describe what
happened; the state machine decides what it means.

HOW: One small frozen dataclass per event. Events that originate from
collaborator callbacks carry the epoch under which the operation was
started; the session drops events from an older epoch. Recognizer error
codes are a str enum mirroring the platform codes, and classify_error()
sorts them into three severities.

RULES:
- ATTEMPT: no speech / speech timeout, an ordinary failed attempt
- TRANSIENT: busy / network / server hiccups, also a failed attempt
- FATAL: permissions, client, audio, service gone; disables collaboration
- Unknown codes are TRANSIENT so a surprise value cannot strand the reader
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Tuple, Union

from collab_reader.core.models import Sentence


class RecognizerErrorCode(str, enum.Enum):
    """Recognizer failure reasons."""

    AUDIO = "audio"
    CLIENT = "client"
    INSUFFICIENT_PERMISSIONS = "insufficient_permissions"
    NETWORK = "network"
    NETWORK_TIMEOUT = "network_timeout"
    NO_MATCH = "no_match"
    RECOGNIZER_BUSY = "recognizer_busy"
    SERVER = "server"
    SPEECH_TIMEOUT = "speech_timeout"
    SERVER_DISCONNECTED = "server_disconnected"
    LANGUAGE_UNAVAILABLE = "language_unavailable"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Union[str, RecognizerErrorCode]) -> RecognizerErrorCode:
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class ErrorSeverity(str, enum.Enum):
    ATTEMPT = "attempt"
    TRANSIENT = "transient"
    FATAL = "fatal"


_ATTEMPT_CODES = frozenset({
    RecognizerErrorCode.NO_MATCH,
    RecognizerErrorCode.SPEECH_TIMEOUT,
})

_FATAL_CODES = frozenset({
    RecognizerErrorCode.AUDIO,
    RecognizerErrorCode.CLIENT,
    RecognizerErrorCode.INSUFFICIENT_PERMISSIONS,
    RecognizerErrorCode.SERVER_DISCONNECTED,
    RecognizerErrorCode.LANGUAGE_UNAVAILABLE,
})


def classify_error(code: Union[str, RecognizerErrorCode]) -> ErrorSeverity:
    """Map a recognizer error code to how the session should treat it."""
    parsed = RecognizerErrorCode.parse(code)
    if parsed in _ATTEMPT_CODES:
        return ErrorSeverity.ATTEMPT
    if parsed in _FATAL_CODES:
        return ErrorSeverity.FATAL
    return ErrorSeverity.TRANSIENT


class DwellKind(str, enum.Enum):
    SUCCESS = "success"
    FAILURE = "failure"


# ---------------------------------------------------------------------------
# Commands (issued by the host)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StartSentence:
    sentence: Sentence


@dataclass(frozen=True)
class Cancel:
    reason: str = "cancel"


@dataclass(frozen=True)
class SetCollaborativeMode:
    enabled: bool


@dataclass(frozen=True)
class Shutdown:
    pass


# ---------------------------------------------------------------------------
# Completions (issued by collaborator callbacks and timers)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CarrierDone:
    epoch: int


@dataclass(frozen=True)
class CorrectionDone:
    epoch: int


@dataclass(frozen=True)
class PlainReadingDone:
    epoch: int


@dataclass(frozen=True)
class RecognizerReady:
    epoch: int


@dataclass(frozen=True)
class PartialResults:
    epoch: int
    hypotheses: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class RecognitionResults:
    epoch: int
    hypotheses: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class RecognitionError:
    epoch: int
    code: RecognizerErrorCode = RecognizerErrorCode.UNKNOWN


@dataclass(frozen=True)
class MicLevel:
    epoch: int
    rms_db: float = 0.0


@dataclass(frozen=True)
class DwellElapsed:
    epoch: int
    kind: DwellKind = DwellKind.FAILURE


Event = Union[
    StartSentence,
    Cancel,
    SetCollaborativeMode,
    Shutdown,
    CarrierDone,
    CorrectionDone,
    PlainReadingDone,
    RecognizerReady,
    PartialResults,
    RecognitionResults,
    RecognitionError,
    MicLevel,
    DwellElapsed,
]
