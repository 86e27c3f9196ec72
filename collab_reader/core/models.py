"""Data model for a collaborative reading session.

WHY: The session, the clipper, and the UI all need to agree on what a
sentence is, which part of it the listener reads, and how many attempts
have been spent. These dataclasses are that contract.

HOW: Small dataclasses, frozen where the value never changes once built:
  Sentence      : the unit being read, supplied by a text source
  TargetSpan    : the trailing phrase and its [start, end) offsets
  AttemptRecord : failed-attempt counter and last outcome
  Phase         : Idle / Listening / Feedback
  SessionState  : the one mutable entity, owned by CollaborativeSession

RULES:
- TargetSpan.start/end index Sentence.text, not the trimmed text
- AttemptRecord.count stays within [0, MAX_ATTEMPTS]
- SessionState.target is None only while Idle before the carrier finished
- Observers receive snapshot() copies, never the live state
"""

from __future__ import annotations

import copy
import enum
from dataclasses import dataclass, field
from typing import Optional, Tuple

from collab_reader.config import MAX_ATTEMPTS


@dataclass(frozen=True)
class Sentence:
    """One sentence of page text.

    is_complete is False for a fragment cut off at a page boundary; the
    engine treats both the same but hosts may skip incomplete ones.
    """

    text: str
    is_complete: bool = True


@dataclass(frozen=True)
class TargetSpan:
    """The trailing word(s) of a sentence the listener is asked to read."""

    phrase: str
    start: int
    end: int

    @property
    def char_range(self) -> Tuple[int, int]:
        return (self.start, self.end)


@dataclass
class AttemptRecord:
    """Failed attempts on the current target and the last judged outcome.

    RULES:
    - count: 0..MAX_ATTEMPTS, incremented only on a failed attempt
    - last_success: None until an attempt has been judged
    """

    count: int = 0
    last_success: Optional[bool] = None

    def record_failure(self) -> None:
        self.count = min(self.count + 1, MAX_ATTEMPTS)
        self.last_success = False

    def record_success(self) -> None:
        self.last_success = True

    def reset(self) -> None:
        self.count = 0
        self.last_success = None

    @property
    def exhausted(self) -> bool:
        return self.count >= MAX_ATTEMPTS


class Phase(str, enum.Enum):
    """Session phases.

    HOW: Inherits from str so values log and serialize cleanly.
    """

    IDLE = "idle"
    LISTENING = "listening"
    FEEDBACK = "feedback"


@dataclass
class SessionState:
    """Everything a UI needs to render the collaborative reading session.

    WHY: Callback-driven code tends to grow a second copy of "the current
    target" next to the UI state. There is exactly one owned state object
    here, mutated only by the session's dispatch function.

    RULES:
    - phase: current Phase
    - sentence: the sentence being read, or None before the first one
    - target: highlighted TargetSpan, None while Idle before carrier done
    - attempts: AttemptRecord for the current target
    - mic_level: 0..100, derived from recognizer RMS
    """

    phase: Phase = Phase.IDLE
    sentence: Optional[Sentence] = None
    target: Optional[TargetSpan] = None
    attempts: AttemptRecord = field(default_factory=AttemptRecord)
    mic_level: int = 0

    def snapshot(self) -> SessionState:
        """Return an independent copy safe to hand to observers."""
        return copy.deepcopy(self)
