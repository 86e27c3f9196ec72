"""Fuzzy judgement of spoken attempts against a target phrase.

WHY: Speech recognizers substitute homophones, split one word into two,
and mis-spell phonetically similar words, especially for children's
voices. An exact string comparison would reject most correct readings.

HOW: Both sides are normalized into token lists. Each recognizer
hypothesis is aligned against the target with a memoized backtracking
search over (spoken_idx, target_idx):
  1. all target tokens consumed → match
  2. spoken tokens exhausted → no match
  3. one spoken token vs the current target token
  4. two spoken tokens concatenated vs the current target token
     (recovers "when did" → "wounded")
  5. before the first target token has matched, skip one leading spoken
     token (fillers like "um", a misheard false start)
Single-token comparison tries, in order: equality, homophone class,
containment, phonetic codes.

RULES:
- Any one hypothesis aligning is enough
- If none aligns alone, the hypotheses are tried once more joined into
  one utterance; some recognizers split a phrase across entries
- Extra spoken tokens after the target is consumed are ignored
- Leading skips stop as soon as a target token has matched
- Containment (target inside spoken) needs a target of 3+ characters
- Phonetic comparison needs a target of 4+ characters; Double Metaphone
  ignores vowels, so shorter words would collide ("ran" / "run")
- Empty phonetic codes never match
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional, Tuple

from collab_reader.config import CONTAINMENT_MIN_LENGTH, MIN_PHONETIC_LENGTH
from collab_reader.core.target import strip_punctuation
from collab_reader.matching.base import HomophoneTable, PhoneticEncoder
from collab_reader.matching.homophones import EnglishHomophones
from collab_reader.matching.phonetic import DoubleMetaphoneEncoder

logger = logging.getLogger(__name__)

# Hyphens and dashes separate words ("wounded-stream" → "wounded stream").
_WORD_SEPARATORS_RE = re.compile(r"[-‐‑–—]+")


def normalize_tokens(text: str) -> List[str]:
    """Lowercase, split on whitespace and dashes, strip edge punctuation.

    Example:
        >>> normalize_tokens('"Wounded-stream," she said.')
        ['wounded', 'stream', 'she', 'said']
    """
    lowered = text.lower().replace("’", "'").replace("‘", "'")
    spaced = _WORD_SEPARATORS_RE.sub(" ", lowered)
    tokens = (strip_punctuation(t) for t in spaced.split())
    return [t for t in tokens if t]


class PhoneticMatcher:
    """Decides whether any recognizer hypothesis reads the target phrase.

    WHY: This is the judge of the collaborative session. It has to accept
    the many ways a correct reading gets transcribed while still
    rejecting a genuinely different word.

    HOW: Stateless apart from its two strategies. Homophone lookup and
    phonetic encoding are injected so other locales can swap them.

    RULES:
    - is_match() never raises for any string input
    - Comparison order is fixed: equality → homophone → containment → phonetic
    """

    def __init__(
        self,
        homophones: Optional[HomophoneTable] = None,
        encoder: Optional[PhoneticEncoder] = None,
    ) -> None:
        self.homophones = homophones or EnglishHomophones()
        self.encoder = encoder or DoubleMetaphoneEncoder()

    def is_match(self, hypotheses: Iterable[str], target: str) -> bool:
        """True if any hypothesis aligns with the target phrase.

        Args:
            hypotheses: Alternative transcriptions of one utterance
                        (or its pieces), most likely first.
            target: The target phrase as shown to the reader
                    (punctuation allowed).
        """
        hypotheses = list(hypotheses)
        target_tokens = normalize_tokens(target)
        for hypothesis in hypotheses:
            spoken_tokens = normalize_tokens(hypothesis)
            if self.align_tokens(spoken_tokens, target_tokens):
                logger.debug("Hypothesis %r matches target %r", hypothesis, target)
                return True
        if len(hypotheses) > 1:
            joined = " ".join(hypotheses)
            if self.align_tokens(normalize_tokens(joined), target_tokens):
                logger.debug("Joined hypotheses %r match target %r", joined, target)
                return True
        return False

    def align_tokens(self, spoken: List[str], target: List[str]) -> bool:
        """Backtracking alignment of spoken tokens onto target tokens."""
        memo: Dict[Tuple[int, int], bool] = {}
        n_spoken = len(spoken)
        n_target = len(target)

        def _align(si: int, ti: int) -> bool:
            if ti == n_target:
                return True
            if si >= n_spoken:
                return False

            key = (si, ti)
            cached = memo.get(key)
            if cached is not None:
                return cached

            result = False
            if self.token_match(spoken[si], target[ti]) and _align(si + 1, ti + 1):
                result = True
            elif (
                si + 1 < n_spoken
                and self.token_match(spoken[si] + spoken[si + 1], target[ti])
                and _align(si + 2, ti + 1)
            ):
                result = True
            elif ti == 0 and n_spoken - (si + 1) >= n_target:
                result = _align(si + 1, 0)

            memo[key] = result
            return result

        return _align(0, 0)

    def token_match(self, spoken: str, target: str) -> bool:
        """Compare one (possibly concatenated) spoken token to a target token."""
        if spoken == target:
            return True
        if self.homophones.are_homophones(spoken, target):
            return True
        if len(target) >= CONTAINMENT_MIN_LENGTH and target in spoken:
            return True
        if len(target) >= MIN_PHONETIC_LENGTH:
            return self._codes_match(spoken, target)
        return False

    def _codes_match(self, spoken: str, target: str) -> bool:
        spoken_codes = [c for c in self.encoder.encode(spoken) if c]
        target_codes = [c for c in self.encoder.encode(target) if c]
        return any(s == t for s in spoken_codes for t in target_codes)
