"""Target span extraction: which trailing words the listener reads aloud.

WHY: The engine reads the carrier and hands the end of the sentence to
the listener. The span must be long enough for speech recognition to
catch reliably, yet short enough to stay a child's task. One
multi-syllable word is enough; a one-syllable word gets its neighbour.

HOW: Tokenize the trimmed sentence on whitespace runs while keeping each
token's character offsets. Inspect the last token with the syllable
heuristic and choose one or two trailing tokens. The span's offsets are
translated back into the untrimmed Sentence.text.

RULES:
- 0 or 1 tokens: the whole trimmed sentence is the target
- Last word single-syllable and exactly 2 tokens: the whole sentence
- Last word single-syllable and 3+ tokens: the last two tokens
- Otherwise: the last token alone
- Punctuation stays in the phrase; it is only stripped for syllable counting
"""

from __future__ import annotations

import re
from typing import List, Tuple

from collab_reader.config import SENTENCE_PUNCTUATION
from collab_reader.core.models import TargetSpan
from collab_reader.core.syllables import count_syllables

_TOKEN_RE = re.compile(r"\S+")


def strip_punctuation(token: str) -> str:
    """Strip sentence punctuation from both edges of a token."""
    return token.strip(SENTENCE_PUNCTUATION)


def _token_spans(text: str) -> List[Tuple[int, int]]:
    return [(m.start(), m.end()) for m in _TOKEN_RE.finditer(text)]


def extract_target(sentence_text: str) -> TargetSpan:
    """Pick the target phrase of a sentence.

    Example:
        >>> extract_target("The dog ran fast.")
        TargetSpan(phrase='ran fast.', start=8, end=17)

    Args:
        sentence_text: Sentence text as supplied by the text source.

    Returns:
        TargetSpan whose [start, end) indexes sentence_text.
    """
    lead = len(sentence_text) - len(sentence_text.lstrip())
    trimmed = sentence_text.strip()
    spans = _token_spans(trimmed)

    if len(spans) <= 1:
        return TargetSpan(phrase=trimmed, start=lead, end=lead + len(trimmed))

    last_start, last_end = spans[-1]
    last_word = strip_punctuation(trimmed[last_start:last_end])

    if count_syllables(last_word) == 1:
        if len(spans) == 2:
            start = 0
        else:
            start = spans[-2][0]
    else:
        start = last_start

    return TargetSpan(
        phrase=trimmed[start:],
        start=lead + start,
        end=lead + len(trimmed),
    )


def carrier_text(sentence_text: str, target: TargetSpan) -> str:
    """Return the text read aloud before the target, stripped."""
    return sentence_text[: target.start].strip()


def first_target_word(target: TargetSpan) -> str:
    """The first word of the target phrase with punctuation stripped."""
    words = target.phrase.split()
    if not words:
        return ""
    return strip_punctuation(words[0])
