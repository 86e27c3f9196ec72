"""Syllable-count heuristic for deciding how long the target span is.

WHY: Speech recognizers are unreliable on very short words ("it",
"the", "ran"). When the last word of a sentence is a single syllable the
engine asks for the last two words instead, so it needs a cheap way to
tell one-syllable words from longer ones.

HOW: Count transitions into a vowel group, then correct for a trailing
silent "e". No dictionary lookup.

RULES:
- Vowels are a, e, i, o, u, y
- A trailing "e" removes one syllable only if more than one was counted
- The result is never below 1, even for empty input
"""

from __future__ import annotations

_VOWELS = frozenset("aeiouy")


def count_syllables(word: str) -> int:
    """Estimate the number of syllables in a single word.

    Consistent rather than linguistically perfect: "the" and "fast" are 1,
    "table" is 1 after the silent-e rule, "forever" is 3.

    Args:
        word: A single word, ideally with punctuation already stripped.

    Returns:
        Estimated syllable count, at least 1.
    """
    lowered = word.lower()
    count = 0
    previous_was_vowel = False

    for char in lowered:
        is_vowel = char in _VOWELS
        if is_vowel and not previous_was_vowel:
            count += 1
        previous_was_vowel = is_vowel

    if lowered.endswith("e") and count > 1:
        count -= 1

    return max(count, 1)
