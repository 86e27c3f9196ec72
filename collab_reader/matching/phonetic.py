"""Double Metaphone phonetic encoder.

WHY: Recognizers often transcribe a correctly read word as a different,
similar-sounding spelling ("wounded" heard as "when did"). Comparing
phonetic codes instead of letters catches those.

HOW: Wraps metaphone.doublemetaphone, which returns a primary code and
an (often empty) alternate code. Results are memoized per token since
the same few target words are compared over and over.

RULES:
- Codes are uppercase strings; empty means the token has no code
  (digits, punctuation)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Tuple

from metaphone import doublemetaphone

from collab_reader.matching.base import PhoneticEncoder


@lru_cache(maxsize=4096)
def _double_metaphone(token: str) -> Tuple[str, str]:
    primary, alternate = doublemetaphone(token)
    return (primary or "", alternate or "")


class DoubleMetaphoneEncoder(PhoneticEncoder):
    """PhoneticEncoder backed by the metaphone library."""

    @property
    def name(self) -> str:
        return "Double Metaphone"

    def encode(self, token: str) -> Tuple[str, str]:
        if not token:
            return ("", "")
        return _double_metaphone(token)
