"""Strategy interfaces for homophone lookup and phonetic encoding.

WHY: Homophone classes and phonetic codes are language-specific. The
aligner should not care whether it is comparing English Double Metaphone
codes or some other locale's scheme, so both are small pluggable
strategies.

HOW: Two ABCs. HomophoneTable answers "do these two normalized tokens
sound identical?" PhoneticEncoder turns a token into a (primary,
alternate) code pair.

To add a locale:
1. Subclass HomophoneTable and/or PhoneticEncoder
2. Register the pair in MATCHER_STRATEGIES in matching/__init__.py

RULES:
- Both strategies are stateless after construction and safe to share
- Inputs are already normalized (lowercase, punctuation stripped)
- An empty code means "no code"; it never matches anything
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Tuple


class HomophoneTable(ABC):
    """Equivalence classes of tokens that sound the same."""

    @abstractmethod
    def are_homophones(self, spoken: str, target: str) -> bool:
        """True if both tokens belong to the same equivalence class."""


class PhoneticEncoder(ABC):
    """Maps a token to its phonetic codes."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable encoder name, e.g. 'Double Metaphone'."""

    @abstractmethod
    def encode(self, token: str) -> Tuple[str, str]:
        """Return (primary, alternate) codes; either may be empty."""
