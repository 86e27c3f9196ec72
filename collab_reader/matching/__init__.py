"""Matcher strategy registry, keyed by locale.

WHY: The session builds its matcher from a locale setting. A central
dict makes adding a language one table class plus one line here, without
touching the state machine.

HOW: MATCHER_STRATEGIES maps a locale key to (homophone table class,
phonetic encoder class). build_matcher() instantiates the pair.

RULES:
- Keys are lowercase language codes
- Values are classes (not instances)
- Unknown locales raise KeyError naming the known ones
"""

from __future__ import annotations

from typing import Dict, Tuple, Type

from collab_reader.matching.base import HomophoneTable, PhoneticEncoder
from collab_reader.matching.homophones import EnglishHomophones
from collab_reader.matching.matcher import PhoneticMatcher, normalize_tokens
from collab_reader.matching.phonetic import DoubleMetaphoneEncoder

MATCHER_STRATEGIES: Dict[str, Tuple[Type[HomophoneTable], Type[PhoneticEncoder]]] = {
    "en": (EnglishHomophones, DoubleMetaphoneEncoder),
}


def build_matcher(locale: str = "en") -> PhoneticMatcher:
    """Create a PhoneticMatcher with the strategies registered for a locale."""
    try:
        table_cls, encoder_cls = MATCHER_STRATEGIES[locale.lower()]
    except KeyError:
        raise KeyError(
            "No matcher strategies for locale {!r}; known: {}".format(
                locale, ", ".join(sorted(MATCHER_STRATEGIES))
            )
        ) from None
    return PhoneticMatcher(homophones=table_cls(), encoder=encoder_cls())


__all__ = [
    "MATCHER_STRATEGIES",
    "PhoneticMatcher",
    "build_matcher",
    "normalize_tokens",
]
