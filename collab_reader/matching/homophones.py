"""English homophone equivalence classes.

WHY: Recognizers pick a spelling for what they heard. A child who reads
"to" perfectly may be transcribed as "two", "too", or "2"; judging on
spelling alone would call that a failure.

HOW: HOMOPHONE_CLASSES is plain data, one tuple per class. The table
normalizes every entry the same way the matcher normalizes speech and
builds a word -> class-id dict, so membership is a single lookup.

RULES:
- Digit spellings sit in the class of the word they sound like
- A word appearing in two classes keeps the first one
- Unknown words are homophones of nothing (not even themselves)
"""

from __future__ import annotations

from typing import Callable, Dict, Iterable, Optional, Sequence, Tuple

from collab_reader.core.target import strip_punctuation
from collab_reader.matching.base import HomophoneTable

HOMOPHONE_CLASSES: Tuple[Tuple[str, ...], ...] = (
    ("to", "too", "two", "2"),
    ("for", "four", "fore", "4"),
    ("one", "won", "1"),
    ("eight", "ate", "8"),
    ("there", "their", "they're"),
    ("your", "you're"),
    ("its", "it's"),
    ("by", "buy", "bye"),
    ("know", "no"),
    ("knew", "new"),
    ("knight", "night"),
    ("knot", "not"),
    ("right", "write", "rite"),
    ("hear", "here"),
    ("see", "sea"),
    ("be", "bee"),
    ("blue", "blew"),
    ("red", "read"),
    ("road", "rode"),
    ("sun", "son"),
    ("meet", "meat"),
    ("week", "weak"),
    ("tail", "tale"),
    ("pair", "pear", "pare"),
    ("bear", "bare"),
    ("flower", "flour"),
    ("hole", "whole"),
    ("hour", "our"),
    ("made", "maid"),
    ("mail", "male"),
    ("plain", "plane"),
    ("rain", "reign", "rein"),
    ("sail", "sale"),
    ("some", "sum"),
    ("wait", "weight"),
    ("way", "weigh"),
    ("where", "wear"),
    ("which", "witch"),
    ("wood", "would"),
    ("deer", "dear"),
    ("dew", "due"),
    ("flew", "flu"),
    ("hi", "high"),
    ("i", "eye", "aye"),
    ("allowed", "aloud"),
    ("ball", "bawl"),
    ("cent", "sent", "scent"),
    ("heard", "herd"),
    ("higher", "hire"),
    ("mist", "missed"),
    ("passed", "past"),
    ("peace", "piece"),
    ("stair", "stare"),
    ("steal", "steel"),
    ("threw", "through"),
    ("toe", "tow"),
    ("weather", "whether"),
    ("who's", "whose"),
    ("ok", "okay"),
    ("mr", "mister"),
    ("mrs", "missus"),
    ("three", "3"),
    ("five", "5"),
    ("six", "6"),
    ("seven", "7"),
    ("nine", "9"),
    ("ten", "10"),
)


def _default_normalize(token: str) -> str:
    return strip_punctuation(token.lower().replace("’", "'"))


class SetHomophoneTable(HomophoneTable):
    """Homophone table built from a sequence of equivalence classes.

    WHY: Locales differ only in their data, so one implementation covers
    any table of classes.

    HOW: Each normalized member maps to the index of its class. Two tokens
    are homophones when both are present and share an index.
    """

    def __init__(
        self,
        classes: Iterable[Sequence[str]],
        normalize: Optional[Callable[[str], str]] = None,
    ) -> None:
        norm = normalize or _default_normalize
        self._class_of: Dict[str, int] = {}
        for index, members in enumerate(classes):
            for member in members:
                key = norm(member)
                if key:
                    self._class_of.setdefault(key, index)

    def are_homophones(self, spoken: str, target: str) -> bool:
        spoken_class = self._class_of.get(spoken)
        if spoken_class is None:
            return False
        return spoken_class == self._class_of.get(target)

    def __contains__(self, token: object) -> bool:
        return token in self._class_of

    def __len__(self) -> int:
        return len(self._class_of)


class EnglishHomophones(SetHomophoneTable):
    """The default English table."""

    def __init__(self) -> None:
        super().__init__(HOMOPHONE_CLASSES)
