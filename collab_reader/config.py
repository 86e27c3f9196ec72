"""Configuration constants, engine tunables, and .env loading.

WHY: Attempt budgets, dwell times, punctuation sets, and the Kokoro
server location are all values someone will want to tweak without
reading the state machine. Keeping them as plain module-level data makes
them easy to find and override.

HOW: python-dotenv loads the .env file on import. Constants are defined
as module-level values, with environment variables taking precedence
where a deployment might reasonably differ (dwell times, server URL,
voice, cache location).

RULES:
- MAX_ATTEMPTS is the number of failed attempts before escalation (3)
- SENTENCE_PUNCTUATION is shared by target extraction and matching
- KOKORO_BASE_URL is empty when no synthesis server is configured
- Only Kokoro voices (bf_* / bm_*) are cached; on-device voices are not
- All defaults can be overridden via environment variables
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (where the script is run from)
load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(
            "{} must be a number, got {!r}".format(name, raw)
        ) from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


# ---------------------------------------------------------------------------
# Attempt budget and matching thresholds
# ---------------------------------------------------------------------------

MAX_ATTEMPTS = 3
"""Consecutive failed attempts before the correct reading is played."""

CONTAINMENT_MIN_LENGTH = 3
"""Target tokens shorter than this never match by substring containment."""

MIN_PHONETIC_LENGTH = 4
"""Target tokens shorter than this skip the phonetic-code comparison."""

SENTENCE_PUNCTUATION = ".!?,;:\"'()[]"
"""Characters stripped from token edges before syllable counting and matching."""

# ---------------------------------------------------------------------------
# Session timing
# ---------------------------------------------------------------------------

SUCCESS_DWELL_S = _env_float("COLLAB_SUCCESS_DWELL_S", 1.2)
FAILURE_DWELL_S = _env_float("COLLAB_FAILURE_DWELL_S", 1.0)

# ---------------------------------------------------------------------------
# Reader preferences (defaults; persisted by the host application)
# ---------------------------------------------------------------------------

DEFAULT_COLLABORATIVE_MODE = _env_bool("COLLAB_COLLABORATIVE_MODE", True)
DEFAULT_AUTO_ADVANCE = _env_bool("COLLAB_AUTO_ADVANCE", False)
DEFAULT_KID_MODE = _env_bool("COLLAB_KID_MODE", True)

# ---------------------------------------------------------------------------
# Kokoro synthesis server and audio cache
# ---------------------------------------------------------------------------

KOKORO_BASE_URL = os.getenv("KOKORO_BASE_URL", "").strip()
KOKORO_VOICE = os.getenv("KOKORO_VOICE", "bm_lewis")
KOKORO_CONNECT_TIMEOUT_S = 5.0
KOKORO_READ_TIMEOUT_S = 15.0

CACHE_DIR = Path(
    os.getenv("COLLAB_CACHE_DIR", str(Path.home() / ".cache" / "collab_reader" / "tts"))
).expanduser()

_KOKORO_VOICE_PREFIXES = ("bf_", "bm_")


class KokoroNotConfiguredError(ValueError):
    """Raised when a Kokoro operation is requested without a server URL."""


def load_kokoro_url() -> str:
    """Return the configured Kokoro server URL.

    WHY: Pre-caching and synthesis need a server; failing early with a
    clear message beats an httpx error about a relative URL.

    RULES:
    - Raises KokoroNotConfiguredError if KOKORO_BASE_URL is missing or empty
    - Never returns a default/placeholder value
    """
    url = os.getenv("KOKORO_BASE_URL", KOKORO_BASE_URL).strip()
    if not url:
        raise KokoroNotConfiguredError(
            "Kokoro server URL not configured. "
            "Add KOKORO_BASE_URL to the .env file."
        )
    return url


def is_kokoro_voice(voice: str) -> bool:
    """True for network Kokoro voices (British female/male prefixes)."""
    return voice.startswith(_KOKORO_VOICE_PREFIXES)
