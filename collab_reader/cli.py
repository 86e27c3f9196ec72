"""Command-line interface for the Collaborative Reading Engine.

WHY: The engine normally lives inside a reading app, but tuning the
matcher, checking which words a sentence hands to the listener, warming
the audio cache, and rehearsing a text end to end are all easier from a
terminal.

HOW: argparse with one subcommand per task:
  target    — print the target phrase, its range, and the carrier
  match     — judge hypotheses against a target (exit code 0 / 1)
  timestamp — look up a word's offset in the cached audio
  precache  — synthesize and cache every sentence of a text file
  rehearse  — run a full collaborative session with typed attempts
Async work runs via asyncio.run(). Status messages go to stderr.

RULES:
- Results go to stdout, status and errors to stderr
- Every command returns an exit code; main() passes it to sys.exit()
- -v/--verbose switches logging to DEBUG, otherwise WARNING
- Text files hold one sentence per line; blank lines are skipped
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from collab_reader import __version__
from collab_reader.audio.cache import AudioCache
from collab_reader.audio.kokoro import KokoroClient, precache_sentences
from collab_reader.config import (
    CACHE_DIR,
    FAILURE_DWELL_S,
    KOKORO_VOICE,
    SUCCESS_DWELL_S,
    KokoroNotConfiguredError,
)
from collab_reader.console import (
    ConsoleCues,
    ConsoleRecognizer,
    ConsoleTTS,
    ListTextSource,
)
from collab_reader.core.models import Phase, Sentence, SessionState
from collab_reader.core.target import carrier_text, extract_target
from collab_reader.matching import MATCHER_STRATEGIES, build_matcher
from collab_reader.session.machine import CollaborativeSession, SessionOptions


def _status(msg: str) -> None:
    """Print a status message to stderr, flushed."""
    print(msg, file=sys.stderr, flush=True)


def _read_sentences(path: Path) -> Optional[List[str]]:
    if not path.is_file():
        _status("Error: File not found: {}".format(path))
        return None
    lines = [line.strip() for line in path.read_text(encoding="utf-8").splitlines()]
    sentences = [line for line in lines if line]
    if not sentences:
        _status("Error: No sentences in {}".format(path))
        return None
    return sentences


def _cache_from_args(args: argparse.Namespace) -> AudioCache:
    return AudioCache(cache_dir=args.cache_dir, voice=args.voice)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_target(args: argparse.Namespace) -> int:
    target = extract_target(args.sentence)
    print("target:  {}".format(target.phrase))
    print("range:   [{}, {})".format(target.start, target.end))
    print("carrier: {}".format(carrier_text(args.sentence, target)))
    return 0


def _cmd_match(args: argparse.Namespace) -> int:
    try:
        matcher = build_matcher(args.locale)
    except KeyError as e:
        _status("Error: {}".format(e.args[0]))
        return 2
    if matcher.is_match(args.hypotheses, args.target):
        print("MATCH")
        return 0
    print("NO MATCH")
    return 1


def _cmd_timestamp(args: argparse.Namespace) -> int:
    cache = _cache_from_args(args)
    offset = cache.find_word_timestamp_ms(args.sentence, args.word, args.occurrence)
    if offset is None:
        _status("No cached timing for {!r} in that sentence".format(args.word))
        return 1
    print(offset)
    return 0


async def _precache(args: argparse.Namespace, sentences: List[str]) -> int:
    cache = _cache_from_args(args)
    if not cache.enabled:
        _status("Voice {} is not a Kokoro voice; nothing to cache".format(cache.voice))
        return 1
    async with KokoroClient(base_url=args.url, voice=cache.voice) as client:
        cached = await precache_sentences(client, cache, sentences)
    _status("Cached {} new sentence(s) in {}".format(cached, cache.cache_dir))
    return 0


def _cmd_precache(args: argparse.Namespace) -> int:
    sentences = _read_sentences(args.file)
    if sentences is None:
        return 1
    try:
        return asyncio.run(_precache(args, sentences))
    except KokoroNotConfiguredError as e:
        _status("Error: {}".format(e))
        return 1


async def _rehearse(args: argparse.Namespace, source: ListTextSource) -> int:
    cache = _cache_from_args(args)
    options = SessionOptions(
        collaborative_mode=not args.plain,
        auto_advance=True,
        kid_mode=False,
        success_dwell_s=args.success_dwell,
        failure_dwell_s=args.failure_dwell,
    )
    last_phase = [Phase.IDLE]
    disabled: List[str] = []

    def on_state(state: SessionState) -> None:
        if state.phase == Phase.LISTENING and last_phase[0] != Phase.LISTENING:
            if state.target is not None:
                print("  Your turn: {}  (attempt {})".format(
                    state.target.phrase, state.attempts.count + 1))
        last_phase[0] = state.phase

    def on_advance(sentence: Sentence) -> None:
        if source.at_end:
            session.close()

    def on_disabled(reason: str) -> None:
        disabled.append(reason)
        _status("Collaborative mode disabled: {}".format(reason))

    session = CollaborativeSession(
        tts=ConsoleTTS(cache=cache),
        recognizer_factory=ConsoleRecognizer,
        cues=ConsoleCues(),
        index=cache,
        text_source=source,
        matcher=build_matcher(args.locale),
        options=options,
        on_state=on_state,
        on_advance=on_advance,
        on_disabled=on_disabled,
    )
    session.start_current()
    await session.run()
    return 1 if disabled else 0


def _cmd_rehearse(args: argparse.Namespace) -> int:
    sentences = _read_sentences(args.file)
    if sentences is None:
        return 1
    source = ListTextSource.from_lines(sentences)
    _status("Rehearsing {} sentence(s). Type the last word(s); Enter alone = silence.".format(
        len(source.sentences)))
    try:
        return asyncio.run(_rehearse(args, source))
    except KeyboardInterrupt:
        _status("\nInterrupted.")
        return 130


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _add_cache_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--voice",
        default=KOKORO_VOICE,
        help="Kokoro voice whose cache is used (default: %(default)s)",
    )
    parser.add_argument(
        "--cache-dir",
        type=Path,
        default=CACHE_DIR,
        help="Audio cache directory (default: %(default)s)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="collab_reader",
        description="Collaborative reading engine: the voice reads, the listener finishes the sentence.",
    )
    parser.add_argument("--version", action="version", version="%(prog)s " + __version__)
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log engine decisions at DEBUG level",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_target = sub.add_parser("target", help="Show the target phrase of a sentence")
    p_target.add_argument("sentence")
    p_target.set_defaults(func=_cmd_target)

    p_match = sub.add_parser("match", help="Judge recognizer hypotheses against a target")
    p_match.add_argument("--target", required=True, help="Target phrase")
    p_match.add_argument("hypotheses", nargs="+", help="One or more recognizer hypotheses")
    p_match.add_argument(
        "--locale",
        default="en",
        help="Matcher locale (known: {})".format(", ".join(sorted(MATCHER_STRATEGIES))),
    )
    p_match.set_defaults(func=_cmd_match)

    p_ts = sub.add_parser("timestamp", help="Look up a word offset in cached audio")
    p_ts.add_argument("sentence")
    p_ts.add_argument("word")
    p_ts.add_argument(
        "--occurrence",
        type=int,
        default=0,
        help="Which match counted from the end (default: 0, the last)",
    )
    _add_cache_options(p_ts)
    p_ts.set_defaults(func=_cmd_timestamp)

    p_pre = sub.add_parser("precache", help="Synthesize and cache every sentence of a file")
    p_pre.add_argument("file", type=Path, help="Text file, one sentence per line")
    p_pre.add_argument("--url", default=None, help="Kokoro server URL (default: KOKORO_BASE_URL)")
    _add_cache_options(p_pre)
    p_pre.set_defaults(func=_cmd_precache)

    p_reh = sub.add_parser("rehearse", help="Run a collaborative session in the terminal")
    p_reh.add_argument("file", type=Path, help="Text file, one sentence per line")
    p_reh.add_argument("--plain", action="store_true", help="Read without collaboration")
    p_reh.add_argument("--locale", default="en", help="Matcher locale")
    p_reh.add_argument("--success-dwell", type=float, default=SUCCESS_DWELL_S, metavar="SECONDS")
    p_reh.add_argument("--failure-dwell", type=float, default=FAILURE_DWELL_S, metavar="SECONDS")
    _add_cache_options(p_reh)
    p_reh.set_defaults(func=_cmd_rehearse)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``python -m collab_reader``.

    RULES:
    - argv=None means use sys.argv
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
