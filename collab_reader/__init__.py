"""Collaborative Reading Engine — read most of a sentence, let the child finish it.

WHY: A young reader gains confidence when a fluent voice carries them
through a sentence and hands over only the last word or two. The engine
has to stop the synthesized voice exactly before those words, listen to
the child, and judge the attempt despite everything speech recognition
gets wrong about children's voices.

HOW: Four layers, leaves first:
  core     — target span extraction (which trailing words the child reads)
  matching — fuzzy token alignment with homophones and phonetic codes
  audio    — cached word timestamps and clipped playback of the carrier
  session  — the asyncio state machine driving listen / judge / retry

RULES:
- The TTS and ASR engines are collaborators; only their contracts live here
- SessionState is mutated only by the session's dispatch function
- Attempt-level failures never raise; they are state transitions
"""

__version__ = "0.1.0"
