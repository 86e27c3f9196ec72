"""Core data model and sentence analysis.

WHY: Every other layer talks in terms of sentences, target spans, and
attempt records. Keeping those types and the pure text analysis that
produces them in one place gives the matcher, clipper, and session a
shared vocabulary with no audio or recognizer dependencies.

HOW: models.py defines the dataclasses and the Phase enum, syllables.py
estimates syllable counts, target.py picks the trailing words the
listener reads.

RULES:
- Everything in core is pure and deterministic
- TargetSpan offsets always index the original Sentence.text
"""
