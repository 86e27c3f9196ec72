"""Tests for recognizer error classification."""

from __future__ import annotations

import pytest

from collab_reader.session.events import (
    ErrorSeverity,
    RecognizerErrorCode,
    classify_error,
)


class TestClassifyError:
    @pytest.mark.parametrize("code", [
        RecognizerErrorCode.NO_MATCH,
        RecognizerErrorCode.SPEECH_TIMEOUT,
    ])
    def test_attempt_level(self, code):
        assert classify_error(code) == ErrorSeverity.ATTEMPT

    @pytest.mark.parametrize("code", [
        RecognizerErrorCode.RECOGNIZER_BUSY,
        RecognizerErrorCode.NETWORK,
        RecognizerErrorCode.NETWORK_TIMEOUT,
        RecognizerErrorCode.SERVER,
        RecognizerErrorCode.UNKNOWN,
    ])
    def test_transient(self, code):
        assert classify_error(code) == ErrorSeverity.TRANSIENT

    @pytest.mark.parametrize("code", [
        RecognizerErrorCode.INSUFFICIENT_PERMISSIONS,
        RecognizerErrorCode.CLIENT,
        RecognizerErrorCode.AUDIO,
        RecognizerErrorCode.SERVER_DISCONNECTED,
        RecognizerErrorCode.LANGUAGE_UNAVAILABLE,
    ])
    def test_fatal(self, code):
        assert classify_error(code) == ErrorSeverity.FATAL

    def test_accepts_plain_strings(self):
        assert classify_error("no_match") == ErrorSeverity.ATTEMPT
        assert classify_error("audio") == ErrorSeverity.FATAL

    def test_unrecognized_string_is_transient(self):
        assert RecognizerErrorCode.parse("brand_new_code") == RecognizerErrorCode.UNKNOWN
        assert classify_error("brand_new_code") == ErrorSeverity.TRANSIENT
