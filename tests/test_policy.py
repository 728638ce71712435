"""Tests for the error policy."""

import pytest

from i18nkit.errors import AbortRequested, ErrorCategory, ErrorTracker
from i18nkit.policy import ErrorPolicy


def scripted(*answers):
    replies = iter(answers)
    return lambda _prompt: next(replies)


class TestErrorPolicy:
    """Thresholds and interactive decisions."""

    def test_single_error_continues(self, reporter):
        """One recoverable error is recorded and the run goes on."""
        policy = ErrorPolicy(reporter=reporter)
        assert policy.handle_error(ErrorCategory.PARSE, "bad file", "line 3") == "continue"
        assert policy.messages() == ["bad file"]
        assert reporter.warnings == ["bad file (line 3)"]

    def test_non_interactive_notes_threshold_once(self, reporter):
        """Without a terminal the run keeps going after one notice."""
        policy = ErrorPolicy(reporter=reporter)
        for _ in range(ErrorTracker.CONSECUTIVE_LIMIT + 2):
            assert policy.handle_error(ErrorCategory.TRANSLATION, "batch failed") == "continue"
        notices = [warning for warning in reporter.warnings if "threshold" in warning]
        assert len(notices) == 1

    def test_interactive_abort(self, reporter):
        """Answering abort at the threshold raises ``AbortRequested``."""
        policy = ErrorPolicy(interactive=True, reporter=reporter, prompt=scripted("what", "a"))
        for _ in range(ErrorTracker.CONSECUTIVE_LIMIT - 1):
            policy.handle_error(ErrorCategory.PARSE, "bad file")
        with pytest.raises(AbortRequested):
            policy.handle_error(ErrorCategory.PARSE, "bad file")

    def test_interactive_continue_resets(self, reporter):
        """Continuing resets the consecutive counter."""
        policy = ErrorPolicy(interactive=True, reporter=reporter, prompt=scripted("c"))
        for _ in range(ErrorTracker.CONSECUTIVE_LIMIT):
            policy.handle_error(ErrorCategory.PARSE, "bad file")
        assert policy.tracker.consecutive == 0

    def test_success_resets_consecutive(self, reporter):
        """Successful work between errors keeps the threshold away."""
        policy = ErrorPolicy(interactive=True, reporter=reporter, prompt=scripted())
        for _ in range(ErrorTracker.CONSECUTIVE_LIMIT * 2):
            policy.handle_error(ErrorCategory.PARSE, "bad file")
            policy.record_success()
