"""Error handling policy implementation."""

from __future__ import annotations

from typing import Callable, List, Optional

from .errors import AbortRequested, ErrorCategory, ErrorRecord, ErrorTracker
from .reporting import Reporter, silent_reporter


class ErrorPolicy:
    """Records recoverable errors and decides whether a run keeps going.

    Recoverable failures (one file, one batch) never stop a run on their
    own. When repeated errors trip the tracker thresholds an interactive
    session is asked whether to continue; non-interactive sessions keep
    going after a single notice.
    """

    def __init__(
        self,
        *,
        interactive: bool = False,
        reporter: Reporter | None = None,
        prompt: Callable[[str], str] = input,
    ) -> None:
        self.interactive = interactive
        self.reporter = reporter or silent_reporter()
        self.records: List[ErrorRecord] = []
        self.tracker = ErrorTracker()
        self._prompt = prompt
        self._threshold_noted = False

    def record_success(self) -> None:
        """Reset consecutive counters after successful work."""

        self.tracker.reset_consecutive()

    def handle_error(
        self,
        category: ErrorCategory,
        message: str,
        details: Optional[str] = None,
    ) -> str:
        """Record an error and return ``"continue"`` unless aborted."""

        self.records.append(ErrorRecord(category=category, message=message, details=details))
        consecutive, _total, threshold = self.tracker.register(category)

        self.reporter.warn(f"{message} ({details})" if details else message)

        if not threshold:
            return "continue"

        prompt = (
            f"Repeated errors detected ({consecutive} times). Continue or abort?"
            if consecutive >= self.tracker.CONSECUTIVE_LIMIT
            else f"More than {self.tracker.TOTAL_LIMIT} errors encountered. Continue or abort?"
        )

        if not self.interactive:
            if not self._threshold_noted:
                self.reporter.warn(
                    "Error threshold exceeded in non-interactive mode; remaining "
                    "items are still processed."
                )
                self._threshold_noted = True
            return "continue"

        while True:
            response = self._prompt(f"{prompt} ").strip().lower()
            if response in {"continue", "c"}:
                self.tracker.reset_consecutive()
                return "continue"
            if response in {"abort", "a"}:
                raise AbortRequested("Abort requested by user.")
            self.reporter.info("Please respond with Continue or Abort (c/a).")

    def messages(self) -> List[str]:
        return [record.message for record in self.records]
