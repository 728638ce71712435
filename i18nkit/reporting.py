"""Console reporting passed explicitly through every top-level operation."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from typing import Any, List, TextIO

LEVELS = {"quiet": 0, "info": 1, "debug": 2}


@dataclass
class Reporter:
    """Prints progress for a single run.

    Warnings and errors are always shown and counted; ``info`` and
    ``success`` lines are hidden in ``quiet`` mode and ``debug`` lines
    only appear in ``debug`` mode, on stderr.
    """

    level: str = "info"
    stream: TextIO | None = None
    error_stream: TextIO | None = None
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.level not in LEVELS:
            self.level = "info"

    @property
    def verbose(self) -> bool:
        return LEVELS[self.level] >= LEVELS["debug"]

    def _out(self) -> TextIO:
        return self.stream or sys.stdout

    def _err(self) -> TextIO:
        return self.error_stream or sys.stderr

    def info(self, message: str) -> None:
        if LEVELS[self.level] >= LEVELS["info"]:
            print(message, file=self._out())

    def success(self, message: str) -> None:
        if LEVELS[self.level] >= LEVELS["info"]:
            print(f"OK {message}", file=self._out())

    def warn(self, message: str) -> None:
        self.warnings.append(message)
        print(f"Warning: {message}", file=self._out())

    def error(self, message: str, exc: BaseException | None = None) -> None:
        text = f"{message} ({exc})" if exc is not None else message
        self.errors.append(text)
        print(f"Error: {text}", file=self._err())

    def debug(self, label: str, payload: Any = None) -> None:
        """Emit structured debug information when enabled."""

        if not self.verbose:
            return
        if payload is None:
            print(f"[i18nkit][debug] {label}", file=self._err())
            return
        try:
            if isinstance(payload, (dict, list)):
                message = json.dumps(payload, ensure_ascii=False, indent=2)
            else:
                message = str(payload)
        except (TypeError, ValueError):
            message = repr(payload)
        print(f"[i18nkit][debug] {label}:\n{message}", file=self._err())


def silent_reporter() -> Reporter:
    """Reporter used when callers do not pass one (library use, tests)."""

    return Reporter(level="quiet")
