"""Error definitions and policy helpers for i18nkit."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class ErrorCategory(Enum):
    """Categorises runtime errors to apply policy thresholds."""

    PARSE = auto()
    IDENTIFIER = auto()
    TRANSLATION = auto()
    TRANSFORM = auto()
    LOCALE_FILE = auto()
    NETWORK = auto()
    CONFIG = auto()
    OTHER = auto()


class I18nKitError(Exception):
    """Base exception for all custom errors."""


class AbortRequested(I18nKitError):
    """Raised when the user elects to abort processing."""


class ConfigurationError(I18nKitError):
    """Raised when settings are missing or invalid."""


class UnsupportedFrameworkError(ConfigurationError):
    """Raised when a framework or translation library is not supported."""


class ProviderConfigurationError(ConfigurationError):
    """Raised when the id/translation provider is misconfigured."""


class ProviderError(I18nKitError):
    """Raised when a provider request fails."""

    def __init__(self, message: str, *, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable


class ResponseFormatError(ProviderError):
    """Raised when a provider answers with malformed or incomplete JSON."""


class SourceParseError(I18nKitError):
    """Raised when a source file cannot be parsed."""


class LocaleConflictError(I18nKitError):
    """Raised when the primary and custom locale files define one key differently."""


class LocaleFileError(I18nKitError):
    """Raised when a locale file cannot be read safely.

    Updates that hit this error must stop: guessing at a malformed locale
    file risks overwriting translations.
    """

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(
            f"Locale file {path} could not be parsed ({reason}). "
            "Fix the JSON and run the command again."
        )
        self.path = path
        self.reason = reason


@dataclass
class ErrorRecord:
    """Stores context for a handled error."""

    category: ErrorCategory
    message: str
    details: Optional[str] = None


class ErrorTracker:
    """Tracks consecutive and aggregate errors to satisfy policy rules."""

    CONSECUTIVE_LIMIT = 3
    TOTAL_LIMIT = 25

    def __init__(self) -> None:
        self.last_category: Optional[ErrorCategory] = None
        self.consecutive: int = 0
        self.total: int = 0

    def register(self, category: ErrorCategory) -> tuple[int, int, bool]:
        """Register a new error and return counters."""

        if self.last_category == category:
            self.consecutive += 1
        else:
            self.last_category = category
            self.consecutive = 1

        self.total += 1

        threshold_reached = (
            self.consecutive >= self.CONSECUTIVE_LIMIT
            or self.total >= self.TOTAL_LIMIT
        )

        return self.consecutive, self.total, threshold_reached

    def reset_consecutive(self) -> None:
        """Reset the consecutive counter after successful work."""

        self.consecutive = 0
        self.last_category = None
