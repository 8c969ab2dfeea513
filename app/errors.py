"""Error taxonomy for play count retrieval and publishing."""

from __future__ import annotations

from datetime import date
from typing import Optional, Sequence


class PlayCountError(Exception):
    """Base class for all play count service errors."""


class ConfigurationError(PlayCountError):
    """Required settings are missing or hold unusable values."""

    def __init__(self, missing: Sequence[str] = (), *, invalid: Optional[dict[str, str]] = None) -> None:
        self.missing = list(missing)
        self.invalid = dict(invalid or {})
        problems = []
        if self.missing:
            problems.append(f"Missing required configuration: {', '.join(self.missing)}")
        problems.extend(f"Invalid {name}: {detail}" for name, detail in self.invalid.items())
        super().__init__("; ".join(problems))


class DocumentStoreError(PlayCountError):
    """Fatal document store failure; the remaining days would fail the same way."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class AuthError(DocumentStoreError):
    """The store rejected the configured credential."""


class TransportError(DocumentStoreError):
    """Network or upstream failure while talking to the store."""


class StoreIOError(DocumentStoreError):
    """Local storage failure other than a missing document."""


class DayUnavailable(PlayCountError):
    """A single day's document could not be retrieved or decoded."""

    def __init__(self, key: str, reason: str, *, day: Optional[date] = None) -> None:
        self.key = key
        self.reason = reason
        self.day = day
        super().__init__(f"{key}: {reason}")


class DayNotFound(DayUnavailable):
    """No document exists for the day."""


class DayDecodeError(DayUnavailable):
    """The day's document exists but is not a valid history document."""


class WindowTimeoutError(PlayCountError):
    """The window could not be fetched within the configured time budget."""


class PublishError(PlayCountError):
    """Writing a snapshot to the snapshot store failed."""
