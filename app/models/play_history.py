"""Listening history models shared by the fetch, aggregation and publish steps."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from enum import Enum
from typing import Any, Optional

from dateutil import parser as date_parser

from app.errors import DayDecodeError


def utc_today() -> date:
    return datetime.now(UTC).date()


class PlayOrder(str, Enum):
    """Order of events within a single day's document."""

    OLDEST_FIRST = "oldest_first"
    LATEST_FIRST = "latest_first"


@dataclass(frozen=True, slots=True)
class PlayEvent:
    """One listening event."""

    track: dict[str, Any]
    track_id: Optional[str]
    played_at: datetime


@dataclass(frozen=True, slots=True)
class DayDocument:
    """Decoded contents of one day's history log, oldest event first."""

    day: Optional[date]
    items: tuple[PlayEvent, ...]


@dataclass(slots=True)
class TrackPlayCount:
    """Number of plays for one track identity."""

    track: dict[str, Any]
    track_id: str
    count: int = 0


@dataclass(frozen=True, slots=True)
class AggregationWindow:
    """Trailing span of calendar days ending at `anchor_date` (inclusive)."""

    length_days: int
    anchor_date: date = field(default_factory=lambda: utc_today())
    order: PlayOrder = PlayOrder.OLDEST_FIRST

    def __post_init__(self) -> None:
        if self.length_days < 1:
            raise ValueError(f"length_days must be positive, got {self.length_days}")

    def days(self) -> list[date]:
        """Dates in the window, newest first."""
        return [self.anchor_date - timedelta(days=offset) for offset in range(self.length_days)]


@dataclass(frozen=True, slots=True)
class ResultEnvelope:
    """Ranked counts plus the time they were computed."""

    data: tuple[TrackPlayCount, ...]
    generated_at: datetime


def day_document_key(day: date) -> str:
    """Key of the document holding `day`'s plays, e.g. `2024-03-07.json`."""
    return f"{day.year:04d}-{day.month:02d}-{day.day:02d}.json"


def extract_track_id(track: dict[str, Any]) -> Optional[str]:
    raw = track.get("id")
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


def decode_day_document(raw: bytes, *, key: str, day: Optional[date] = None) -> DayDocument:
    """Decode a day's JSON payload; any malformed part rejects the whole day."""

    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DayDecodeError(key, f"invalid JSON: {exc}", day=day) from exc
    except RecursionError as exc:
        raise DayDecodeError(key, "JSON nested too deeply", day=day) from exc

    if not isinstance(payload, dict) or not isinstance(payload.get("items"), list):
        raise DayDecodeError(key, "document has no 'items' list", day=day)

    events: list[PlayEvent] = []
    for index, item in enumerate(payload["items"]):
        if not isinstance(item, dict) or not isinstance(item.get("track"), dict):
            raise DayDecodeError(key, f"item {index} has no track object", day=day)

        played_raw = item.get("played_at")
        if not isinstance(played_raw, str):
            raise DayDecodeError(key, f"item {index} has no played_at", day=day)
        try:
            played_at = date_parser.isoparse(played_raw)
        except ValueError as exc:
            raise DayDecodeError(key, f"item {index} has invalid played_at: {exc}", day=day) from exc
        if played_at.tzinfo is None:
            played_at = played_at.replace(tzinfo=UTC)

        track = item["track"]
        events.append(PlayEvent(track=track, track_id=extract_track_id(track), played_at=played_at))

    return DayDocument(day=day, items=tuple(events))
