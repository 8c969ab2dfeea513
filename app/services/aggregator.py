"""Group play events into per-track play counts."""

from __future__ import annotations

from typing import Iterable

from app.models.play_history import PlayEvent, TrackPlayCount


def aggregate_play_counts(events: Iterable[PlayEvent]) -> list[TrackPlayCount]:
    """Count plays per track id in first-seen order.

    Events without a track id are dropped. The track record kept for each id is
    the one from its first event; later events only bump the count.
    """

    counts: dict[str, TrackPlayCount] = {}
    for event in events:
        if event.track_id is None:
            continue
        entry = counts.get(event.track_id)
        if entry is None:
            entry = TrackPlayCount(track=event.track, track_id=event.track_id)
            counts[event.track_id] = entry
        entry.count += 1
    return list(counts.values())
