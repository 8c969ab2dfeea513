"""Ranking of aggregated play counts."""

from __future__ import annotations

from typing import Iterable

from app.models.play_history import TrackPlayCount


def rank_play_counts(counts: Iterable[TrackPlayCount]) -> list[TrackPlayCount]:
    """Most played first; tracks with equal counts keep their input order."""
    return sorted(counts, key=lambda item: item.count, reverse=True)
