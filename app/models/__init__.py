"""Listening history models"""

from app.models.play_history import (
    AggregationWindow,
    DayDocument,
    PlayEvent,
    PlayOrder,
    ResultEnvelope,
    TrackPlayCount,
    day_document_key,
    decode_day_document,
)

__all__ = [
    "AggregationWindow",
    "DayDocument",
    "PlayEvent",
    "PlayOrder",
    "ResultEnvelope",
    "TrackPlayCount",
    "day_document_key",
    "decode_day_document",
]
