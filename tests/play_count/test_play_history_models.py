from __future__ import annotations

import json
from datetime import UTC, date, datetime

import pytest

from app.errors import DayDecodeError
from app.models import play_history
from app.models.play_history import (
    AggregationWindow,
    PlayOrder,
    day_document_key,
    decode_day_document,
)


def _raw(payload: object) -> bytes:
    return json.dumps(payload).encode("utf-8")


def test_day_document_key_is_zero_padded() -> None:
    assert day_document_key(date(2024, 3, 7)) == "2024-03-07.json"
    assert day_document_key(date(2023, 12, 31)) == "2023-12-31.json"


def test_window_days_walk_backward_from_anchor_inclusive() -> None:
    window = AggregationWindow(length_days=3, anchor_date=date(2024, 3, 1))

    assert window.days() == [date(2024, 3, 1), date(2024, 2, 29), date(2024, 2, 28)]
    assert window.order == PlayOrder.OLDEST_FIRST


def test_window_defaults_anchor_to_today_in_utc(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(play_history, "utc_today", lambda: date(2024, 3, 7))

    window = AggregationWindow(length_days=1)

    assert window.anchor_date == date(2024, 3, 7)


@pytest.mark.parametrize("length", [0, -3])
def test_window_rejects_non_positive_length(length: int) -> None:
    with pytest.raises(ValueError):
        AggregationWindow(length_days=length)


def test_decode_keeps_item_order_and_extracts_track_ids() -> None:
    raw = _raw(
        {
            "items": [
                {"track": {"id": "t1", "name": "First"}, "played_at": "2024-03-07T08:00:00.123Z"},
                {"track": {"id": None, "name": "Local file"}, "played_at": "2024-03-07T09:00:00Z"},
                {"track": {"name": "No id"}, "played_at": "2024-03-07T10:00:00+00:00"},
            ]
        }
    )

    document = decode_day_document(raw, key="2024-03-07.json", day=date(2024, 3, 7))

    assert document.day == date(2024, 3, 7)
    assert [event.track_id for event in document.items] == ["t1", None, None]
    assert document.items[0].track == {"id": "t1", "name": "First"}
    assert document.items[0].played_at == datetime(2024, 3, 7, 8, 0, 0, 123000, tzinfo=UTC)


def test_decode_treats_naive_timestamps_as_utc() -> None:
    raw = _raw({"items": [{"track": {"id": "t1"}, "played_at": "2024-03-07T08:00:00"}]})

    document = decode_day_document(raw, key="k")

    assert document.items[0].played_at.tzinfo is UTC


def test_decode_accepts_empty_items() -> None:
    assert decode_day_document(_raw({"items": []}), key="k").items == ()


@pytest.mark.parametrize(
    "raw",
    [
        b"not json",
        b"\xff\xfe",
        _raw([]),
        _raw({"tracks": []}),
        _raw({"items": [{"played_at": "2024-03-07T08:00:00Z"}]}),
        _raw({"items": [{"track": {"id": "t1"}}]}),
        _raw({"items": [{"track": {"id": "t1"}, "played_at": "yesterday-ish"}]}),
    ],
)
def test_decode_rejects_malformed_documents(raw: bytes) -> None:
    with pytest.raises(DayDecodeError) as exc_info:
        decode_day_document(raw, key="2024-03-07.json", day=date(2024, 3, 7))

    assert exc_info.value.key == "2024-03-07.json"
    assert exc_info.value.day == date(2024, 3, 7)


def test_decode_rejects_deeply_nested_json_as_decode_error() -> None:
    with pytest.raises(DayDecodeError) as exc_info:
        decode_day_document(b"[" * 200000, key="2024-03-06.json", day=date(2024, 3, 6))

    assert "nested" in exc_info.value.reason
