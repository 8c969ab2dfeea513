"""Serialization and publishing of ranked play count results."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Iterable, Optional

from app.errors import PublishError
from app.models.play_history import ResultEnvelope, TrackPlayCount
from app.stores.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PublishOutcome:
    name: str
    success: bool
    error: Optional[str] = None


def build_envelope(counts: Iterable[TrackPlayCount], generated_at: Optional[datetime] = None) -> ResultEnvelope:
    return ResultEnvelope(data=tuple(counts), generated_at=generated_at or datetime.now(UTC))


def envelope_to_payload(envelope: ResultEnvelope) -> dict[str, Any]:
    """JSON-ready form: `{"data": [{"track", "count"}...], "last_updated": iso}`."""
    return {
        "data": [{"track": item.track, "count": item.count} for item in envelope.data],
        "last_updated": envelope.generated_at.isoformat(),
    }


def serialize_envelope(envelope: ResultEnvelope, *, pretty: bool = False) -> bytes:
    payload = envelope_to_payload(envelope)
    if pretty:
        return json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def snapshot_name(days: int) -> str:
    return f"last-{days}-days-play-counts.json"


async def publish_snapshot(
    envelope: ResultEnvelope,
    store: SnapshotStore,
    name: str,
    *,
    strict: bool = False,
) -> PublishOutcome:
    """Write `envelope` to `store` as pretty JSON.

    In lenient mode a failed write is logged and reported through the returned
    outcome; in strict mode the `PublishError` is raised.
    """

    content = serialize_envelope(envelope, pretty=True)
    try:
        await store.put(name, content)
    except PublishError as exc:
        if strict:
            raise
        logger.error(f"Failed to publish snapshot {name}: {exc}")
        return PublishOutcome(name=name, success=False, error=str(exc))

    logger.info(f"Published snapshot {name} ({len(envelope.data)} tracks)")
    return PublishOutcome(name=name, success=True)
