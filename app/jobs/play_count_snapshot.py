"""Batch job publishing a play count snapshot for the last N days."""

from __future__ import annotations

import argparse
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from app.config.settings import Settings, settings, window_length
from app.errors import ConfigurationError, DocumentStoreError, PlayCountError, PublishError, WindowTimeoutError
from app.models.play_history import AggregationWindow, PlayOrder
from app.pipeline import PlayCountPipeline
from app.services.publisher import PublishOutcome, publish_snapshot, snapshot_name
from app.stores import build_document_store, build_snapshot_store
from app.stores.document_store import DocumentStore
from app.stores.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SnapshotJobResult:
    days: int
    tracks: int
    skipped_days: list[str]
    publish: PublishOutcome
    elapsed_seconds: float

    def as_dict(self) -> dict[str, Any]:
        return {
            "days": self.days,
            "tracks": self.tracks,
            "skipped_days": self.skipped_days,
            "snapshot": self.publish.name,
            "published": self.publish.success,
            "publish_error": self.publish.error,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }


async def run_snapshot_job(
    *,
    config: Optional[Settings] = None,
    days: Optional[int] = None,
    document_store_factory: Callable[[Settings], DocumentStore] = build_document_store,
    snapshot_store_factory: Callable[[Settings], SnapshotStore] = build_snapshot_store,
) -> SnapshotJobResult:
    """Compute the window and publish it; raises on configuration and fetch errors."""

    started = time.perf_counter()
    if config is None:
        config = settings
    window_days = window_length(config, days)
    window = AggregationWindow(length_days=window_days, order=PlayOrder.OLDEST_FIRST)

    # Both stores are built up front so missing credentials fail before any fetch
    document_store = document_store_factory(config)
    try:
        snapshot_store = snapshot_store_factory(config)
    except BaseException:
        await document_store.aclose()
        raise

    async with document_store, snapshot_store:
        pipeline = PlayCountPipeline(
            document_store,
            concurrency=config.FETCH_CONCURRENCY or None,
            timeout_seconds=config.WINDOW_TIMEOUT_SECONDS,
        )
        result = await pipeline.run(window)
        outcome = await publish_snapshot(
            result.envelope,
            snapshot_store,
            snapshot_name(window_days),
            strict=config.STRICT_PUBLISH,
        )

    elapsed = time.perf_counter() - started
    logger.info(f"Snapshot job finished in {elapsed:.2f}s")
    return SnapshotJobResult(
        days=window_days,
        tracks=len(result.envelope.data),
        skipped_days=[failure.key for failure in result.failures],
        publish=outcome,
        elapsed_seconds=elapsed,
    )


def parse_days(raw: Any) -> Optional[int]:
    """Parse an optional positive day count from CLI/event input."""
    if raw is None:
        return None
    text = str(raw).strip()
    if not text:
        return None
    value = int(text)
    if value < 1:
        raise ValueError(f"days must be positive, got {value}")
    return value


def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    parser = argparse.ArgumentParser(description="Publish a play count snapshot to the snapshot store")
    parser.add_argument("--days", type=parse_days, default=None, help="window length (defaults to DAYS)")
    args = parser.parse_args(argv)

    try:
        result = asyncio.run(run_snapshot_job(days=args.days))
    except ConfigurationError as e:
        logger.error(f"Snapshot job not configured: {e}")
        return 1
    except (DocumentStoreError, WindowTimeoutError) as e:
        logger.error(f"Snapshot job failed to fetch play history: {e}")
        return 1
    except PublishError as e:
        # Only raised with STRICT_PUBLISH enabled
        logger.error(f"Snapshot job failed to publish: {e}")
        return 1
    except PlayCountError as e:
        logger.error(f"Snapshot job failed: {e}", exc_info=True)
        return 1

    if result.publish.success:
        logger.info(f"Published {result.publish.name} with {result.tracks} tracks")
    else:
        logger.error(f"Snapshot {result.publish.name} was not published: {result.publish.error}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
