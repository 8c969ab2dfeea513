"""Play count pipeline shared by the HTTP endpoint and the snapshot job."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from app.errors import DayUnavailable, WindowTimeoutError
from app.models.play_history import AggregationWindow, ResultEnvelope
from app.services.aggregator import aggregate_play_counts
from app.services.publisher import build_envelope
from app.services.ranker import rank_play_counts
from app.services.window_fetcher import WindowFetchResult, fetch_window
from app.stores.document_store import DocumentStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PipelineResult:
    envelope: ResultEnvelope
    failures: list[DayUnavailable] = field(default_factory=list)


class PlayCountPipeline:
    """Fetches a window, counts plays per track and ranks them."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        concurrency: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
        strict_days: bool = False,
    ) -> None:
        self._store = store
        self._concurrency = concurrency
        self._timeout_seconds = timeout_seconds if timeout_seconds and timeout_seconds > 0 else None
        self._strict_days = strict_days

    async def run(self, window: AggregationWindow) -> PipelineResult:
        logger.info(
            "Play count run started",
            extra={
                "length_days": window.length_days,
                "anchor_date": window.anchor_date.isoformat(),
                "order": window.order.value,
            },
        )

        fetched = await self._fetch(window)
        ranked = rank_play_counts(aggregate_play_counts(fetched.events))
        envelope = build_envelope(ranked)

        logger.info(
            f"Play count run finished: {len(fetched.events)} events, {len(ranked)} tracks, "
            f"{len(fetched.failures)} of {fetched.days_requested} days skipped"
        )
        return PipelineResult(envelope=envelope, failures=fetched.failures)

    async def _fetch(self, window: AggregationWindow) -> WindowFetchResult:
        fetch = fetch_window(window, self._store, concurrency=self._concurrency, strict=self._strict_days)
        if self._timeout_seconds is None:
            return await fetch
        try:
            return await asyncio.wait_for(fetch, timeout=self._timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise WindowTimeoutError(
                f"Fetching {window.length_days} days did not finish within {self._timeout_seconds}s"
            ) from exc
