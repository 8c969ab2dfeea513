"""Fetch the play events of a trailing day window from a document store."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from app.errors import DayUnavailable
from app.models.play_history import (
    AggregationWindow,
    DayDocument,
    PlayEvent,
    PlayOrder,
    day_document_key,
    decode_day_document,
)
from app.stores.document_store import DocumentStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class WindowFetchResult:
    """Events of every day that could be read, plus the days that were skipped."""

    events: list[PlayEvent]
    failures: list[DayUnavailable] = field(default_factory=list)
    days_requested: int = 0

    @property
    def days_fetched(self) -> int:
        return self.days_requested - len(self.failures)


async def fetch_day(store: DocumentStore, day: date) -> DayDocument:
    key = day_document_key(day)
    try:
        raw = await store.get(key)
    except DayUnavailable as exc:
        if exc.day is None:
            exc.day = day
        raise
    return decode_day_document(raw, key=key, day=day)


async def fetch_window(
    window: AggregationWindow,
    store: DocumentStore,
    *,
    concurrency: Optional[int] = None,
    strict: bool = False,
) -> WindowFetchResult:
    """Fetch all days of `window`, newest day first.

    Days are fetched concurrently (at most `concurrency` at a time, one worker
    per day by default) and reassembled in window order, so the result does not
    depend on completion order. A `DayUnavailable` day is logged and skipped
    unless `strict` is set, in which case the earliest failing day in window
    order is raised. Any other exception cancels the outstanding fetches and
    propagates.
    """

    days = window.days()
    limit = concurrency if concurrency and concurrency > 0 else len(days)
    semaphore = asyncio.Semaphore(limit)

    async def _fetch(day: date) -> DayDocument | DayUnavailable:
        async with semaphore:
            try:
                return await fetch_day(store, day)
            except DayUnavailable as exc:
                return exc

    tasks = [asyncio.create_task(_fetch(day)) for day in days]
    try:
        outcomes = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    events: list[PlayEvent] = []
    failures: list[DayUnavailable] = []
    for day, outcome in zip(days, outcomes):
        if isinstance(outcome, DayUnavailable):
            if strict:
                raise outcome
            logger.warning(
                f"Skipping play history for {day.isoformat()}: {outcome.reason}",
                extra={"day": day.isoformat(), "key": outcome.key, "reason": outcome.reason},
            )
            failures.append(outcome)
            continue

        items = list(outcome.items)
        if window.order == PlayOrder.LATEST_FIRST:
            # Documents are stored oldest first
            items.reverse()
        events.extend(items)

    return WindowFetchResult(events=events, failures=failures, days_requested=len(days))
