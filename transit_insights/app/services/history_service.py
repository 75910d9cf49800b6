from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Sequence
from uuid import uuid4

from transit_insights.app.ports.output import IHistoryStore
from transit_insights.domain.algorithms.snapshot import reduce_for_history
from transit_insights.domain.exceptions import PersistenceError, SnapshotNotFound
from transit_insights.domain.models import (
    Alert,
    DayCount,
    HistoryEntry,
    HistoryIndexEntry,
    HistorySummary,
    InsightsSnapshot,
    VehiclePosition,
)
from transit_insights.domain.models.history import entry_reference

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60
SUMMARY_SAMPLE_SIZE = 20
RANGE_LIMIT = 50


def _iso_utc(ts: int) -> str:
    return (
        datetime.fromtimestamp(ts, tz=timezone.utc)
        .isoformat()
        .replace("+00:00", "Z")
    )


def _utc_day(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d")


def _utc_timestamp(dt: datetime) -> int:
    # Naive values (e.g. a bare "2024-01-01" query) are UTC, not server local time.
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def resolve_index_entry(
    entries: Sequence[HistoryIndexEntry], entry_id: str
) -> HistoryIndexEntry | None:
    """Find the descriptor for an id, tolerating descriptors without ids.

    Lookup order: explicit id, then filename, then timestamp when the id is an
    integer.
    """

    for e in entries:
        if e.id == entry_id:
            return e

    reference = entry_reference(entry_id)
    for e in entries:
        if e.filename == reference or entry_id in e.filename:
            return e

    try:
        ts = int(entry_id)
    except ValueError:
        return None
    for e in entries:
        if e.timestamp == ts:
            return e
    return None


@dataclass(slots=True)
class HistoryService:
    """Persists snapshots through the history store and reads them back.

    Every index update (capture append, retention prune) runs under one lock
    within the process; the store serializes updates across processes. Store
    calls run in worker threads.
    """

    store: IHistoryStore
    clock: Callable[[], float] = field(default=time.time)

    _index_lock: asyncio.Lock = field(
        default_factory=asyncio.Lock, init=False, repr=False
    )

    async def store_snapshot(
        self,
        insights: InsightsSnapshot,
        vehicles: Sequence[VehiclePosition],
        alerts: Sequence[Alert],
    ) -> str:
        timestamp = int(self.clock())
        entry_id = f"{timestamp}-{uuid4().hex[:8]}"
        reference = entry_reference(entry_id)

        entry = reduce_for_history(
            insights, vehicles, alerts, entry_id=entry_id, timestamp=timestamp
        )
        await asyncio.to_thread(self.store.write_entry, reference, entry.to_payload())

        descriptor = HistoryIndexEntry(
            id=entry_id,
            timestamp=timestamp,
            filename=reference,
            vehicle_count=len(vehicles),
            alert_count=len(alerts),
        )
        async with self._index_lock:
            await asyncio.to_thread(self.store.append_index_entry, descriptor)

        logger.info("Stored history snapshot: %s", reference)
        return entry_id

    async def load_index(self) -> list[HistoryIndexEntry]:
        try:
            return await asyncio.to_thread(self.store.list_index)
        except PersistenceError as exc:
            logger.warning("Failed to load history index: %s", exc)
            return []

    async def _load_entry(self, descriptor: HistoryIndexEntry) -> HistoryEntry | None:
        try:
            payload: Mapping[str, Any] | None = await asyncio.to_thread(
                self.store.read_entry, descriptor.filename
            )
        except PersistenceError as exc:
            logger.warning("Failed to load snapshot %s: %s", descriptor.filename, exc)
            return None
        if payload is None:
            logger.warning("Snapshot blob missing: %s", descriptor.filename)
            return None

        try:
            return HistoryEntry.from_payload(payload, fallback_id=descriptor.resolved_id)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Malformed snapshot %s: %s", descriptor.filename, exc)
            return None

    async def load_snapshot_by_id(self, entry_id: str) -> HistoryEntry | None:
        descriptor = resolve_index_entry(await self.load_index(), entry_id)
        if descriptor is None:
            return None
        return await self._load_entry(descriptor)

    async def get_snapshot(self, entry_id: str) -> HistoryEntry:
        entry = await self.load_snapshot_by_id(entry_id)
        if entry is None:
            raise SnapshotNotFound(f"Snapshot {entry_id} not found")
        return entry

    async def load_snapshot(self, timestamp: int) -> HistoryEntry | None:
        """Legacy lookup by capture timestamp."""

        for descriptor in await self.load_index():
            if descriptor.timestamp == timestamp:
                return await self._load_entry(descriptor)
        return None

    async def snapshots_in_range(
        self, start: int, end: int, *, limit: int = RANGE_LIMIT
    ) -> list[HistoryEntry]:
        """Load the most recent `limit` entries captured within [start, end]."""

        selected = [
            d for d in await self.load_index() if start <= d.timestamp <= end
        ][-limit:]
        out: list[HistoryEntry] = []
        for descriptor in selected:
            entry = await self._load_entry(descriptor)
            if entry is not None:
                out.append(entry)
        return out

    async def summary(self) -> HistorySummary:
        index = await self.load_index()
        if not index:
            return HistorySummary()

        by_day: Counter[str] = Counter()
        for d in index:
            by_day[_utc_day(d.timestamp)] += 1

        # Unique ids come from a sample of recent entries; unreadable ones are skipped.
        vehicle_ids: set[str] = set()
        alert_ids: set[str] = set()
        for descriptor in index[-SUMMARY_SAMPLE_SIZE:]:
            entry = await self._load_entry(descriptor)
            if entry is None:
                continue
            vehicle_ids.update(v.id for v in entry.vehicles)
            alert_ids.update(a.id for a in entry.alerts)

        return HistorySummary(
            total_snapshots=len(index),
            oldest_snapshot=_iso_utc(index[0].timestamp),
            newest_snapshot=_iso_utc(index[-1].timestamp),
            total_vehicle_records=sum(d.resolved_vehicle_count for d in index),
            total_alert_records=sum(d.resolved_alert_count for d in index),
            unique_vehicle_ids=len(vehicle_ids),
            unique_alert_ids=len(alert_ids),
            snapshots_by_day=tuple(
                DayCount(date=day, count=count) for day, count in sorted(by_day.items())
            ),
        )

    async def list_snapshots(
        self, *, from_dt: datetime | None = None, to_dt: datetime | None = None
    ) -> list[HistoryIndexEntry]:
        entries = await self.load_index()
        if from_dt is not None:
            from_ts = _utc_timestamp(from_dt)
            entries = [e for e in entries if e.timestamp >= from_ts]
        if to_dt is not None:
            to_ts = _utc_timestamp(to_dt)
            entries = [e for e in entries if e.timestamp <= to_ts]
        return entries

    async def cleanup_old_snapshots(self, keep_days: int = 30) -> int:
        """Delete entries captured before now - keep_days; return how many went."""

        cutoff = int(self.clock()) - keep_days * SECONDS_PER_DAY
        async with self._index_lock:
            # The store drops the descriptors before any blob goes, and an
            # unreadable index raises instead of being rewritten as empty.
            removed = await asyncio.to_thread(self.store.prune_index, cutoff)

        deleted = 0
        for e in removed:
            try:
                if await asyncio.to_thread(self.store.delete_entry, e.filename):
                    deleted += 1
            except PersistenceError as exc:
                logger.warning("Failed to delete snapshot %s: %s", e.filename, exc)

        if deleted:
            logger.info("Cleaned up %d old snapshots", deleted)
        return deleted
