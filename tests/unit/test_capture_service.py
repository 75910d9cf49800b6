from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

import pytest

from transit_insights.app.services.capture_service import CaptureService
from transit_insights.app.services.history_service import HistoryService
from transit_insights.app.services.insights_service import InsightsService
from transit_insights.domain.exceptions import PersistenceError, UpstreamFetchError
from transit_insights.domain.models import (
    Alert,
    HistoryIndexEntry,
    InformedEntity,
    VehiclePosition,
)


@dataclass(slots=True)
class FakeFeedProvider:
    fail: bool = False

    async def list_vehicle_positions(self) -> tuple[VehiclePosition, ...]:
        if self.fail:
            raise UpstreamFetchError("Failed to fetch vehicle positions feed: 502 Bad Gateway")
        return (
            VehiclePosition(id="V1", lat=40.0, lon=-3.0, route_id="R1"),
            VehiclePosition(id="V2", lat=41.0, lon=-4.0, route_id="R2"),
        )

    async def list_alerts(self) -> tuple[Alert, ...]:
        return (Alert(id="A1", informed_entities=(InformedEntity(route_id="R1"),)),)


@dataclass(slots=True)
class MemoryStore:
    index: list[HistoryIndexEntry] = field(default_factory=list)
    blobs: dict = field(default_factory=dict)
    fail_writes: bool = False

    def list_index(self):
        return list(self.index)

    def append_index_entry(self, entry):
        self.index.append(entry)

    def prune_index(self, cutoff):
        removed = [e for e in self.index if e.timestamp < cutoff]
        self.index = [e for e in self.index if e.timestamp >= cutoff]
        return removed

    def read_entry(self, reference):
        return self.blobs.get(reference)

    def write_entry(self, reference, payload):
        if self.fail_writes:
            raise PersistenceError("bucket gone")
        self.blobs[reference] = dict(payload)

    def delete_entry(self, reference):
        return self.blobs.pop(reference, None) is not None


def _capture_service(
    store: MemoryStore, provider: FakeFeedProvider | None = None, now: float = 1_700_000_000
) -> CaptureService:
    clock = lambda: now  # noqa: E731
    return CaptureService(
        insights_service=InsightsService(feed_provider=provider or FakeFeedProvider(), clock=clock),
        history_service=HistoryService(store=store, clock=clock),
    )


@pytest.mark.unit
def test_capture_stores_entry_with_feed_records(caplog) -> None:
    store = MemoryStore()
    svc = _capture_service(store)

    with caplog.at_level(logging.INFO):
        entry_id = asyncio.run(svc.capture())

    (descriptor,) = store.index
    assert descriptor.id == entry_id
    assert (descriptor.vehicle_count, descriptor.alert_count) == (2, 1)

    blob = store.blobs[descriptor.filename]
    assert [v["id"] for v in blob["vehicles"]] == ["V1", "V2"]
    assert blob["totals"]["alertsWithMatches"] == 1
    assert blob["totals"]["vehiclesMatched"] == 1
    assert f"Snapshot captured successfully: {entry_id}" in caplog.text


@pytest.mark.unit
@pytest.mark.parametrize(
    "provider,store,error",
    [
        (FakeFeedProvider(fail=True), MemoryStore(), UpstreamFetchError),
        (FakeFeedProvider(), MemoryStore(fail_writes=True), PersistenceError),
    ],
)
def test_capture_failure_is_logged_and_propagated(provider, store, error, caplog) -> None:
    svc = _capture_service(store, provider)

    with pytest.raises(error):
        asyncio.run(svc.capture())

    assert store.index == []
    assert "Failed to capture snapshot" in caplog.text


@pytest.mark.unit
def test_cleanup_returns_deleted_count() -> None:
    now = 1_700_000_000
    store = MemoryStore()
    for age_days in (45, 31, 2):
        ts = now - age_days * 86400
        filename = f"snapshot-{ts}.json"
        store.blobs[filename] = {"timestamp": ts}
        store.index.append(HistoryIndexEntry(timestamp=ts, filename=filename))

    deleted = asyncio.run(_capture_service(store, now=now).cleanup(keep_days=30))

    assert deleted == 2
    assert [e.timestamp for e in store.index] == [now - 2 * 86400]
