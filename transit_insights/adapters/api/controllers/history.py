from __future__ import annotations

import time
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query

from transit_insights.adapters.api.dependencies import (
    get_capture_service,
    get_history_service,
)
from transit_insights.adapters.api.schemas.history import (
    CaptureResponseSchema,
    HistorySummarySchema,
    SnapshotAlertSchema,
    SnapshotDetailSchema,
    SnapshotListItemSchema,
    SnapshotVehicleSchema,
)
from transit_insights.app.services.capture_service import CaptureService
from transit_insights.app.services.history_service import HistoryService
from transit_insights.domain.algorithms.aggregation import is_active_at
from transit_insights.domain.exceptions import SnapshotNotFound

router = APIRouter(prefix="/history", tags=["history"])


@router.get("/summary", response_model=HistorySummarySchema)
async def get_history_summary(
    service: HistoryService = Depends(get_history_service),
) -> HistorySummarySchema:
    return HistorySummarySchema.model_validate(await service.summary())


@router.get("/snapshots", response_model=list[SnapshotListItemSchema])
async def list_snapshots(
    from_dt: datetime | None = Query(default=None, alias="from"),
    to_dt: datetime | None = Query(default=None, alias="to"),
    service: HistoryService = Depends(get_history_service),
) -> list[SnapshotListItemSchema]:
    entries = await service.list_snapshots(from_dt=from_dt, to_dt=to_dt)
    return [
        SnapshotListItemSchema(
            id=e.resolved_id,
            timestamp=e.timestamp,
            vehicle_count=e.resolved_vehicle_count,
            alert_count=e.resolved_alert_count,
        )
        for e in entries
    ]


@router.get("/snapshots/{snapshot_id}", response_model=SnapshotDetailSchema)
async def get_snapshot(
    snapshot_id: str,
    service: HistoryService = Depends(get_history_service),
) -> SnapshotDetailSchema:
    """Return a stored snapshot with each alert's activity at request time.

    `is_active` uses the same active-at predicate as the live insights: an
    alert without a start counts as already active and the end is inclusive.
    """

    try:
        entry = await service.get_snapshot(snapshot_id)
    except SnapshotNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    now_s = int(time.time())
    return SnapshotDetailSchema(
        id=entry.id,
        timestamp=entry.timestamp,
        vehicle_count=len(entry.vehicles),
        alert_count=len(entry.alerts),
        vehicles=[
            SnapshotVehicleSchema(
                id=v.id, label=v.label, route_id=v.route_id, lat=v.lat, lon=v.lon
            )
            for v in entry.vehicles
        ],
        alerts=[
            SnapshotAlertSchema(
                id=a.id,
                header=a.header,
                effect=a.effect,
                is_active=is_active_at(a.start, a.end, now_s),
            )
            for a in entry.alerts
        ],
    )


@router.post("/capture", response_model=CaptureResponseSchema)
async def capture_snapshot(
    service: CaptureService = Depends(get_capture_service),
) -> CaptureResponseSchema:
    entry_id = await service.capture()
    return CaptureResponseSchema(success=True, id=entry_id)
