from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class DayCountSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: str
    count: int


class HistorySummarySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_snapshots: int
    oldest_snapshot: str | None = None
    newest_snapshot: str | None = None
    total_vehicle_records: int
    total_alert_records: int
    unique_vehicle_ids: int
    unique_alert_ids: int
    snapshots_by_day: list[DayCountSchema] = []


class SnapshotListItemSchema(BaseModel):
    id: str
    timestamp: int
    vehicle_count: int
    alert_count: int


class SnapshotVehicleSchema(BaseModel):
    id: str
    label: str | None = None
    route_id: str | None = None
    lat: float
    lon: float


class SnapshotAlertSchema(BaseModel):
    id: str
    header: str | None = None
    effect: str | None = None
    is_active: bool


class SnapshotDetailSchema(BaseModel):
    id: str
    timestamp: int
    vehicle_count: int
    alert_count: int
    vehicles: list[SnapshotVehicleSchema]
    alerts: list[SnapshotAlertSchema]


class CaptureResponseSchema(BaseModel):
    success: bool
    id: str
