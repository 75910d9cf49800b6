from __future__ import annotations

from fastapi import APIRouter, Depends

from transit_insights.adapters.api.dependencies import get_insights_service
from transit_insights.adapters.api.schemas.feeds import (
    AlertSchema,
    InsightsSchema,
    VehiclePositionSchema,
)
from transit_insights.app.services.insights_service import InsightsService

router = APIRouter(tags=["feeds"])


@router.get("/vehicle-positions", response_model=list[VehiclePositionSchema])
async def list_vehicle_positions(
    service: InsightsService = Depends(get_insights_service),
) -> list[VehiclePositionSchema]:
    vehicles = await service.list_vehicle_positions()
    return [VehiclePositionSchema.model_validate(v) for v in vehicles]


@router.get("/alerts", response_model=list[AlertSchema])
async def list_alerts(
    service: InsightsService = Depends(get_insights_service),
) -> list[AlertSchema]:
    alerts = await service.list_alerts()
    return [AlertSchema.model_validate(a) for a in alerts]


@router.get("/insights", response_model=InsightsSchema)
async def get_insights(
    service: InsightsService = Depends(get_insights_service),
) -> InsightsSchema:
    return InsightsSchema.model_validate(await service.get_insights())
