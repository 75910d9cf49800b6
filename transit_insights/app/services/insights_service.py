from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Callable

from transit_insights.app.ports.output import IFeedProvider
from transit_insights.domain.algorithms.snapshot import assemble_snapshot
from transit_insights.domain.models import Alert, InsightsSnapshot, VehiclePosition


@dataclass(slots=True)
class InsightsService:
    """Application service (use case) for the live feed views.

    Fetches both feeds concurrently and assembles one snapshot against a
    single reference instant.
    """

    feed_provider: IFeedProvider
    tz: tzinfo | None = None
    clock: Callable[[], float] = field(default=time.time)

    async def list_vehicle_positions(self) -> tuple[VehiclePosition, ...]:
        return await self.feed_provider.list_vehicle_positions()

    async def list_alerts(self) -> tuple[Alert, ...]:
        return await self.feed_provider.list_alerts()

    async def get_insights(self) -> InsightsSnapshot:
        generated_at = int(self.clock())
        vehicles, alerts = await asyncio.gather(
            self.feed_provider.list_vehicle_positions(),
            self.feed_provider.list_alerts(),
        )
        return assemble_snapshot(
            vehicles, alerts, generated_at=generated_at, tz=self.tz
        )
