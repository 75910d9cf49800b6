from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from transit_insights.app.services.history_service import HistoryService
from transit_insights.app.services.insights_service import InsightsService

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 30


@dataclass(slots=True)
class CaptureService:
    """Captures history snapshots and applies retention.

    Called by the scheduler and by the on-demand capture endpoint.
    """

    insights_service: InsightsService
    history_service: HistoryService

    async def capture(self) -> str:
        logger.info("Running snapshot capture")
        try:
            # The insights computation fetches both feeds again on its own, so the
            # stored lists and the stored totals may see slightly different feeds.
            vehicles, alerts, insights = await asyncio.gather(
                self.insights_service.list_vehicle_positions(),
                self.insights_service.list_alerts(),
                self.insights_service.get_insights(),
            )
            entry_id = await self.history_service.store_snapshot(
                insights, vehicles, alerts
            )
        except Exception:
            logger.exception("Failed to capture snapshot")
            raise
        logger.info("Snapshot captured successfully: %s", entry_id)
        return entry_id

    async def cleanup(self, keep_days: int = DEFAULT_RETENTION_DAYS) -> int:
        logger.info("Running history cleanup (keep %d days)", keep_days)
        deleted = await self.history_service.cleanup_old_snapshots(keep_days)
        logger.info("Cleanup completed, deleted %d old snapshots", deleted)
        return deleted
