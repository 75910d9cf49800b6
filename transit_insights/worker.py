from __future__ import annotations

import asyncio
import logging
import math
import os
from dataclasses import dataclass
from datetime import date, datetime

from transit_insights.adapters.api.dependencies import get_capture_service
from transit_insights.app.services.capture_service import (
    DEFAULT_RETENTION_DAYS,
    CaptureService,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Scheduler:
    """Fixed-cadence history capture plus a daily retention run.

    Captures fire on wall-clock multiples of `interval_s` (every 5 minutes by
    default: :00, :05, ...). Cleanup runs once per local day during
    `cleanup_hour`. A failing job is logged and retried on its next slot.
    """

    capture_service: CaptureService
    interval_s: float = 300.0
    cleanup_hour: int = 3
    retention_days: int = DEFAULT_RETENTION_DAYS

    _next_capture_at: float | None = None
    _last_cleanup_day: date | None = None

    def _next_slot(self, now_s: float) -> float:
        return (math.floor(now_s / self.interval_s) + 1) * self.interval_s

    async def run_pending(self, now: datetime) -> None:
        now_s = now.timestamp()
        if self._next_capture_at is None:
            self._next_capture_at = self._next_slot(now_s)
        elif now_s >= self._next_capture_at:
            self._next_capture_at = self._next_slot(now_s)
            try:
                await self.capture_service.capture()
            except Exception:
                logger.warning("Scheduled capture failed; next attempt at next slot")

        if now.hour == self.cleanup_hour and self._last_cleanup_day != now.date():
            self._last_cleanup_day = now.date()
            try:
                await self.capture_service.cleanup(self.retention_days)
            except Exception:
                logger.exception("Failed to cleanup snapshots")


async def run(scheduler: Scheduler, *, poll_s: float = 1.0) -> None:
    while True:
        await scheduler.run_pending(datetime.now())
        await asyncio.sleep(poll_s)


def main() -> None:
    logging.basicConfig(
        level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    capture_service = get_capture_service()

    loop = os.getenv("WORKER_LOOP", "1").strip().lower() not in {"0", "false", "no"}
    if not loop:
        asyncio.run(capture_service.capture())
        return

    scheduler = Scheduler(capture_service=capture_service)
    if os.getenv("CAPTURE_INTERVAL_S"):
        scheduler.interval_s = float(os.environ["CAPTURE_INTERVAL_S"])
    if os.getenv("CLEANUP_HOUR"):
        scheduler.cleanup_hour = int(os.environ["CLEANUP_HOUR"])
    if os.getenv("RETENTION_DAYS"):
        scheduler.retention_days = int(os.environ["RETENTION_DAYS"])

    asyncio.run(run(scheduler))


if __name__ == "__main__":
    main()
