from __future__ import annotations

import os
from functools import lru_cache
from zoneinfo import ZoneInfo

from transit_insights.adapters.persistence.local_history_store import LocalHistoryStore
from transit_insights.adapters.persistence.s3_history_store import S3HistoryStore
from transit_insights.adapters.realtime.http_gtfs_rt_json_feed_provider import (
    HttpGtfsRealtimeJsonFeedProvider,
)
from transit_insights.app.ports.output import IHistoryStore
from transit_insights.app.services.capture_service import CaptureService
from transit_insights.app.services.history_service import HistoryService
from transit_insights.app.services.insights_service import InsightsService

# Services are process-wide singletons: the history service owns the lock that
# serializes index updates across requests and scheduled jobs.


def _history_store() -> IHistoryStore:
    backend = (os.getenv("HISTORY_BACKEND") or "local").strip().lower()
    if backend == "s3":
        return S3HistoryStore()
    if backend != "local":
        raise RuntimeError(f"Unsupported HISTORY_BACKEND: {backend}")
    return LocalHistoryStore()


@lru_cache(maxsize=1)
def get_insights_service() -> InsightsService:
    tz_name = (os.getenv("INSIGHTS_TZ") or "").strip()
    return InsightsService(
        feed_provider=HttpGtfsRealtimeJsonFeedProvider(),
        tz=ZoneInfo(tz_name) if tz_name else None,
    )


@lru_cache(maxsize=1)
def get_history_service() -> HistoryService:
    return HistoryService(store=_history_store())


def get_capture_service() -> CaptureService:
    return CaptureService(
        insights_service=get_insights_service(),
        history_service=get_history_service(),
    )
