from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

import httpx

from transit_insights.adapters.realtime.gtfs_rt_json_parser import (
    parse_alerts,
    parse_vehicle_positions,
)
from transit_insights.app.ports.output import IFeedProvider
from transit_insights.domain.exceptions import UpstreamFetchError, UpstreamShapeError
from transit_insights.domain.models import Alert, VehiclePosition

DEFAULT_VEHICLE_POSITIONS_URL = "https://gtfsrt.renfe.com/vehicle_positions.json"
DEFAULT_ALERTS_URL = "https://gtfsrt.renfe.com/alerts.json"


def parse_header_pairs(raw: str | None) -> dict[str, str]:
    """Parse `Key:Value;Key2:Value2` into a header dict, skipping malformed pairs."""

    pairs = (part.partition(":") for part in (raw or "").split(";"))
    return {
        key.strip(): value.strip()
        for key, sep, value in pairs
        if sep and key.strip()
    }


@dataclass(slots=True)
class HttpGtfsRealtimeJsonFeedProvider(IFeedProvider):
    """Fetches GTFS-Realtime vehicle positions and alerts published as JSON.

    Env vars:
      - FEED_VEHICLE_POSITIONS_URL: vehicle positions feed (default: Renfe)
      - FEED_ALERTS_URL: service alerts feed (default: Renfe)
      - FEED_HEADERS: optional headers, as 'Key:Value;Key2:Value2'
      - FEED_TIMEOUT_S: request timeout (default 10)

    Notes:
      - Every call hits the upstream; there is no cache.
      - Cancelling the awaiting task aborts the request.
    """

    vehicle_positions_url: str | None = None
    alerts_url: str | None = None
    headers_raw: str | None = None
    timeout_s: float = 10.0
    transport: httpx.AsyncBaseTransport | None = None

    def __post_init__(self) -> None:
        if self.vehicle_positions_url is None:
            self.vehicle_positions_url = os.getenv(
                "FEED_VEHICLE_POSITIONS_URL", DEFAULT_VEHICLE_POSITIONS_URL
            )
        if self.alerts_url is None:
            self.alerts_url = os.getenv("FEED_ALERTS_URL", DEFAULT_ALERTS_URL)
        if self.headers_raw is None:
            self.headers_raw = os.getenv("FEED_HEADERS")
        if os.getenv("FEED_TIMEOUT_S"):
            self.timeout_s = float(os.environ["FEED_TIMEOUT_S"])

    async def list_vehicle_positions(self) -> tuple[VehiclePosition, ...]:
        payload = await self._fetch_json(
            self.vehicle_positions_url or DEFAULT_VEHICLE_POSITIONS_URL,
            feed_name="vehicle positions",
        )
        return parse_vehicle_positions(payload)

    async def list_alerts(self) -> tuple[Alert, ...]:
        payload = await self._fetch_json(
            self.alerts_url or DEFAULT_ALERTS_URL, feed_name="alerts"
        )
        return parse_alerts(payload)

    async def _fetch_json(self, url: str, *, feed_name: str) -> Any:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_s, transport=self.transport
            ) as client:
                resp = await client.get(
                    url, headers=parse_header_pairs(self.headers_raw)
                )
        except httpx.HTTPError as exc:
            raise UpstreamFetchError(
                f"Failed to fetch {feed_name} feed: {exc.__class__.__name__}: {exc}"
            ) from exc

        if not resp.is_success:
            raise UpstreamFetchError(
                f"Failed to fetch {feed_name} feed: "
                f"{resp.status_code} {resp.reason_phrase}"
            )

        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamShapeError(
                f"Invalid GTFS-RT {feed_name} JSON: response body is not JSON"
            ) from exc
