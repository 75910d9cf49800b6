from __future__ import annotations

from abc import ABC, abstractmethod

from transit_insights.domain.models import Alert, VehiclePosition


class IFeedProvider(ABC):
    """Port for the upstream realtime feeds (vehicle positions and alerts)."""

    @abstractmethod
    async def list_vehicle_positions(self) -> tuple[VehiclePosition, ...]:
        raise NotImplementedError

    @abstractmethod
    async def list_alerts(self) -> tuple[Alert, ...]:
        raise NotImplementedError
