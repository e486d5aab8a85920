from __future__ import annotations

from abc import ABC, abstractmethod

from src.domain.models.realtime import VehicleSnapshot


class IVehicleFeedProvider(ABC):
    """Port for obtaining one snapshot of realtime vehicle positions."""

    @abstractmethod
    async def fetch_snapshot(self) -> list[VehicleSnapshot]:
        """Fetch and decode the feed.

        Raises FetchExhaustedError once the retry budget is spent.
        """
