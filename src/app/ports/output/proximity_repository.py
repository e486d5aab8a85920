from __future__ import annotations

from abc import ABC, abstractmethod

from src.domain.models.fleet import ProximityRecord


class IProximityRepository(ABC):
    """Durable store of the last matched stop per vehicle."""

    @abstractmethod
    def load_all(self) -> dict[str, ProximityRecord]:
        raise NotImplementedError

    @abstractmethod
    def upsert(self, record: ProximityRecord) -> None:
        raise NotImplementedError
