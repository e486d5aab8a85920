from __future__ import annotations

from abc import ABC, abstractmethod

from src.domain.models.directory import ReferenceDirectory


class IReferenceDataRepository(ABC):
    """Port for loading the static stop and route directories."""

    @abstractmethod
    def load_directory(self) -> ReferenceDirectory:
        raise NotImplementedError
