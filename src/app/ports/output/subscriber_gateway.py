from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping


class ISubscriberGateway(ABC):
    """Port for pushing a payload to a single live subscriber."""

    @abstractmethod
    async def send(self, subscriber_id: str, payload: Mapping[str, Any]) -> None:
        raise NotImplementedError
