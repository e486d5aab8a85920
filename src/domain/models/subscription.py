from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ClientSubscription:
    subscriber_id: str
    # Typically the map zoom level reported by the client.
    detail_level: int = 0
