from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace

from src.domain.models.subscription import ClientSubscription


@dataclass(slots=True)
class SubscriptionRegistry:
    """Live subscriptions keyed by subscriber id.

    Connection events mutate the registry while a broadcast may be iterating
    it, so readers only ever see immutable snapshots.
    """

    _subscriptions: dict[str, ClientSubscription] = field(
        default_factory=dict, init=False, repr=False
    )
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def add(self, subscriber_id: str, detail_level: int = 0) -> ClientSubscription:
        sub = ClientSubscription(
            subscriber_id=subscriber_id, detail_level=detail_level
        )
        with self._lock:
            self._subscriptions[subscriber_id] = sub
        return sub

    def update_detail_level(
        self, subscriber_id: str, detail_level: int
    ) -> ClientSubscription | None:
        """Returns None if the subscriber is not (or no longer) connected."""

        with self._lock:
            current = self._subscriptions.get(subscriber_id)
            if current is None:
                return None
            updated = replace(current, detail_level=detail_level)
            self._subscriptions[subscriber_id] = updated
            return updated

    def remove(self, subscriber_id: str) -> None:
        with self._lock:
            self._subscriptions.pop(subscriber_id, None)

    def get(self, subscriber_id: str) -> ClientSubscription | None:
        with self._lock:
            return self._subscriptions.get(subscriber_id)

    def snapshot(self) -> tuple[ClientSubscription, ...]:
        with self._lock:
            return tuple(self._subscriptions.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscriptions)
