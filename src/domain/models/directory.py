from __future__ import annotations

from dataclasses import dataclass, field

from .geo import GeoPoint


@dataclass(frozen=True, slots=True)
class Stop:
    """A physical stop from the reference directory."""

    id: str
    name: str
    location: GeoPoint


@dataclass(frozen=True, slots=True)
class ReferenceDirectory:
    """Static stop and route lookup tables, loaded once at startup.

    Stop order is significant: the proximity matcher keeps the first stop
    when two are equally close.
    """

    stops: tuple[Stop, ...] = ()
    route_names: dict[str, str] = field(default_factory=dict)

    def route_name(self, route_id: str) -> str:
        return self.route_names.get(route_id) or route_id
