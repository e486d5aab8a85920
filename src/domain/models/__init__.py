from .directory import ReferenceDirectory, Stop
from .fleet import (
    DEFAULT_MILEAGE,
    MAX_STOPS_REMAINING,
    UNKNOWN_ROUTE_ID,
    FareCheck,
    ProximityRecord,
    VehicleState,
)
from .geo import GeoPoint
from .realtime import VehicleSnapshot
from .subscription import ClientSubscription

__all__ = [
    "ClientSubscription",
    "DEFAULT_MILEAGE",
    "FareCheck",
    "GeoPoint",
    "MAX_STOPS_REMAINING",
    "ProximityRecord",
    "ReferenceDirectory",
    "Stop",
    "UNKNOWN_ROUTE_ID",
    "VehicleSnapshot",
    "VehicleState",
]
