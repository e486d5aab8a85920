from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """WGS84 position in decimal degrees."""

    lat: float
    lon: float

    def __post_init__(self) -> None:
        if not (-90.0 <= self.lat <= 90.0):
            raise ValueError(f"Invalid latitude: {self.lat}")
        if not (-180.0 <= self.lon <= 180.0):
            raise ValueError(f"Invalid longitude: {self.lon}")

    @classmethod
    def parse(cls, lat: Any, lon: Any) -> "GeoPoint":
        """Build a point from loosely typed input (CSV text, protobuf floats).

        Raises ValueError for anything that is not a finite, in-range pair.
        """

        try:
            lat_f = float(lat)
            lon_f = float(lon)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid coordinates: {lat!r}, {lon!r}") from exc
        if not (math.isfinite(lat_f) and math.isfinite(lon_f)):
            raise ValueError(f"Invalid coordinates: {lat!r}, {lon!r}")
        return cls(lat=lat_f, lon=lon_f)
