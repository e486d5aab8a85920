from __future__ import annotations

import csv
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from src.app.ports.output import IReferenceDataRepository
from src.domain.exceptions.fleet import ReferenceDataError
from src.domain.models import GeoPoint, ReferenceDirectory, Stop

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LocalReferenceDataRepository(IReferenceDataRepository):
    """Loads the stop and route-name directories from CSV files.

    Env vars:
      - REFERENCE_DATA_PATH: directory containing stops.csv and routename.csv

    stops.csv is required (stop_id, stop_name, stop_lat, stop_lon).
    routename.csv (route_id, route_name) is optional; unmapped routes are
    displayed by their id.
    """

    base_path: str | Path | None = None

    def _base(self) -> Path:
        value = self.base_path or os.getenv("REFERENCE_DATA_PATH") or "data"
        return Path(value)

    def load_directory(self) -> ReferenceDirectory:
        base = self._base()
        stops = self._load_stops(base / "stops.csv")
        route_names = self._load_route_names(base / "routename.csv")
        logger.info(
            "Loaded %d stops and %d route names from %s",
            len(stops),
            len(route_names),
            base,
        )
        return ReferenceDirectory(stops=stops, route_names=route_names)

    def _load_stops(self, path: Path) -> tuple[Stop, ...]:
        if not path.exists():
            raise ReferenceDataError(f"Stops file not found: {path}")

        stops: list[Stop] = []
        with path.open("r", encoding="utf-8-sig", newline="") as fp:
            reader = csv.DictReader(fp)
            for line_no, row in enumerate(reader, start=2):
                stop_id = (row.get("stop_id") or "").strip()
                if not stop_id:
                    continue
                name = (row.get("stop_name") or "").strip() or "Unknown Stop"
                try:
                    location = GeoPoint.parse(
                        row.get("stop_lat"), row.get("stop_lon")
                    )
                except ValueError as exc:
                    raise ReferenceDataError(
                        f"Invalid coordinates for stop {stop_id} ({path}:{line_no})"
                    ) from exc
                stops.append(Stop(id=stop_id, name=name, location=location))

        return tuple(stops)

    def _load_route_names(self, path: Path) -> dict[str, str]:
        if not path.exists():
            logger.warning("Route names file not found: %s", path)
            return {}

        route_names: dict[str, str] = {}
        with path.open("r", encoding="utf-8-sig", newline="") as fp:
            reader = csv.DictReader(fp)
            for row in reader:
                route_id = (row.get("route_id") or "").strip()
                if not route_id:
                    continue
                name = (row.get("route_name") or "").strip()
                if name:
                    route_names[route_id] = name
        return route_names
