from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone

import httpx
from google.protobuf.message import DecodeError
from google.transit import gtfs_realtime_pb2

from src.app.ports.output import IVehicleFeedProvider
from src.domain.exceptions.feed import (
    FeedError,
    FetchDecodeError,
    FetchExhaustedError,
    FetchTransportError,
)
from src.domain.models import (
    UNKNOWN_ROUTE_ID,
    GeoPoint,
    ReferenceDirectory,
    VehicleSnapshot,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class HttpVehicleFeedClient(IVehicleFeedProvider):
    """Fetches a GTFS-Realtime VehiclePositions feed over HTTP.

    Env vars:
      - GTFS_RT_VEHICLE_POSITIONS_URL: URL to a GTFS-RT VehiclePositions feed
      - GTFS_RT_HEADERS: optional headers, as 'Key:Value;Key2:Value2'
      - GTFS_RT_TIMEOUT_S: per-attempt request timeout (default 10)
      - FEED_MAX_ATTEMPTS: attempts per fetch (default 3)
      - FEED_RETRY_DELAY_S: fixed delay between attempts (default 2)

    Notes:
      - If URL is not configured, returns an empty list.
      - Transport and decode failures are retried the same way.
    """

    directory: ReferenceDirectory = field(default_factory=ReferenceDirectory)
    url: str | None = None
    headers_raw: str | None = None
    timeout_s: float = 10.0
    max_attempts: int = 3
    retry_delay_s: float = 2.0
    transport: httpx.AsyncBaseTransport | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.url is None:
            self.url = os.getenv("GTFS_RT_VEHICLE_POSITIONS_URL")
        if self.headers_raw is None:
            self.headers_raw = os.getenv("GTFS_RT_HEADERS")
        if os.getenv("GTFS_RT_TIMEOUT_S"):
            self.timeout_s = float(os.environ["GTFS_RT_TIMEOUT_S"])
        if os.getenv("FEED_MAX_ATTEMPTS"):
            self.max_attempts = int(os.environ["FEED_MAX_ATTEMPTS"])
        if os.getenv("FEED_RETRY_DELAY_S"):
            self.retry_delay_s = float(os.environ["FEED_RETRY_DELAY_S"])
        self.max_attempts = max(1, self.max_attempts)

    def _headers(self) -> dict[str, str]:
        raw = (self.headers_raw or "").strip()
        if not raw:
            return {}
        headers: dict[str, str] = {}
        for part in raw.split(";"):
            part = part.strip()
            if not part:
                continue
            if ":" not in part:
                continue
            k, v = part.split(":", 1)
            k = k.strip()
            v = v.strip()
            if k:
                headers[k] = v
        return headers

    async def fetch_snapshot(self) -> list[VehicleSnapshot]:
        if not self.url:
            return []

        last_error: FeedError | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                content = await self._download(self.url)
                return parse_vehicle_positions(
                    content,
                    directory=self.directory,
                    fetched_at=datetime.now(timezone.utc),
                )
            except (FetchTransportError, FetchDecodeError) as exc:
                last_error = exc
                logger.warning(
                    "Feed fetch attempt %d/%d failed (%s): %s",
                    attempt,
                    self.max_attempts,
                    type(exc).__name__,
                    exc,
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.retry_delay_s)

        raise FetchExhaustedError(self.max_attempts, last_error)

    async def _download(self, url: str) -> bytes:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_s, transport=self.transport
            ) as client:
                resp = await client.get(url, headers=self._headers())
                resp.raise_for_status()
                return resp.content
        except httpx.HTTPError as exc:
            raise FetchTransportError(f"{type(exc).__name__}: {exc}") from exc


def _resolve_vehicle_id(ent) -> tuple[str | None, bool]:
    """Return (vehicle_id, synthesized).

    Fallbacks are derived from other entity fields so they stay stable across
    fetches of the same vehicle.
    """

    v = ent.vehicle
    if v.HasField("vehicle"):
        if v.vehicle.id:
            return v.vehicle.id, False
        if v.vehicle.label:
            return f"LABEL-{v.vehicle.label}", True
    if v.HasField("trip") and v.trip.trip_id:
        return f"TRIP-{v.trip.trip_id}", True
    if ent.id:
        return f"ENTITY-{ent.id}", True
    return None, False


def parse_vehicle_positions(
    content: bytes, *, directory: ReferenceDirectory, fetched_at: datetime
) -> list[VehicleSnapshot]:
    feed = gtfs_realtime_pb2.FeedMessage()
    try:
        feed.ParseFromString(content)
    except DecodeError as exc:
        raise FetchDecodeError(str(exc) or "invalid FeedMessage payload") from exc

    out: list[VehicleSnapshot] = []
    synthesized = 0
    dropped = 0

    for ent in feed.entity:
        if not ent.HasField("vehicle"):
            continue

        v = ent.vehicle
        if not v.HasField("position"):
            continue

        vehicle_id, is_synthesized = _resolve_vehicle_id(ent)
        if vehicle_id is None:
            dropped += 1
            continue

        try:
            point = GeoPoint.parse(v.position.latitude, v.position.longitude)
        except ValueError:
            dropped += 1
            continue

        route_id = UNKNOWN_ROUTE_ID
        if v.HasField("trip") and v.trip.route_id:
            route_id = v.trip.route_id

        if is_synthesized:
            synthesized += 1

        out.append(
            VehicleSnapshot(
                vehicle_id=vehicle_id,
                route_id=route_id,
                route_name=directory.route_name(route_id),
                lat=point.lat,
                lon=point.lon,
                captured_at=fetched_at,
                id_synthesized=is_synthesized,
            )
        )

    if synthesized or dropped:
        logger.warning(
            "Feed had %d vehicle(s) without a vehicle id (fallback ids used) "
            "and %d unusable entities dropped",
            synthesized,
            dropped,
        )

    return out
