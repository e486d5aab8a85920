from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import httpx
import pytest
from google.transit import gtfs_realtime_pb2

from src.adapters.realtime.http_vehicle_feed_client import (
    HttpVehicleFeedClient,
    parse_vehicle_positions,
)
from src.domain.exceptions.feed import (
    FetchDecodeError,
    FetchExhaustedError,
    FetchTransportError,
)
from src.domain.models import ReferenceDirectory

URL = "http://feed.test/vehicle-positions"
DIRECTORY = ReferenceDirectory(route_names={"R1": "Airport Express"})
FETCHED_AT = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


def _feed(*entities: dict) -> bytes:
    msg = gtfs_realtime_pb2.FeedMessage()
    msg.header.gtfs_realtime_version = "2.0"
    for i, fields in enumerate(entities):
        ent = msg.entity.add()
        ent.id = fields.get("entity_id", f"e{i}")
        vp = ent.vehicle
        if "vehicle_id" in fields:
            vp.vehicle.id = fields["vehicle_id"]
        if "label" in fields:
            vp.vehicle.label = fields["label"]
        if "route_id" in fields:
            vp.trip.route_id = fields["route_id"]
        if "trip_id" in fields:
            vp.trip.trip_id = fields["trip_id"]
        vp.position.latitude = fields.get("lat", 28.1)
        vp.position.longitude = fields.get("lon", -15.4)
    return msg.SerializeToString()


def _client(handler, *, max_attempts: int = 3) -> HttpVehicleFeedClient:
    return HttpVehicleFeedClient(
        directory=DIRECTORY,
        url=URL,
        max_attempts=max_attempts,
        retry_delay_s=0.0,
        transport=httpx.MockTransport(handler),
    )


def test_parse_maps_route_names_and_unknown_route() -> None:
    content = _feed(
        {"vehicle_id": "V1", "route_id": "R1"},
        {"vehicle_id": "V2", "route_id": "R9"},
        {"vehicle_id": "V3"},
    )

    out = parse_vehicle_positions(content, directory=DIRECTORY, fetched_at=FETCHED_AT)

    assert [(s.vehicle_id, s.route_id, s.route_name) for s in out] == [
        ("V1", "R1", "Airport Express"),
        ("V2", "R9", "R9"),
        ("V3", "UNKNOWN", "UNKNOWN"),
    ]
    assert all(s.captured_at == FETCHED_AT for s in out)
    assert not any(s.id_synthesized for s in out)


def test_parse_synthesizes_stable_fallback_ids(caplog) -> None:
    content = _feed(
        {"label": "Bus 12", "route_id": "R1"},
        {"trip_id": "T42", "route_id": "R1"},
        {"entity_id": "ent-7"},
    )

    first = parse_vehicle_positions(
        content, directory=DIRECTORY, fetched_at=FETCHED_AT
    )
    second = parse_vehicle_positions(
        content, directory=DIRECTORY, fetched_at=FETCHED_AT
    )

    assert [s.vehicle_id for s in first] == [
        "LABEL-Bus 12",
        "TRIP-T42",
        "ENTITY-ent-7",
    ]
    assert [s.vehicle_id for s in first] == [s.vehicle_id for s in second]
    assert all(s.id_synthesized for s in first)
    assert "without a vehicle id" in caplog.text


def test_parse_drops_invalid_coordinates() -> None:
    content = _feed({"vehicle_id": "V1", "lat": 95.0}, {"vehicle_id": "V2"})

    out = parse_vehicle_positions(content, directory=DIRECTORY, fetched_at=FETCHED_AT)

    assert [s.vehicle_id for s in out] == ["V2"]


def test_parse_invalid_payload_raises_decode_error() -> None:
    with pytest.raises(FetchDecodeError):
        parse_vehicle_positions(
            b"not a protobuf", directory=DIRECTORY, fetched_at=FETCHED_AT
        )


def test_fetch_snapshot_returns_vehicles_and_sends_headers() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=_feed({"vehicle_id": "V1"}))

    client = _client(handler)
    client.headers_raw = "x-api-key: secret; bogus"

    out = asyncio.run(client.fetch_snapshot())

    assert [s.vehicle_id for s in out] == ["V1"]
    assert seen[0].headers["x-api-key"] == "secret"


def test_fetch_snapshot_retries_then_succeeds() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] < 3:
            return httpx.Response(503)
        return httpx.Response(200, content=_feed({"vehicle_id": "V1"}))

    out = asyncio.run(_client(handler).fetch_snapshot())

    assert calls["n"] == 3
    assert len(out) == 1


def test_fetch_snapshot_retries_decode_failures() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] == 1:
            return httpx.Response(200, content=b"not a protobuf")
        return httpx.Response(200, content=_feed({"vehicle_id": "V1"}))

    out = asyncio.run(_client(handler).fetch_snapshot())

    assert calls["n"] == 2
    assert len(out) == 1


def test_fetch_snapshot_exhausted_after_max_attempts() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(FetchExhaustedError) as excinfo:
        asyncio.run(_client(handler).fetch_snapshot())

    assert calls["n"] == 3
    assert excinfo.value.attempts == 3
    assert isinstance(excinfo.value.last_error, FetchTransportError)


def test_fetch_snapshot_without_url_returns_empty(monkeypatch) -> None:
    monkeypatch.delenv("GTFS_RT_VEHICLE_POSITIONS_URL", raising=False)

    client = HttpVehicleFeedClient(directory=DIRECTORY)

    assert asyncio.run(client.fetch_snapshot()) == []
