from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from src.adapters.api.dependencies import (
    get_fare_check_service,
    get_fleet_pipeline,
    get_pipeline_status,
)
from src.adapters.api.schemas.fleet import (
    FareCheckRequestSchema,
    FareCheckResponseSchema,
    PipelineStatusSchema,
    StopSchema,
    VehicleSchema,
    VehiclesResponseSchema,
)
from src.app.services.fare_check_service import FareCheckService
from src.app.services.fleet_pipeline import FleetPipeline
from src.domain.exceptions.fleet import InvalidFareCheckError, VehicleNotFoundError
from src.domain.models import VehicleState

router = APIRouter(prefix="/api", tags=["fleet"])


def _vehicle_to_schema(v: VehicleState) -> VehicleSchema:
    return VehicleSchema(
        vehicle_id=v.vehicle_id,
        route_id=v.route_id,
        route_name=v.route_name,
        lat=v.lat,
        lon=v.lon,
        checked=v.checked,
        stops_remaining=v.stops_remaining,
        mileage=v.mileage,
        ticket_revenue=v.ticket_revenue,
        fine_revenue=v.fine_revenue,
        route_completions=v.route_completions,
        last_updated=v.last_updated,
        checked_at=v.checked_at,
        non_ticket_holders=v.non_ticket_holders,
        checked_stop=v.checked_stop,
    )


@router.get("/vehicles", response_model=VehiclesResponseSchema)
def list_vehicles(
    pipeline: FleetPipeline = Depends(get_fleet_pipeline),
) -> VehiclesResponseSchema:
    return VehiclesResponseSchema(
        vehicles=[_vehicle_to_schema(v) for v in pipeline.current_vehicles()]
    )


@router.get("/vehicles/{vehicle_id}", response_model=VehicleSchema)
def get_vehicle(
    vehicle_id: str,
    pipeline: FleetPipeline = Depends(get_fleet_pipeline),
) -> VehicleSchema:
    state = pipeline.find_vehicle(vehicle_id)
    if state is None:
        raise HTTPException(status_code=404, detail=f"No vehicle {vehicle_id}")
    return _vehicle_to_schema(state)


@router.get("/stops", response_model=list[StopSchema])
def list_stops(
    pipeline: FleetPipeline = Depends(get_fleet_pipeline),
) -> list[StopSchema]:
    return [
        StopSchema(
            stop_id=s.id, name=s.name, lat=s.location.lat, lon=s.location.lon
        )
        for s in pipeline.stops()
    ]


@router.post("/fare-checks", response_model=FareCheckResponseSchema)
def record_fare_check(
    req: FareCheckRequestSchema,
    service: FareCheckService = Depends(get_fare_check_service),
) -> FareCheckResponseSchema:
    try:
        state = service.record(
            vehicle_id=req.vehicle_id,
            route_id=req.route_id,
            non_ticket_holders=req.non_ticket_holders,
            fine_collected=req.fine_collected,
        )
    except VehicleNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except InvalidFareCheckError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return FareCheckResponseSchema(vehicle=_vehicle_to_schema(state))


@router.get("/pipeline/status", response_model=PipelineStatusSchema)
def pipeline_status(
    status: dict[str, Any] = Depends(get_pipeline_status),
) -> PipelineStatusSchema:
    return PipelineStatusSchema(**status)
