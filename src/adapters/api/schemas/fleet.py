from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class VehicleSchema(BaseModel):
    vehicle_id: str
    route_id: str
    route_name: str
    lat: float
    lon: float
    checked: bool
    stops_remaining: int
    mileage: float
    ticket_revenue: float
    fine_revenue: float
    route_completions: int
    last_updated: datetime
    checked_at: datetime | None = None
    non_ticket_holders: int = 0
    checked_stop: str | None = None


class StopSchema(BaseModel):
    stop_id: str
    name: str
    lat: float
    lon: float


class VehiclesResponseSchema(BaseModel):
    vehicles: list[VehicleSchema]


class FareCheckRequestSchema(BaseModel):
    vehicle_id: str = Field(..., min_length=1)
    route_id: str = Field(..., min_length=1)
    non_ticket_holders: int = Field(..., ge=0)
    fine_collected: float = Field(..., ge=0.0)


class FareCheckResponseSchema(BaseModel):
    success: bool = True
    vehicle: VehicleSchema


class PipelineStatusSchema(BaseModel):
    running: bool
    cycle_in_flight: bool
    last_cycle_at: datetime | None = None
    cycle_count: int
    skipped_ticks: int
    error_count: int
    interval_seconds: float
    last_vehicle_count: int | None = None
    last_feed_stale: bool | None = None
    subscribers: int = 0
