from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from fastapi import Depends, Request

from src.adapters.aws import AwsRuntimeConfig
from src.adapters.persistence import (
    DynamoDbProximityRepository,
    DynamoDbVehicleStateRepository,
    InMemoryProximityRepository,
    InMemoryVehicleStateRepository,
    LocalReferenceDataRepository,
)
from src.adapters.realtime.http_vehicle_feed_client import HttpVehicleFeedClient
from src.adapters.settings import PipelineRuntimeConfig
from src.app.ports.output import (
    IProximityRepository,
    IReferenceDataRepository,
    ISubscriberGateway,
    IVehicleStateRepository,
)
from src.app.services.distributor import Distributor
from src.app.services.fare_check_service import FareCheckService
from src.app.services.fleet_pipeline import FleetPipeline
from src.app.services.persistence_sync import PersistenceSync
from src.app.services.scheduler import PipelineScheduler

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FleetRuntime:
    pipeline: FleetPipeline
    scheduler: PipelineScheduler
    distributor: Distributor
    fare_checks: FareCheckService


def _build_repositories() -> tuple[IVehicleStateRepository, IProximityRepository]:
    aws = AwsRuntimeConfig.from_env()
    if aws.dynamodb_enabled:
        logger.info(
            "Using DynamoDB tables %s and %s",
            aws.resolved_vehicle_state_table(),
            aws.resolved_proximity_table(),
        )
        return DynamoDbVehicleStateRepository(), DynamoDbProximityRepository()

    logger.warning("No DynamoDB tables configured; fleet state is kept in memory")
    return InMemoryVehicleStateRepository(), InMemoryProximityRepository()


def build_runtime(
    gateway: ISubscriberGateway,
    *,
    config: PipelineRuntimeConfig | None = None,
    reference_data: IReferenceDataRepository | None = None,
) -> FleetRuntime:
    """Wire the pipeline. Reference-data failures propagate and abort startup."""

    cfg = config or PipelineRuntimeConfig.from_env()
    directory = (reference_data or LocalReferenceDataRepository()).load_directory()
    state_repository, proximity_repository = _build_repositories()

    distributor = Distributor(
        gateway=gateway,
        detail_threshold=cfg.stop_detail_threshold,
        delivery_timeout_s=cfg.delivery_timeout_s,
    )
    pipeline = FleetPipeline(
        feed=HttpVehicleFeedClient(directory=directory),
        state_repository=state_repository,
        proximity_repository=proximity_repository,
        directory=directory,
        distributor=distributor,
        persistence=PersistenceSync(
            state_repository=state_repository,
            proximity_repository=proximity_repository,
            max_concurrency=cfg.persist_concurrency,
        ),
        radius_km=cfg.stop_radius_km,
        persist_timeout_s=cfg.persist_timeout_s,
    )
    scheduler = PipelineScheduler(
        pipeline=pipeline,
        interval_s=cfg.interval_s,
        shutdown_grace_s=cfg.shutdown_grace_s,
    )
    return FleetRuntime(
        pipeline=pipeline,
        scheduler=scheduler,
        distributor=distributor,
        fare_checks=FareCheckService(
            state_repository=state_repository, pipeline=pipeline
        ),
    )


def get_runtime(request: Request) -> FleetRuntime:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise RuntimeError("Fleet runtime not started")
    return runtime


def get_fleet_pipeline(runtime: FleetRuntime = Depends(get_runtime)) -> FleetPipeline:
    return runtime.pipeline


def get_fare_check_service(
    runtime: FleetRuntime = Depends(get_runtime),
) -> FareCheckService:
    return runtime.fare_checks


def get_pipeline_status(runtime: FleetRuntime = Depends(get_runtime)) -> dict[str, Any]:
    return {
        **runtime.scheduler.status,
        "subscribers": len(runtime.distributor.registry),
    }
