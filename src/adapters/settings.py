from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from src.app.services.payloads import STOP_DETAIL_THRESHOLD
from src.domain.algorithms.proximity import STOP_RADIUS_KM


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    return int(raw) if raw else default


@dataclass(frozen=True, slots=True)
class PipelineRuntimeConfig:
    interval_s: float = 5.0
    shutdown_grace_s: float = 10.0
    delivery_timeout_s: float = 2.0
    persist_timeout_s: float = 10.0
    persist_concurrency: int = 16
    stop_detail_threshold: int = STOP_DETAIL_THRESHOLD
    stop_radius_km: float = STOP_RADIUS_KM

    @staticmethod
    def from_env() -> "PipelineRuntimeConfig":
        return PipelineRuntimeConfig(
            interval_s=_env_float("PIPELINE_INTERVAL_S", 5.0),
            shutdown_grace_s=_env_float("SHUTDOWN_GRACE_S", 10.0),
            delivery_timeout_s=_env_float("DELIVERY_TIMEOUT_S", 2.0),
            persist_timeout_s=_env_float("PERSIST_TIMEOUT_S", 10.0),
            persist_concurrency=_env_int("PERSIST_CONCURRENCY", 16),
            stop_detail_threshold=_env_int(
                "STOP_DETAIL_THRESHOLD", STOP_DETAIL_THRESHOLD
            ),
            stop_radius_km=_env_float("STOP_RADIUS_KM", STOP_RADIUS_KM),
        )


def configure_logging() -> None:
    level = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
