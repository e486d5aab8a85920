from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

import boto3
from botocore.client import BaseClient

if TYPE_CHECKING:
    from mypy_boto3_dynamodb import DynamoDBClient
else:
    DynamoDBClient = BaseClient  # type: ignore[misc,assignment]

DEFAULT_VEHICLE_STATE_TABLE = "buswatch-vehicle-states"
DEFAULT_PROXIMITY_TABLE = "buswatch-stop-proximity"


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_str(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    return raw.strip() or None


@dataclass(frozen=True, slots=True)
class AwsRuntimeConfig:
    """AWS connection settings plus the fleet's DynamoDB table names.

    Leaving both table variables unset selects the in-memory stores.
    """

    use_localstack: bool
    region: str
    endpoint_url: str | None
    vehicle_state_table: str | None = None
    proximity_table: str | None = None

    @staticmethod
    def from_env() -> "AwsRuntimeConfig":
        return AwsRuntimeConfig(
            use_localstack=_env_bool("USE_LOCALSTACK", False),
            region=os.getenv("AWS_REGION", "eu-west-1"),
            endpoint_url=_env_str("ENDPOINT_URL"),
            vehicle_state_table=_env_str("VEHICLE_STATE_TABLE"),
            proximity_table=_env_str("PROXIMITY_TABLE"),
        )

    @property
    def dynamodb_enabled(self) -> bool:
        return bool(self.vehicle_state_table or self.proximity_table)

    def resolved_vehicle_state_table(self) -> str:
        return self.vehicle_state_table or DEFAULT_VEHICLE_STATE_TABLE

    def resolved_proximity_table(self) -> str:
        return self.proximity_table or DEFAULT_PROXIMITY_TABLE

    def resolved_endpoint_url(self) -> str | None:
        """Return the endpoint URL to use for boto3.

        Priority:
          1) ENDPOINT_URL (explicit override; preferred for LocalStack)
          2) LOCALSTACK_ENDPOINT_URL if USE_LOCALSTACK is enabled
          3) None (real AWS)
        """

        if self.endpoint_url:
            return self.endpoint_url
        if self.use_localstack:
            return os.getenv("LOCALSTACK_ENDPOINT_URL", "http://localhost:4566")
        return None


def dynamodb_client(cfg: AwsRuntimeConfig | None = None) -> DynamoDBClient:
    cfg = cfg or AwsRuntimeConfig.from_env()
    session = boto3.session.Session(region_name=cfg.region)
    return session.client("dynamodb", endpoint_url=cfg.resolved_endpoint_url())
