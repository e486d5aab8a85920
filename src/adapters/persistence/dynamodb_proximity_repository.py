from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from src.adapters.aws import AwsRuntimeConfig, dynamodb_client
from src.adapters.persistence.dynamodb_items import (
    item_to_proximity,
    proximity_to_item,
)
from src.app.ports.output import IProximityRepository
from src.domain.models import ProximityRecord

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DynamoDbProximityRepository(IProximityRepository):
    """Stores the last matched stop per vehicle in DynamoDB.

    Env vars:
      - PROXIMITY_TABLE (default: buswatch-stop-proximity)
      - ENDPOINT_URL (preferred for LocalStack)
      - AWS_REGION
    """

    table_name: str | None = None
    _client: Any = field(default=None, init=False, repr=False)

    def _table(self) -> str:
        return self.table_name or AwsRuntimeConfig.from_env().resolved_proximity_table()

    def _ddb(self) -> Any:
        if self._client is None:
            self._client = dynamodb_client()
        return self._client

    def load_all(self) -> dict[str, ProximityRecord]:
        paginator = self._ddb().get_paginator("scan")
        out: dict[str, ProximityRecord] = {}
        for page in paginator.paginate(TableName=self._table(), ConsistentRead=True):
            for item in page.get("Items", []):
                try:
                    record = item_to_proximity(item)
                except (KeyError, TypeError, ValueError) as exc:
                    logger.warning(
                        "Skipping unreadable proximity record %s: %s",
                        item.get("vehicle_id", {}).get("S", "<no id>"),
                        exc,
                    )
                    continue
                out[record.vehicle_id] = record
        return out

    def upsert(self, record: ProximityRecord) -> None:
        self._ddb().put_item(TableName=self._table(), Item=proximity_to_item(record))
