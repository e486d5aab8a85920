from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from botocore.exceptions import ClientError

from src.adapters.aws import AwsRuntimeConfig, dynamodb_client
from src.adapters.persistence.dynamodb_items import item_to_state, state_to_item
from src.app.ports.output import IVehicleStateRepository
from src.domain.exceptions.fleet import VehicleNotFoundError
from src.domain.models import MAX_STOPS_REMAINING, FareCheck, VehicleState

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DynamoDbVehicleStateRepository(IVehicleStateRepository):
    """Stores one VehicleState item per vehicle_id in DynamoDB.

    Env vars:
      - VEHICLE_STATE_TABLE (default: buswatch-vehicle-states)
      - ENDPOINT_URL (preferred for LocalStack)
      - AWS_REGION
    """

    table_name: str | None = None
    _client: Any = field(default=None, init=False, repr=False)

    def _table(self) -> str:
        if self.table_name:
            return self.table_name
        return AwsRuntimeConfig.from_env().resolved_vehicle_state_table()

    def _ddb(self) -> Any:
        # boto3 clients are thread-safe; reuse one across persistence writes.
        if self._client is None:
            self._client = dynamodb_client()
        return self._client

    def load_all(self) -> dict[str, VehicleState]:
        paginator = self._ddb().get_paginator("scan")
        out: dict[str, VehicleState] = {}
        for page in paginator.paginate(TableName=self._table(), ConsistentRead=True):
            for item in page.get("Items", []):
                try:
                    state = item_to_state(item)
                except (KeyError, TypeError, ValueError) as exc:
                    # The vehicle starts over from defaults when it is next seen.
                    logger.warning(
                        "Skipping unreadable vehicle state %s: %s",
                        item.get("vehicle_id", {}).get("S", "<no id>"),
                        exc,
                    )
                    continue
                out[state.vehicle_id] = state
        return out

    def upsert(self, state: VehicleState) -> None:
        self._ddb().put_item(TableName=self._table(), Item=state_to_item(state))

    def apply_fare_check(self, check: FareCheck) -> VehicleState:
        received = check.received_at.isoformat()
        update = "SET #c = :c, #f = :f, #s = :s, #u = :u, #ca = :u, #n = :n"
        names = {
            "#c": "checked",
            "#f": "fine_revenue",
            "#s": "stops_remaining",
            "#u": "last_updated",
            "#ca": "checked_at",
            "#n": "non_ticket_holders",
            "#cs": "checked_stop",
            "#v": "vehicle_id",
            "#r": "route_id",
        }
        values = {
            ":c": {"BOOL": True},
            ":f": {"N": str(float(check.fine_collected))},
            ":s": {"N": str(MAX_STOPS_REMAINING)},
            ":u": {"S": received},
            ":n": {"N": str(check.non_ticket_holders)},
            ":r": {"S": check.route_id},
        }
        if check.last_stop is not None:
            update += ", #cs = :cs"
            values[":cs"] = {"S": check.last_stop}
        else:
            update += " REMOVE #cs"

        try:
            resp = self._ddb().update_item(
                TableName=self._table(),
                Key={"vehicle_id": {"S": check.vehicle_id}},
                UpdateExpression=update,
                ConditionExpression="attribute_exists(#v) AND #r = :r",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code == "ConditionalCheckFailedException":
                raise VehicleNotFoundError(
                    f"No vehicle {check.vehicle_id} on route {check.route_id}"
                ) from exc
            raise

        return item_to_state(resp["Attributes"])
