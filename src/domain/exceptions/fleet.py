class FleetError(Exception):
    """Base exception for fleet-state operations."""


class VehicleNotFoundError(FleetError):
    """No stored vehicle matches the requested vehicle/route pair."""


class InvalidFareCheckError(FleetError):
    """A fare-check event carries values that cannot be applied."""


class ReferenceDataError(Exception):
    """Stop or route reference data could not be loaded (fatal at startup)."""


class PersistenceError(Exception):
    """A single record could not be written to durable storage."""

    def __init__(
        self, vehicle_id: str, record_kind: str, cause: BaseException
    ) -> None:
        super().__init__(f"Failed to persist {record_kind} for {vehicle_id}: {cause}")
        self.vehicle_id = vehicle_id
        self.record_kind = record_kind
        self.cause = cause


class DeliveryError(Exception):
    """A payload could not be delivered to one subscriber."""

    def __init__(self, subscriber_id: str, reason: str) -> None:
        super().__init__(f"Delivery to {subscriber_id} failed: {reason}")
        self.subscriber_id = subscriber_id
        self.reason = reason
