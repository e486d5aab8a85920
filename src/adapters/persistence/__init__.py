from .dynamodb_proximity_repository import DynamoDbProximityRepository
from .dynamodb_vehicle_state_repository import DynamoDbVehicleStateRepository
from .in_memory_fleet_repository import (
    InMemoryProximityRepository,
    InMemoryVehicleStateRepository,
)
from .local_reference_data_repository import LocalReferenceDataRepository

__all__ = [
    "DynamoDbProximityRepository",
    "DynamoDbVehicleStateRepository",
    "InMemoryProximityRepository",
    "InMemoryVehicleStateRepository",
    "LocalReferenceDataRepository",
]
