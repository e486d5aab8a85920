from .proximity_repository import IProximityRepository
from .reference_data_repository import IReferenceDataRepository
from .subscriber_gateway import ISubscriberGateway
from .vehicle_feed_provider import IVehicleFeedProvider
from .vehicle_state_repository import IVehicleStateRepository

__all__ = [
    "IProximityRepository",
    "IReferenceDataRepository",
    "ISubscriberGateway",
    "IVehicleFeedProvider",
    "IVehicleStateRepository",
]
