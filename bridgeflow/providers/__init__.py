from .base import Provider
from .garden import GardenClient, is_garden_available
from .relay import RelayClient, create_relay_client, validate_relay_url

__all__ = [
    "Provider",
    "GardenClient",
    "is_garden_available",
    "RelayClient",
    "create_relay_client",
    "validate_relay_url",
]
