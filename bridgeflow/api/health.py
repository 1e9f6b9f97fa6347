from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from .deps import get_garden_client, get_relay_client
from ..providers.garden import GardenClient
from ..providers.relay import RelayClient

router = APIRouter()


@router.get("/healthz")
async def health_check(
    garden: GardenClient = Depends(get_garden_client),
    relay: Optional[RelayClient] = Depends(get_relay_client),
) -> Dict[str, Any]:
    """Health check endpoint that reports Garden configuration and relay reachability"""

    provider_status: Dict[str, Any] = {
        "garden": await garden.health_check(),
        "relay": await relay.health_check() if relay else {"status": "disabled", "reason": "Relay URL not configured"},
    }

    # Disabled providers don't degrade the service, unreachable ones do
    all_healthy = all(
        status["status"] in ("healthy", "disabled")
        for status in provider_status.values()
    )
    available_providers = sum(
        1 for status in provider_status.values()
        if status["status"] == "healthy"
    )

    return {
        "status": "healthy" if all_healthy else "degraded",
        "providers": provider_status,
        "available_providers": available_providers,
        "total_providers": len(provider_status),
    }
