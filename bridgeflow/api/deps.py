"""Request-scoped provider dependencies."""

from typing import AsyncIterator, Optional

from fastapi import HTTPException, Query

from ..core.recovery.errors import InvalidRelayUrlError
from ..providers.garden import GardenClient
from ..providers.relay import RelayClient, create_relay_client


async def get_garden_client(
    network: Optional[str] = Query(None, description="sepolia or mainnet (default from settings)"),
) -> AsyncIterator[GardenClient]:
    try:
        client = GardenClient(network)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    try:
        yield client
    finally:
        await client.aclose()


def get_relay_client() -> Optional[RelayClient]:
    try:
        return create_relay_client()
    except InvalidRelayUrlError as exc:
        raise HTTPException(status_code=500, detail=f"Relay misconfigured: {exc.message}")
