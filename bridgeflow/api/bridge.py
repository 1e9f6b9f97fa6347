from typing import Any, Dict, Literal, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query

from .deps import get_garden_client, get_relay_client
from ..core.bridge.constants import BRIDGE_SOURCE, STARKNET_BTC_TOKENS
from ..core.bridge.progress import derive_deposit_progress, derive_withdraw_progress
from ..core.recovery.errors import GardenApiError, QuoteUnavailableError
from ..providers.garden import GardenClient
from ..providers.relay import RelayClient

router = APIRouter()

Direction = Literal["deposit", "withdraw"]


def _garden_http_error(exc: GardenApiError) -> HTTPException:
    status = exc.status_code if exc.status_code and exc.status_code >= 400 else 502
    return HTTPException(status_code=status, detail=exc.message)


@router.get("/bridge/quote")
async def bridge_quote(
    amount: int = Query(..., gt=0, description="Source amount in base units (satoshis)"),
    direction: Direction = Query("deposit", description="deposit: BTC -> Starknet, withdraw: Starknet -> BTC"),
    garden: GardenClient = Depends(get_garden_client),
) -> Dict[str, Any]:
    """Best Garden quote for ``amount``; not queued when offline."""

    assets = garden.assets
    if direction == "deposit":
        from_asset, to_asset = assets["btc"], assets["wbtc"]
        destination_token = STARKNET_BTC_TOKENS[garden.network]["wBTC"]
    else:
        from_asset, to_asset = assets["wbtc"], assets["btc"]
        destination_token = assets["btc"]

    try:
        quotes = await garden.get_quote(from_asset, to_asset, amount, queue_on_network_error=False)
        if not quotes:
            raise QuoteUnavailableError(provider="garden")
    except QuoteUnavailableError as exc:
        raise HTTPException(status_code=404, detail=exc.message)
    except GardenApiError as exc:
        raise _garden_http_error(exc) from exc
    except httpx.TransportError as exc:
        raise HTTPException(status_code=503, detail=f"Garden unreachable: {exc}")

    best = quotes[0]
    return {
        "success": True,
        "network": garden.network,
        "direction": direction,
        "estimate": {
            "outputAmount": best.destination.amount,
            "fee": best.fee,
            "estimatedTimeSeconds": best.estimated_time,
            "destinationTokenAddress": destination_token,
        },
        "quotes": len(quotes),
        "source": BRIDGE_SOURCE,
    }


@router.get("/bridge/orders/{order_id}")
async def bridge_order_status(
    order_id: str,
    direction: Direction = Query("deposit"),
    garden: GardenClient = Depends(get_garden_client),
) -> Dict[str, Any]:
    """Raw Garden order state plus the derived progress."""

    try:
        status = await garden.get_order_status(order_id)
    except GardenApiError as exc:
        raise _garden_http_error(exc) from exc
    except httpx.TransportError as exc:
        raise HTTPException(status_code=503, detail=f"Garden unreachable: {exc}")

    derive = derive_deposit_progress if direction == "deposit" else derive_withdraw_progress
    progress = derive(status)
    return {
        "success": True,
        "order": status.model_dump(),
        "progress": progress.to_dict(),
        "terminal": progress.is_terminal,
    }


@router.get("/relay/status")
async def relay_status(relay: Optional[RelayClient] = Depends(get_relay_client)) -> Dict[str, Any]:
    if relay is None:
        return {"configured": False, "healthy": False}
    status = await relay.get_status()
    return {"configured": True, **status.model_dump(by_alias=True, exclude_none=True)}
