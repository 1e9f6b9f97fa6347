"""
BTC bridge providers.

``BtcBridgeProvider`` is the uniform estimate/execute contract the
orchestrators are written against:

- ``Erc20BridgeProvider``: passthrough for BTC-backed ERC20s already on Starknet
- ``GardenBridgeProvider``: native BTC -> Starknet wBTC through Garden's HTLCs
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ...providers.garden import GardenClient, GardenOrderAsset
from ..recovery.errors import QuoteUnavailableError, error_message
from .constants import NULL_ADDRESS, STARKNET_BTC_TOKENS, normalize_network
from .models import BridgeEstimate, BridgeParams, BridgeResult, GardenBridgeParams, GardenBridgeResult


class BtcBridgeProvider(ABC):
    """Estimate and execute a bridge into Starknet.

    ``execute_bridge`` never raises: every failure is returned as a result
    with ``success=False`` and a message.
    """

    name: str
    display_name: str
    supported_assets: List[str]

    @abstractmethod
    async def estimate_bridge(self, amount: int, source_asset: str) -> BridgeEstimate:
        """Raises ``QuoteUnavailableError`` when no route exists."""

    @abstractmethod
    async def execute_bridge(self, params: BridgeParams) -> BridgeResult:
        ...


class Erc20BridgeProvider(BtcBridgeProvider):
    """No bridging needed: the token already lives on Starknet."""

    name = "erc20"
    display_name = "Starknet ERC20 (Direct)"
    supported_assets = ["wBTC", "LBTC", "tBTC", "SolvBTC"]

    def __init__(self, token_addresses: Dict[str, str]) -> None:
        self.token_addresses = dict(token_addresses)

    def _token_address(self, asset: str) -> Optional[str]:
        address = self.token_addresses.get(asset)
        if not address or address == NULL_ADDRESS:
            return None
        return address

    async def estimate_bridge(self, amount: int, source_asset: str) -> BridgeEstimate:
        token_address = self._token_address(source_asset)
        if token_address is None:
            raise QuoteUnavailableError(f"{source_asset} is not available on Starknet", provider=self.name)
        return BridgeEstimate(
            output_amount=amount,
            fee=0,
            estimated_time_seconds=0,
            destination_token_address=token_address,
        )

    async def execute_bridge(self, params: BridgeParams) -> BridgeResult:
        if self._token_address(params.source_asset) is None:
            return BridgeResult.failure(f"{params.source_asset} is not available on Starknet")
        # Approve + deposit happen downstream; nothing to bridge
        return BridgeResult(success=True, output_amount=params.amount)


class GardenBridgeProvider(BtcBridgeProvider):
    """Native BTC -> Starknet wBTC via Garden Finance."""

    name = "garden"
    display_name = "Garden Finance (Native BTC)"
    supported_assets = ["BTC"]

    def __init__(
        self,
        network: str,
        *,
        client: Optional[GardenClient] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.network = normalize_network(network)
        self.client = client or GardenClient(self.network)
        self.logger = logger or logging.getLogger(__name__)

    @property
    def wbtc_address(self) -> str:
        return STARKNET_BTC_TOKENS[self.network].get("wBTC", NULL_ADDRESS)

    async def estimate_bridge(self, amount: int, source_asset: str = "BTC") -> BridgeEstimate:
        assets = self.client.assets
        quotes = await self.client.get_quote(assets["btc"], assets["wbtc"], amount, queue_on_network_error=False)
        if not quotes:
            raise QuoteUnavailableError("No Garden quotes available for this amount", provider=self.name)

        best = quotes[0]
        return BridgeEstimate(
            output_amount=int(best.destination.amount),
            fee=int(best.fee),
            estimated_time_seconds=int(best.estimated_time),
            destination_token_address=self.wbtc_address,
        )

    async def execute_bridge(self, params: BridgeParams) -> GardenBridgeResult:
        """Create the HTLC order; the caller then sends BTC to ``deposit_address``."""

        if not isinstance(params, GardenBridgeParams) or not params.btc_address:
            return GardenBridgeResult.failure("BTC source address is required for Garden bridge")

        btc_address = params.btc_address
        receive_amount = params.receive_amount if params.receive_amount is not None else params.amount
        assets = self.client.assets
        try:
            order = await self.client.create_btc_to_starknet_order(
                GardenOrderAsset(asset=assets["btc"], owner=btc_address, amount=str(params.amount)),
                GardenOrderAsset(asset=assets["wbtc"], owner=params.recipient, amount=str(receive_amount)),
            )
        except Exception as exc:
            self.logger.warning("Garden order creation failed: %s", exc)
            return GardenBridgeResult.failure(error_message(exc, "Garden order creation failed"))

        return GardenBridgeResult(
            success=True,
            output_amount=int(receive_amount),
            order_id=order.order_id,
            deposit_address=order.to,
            deposit_amount=order.amount,
        )


def get_bridge_provider(
    name: str,
    network: str,
    *,
    client: Optional[GardenClient] = None,
    token_addresses: Optional[Dict[str, str]] = None,
) -> BtcBridgeProvider:
    """The only place that looks at provider identity."""

    key = (name or "").strip().lower()
    if key == "garden":
        return GardenBridgeProvider(network, client=client)
    if key == "erc20":
        tokens = token_addresses if token_addresses is not None else STARKNET_BTC_TOKENS[normalize_network(network)]
        return Erc20BridgeProvider(tokens)
    raise ValueError(f"Unknown bridge provider {name!r}")
