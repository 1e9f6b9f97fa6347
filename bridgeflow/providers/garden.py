"""Async client for Garden Finance's order API (native BTC <-> Starknet HTLC swaps).

Flow (BTC -> Starknet):
  1. GET /quote -> fee + estimated time
  2. POST /orders -> order_id + BTC deposit address
  3. User sends BTC to the HTLC address
  4. GET /orders/{id} until destination_swap.redeem_tx_hash is populated

Flow (Starknet -> BTC):
  1. GET /quote
  2. POST /orders -> approval_transaction + initiate_transaction + typed_data
  3. Execute the transactions, or sign typed_data and POST /orders/{id}/initiate
  4. GET /orders/{id} until destination_swap.redeem_tx_hash is populated
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .base import Provider
from ..config import settings
from ..core.bridge.constants import GARDEN_ASSETS, normalize_network
from ..core.execution.models import Call
from ..core.recovery.errors import GardenApiError, ProviderError
from ..core.recovery.retry_queue import RetryQueue
from ..services.api_client import ApiClient


class _GardenModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class GardenAssetAmount(_GardenModel):
    asset: str
    amount: str
    decimals: Optional[int] = None

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_as_str(cls, value: Any) -> str:
        return str(value)


class GardenQuote(_GardenModel):
    source: GardenAssetAmount
    destination: GardenAssetAmount
    solver_id: str = ""
    estimated_time: int = 0
    slippage: float = 0
    fee: str = "0"
    fixed_fee: str = "0"

    @field_validator("fee", "fixed_fee", mode="before")
    @classmethod
    def _fee_as_str(cls, value: Any) -> str:
        return "0" if value is None else str(value)


class GardenStarknetTx(_GardenModel):
    to: str
    selector: str
    calldata: List[str] = Field(default_factory=list)

    @field_validator("calldata", mode="before")
    @classmethod
    def _calldata_as_str(cls, value: Any) -> List[str]:
        return [str(item) for item in (value or [])]

    def to_call(self) -> Call:
        return Call(contract_address=self.to, entrypoint=self.selector, calldata=list(self.calldata))


class GardenOrderResponse(_GardenModel):
    """POST /orders response; which optional fields are present depends on direction."""

    order_id: str
    # BTC -> Starknet
    to: Optional[str] = None
    amount: Optional[str] = None
    # Starknet -> BTC
    approval_transaction: Optional[GardenStarknetTx] = None
    initiate_transaction: Optional[GardenStarknetTx] = None
    typed_data: Optional[Dict[str, Any]] = None

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_as_str(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)


class GardenSwapStatus(_GardenModel):
    initiate_tx_hash: Optional[str] = None
    redeem_tx_hash: Optional[str] = None
    refund_tx_hash: Optional[str] = None
    required_confirmations: int = 0
    current_confirmations: int = 0
    amount: str = "0"
    chain: str = ""

    @field_validator("initiate_tx_hash", "redeem_tx_hash", "refund_tx_hash", mode="before")
    @classmethod
    def _blank_hash_is_none(cls, value: Any) -> Optional[str]:
        # Garden reports "not yet" as an empty string
        if value in (None, ""):
            return None
        return str(value)

    @field_validator("required_confirmations", "current_confirmations", mode="before")
    @classmethod
    def _confirmations(cls, value: Any) -> int:
        return int(value or 0)

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_as_str(cls, value: Any) -> str:
        return "0" if value is None else str(value)


class GardenOrderStatus(_GardenModel):
    order_id: str = ""
    status: str = ""
    source_swap: GardenSwapStatus = Field(default_factory=GardenSwapStatus)
    destination_swap: GardenSwapStatus = Field(default_factory=GardenSwapStatus)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class GardenOrderAsset(_GardenModel):
    asset: str
    owner: str
    amount: str


def _unwrap(payload: Any) -> Any:
    # v2 responses may arrive as {"status": "Ok", "result": ...}
    if isinstance(payload, dict) and "result" in payload and "status" in payload:
        return payload["result"]
    return payload


class GardenClient(Provider):
    """Typed wrapper around Garden's quote, order, status and gasless endpoints."""

    name = "garden"

    def __init__(
        self,
        network: Optional[str] = None,
        *,
        app_id: Optional[str] = None,
        base_url: Optional[str] = None,
        retry_queue: Optional[RetryQueue] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.network = normalize_network(network or settings.garden_network)
        self.app_id = app_id if app_id is not None else settings.garden_app_id
        self.base_url = (base_url or settings.garden_base_url(self.network)).rstrip("/")
        self.timeout_s = settings.quote_timeout_seconds
        self.logger = logger or logging.getLogger(__name__)
        self._api = ApiClient(
            self.base_url,
            headers={"garden-app-id": self.app_id} if self.app_id else None,
            timeout_s=settings.order_timeout_seconds,
            retry_queue=retry_queue,
            transport=transport,
            logger=self.logger,
        )

    @property
    def assets(self) -> Dict[str, str]:
        return GARDEN_ASSETS[self.network]

    @property
    def api(self) -> ApiClient:
        return self._api

    async def ready(self) -> bool:
        return bool(self.app_id)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "disabled", "reason": "Garden app id not configured"}
        return {"status": "healthy", "network": self.network, "base_url": self.base_url}

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._api.request(method, path, **kwargs)
        except httpx.HTTPStatusError as exc:
            body = (exc.response.text or "").strip() or exc.response.reason_phrase
            raise GardenApiError(exc.response.status_code, body) from exc
        return _unwrap(response.json())

    async def get_quote(
        self,
        from_asset: str,
        to_asset: str,
        from_amount: int,
        *,
        queue_on_network_error: bool = True,
    ) -> List[GardenQuote]:
        """Quotes for ``from_amount`` base units of ``from_asset``, best first."""

        data = await self._request(
            "GET",
            "/quote",
            params={"from": from_asset, "to": to_asset, "from_amount": str(from_amount)},
            timeout=settings.quote_timeout_seconds,
            queue_on_network_error=queue_on_network_error,
        )
        if not isinstance(data, list):
            data = [data] if data else []
        return [GardenQuote.model_validate(item) for item in data]

    async def create_order(
        self,
        source: GardenOrderAsset,
        destination: GardenOrderAsset,
    ) -> GardenOrderResponse:
        data = await self._request(
            "POST",
            "/orders",
            json={"source": source.model_dump(), "destination": destination.model_dump()},
            timeout=settings.order_timeout_seconds,
        )
        order = GardenOrderResponse.model_validate(data)
        self.logger.info("Garden order %s created (%s -> %s)", order.order_id, source.asset, destination.asset)
        return order

    async def create_btc_to_starknet_order(
        self,
        source: GardenOrderAsset,
        destination: GardenOrderAsset,
    ) -> GardenOrderResponse:
        order = await self.create_order(source, destination)
        if not order.to:
            raise ProviderError(f"Order {order.order_id} has no BTC deposit address", provider="garden")
        return order

    async def create_starknet_to_btc_order(
        self,
        source: GardenOrderAsset,
        destination: GardenOrderAsset,
    ) -> GardenOrderResponse:
        return await self.create_order(source, destination)

    async def get_order_status(
        self,
        order_id: str,
        *,
        queue_on_network_error: bool = False,
    ) -> GardenOrderStatus:
        """Current state of an order.

        Not queued by default: pollers observe again on their next tick instead.
        """
        data = await self._request(
            "GET",
            f"/orders/{quote(order_id, safe='')}",
            timeout=settings.quote_timeout_seconds,
            queue_on_network_error=queue_on_network_error,
        )
        return GardenOrderStatus.model_validate(data)

    async def initiate_gasless(self, order_id: str, signature: List[str]) -> None:
        """Hand a SNIP-12 signature to Garden, which submits the initiate on our behalf."""

        await self._request(
            "POST",
            f"/orders/{quote(order_id, safe='')}/initiate",
            json={"signature": list(signature)},
            timeout=settings.order_timeout_seconds,
        )
        self.logger.info("Garden gasless initiate accepted for order %s", order_id)

    async def aclose(self) -> None:
        await self._api.aclose()


def is_garden_available() -> bool:
    return settings.has_garden_app_id
