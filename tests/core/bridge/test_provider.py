"""
Tests for the bridge provider contract.
"""

import httpx
import pytest

from bridgeflow.core.bridge.constants import GARDEN_ASSETS, STARKNET_BTC_TOKENS
from bridgeflow.core.bridge.models import BridgeParams, GardenBridgeParams, GardenBridgeResult
from bridgeflow.core.bridge.provider import (
    Erc20BridgeProvider,
    GardenBridgeProvider,
    get_bridge_provider,
)
from bridgeflow.core.recovery import GardenApiError, QuoteUnavailableError, RetryQueue
from bridgeflow.providers.garden import GardenClient, GardenOrderResponse, GardenQuote


class FakeGarden:
    """Stands in for GardenClient at the provider seam."""

    def __init__(self, quotes=None, order=None, error=None):
        self.network = "sepolia"
        self.assets = GARDEN_ASSETS["sepolia"]
        self.quotes = quotes or []
        self.order = order
        self.error = error
        self.quote_calls = []
        self.order_calls = []

    async def get_quote(self, from_asset, to_asset, from_amount, **kwargs):
        self.quote_calls.append((from_asset, to_asset, from_amount))
        return self.quotes

    async def create_btc_to_starknet_order(self, source, destination):
        self.order_calls.append((source, destination))
        if self.error:
            raise self.error
        return self.order


class TestErc20Provider:
    """Passthrough for BTC ERC20s already on Starknet."""

    @pytest.mark.asyncio
    async def test_estimate_is_identity(self):
        provider = Erc20BridgeProvider(STARKNET_BTC_TOKENS["mainnet"])

        estimate = await provider.estimate_bridge(12_345, "tBTC")

        assert estimate.output_amount == 12_345
        assert estimate.fee == 0
        assert estimate.estimated_time_seconds == 0
        assert estimate.destination_token_address == STARKNET_BTC_TOKENS["mainnet"]["tBTC"]

    @pytest.mark.asyncio
    async def test_undeployed_token(self):
        provider = Erc20BridgeProvider(STARKNET_BTC_TOKENS["sepolia"])

        with pytest.raises(QuoteUnavailableError):
            await provider.estimate_bridge(1, "LBTC")

        result = await provider.execute_bridge(BridgeParams(amount=1, source_asset="LBTC", recipient="0xabc"))
        assert result.success is False
        assert result.output_amount == 0
        assert result.error

    @pytest.mark.asyncio
    async def test_execute_passthrough(self):
        provider = Erc20BridgeProvider(STARKNET_BTC_TOKENS["sepolia"])

        result = await provider.execute_bridge(BridgeParams(amount=500, source_asset="wBTC", recipient="0xabc"))

        assert result.success is True
        assert result.output_amount == 500


class TestGardenProvider:
    """Native BTC -> Starknet through Garden."""

    @pytest.mark.asyncio
    async def test_estimate_uses_best_quote(self, quote_payload):
        fake = FakeGarden(quotes=[GardenQuote.model_validate(quote_payload(50_000, fee=150, estimated_time=900))])
        provider = GardenBridgeProvider("sepolia", client=fake)

        estimate = await provider.estimate_bridge(50_000, "BTC")

        assert fake.quote_calls == [("bitcoin_testnet:btc", "starknet_sepolia:wbtc", 50_000)]
        assert estimate.output_amount == 49_850
        assert estimate.fee == 150
        assert estimate.estimated_time_seconds == 900
        assert estimate.destination_token_address == STARKNET_BTC_TOKENS["sepolia"]["wBTC"]

    @pytest.mark.asyncio
    async def test_no_quotes(self):
        provider = GardenBridgeProvider("sepolia", client=FakeGarden(quotes=[]))

        with pytest.raises(QuoteUnavailableError, match="No Garden quotes"):
            await provider.estimate_bridge(1, "BTC")

    @pytest.mark.asyncio
    async def test_estimate_fails_fast_when_garden_is_unreachable(self):
        def unreachable(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("network unreachable", request=request)

        queue = RetryQueue(max_size=5, max_retries=3)
        client = GardenClient(
            "sepolia",
            app_id="test-app",
            base_url="https://garden.test/v2",
            retry_queue=queue,
            transport=httpx.MockTransport(unreachable),
        )
        provider = GardenBridgeProvider("sepolia", client=client)

        with pytest.raises(httpx.ConnectError):
            await provider.estimate_bridge(50_000, "BTC")

        assert queue.size == 0
        await client.aclose()

    @pytest.mark.asyncio
    async def test_missing_source_address_is_a_result(self):
        fake = FakeGarden()
        provider = GardenBridgeProvider("sepolia", client=fake)

        result = await provider.execute_bridge(
            GardenBridgeParams(amount=1000, source_asset="BTC", recipient="0xabc")
        )

        assert result.success is False
        assert result.error == "BTC source address is required for Garden bridge"
        assert fake.order_calls == []

        plain = await provider.execute_bridge(BridgeParams(amount=1000, source_asset="BTC", recipient="0xabc"))
        assert plain.success is False

    @pytest.mark.asyncio
    async def test_execute_uses_quoted_receive_amount(self):
        order = GardenOrderResponse(order_id="ord-1", to="tb1qhtlc", amount="50000")
        fake = FakeGarden(order=order)
        provider = GardenBridgeProvider("sepolia", client=fake)

        result = await provider.execute_bridge(
            GardenBridgeParams(
                amount=50_000,
                source_asset="BTC",
                recipient="0xabc",
                btc_address="tb1quser",
                receive_amount=49_850,
            )
        )

        assert isinstance(result, GardenBridgeResult)
        assert result.success is True
        assert result.output_amount == 49_850
        assert result.order_id == "ord-1"
        assert result.deposit_address == "tb1qhtlc"
        assert result.deposit_amount == "50000"

        source, destination = fake.order_calls[0]
        assert source.owner == "tb1quser" and source.amount == "50000"
        assert destination.owner == "0xabc" and destination.amount == "49850"

    @pytest.mark.asyncio
    async def test_execute_never_raises(self):
        provider = GardenBridgeProvider("sepolia", client=FakeGarden(error=GardenApiError(503, "maintenance")))

        result = await provider.execute_bridge(
            GardenBridgeParams(amount=1, source_asset="BTC", recipient="0xabc", btc_address="tb1quser")
        )

        assert result.success is False
        assert result.output_amount == 0
        assert result.error == "Garden API error (503): maintenance"


class TestFactory:
    def test_known_providers(self):
        assert isinstance(get_bridge_provider("garden", "sepolia", client=FakeGarden()), GardenBridgeProvider)
        assert isinstance(get_bridge_provider("ERC20", "mainnet"), Erc20BridgeProvider)

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            get_bridge_provider("atomiq", "sepolia")


class TestBridgeResult:
    def test_failure_invariant(self):
        with pytest.raises(ValueError):
            GardenBridgeResult(success=False, output_amount=5, error="x")
        with pytest.raises(ValueError):
            GardenBridgeResult(success=False)

        failed = GardenBridgeResult.failure("nope", order_id="ord-1")
        assert failed.output_amount == 0
        assert failed.order_id == "ord-1"
