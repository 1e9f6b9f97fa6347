"""
Tests for the HTTP API (Garden and relay stubbed with httpx.MockTransport).
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from bridgeflow.api.deps import get_garden_client, get_relay_client
from bridgeflow.core.bridge.constants import STARKNET_BTC_TOKENS
from bridgeflow.core.recovery import RetryQueue
from bridgeflow.main import app
from bridgeflow.providers.garden import GardenClient
from bridgeflow.providers.relay import RelayClient


class Upstream:
    """Canned responses keyed by path."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(request.url.path)
        if handler is None:
            return httpx.Response(404, text="not found")
        return handler(request) if callable(handler) else handler


@pytest.fixture
def garden_upstream() -> Upstream:
    return Upstream()


@pytest.fixture
def relay_upstream() -> Upstream:
    return Upstream()


@pytest.fixture
def client(garden_upstream):
    def garden_override():
        return GardenClient(
            "sepolia",
            app_id="test-app",
            base_url="https://garden.test/v2",
            retry_queue=RetryQueue(max_size=5, max_retries=3),
            transport=httpx.MockTransport(garden_upstream),
        )

    app.dependency_overrides[get_garden_client] = garden_override
    app.dependency_overrides[get_relay_client] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


def _use_relay(upstream: Upstream):
    app.dependency_overrides[get_relay_client] = lambda: RelayClient(
        "https://relay.test", transport=httpx.MockTransport(upstream)
    )


class TestHealth:
    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["health"] == "/healthz"

    def test_healthz_without_relay(self, client):
        response = client.get("/healthz")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["providers"]["garden"]["status"] == "healthy"
        assert data["providers"]["relay"]["status"] == "disabled"
        assert data["available_providers"] == 1
        assert data["total_providers"] == 2

    def test_healthz_degraded_when_relay_down(self, client, relay_upstream):
        relay_upstream.routes["/status"] = httpx.Response(503)
        _use_relay(relay_upstream)

        data = client.get("/healthz").json()

        assert data["status"] == "degraded"
        assert data["providers"]["relay"]["status"] == "unavailable"

    def test_request_id_header(self, client):
        response = client.get("/", headers={"x-request-id": "abc123"})

        assert response.headers["x-request-id"] == "abc123"


class TestBridgeQuote:
    def test_deposit_quote(self, client, garden_upstream, quote_payload):
        garden_upstream.routes["/v2/quote"] = httpx.Response(200, json=[quote_payload(50_000, fee=150)])

        response = client.get("/bridge/quote", params={"amount": 50_000})

        assert response.status_code == 200
        data = response.json()
        assert data["direction"] == "deposit"
        assert data["estimate"] == {
            "outputAmount": "49850",
            "fee": "150",
            "estimatedTimeSeconds": 1200,
            "destinationTokenAddress": STARKNET_BTC_TOKENS["sepolia"]["wBTC"],
        }
        request = garden_upstream.requests[0]
        assert request.url.params["from"] == "bitcoin_testnet:btc"

    def test_withdraw_quote(self, client, garden_upstream, quote_payload):
        garden_upstream.routes["/v2/quote"] = httpx.Response(200, json=[quote_payload(10_000)])

        response = client.get("/bridge/quote", params={"amount": 10_000, "direction": "withdraw"})

        assert response.status_code == 200
        assert response.json()["estimate"]["destinationTokenAddress"] == "bitcoin_testnet:btc"
        assert garden_upstream.requests[0].url.params["from"] == "starknet_sepolia:wbtc"

    def test_no_quotes_is_404(self, client, garden_upstream):
        garden_upstream.routes["/v2/quote"] = httpx.Response(200, json=[])

        response = client.get("/bridge/quote", params={"amount": 1})

        assert response.status_code == 404

    def test_garden_error_passes_status(self, client, garden_upstream):
        garden_upstream.routes["/v2/quote"] = httpx.Response(400, text="amount too low")

        response = client.get("/bridge/quote", params={"amount": 1})

        assert response.status_code == 400
        assert response.json()["detail"] == "Garden API error (400): amount too low"

    def test_garden_unreachable_is_503(self, client, garden_upstream):
        def offline(request):
            raise httpx.ConnectError("unreachable", request=request)

        garden_upstream.routes["/v2/quote"] = offline

        response = client.get("/bridge/quote", params={"amount": 1})

        assert response.status_code == 503

    def test_amount_must_be_positive(self, client):
        assert client.get("/bridge/quote", params={"amount": 0}).status_code == 422

    def test_unknown_network(self):
        response = TestClient(app).get("/bridge/quote", params={"amount": 1, "network": "regtest"})

        assert response.status_code == 400


class TestOrderStatus:
    def test_deposit_progress(self, client, garden_upstream, status_payload):
        garden_upstream.routes["/v2/orders/ord-1"] = httpx.Response(
            200,
            json=status_payload(
                "ord-1",
                source={"initiate_tx_hash": "btc-tx", "current_confirmations": 1, "required_confirmations": 2},
            ),
        )

        response = client.get("/bridge/orders/ord-1")

        assert response.status_code == 200
        data = response.json()
        assert data["order"]["order_id"] == "ord-1"
        assert data["progress"]["status"] == "confirming"
        assert data["progress"]["estimatedTimeRemaining"] == 600
        assert data["terminal"] is False

    def test_withdraw_complete(self, client, garden_upstream, status_payload):
        garden_upstream.routes["/v2/orders/ord-2"] = httpx.Response(
            200, json=status_payload("ord-2", destination={"redeem_tx_hash": "btc-redeem"})
        )

        data = client.get("/bridge/orders/ord-2", params={"direction": "withdraw"}).json()

        assert data["progress"]["status"] == "complete"
        assert data["terminal"] is True

    def test_unknown_order(self, client):
        response = client.get("/bridge/orders/missing")

        assert response.status_code == 404


class TestRelayStatus:
    def test_unconfigured(self, client):
        assert client.get("/relay/status").json() == {"configured": False, "healthy": False}

    def test_configured(self, client, relay_upstream):
        relay_upstream.routes["/status"] = httpx.Response(200, json={"relayerBalance": "42", "pendingTxs": 1})
        _use_relay(relay_upstream)

        data = client.get("/relay/status").json()

        assert data == {"configured": True, "healthy": True, "relayerBalance": "42", "pendingTxs": 1}
