from starlette.requests import Request

from bridgeflow.logging_config import add_network, redact_secrets
from bridgeflow.middleware.logging_middleware import request_context


def _request(path: str, query: str = "") -> Request:
    return Request({"type": "http", "method": "GET", "path": path, "query_string": query.encode(), "headers": []})


def test_redact_secrets_masks_keys_and_headers():
    event = redact_secrets(
        None,
        "info",
        {
            "event": "garden_request",
            "app_id": "abcdef0123456789",
            "signature": "0x1",
            "headers": {"garden-app-id": "abcdef0123456789", "accept": "application/json"},
        },
    )

    assert event["app_id"] == "abcd***"
    assert event["signature"] == "***"
    assert event["headers"] == {"garden-app-id": "abcd***", "accept": "application/json"}


def test_add_network_keeps_explicit_value():
    assert add_network(None, "info", {"network": "sepolia"})["network"] == "sepolia"
    assert "network" in add_network(None, "info", {})


def test_request_context_binds_order_and_query():
    context = request_context(_request("/bridge/orders/ord-9", "direction=withdraw&network=mainnet"))

    assert context == {"order_id": "ord-9", "network": "mainnet", "direction": "withdraw"}


def test_request_context_ignores_other_paths():
    assert request_context(_request("/bridge/quote", "amount=5")) == {}
