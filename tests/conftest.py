"""Shared fixtures and Garden payload builders."""

import asyncio
from typing import Any, Dict, Optional

import pytest

from bridgeflow.core.recovery.retry_queue import RetryQueue


def garden_quote_payload(amount: int, fee: int = 100, estimated_time: int = 1200) -> Dict[str, Any]:
    return {
        "source": {"asset": "bitcoin_testnet:btc", "amount": str(amount)},
        "destination": {"asset": "starknet_sepolia:wbtc", "amount": str(amount - fee)},
        "solver_id": "solver-1",
        "estimated_time": estimated_time,
        "slippage": 50,
        "fee": fee,
        "fixed_fee": 0,
    }


def garden_status_payload(
    order_id: str = "order-1",
    *,
    source: Optional[Dict[str, Any]] = None,
    destination: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    base_swap = {
        "initiate_tx_hash": "",
        "redeem_tx_hash": "",
        "refund_tx_hash": "",
        "required_confirmations": 0,
        "current_confirmations": 0,
        "amount": "0",
        "chain": "",
    }
    return {
        "order_id": order_id,
        "status": "Matched",
        "source_swap": {**base_swap, **(source or {})},
        "destination_swap": {**base_swap, **(destination or {})},
    }


async def _wait_until(predicate, timeout: float = 2.0, interval: float = 0.005) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(interval)


@pytest.fixture
def wait_until():
    """Await until a predicate holds (fails the test after a timeout)."""
    return _wait_until


@pytest.fixture
def retry_queue() -> RetryQueue:
    return RetryQueue(max_size=5, max_retries=3)


@pytest.fixture
def quote_payload():
    """Builder for a raw Garden quote entry."""
    return garden_quote_payload


@pytest.fixture
def status_payload():
    """Builder for a raw Garden order status body (blank hashes as Garden sends them)."""
    return garden_status_payload
