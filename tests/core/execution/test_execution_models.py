"""
Tests for execution models and wallet helpers.
"""

from datetime import datetime, timezone

import pytest

from bridgeflow.core.execution import ANY_CALLER, Call, ExecutionMode, OutsideExecution, RelayPayload, RelayResult
from bridgeflow.core.wallet import normalize_signature


class TestExecutionMode:
    def test_from_flag(self):
        assert ExecutionMode.from_flag(True) is ExecutionMode.GASLESS
        assert ExecutionMode.from_flag(False) is ExecutionMode.ON_CHAIN


class TestOutsideExecution:
    """Validity window semantics: [execute_after, execute_before)."""

    def test_window_bounds(self):
        execution = OutsideExecution(nonce="0x1", execute_after=1_000, execute_before=2_000)

        assert execution.caller == ANY_CALLER
        assert not execution.is_valid_at(datetime.fromtimestamp(999, tz=timezone.utc))
        assert execution.is_valid_at(datetime.fromtimestamp(1_000, tz=timezone.utc))
        assert execution.is_valid_at(datetime.fromtimestamp(1_999, tz=timezone.utc))
        assert not execution.is_valid_at(datetime.fromtimestamp(2_000, tz=timezone.utc))

    def test_inverted_window(self):
        with pytest.raises(ValueError):
            OutsideExecution(nonce="0x1", execute_after=2_000, execute_before=1_000)

    def test_payload_shape(self):
        payload = RelayPayload(
            outside_execution=OutsideExecution(
                nonce="0x7",
                execute_after=1,
                execute_before=2,
                calls=[Call(contract_address="0xa", entrypoint="transfer", calldata=["1"])],
            ),
            signature=["0xr", "0xs"],
            owner_address="0xowner",
        )

        assert payload.to_dict() == {
            "outsideExecution": {
                "caller": ANY_CALLER,
                "nonce": "0x7",
                "executeAfter": 1,
                "executeBefore": 2,
                "calls": [{"contractAddress": "0xa", "entrypoint": "transfer", "calldata": ["1"]}],
            },
            "signature": ["0xr", "0xs"],
            "ownerAddress": "0xowner",
        }


def test_relay_result_aliases():
    result = RelayResult.model_validate({"transactionHash": "0x1", "status": "submitted"})

    assert result.transaction_hash == "0x1"
    assert result.error is None


@pytest.mark.parametrize(
    "signature,expected",
    [
        ("0x1", ["0x1"]),
        (5, ["5"]),
        (["0x1", 2], ["0x1", "2"]),
        (("0xr", "0xs"), ["0xr", "0xs"]),
    ],
)
def test_normalize_signature(signature, expected):
    assert normalize_signature(signature) == expected
