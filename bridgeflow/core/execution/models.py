"""
Execution models: Starknet calls, SNIP-9 outside executions and relay payloads.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

# SNIP-9 shortstring 'ANY_CALLER': any account may submit the execution
ANY_CALLER = "0x414e595f43414c4c4552"


class ExecutionMode(str, Enum):
    """How a created order is executed on the destination chain."""
    ON_CHAIN = "on_chain"    # Wallet submits approval + initiate as one multicall
    GASLESS = "gasless"      # Wallet signs typed data, coordinator submits

    @classmethod
    def from_flag(cls, use_gasless_mode: bool) -> "ExecutionMode":
        return cls.GASLESS if use_gasless_mode else cls.ON_CHAIN


@dataclass
class Call:
    """A single Starknet contract call."""
    contract_address: str
    entrypoint: str
    calldata: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contractAddress": self.contract_address,
            "entrypoint": self.entrypoint,
            "calldata": list(self.calldata),
        }


@dataclass
class OutsideExecution:
    """A caller-agnostic call bundle valid only inside ``[execute_after, execute_before)``."""
    nonce: str
    execute_after: int                          # Unix seconds
    execute_before: int                         # Unix seconds
    calls: List[Call] = field(default_factory=list)
    caller: str = ANY_CALLER

    def __post_init__(self):
        if self.execute_after >= self.execute_before:
            raise ValueError(
                f"execute_after ({self.execute_after}) must be earlier than "
                f"execute_before ({self.execute_before})"
            )

    def is_valid_at(self, moment: Optional[datetime] = None) -> bool:
        now = int((moment or datetime.now(timezone.utc)).timestamp())
        return self.execute_after <= now < self.execute_before

    def to_dict(self) -> Dict[str, Any]:
        return {
            "caller": self.caller,
            "nonce": self.nonce,
            "executeAfter": self.execute_after,
            "executeBefore": self.execute_before,
            "calls": [call.to_dict() for call in self.calls],
        }


@dataclass
class RelayPayload:
    """Body of ``POST /relay``."""
    outside_execution: OutsideExecution
    signature: List[str]
    owner_address: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outsideExecution": self.outside_execution.to_dict(),
            "signature": list(self.signature),
            "ownerAddress": self.owner_address,
        }


class RelayResult(BaseModel):
    """Response of ``POST /relay``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    transaction_hash: Optional[str] = Field(default=None, alias="transactionHash")
    status: Literal["submitted", "error"]
    error: Optional[str] = None


class RelayHealthStatus(BaseModel):
    """Response of ``GET /status``; ``healthy`` is False whenever the relay is unreachable."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    healthy: bool = False
    relayer_balance: Optional[str] = Field(default=None, alias="relayerBalance")
    pending_txs: Optional[int] = Field(default=None, alias="pendingTxs")
    uptime: Optional[float] = None
