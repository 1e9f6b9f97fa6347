"""Typed models used by the bridge subsystem."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class BridgeEstimate:
    """Expected outcome of bridging a given amount, taken from the best quote."""

    output_amount: int
    fee: int
    estimated_time_seconds: int
    destination_token_address: str


@dataclass
class BridgeParams:
    amount: int
    source_asset: str
    recipient: str


@dataclass
class GardenBridgeParams(BridgeParams):
    """BridgeParams for native BTC flows."""

    btc_address: Optional[str] = None
    # Exact receive amount from the last accepted quote
    receive_amount: Optional[int] = None


@dataclass
class BridgeResult:
    success: bool
    output_amount: int = 0
    tx_hash: Optional[str] = None
    error: Optional[str] = None

    def __post_init__(self):
        if not self.success:
            if self.output_amount != 0:
                raise ValueError("A failed bridge result cannot carry an output amount")
            if not self.error:
                raise ValueError("A failed bridge result needs an error message")

    @classmethod
    def failure(cls, error: str, **extra: Any):
        return cls(success=False, output_amount=0, error=error, **extra)


@dataclass
class GardenBridgeResult(BridgeResult):
    order_id: Optional[str] = None
    # BTC HTLC address and exact satoshi amount (BTC -> Starknet direction)
    deposit_address: Optional[str] = None
    deposit_amount: Optional[str] = None


class OrderStatus(str, Enum):
    PENDING = "pending"
    BTC_SENT = "btc_sent"
    CONFIRMING = "confirming"
    SWAPPING = "swapping"
    COMPLETE = "complete"
    REFUNDED = "refunded"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.COMPLETE, OrderStatus.REFUNDED)


@dataclass(frozen=True)
class OrderProgress:
    status: OrderStatus
    confirmations: int = 0
    required_confirmations: int = 0
    source_tx_hash: Optional[str] = None
    destination_tx_hash: Optional[str] = None
    estimated_time_remaining: Optional[int] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "confirmations": self.confirmations,
            "requiredConfirmations": self.required_confirmations,
            "sourceTxHash": self.source_tx_hash,
            "destinationTxHash": self.destination_tx_hash,
            "estimatedTimeRemaining": self.estimated_time_remaining,
        }


class OrderPhase(str, Enum):
    """Orchestrator lifecycle for one order."""

    IDLE = "idle"
    QUOTING = "quoting"
    QUOTED = "quoted"
    EXECUTING = "executing"
    POLLING = "polling"
    COMPLETE = "complete"
    REFUNDED = "refunded"
    ERROR = "error"


@dataclass(frozen=True)
class AcceptedQuote:
    """A quote that matched the latest amount input when it arrived."""

    amount: int
    estimate: BridgeEstimate
    generation: int
    quoted_at: float = field(default_factory=time.monotonic)

    def age_seconds(self, now: Optional[float] = None) -> float:
        return (now if now is not None else time.monotonic()) - self.quoted_at


@dataclass(frozen=True)
class OrderSnapshot:
    """Read-only view of an orchestrator, handed to listeners."""

    phase: OrderPhase
    quote: Optional[AcceptedQuote]
    order_id: Optional[str]
    progress: Optional[OrderProgress]
    is_quoting: bool
    is_executing: bool
    error: Optional[str]
    order: Optional[GardenBridgeResult] = None
