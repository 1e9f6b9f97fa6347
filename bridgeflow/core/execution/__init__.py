"""Delegated and on-chain execution types."""

from .models import (
    ANY_CALLER,
    Call,
    ExecutionMode,
    OutsideExecution,
    RelayHealthStatus,
    RelayPayload,
    RelayResult,
)

__all__ = [
    "ANY_CALLER",
    "Call",
    "ExecutionMode",
    "OutsideExecution",
    "RelayHealthStatus",
    "RelayPayload",
    "RelayResult",
]
