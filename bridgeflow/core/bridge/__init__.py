"""Bridge order components: providers, progress derivation and lifecycle orchestrators."""

from typing import TYPE_CHECKING

from .constants import GARDEN_ASSETS, STARKNET_BTC_TOKENS, SUPPORTED_NETWORKS, normalize_network
from .models import (
    AcceptedQuote,
    BridgeEstimate,
    BridgeParams,
    BridgeResult,
    GardenBridgeParams,
    GardenBridgeResult,
    OrderPhase,
    OrderProgress,
    OrderSnapshot,
    OrderStatus,
)

if TYPE_CHECKING:  # pragma: no cover
    from .orchestrator import DepositOrchestrator, OrderOrchestrator, WithdrawOrchestrator
    from .progress import derive_deposit_progress, derive_withdraw_progress
    from .provider import BtcBridgeProvider, Erc20BridgeProvider, GardenBridgeProvider, get_bridge_provider

__all__ = [
    "GARDEN_ASSETS",
    "STARKNET_BTC_TOKENS",
    "SUPPORTED_NETWORKS",
    "normalize_network",
    "AcceptedQuote",
    "BridgeEstimate",
    "BridgeParams",
    "BridgeResult",
    "GardenBridgeParams",
    "GardenBridgeResult",
    "OrderPhase",
    "OrderProgress",
    "OrderSnapshot",
    "OrderStatus",
    "BtcBridgeProvider",
    "Erc20BridgeProvider",
    "GardenBridgeProvider",
    "get_bridge_provider",
    "derive_deposit_progress",
    "derive_withdraw_progress",
    "OrderOrchestrator",
    "DepositOrchestrator",
    "WithdrawOrchestrator",
]

# These depend on the Garden client, which itself imports from this package
_LAZY = {
    "BtcBridgeProvider": ".provider",
    "Erc20BridgeProvider": ".provider",
    "GardenBridgeProvider": ".provider",
    "get_bridge_provider": ".provider",
    "derive_deposit_progress": ".progress",
    "derive_withdraw_progress": ".progress",
    "OrderOrchestrator": ".orchestrator",
    "DepositOrchestrator": ".orchestrator",
    "WithdrawOrchestrator": ".orchestrator",
}


def __getattr__(name: str):  # pragma: no cover - simple thunk
    module_name = _LAZY.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    from importlib import import_module

    return getattr(import_module(module_name, __name__), name)
