"""
Narrow interfaces to collaborators that live outside this package:
the connected Starknet wallet and the stealth-address module.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, Union, runtime_checkable

from ..execution.models import Call

# (x, y) affine coordinates of a curve point
ECPoint = Tuple[int, int]


@runtime_checkable
class StarknetAccount(Protocol):
    """The connected wallet account."""

    address: str

    async def execute(self, calls: List[Call]) -> Optional[str]:
        """Submit ``calls`` as one atomic multicall; returns the transaction hash if known."""
        ...

    async def sign_message(self, typed_data: Dict[str, Any]) -> Union[str, Sequence[Any]]:
        """Sign SNIP-12 typed data."""
        ...


@runtime_checkable
class StealthAddressDeriver(Protocol):
    """Derives a fresh one-time address from a receiver's (spend, view) public keys."""

    def derive_source_address(self, spend_pk: ECPoint, view_pk: ECPoint) -> str:
        ...


def normalize_signature(signature: Union[str, int, Sequence[Any]]) -> List[str]:
    """Wallets return either a single felt or a list of felts."""
    if isinstance(signature, (str, int)):
        return [str(signature)]
    return [str(part) for part in signature]
