"""Map raw Garden order status onto ``OrderProgress``."""

from __future__ import annotations

import logging
from typing import Optional

from ...providers.garden import GardenOrderStatus, GardenSwapStatus
from .constants import BTC_BLOCK_TIME_SECONDS
from .models import OrderProgress, OrderStatus

logger = logging.getLogger(__name__)


def _warn_if_both_settled(order_id: str, swap: GardenSwapStatus, side: str) -> None:
    # A correct HTLC is either redeemed or refunded, never both
    if swap.refund_tx_hash and swap.redeem_tx_hash:
        logger.warning(
            "Order %s %s swap reports both refund %s and redeem %s; treating as refunded",
            order_id or "?",
            side,
            swap.refund_tx_hash,
            swap.redeem_tx_hash,
        )


def derive_withdraw_progress(status: GardenOrderStatus) -> OrderProgress:
    """Starknet -> BTC: the destination (BTC) swap drives progress."""

    src = status.source_swap
    dst = status.destination_swap
    _warn_if_both_settled(status.order_id, dst, "destination")

    if dst.refund_tx_hash:
        progress_status = OrderStatus.REFUNDED
    elif dst.redeem_tx_hash:
        progress_status = OrderStatus.COMPLETE
    elif dst.current_confirmations > 0:
        progress_status = OrderStatus.CONFIRMING
    else:
        progress_status = OrderStatus.SWAPPING

    return OrderProgress(
        status=progress_status,
        confirmations=dst.current_confirmations,
        required_confirmations=dst.required_confirmations,
        source_tx_hash=src.initiate_tx_hash,
        destination_tx_hash=dst.redeem_tx_hash,
    )


def derive_deposit_progress(status: GardenOrderStatus) -> OrderProgress:
    """BTC -> Starknet: BTC confirmations on the source swap drive progress."""

    src = status.source_swap
    dst = status.destination_swap
    _warn_if_both_settled(status.order_id, dst, "destination")

    estimated_time_remaining: Optional[int] = None
    source_confirmed = src.current_confirmations > 0 and src.current_confirmations >= src.required_confirmations

    if dst.refund_tx_hash:
        progress_status = OrderStatus.REFUNDED
    elif dst.redeem_tx_hash:
        progress_status = OrderStatus.COMPLETE
    elif src.redeem_tx_hash or source_confirmed:
        progress_status = OrderStatus.SWAPPING
    elif src.current_confirmations > 0:
        progress_status = OrderStatus.CONFIRMING
        remaining = src.required_confirmations - src.current_confirmations
        estimated_time_remaining = remaining * BTC_BLOCK_TIME_SECONDS
    elif src.initiate_tx_hash:
        progress_status = OrderStatus.BTC_SENT
    else:
        progress_status = OrderStatus.PENDING

    return OrderProgress(
        status=progress_status,
        confirmations=src.current_confirmations,
        required_confirmations=src.required_confirmations,
        source_tx_hash=src.initiate_tx_hash,
        destination_tx_hash=dst.redeem_tx_hash,
        estimated_time_remaining=estimated_time_remaining,
    )
