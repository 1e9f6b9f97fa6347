"""
Order Lifecycle Orchestrators

Own the end-to-end lifecycle of one bridge order per session:

    idle -> quoting -> quoted -> executing -> polling -> {complete | refunded}
                                    \\-> error

- Quotes are debounced; every amount edit bumps a generation counter and a
  response is accepted only if its generation is still current. In-flight
  requests are never aborted, their results are just discarded.
- Execution only happens on an explicit call and uses the last accepted quote.
- Polling runs as a background task bound to the order id and stops on a
  terminal status, on ``reset()`` and on ``aclose()``.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Set

from ...config import settings
from ...providers.garden import GardenClient, GardenOrderAsset, GardenOrderResponse, GardenOrderStatus
from ..execution.models import Call, ExecutionMode
from ..recovery.errors import (
    AmountMismatchError,
    BridgeError,
    GaslessUnsupportedError,
    InvalidTransitionError,
    MissingSourceAddressError,
    ProviderError,
    QuoteUnavailableError,
    StaleQuoteError,
    StealthRoutingUnavailableError,
    ValidationError,
    WalletNotConnectedError,
    error_message,
)
from ..wallet.interfaces import ECPoint, StarknetAccount, StealthAddressDeriver, normalize_signature
from .constants import normalize_network
from .models import (
    AcceptedQuote,
    BridgeEstimate,
    GardenBridgeParams,
    GardenBridgeResult,
    OrderPhase,
    OrderProgress,
    OrderSnapshot,
    OrderStatus,
)
from .progress import derive_deposit_progress, derive_withdraw_progress
from .provider import BtcBridgeProvider, GardenBridgeProvider

Listener = Callable[[OrderSnapshot], None]


@dataclass
class _PollHandle:
    order_id: str
    task: asyncio.Task


class OrderOrchestrator(ABC):
    """Shared quoting, polling and reset machinery for one order session."""

    direction: str = "order"

    TRANSITIONS: Dict[OrderPhase, Set[OrderPhase]] = {
        OrderPhase.IDLE: {
            OrderPhase.QUOTING,
            OrderPhase.ERROR,
        },
        OrderPhase.QUOTING: {
            OrderPhase.QUOTING,   # Superseded by a newer amount
            OrderPhase.QUOTED,
            OrderPhase.ERROR,
            OrderPhase.IDLE,
        },
        OrderPhase.QUOTED: {
            OrderPhase.QUOTING,
            OrderPhase.EXECUTING,
            OrderPhase.ERROR,
            OrderPhase.IDLE,
        },
        OrderPhase.EXECUTING: {
            OrderPhase.POLLING,
            OrderPhase.COMPLETE,  # Nothing to observe (passthrough providers)
            OrderPhase.ERROR,
            OrderPhase.IDLE,
        },
        OrderPhase.POLLING: {
            OrderPhase.COMPLETE,
            OrderPhase.REFUNDED,
            OrderPhase.IDLE,
        },
        OrderPhase.COMPLETE: {
            OrderPhase.IDLE,
        },
        OrderPhase.REFUNDED: {
            OrderPhase.IDLE,
        },
        OrderPhase.ERROR: {
            OrderPhase.QUOTING,
            OrderPhase.QUOTED,     # A pending quote lands after a failed attempt
            OrderPhase.EXECUTING,  # Retry with the still-fresh quote
            OrderPhase.ERROR,
            OrderPhase.IDLE,
        },
    }

    def __init__(
        self,
        network: Optional[str] = None,
        *,
        client: Optional[GardenClient] = None,
        debounce_seconds: Optional[float] = None,
        poll_interval_seconds: Optional[float] = None,
        quote_ttl_seconds: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.network = normalize_network(network or settings.garden_network)
        self._owns_client = client is None
        self.client = client or GardenClient(self.network)
        self.debounce_seconds = settings.quote_debounce_seconds if debounce_seconds is None else debounce_seconds
        self.poll_interval_seconds = settings.poll_interval_seconds if poll_interval_seconds is None else poll_interval_seconds
        self.quote_ttl_seconds = settings.quote_ttl_seconds if quote_ttl_seconds is None else quote_ttl_seconds
        self.logger = logger or logging.getLogger(__name__)

        self._phase = OrderPhase.IDLE
        self._quote: Optional[AcceptedQuote] = None
        self._order: Optional[GardenBridgeResult] = None
        self._order_id: Optional[str] = None
        self._progress: Optional[OrderProgress] = None
        self._error: Optional[str] = None
        self._is_quoting = False
        self._is_executing = False

        # Bumped on every amount edit; stale quote responses are discarded
        self._generation = 0
        # Bumped on reset; in-flight executions from an older session don't commit
        self._session = 0

        self._debounce_handle: Optional[asyncio.TimerHandle] = None
        self._quote_tasks: Set[asyncio.Task] = set()
        self._quote_settled = asyncio.Event()
        self._quote_settled.set()
        self._poll: Optional[_PollHandle] = None
        self._listeners: List[Listener] = []
        self._closed = False

    # ---------------------------
    # State
    # ---------------------------
    @property
    def available(self) -> bool:
        return bool(self.client.app_id)

    @property
    def phase(self) -> OrderPhase:
        return self._phase

    @property
    def quote(self) -> Optional[AcceptedQuote]:
        return self._quote

    @property
    def order(self) -> Optional[GardenBridgeResult]:
        return self._order

    @property
    def order_id(self) -> Optional[str]:
        return self._order_id

    @property
    def progress(self) -> Optional[OrderProgress]:
        return self._progress

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def is_quoting(self) -> bool:
        return self._is_quoting

    @property
    def is_executing(self) -> bool:
        return self._is_executing

    @property
    def is_polling(self) -> bool:
        return self._poll is not None and not self._poll.task.done()

    def snapshot(self) -> OrderSnapshot:
        return OrderSnapshot(
            phase=self._phase,
            quote=self._quote,
            order_id=self._order_id,
            progress=self._progress,
            is_quoting=self._is_quoting,
            is_executing=self._is_executing,
            error=self._error,
            order=self._order,
        )

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with a snapshot after every state change; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as exc:  # noqa: BLE001
                self.logger.warning("Order listener failed: %s", exc, exc_info=True)

    def _transition(self, to_phase: OrderPhase) -> None:
        # idle is always reachable: it is where reset() lands
        if to_phase != OrderPhase.IDLE and to_phase not in self.TRANSITIONS.get(self._phase, set()):
            raise InvalidTransitionError(self._phase.value, to_phase.value)
        if to_phase != self._phase:
            self.logger.debug("%s orchestrator: %s -> %s", self.direction, self._phase.value, to_phase.value)
        self._phase = to_phase

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError(f"{type(self).__name__} is closed")

    # ---------------------------
    # Quoting
    # ---------------------------
    @abstractmethod
    async def _fetch_estimate(self, amount: int) -> BridgeEstimate:
        """Best quote for ``amount``; raises ``QuoteUnavailableError`` when there is none."""

    def request_quote(self, amount: int) -> None:
        """Register an amount edit; the quote is fetched once edits pause.

        Must be called from inside the running event loop.
        """
        self._ensure_open()
        if self._phase not in (OrderPhase.IDLE, OrderPhase.QUOTING, OrderPhase.QUOTED, OrderPhase.ERROR):
            raise InvalidTransitionError(
                self._phase.value,
                OrderPhase.QUOTING.value,
                "An order is in progress; reset() before quoting a new amount",
            )

        self._cancel_debounce()
        self._generation += 1
        self._error = None
        self._quote = None

        if amount <= 0:
            self._is_quoting = False
            self._transition(OrderPhase.IDLE)
            self._quote_settled.set()
            self._notify()
            return

        self._is_quoting = True
        self._transition(OrderPhase.QUOTING)
        self._quote_settled.clear()
        self._notify()

        loop = asyncio.get_running_loop()
        self._debounce_handle = loop.call_later(
            self.debounce_seconds,
            self._launch_quote,
            self._generation,
            amount,
        )

    def _launch_quote(self, generation: int, amount: int) -> None:
        self._debounce_handle = None
        task = asyncio.get_running_loop().create_task(
            self._run_quote(generation, amount),
            name=f"{self.direction}-quote-{generation}",
        )
        self._quote_tasks.add(task)
        task.add_done_callback(self._quote_tasks.discard)

    async def _run_quote(self, generation: int, amount: int) -> None:
        try:
            estimate = await self._fetch_estimate(amount)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if generation != self._generation:
                self.logger.debug("Discarding failed quote for superseded amount %s: %s", amount, exc)
                return
            self.logger.info("%s quote for %s failed: %s", self.direction, amount, exc)
            self._quote = None
            self._is_quoting = False
            self._error = error_message(exc, "Failed to fetch quote")
            self._transition(OrderPhase.ERROR)
            self._quote_settled.set()
            self._notify()
            return

        if generation != self._generation:
            self.logger.debug("Discarding quote for superseded amount %s", amount)
            return

        self._quote = AcceptedQuote(amount=amount, estimate=estimate, generation=generation)
        self._is_quoting = False
        self._transition(OrderPhase.QUOTED)
        self._quote_settled.set()
        self._notify()

    async def wait_for_quote(self) -> Optional[AcceptedQuote]:
        """Wait until the latest amount edit has been quoted (or failed)."""
        await self._quote_settled.wait()
        return self._quote

    def _cancel_debounce(self) -> None:
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None

    def _fresh_quote(self, amount: int) -> AcceptedQuote:
        quote = self._quote
        if quote is None:
            raise QuoteUnavailableError("No accepted quote; request a quote first")
        if quote.amount != amount:
            raise AmountMismatchError(quote.amount, amount)
        age = quote.age_seconds()
        if age > self.quote_ttl_seconds:
            raise StaleQuoteError(age, self.quote_ttl_seconds)
        return quote

    # ---------------------------
    # Execution helpers
    # ---------------------------
    def _busy_result(self) -> Optional[GardenBridgeResult]:
        if self._phase in (OrderPhase.EXECUTING, OrderPhase.POLLING):
            return GardenBridgeResult.failure("An order is already in progress", order_id=self._order_id)
        if self._phase in (OrderPhase.COMPLETE, OrderPhase.REFUNDED):
            return GardenBridgeResult.failure("Order already finished; reset() to start a new one", order_id=self._order_id)
        return None

    def _fail(self, message: str) -> GardenBridgeResult:
        self._error = message
        self._is_executing = False
        self._transition(OrderPhase.ERROR)
        self._notify()
        return GardenBridgeResult.failure(message)

    def _begin_execution(self) -> int:
        self._error = None
        self._is_executing = True
        self._transition(OrderPhase.EXECUTING)
        self._notify()
        return self._session

    def _commit_order(self, result: GardenBridgeResult, initial: OrderStatus) -> None:
        self._order = result
        self._order_id = result.order_id
        self._is_executing = False
        if result.order_id:
            self._progress = OrderProgress(status=initial)
            self._transition(OrderPhase.POLLING)
            self._start_polling(result.order_id)
        else:
            self._progress = OrderProgress(status=OrderStatus.COMPLETE)
            self._transition(OrderPhase.COMPLETE)
        self._notify()

    # ---------------------------
    # Polling
    # ---------------------------
    @abstractmethod
    def _derive_progress(self, status: GardenOrderStatus) -> OrderProgress:
        ...

    def _start_polling(self, order_id: str) -> None:
        self._stop_polling()
        task = asyncio.get_running_loop().create_task(
            self._poll_loop(order_id),
            name=f"{self.direction}-poll-{order_id}",
        )
        self._poll = _PollHandle(order_id=order_id, task=task)

    def _stop_polling(self) -> None:
        handle, self._poll = self._poll, None
        if handle is None or handle.task.done():
            return
        if handle.task is not asyncio.current_task():
            handle.task.cancel()

    async def _poll_loop(self, order_id: str) -> None:
        while True:
            await asyncio.sleep(self.poll_interval_seconds)
            if self._order_id != order_id:
                return

            try:
                status = await self.client.get_order_status(order_id)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                # Observe again next tick
                self.logger.debug("Status poll for %s failed: %s", order_id, exc)
                continue

            if self._order_id != order_id:
                return
            self.apply_status(status)
            if self._progress is not None and self._progress.is_terminal:
                self.logger.info("Order %s reached %s", order_id, self._progress.status.value)
                self._stop_polling()
                return

    def apply_status(self, status: GardenOrderStatus) -> None:
        """Fold one observed order status into progress; terminal progress never changes."""
        if self._phase != OrderPhase.POLLING:
            self.logger.debug("Ignoring status for order %s while %s", status.order_id, self._phase.value)
            return
        if self._progress is not None and self._progress.is_terminal:
            return

        progress = self._derive_progress(status)
        self._progress = progress
        if progress.status == OrderStatus.COMPLETE:
            self._transition(OrderPhase.COMPLETE)
        elif progress.status == OrderStatus.REFUNDED:
            self._transition(OrderPhase.REFUNDED)
        self._notify()

    # ---------------------------
    # Lifecycle
    # ---------------------------
    def reset(self) -> None:
        """Forget the current quote/order and stop timers.

        Broadcast transactions are not affected; only local observation stops.
        """
        self._cancel_debounce()
        self._stop_polling()
        self._generation += 1
        self._session += 1
        self._quote = None
        self._order = None
        self._order_id = None
        self._progress = None
        self._error = None
        self._is_quoting = False
        self._is_executing = False
        self._transition(OrderPhase.IDLE)
        self._quote_settled.set()
        self._notify()

    async def aclose(self) -> None:
        """Tear down: reset, cancel background work and release the HTTP client."""
        if self._closed:
            return
        poll = self._poll
        self.reset()
        self._closed = True
        pending = [task for task in self._quote_tasks if not task.done()]
        if poll is not None:
            pending.append(poll.task)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._listeners.clear()
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
        return False


class DepositOrchestrator(OrderOrchestrator):
    """BTC -> Starknet: quote, create the HTLC order, watch BTC confirmations."""

    direction = "deposit"

    def __init__(
        self,
        network: Optional[str] = None,
        *,
        provider: Optional[BtcBridgeProvider] = None,
        client: Optional[GardenClient] = None,
        **kwargs,
    ) -> None:
        super().__init__(network, client=client, **kwargs)
        self.provider = provider or GardenBridgeProvider(self.network, client=self.client)

    async def _fetch_estimate(self, amount: int) -> BridgeEstimate:
        return await self.provider.estimate_bridge(amount, "BTC")

    def _derive_progress(self, status: GardenOrderStatus) -> OrderProgress:
        return derive_deposit_progress(status)

    async def create_bridge_order(
        self,
        btc_address: str,
        starknet_address: str,
        amount: int,
    ) -> GardenBridgeResult:
        """Create the order; the result carries the BTC deposit address and amount.

        Never raises.
        """
        self._ensure_open()
        busy = self._busy_result()
        if busy is not None:
            return busy

        try:
            if not btc_address:
                raise MissingSourceAddressError()
            quote = self._fresh_quote(amount)
        except BridgeError as exc:
            return self._fail(error_message(exc, "Failed to create order"))

        session = self._begin_execution()
        params = GardenBridgeParams(
            amount=amount,
            source_asset="BTC",
            recipient=starknet_address,
            btc_address=btc_address,
            receive_amount=quote.estimate.output_amount,
        )
        result = await self.provider.execute_bridge(params)
        if session != self._session:
            return result

        if not result.success:
            return self._fail(result.error or "Failed to create order")

        if not isinstance(result, GardenBridgeResult):
            result = GardenBridgeResult(
                success=True,
                output_amount=result.output_amount,
                tx_hash=result.tx_hash,
            )
        self._commit_order(result, OrderStatus.PENDING)
        return result


class WithdrawOrchestrator(OrderOrchestrator):
    """Starknet -> BTC: quote, create the order, execute it on-chain or gasless, watch the BTC payout."""

    direction = "withdraw"

    def __init__(
        self,
        network: Optional[str] = None,
        *,
        account: Optional[StarknetAccount] = None,
        stealth: Optional[StealthAddressDeriver] = None,
        client: Optional[GardenClient] = None,
        **kwargs,
    ) -> None:
        super().__init__(network, client=client, **kwargs)
        self.account = account
        self.stealth = stealth

    def connect_account(self, account: Optional[StarknetAccount]) -> None:
        self.account = account

    @property
    def can_execute(self) -> bool:
        if self.account is None or self._quote is None:
            return False
        if self._phase not in (OrderPhase.QUOTED, OrderPhase.ERROR):
            return False
        return self._quote.age_seconds() <= self.quote_ttl_seconds

    async def _fetch_estimate(self, amount: int) -> BridgeEstimate:
        assets = self.client.assets
        # Offline quotes fail now instead of waiting in the retry queue
        quotes = await self.client.get_quote(assets["wbtc"], assets["btc"], amount, queue_on_network_error=False)
        if not quotes:
            raise QuoteUnavailableError("No withdrawal quotes available", provider="garden")
        best = quotes[0]
        return BridgeEstimate(
            output_amount=int(best.destination.amount),
            fee=int(best.fee),
            estimated_time_seconds=int(best.estimated_time),
            destination_token_address=assets["btc"],
        )

    def _derive_progress(self, status: GardenOrderStatus) -> OrderProgress:
        return derive_withdraw_progress(status)

    def _source_owner(
        self,
        starknet_address: str,
        spend_pk: Optional[ECPoint],
        view_pk: Optional[ECPoint],
    ) -> str:
        if spend_pk is None and view_pk is None:
            return starknet_address
        if spend_pk is None or view_pk is None or self.stealth is None:
            raise StealthRoutingUnavailableError()
        return self.stealth.derive_source_address(spend_pk, view_pk)

    async def execute_withdraw(
        self,
        starknet_address: str,
        btc_address: str,
        amount: int,
        mode: ExecutionMode = ExecutionMode.ON_CHAIN,
        *,
        spend_pk: Optional[ECPoint] = None,
        view_pk: Optional[ECPoint] = None,
    ) -> GardenBridgeResult:
        """Create a Starknet -> BTC order and execute it through exactly one path.

        When ``spend_pk`` and ``view_pk`` are given, a fresh stealth address is
        used as the order's source owner so the order is not linkable to the
        main wallet. Never raises.
        """
        self._ensure_open()
        busy = self._busy_result()
        if busy is not None:
            return busy

        account = self.account
        try:
            if account is None:
                raise WalletNotConnectedError()
            if not btc_address:
                raise ValidationError("BTC destination address is required")
            quote = self._fresh_quote(amount)
            source_owner = self._source_owner(starknet_address, spend_pk, view_pk)
        except BridgeError as exc:
            return self._fail(error_message(exc, "Withdrawal failed"))

        session = self._begin_execution()
        assets = self.client.assets
        try:
            order = await self.client.create_starknet_to_btc_order(
                GardenOrderAsset(asset=assets["wbtc"], owner=source_owner, amount=str(amount)),
                GardenOrderAsset(asset=assets["btc"], owner=btc_address, amount=str(quote.estimate.output_amount)),
            )
        except Exception as exc:
            if session != self._session:
                return GardenBridgeResult.failure(error_message(exc, "Failed to create order"))
            self.logger.warning("Withdraw order creation failed: %s", exc)
            return self._fail(error_message(exc, "Failed to create order"))

        try:
            tx_hash = await self._dispatch(account, order, mode)
        except Exception as exc:
            self.logger.warning("Withdraw order %s was created but not executed (%s): %s", order.order_id, mode.value, exc)
            if session != self._session:
                return GardenBridgeResult.failure(error_message(exc, "Withdrawal failed"))
            return self._fail(error_message(exc, "Withdrawal failed"))

        result = GardenBridgeResult(
            success=True,
            output_amount=quote.estimate.output_amount,
            tx_hash=tx_hash,
            order_id=order.order_id,
        )
        if session == self._session:
            self._commit_order(result, OrderStatus.SWAPPING)
        return result

    async def _dispatch(
        self,
        account: StarknetAccount,
        order: GardenOrderResponse,
        mode: ExecutionMode,
    ) -> Optional[str]:
        if mode is ExecutionMode.GASLESS:
            if not order.typed_data:
                raise GaslessUnsupportedError(order.order_id)
            signature = normalize_signature(await account.sign_message(order.typed_data))
            await self.client.initiate_gasless(order.order_id, signature)
            return None

        calls: List[Call] = [
            tx.to_call()
            for tx in (order.approval_transaction, order.initiate_transaction)
            if tx is not None
        ]
        if not calls:
            raise ProviderError(f"Order {order.order_id} has no transactions to execute", provider="garden")
        return await account.execute(calls)
