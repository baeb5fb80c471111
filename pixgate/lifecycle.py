"""
Lifecycle of the single PIX transaction behind one checkout.

    created -> waiting_payment -> paid | expired | failed
    waiting_payment -> refunded      (explicit cancel)

The coordinator owns the countdown task. Every path out of
``waiting_payment`` stops it; ``aclose()`` (or ``async with``) releases it
when the session ends.
"""
import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

from .countdown import Countdown, SleepFn
from .errors import DuplicateSubmissionError, InvalidTransitionError
from .models import DEFAULT_VALIDITY_SEC, CancelResult, PaymentRequest, PixTransaction, TransactionStatus
from .providers.base import PixGateway
from .utils.http import poll_policy

logger = logging.getLogger(__name__)


class CheckoutState(str, Enum):
    CREATED = "created"
    WAITING_PAYMENT = "waiting_payment"
    PAID = "paid"
    EXPIRED = "expired"
    FAILED = "failed"
    REFUNDED = "refunded"


_FROM_STATUS = {
    TransactionStatus.WAITING_PAYMENT: CheckoutState.WAITING_PAYMENT,
    TransactionStatus.PENDING: CheckoutState.WAITING_PAYMENT,
    TransactionStatus.PAID: CheckoutState.PAID,
    TransactionStatus.EXPIRED: CheckoutState.EXPIRED,
    TransactionStatus.FAILED: CheckoutState.FAILED,
    TransactionStatus.REFUNDED: CheckoutState.REFUNDED,
}


class TransactionCoordinator:
    def __init__(
        self,
        gateway: PixGateway,
        validity_sec: int = DEFAULT_VALIDITY_SEC,
        poll_interval_sec: float = 5,
        sleep: Optional[SleepFn] = None,
        on_tick: Optional[Callable[[int], None]] = None,
        on_state_change: Optional[Callable[[CheckoutState], None]] = None,
    ):
        self.gateway = gateway
        self.validity_sec = validity_sec
        self.poll_interval_sec = poll_interval_sec
        self._sleep = sleep
        self._on_tick = on_tick
        self._on_state_change = on_state_change

        self.state = CheckoutState.CREATED
        self.transaction: Optional[PixTransaction] = None
        self.countdown: Optional[Countdown] = None
        self._creating = False
        self._generation = 0
        self._poll_lock = asyncio.Lock()

    @property
    def remaining(self) -> int:
        if self.countdown is None:
            return self.validity_sec if self.state == CheckoutState.CREATED else 0
        return self.countdown.remaining

    @property
    def create_in_flight(self) -> bool:
        return self._creating

    def _set_state(self, state: CheckoutState) -> None:
        if state == self.state:
            return
        logger.info("checkout %s: %s -> %s",
                    self.transaction.transaction_id if self.transaction else "-", self.state.value, state.value)
        self.state = state
        if self._on_state_change:
            self._on_state_change(state)

    async def _leave_waiting(self, state: CheckoutState) -> None:
        if self.countdown is not None:
            await self.countdown.aclose()
        self._set_state(state)

    def _expire(self) -> None:
        # runs inside the countdown task, after the last tick
        if self.state != CheckoutState.WAITING_PAYMENT or self.transaction is None:
            return
        self.transaction.advance(TransactionStatus.EXPIRED)
        self._set_state(CheckoutState.EXPIRED)

    async def start(self, request: PaymentRequest) -> PixTransaction:
        if self._creating:
            raise DuplicateSubmissionError("create already in flight for this checkout")
        if self.state != CheckoutState.CREATED:
            raise InvalidTransitionError(f"start() from {self.state.value}")

        self._creating = True
        generation = self._generation
        try:
            tx = await self.gateway.create_pix_transaction(request)
        except Exception:
            if generation == self._generation:
                self._set_state(CheckoutState.FAILED)
            raise
        finally:
            self._creating = False

        if generation != self._generation:
            logger.info("checkout abandoned while creating %s, not tracking it", tx.transaction_id)
            return tx

        self.transaction = tx
        state = _FROM_STATUS[tx.status]
        if state != CheckoutState.WAITING_PAYMENT:
            self._set_state(state)
            return tx

        self.countdown = Countdown(
            self.validity_sec,
            on_tick=self._on_tick,
            on_expire=self._expire,
            sleep=self._sleep,
        )
        self._set_state(CheckoutState.WAITING_PAYMENT)
        self.countdown.start()
        return tx

    async def check_status(self) -> CheckoutState:
        async with self._poll_lock:
            if self.state != CheckoutState.WAITING_PAYMENT:
                return self.state
            tx = self.transaction
            remote = await self.gateway.get_transaction(tx.transaction_id)

            if self.state != CheckoutState.WAITING_PAYMENT or self.transaction is not tx:
                logger.info("status %s for %s arrived after checkout left waiting_payment, ignored",
                            remote.status.value, tx.transaction_id)
                return self.state

            if remote.status.is_open:
                tx.advance(remote.status)
                return self.state

            tx.advance(remote.status, paid_at=remote.paid_at)
            await self._leave_waiting(_FROM_STATUS[remote.status])
            return self.state

    async def wait_for_payment(self, interval_sec: Optional[float] = None) -> CheckoutState:
        retrying = poll_policy(
            lambda state: state == CheckoutState.WAITING_PAYMENT,
            interval_sec=interval_sec if interval_sec is not None else self.poll_interval_sec,
            sleep=self._sleep,
        )
        return await retrying(self.check_status)

    async def cancel(self) -> CancelResult:
        if self.state != CheckoutState.WAITING_PAYMENT:
            raise InvalidTransitionError(f"cancel() from {self.state.value}")
        tx = self.transaction
        result = await self.gateway.cancel_transaction(tx.transaction_id)
        if self.state == CheckoutState.WAITING_PAYMENT and self.transaction is tx:
            tx.advance(TransactionStatus.REFUNDED)
            await self._leave_waiting(CheckoutState.REFUNDED)
        else:
            logger.warning("cancel of %s confirmed after checkout moved to %s", tx.transaction_id, self.state.value)
        return result

    async def reset(self) -> None:
        """Abandon the current transaction locally; nothing is sent upstream."""
        self._generation += 1
        if self.countdown is not None:
            await self.countdown.aclose()
        if self.transaction is not None:
            logger.info("checkout abandoned %s in state %s", self.transaction.transaction_id, self.state.value)
        self.countdown = None
        self.transaction = None
        self._set_state(CheckoutState.CREATED)

    async def aclose(self) -> None:
        if self.countdown is not None:
            await self.countdown.aclose()

    async def __aenter__(self) -> "TransactionCoordinator":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
