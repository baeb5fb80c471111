"""Shared fixtures: a manual clock for countdowns and a scripted gateway."""

import asyncio
from typing import Dict, List, Optional

import pytest

from pixgate.errors import NotFoundError
from pixgate.models import (
    CancelResult,
    Customer,
    LineItem,
    PaymentRequest,
    PixTransaction,
    TransactionStatus,
)

BR_CODE = "00020126580014br.gov.bcb.pix0136abc520400005303986540542.505802BR6304ABCD"

VALID_CPF = "11144477735"


class ManualClock:
    """Injectable sleep(): sleepers only wake when the test advances the clock."""

    def __init__(self) -> None:
        self.now = 0
        self._sleepers: List[tuple] = []

    async def sleep(self, delay: float) -> None:
        fut = asyncio.get_running_loop().create_future()
        self._sleepers.append((self.now + delay, fut))
        await fut

    @property
    def pending(self) -> int:
        return sum(1 for _, f in self._sleepers if not f.done())

    @staticmethod
    async def settle() -> None:
        # let every runnable task get to its next sleep
        for _ in range(5):
            await asyncio.sleep(0)

    async def advance(self, seconds: int) -> None:
        for _ in range(seconds):
            await self.settle()
            self.now += 1
            due = [f for d, f in self._sleepers if d <= self.now]
            self._sleepers = [(d, f) for d, f in self._sleepers if d > self.now]
            for f in due:
                if not f.done():
                    f.set_result(None)
        await self.settle()


class FakeGateway:
    name = "fake"

    def __init__(self, validity_sec: int = 900) -> None:
        self.validity_sec = validity_sec
        self.created: List[PaymentRequest] = []
        self.status_calls = 0
        self.cancel_calls: List[str] = []
        self.remote_status = TransactionStatus.WAITING_PAYMENT
        self.create_error: Optional[Exception] = None
        self.create_gate: Optional[asyncio.Event] = None
        self.transactions: Dict[str, PixTransaction] = {}

    async def create_pix_transaction(self, request: PaymentRequest) -> PixTransaction:
        self.created.append(request)
        if self.create_gate is not None:
            await self.create_gate.wait()
        if self.create_error is not None:
            raise self.create_error
        tx = PixTransaction.issued(
            transaction_id=f"tx-{len(self.created)}",
            status=TransactionStatus.WAITING_PAYMENT,
            amount_cents=request.amount_cents,
            qr_code_payload=BR_CODE,
            validity_sec=self.validity_sec,
        )
        self.transactions[tx.transaction_id] = tx
        return tx

    async def get_transaction(self, transaction_id: str) -> PixTransaction:
        self.status_calls += 1
        if transaction_id not in self.transactions:
            raise NotFoundError(transaction_id)
        tx = self.transactions[transaction_id]
        return PixTransaction.issued(
            transaction_id=transaction_id,
            status=self.remote_status,
            amount_cents=tx.amount_cents,
            qr_code_payload=tx.qr_code_payload,
            validity_sec=self.validity_sec,
        )

    async def cancel_transaction(self, transaction_id: str) -> CancelResult:
        self.cancel_calls.append(transaction_id)
        if transaction_id not in self.transactions:
            raise NotFoundError(transaction_id)
        return CancelResult(transaction_id=transaction_id)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def customer() -> Customer:
    return Customer(full_name="Maria Silva", email="maria@ex.com", tax_id=VALID_CPF, phone="11987654321")


@pytest.fixture
def payment_request(customer) -> PaymentRequest:
    return PaymentRequest(
        amount_cents=4250,
        customer=customer,
        items=[LineItem(title="Serviço", quantity=1, unit_price_cents=4250, description="Pagamento")],
        ip="127.0.0.1",
    )
