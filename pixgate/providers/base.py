from typing import Protocol

from ..models import CancelResult, PaymentRequest, PixTransaction

class PixGateway(Protocol):
    name: str

    async def create_pix_transaction(self, request: PaymentRequest) -> PixTransaction:
        ...

    async def get_transaction(self, transaction_id: str) -> PixTransaction:
        ...

    # Refund/cancel of a transaction that is still waiting for payment
    async def cancel_transaction(self, transaction_id: str) -> CancelResult:
        ...
