"""
Sandbox provider for local development and demos.
Issues PIX-shaped payloads and a PNG QR image without calling any processor.
The payload is a placeholder: it is not a valid BR code and cannot be paid.
"""
import base64
import dataclasses
import io
import logging
import uuid
from typing import Dict

import qrcode

from ...errors import NotFoundError, ValidationError
from ...models import DEFAULT_VALIDITY_SEC, CancelResult, PaymentRequest, PixTransaction, TransactionStatus

logger = logging.getLogger(__name__)


def _emv(tag: str, value: str) -> str:
    return f"{tag}{len(value):02d}{value}"


def placeholder_br_code(tx_id: str, amount_cents: int, merchant: str = "PIXGATE SANDBOX") -> str:
    account = _emv("00", "br.gov.bcb.pix") + _emv("01", tx_id[:36])
    return (
        _emv("00", "01")
        + _emv("26", account)
        + _emv("52", "0000")
        + _emv("53", "986")
        + _emv("54", f"{amount_cents / 100:.2f}")
        + _emv("58", "BR")
        + _emv("59", merchant[:25])
        + _emv("60", "SAO PAULO")
        + _emv("62", _emv("05", "***"))
        + "63040000"
    )


def qr_png_base64(data: str) -> str:
    qr = qrcode.QRCode(box_size=10, border=4)
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buffered = io.BytesIO()
    img.save(buffered)
    return base64.b64encode(buffered.getvalue()).decode("ascii")


class SandboxAdapter:
    name = "sandbox"

    def __init__(self, validity_sec: int = DEFAULT_VALIDITY_SEC):
        self.validity_sec = validity_sec
        self._transactions: Dict[str, PixTransaction] = {}

    async def create_pix_transaction(self, request: PaymentRequest) -> PixTransaction:
        if request.amount_cents <= 0:
            raise ValidationError("O valor do pagamento deve ser positivo", {"amount": "must be > 0"})
        if not request.items:
            raise ValidationError("Pelo menos um item é obrigatório", {"items": "required"})

        tx_id = uuid.uuid4().hex
        payload = placeholder_br_code(tx_id, request.amount_cents)
        tx = PixTransaction.issued(
            transaction_id=tx_id,
            status=TransactionStatus.WAITING_PAYMENT,
            amount_cents=request.amount_cents,
            qr_code_payload=payload,
            qr_code_image_data=qr_png_base64(payload),
            validity_sec=self.validity_sec,
        )
        self._transactions[tx_id] = tx
        logger.info("sandbox created %s amount=%s", tx_id, request.amount_cents)
        return dataclasses.replace(tx)

    def _get(self, transaction_id: str) -> PixTransaction:
        tx = self._transactions.get(transaction_id)
        if tx is None:
            raise NotFoundError(transaction_id)
        return tx

    async def get_transaction(self, transaction_id: str) -> PixTransaction:
        return dataclasses.replace(self._get(transaction_id))

    async def cancel_transaction(self, transaction_id: str) -> CancelResult:
        self._get(transaction_id).advance(TransactionStatus.REFUNDED)
        return CancelResult(transaction_id=transaction_id)

    def mark_paid(self, transaction_id: str) -> PixTransaction:
        tx = self._get(transaction_id)
        tx.advance(TransactionStatus.PAID)
        return dataclasses.replace(tx)
