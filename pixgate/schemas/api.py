from datetime import datetime
from pydantic import BaseModel
from typing import List, Optional

from ..models import CancelResult, PixTransaction


# ====== IN: checkout client -> proxy ======

class CustomerIn(BaseModel):
    # all optional here so that missing fields come back as field messages, not a schema dump
    name: Optional[str] = None
    email: Optional[str] = None
    document: Optional[str] = None
    phone: Optional[str] = None


class ItemIn(BaseModel):
    title: str
    quantity: int
    price: int
    description: str


class PixPaymentIn(BaseModel):
    amount: Optional[int] = None      # cents
    customer: Optional[CustomerIn] = None
    items: Optional[List[ItemIn]] = None
    ip: Optional[str] = None
    paymentMethod: Optional[str] = None
    model_config = {"extra": "allow"}


# ====== OUT: proxy -> checkout client ======

class PixOut(BaseModel):
    qrcode: str
    qrcode_base64: Optional[str] = None
    copyAndPaste: Optional[str] = None


class PixPaymentOut(BaseModel):
    status: str
    transactionId: str
    pix: PixOut
    expiresAt: Optional[datetime] = None
    amount: int

    @classmethod
    def from_transaction(cls, tx: PixTransaction) -> "PixPaymentOut":
        return cls(
            status=tx.status.value,
            transactionId=tx.transaction_id,
            pix=PixOut(
                qrcode=tx.qr_code_payload,
                qrcode_base64=tx.qr_code_image_data,
                copyAndPaste=tx.copy_and_paste,
            ),
            expiresAt=tx.expires_at,
            amount=tx.amount_cents,
        )


class TransactionOut(BaseModel):
    status: str
    transactionId: str
    amount: int
    paidAt: Optional[datetime] = None

    @classmethod
    def from_transaction(cls, tx: PixTransaction) -> "TransactionOut":
        return cls(status=tx.status.value, transactionId=tx.transaction_id,
                   amount=tx.amount_cents, paidAt=tx.paid_at)


class CancelOut(BaseModel):
    status: str
    transactionId: str

    @classmethod
    def from_result(cls, result: CancelResult) -> "CancelOut":
        return cls(status=result.status.value, transactionId=result.transaction_id)
