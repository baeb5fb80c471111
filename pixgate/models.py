"""
Canonical domain records for the PIX checkout.

Amounts are integer cents throughout; ``to_cents`` is the single place
where a currency-unit amount becomes minor units.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import List, Optional, Union

from .errors import InvalidTransitionError, ValidationError

DEFAULT_VALIDITY_SEC = 900


class TransactionStatus(str, Enum):
    WAITING_PAYMENT = "waiting_payment"
    PENDING = "pending"
    PAID = "paid"
    EXPIRED = "expired"
    FAILED = "failed"
    REFUNDED = "refunded"

    @property
    def is_open(self) -> bool:
        return self in (TransactionStatus.WAITING_PAYMENT, TransactionStatus.PENDING)


_FORWARD = {
    TransactionStatus.WAITING_PAYMENT: {
        TransactionStatus.PENDING, TransactionStatus.PAID, TransactionStatus.EXPIRED,
        TransactionStatus.FAILED, TransactionStatus.REFUNDED,
    },
    TransactionStatus.PENDING: {
        TransactionStatus.WAITING_PAYMENT, TransactionStatus.PAID, TransactionStatus.EXPIRED,
        TransactionStatus.FAILED, TransactionStatus.REFUNDED,
    },
    TransactionStatus.PAID: {TransactionStatus.REFUNDED},
    TransactionStatus.EXPIRED: set(),
    TransactionStatus.FAILED: set(),
    TransactionStatus.REFUNDED: set(),
}


def can_transition(current: TransactionStatus, new: TransactionStatus) -> bool:
    return new == current or new in _FORWARD[current]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_cents(amount: Union[int, float, str, Decimal]) -> int:
    """
    Currency units -> integer cents, rounding half-up on the third decimal:
    43.67 -> 4367, 10.005 -> 1001, 10.004 -> 1000.
    Floats go through str() so that binary noise (43.67 == 43.6699999...) is not truncated.
    """
    if isinstance(amount, bool):
        raise ValidationError("Valor inválido", {"amount": "invalid"})
    try:
        value = Decimal(str(amount)) if isinstance(amount, float) else Decimal(amount)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError("Valor inválido", {"amount": "invalid"})
    if not value.is_finite():
        raise ValidationError("Valor inválido", {"amount": "invalid"})
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class Customer:
    full_name: str
    email: str
    tax_id: str   # 11 digits
    phone: str    # 10-11 digits


@dataclass(frozen=True)
class LineItem:
    title: str
    quantity: int
    unit_price_cents: int
    description: str

    def __post_init__(self):
        if not self.title.strip() or not self.description.strip():
            raise ValidationError("Item precisa de título e descrição", {"items": "title/description required"})
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity < 1:
            raise ValidationError("Quantidade inválida", {"items": "quantity must be a positive integer"})
        if isinstance(self.unit_price_cents, bool) or not isinstance(self.unit_price_cents, int) \
                or self.unit_price_cents < 1:
            raise ValidationError("Preço inválido", {"items": "price must be a positive integer"})


@dataclass(frozen=True)
class PaymentRequest:
    amount_cents: int
    customer: Customer
    items: List[LineItem]
    ip: Optional[str] = None


@dataclass
class PixTransaction:
    transaction_id: str
    status: TransactionStatus
    amount_cents: int
    qr_code_payload: str
    created_at: datetime
    expires_at: datetime
    qr_code_image_data: Optional[str] = None
    copy_and_paste: str = ""
    paid_at: Optional[datetime] = None

    def __post_init__(self):
        if self.amount_cents < 1:
            raise ValueError(f"amount_cents must be >= 1, got {self.amount_cents}")
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be after created_at")
        if not self.copy_and_paste:
            self.copy_and_paste = self.qr_code_payload

    @classmethod
    def issued(
        cls,
        transaction_id: str,
        status: TransactionStatus,
        amount_cents: int,
        qr_code_payload: str,
        qr_code_image_data: Optional[str] = None,
        copy_and_paste: Optional[str] = None,
        created_at: Optional[datetime] = None,
        validity_sec: int = DEFAULT_VALIDITY_SEC,
        paid_at: Optional[datetime] = None,
    ) -> "PixTransaction":
        created = created_at or utcnow()
        return cls(
            transaction_id=transaction_id,
            status=status,
            amount_cents=amount_cents,
            qr_code_payload=qr_code_payload,
            qr_code_image_data=qr_code_image_data,
            copy_and_paste=copy_and_paste or qr_code_payload,
            created_at=created,
            expires_at=created + timedelta(seconds=validity_sec),
            paid_at=paid_at,
        )

    def advance(self, status: TransactionStatus, paid_at: Optional[datetime] = None) -> bool:
        """Move status forward; returns True when it changed. Backward moves raise."""
        if not can_transition(self.status, status):
            raise InvalidTransitionError(f"{self.status.value} -> {status.value}")
        if status == self.status:
            return False
        self.status = status
        if status == TransactionStatus.PAID:
            self.paid_at = paid_at or self.paid_at or utcnow()
        return True


@dataclass(frozen=True)
class CancelResult:
    transaction_id: str
    status: TransactionStatus = field(default=TransactionStatus.REFUNDED)
