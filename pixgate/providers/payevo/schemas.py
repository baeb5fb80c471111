from pydantic import BaseModel
from typing import List, Literal, Optional

from ...models import PaymentRequest

# Request body for POST /transactions.
# Only the fields this checkout sends; the processor accepts many more.

class PayevoDocument(BaseModel):
    type: Literal["CPF"] = "CPF"
    number: str

class PayevoCustomer(BaseModel):
    name: str
    email: str
    phone: str
    document: PayevoDocument

class PayevoItem(BaseModel):
    title: str
    quantity: int
    unitPrice: int
    description: str

class PayevoTransactionRequest(BaseModel):
    paymentMethod: Literal["PIX"] = "PIX"
    amount: int
    customer: PayevoCustomer
    items: List[PayevoItem]
    ip: Optional[str] = None

    @classmethod
    def from_request(cls, request: PaymentRequest) -> "PayevoTransactionRequest":
        c = request.customer
        return cls(
            amount=request.amount_cents,
            customer=PayevoCustomer(
                name=c.full_name,
                email=c.email,
                phone=c.phone,
                document=PayevoDocument(number=c.tax_id),
            ),
            items=[
                PayevoItem(
                    title=i.title,
                    quantity=i.quantity,
                    unitPrice=i.unit_price_cents,
                    description=i.description,
                )
                for i in request.items
            ],
            ip=request.ip,
        )
