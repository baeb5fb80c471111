import logging
from typing import List

from fastapi import APIRouter, Depends, Request

from ..errors import ConfigurationError, ValidationError
from ..models import LineItem, PaymentRequest
from ..providers.base import PixGateway
from ..schemas.api import CancelOut, PixPaymentIn, PixPaymentOut, TransactionOut
from ..settings import settings
from ..validators import validate_customer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments")


def get_gateway(request: Request) -> PixGateway:
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise getattr(request.app.state, "gateway_error", None) or ConfigurationError("gateway not initialised")
    return gateway


def _line_items(body: PixPaymentIn) -> List[LineItem]:
    if body.items:
        return [
            LineItem(title=i.title, quantity=i.quantity, unit_price_cents=i.price, description=i.description)
            for i in body.items
        ]
    # the checkout page sends one item; older clients send none
    return [LineItem(
        title=settings.CHECKOUT_ITEM_TITLE,
        quantity=1,
        unit_price_cents=body.amount,
        description=settings.CHECKOUT_ITEM_DESCRIPTION,
    )]


def _to_payment_request(body: PixPaymentIn, request: Request) -> PaymentRequest:
    if body.amount is None:
        raise ValidationError("Valor é obrigatório", {"amount": "required"})
    if body.amount <= 0:
        raise ValidationError("O valor do pagamento deve ser positivo", {"amount": "must be > 0"})
    if body.customer is None:
        raise ValidationError("Dados do cliente são obrigatórios", {"customer": "required"})

    c = body.customer
    customer = validate_customer(c.name, c.email, c.document, c.phone, strict_tax_id=settings.STRICT_TAX_ID)
    ip = body.ip or (request.client.host if request.client else None) or settings.DEFAULT_CLIENT_IP
    return PaymentRequest(amount_cents=body.amount, customer=customer, items=_line_items(body), ip=ip)


@router.post("/pix", response_model=PixPaymentOut, response_model_exclude_none=True)
async def create_pix(body: PixPaymentIn, request: Request, gateway: PixGateway = Depends(get_gateway)):
    payment = _to_payment_request(body, request)
    tx = await gateway.create_pix_transaction(payment)
    return PixPaymentOut.from_transaction(tx)


@router.get("/transaction/{transaction_id}", response_model=TransactionOut, response_model_exclude_none=True)
async def get_transaction(transaction_id: str, gateway: PixGateway = Depends(get_gateway)):
    tx = await gateway.get_transaction(transaction_id)
    return TransactionOut.from_transaction(tx)


@router.delete("/transaction/{transaction_id}", response_model=CancelOut)
async def cancel_transaction(transaction_id: str, gateway: PixGateway = Depends(get_gateway)):
    result = await gateway.cancel_transaction(transaction_id)
    return CancelOut.from_result(result)
