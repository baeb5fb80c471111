"""
HTTP client for the proxy's own /api/payments contract.

Implements the same gateway protocol as the provider adapters, so a
CheckoutController can run in front of the proxy instead of talking to
the processor directly. Error bodies are mapped back to the local taxonomy.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from .errors import (
    ConfigurationError,
    DuplicateSubmissionError,
    MissingPixDataError,
    NotFoundError,
    UpstreamRejected,
    UpstreamUnavailable,
    ValidationError,
)
from .models import DEFAULT_VALIDITY_SEC, CancelResult, PaymentRequest, PixTransaction, TransactionStatus, utcnow
from .providers.payevo.adapter import parse_timestamp
from .utils.http import client, json_or_text

logger = logging.getLogger(__name__)


class ProxyClient:
    name = "proxy"

    def __init__(
        self,
        base_url: str,
        timeout_sec: float = 10,
        validity_sec: int = DEFAULT_VALIDITY_SEC,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = timeout_sec
        self.validity_sec = validity_sec
        self._transport = transport

    async def _send(self, method: str, path: str, json_payload: Optional[Dict[str, Any]] = None) -> httpx.Response:
        try:
            async with client(timeout_sec=self.timeout_sec, transport=self._transport) as c:
                return await c.request(method, f"{self.base_url}/api/payments{path}", json=json_payload)
        except httpx.TransportError as e:
            raise UpstreamUnavailable(str(e)) from e

    def _raise_for_status(self, resp: httpx.Response, transaction_id: Optional[str] = None) -> Any:
        js = json_or_text(resp)
        if resp.is_success:
            return js
        body = js if isinstance(js, dict) else {}
        message = body.get("message") or f"HTTP {resp.status_code}"
        code = body.get("error")
        if resp.status_code == 400:
            raise ValidationError(message, body.get("fields"))
        if resp.status_code == 404:
            raise NotFoundError(transaction_id or "")
        if code == "duplicate_submission":
            raise DuplicateSubmissionError(message)
        if code == "configuration_error":
            raise ConfigurationError(message)
        if code == "missing_pix_data":
            raise MissingPixDataError(())
        if resp.status_code == 503 or code == "upstream_unavailable":
            raise UpstreamUnavailable(message)
        raise UpstreamRejected(resp.status_code, body.get("details", js))

    async def create_pix_transaction(self, request: PaymentRequest) -> PixTransaction:
        c = request.customer
        body = {
            "paymentMethod": "PIX",
            "amount": request.amount_cents,
            "customer": {"name": c.full_name, "email": c.email, "document": c.tax_id, "phone": c.phone},
            "items": [
                {"title": i.title, "quantity": i.quantity, "price": i.unit_price_cents, "description": i.description}
                for i in request.items
            ],
        }
        if request.ip:
            body["ip"] = request.ip
        resp = await self._send("POST", "/pix", json_payload=body)
        js = self._raise_for_status(resp)

        pix = js.get("pix") if isinstance(js, dict) else None
        if not isinstance(pix, dict) or not pix.get("qrcode"):
            raise MissingPixDataError(js.keys() if isinstance(js, dict) else ())

        created = utcnow()
        tx = PixTransaction.issued(
            transaction_id=str(js["transactionId"]),
            status=TransactionStatus(js.get("status") or "waiting_payment"),
            amount_cents=int(js.get("amount") or request.amount_cents),
            qr_code_payload=pix["qrcode"],
            qr_code_image_data=pix.get("qrcode_base64"),
            copy_and_paste=pix.get("copyAndPaste"),
            created_at=created,
            validity_sec=self.validity_sec,
        )
        expires_at = parse_timestamp(js.get("expiresAt"))
        if expires_at and expires_at > tx.created_at:
            tx.expires_at = expires_at
        return tx

    async def get_transaction(self, transaction_id: str) -> PixTransaction:
        resp = await self._send("GET", f"/transaction/{transaction_id}")
        js = self._raise_for_status(resp, transaction_id)
        return PixTransaction.issued(
            transaction_id=str(js.get("transactionId") or transaction_id),
            status=TransactionStatus(js["status"]),
            amount_cents=int(js["amount"]),
            qr_code_payload="",
            validity_sec=self.validity_sec,
            paid_at=parse_timestamp(js.get("paidAt")),
        )

    async def cancel_transaction(self, transaction_id: str) -> CancelResult:
        resp = await self._send("DELETE", f"/transaction/{transaction_id}")
        self._raise_for_status(resp, transaction_id)
        return CancelResult(transaction_id=transaction_id)
