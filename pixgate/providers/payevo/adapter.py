import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from ...errors import (
    ConfigurationError,
    MissingPixDataError,
    NotFoundError,
    UpstreamRejected,
    UpstreamUnavailable,
    ValidationError,
)
from ...models import DEFAULT_VALIDITY_SEC, CancelResult, PaymentRequest, PixTransaction, TransactionStatus
from ...normalizer import normalize_pix_response
from ...settings import Settings
from ...utils.http import client, json_or_text
from ...utils.security import basic_auth_header
from .schemas import PayevoTransactionRequest

logger = logging.getLogger(__name__)


def parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    # upstream timestamps without an offset are UTC
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def status_map(s: Optional[str]) -> TransactionStatus:
    sl = (s or "").strip().lower()
    if not sl:
        return TransactionStatus.WAITING_PAYMENT
    try:
        return TransactionStatus(sl)
    except ValueError:
        pass
    if sl in {"approved", "succeeded", "success", "completed", "confirmed"}:
        return TransactionStatus.PAID
    if sl in {"refused", "declined", "canceled", "cancelled", "error"}:
        return TransactionStatus.FAILED
    if sl in {"chargedback", "chargeback", "refund", "reversed"}:
        return TransactionStatus.REFUNDED
    if sl in {"processing", "in_analysis", "authorized"}:
        return TransactionStatus.PENDING
    logger.warning("unknown upstream status %r, treating as waiting_payment", s)
    return TransactionStatus.WAITING_PAYMENT


class PayevoAdapter:
    """
    Payevo PIX:
      - POST   /transactions        (create)
      - GET    /transactions/{id}   (status)
      - DELETE /transactions/{id}   (cancel/refund)
    Auth: Basic base64("<secret>:x"). No automatic retries: creating a
    transaction twice charges twice, so every failure goes back to the caller.
    """

    name = "payevo"

    def __init__(
        self,
        secret_key: Optional[str],
        base_url: str = "https://api.payevo.com.br/functions/v1",
        timeout_sec: float = 10,
        validity_sec: int = DEFAULT_VALIDITY_SEC,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not secret_key or not secret_key.strip():
            raise ConfigurationError("PAYEVO_SECRET_KEY is not configured")
        self._auth = basic_auth_header(secret_key.strip())
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = timeout_sec
        self.validity_sec = validity_sec
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "PayevoAdapter":
        return cls(
            secret_key=settings.PAYEVO_SECRET_KEY,
            base_url=settings.PAYEVO_BASE_URL,
            timeout_sec=settings.REQUEST_TIMEOUT_SEC,
            validity_sec=settings.PIX_VALIDITY_SEC,
            transport=transport,
        )

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": self._auth, "Content-Type": "application/json", "Accept": "application/json"}

    async def _send(self, method: str, path: str, json_payload: Optional[Dict[str, Any]] = None) -> httpx.Response:
        try:
            async with client(timeout_sec=self.timeout_sec, transport=self._transport) as c:
                return await c.request(method, f"{self.base_url}{path}", json=json_payload, headers=self._headers())
        except httpx.TimeoutException as e:
            logger.error("payevo %s %s timed out after %ss", method, path, self.timeout_sec)
            raise UpstreamUnavailable(f"timeout: {e}") from e
        except httpx.TransportError as e:
            logger.error("payevo %s %s unreachable: %s", method, path, e)
            raise UpstreamUnavailable(str(e)) from e

    def _raise_for_status(self, resp: httpx.Response, js: Any, transaction_id: Optional[str] = None) -> None:
        if resp.is_success:
            return
        if resp.status_code == 404 and transaction_id is not None:
            raise NotFoundError(transaction_id)
        if resp.status_code in (401, 403):
            logger.error("payevo refused our credentials on %s %s: HTTP %s %s",
                         resp.request.method, resp.request.url.path, resp.status_code, js)
            raise ConfigurationError(f"payevo rejected PAYEVO_SECRET_KEY (HTTP {resp.status_code})")
        logger.warning("payevo rejected %s %s: HTTP %s %s",
                       resp.request.method, resp.request.url.path, resp.status_code, js)
        raise UpstreamRejected(resp.status_code, js)

    def _to_transaction(self, js: Dict[str, Any], amount_cents: Optional[int], require_pix: bool) -> PixTransaction:
        try:
            pix = normalize_pix_response(js)
        except MissingPixDataError:
            if require_pix:
                logger.error("payevo response without PIX data: %s", js)
                raise
            pix = None

        transaction_id = str(js.get("id") or js.get("transactionId") or js.get("transaction_id") or "")
        if not transaction_id:
            transaction_id = uuid.uuid4().hex
            logger.warning("payevo response without transaction id, using local id %s", transaction_id)

        amount = amount_cents if amount_cents is not None else js.get("amount")
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 1:
            logger.error("payevo response without usable amount: %s", js)
            raise MissingPixDataError(js.keys())

        return PixTransaction.issued(
            transaction_id=transaction_id,
            status=status_map(js.get("status")),
            amount_cents=amount,
            qr_code_payload=pix.qr_code_payload if pix else "",
            qr_code_image_data=pix.qr_code_image_data if pix else None,
            copy_and_paste=pix.copy_and_paste if pix else None,
            created_at=parse_timestamp(js.get("createdAt")),
            validity_sec=self.validity_sec,
            paid_at=parse_timestamp(js.get("paidAt")),
        )

    # ---- Gateway API ----
    async def create_pix_transaction(self, request: PaymentRequest) -> PixTransaction:
        if isinstance(request.amount_cents, bool) or not isinstance(request.amount_cents, int) \
                or request.amount_cents <= 0:
            raise ValidationError("O valor do pagamento deve ser positivo", {"amount": "must be > 0"})
        if not request.items:
            raise ValidationError("Pelo menos um item é obrigatório", {"items": "required"})

        body = PayevoTransactionRequest.from_request(request).model_dump(exclude_none=True)
        logger.info("payevo create: amount=%s items=%s", body["amount"], len(body["items"]))

        resp = await self._send("POST", "/transactions", json_payload=body)
        js = json_or_text(resp)
        self._raise_for_status(resp, js)
        if not isinstance(js, dict) or "raw_text" in js:
            logger.error("payevo create returned a non-JSON body: %s", js)
            raise MissingPixDataError(())

        tx = self._to_transaction(js, request.amount_cents, require_pix=True)
        logger.info("payevo created %s status=%s", tx.transaction_id, tx.status.value)
        return tx

    async def get_transaction(self, transaction_id: str) -> PixTransaction:
        resp = await self._send("GET", f"/transactions/{transaction_id}")
        js = json_or_text(resp)
        self._raise_for_status(resp, js, transaction_id=transaction_id)
        if not isinstance(js, dict) or "raw_text" in js:
            raise UpstreamRejected(resp.status_code, js)
        js.setdefault("id", transaction_id)
        return self._to_transaction(js, None, require_pix=False)

    async def cancel_transaction(self, transaction_id: str) -> CancelResult:
        resp = await self._send("DELETE", f"/transactions/{transaction_id}")
        js = json_or_text(resp)
        self._raise_for_status(resp, js, transaction_id=transaction_id)
        logger.info("payevo cancelled %s", transaction_id)
        return CancelResult(transaction_id=transaction_id)
