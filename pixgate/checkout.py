import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Protocol, Union
from decimal import Decimal

from .countdown import SleepFn
from .errors import PixGatewayError, ValidationError
from .lifecycle import CheckoutState, TransactionCoordinator
from .models import CancelResult, Customer, LineItem, PaymentRequest, PixTransaction, to_cents
from .providers.base import PixGateway
from .settings import Settings, settings as default_settings
from .validators import validate_customer

logger = logging.getLogger(__name__)


@dataclass
class CheckoutForm:
    full_name: str
    email: str
    tax_id: str
    phone: str


@dataclass(frozen=True)
class PixPresentation:
    transaction_id: str
    amount_cents: int
    qr_code_payload: str
    copy_and_paste: str
    qr_code_image_data: Optional[str]
    remaining_sec: int
    expires_at: datetime

    @classmethod
    def of(cls, tx: PixTransaction, remaining_sec: int) -> "PixPresentation":
        return cls(
            transaction_id=tx.transaction_id,
            amount_cents=tx.amount_cents,
            qr_code_payload=tx.qr_code_payload,
            copy_and_paste=tx.copy_and_paste,
            qr_code_image_data=tx.qr_code_image_data,
            remaining_sec=remaining_sec,
            expires_at=tx.expires_at,
        )


class CheckoutView(Protocol):
    """What the page layer has to provide. Rendering itself lives outside this package."""

    def show_pix(self, presentation: PixPresentation) -> None: ...

    def show_errors(self, fields: Dict[str, str], message: str) -> None: ...

    def update_timer(self, remaining_sec: int) -> None: ...

    def show_state(self, state: CheckoutState) -> None: ...


class NullView:
    def show_pix(self, presentation: PixPresentation) -> None:
        pass

    def show_errors(self, fields: Dict[str, str], message: str) -> None:
        pass

    def update_timer(self, remaining_sec: int) -> None:
        pass

    def show_state(self, state: CheckoutState) -> None:
        pass


@dataclass
class CheckoutSession:
    coordinator: TransactionCoordinator
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    customer: Optional[Customer] = None

    @property
    def state(self) -> CheckoutState:
        return self.coordinator.state

    @property
    def transaction_id(self) -> Optional[str]:
        tx = self.coordinator.transaction
        return tx.transaction_id if tx else None


class CheckoutController:
    """
    Drives one payer interaction: form -> PIX screen -> paid/expired.
    Validation failures never reach the gateway; gateway failures are shown
    and re-raised, and a new submit is the only way to try again.
    """

    def __init__(
        self,
        gateway: PixGateway,
        view: Optional[CheckoutView] = None,
        settings: Optional[Settings] = None,
        sleep: Optional[SleepFn] = None,
    ):
        self.settings = settings or default_settings
        self.view = view or NullView()
        coordinator = TransactionCoordinator(
            gateway,
            validity_sec=self.settings.PIX_VALIDITY_SEC,
            poll_interval_sec=self.settings.STATUS_POLL_INTERVAL_SEC,
            sleep=sleep,
            on_tick=self.view.update_timer,
            on_state_change=self.view.show_state,
        )
        self.session = CheckoutSession(coordinator=coordinator)

    @property
    def coordinator(self) -> TransactionCoordinator:
        return self.session.coordinator

    def build_request(self, customer: Customer, amount: Union[int, float, str, Decimal]) -> PaymentRequest:
        cents = to_cents(amount)
        if cents < 1:
            raise ValidationError("O valor do pagamento deve ser positivo", {"amount": "must be > 0"})
        item = LineItem(
            title=self.settings.CHECKOUT_ITEM_TITLE,
            quantity=1,
            unit_price_cents=cents,
            description=self.settings.CHECKOUT_ITEM_DESCRIPTION,
        )
        return PaymentRequest(amount_cents=cents, customer=customer, items=[item], ip=self.settings.DEFAULT_CLIENT_IP)

    async def submit(self, form: CheckoutForm, amount: Any) -> PixPresentation:
        try:
            customer = validate_customer(
                form.full_name, form.email, form.tax_id, form.phone,
                strict_tax_id=self.settings.STRICT_TAX_ID,
            )
            request = self.build_request(customer, amount)
        except ValidationError as e:
            self.view.show_errors(e.fields, e.public_message)
            raise

        if self.coordinator.state == CheckoutState.FAILED:
            # resubmitting after a failed create always issues a new transaction
            await self.coordinator.reset()
        self.session.customer = customer
        try:
            tx = await self.coordinator.start(request)
        except PixGatewayError as e:
            logger.warning("checkout %s: PIX creation failed: %s", self.session.session_id, e)
            self.view.show_errors({}, e.public_message)
            raise

        presentation = PixPresentation.of(tx, self.coordinator.remaining)
        if self.coordinator.state == CheckoutState.WAITING_PAYMENT:
            self.view.show_pix(presentation)
        return presentation

    async def check_status(self) -> CheckoutState:
        return await self.coordinator.check_status()

    async def wait_for_payment(self) -> CheckoutState:
        return await self.coordinator.wait_for_payment()

    async def cancel(self) -> CancelResult:
        return await self.coordinator.cancel()

    async def back(self) -> None:
        await self.coordinator.reset()
        self.session.customer = None

    async def close(self) -> None:
        await self.coordinator.aclose()

    async def __aenter__(self) -> "CheckoutController":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()
