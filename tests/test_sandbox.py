import base64

import pytest

from pixgate.errors import ConfigurationError, NotFoundError
from pixgate.models import TransactionStatus
from pixgate.normalizer import looks_like_br_code
from pixgate.providers.payevo.adapter import PayevoAdapter
from pixgate.providers.registry import build_gateway, resolve_provider_name
from pixgate.providers.sandbox.adapter import SandboxAdapter, placeholder_br_code
from pixgate.settings import Settings


@pytest.mark.asyncio
async def test_sandbox_issues_pix_with_qr_image(payment_request):
    sandbox = SandboxAdapter(validity_sec=900)
    tx = await sandbox.create_pix_transaction(payment_request)

    assert tx.status == TransactionStatus.WAITING_PAYMENT
    assert looks_like_br_code(tx.qr_code_payload)
    assert "br.gov.bcb.pix" in tx.qr_code_payload
    assert "540542.50" in tx.qr_code_payload
    assert base64.b64decode(tx.qr_code_image_data).startswith(b"\x89PNG")


@pytest.mark.asyncio
async def test_sandbox_status_and_cancel(payment_request):
    sandbox = SandboxAdapter()
    paid = await sandbox.create_pix_transaction(payment_request)
    sandbox.mark_paid(paid.transaction_id)
    assert (await sandbox.get_transaction(paid.transaction_id)).status == TransactionStatus.PAID

    other = await sandbox.create_pix_transaction(payment_request)
    result = await sandbox.cancel_transaction(other.transaction_id)
    assert result.status == TransactionStatus.REFUNDED
    assert (await sandbox.get_transaction(other.transaction_id)).status == TransactionStatus.REFUNDED

    with pytest.raises(NotFoundError):
        await sandbox.get_transaction("missing")


@pytest.mark.asyncio
async def test_sandbox_record_is_not_shared_with_callers(payment_request):
    sandbox = SandboxAdapter()
    issued = await sandbox.create_pix_transaction(payment_request)
    issued.advance(TransactionStatus.EXPIRED)

    fetched = await sandbox.get_transaction(issued.transaction_id)
    assert fetched.status == TransactionStatus.WAITING_PAYMENT
    fetched.advance(TransactionStatus.FAILED)

    assert sandbox.mark_paid(issued.transaction_id).status == TransactionStatus.PAID


def test_placeholder_fields_are_length_prefixed():
    code = placeholder_br_code("a" * 32, 4250)
    assert code.startswith("000201" + "2654" + "0014br.gov.bcb.pix" + "0132")
    assert code.endswith("6304" + "0000")


@pytest.mark.parametrize("name,expected", [
    ("payevo", "payevo"),
    ("  PAYEVO ", "payevo"),
    ("payevo_pix", "payevo"),
    ("dev", "sandbox"),
    ("sandbox", "sandbox"),
    ("stripe", None),
    (None, None),
])
def test_resolve_provider_name(name, expected):
    assert resolve_provider_name(name) == expected


def test_build_gateway():
    assert isinstance(build_gateway(Settings(_env_file=None, PIX_PROVIDER="sandbox")), SandboxAdapter)
    gw = build_gateway(Settings(_env_file=None, PIX_PROVIDER="payevo", PAYEVO_SECRET_KEY="sk"))
    assert isinstance(gw, PayevoAdapter)

    with pytest.raises(ConfigurationError):
        build_gateway(Settings(_env_file=None, PIX_PROVIDER="payevo", PAYEVO_SECRET_KEY=None))
    with pytest.raises(ConfigurationError):
        build_gateway(Settings(_env_file=None, PIX_PROVIDER="stripe"))
