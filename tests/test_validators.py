import random

import pytest

from pixgate.errors import ValidationError
from pixgate.validators import (
    digits,
    format_phone,
    format_tax_id,
    is_valid_tax_id,
    validate,
    validate_customer,
)


def _with_check_digits(base9: str) -> str:
    def dv(numbers: str) -> int:
        weight = len(numbers) + 1
        total = 0
        for d in numbers:
            total += int(d) * weight
            weight -= 1
        r = total * 10 % 11
        return 0 if r >= 10 else r

    first = dv(base9)
    second = dv(base9 + str(first))
    return f"{base9}{first}{second}"


@pytest.mark.parametrize("cpf", ["11144477735", "52998224725", "111.444.777-35", "529.982.247-25"])
def test_known_valid_tax_ids(cpf):
    result = validate("tax_id", cpf)
    assert result.valid
    assert result.normalized_value == digits(cpf)
    assert result.error_message is None


def test_generated_tax_ids_pass_checksum():
    rng = random.Random(1234)
    for _ in range(200):
        base = "".join(str(rng.randint(0, 9)) for _ in range(9))
        cpf = _with_check_digits(base)
        if cpf == cpf[0] * 11:
            continue
        assert is_valid_tax_id(cpf), cpf


@pytest.mark.parametrize("d", "0123456789")
def test_repeated_digit_tax_ids_are_invalid(d):
    assert not is_valid_tax_id(d * 11)
    assert not is_valid_tax_id(d * 11, strict=False)


@pytest.mark.parametrize("cpf", ["11144477734", "11144477725", "1114447773", "111444777350", "abc"])
def test_invalid_tax_ids(cpf):
    assert not validate("tax_id", cpf).valid


def test_lenient_tax_id_only_checks_shape():
    assert validate("tax_id", "11144477734", strict_tax_id=False).valid
    assert not validate("tax_id", "1114447773", strict_tax_id=False).valid


def test_empty_tax_id_is_required():
    result = validate("tax_id", "   ")
    assert not result.valid
    assert result.error_message == "CPF é obrigatório"


@pytest.mark.parametrize("phone,ok", [
    ("(11) 98765-4321", True),
    ("1187654321", True),
    ("11 8765 4321", True),
    ("123", False),
    ("119876543210", False),
])
def test_phone(phone, ok):
    result = validate("phone", phone)
    assert result.valid is ok
    if ok:
        assert result.normalized_value == digits(phone)


@pytest.mark.parametrize("email,ok", [
    ("maria@ex.com", True),
    ("  maria.silva+pix@mail.com.br ", True),
    ("maria@ex", False),
    ("maria ex@ex.com", False),
    ("@ex.com", False),
    ("", False),
])
def test_email(email, ok):
    assert validate("email", email).valid is ok


def test_name_needs_two_tokens():
    assert validate("name", "Maria Silva").valid
    assert not validate("name", "Maria").valid
    assert validate("name", "  Maria   da  Silva ").normalized_value == "Maria da Silva"
    assert validate("name", "").error_message == "Nome completo é obrigatório"


def test_unknown_field():
    with pytest.raises(ValueError):
        validate("address", "Rua Exemplo")


def test_validate_customer_collects_every_failing_field():
    with pytest.raises(ValidationError) as ei:
        validate_customer("Maria", "maria@ex", "11111111111", "123")
    assert set(ei.value.fields) == {"name", "email", "tax_id", "phone"}


def test_validate_customer_returns_digits_only():
    c = validate_customer("Maria Silva", "maria@ex.com", "111.444.777-35", "(11) 98765-4321")
    assert c.tax_id == "11144477735"
    assert c.phone == "11987654321"


def test_format_tax_id():
    assert format_tax_id("11144477735") == "111.444.777-35"
    assert format_tax_id("1114") == "111.4"
    assert format_tax_id("1114447") == "111.444.7"
    assert format_tax_id("111444777351234") == "111.444.777-35"


def test_format_phone():
    assert format_phone("11987654321") == "(11) 98765-4321"
    assert format_phone("1187654321") == "(11) 8765-4321"
    assert format_phone("1") == "(1"
    assert format_phone("119") == "(11) 9"
    assert format_phone("") == ""


@pytest.mark.parametrize("raw", [
    "", "1", "12", "123", "1234567", "11987654321", "(11) 98765-4321", "abc1d2", "119876543219999",
    "111.444.777-35", "  11 9 8765 4321 ",
])
def test_masks_are_idempotent_and_keep_digits(raw):
    for fmt, max_len in ((format_phone, 15), (format_tax_id, 14)):
        once = fmt(raw)
        assert fmt(once) == once
        assert len(once) <= max_len
        assert digits(once) == digits(raw)[:11]
