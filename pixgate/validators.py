import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .errors import ValidationError
from .models import Customer

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

TAX_ID_MASK_LEN = 14
PHONE_MASK_LEN = 15


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    normalized_value: str
    error_message: Optional[str] = None


def digits(value: Any) -> str:
    return "".join(ch for ch in str(value or "") if ch.isdigit())


# ---- tax id (CPF) ----

def _check_digit(numbers: str) -> int:
    # weights run from len+1 down to 2
    total = sum(int(d) * w for d, w in zip(numbers, range(len(numbers) + 1, 1, -1)))
    remainder = total * 10 % 11
    return 0 if remainder in (10, 11) else remainder


def is_valid_tax_id(raw: str, strict: bool = True) -> bool:
    cpf = digits(raw)
    if len(cpf) != 11:
        return False
    if cpf == cpf[0] * 11:
        return False
    if not strict:
        return True
    if _check_digit(cpf[:9]) != int(cpf[9]):
        return False
    return _check_digit(cpf[:10]) == int(cpf[10])


def validate_tax_id(raw: str, strict: bool = True) -> ValidationResult:
    cpf = digits(raw)
    if not str(raw or "").strip():
        return ValidationResult(False, cpf, "CPF é obrigatório")
    if len(cpf) != 11:
        return ValidationResult(False, cpf, "CPF deve ter 11 dígitos")
    if not is_valid_tax_id(cpf, strict=strict):
        return ValidationResult(False, cpf, "Digite um CPF válido")
    return ValidationResult(True, cpf)


# ---- phone ----

def validate_phone(raw: str) -> ValidationResult:
    phone = digits(raw)
    if not str(raw or "").strip():
        return ValidationResult(False, phone, "Telefone é obrigatório")
    if len(phone) not in (10, 11):
        return ValidationResult(False, phone, "Digite um telefone válido")
    return ValidationResult(True, phone)


# ---- email ----

def validate_email(raw: str) -> ValidationResult:
    email = str(raw or "").strip()
    if not email:
        return ValidationResult(False, email, "E-mail é obrigatório")
    if not EMAIL_RE.match(email):
        return ValidationResult(False, email, "Digite um e-mail válido")
    return ValidationResult(True, email)


# ---- name ----

def validate_name(raw: str) -> ValidationResult:
    tokens = str(raw or "").split()
    normalized = " ".join(tokens)
    if not tokens:
        return ValidationResult(False, normalized, "Nome completo é obrigatório")
    if len(tokens) < 2:
        return ValidationResult(False, normalized, "Digite seu nome completo")
    return ValidationResult(True, normalized)


_VALIDATORS: Dict[str, Callable[..., ValidationResult]] = {
    "name": validate_name,
    "email": validate_email,
    "tax_id": validate_tax_id,
    "phone": validate_phone,
}


def validate(field: str, raw_value: Any, strict_tax_id: bool = True) -> ValidationResult:
    fn = _VALIDATORS.get(field)
    if fn is None:
        raise ValueError(f"unknown field: {field}")
    if field == "tax_id":
        return fn(raw_value, strict=strict_tax_id)
    return fn(raw_value)


def validate_customer(
    name: Any, email: Any, tax_id: Any, phone: Any, strict_tax_id: bool = True
) -> Customer:
    """Run every field check; raises ValidationError listing all failing fields."""
    results = {
        "name": validate("name", name),
        "email": validate("email", email),
        "tax_id": validate("tax_id", tax_id, strict_tax_id=strict_tax_id),
        "phone": validate("phone", phone),
    }
    errors = {f: r.error_message for f, r in results.items() if not r.valid}
    if errors:
        raise ValidationError("Por favor, corrija os erros no formulário", errors)
    return Customer(
        full_name=results["name"].normalized_value,
        email=results["email"].normalized_value,
        tax_id=results["tax_id"].normalized_value,
        phone=results["phone"].normalized_value,
    )


# ---- display masks ----

def format_tax_id(value: str) -> str:
    """000.000.000-00, built progressively as digits are typed."""
    d = digits(value)[:11]
    out = d[:3]
    if len(d) > 3:
        out += "." + d[3:6]
    if len(d) > 6:
        out += "." + d[6:9]
    if len(d) > 9:
        out += "-" + d[9:11]
    return out[:TAX_ID_MASK_LEN]


def format_phone(value: str) -> str:
    """(00) 00000-0000 for mobiles, (00) 0000-0000 for landlines."""
    d = digits(value)[:11]
    if not d:
        return ""
    if len(d) <= 2:
        return "(" + d
    area, rest = d[:2], d[2:]
    split = 5 if len(d) == 11 else 4
    if len(rest) > split:
        rest = rest[:split] + "-" + rest[split:]
    return f"({area}) {rest}"[:PHONE_MASK_LEN]
