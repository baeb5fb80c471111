"""
Upstream response normalizer.

Processors put the PIX code under different names and depths
(``pix.qrCode``, ``pix.qr_code``, top-level ``qrCode``, ``pixData.qr_code`` ...).
The lookup is an ordered list of rules; the first rule that yields a
payload wins. Keep the order stable: existing upstream shapes depend on it.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .errors import MissingPixDataError

BR_CODE_PREFIX = "00020126"

PAYLOAD_KEYS: Tuple[str, ...] = ("qrCode", "qr_code", "qrcode")
IMAGE_KEYS: Tuple[str, ...] = ("qrCodeBase64", "qr_code_base64", "qrcode_base64", "qrCodeImage")
COPY_PASTE_KEYS: Tuple[str, ...] = ("copyAndPaste", "copy_and_paste", "copyPaste")
SCAN_MARKERS: Tuple[str, ...] = ("qr", "pix")


@dataclass(frozen=True)
class PixData:
    qr_code_payload: str
    qr_code_image_data: Optional[str] = None
    copy_and_paste: Optional[str] = None


def _first_str(block: Dict[str, Any], keys: Tuple[str, ...]) -> Optional[str]:
    for k in keys:
        v = block.get(k)
        if isinstance(v, str) and v.strip():
            return v.strip()
    return None


def looks_like_br_code(value: Any) -> bool:
    return isinstance(value, str) and value.strip().startswith(BR_CODE_PREFIX)


def _from_block(block: Dict[str, Any]) -> Optional[PixData]:
    payload = _first_str(block, PAYLOAD_KEYS)
    if not payload:
        return None
    return PixData(
        qr_code_payload=payload,
        qr_code_image_data=_first_str(block, IMAGE_KEYS),
        copy_and_paste=_first_str(block, COPY_PASTE_KEYS) or payload,
    )


# ---- rules, in priority order ----

def _rule_pix_block(response: Dict[str, Any]) -> Optional[PixData]:
    pix = response.get("pix")
    return _from_block(pix) if isinstance(pix, dict) else None


def _rule_top_level(response: Dict[str, Any]) -> Optional[PixData]:
    return _from_block(response)


def _rule_key_scan(response: Dict[str, Any]) -> Optional[PixData]:
    for key, value in response.items():
        name = str(key).lower()
        if not any(m in name for m in SCAN_MARKERS):
            continue
        if isinstance(value, dict):
            found = _from_block(value)
            if found:
                return found
        elif looks_like_br_code(value):
            payload = value.strip()
            return PixData(
                qr_code_payload=payload,
                qr_code_image_data=_first_str(response, IMAGE_KEYS),
                copy_and_paste=_first_str(response, COPY_PASTE_KEYS) or payload,
            )
    return None


RULES = (_rule_pix_block, _rule_top_level, _rule_key_scan)


def normalize_pix_response(response: Any) -> PixData:
    if not isinstance(response, dict):
        raise MissingPixDataError(())
    for rule in RULES:
        found = rule(response)
        if found:
            return found
    raise MissingPixDataError(response.keys())
