"""Phone number canonicalisation used wherever two numbers are compared."""
from __future__ import annotations

import re
from typing import Any, Optional

PHONE_KEY_LENGTH = 10

_NON_DIGITS = re.compile(r"\D")
_FORMULA_PREFIX = re.compile(r"^[=+\-@]+")
_NON_PHONE_CHARS = re.compile(r"[^\d\s()\-.]")


def normalize_phone(raw: Any) -> Optional[str]:
    """Return the last ten digits of ``raw`` or ``None`` when it holds no digits.

    Shorter results are returned as-is; use :func:`is_valid_phone_key` to decide
    whether the key identifies a full number.
    """

    if raw is None:
        return None
    digits = _NON_DIGITS.sub("", str(raw))
    if not digits:
        return None
    return digits[-PHONE_KEY_LENGTH:]


def is_valid_phone_key(key: Optional[str]) -> bool:
    return bool(key) and len(key) == PHONE_KEY_LENGTH and key.isdigit()


def format_phone_for_excel(raw: Optional[str]) -> str:
    """Render ``raw`` so spreadsheets treat it as text, e.g. ``(514) 555-1234``."""

    if not raw:
        return ""
    cleaned = _NON_PHONE_CHARS.sub("", _FORMULA_PREFIX.sub("", str(raw)))
    digits = _NON_DIGITS.sub("", cleaned)
    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"1 ({digits[1:4]}) {digits[4:7]}-{digits[7:]}"
    return cleaned or str(raw)
