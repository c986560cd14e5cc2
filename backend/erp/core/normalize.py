"""Input Normalisation — lenient coercion of loosely-typed request values.

Invariants:
    - Blank strings are treated as missing (None)
    - List normalisers de-duplicate while preserving first-seen order
    - Functions never raise; callers decide what an invalid value means
"""

import math
from typing import Any

_TRUE_FLAGS = frozenset({"1", "true", "sí", "si", "activo"})
_FALSE_FLAGS = frozenset({"0", "false", "no", "inactivo"})


def clean_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_email(value: Any) -> str | None:
    text = clean_text(value)
    return text.lower() if text else None


def _split_values(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        return value.split(",")
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def normalize_text_list(value: Any) -> list[str]:
    seen: list[str] = []
    for item in _split_values(value):
        text = clean_text(item)
        if text and text not in seen:
            seen.append(text)
    return seen


def normalize_email_list(value: Any) -> list[str]:
    seen: list[str] = []
    for item in _split_values(value):
        email = normalize_email(item)
        if email and email not in seen:
            seen.append(email)
    return seen


def sanitize_ids(values: Any) -> list[str]:
    """Trimmed, non-empty, de-duplicated ids in original order."""
    return normalize_text_list(values if values is not None else [])


def parse_active_flag(value: Any) -> bool | None:
    """Lenient boolean: True/False, or None when the value is not a flag."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if value == 1:
            return True
        if value == 0:
            return False
        return None
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_FLAGS:
            return True
        if lowered in _FALSE_FLAGS:
            return False
    return None


def parse_truthy(value: Any) -> bool:
    """Strict opt-in flag: true, 1, or "true"/"1"/"yes"/"on"."""
    if value is True:
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes", "on"}
    return False


def to_finite_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip().replace(",", ".")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None
