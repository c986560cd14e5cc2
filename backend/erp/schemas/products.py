"""Product Schemas — catalogue products and their open-enrolment variants.

Invariants:
    - hora_inicio / hora_fin are stored as "HH:MM"; blank clears them
    - Variant dates accept YYYY-MM-DD (midnight UTC) or ISO-8601
    - trainer_ids are trimmed and de-duplicated; the first one is the variant's main trainer
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, field_validator

from erp.core.normalize import clean_text, sanitize_ids
from erp.core.time_ranges import parse_datetime_param, parse_time_parts


def _hhmm(value: Any, field: str) -> str | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    parts = parse_time_parts(value)
    if parts is None:
        raise ValueError(f"El campo {field} debe tener el formato HH:MM")
    return f"{parts[0]:02d}:{parts[1]:02d}"


def _variant_date(value: Any) -> datetime | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    parsed = parse_datetime_param(value)
    if parsed is None:
        raise ValueError("Fecha inválida")
    return parsed


def _trainer_ids(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError("Lista de formadores inválida")
    return sanitize_ids(value)


# ─── Products ────────────────────────────────────────────────────

class ProductCreate(BaseModel):
    id: str | None = None
    name: str
    code: str | None = None
    hora_inicio: str | None = None
    hora_fin: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, v):
        text = clean_text(v)
        if not text:
            raise ValueError("El nombre es obligatorio")
        return text

    @field_validator("id", "code", mode="before")
    @classmethod
    def strip_text(cls, v):
        return clean_text(v)

    @field_validator("hora_inicio", mode="before")
    @classmethod
    def check_start(cls, v):
        return _hhmm(v, "hora_inicio")

    @field_validator("hora_fin", mode="before")
    @classmethod
    def check_end(cls, v):
        return _hhmm(v, "hora_fin")


class ProductUpdate(BaseModel):
    name: str | None = None
    code: str | None = None
    hora_inicio: str | None = None
    hora_fin: str | None = None

    @field_validator("name", "code", mode="before")
    @classmethod
    def strip_text(cls, v):
        return clean_text(v)

    @field_validator("hora_inicio", mode="before")
    @classmethod
    def check_start(cls, v):
        return _hhmm(v, "hora_inicio")

    @field_validator("hora_fin", mode="before")
    @classmethod
    def check_end(cls, v):
        return _hhmm(v, "hora_fin")


# ─── Variants ────────────────────────────────────────────────────

class VariantCreate(BaseModel):
    name: str | None = None
    date: datetime | None = None
    trainer_ids: list[str] = []
    sala_id: str | None = None
    unidad_movil_id: str | None = None

    @field_validator("name", "sala_id", "unidad_movil_id", mode="before")
    @classmethod
    def strip_text(cls, v):
        return clean_text(v)

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v):
        return _variant_date(v)

    @field_validator("trainer_ids", mode="before")
    @classmethod
    def parse_trainers(cls, v):
        return _trainer_ids(v)


class VariantUpdate(BaseModel):
    """Partial update; absent fields keep their stored value."""
    name: str | None = None
    date: datetime | None = None
    trainer_ids: list[str] | None = None
    sala_id: str | None = None
    unidad_movil_id: str | None = None

    @field_validator("name", "sala_id", "unidad_movil_id", mode="before")
    @classmethod
    def strip_text(cls, v):
        return clean_text(v)

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v):
        return _variant_date(v)

    @field_validator("trainer_ids", mode="before")
    @classmethod
    def parse_trainers(cls, v):
        return _trainer_ids(v)
