"""Session Schemas — create/update payloads for training sessions.

Invariants:
    - Dates accept YYYY-MM-DD or ISO-8601 and are converted to UTC
    - Id lists are trimmed and de-duplicated
    - estado must be a known status (case-insensitive)
    - Updates only touch fields present in the body (model_fields_set)

Design Decisions:
    - tiempo_parada and force_estado_borrador stay loosely typed here; core
      parses them so the same rules apply to every entry point
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, field_validator

from erp.core.normalize import clean_text, sanitize_ids
from erp.core.session_state import parse_status
from erp.core.time_ranges import parse_datetime_param


def _parse_date(value: Any) -> datetime | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    parsed = parse_datetime_param(value)
    if parsed is None:
        raise ValueError("Fecha inválida")
    return parsed


def _parse_ids(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError("El campo debe ser un array de strings")
    return sanitize_ids(value)


class SessionCreate(BaseModel):
    deal_id: str
    deal_product_id: str
    fecha_inicio_utc: datetime | None = None
    fecha_fin_utc: datetime | None = None
    sala_id: str | None = None
    direccion: str | None = None
    tiempo_parada: Any = None
    trainer_ids: list[str] = []
    unidad_movil_ids: list[str] = []
    force_estado_borrador: Any = None

    @field_validator("deal_id", "deal_product_id", mode="before")
    @classmethod
    def check_ids(cls, v):
        text = clean_text(v)
        if not text:
            raise ValueError("deal_id y deal_product_id son obligatorios")
        return text

    @field_validator("sala_id", "direccion", mode="before")
    @classmethod
    def strip_text(cls, v):
        return clean_text(v)

    @field_validator("fecha_inicio_utc", "fecha_fin_utc", mode="before")
    @classmethod
    def parse_dates(cls, v):
        return _parse_date(v)

    @field_validator("trainer_ids", "unidad_movil_ids", mode="before")
    @classmethod
    def parse_id_lists(cls, v):
        return _parse_ids(v)


class SessionUpdate(BaseModel):
    """Partial update; absent fields keep their stored value."""
    fecha_inicio_utc: datetime | None = None
    fecha_fin_utc: datetime | None = None
    sala_id: str | None = None
    direccion: str | None = None
    tiempo_parada: Any = None
    nombre_cache: str | None = None
    trainer_ids: list[str] | None = None
    unidad_movil_ids: list[str] | None = None
    estado: str | None = None

    @field_validator("fecha_inicio_utc", "fecha_fin_utc", mode="before")
    @classmethod
    def parse_dates(cls, v):
        return _parse_date(v)

    @field_validator("sala_id", "nombre_cache", mode="before")
    @classmethod
    def strip_text(cls, v):
        return clean_text(v)

    @field_validator("direccion", mode="before")
    @classmethod
    def check_direccion(cls, v):
        text = clean_text(v)
        if text is None:
            raise ValueError("La dirección es obligatoria")
        return text

    @field_validator("trainer_ids", "unidad_movil_ids", mode="before")
    @classmethod
    def parse_id_lists(cls, v):
        return _parse_ids(v)

    @field_validator("estado", mode="before")
    @classmethod
    def check_estado(cls, v):
        status = parse_status(v)
        if status is None:
            raise ValueError("Estado inválido")
        return status.value


class GenerateFromDealRequest(BaseModel):
    deal_id: str

    @field_validator("deal_id", mode="before")
    @classmethod
    def check_deal_id(cls, v):
        text = clean_text(v)
        if not text:
            raise ValueError("deal_id es obligatorio")
        return text
