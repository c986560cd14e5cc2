"""Resource Catalogue Schemas — trainers, rooms and mobile units.

Invariants:
    - Text fields are trimmed; blank becomes None
    - Required fields (trainer name; room name + sede; unit name, matricula, tipo, sede)
      are rejected when blank
    - Client-supplied ids are optional and honoured when present
    - Trainer user_id must be a UUID; blank clears the link
"""

import uuid
from typing import Any

from pydantic import BaseModel, field_validator

from erp.core.domain_types import ROOM_SEDES
from erp.core.normalize import clean_text, normalize_text_list, parse_active_flag

_TRAINER_TEXT_FIELDS = (
    "apellido", "email", "phone", "dni", "direccion", "especialidad", "titulacion",
)


def _required(value: Any, message: str) -> str:
    text = clean_text(value)
    if not text:
        raise ValueError(message)
    return text


def _required_list(value: Any, message: str) -> list[str]:
    items = normalize_text_list(value)
    if not items:
        raise ValueError(message)
    return items


def _room_sede(value: Any) -> str:
    text = clean_text(value)
    for sede in ROOM_SEDES:
        if text and text.lower() == sede.lower():
            return sede
    raise ValueError("Sede inválida")


def _active_flag(value: Any) -> bool:
    flag = parse_active_flag(value)
    if flag is None:
        raise ValueError("Valor de activo inválido")
    return flag


def _user_id(value: Any) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    text = clean_text(value)
    if text is None:
        return None
    try:
        return uuid.UUID(text)
    except ValueError:
        raise ValueError("Usuario inválido")


# ─── Trainers ────────────────────────────────────────────────────

class TrainerCreate(BaseModel):
    trainer_id: str | None = None
    name: str
    apellido: str | None = None
    email: str | None = None
    phone: str | None = None
    dni: str | None = None
    direccion: str | None = None
    especialidad: str | None = None
    titulacion: str | None = None
    activo: Any = True
    user_id: uuid.UUID | None = None

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, v):
        return _required(v, "El nombre es obligatorio")

    @field_validator("trainer_id", *_TRAINER_TEXT_FIELDS, mode="before")
    @classmethod
    def strip_text(cls, v):
        return clean_text(v)

    @field_validator("activo", mode="before")
    @classmethod
    def check_activo(cls, v):
        return True if v is None else _active_flag(v)

    @field_validator("user_id", mode="before")
    @classmethod
    def check_user_id(cls, v):
        return _user_id(v)


class TrainerUpdate(BaseModel):
    name: str | None = None
    apellido: str | None = None
    email: str | None = None
    phone: str | None = None
    dni: str | None = None
    direccion: str | None = None
    especialidad: str | None = None
    titulacion: str | None = None
    activo: Any = None
    user_id: uuid.UUID | None = None

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, v):
        return _required(v, "El nombre es obligatorio")

    @field_validator(*_TRAINER_TEXT_FIELDS, mode="before")
    @classmethod
    def strip_text(cls, v):
        return clean_text(v)

    @field_validator("activo", mode="before")
    @classmethod
    def check_activo(cls, v):
        return _active_flag(v)

    @field_validator("user_id", mode="before")
    @classmethod
    def check_user_id(cls, v):
        return _user_id(v)


# ─── Rooms ───────────────────────────────────────────────────────

class RoomCreate(BaseModel):
    sala_id: str | None = None
    name: str
    sede: str

    @field_validator("sala_id", mode="before")
    @classmethod
    def strip_id(cls, v):
        return clean_text(v)

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, v):
        return _required(v, "El nombre es obligatorio")

    @field_validator("sede", mode="before")
    @classmethod
    def check_sede(cls, v):
        return _room_sede(v)


class RoomUpdate(BaseModel):
    name: str | None = None
    sede: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, v):
        return _required(v, "El nombre es obligatorio")

    @field_validator("sede", mode="before")
    @classmethod
    def check_sede(cls, v):
        return _room_sede(v)


# ─── Mobile units ────────────────────────────────────────────────

class MobileUnitCreate(BaseModel):
    unidad_id: str | None = None
    name: str
    matricula: str
    tipo: list[str]
    sede: list[str]

    @field_validator("unidad_id", mode="before")
    @classmethod
    def strip_id(cls, v):
        return clean_text(v)

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, v):
        return _required(v, "El nombre es obligatorio")

    @field_validator("matricula", mode="before")
    @classmethod
    def check_matricula(cls, v):
        return _required(v, "La matrícula es obligatoria")

    @field_validator("tipo", mode="before")
    @classmethod
    def check_tipo(cls, v):
        return _required_list(v, "El tipo es obligatorio")

    @field_validator("sede", mode="before")
    @classmethod
    def check_sede(cls, v):
        return _required_list(v, "La sede es obligatoria")


class MobileUnitUpdate(BaseModel):
    name: str | None = None
    matricula: str | None = None
    tipo: list[str] | None = None
    sede: list[str] | None = None

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, v):
        return _required(v, "El nombre es obligatorio")

    @field_validator("matricula", mode="before")
    @classmethod
    def check_matricula(cls, v):
        return _required(v, "La matrícula es obligatoria")

    @field_validator("tipo", mode="before")
    @classmethod
    def check_tipo(cls, v):
        return _required_list(v, "El tipo es obligatorio")

    @field_validator("sede", mode="before")
    @classmethod
    def check_sede(cls, v):
        return _required_list(v, "La sede es obligatoria")
