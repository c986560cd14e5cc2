"""User Schemas — admin user management payloads.

Invariants:
    - email is trimmed and lower-cased; an explicit null email on update is rejected
    - role is validated case-insensitively against core.domain_types.Role
    - active accepts lenient flags (sí/no, activo/inactivo, 1/0)
"""

from typing import Any

from pydantic import BaseModel, field_validator

from erp.core.normalize import clean_text, normalize_email, parse_active_flag
from erp.core.permissions import parse_role


def _validate_email(value: Any) -> str:
    email = normalize_email(value)
    if not email:
        raise ValueError("El email es obligatorio")
    return email


def _validate_role(value: Any) -> str:
    role = parse_role(value)
    if role is None:
        raise ValueError("Rol inválido")
    return role.value


class UserCreate(BaseModel):
    email: str
    role: str
    first_name: str | None = None
    last_name: str | None = None

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v):
        return _validate_email(v)

    @field_validator("role", mode="before")
    @classmethod
    def check_role(cls, v):
        return _validate_role(v)

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def strip_names(cls, v):
        return clean_text(v)


class UserUpdate(BaseModel):
    """Partial update. Only fields present in the body are applied."""
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    role: str | None = None
    active: Any = None

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def strip_names(cls, v):
        return clean_text(v)

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v):
        return _validate_email(v)

    @field_validator("role", mode="before")
    @classmethod
    def check_role(cls, v):
        return _validate_role(v)

    @field_validator("active", mode="before")
    @classmethod
    def check_active(cls, v):
        flag = parse_active_flag(v)
        if flag is None:
            raise ValueError("Valor de activo inválido")
        return flag
