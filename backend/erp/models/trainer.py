"""Trainer ORM — formadores assignable to sessions and variants.

Invariants:
    - trainer_id is a client-supplied or generated string id
    - user_id links a trainer to their ERP login (at most one trainer per user)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from erp.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Trainer(Base):
    __tablename__ = "trainers"

    trainer_id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: str(uuid.uuid4()),
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    apellido: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    dni: Mapped[str | None] = mapped_column(String(32), nullable=True)
    direccion: Mapped[str | None] = mapped_column(Text, nullable=True)
    especialidad: Mapped[str | None] = mapped_column(String(255), nullable=True)
    titulacion: Mapped[str | None] = mapped_column(String(255), nullable=True)
    activo: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True, unique=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )
