"""TrainingSession ORM — sesiones scheduled for a deal product.

Invariants:
    - Every session belongs to one deal and one deal product
    - fecha_inicio_utc <= fecha_fin_utc when both are set
    - estado holds the last persisted status; reads re-resolve it (core.session_state)
    - Trainer and mobile unit assignments live in link tables (composite PKs)

Design Decisions:
    - Link rows are owned by the session (delete-orphan): removing a session
      removes its assignments
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime, ForeignKey, Float
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from erp.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TrainingSession(Base):
    __tablename__ = "training_sessions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    deal_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("deals.deal_id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    deal_product_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("deal_products.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    nombre_cache: Mapped[str] = mapped_column(
        String(255), nullable=False, default="Sesión",
    )
    fecha_inicio_utc: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True,
    )
    fecha_fin_utc: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True,
    )
    tiempo_parada: Mapped[float | None] = mapped_column(Float, nullable=True)
    sala_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("rooms.sala_id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    direccion: Mapped[str] = mapped_column(Text, nullable=False, default="")
    estado: Mapped[str] = mapped_column(String(20), nullable=False, default="BORRADOR")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    deal: Mapped["Deal"] = relationship("Deal", lazy="selectin")
    deal_product: Mapped["DealProduct"] = relationship("DealProduct", lazy="selectin")
    room: Mapped["Room"] = relationship("Room", lazy="selectin")
    trainer_links: Mapped[list["SessionTrainer"]] = relationship(
        "SessionTrainer", cascade="all, delete-orphan", lazy="selectin",
    )
    unit_links: Mapped[list["SessionMobileUnit"]] = relationship(
        "SessionMobileUnit", cascade="all, delete-orphan", lazy="selectin",
    )

    @property
    def trainer_ids(self) -> list[str]:
        return [link.trainer_id for link in self.trainer_links]

    @property
    def unit_ids(self) -> list[str]:
        return [link.unidad_id for link in self.unit_links]


class SessionTrainer(Base):
    __tablename__ = "session_trainers"

    session_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("training_sessions.id", ondelete="CASCADE"),
        primary_key=True,
    )
    trainer_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("trainers.trainer_id", ondelete="CASCADE"),
        primary_key=True, index=True,
    )


class SessionMobileUnit(Base):
    __tablename__ = "session_mobile_units"

    session_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("training_sessions.id", ondelete="CASCADE"),
        primary_key=True,
    )
    unidad_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("mobile_units.unidad_id", ondelete="CASCADE"),
        primary_key=True, index=True,
    )
