"""Product ORM — catalogue products and their open-enrolment variants.

Invariants:
    - hora_inicio / hora_fin are Madrid wall-clock times ("HH:MM"), optional
    - A variant occupies its date between its product's times
    - A variant may carry one direct trainer plus linked trainers
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp.db.base import Base


class Product(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: str(uuid.uuid4()),
    )
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    code: Mapped[str | None] = mapped_column(String(120), nullable=True)
    hora_inicio: Mapped[str | None] = mapped_column(String(8), nullable=True)
    hora_fin: Mapped[str | None] = mapped_column(String(8), nullable=True)

    variants: Mapped[list["Variant"]] = relationship(
        "Variant", back_populates="product", cascade="all, delete-orphan",
        lazy="selectin", order_by="Variant.date",
    )


class Variant(Base):
    __tablename__ = "variants"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: str(uuid.uuid4()),
    )
    product_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    trainer_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("trainers.trainer_id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    sala_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("rooms.sala_id", ondelete="SET NULL"), nullable=True,
    )
    unidad_movil_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("mobile_units.unidad_id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    product: Mapped["Product"] = relationship(
        "Product", back_populates="variants", lazy="selectin",
    )
    trainer_links: Mapped[list["VariantTrainerLink"]] = relationship(
        "VariantTrainerLink", cascade="all, delete-orphan", lazy="selectin",
    )


class VariantTrainerLink(Base):
    __tablename__ = "variant_trainer_links"

    variant_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("variants.id", ondelete="CASCADE"), primary_key=True,
    )
    trainer_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("trainers.trainer_id", ondelete="CASCADE"),
        primary_key=True,
    )
