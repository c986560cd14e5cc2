"""Deal ORM — presupuestos (budgets) and their product lines.

Invariants:
    - deal_id is the CRM identifier (string)
    - Deleting a deal deletes its products (and, via FK, their sessions)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime, ForeignKey, Float
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp.db.base import Base


class Deal(Base):
    __tablename__ = "deals"

    deal_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    organization_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    pipeline_label: Mapped[str | None] = mapped_column(String(120), nullable=True)
    sede_label: Mapped[str | None] = mapped_column(String(255), nullable=True)
    training_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    products: Mapped[list["DealProduct"]] = relationship(
        "DealProduct", back_populates="deal",
        cascade="all, delete-orphan", lazy="selectin",
        order_by="DealProduct.created_at",
    )


class DealProduct(Base):
    __tablename__ = "deal_products"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: str(uuid.uuid4()),
    )
    deal_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("deals.deal_id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    code: Mapped[str | None] = mapped_column(String(120), nullable=True)
    quantity: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    deal: Mapped["Deal"] = relationship("Deal", back_populates="products")
