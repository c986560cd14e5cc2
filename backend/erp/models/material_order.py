"""MaterialOrder ORM — pedidos de material sent to suppliers.

Invariants:
    - order_number is unique and positive
    - products JSON holds the product lines and the email payloads of the order
"""

from datetime import datetime, timezone

from sqlalchemy import Integer, String, Text, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from erp.db.base import Base


class MaterialOrder(Base):
    __tablename__ = "material_orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_number: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    supplier_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    supplier_email: Mapped[str] = mapped_column(String(255), nullable=False)
    recipient_email: Mapped[str] = mapped_column(String(255), nullable=False)
    cc_emails: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    products: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    source_budget_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    sent_from: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
