"""TrainerAvailability ORM — per-day overrides of a trainer's default availability.

Invariants:
    - At most one row per (trainer_id, date)
    - Only available = false rows are kept; available = true deletes the override
"""

import uuid
from datetime import date as date_type, datetime, timezone

from sqlalchemy import String, Boolean, Date, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from erp.db.base import Base


class TrainerAvailability(Base):
    __tablename__ = "trainer_availability"
    __table_args__ = (
        UniqueConstraint("trainer_id", "date", name="uq_trainer_availability_day"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    trainer_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("trainers.trainer_id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
