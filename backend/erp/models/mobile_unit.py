"""MobileUnit ORM — unidades móviles (vehicles and trailers).

Invariants:
    - tipo and sede are multi-select lists stored as JSON arrays
    - matricula (licence plate) is unique
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from erp.db.base import Base


class MobileUnit(Base):
    __tablename__ = "mobile_units"

    unidad_id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: str(uuid.uuid4()),
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    matricula: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    tipo: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    sede: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
