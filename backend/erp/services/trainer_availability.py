"""Trainer Availability Service — yearly overrides and assigned days per trainer.

Invariants:
    - Only unavailable (available = false) overrides are stored and reported
    - Assigned dates are Madrid calendar days within the requested year, sorted
    - A user manages other trainers only with the trainer management route permission

Design Decisions:
    - Year bounds are computed in UTC (Jan 1 00:00Z); days are then filtered by
      their Madrid date, so late-December UTC instants are attributed correctly
"""

import logging
from datetime import date, datetime, timezone

from sqlalchemy import select, delete, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from erp.core.availability import normalize_availability_updates
from erp.core.errors import ForbiddenError, ResourceNotFoundError
from erp.core.permissions import TRAINER_MANAGEMENT_ROUTE, can_access_route
from erp.core.time_ranges import madrid_date
from erp.models.product import Variant, VariantTrainerLink
from erp.models.trainer import Trainer
from erp.models.trainer_availability import TrainerAvailability
from erp.models.training_session import TrainingSession, SessionTrainer
from erp.models.user import User

logger = logging.getLogger(__name__)


async def resolve_target_trainer(
    db: AsyncSession, user: User, requested_trainer_id: str | None,
) -> str:
    """Trainer whose availability the user may read or change."""
    own_result = await db.execute(
        select(Trainer.trainer_id).where(Trainer.user_id == user.id),
    )
    own_trainer_id = own_result.scalar_one_or_none()
    can_manage_others = can_access_route(user.role, TRAINER_MANAGEMENT_ROUTE)

    if requested_trainer_id and requested_trainer_id != own_trainer_id and not can_manage_others:
        raise ForbiddenError("No tienes permiso para gestionar otros formadores")

    trainer_id = requested_trainer_id or own_trainer_id
    if not trainer_id:
        raise ResourceNotFoundError(
            "Formador", None, message="No se encontró el formador asociado",
        )
    if await db.get(Trainer, trainer_id) is None:
        raise ResourceNotFoundError(
            "Formador", trainer_id, message="No se encontró el formador especificado",
        )
    return trainer_id


def _year_bounds(year: int) -> tuple[datetime, datetime]:
    return (
        datetime(year, 1, 1, tzinfo=timezone.utc),
        datetime(year + 1, 1, 1, tzinfo=timezone.utc),
    )


def _add_if_in_year(target: set[str], value: datetime | None, year: int) -> None:
    if value is None:
        return
    day = madrid_date(value)
    if day.year == year:
        target.add(day.isoformat())


async def compute_assigned_dates(
    db: AsyncSession, trainer_id: str, year: int,
) -> list[str]:
    start, next_start = _year_bounds(year)
    assigned: set[str] = set()

    sessions = await db.execute(
        select(TrainingSession.fecha_inicio_utc, TrainingSession.fecha_fin_utc).where(
            TrainingSession.trainer_links.any(SessionTrainer.trainer_id == trainer_id),
            or_(
                and_(
                    TrainingSession.fecha_inicio_utc >= start,
                    TrainingSession.fecha_inicio_utc < next_start,
                ),
                and_(
                    TrainingSession.fecha_fin_utc >= start,
                    TrainingSession.fecha_fin_utc < next_start,
                ),
            ),
        ),
    )
    for session_start, session_end in sessions.all():
        _add_if_in_year(assigned, session_start, year)
        _add_if_in_year(assigned, session_end, year)

    variants = await db.execute(
        select(Variant.date).where(
            or_(
                Variant.trainer_id == trainer_id,
                Variant.trainer_links.any(VariantTrainerLink.trainer_id == trainer_id),
            ),
            Variant.date >= start,
            Variant.date < next_start,
        ),
    )
    for (variant_date,) in variants.all():
        _add_if_in_year(assigned, variant_date, year)

    return sorted(assigned)


async def build_trainer_availability(
    db: AsyncSession, trainer_id: str, year: int,
) -> dict:
    result = await db.execute(
        select(TrainerAvailability).where(
            TrainerAvailability.trainer_id == trainer_id,
            TrainerAvailability.date >= date(year, 1, 1),
            TrainerAvailability.date < date(year + 1, 1, 1),
        ).order_by(TrainerAvailability.date),
    )
    overrides = [
        {"date": row.date.isoformat(), "available": False}
        for row in result.scalars().all()
        if not row.available
    ]
    return {
        "year": year,
        "overrides": overrides,
        "assigned_dates": await compute_assigned_dates(db, trainer_id, year),
    }


async def apply_availability_updates(
    db: AsyncSession, trainer_id: str, entries,
) -> dict:
    """Persist overrides; returns the refreshed availability of that year."""
    updates = normalize_availability_updates(entries)
    year = next(iter(updates)).year

    existing_result = await db.execute(
        select(TrainerAvailability).where(
            TrainerAvailability.trainer_id == trainer_id,
            TrainerAvailability.date.in_(list(updates)),
        ),
    )
    existing = {row.date: row for row in existing_result.scalars().all()}

    for day, available in updates.items():
        if available:
            if day in existing:
                await db.execute(
                    delete(TrainerAvailability).where(
                        TrainerAvailability.id == existing[day].id,
                    ),
                )
        elif day in existing:
            existing[day].available = False
            existing[day].updated_at = datetime.now(timezone.utc)
        else:
            db.add(TrainerAvailability(trainer_id=trainer_id, date=day, available=False))
    await db.commit()
    logger.info(
        f"Updated {len(updates)} availability day(s)",
        extra={"trainer_id": trainer_id},
    )
    return await build_trainer_availability(db, trainer_id, year)
