"""Resource Availability Service — loads booked slots and applies core conflict rules.

Invariants:
    - Only sessions in blocking statuses (BORRADOR, PLANIFICADA, SUSPENDIDA) occupy resources
    - Variants occupy resources on their date between their product's Madrid times
    - Variant trainers = direct trainer_id plus variant_trainer_links
    - DB filters are coarse (date window, resource ids); exact overlap is decided in core
    - Referenced trainers, units and rooms must exist before availability is checked

Design Decisions:
    - Variant window widened by two days: the UTC date of a variant and its Madrid
      wall-clock hours never drift further than that
"""

import logging
from datetime import timedelta

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from erp.config import get_settings
from erp.core.availability import (
    BookedSlot, RequestedResources, ResourceLocks,
    find_conflicts, collect_locks, schedule_available_trainers,
)
from erp.core.domain_types import BLOCKING_STATUSES
from erp.core.errors import RequestValidationFailed, ResourceUnavailableError
from erp.core.time_ranges import (
    DateRange, compute_variant_range, normalize_date_range, enumerate_madrid_days,
)
from erp.models.mobile_unit import MobileUnit
from erp.models.product import Variant, VariantTrainerLink
from erp.models.room import Room
from erp.models.trainer import Trainer
from erp.models.trainer_availability import TrainerAvailability
from erp.models.training_session import (
    TrainingSession, SessionTrainer, SessionMobileUnit,
)

logger = logging.getLogger(__name__)

VARIANT_WINDOW = timedelta(days=2)


# ─── Slot loading ────────────────────────────────────────────────

def session_slot(session: TrainingSession) -> BookedSlot:
    deal = session.deal
    product = session.deal_product
    return BookedSlot(
        kind="session",
        id=str(session.id),
        range=normalize_date_range(session.fecha_inicio_utc, session.fecha_fin_utc),
        trainer_ids=tuple(session.trainer_ids),
        unit_ids=tuple(session.unit_ids),
        room_id=session.sala_id,
        deal_id=session.deal_id,
        deal_title=deal.title if deal else None,
        organization_name=deal.organization_name if deal else None,
        product_code=product.code if product else None,
        product_name=product.name if product else None,
        status=session.estado,
    )


def variant_trainer_ids(variant: Variant) -> list[str]:
    """Direct trainer first, then linked trainers."""
    trainers = [variant.trainer_id] if variant.trainer_id else []
    trainers += [
        link.trainer_id for link in variant.trainer_links
        if link.trainer_id not in trainers
    ]
    return trainers


def variant_slot(variant: Variant) -> BookedSlot:
    product = variant.product
    trainers = variant_trainer_ids(variant)
    return BookedSlot(
        kind="variant",
        id=variant.id,
        range=compute_variant_range(
            variant.date,
            product.hora_inicio if product else None,
            product.hora_fin if product else None,
        ),
        trainer_ids=tuple(trainers),
        unit_ids=(variant.unidad_movil_id,) if variant.unidad_movil_id else (),
        room_id=variant.sala_id,
        product_code=product.code if product else None,
        product_name=product.name if product else None,
    )


async def load_session_slots(
    db: AsyncSession,
    span: DateRange,
    resources: RequestedResources | None = None,
) -> list[BookedSlot]:
    """Blocking sessions whose dates may overlap the span (optionally using the resources)."""
    start_col = func.coalesce(TrainingSession.fecha_inicio_utc, TrainingSession.fecha_fin_utc)
    end_col = func.coalesce(TrainingSession.fecha_fin_utc, TrainingSession.fecha_inicio_utc)
    query = select(TrainingSession).where(
        TrainingSession.estado.in_([s.value for s in BLOCKING_STATUSES]),
        start_col.is_not(None),
        start_col <= span.end,
        end_col >= span.start,
    )
    if resources is not None:
        conditions = []
        if resources.trainer_ids:
            conditions.append(TrainingSession.trainer_links.any(
                SessionTrainer.trainer_id.in_(resources.trainer_ids),
            ))
        if resources.unit_ids:
            conditions.append(TrainingSession.unit_links.any(
                SessionMobileUnit.unidad_id.in_(resources.unit_ids),
            ))
        if resources.room_id:
            conditions.append(TrainingSession.sala_id == resources.room_id)
        if not conditions:
            return []
        query = query.where(or_(*conditions))
    result = await db.execute(query)
    return [session_slot(s) for s in result.scalars().all()]


async def load_variant_slots(
    db: AsyncSession,
    span: DateRange,
    resources: RequestedResources | None = None,
) -> list[BookedSlot]:
    query = select(Variant).where(
        Variant.date.is_not(None),
        Variant.date >= span.start - VARIANT_WINDOW,
        Variant.date <= span.end + VARIANT_WINDOW,
    )
    if resources is not None:
        conditions = []
        if resources.trainer_ids:
            conditions.append(Variant.trainer_id.in_(resources.trainer_ids))
            conditions.append(Variant.trainer_links.any(
                VariantTrainerLink.trainer_id.in_(resources.trainer_ids),
            ))
        if resources.unit_ids:
            conditions.append(Variant.unidad_movil_id.in_(resources.unit_ids))
        if resources.room_id:
            conditions.append(Variant.sala_id == resources.room_id)
        if not conditions:
            return []
        query = query.where(or_(*conditions))
    result = await db.execute(query)
    return [variant_slot(v) for v in result.scalars().all()]


async def load_slots(
    db: AsyncSession,
    span: DateRange,
    resources: RequestedResources | None = None,
) -> list[BookedSlot]:
    sessions = await load_session_slots(db, span, resources)
    variants = await load_variant_slots(db, span, resources)
    return sessions + variants


# ─── Operations ──────────────────────────────────────────────────

async def check_conflicts(
    db: AsyncSession,
    span: DateRange | None,
    resources: RequestedResources,
    exclude_session_id: str | None = None,
    exclude_variant_id: str | None = None,
) -> list[dict]:
    """Detailed conflict summaries (empty when everything is free)."""
    if span is None or resources.is_empty():
        return []
    always_free = get_settings().always_available_unit_ids
    slots = await load_slots(db, span, resources)
    conflicts = find_conflicts(
        resources, span, slots, always_free,
        exclude_session_id=exclude_session_id,
        exclude_variant_id=exclude_variant_id,
    )
    return [c.to_dict() for c in conflicts]


async def ensure_resources_exist(
    db: AsyncSession,
    trainer_ids: list[str],
    unit_ids: list[str],
    room_id: str | None,
) -> None:
    """Raise RequestValidationFailed (400) when a referenced resource is unknown."""
    checks = (
        (Trainer.trainer_id, trainer_ids, "Formador no encontrado"),
        (MobileUnit.unidad_id, unit_ids, "Unidad móvil no encontrada"),
        (Room.sala_id, [room_id] if room_id else [], "Sala no encontrada"),
    )
    for column, ids, message in checks:
        if not ids:
            continue
        result = await db.execute(select(column).where(column.in_(ids)))
        found = set(result.scalars().all())
        missing = [i for i in ids if i not in found]
        if missing:
            raise RequestValidationFailed(f"{message}: {missing[0]}")


async def ensure_resources_available(
    db: AsyncSession,
    span: DateRange | None,
    resources: RequestedResources,
    exclude_session_id: str | None = None,
    exclude_variant_id: str | None = None,
) -> None:
    """Raise ResourceUnavailableError when any requested resource is booked."""
    conflicts = await check_conflicts(
        db, span, resources, exclude_session_id, exclude_variant_id,
    )
    if conflicts:
        logger.info(
            f"Resource conflict on {len(conflicts)} resource(s)",
            extra={"session_id": exclude_session_id},
        )
        raise ResourceUnavailableError(conflicts)


async def get_locks(
    db: AsyncSession,
    span: DateRange,
    exclude_session_id: str | None = None,
    exclude_variant_id: str | None = None,
) -> ResourceLocks:
    slots = await load_slots(db, span)
    return collect_locks(
        span, slots, get_settings().always_available_unit_ids,
        exclude_session_id=exclude_session_id,
        exclude_variant_id=exclude_variant_id,
    )


async def get_schedule_available_trainers(
    db: AsyncSession, span: DateRange,
) -> list[str]:
    """Active trainers with no unavailable override on any Madrid day of the span."""
    result = await db.execute(
        select(Trainer.trainer_id).where(Trainer.activo.is_(True))
        .order_by(Trainer.trainer_id),
    )
    trainer_ids = list(result.scalars().all())
    if not trainer_ids:
        return []
    days = enumerate_madrid_days(span)
    overrides_result = await db.execute(
        select(TrainerAvailability).where(
            TrainerAvailability.trainer_id.in_(trainer_ids),
            TrainerAvailability.date >= days[0],
            TrainerAvailability.date <= days[-1],
        ),
    )
    overrides = {
        (row.trainer_id, row.date): bool(row.available)
        for row in overrides_result.scalars().all()
    }
    return schedule_available_trainers(trainer_ids, days, overrides)
