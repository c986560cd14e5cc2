"""Variant Service — open-enrolment variants of catalogue products.

Invariants:
    - A variant occupies its date between its product's Madrid hours
    - Writes check referenced resources exist (400), then availability against
      sessions and other variants (409); a variant never conflicts with itself
    - trainer_id mirrors the first of trainer_ids; every trainer_id is also a link row
    - Audit entries written in the same transaction as the change

Design Decisions:
    - Trainer link rows are diffed (add/remove) like session links, so composite
      primary keys never collide inside one unit of work
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from erp.core.availability import RequestedResources
from erp.core.errors import NoChangesError, ResourceNotFoundError
from erp.core.time_ranges import DateRange, as_utc, compute_variant_range, to_iso
from erp.infrastructure.database import commit_or_conflict
from erp.models.product import Product, Variant, VariantTrainerLink
from erp.schemas.products import VariantCreate, VariantUpdate
from erp.services.audit import record_audit
from erp.services.resource_availability import (
    VARIANT_WINDOW, ensure_resources_available, ensure_resources_exist,
    variant_trainer_ids,
)

logger = logging.getLogger(__name__)


# ─── Serialisation ───────────────────────────────────────────────

def variant_range(variant: Variant) -> DateRange | None:
    product = variant.product
    return compute_variant_range(
        variant.date,
        product.hora_inicio if product else None,
        product.hora_fin if product else None,
    )


def serialize_variant(variant: Variant) -> dict:
    span = variant_range(variant)
    return {
        "id": variant.id,
        "product_id": variant.product_id,
        "name": variant.name,
        "date": to_iso(variant.date),
        "trainer_id": variant.trainer_id,
        "trainer_ids": variant_trainer_ids(variant),
        "sala_id": variant.sala_id,
        "unidad_movil_id": variant.unidad_movil_id,
        "inicio": to_iso(span.start) if span else None,
        "fin": to_iso(span.end) if span else None,
    }


def serialize_product(product: Product) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "code": product.code,
        "hora_inicio": product.hora_inicio,
        "hora_fin": product.hora_fin,
        "variants": [serialize_variant(v) for v in product.variants],
    }


# ─── Lookups ─────────────────────────────────────────────────────

async def get_product_or_404(db: AsyncSession, product_id: str) -> Product:
    product = await db.get(Product, product_id)
    if product is None:
        raise ResourceNotFoundError(
            "Producto", product_id, message="Producto no encontrado",
        )
    return product


async def get_variant_or_404(db: AsyncSession, variant_id: str) -> Variant:
    variant = await db.get(Variant, variant_id)
    if variant is None:
        raise ResourceNotFoundError(
            "Variante", variant_id, message="Variante no encontrada",
        )
    return variant


async def list_variants_in_range(db: AsyncSession, span: DateRange) -> list[dict]:
    """Variants whose occupied range overlaps the span, by start."""
    result = await db.execute(
        select(Variant).where(
            Variant.date.is_not(None),
            Variant.date >= span.start - VARIANT_WINDOW,
            Variant.date <= span.end + VARIANT_WINDOW,
        ),
    )
    hits = []
    for variant in result.scalars().all():
        occupied = variant_range(variant)
        if occupied is not None and occupied.overlaps(span):
            hits.append((occupied.start, variant.id, variant))
    hits.sort(key=lambda item: (item[0], item[1]))
    return [serialize_variant(variant) for _, _, variant in hits]


# ─── Writes ──────────────────────────────────────────────────────

def _sync_trainer_links(variant: Variant, trainer_ids: list[str]) -> None:
    wanted = set(trainer_ids)
    for link in list(variant.trainer_links):
        if link.trainer_id not in wanted:
            variant.trainer_links.remove(link)
    present = {link.trainer_id for link in variant.trainer_links}
    for trainer_id in trainer_ids:
        if trainer_id not in present:
            variant.trainer_links.append(VariantTrainerLink(trainer_id=trainer_id))
    variant.trainer_id = trainer_ids[0] if trainer_ids else None


async def _check_resources(
    db: AsyncSession,
    product: Product,
    date,
    trainer_ids: list[str],
    room_id: str | None,
    unit_id: str | None,
    exclude_variant_id: str | None = None,
) -> None:
    unit_ids = [unit_id] if unit_id else []
    await ensure_resources_exist(db, trainer_ids, unit_ids, room_id)
    await ensure_resources_available(
        db,
        compute_variant_range(date, product.hora_inicio, product.hora_fin),
        RequestedResources.build(trainer_ids, unit_ids, room_id),
        exclude_variant_id=exclude_variant_id,
    )


async def create_variant(
    db: AsyncSession, product_id: str, body: VariantCreate,
    user_id: uuid.UUID | None,
) -> dict:
    product = await get_product_or_404(db, product_id)
    await _check_resources(
        db, product, body.date, body.trainer_ids, body.sala_id, body.unidad_movil_id,
    )
    variant = Variant(
        id=str(uuid.uuid4()),
        product=product,
        name=body.name or product.name,
        date=body.date,
        sala_id=body.sala_id,
        unidad_movil_id=body.unidad_movil_id,
        trainer_links=[],
    )
    _sync_trainer_links(variant, body.trainer_ids)
    db.add(variant)
    await db.flush()

    serialized = serialize_variant(variant)
    record_audit(db, user_id, "variant.created", "variant", variant.id, None, serialized)
    await commit_or_conflict(db, "una variante")
    logger.info("Variant created", extra={"user_id": str(user_id) if user_id else None})
    return serialized


async def update_variant(
    db: AsyncSession, variant_id: str, body: VariantUpdate,
    user_id: uuid.UUID | None,
) -> dict:
    variant = await get_variant_or_404(db, variant_id)
    fields = body.model_fields_set
    before = serialize_variant(variant)

    date = body.date if "date" in fields else as_utc(variant.date)
    trainer_ids = (
        body.trainer_ids if "trainer_ids" in fields and body.trainer_ids is not None
        else variant_trainer_ids(variant)
    )
    room_id = body.sala_id if "sala_id" in fields else variant.sala_id
    unit_id = body.unidad_movil_id if "unidad_movil_id" in fields else variant.unidad_movil_id
    name = body.name if "name" in fields else variant.name
    unchanged = (
        date == as_utc(variant.date)
        and trainer_ids == variant_trainer_ids(variant)
        and room_id == variant.sala_id
        and unit_id == variant.unidad_movil_id
        and name == variant.name
    )
    if unchanged:
        raise NoChangesError()
    await _check_resources(
        db, variant.product, date, trainer_ids, room_id, unit_id,
        exclude_variant_id=variant.id,
    )

    variant.date = date
    variant.sala_id = room_id
    variant.unidad_movil_id = unit_id
    variant.name = name
    if "trainer_ids" in fields:
        _sync_trainer_links(variant, trainer_ids)
    await db.flush()

    after = serialize_variant(variant)
    record_audit(db, user_id, "variant.updated", "variant", variant.id, before, after)
    await commit_or_conflict(db, "una variante")
    logger.info(
        f"Variant updated: {sorted(fields)}",
        extra={"user_id": str(user_id) if user_id else None},
    )
    return after


async def delete_variant(
    db: AsyncSession, variant_id: str, user_id: uuid.UUID | None,
) -> None:
    variant = await get_variant_or_404(db, variant_id)
    record_audit(
        db, user_id, "variant.deleted", "variant", variant.id,
        serialize_variant(variant), None,
    )
    await db.delete(variant)
    await commit_or_conflict(db, "una variante")
    logger.info("Variant deleted", extra={"user_id": str(user_id) if user_id else None})
