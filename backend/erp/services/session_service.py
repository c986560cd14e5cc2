"""Session Service — persistence and orchestration for training sessions.

Invariants:
    - Every write validates dates (end >= start) before touching resources
    - Resource conflicts checked before any row is written (409 RESOURCE_UNAVAILABLE)
    - Sessions of a deal product are named "{base} #n" in (created_at, id) order after every write
    - Status decisions come from core.session_state; this module only persists them
    - Audit entries written in the same transaction as the change

Design Decisions:
    - Link rows are diffed (add/remove) instead of replaced: avoids identity
      conflicts on the composite primary keys within one unit of work
    - Referenced trainers, units and rooms are checked up front so a bad id is a
      400, not a foreign-key failure at commit
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from erp.core.availability import RequestedResources
from erp.core.domain_types import SessionStatus
from erp.core.errors import RequestValidationFailed, ResourceNotFoundError
from erp.core.normalize import parse_truthy
from erp.core.session_state import (
    SessionFacts, compute_automatic_status, resolve_status, resolve_next_status,
    parse_status, parse_downtime, session_base_name, numbered_names, is_manual,
    is_applicable_product, required_session_count,
)
from erp.core.time_ranges import DateRange, as_utc, normalize_date_range, to_iso
from erp.infrastructure.database import commit_or_conflict
from erp.models.deal import Deal, DealProduct
from erp.models.training_session import (
    TrainingSession, SessionTrainer, SessionMobileUnit,
)
from erp.schemas.sessions import SessionCreate, SessionUpdate
from erp.services.audit import record_audit
from erp.services.resource_availability import (
    ensure_resources_available, ensure_resources_exist,
)

logger = logging.getLogger(__name__)


# ─── Serialisation ───────────────────────────────────────────────

def facts_for(session: TrainingSession) -> SessionFacts:
    deal = session.deal
    return SessionFacts(
        stored_status=session.estado,
        start=as_utc(session.fecha_inicio_utc),
        end=as_utc(session.fecha_fin_utc),
        room_id=session.sala_id,
        trainer_ids=session.trainer_ids,
        unit_ids=session.unit_ids,
        deal_sede=deal.sede_label if deal else None,
        deal_pipeline=deal.pipeline_label if deal else None,
    )


def serialize_session(session: TrainingSession) -> dict:
    return {
        "id": str(session.id),
        "deal_id": session.deal_id,
        "deal_product_id": session.deal_product_id,
        "nombre_cache": session.nombre_cache,
        "fecha_inicio_utc": to_iso(session.fecha_inicio_utc),
        "fecha_fin_utc": to_iso(session.fecha_fin_utc),
        "tiempo_parada": (
            float(session.tiempo_parada) if session.tiempo_parada is not None else None
        ),
        "sala_id": session.sala_id,
        "direccion": session.direccion,
        "estado": resolve_status(facts_for(session)).value,
        "trainer_ids": sorted(session.trainer_ids),
        "unidad_movil_ids": sorted(session.unit_ids),
    }


def audit_snapshot(serialized: dict) -> dict:
    return {k: v for k, v in serialized.items() if k != "nombre_cache"}


# ─── Lookups ─────────────────────────────────────────────────────

async def get_session_or_404(
    db: AsyncSession, session_id: uuid.UUID,
) -> TrainingSession:
    result = await db.execute(
        select(TrainingSession).where(TrainingSession.id == session_id),
    )
    session = result.scalar_one_or_none()
    if session is None:
        raise ResourceNotFoundError(
            "Sesión", str(session_id), message="Sesión no encontrada",
        )
    return session


async def get_deal_or_404(db: AsyncSession, deal_id: str) -> Deal:
    deal = await db.get(Deal, deal_id)
    if deal is None:
        raise ResourceNotFoundError(
            "Presupuesto", deal_id, message="Presupuesto no encontrado",
        )
    return deal


def _check_date_order(start: datetime | None, end: datetime | None) -> None:
    if start and end and end < start:
        raise RequestValidationFailed(
            "La fecha de fin no puede ser anterior al inicio", "fecha_fin_utc",
        )


async def reindex_session_names(db: AsyncSession, product: DealProduct) -> int:
    """Rename all sessions of a deal product "{base} #n" by creation order."""
    base = session_base_name(product.name, product.code)
    result = await db.execute(
        select(TrainingSession)
        .where(TrainingSession.deal_product_id == product.id)
        .order_by(TrainingSession.created_at, TrainingSession.id),
    )
    sessions = result.scalars().all()
    for session, expected in zip(sessions, numbered_names(base, len(sessions))):
        if session.nombre_cache != expected:
            session.nombre_cache = expected
    return len(sessions)


def _sync_trainer_links(session: TrainingSession, trainer_ids: list[str]) -> None:
    for link in list(session.trainer_links):
        if link.trainer_id not in trainer_ids:
            session.trainer_links.remove(link)
    current = set(session.trainer_ids)
    for trainer_id in trainer_ids:
        if trainer_id not in current:
            session.trainer_links.append(SessionTrainer(trainer_id=trainer_id))


def _sync_unit_links(session: TrainingSession, unit_ids: list[str]) -> None:
    for link in list(session.unit_links):
        if link.unidad_id not in unit_ids:
            session.unit_links.remove(link)
    current = set(session.unit_ids)
    for unit_id in unit_ids:
        if unit_id not in current:
            session.unit_links.append(SessionMobileUnit(unidad_id=unit_id))


# ─── Reads ───────────────────────────────────────────────────────

async def list_deal_sessions(
    db: AsyncSession,
    deal_id: str,
    product_id: str | None,
    page: int,
    limit: int,
) -> list[dict]:
    """Sessions grouped per applicable product, paginated; persists status drift."""
    deal = await get_deal_or_404(db, deal_id)
    products = [p for p in deal.products if is_applicable_product(p.code)]
    if product_id:
        products = [p for p in products if p.id == product_id]
        if not products:
            raise ResourceNotFoundError(
                "Producto", product_id,
                message="Producto del presupuesto no encontrado",
            )

    groups = []
    drifted = 0
    for product in products:
        total = await db.scalar(
            select(func.count()).select_from(TrainingSession)
            .where(TrainingSession.deal_product_id == product.id),
        )
        result = await db.execute(
            select(TrainingSession)
            .where(TrainingSession.deal_product_id == product.id)
            .order_by(TrainingSession.created_at, TrainingSession.id)
            .offset((page - 1) * limit).limit(limit),
        )
        rows = result.scalars().all()
        for row in rows:
            resolved = resolve_status(facts_for(row))
            if not is_manual(row.estado) and row.estado != resolved.value:
                row.estado = resolved.value
                drifted += 1
        groups.append({
            "product": {
                "id": product.id,
                "code": product.code,
                "name": product.name,
                "quantity": float(product.quantity or 0),
            },
            "sessions": [serialize_session(row) for row in rows],
            "pagination": {"page": page, "limit": limit, "total": total or 0},
        })
    if drifted:
        await db.commit()
        logger.info(
            f"Persisted {drifted} drifted session status(es)",
            extra={"deal_id": deal_id},
        )
    return groups


async def list_sessions_by_deal(db: AsyncSession, deal_id: str) -> list[dict]:
    await get_deal_or_404(db, deal_id)
    result = await db.execute(
        select(TrainingSession)
        .where(TrainingSession.deal_id == deal_id)
        .order_by(TrainingSession.created_at, TrainingSession.id),
    )
    return [
        {
            "id": str(s.id),
            "deal_product_id": s.deal_product_id,
            "nombre_cache": s.nombre_cache,
            "estado": resolve_status(facts_for(s)).value,
            "fecha_inicio_utc": to_iso(s.fecha_inicio_utc),
            "fecha_fin_utc": to_iso(s.fecha_fin_utc),
            "sala": (
                {"sala_id": s.room.sala_id, "name": s.room.name}
                if s.room else None
            ),
        }
        for s in result.scalars().all()
    ]


async def list_sessions_in_range(
    db: AsyncSession,
    span: DateRange,
    deal_id: str | None = None,
    product_id: str | None = None,
    room_id: str | None = None,
    trainer_id: str | None = None,
    unit_id: str | None = None,
    statuses: list[SessionStatus] | None = None,
) -> list[dict]:
    """Dated sessions overlapping the window (inclusive), earliest first."""
    start_col = func.coalesce(TrainingSession.fecha_inicio_utc, TrainingSession.fecha_fin_utc)
    end_col = func.coalesce(TrainingSession.fecha_fin_utc, TrainingSession.fecha_inicio_utc)
    query = select(TrainingSession).where(
        start_col.is_not(None), start_col <= span.end, end_col >= span.start,
    )
    if deal_id:
        query = query.where(TrainingSession.deal_id == deal_id)
    if product_id:
        query = query.where(TrainingSession.deal_product_id == product_id)
    if room_id:
        query = query.where(TrainingSession.sala_id == room_id)
    if trainer_id:
        query = query.where(TrainingSession.trainer_links.any(
            SessionTrainer.trainer_id == trainer_id,
        ))
    if unit_id:
        query = query.where(TrainingSession.unit_links.any(
            SessionMobileUnit.unidad_id == unit_id,
        ))
    result = await db.execute(query.order_by(start_col, TrainingSession.id))

    rows = []
    for session in result.scalars().all():
        item = serialize_session(session)
        if statuses and SessionStatus(item["estado"]) not in statuses:
            continue
        deal, product = session.deal, session.deal_product
        item.update({
            "deal_title": deal.title if deal else None,
            "organization_name": deal.organization_name if deal else None,
            "product_code": product.code if product else None,
            "product_name": product.name if product else None,
            "sala_name": session.room.name if session.room else None,
        })
        rows.append(item)
    return rows


# ─── Writes ──────────────────────────────────────────────────────

async def create_session(
    db: AsyncSession, body: SessionCreate, user_id: uuid.UUID | None,
) -> dict:
    deal = await get_deal_or_404(db, body.deal_id)
    product = await db.get(DealProduct, body.deal_product_id)
    if product is None or product.deal_id != deal.deal_id:
        raise ResourceNotFoundError(
            "Producto", body.deal_product_id,
            message="Producto del presupuesto no encontrado",
        )

    start, end = body.fecha_inicio_utc, body.fecha_fin_utc
    _check_date_order(start, end)
    downtime = parse_downtime(body.tiempo_parada)
    await ensure_resources_exist(db, body.trainer_ids, body.unidad_movil_ids, body.sala_id)
    await ensure_resources_available(
        db, normalize_date_range(start, end),
        RequestedResources.build(body.trainer_ids, body.unidad_movil_ids, body.sala_id),
    )

    automatic = compute_automatic_status(
        start, end, body.sala_id, body.trainer_ids, body.unidad_movil_ids,
        deal.sede_label, deal.pipeline_label,
    )
    status = (
        SessionStatus.BORRADOR if parse_truthy(body.force_estado_borrador)
        else automatic
    )
    session = TrainingSession(
        id=uuid.uuid4(),
        deal_id=deal.deal_id,
        deal_product_id=product.id,
        deal=deal,
        deal_product=product,
        nombre_cache=session_base_name(product.name, product.code),
        fecha_inicio_utc=start,
        fecha_fin_utc=end,
        tiempo_parada=downtime,
        sala_id=body.sala_id,
        direccion=body.direccion or deal.training_address or "",
        estado=status.value,
        trainer_links=[SessionTrainer(trainer_id=t) for t in body.trainer_ids],
        unit_links=[SessionMobileUnit(unidad_id=u) for u in body.unidad_movil_ids],
    )
    db.add(session)
    await db.flush()
    await reindex_session_names(db, product)

    serialized = serialize_session(session)
    record_audit(
        db, user_id, "session.created", "session", str(session.id),
        None, audit_snapshot(serialized),
    )
    await commit_or_conflict(db, "una sesión")
    logger.info(
        f"Session created ({status.value})",
        extra={"session_id": str(session.id), "deal_id": deal.deal_id},
    )
    return serialize_session(session)


async def update_session(
    db: AsyncSession,
    session_id: uuid.UUID,
    body: SessionUpdate,
    user_id: uuid.UUID | None,
) -> dict:
    session = await get_session_or_404(db, session_id)
    before = audit_snapshot(serialize_session(session))
    fields = body.model_fields_set

    start = body.fecha_inicio_utc if "fecha_inicio_utc" in fields else as_utc(session.fecha_inicio_utc)
    end = body.fecha_fin_utc if "fecha_fin_utc" in fields else as_utc(session.fecha_fin_utc)
    _check_date_order(start, end)

    trainer_ids = (
        body.trainer_ids if "trainer_ids" in fields and body.trainer_ids is not None
        else session.trainer_ids
    )
    unit_ids = (
        body.unidad_movil_ids if "unidad_movil_ids" in fields and body.unidad_movil_ids is not None
        else session.unit_ids
    )
    room_id = body.sala_id if "sala_id" in fields else session.sala_id
    downtime = (
        parse_downtime(body.tiempo_parada) if "tiempo_parada" in fields
        else session.tiempo_parada
    )

    deal = session.deal
    current = parse_status(session.estado) or SessionStatus.BORRADOR
    automatic = compute_automatic_status(
        start, end, room_id, trainer_ids, unit_ids,
        deal.sede_label if deal else None,
        deal.pipeline_label if deal else None,
    )
    requested = parse_status(body.estado) if "estado" in fields else None
    next_status = resolve_next_status(current, requested, automatic)

    await ensure_resources_exist(db, trainer_ids, unit_ids, room_id)
    await ensure_resources_available(
        db, normalize_date_range(start, end),
        RequestedResources.build(trainer_ids, unit_ids, room_id),
        exclude_session_id=str(session.id),
    )

    session.fecha_inicio_utc = start
    session.fecha_fin_utc = end
    session.sala_id = room_id
    session.tiempo_parada = downtime
    if "direccion" in fields:
        session.direccion = body.direccion
    if "nombre_cache" in fields:
        session.nombre_cache = body.nombre_cache or "Sesión"
    if "trainer_ids" in fields:
        _sync_trainer_links(session, trainer_ids)
    if "unidad_movil_ids" in fields:
        _sync_unit_links(session, unit_ids)
    session.estado = next_status.value
    await db.flush()

    serialized = serialize_session(session)
    after = audit_snapshot(serialized)
    if after != before:
        record_audit(
            db, user_id, "session.updated", "session", str(session.id),
            before, after,
        )
    await commit_or_conflict(db, "una sesión")
    logger.info(
        f"Session updated ({current.value} -> {next_status.value})",
        extra={"session_id": str(session.id)},
    )
    return serialized


async def delete_session(db: AsyncSession, session_id: uuid.UUID) -> None:
    session = await get_session_or_404(db, session_id)
    product = session.deal_product
    await db.delete(session)
    await db.flush()
    if product is not None:
        await reindex_session_names(db, product)
    await db.commit()
    logger.info("Session deleted", extra={"session_id": str(session_id)})


async def generate_sessions_for_deal(db: AsyncSession, deal_id: str) -> dict:
    """Sync session counts with the deal's applicable products."""
    deal = await get_deal_or_404(db, deal_id)
    applicable = [p for p in deal.products if is_applicable_product(p.code)]
    applicable_ids = {p.id for p in applicable}

    deleted = 0
    result = await db.execute(
        select(TrainingSession).where(TrainingSession.deal_id == deal_id),
    )
    for session in result.scalars().all():
        if session.deal_product_id not in applicable_ids:
            await db.delete(session)
            deleted += 1
    await db.flush()

    created = 0
    for product in applicable:
        target = required_session_count(product.name, product.code, product.quantity)
        existing_result = await db.execute(
            select(TrainingSession)
            .where(TrainingSession.deal_product_id == product.id)
            .order_by(TrainingSession.created_at, TrainingSession.id),
        )
        existing = list(existing_result.scalars().all())
        for extra in existing[target:]:
            await db.delete(extra)
            deleted += 1
        base_time = datetime.now(timezone.utc)
        for offset in range(target - len(existing)):
            db.add(TrainingSession(
                id=uuid.uuid4(),
                deal_id=deal.deal_id,
                deal_product_id=product.id,
                nombre_cache=session_base_name(product.name, product.code),
                direccion=deal.training_address or "",
                estado=SessionStatus.BORRADOR.value,
                created_at=base_time + timedelta(microseconds=offset),
            ))
            created += 1
        await db.flush()
        await reindex_session_names(db, product)

    count = await db.scalar(
        select(func.count()).select_from(TrainingSession)
        .where(TrainingSession.deal_id == deal_id),
    )
    await db.commit()
    logger.info(
        f"Generated sessions for deal: {created} created, {deleted} deleted",
        extra={"deal_id": deal_id},
    )
    return {"count": count or 0, "created": created, "deleted": deleted}
