"""Session Routes — CRUD, calendar range, availability and conflict lookups.

Invariants:
    - Static paths (/by-deal, /range, /availability, /conflicts, /generate-from-deal)
      are declared before /{session_id}
    - Writes require the budgets route; reads require an authenticated user
    - Range queries span at most sessions_range_max_days
    - Page size capped at sessions_page_max_limit
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from erp.api.dependencies import get_current_user, require_route
from erp.config import get_settings
from erp.core.availability import RequestedResources
from erp.core.errors import RequestValidationFailed
from erp.core.normalize import clean_text, normalize_text_list
from erp.core.session_state import parse_status
from erp.core.time_ranges import DateRange, parse_datetime_param
from erp.infrastructure.database import get_db
from erp.models.user import User
from erp.schemas.sessions import SessionCreate, SessionUpdate, GenerateFromDealRequest
from erp.services import session_service
from erp.services.resource_availability import (
    check_conflicts, get_locks, get_schedule_available_trainers,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/sessions", tags=["sessions"])

_planner = require_route("/presupuestos")


# ─── Query parsing ───────────────────────────────────────────────

def _required_deal_id(value: str | None) -> str:
    deal_id = clean_text(value)
    if not deal_id:
        raise RequestValidationFailed("deal_id es obligatorio", "deal_id")
    return deal_id


def _positive_int(value: str | None, default: int) -> int:
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _parse_bound(value: str | None, name: str):
    parsed = parse_datetime_param(value)
    if parsed is None:
        raise RequestValidationFailed(f"El parámetro {name} es inválido", name)
    return parsed


def _parse_window(start: str | None, end: str | None, required_end: bool) -> DateRange:
    if not clean_text(start) or (required_end and not clean_text(end)):
        raise RequestValidationFailed(
            "Los parámetros start y end son obligatorios"
            if required_end else "El parámetro start es obligatorio",
            "start",
        )
    start_at = _parse_bound(start, "start")
    end_at = _parse_bound(end, "end") if clean_text(end) else start_at
    if end_at < start_at:
        raise RequestValidationFailed(
            "La fecha de fin no puede ser anterior al inicio", "end",
        )
    return DateRange(start_at, end_at)


# ─── Reads ───────────────────────────────────────────────────────

@router.get("")
async def list_sessions(
    deal_id: str | None = Query(None),
    product_id: str | None = Query(None),
    page: str | None = Query(None),
    limit: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    settings = get_settings()
    page_number = _positive_int(page, 1)
    page_size = min(
        _positive_int(limit, settings.sessions_page_default_limit),
        settings.sessions_page_max_limit,
    )
    groups = await session_service.list_deal_sessions(
        db, _required_deal_id(deal_id), clean_text(product_id),
        page_number, page_size,
    )
    return {"ok": True, "groups": groups}


@router.get("/by-deal")
async def list_sessions_by_deal(
    deal_id: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    sessions = await session_service.list_sessions_by_deal(db, _required_deal_id(deal_id))
    return {"ok": True, "sessions": sessions}


@router.get("/range")
async def list_sessions_in_range(
    start: str | None = Query(None),
    end: str | None = Query(None),
    deal_id: str | None = Query(None),
    product_id: str | None = Query(None),
    room_id: str | None = Query(None),
    trainer_id: str | None = Query(None),
    unit_id: str | None = Query(None),
    estado: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    span = _parse_window(start, end, required_end=True)
    max_days = get_settings().sessions_range_max_days
    if (span.end - span.start).total_seconds() > max_days * 86400:
        raise RequestValidationFailed(
            f"El rango máximo permitido es de {max_days} días", "end",
        )
    statuses = []
    for raw in normalize_text_list(estado):
        parsed = parse_status(raw)
        if parsed is None:
            raise RequestValidationFailed("Estado inválido", "estado")
        statuses.append(parsed)

    sessions = await session_service.list_sessions_in_range(
        db, span,
        deal_id=clean_text(deal_id),
        product_id=clean_text(product_id),
        room_id=clean_text(room_id),
        trainer_id=clean_text(trainer_id),
        unit_id=clean_text(unit_id),
        statuses=statuses or None,
    )
    return {"ok": True, "sessions": sessions}


@router.get("/availability")
async def resource_availability(
    start: str | None = Query(None),
    end: str | None = Query(None),
    exclude_session_id: str | None = Query(None),
    exclude_variant_id: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    span = _parse_window(start, end, required_end=False)
    locks = await get_locks(
        db, span,
        exclude_session_id=clean_text(exclude_session_id),
        exclude_variant_id=clean_text(exclude_variant_id),
    )
    available_trainers = await get_schedule_available_trainers(db, span)
    return {
        "ok": True,
        "availability": {
            "trainers": sorted(locks.trainers),
            "rooms": sorted(locks.rooms),
            "units": sorted(locks.units),
            "availableTrainers": available_trainers,
        },
    }


@router.get("/conflicts")
async def resource_conflicts(
    start: str | None = Query(None),
    end: str | None = Query(None),
    trainer_ids: str | None = Query(None),
    room_ids: str | None = Query(None),
    unit_ids: str | None = Query(None),
    exclude_session_id: str | None = Query(None),
    exclude_variant_id: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    span = _parse_window(start, end, required_end=False)
    rooms = normalize_text_list(room_ids)
    trainers = normalize_text_list(trainer_ids)
    units = normalize_text_list(unit_ids)
    excludes = {
        "exclude_session_id": clean_text(exclude_session_id),
        "exclude_variant_id": clean_text(exclude_variant_id),
    }

    conflicts = await check_conflicts(
        db, span,
        RequestedResources.build(trainers, units, rooms[0] if rooms else None),
        **excludes,
    )
    for room_id in rooms[1:]:
        conflicts += await check_conflicts(
            db, span, RequestedResources.build(room_id=room_id), **excludes,
        )
    return {"ok": True, "conflicts": conflicts}


# ─── Writes ──────────────────────────────────────────────────────

@router.post("/generate-from-deal")
async def generate_from_deal(
    body: GenerateFromDealRequest,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_planner),
):
    summary = await session_service.generate_sessions_for_deal(db, body.deal_id)
    return {"ok": True, **summary}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_session(
    body: SessionCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_planner),
):
    session = await session_service.create_session(db, body, user.id)
    return {"ok": True, "session": session}


@router.get("/{session_id}")
async def get_session(
    session_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    session = await session_service.get_session_or_404(db, session_id)
    return {"ok": True, "session": session_service.serialize_session(session)}


@router.patch("/{session_id}")
async def update_session(
    session_id: uuid.UUID,
    body: SessionUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_planner),
):
    session = await session_service.update_session(db, session_id, body, user.id)
    return {"ok": True, "session": session}


@router.delete("/{session_id}")
async def delete_session(
    session_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_planner),
):
    await session_service.delete_session(db, session_id)
    return {"ok": True}
