"""Mobile Unit Routes — catalogue of unidades móviles.

Invariants:
    - Reads require an authenticated user; writes require the mobile units route
    - tipo and sede are non-empty lists; matricula is unique
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from erp.api.dependencies import get_current_user, require_route
from erp.core.errors import NoChangesError, ResourceNotFoundError
from erp.infrastructure.database import get_db, commit_or_conflict
from erp.models.mobile_unit import MobileUnit
from erp.models.user import User
from erp.schemas.resources import MobileUnitCreate, MobileUnitUpdate

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/mobile-units", tags=["mobile-units"])

_manager = require_route("/recursos/unidades_moviles")


def serialize_unit(unit: MobileUnit) -> dict:
    return {
        "unidad_id": unit.unidad_id,
        "name": unit.name,
        "matricula": unit.matricula,
        "tipo": list(unit.tipo or []),
        "sede": list(unit.sede or []),
    }


async def _get_or_404(db: AsyncSession, unidad_id: str) -> MobileUnit:
    unit = await db.get(MobileUnit, unidad_id)
    if unit is None:
        raise ResourceNotFoundError(
            "Unidad móvil", unidad_id, message="Unidad móvil no encontrada",
        )
    return unit


@router.get("")
async def list_units(
    search: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    query = select(MobileUnit).order_by(func.lower(MobileUnit.name))
    if search and search.strip():
        term = search.strip().lower()
        query = query.where(or_(
            func.lower(MobileUnit.name).contains(term),
            func.lower(MobileUnit.matricula).contains(term),
        ))
    result = await db.execute(query)
    return {"ok": True, "units": [serialize_unit(u) for u in result.scalars().all()]}


@router.get("/{unidad_id}")
async def get_unit(
    unidad_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return {"ok": True, "unit": serialize_unit(await _get_or_404(db, unidad_id))}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_unit(
    body: MobileUnitCreate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_manager),
):
    unit = MobileUnit(
        unidad_id=body.unidad_id or str(uuid.uuid4()),
        name=body.name, matricula=body.matricula,
        tipo=body.tipo, sede=body.sede,
    )
    db.add(unit)
    await commit_or_conflict(db, "una unidad móvil con esa matrícula")
    logger.info(f"Mobile unit created: {unit.unidad_id}")
    return {"ok": True, "unit": serialize_unit(unit)}


@router.patch("/{unidad_id}")
async def update_unit(
    unidad_id: str,
    body: MobileUnitUpdate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_manager),
):
    unit = await _get_or_404(db, unidad_id)
    changes = {
        field: getattr(body, field)
        for field in body.model_fields_set
        if getattr(unit, field) != getattr(body, field)
    }
    if not changes:
        raise NoChangesError()
    for field, value in changes.items():
        setattr(unit, field, value)
    await commit_or_conflict(db, "una unidad móvil con esa matrícula")
    return {"ok": True, "unit": serialize_unit(unit)}
