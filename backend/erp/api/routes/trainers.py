"""Trainer Routes — catalogue of formadores.

Invariants:
    - Reads require an authenticated user; writes require the trainer management route
    - Client-supplied trainer_id honoured, otherwise a UUID is generated
    - PATCH with nothing to change → 400
    - user_id links the trainer to a login; without it, an email matching an
      unlinked formador user links automatically
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from erp.api.dependencies import get_current_user, require_route
from erp.core.errors import NoChangesError, ResourceNotFoundError
from erp.core.permissions import TRAINER_MANAGEMENT_ROUTE
from erp.infrastructure.database import get_db, commit_or_conflict
from erp.models.trainer import Trainer
from erp.models.user import User
from erp.schemas.resources import TrainerCreate, TrainerUpdate
from erp.services.trainer_users import link_user, match_user_by_email

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/trainers", tags=["trainers"])

_manager = require_route(TRAINER_MANAGEMENT_ROUTE)


def serialize_trainer(trainer: Trainer) -> dict:
    return {
        "trainer_id": trainer.trainer_id,
        "name": trainer.name,
        "apellido": trainer.apellido,
        "email": trainer.email,
        "phone": trainer.phone,
        "dni": trainer.dni,
        "direccion": trainer.direccion,
        "especialidad": trainer.especialidad,
        "titulacion": trainer.titulacion,
        "activo": trainer.activo,
        "user_id": str(trainer.user_id) if trainer.user_id else None,
    }


async def _get_or_404(db: AsyncSession, trainer_id: str) -> Trainer:
    trainer = await db.get(Trainer, trainer_id)
    if trainer is None:
        raise ResourceNotFoundError(
            "Formador", trainer_id, message="Formador no encontrado",
        )
    return trainer


@router.get("")
async def list_trainers(
    search: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    query = select(Trainer).order_by(func.lower(Trainer.name), Trainer.trainer_id)
    if search and search.strip():
        query = query.where(
            func.lower(Trainer.name).contains(search.strip().lower()),
        )
    result = await db.execute(query)
    return {"ok": True, "trainers": [serialize_trainer(t) for t in result.scalars().all()]}


@router.get("/{trainer_id}")
async def get_trainer(
    trainer_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return {"ok": True, "trainer": serialize_trainer(await _get_or_404(db, trainer_id))}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_trainer(
    body: TrainerCreate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_manager),
):
    trainer = Trainer(
        trainer_id=body.trainer_id or str(uuid.uuid4()),
        **body.model_dump(exclude={"trainer_id", "user_id"}),
    )
    if body.user_id is not None:
        await link_user(db, trainer, body.user_id)
    else:
        await match_user_by_email(db, trainer)
    db.add(trainer)
    await commit_or_conflict(db, "un formador con ese identificador")
    logger.info("Trainer created", extra={"trainer_id": trainer.trainer_id})
    return {"ok": True, "trainer": serialize_trainer(trainer)}


@router.patch("/{trainer_id}")
async def update_trainer(
    trainer_id: str,
    body: TrainerUpdate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_manager),
):
    trainer = await _get_or_404(db, trainer_id)
    changes = {
        field: getattr(body, field)
        for field in body.model_fields_set
        if getattr(trainer, field) != getattr(body, field)
    }
    if not changes:
        raise NoChangesError()
    user_id = changes.pop("user_id", trainer.user_id)
    for field, value in changes.items():
        setattr(trainer, field, value)
    if "user_id" in body.model_fields_set:
        await link_user(db, trainer, user_id)
    elif "email" in changes:
        await match_user_by_email(db, trainer)
    await commit_or_conflict(db, "un formador con esos datos")
    logger.info(f"Trainer updated: {sorted(changes)}", extra={"trainer_id": trainer_id})
    return {"ok": True, "trainer": serialize_trainer(trainer)}
