"""Trainer Availability Routes — yearly calendar of a trainer.

Invariants:
    - Target trainer resolved by the service (own trainer unless the role manages trainers)
    - year defaults to the current Madrid year
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from erp.api.dependencies import get_current_user
from erp.core.availability import validate_year
from erp.core.normalize import clean_text
from erp.core.time_ranges import MADRID
from erp.infrastructure.database import get_db
from erp.models.user import User
from erp.schemas.trainer_availability import AvailabilityUpdateRequest
from erp.services.trainer_availability import (
    resolve_target_trainer, build_trainer_availability, apply_availability_updates,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/trainer-availability", tags=["trainer-availability"])


@router.get("")
async def get_availability(
    trainer_id: str | None = Query(None),
    year: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    target_year = validate_year(year, datetime.now(MADRID).year)
    target = await resolve_target_trainer(db, user, clean_text(trainer_id))
    availability = await build_trainer_availability(db, target, target_year)
    return {"ok": True, "trainer_id": target, **availability}


@router.put("")
async def update_availability(
    body: AvailabilityUpdateRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    target = await resolve_target_trainer(db, user, body.trainer_id)
    availability = await apply_availability_updates(db, target, body.updates)
    return {"ok": True, "trainer_id": target, "availability": availability}
