"""Room Routes — catalogue of salas.

Invariants:
    - Reads require an authenticated user; writes require the rooms route
    - sede must be one of the room sedes; name is unique
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from erp.api.dependencies import get_current_user, require_route
from erp.core.errors import NoChangesError, ResourceNotFoundError
from erp.infrastructure.database import get_db, commit_or_conflict
from erp.models.room import Room
from erp.models.user import User
from erp.schemas.resources import RoomCreate, RoomUpdate

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/rooms", tags=["rooms"])

_manager = require_route("/recursos/salas")


def serialize_room(room: Room) -> dict:
    return {"sala_id": room.sala_id, "name": room.name, "sede": room.sede}


async def _get_or_404(db: AsyncSession, sala_id: str) -> Room:
    room = await db.get(Room, sala_id)
    if room is None:
        raise ResourceNotFoundError("Sala", sala_id, message="Sala no encontrada")
    return room


@router.get("")
async def list_rooms(
    search: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    query = select(Room).order_by(func.lower(Room.name))
    if search and search.strip():
        query = query.where(func.lower(Room.name).contains(search.strip().lower()))
    result = await db.execute(query)
    return {"ok": True, "rooms": [serialize_room(r) for r in result.scalars().all()]}


@router.get("/{sala_id}")
async def get_room(
    sala_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return {"ok": True, "room": serialize_room(await _get_or_404(db, sala_id))}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_room(
    body: RoomCreate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_manager),
):
    room = Room(sala_id=body.sala_id or str(uuid.uuid4()), name=body.name, sede=body.sede)
    db.add(room)
    await commit_or_conflict(db, "una sala con ese nombre")
    logger.info(f"Room created: {room.sala_id}")
    return {"ok": True, "room": serialize_room(room)}


@router.patch("/{sala_id}")
async def update_room(
    sala_id: str,
    body: RoomUpdate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_manager),
):
    room = await _get_or_404(db, sala_id)
    changes = {
        field: getattr(body, field)
        for field in body.model_fields_set
        if getattr(room, field) != getattr(body, field)
    }
    if not changes:
        raise NoChangesError()
    for field, value in changes.items():
        setattr(room, field, value)
    await commit_or_conflict(db, "una sala con ese nombre")
    return {"ok": True, "room": serialize_room(room)}
