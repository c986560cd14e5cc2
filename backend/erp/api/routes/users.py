"""User Routes — admin-only management of ERP accounts.

Invariants:
    - Every endpoint requires the users:manage action (admin)
    - Listing order: lower(last_name), lower(first_name), lower(email), nulls first
    - Duplicate email → 409 UNIQUE_CONSTRAINT
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from erp.api.dependencies import require_action
from erp.core.errors import NoChangesError, ResourceNotFoundError
from erp.core.permissions import ACTION_USERS_MANAGE
from erp.infrastructure.database import get_db, commit_or_conflict
from erp.models.user import User
from erp.schemas.users import UserCreate, UserUpdate

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/users", tags=["users"])

_admin = require_action(ACTION_USERS_MANAGE)


def _display_name(first: str | None, last: str | None) -> str | None:
    parts = [p for p in (first, last) if p]
    return " ".join(parts) or None


def serialize_user(user: User) -> dict:
    return {
        "id": str(user.id),
        "first_name": user.first_name,
        "last_name": user.last_name,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "active": user.active,
    }


async def _get_user_or_404(db: AsyncSession, user_id: UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise ResourceNotFoundError(
            "Usuario", str(user_id), message="Usuario no encontrado",
        )
    return user


@router.get("")
async def list_users(
    db: AsyncSession = Depends(get_db), _user: User = Depends(_admin),
):
    result = await db.execute(
        select(User).order_by(
            func.lower(User.last_name).asc().nulls_first(),
            func.lower(User.first_name).asc().nulls_first(),
            func.lower(User.email).asc(),
        ),
    )
    return {"ok": True, "users": [serialize_user(u) for u in result.scalars().all()]}


@router.get("/{user_id}")
async def get_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db), _user: User = Depends(_admin),
):
    return {"ok": True, "user": serialize_user(await _get_user_or_404(db, user_id))}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db), current: User = Depends(_admin),
):
    user = User(
        first_name=body.first_name,
        last_name=body.last_name,
        name=_display_name(body.first_name, body.last_name),
        email=body.email,
        role=body.role,
        active=True,
    )
    db.add(user)
    await commit_or_conflict(db, "un usuario con ese email")
    logger.info("User created", extra={"user_id": str(current.id)})
    return {"ok": True, "user": serialize_user(user)}


@router.patch("/{user_id}")
async def update_user(
    user_id: UUID,
    body: UserUpdate,
    db: AsyncSession = Depends(get_db), current: User = Depends(_admin),
):
    user = await _get_user_or_404(db, user_id)
    changes = {
        field: getattr(body, field)
        for field in body.model_fields_set
        if getattr(user, field) != getattr(body, field)
    }
    if not changes:
        raise NoChangesError()
    for field, value in changes.items():
        setattr(user, field, value)
    if "first_name" in changes or "last_name" in changes:
        user.name = _display_name(user.first_name, user.last_name)
    await commit_or_conflict(db, "un usuario con ese email")
    logger.info(
        f"User updated: {sorted(changes)}", extra={"user_id": str(current.id)},
    )
    return {"ok": True, "user": serialize_user(user)}
