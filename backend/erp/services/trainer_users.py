"""Trainer User Links — binds formadores to their ERP login.

Invariants:
    - A user is linked to at most one trainer (409 UNIQUE_CONSTRAINT otherwise)
    - An explicit user_id must name an existing user (400 otherwise)
    - Without an explicit link, a trainer with an email is matched to the
      formador user holding that email, when that user is still unlinked
    - Matching never creates users nor changes their role

Design Decisions:
    - The link lives on trainers.user_id; trainer availability resolves the
      current user's trainer through it
"""

import logging
import uuid

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from erp.core.domain_types import Role
from erp.core.errors import RequestValidationFailed, UniqueConstraintError
from erp.core.normalize import normalize_email
from erp.models.trainer import Trainer
from erp.models.user import User

logger = logging.getLogger(__name__)


async def _linked_trainer_id(
    db: AsyncSession, user_id: uuid.UUID, exclude_trainer_id: str | None,
) -> str | None:
    query = select(Trainer.trainer_id).where(Trainer.user_id == user_id)
    if exclude_trainer_id:
        query = query.where(Trainer.trainer_id != exclude_trainer_id)
    result = await db.execute(query)
    return result.scalars().first()


async def link_user(
    db: AsyncSession, trainer: Trainer, user_id: uuid.UUID | None,
) -> None:
    """Set (or clear, with None) the trainer's user link."""
    if user_id is None:
        trainer.user_id = None
        return
    if await db.get(User, user_id) is None:
        raise RequestValidationFailed("Usuario no encontrado", "user_id")
    if await _linked_trainer_id(db, user_id, trainer.trainer_id):
        raise UniqueConstraintError("un formador vinculado a ese usuario")
    trainer.user_id = user_id


async def match_user_by_email(db: AsyncSession, trainer: Trainer) -> bool:
    """Link an unlinked trainer to the formador user sharing its email."""
    email = normalize_email(trainer.email)
    if trainer.user_id is not None or not email:
        return False
    result = await db.execute(
        select(User).where(
            func.lower(User.email) == email,
            User.role == Role.FORMADOR.value,
        ),
    )
    user = result.scalar_one_or_none()
    if user is None:
        return False
    linked = await _linked_trainer_id(db, user.id, trainer.trainer_id)
    if linked:
        logger.warning(
            f"Email already linked to trainer {linked}",
            extra={"trainer_id": trainer.trainer_id, "user_id": str(user.id)},
        )
        return False
    trainer.user_id = user.id
    logger.info(
        "Trainer linked to user by email",
        extra={"trainer_id": trainer.trainer_id, "user_id": str(user.id)},
    )
    return True
