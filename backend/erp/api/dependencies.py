"""API Dependencies — current user from the session cookie and permission guards.

Invariants:
    - Every non-health endpoint depends on get_current_user (401 without a valid cookie)
    - Guards raise ForbiddenError (403); they never return False

Design Decisions:
    - Guards are dependency factories so routes declare permissions in their signature
"""

import logging

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from erp.config import get_settings
from erp.core.errors import AuthenticationRequiredError, ForbiddenError
from erp.core.permissions import can_access_route, can_perform_action
from erp.infrastructure.database import get_db
from erp.models.user import User
from erp.services.auth_context import resolve_user_from_token

logger = logging.getLogger(__name__)


async def get_current_user(
    request: Request, db: AsyncSession = Depends(get_db),
) -> User:
    token = request.cookies.get(get_settings().session_cookie_name)
    user = await resolve_user_from_token(db, token)
    if user is None:
        raise AuthenticationRequiredError()
    await db.commit()
    return user


def require_action(action: str):
    async def guard(user: User = Depends(get_current_user)) -> User:
        if not can_perform_action(user.role, action):
            logger.warning(
                f"Action {action} denied for role {user.role}",
                extra={"user_id": str(user.id)},
            )
            raise ForbiddenError()
        return user
    return guard


def require_route(path: str):
    async def guard(user: User = Depends(get_current_user)) -> User:
        if not can_access_route(user.role, path):
            logger.warning(
                f"Route {path} denied for role {user.role}",
                extra={"user_id": str(user.id)},
            )
            raise ForbiddenError()
        return user
    return guard
