"""Auth Context — resolves the current user from the session cookie token.

Invariants:
    - Only the SHA-256 digest of the token is looked up (raw tokens never stored)
    - Revoked, expired, inactive-user and unknown-role sessions resolve to None
    - A successful lookup touches last_used_at (caller commits)

Design Decisions:
    - Read side only: issuing and revoking sessions belongs to the login flow,
      which this service does not expose
"""

import hashlib
import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from erp.core.permissions import is_valid_role
from erp.core.time_ranges import as_utc
from erp.models.auth_session import AuthSession
from erp.models.user import User

logger = logging.getLogger(__name__)


def hash_session_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


async def resolve_user_from_token(
    db: AsyncSession, token: str | None, now: datetime | None = None,
) -> User | None:
    if not token or not token.strip():
        return None
    now = now or datetime.now(timezone.utc)
    result = await db.execute(
        select(AuthSession).where(
            AuthSession.token_hash == hash_session_token(token.strip()),
            AuthSession.revoked_at.is_(None),
        ),
    )
    auth_session = result.scalar_one_or_none()
    if auth_session is None:
        return None
    if as_utc(auth_session.expires_at) <= now:
        logger.info("Expired session cookie", extra={"user_id": str(auth_session.user_id)})
        return None
    user = auth_session.user
    if user is None or not user.active or not is_valid_role(user.role):
        return None
    auth_session.last_used_at = now
    return user
