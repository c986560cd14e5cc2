"""Audit Trail — persists before/after snapshots inside the caller's transaction.

Invariants:
    - record_audit only adds the row; the caller commits
    - Snapshots are JSON-serialisable dicts (ISO dates, string ids)
"""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from erp.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def record_audit(
    db: AsyncSession,
    user_id: uuid.UUID | None,
    action: str,
    entity_type: str,
    entity_id: str,
    before: dict | None,
    after: dict | None,
) -> AuditLog:
    entry = AuditLog(
        user_id=user_id, action=action, entity_type=entity_type,
        entity_id=str(entity_id), before=before, after=after,
    )
    db.add(entry)
    logger.info(
        f"Audit {action} on {entity_type} {entity_id}",
        extra={"user_id": str(user_id) if user_id else None},
    )
    return entry
