"""Deal Routes — presupuestos with their product lines.

Invariants:
    - Reads require an authenticated user; creation requires the budgets route
    - Product lines keep their request order (created_at offsets)
    - Duplicate deal_id or product id → 409
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from erp.api.dependencies import get_current_user, require_route
from erp.core.session_state import is_applicable_product
from erp.infrastructure.database import get_db, commit_or_conflict
from erp.models.deal import Deal, DealProduct
from erp.models.user import User
from erp.schemas.deals import DealCreate
from erp.services.audit import record_audit
from erp.services.session_service import get_deal_or_404

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/deals", tags=["deals"])


def serialize_deal(deal: Deal) -> dict:
    return {
        "deal_id": deal.deal_id,
        "title": deal.title,
        "organization_name": deal.organization_name,
        "pipeline_label": deal.pipeline_label,
        "sede_label": deal.sede_label,
        "training_address": deal.training_address,
        "products": [
            {
                "id": p.id,
                "name": p.name,
                "code": p.code,
                "quantity": float(p.quantity or 0),
                "applicable": is_applicable_product(p.code),
            }
            for p in deal.products
        ],
    }


@router.get("/{deal_id}")
async def get_deal(
    deal_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return {"ok": True, "deal": serialize_deal(await get_deal_or_404(db, deal_id))}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_deal(
    body: DealCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_route("/presupuestos")),
):
    base_time = datetime.now(timezone.utc)
    deal = Deal(
        deal_id=body.deal_id,
        title=body.title,
        organization_name=body.organization_name,
        pipeline_label=body.pipeline_label,
        sede_label=body.sede_label,
        training_address=body.training_address,
        products=[
            DealProduct(
                id=line.id or str(uuid.uuid4()),
                name=line.name,
                code=line.code,
                quantity=line.quantity,
                created_at=base_time + timedelta(microseconds=index),
            )
            for index, line in enumerate(body.products)
        ],
    )
    db.add(deal)
    serialized = serialize_deal(deal)
    record_audit(db, user.id, "deal.created", "deal", deal.deal_id, None, serialized)
    await commit_or_conflict(db, "un presupuesto con ese identificador")
    logger.info(
        f"Deal created with {len(deal.products)} product(s)",
        extra={"deal_id": deal.deal_id},
    )
    return {"ok": True, "deal": serialized}
