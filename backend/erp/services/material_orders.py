"""Material Order Service — stores supplier orders and allocates order numbers.

Invariants:
    - order_number is explicit when given, else max(order_number) + 1
    - The stored order keeps the email payloads it would send; nothing is sent here
    - A duplicate order number is a 409 (unique constraint)
    - Listings are newest first by created_at; order_number breaks ties
"""

import logging

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from erp.core.material_orders import build_order_draft, next_order_number
from erp.core.time_ranges import to_iso
from erp.infrastructure.database import commit_or_conflict
from erp.models.material_order import MaterialOrder

logger = logging.getLogger(__name__)


def serialize_order(order: MaterialOrder) -> dict:
    return {
        "id": order.id,
        "orderNumber": order.order_number,
        "createdAt": to_iso(order.created_at),
        "supplierName": order.supplier_name,
        "supplierEmail": order.supplier_email,
        "recipientEmail": order.recipient_email,
        "ccEmails": order.cc_emails or [],
        "products": order.products,
        "sourceBudgetIds": order.source_budget_ids or [],
        "notes": order.notes,
        "sentFrom": order.sent_from,
    }


async def get_next_order_number(db: AsyncSession) -> int:
    current_max = await db.scalar(select(func.max(MaterialOrder.order_number)))
    return next_order_number(current_max)


async def list_orders(db: AsyncSession) -> list[dict]:
    result = await db.execute(
        select(MaterialOrder).order_by(
            MaterialOrder.created_at.desc(), MaterialOrder.order_number.desc(),
        ),
    )
    return [serialize_order(o) for o in result.scalars().all()]


async def create_order(
    db: AsyncSession, payload: dict, sent_from: str | None,
) -> dict:
    draft = build_order_draft(payload)
    order_number = draft.order_number or await get_next_order_number(db)
    order = MaterialOrder(
        order_number=order_number,
        supplier_name=draft.supplier_name,
        supplier_email=draft.supplier_email,
        recipient_email=draft.recipient_email,
        cc_emails=draft.cc_emails,
        products=draft.products_payload(),
        source_budget_ids=draft.source_budget_ids,
        notes=draft.notes,
        sent_from=sent_from,
    )
    db.add(order)
    await commit_or_conflict(db, "un pedido con ese número")
    logger.info(
        "Material order stored",
        extra={"order_number": order_number},
    )
    return serialize_order(order)
