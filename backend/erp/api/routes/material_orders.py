"""Material Order Routes — supplier orders raised from budgets.

Invariants:
    - Body is read as a raw JSON object; core validates field by field
    - sent_from is the authenticated user's email
"""

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from erp.api.dependencies import get_current_user
from erp.infrastructure.database import get_db
from erp.models.user import User
from erp.services.material_orders import (
    list_orders, create_order, get_next_order_number,
)

router = APIRouter(prefix="/api/v1/material-orders", tags=["material-orders"])


@router.get("")
async def get_orders(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    orders = await list_orders(db)
    return {
        "ok": True,
        "orders": orders,
        "next_order_number": await get_next_order_number(db),
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def post_order(
    payload: dict = Body(...),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    order = await create_order(db, payload, user.email)
    return {
        "ok": True,
        "order": order,
        "next_order_number": await get_next_order_number(db),
    }
