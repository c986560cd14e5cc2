"""Product Routes — catalogue products and their open-enrolment variants.

Invariants:
    - Reads require an authenticated user
    - Product writes require the products route; variant writes the open-training route
    - Static paths (/variants...) are declared before /{product_id}
    - Variant calendar ranges span at most sessions_range_max_days
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from erp.api.dependencies import get_current_user, require_route
from erp.config import get_settings
from erp.core.errors import NoChangesError, RequestValidationFailed
from erp.core.normalize import clean_text
from erp.core.permissions import OPEN_TRAINING_ROUTE, PRODUCT_MANAGEMENT_ROUTE
from erp.core.time_ranges import DateRange, parse_datetime_param
from erp.infrastructure.database import get_db, commit_or_conflict
from erp.models.product import Product
from erp.models.user import User
from erp.schemas.products import (
    ProductCreate, ProductUpdate, VariantCreate, VariantUpdate,
)
from erp.services import variant_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/products", tags=["products"])

_catalogue_manager = require_route(PRODUCT_MANAGEMENT_ROUTE)
_variant_manager = require_route(OPEN_TRAINING_ROUTE)


def _calendar_window(start: str | None, end: str | None) -> DateRange:
    start_at = parse_datetime_param(start)
    end_at = parse_datetime_param(end) if clean_text(end) else start_at
    if start_at is None or end_at is None or end_at < start_at:
        raise RequestValidationFailed("Rango de fechas inválido", "start")
    max_days = get_settings().sessions_range_max_days
    if (end_at - start_at).total_seconds() > max_days * 86400:
        raise RequestValidationFailed("Rango de fechas inválido", "end")
    return DateRange(start_at, end_at)


# ─── Variants ────────────────────────────────────────────────────

@router.get("/variants")
async def list_variants(
    start: str | None = Query(None),
    end: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    span = _calendar_window(start, end)
    variants = await variant_service.list_variants_in_range(db, span)
    return {"ok": True, "variants": variants}


@router.patch("/variants/{variant_id}")
async def update_variant(
    variant_id: str,
    body: VariantUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_variant_manager),
):
    variant = await variant_service.update_variant(db, variant_id, body, user.id)
    return {"ok": True, "variant": variant}


@router.delete("/variants/{variant_id}")
async def delete_variant(
    variant_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_variant_manager),
):
    await variant_service.delete_variant(db, variant_id, user.id)
    return {"ok": True}


# ─── Products ────────────────────────────────────────────────────

@router.get("")
async def list_products(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    result = await db.execute(
        select(Product).order_by(func.lower(Product.name), Product.id),
    )
    return {
        "ok": True,
        "products": [
            variant_service.serialize_product(p) for p in result.scalars().all()
        ],
    }


@router.get("/{product_id}")
async def get_product(
    product_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    product = await variant_service.get_product_or_404(db, product_id)
    return {"ok": True, "product": variant_service.serialize_product(product)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_product(
    body: ProductCreate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_catalogue_manager),
):
    product = Product(
        id=body.id or str(uuid.uuid4()),
        **body.model_dump(exclude={"id"}),
        variants=[],
    )
    db.add(product)
    await commit_or_conflict(db, "un producto con ese identificador")
    logger.info(f"Product created: {product.id}")
    return {"ok": True, "product": variant_service.serialize_product(product)}


@router.patch("/{product_id}")
async def update_product(
    product_id: str,
    body: ProductUpdate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_catalogue_manager),
):
    product = await variant_service.get_product_or_404(db, product_id)
    if "name" in body.model_fields_set and body.name is None:
        raise RequestValidationFailed("El nombre es obligatorio", "name")
    changes = {
        field: getattr(body, field)
        for field in body.model_fields_set
        if getattr(product, field) != getattr(body, field)
    }
    if not changes:
        raise NoChangesError()
    for field, value in changes.items():
        setattr(product, field, value)
    await commit_or_conflict(db, "un producto con esos datos")
    logger.info(f"Product {product_id} updated: {sorted(changes)}")
    return {"ok": True, "product": variant_service.serialize_product(product)}


@router.post("/{product_id}/variants", status_code=status.HTTP_201_CREATED)
async def create_variant(
    product_id: str,
    body: VariantCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_variant_manager),
):
    variant = await variant_service.create_variant(db, product_id, body, user.id)
    return {"ok": True, "variant": variant}
