"""Admin endpoints: bulk purchase oversight and storefront order sync."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bulklink.auth.dependencies import admin_required
from bulklink.database import get_db
from bulklink.exceptions import NotFound
from bulklink.models.bulk_purchase import BulkPurchase
from bulklink.models.user import User
from bulklink.schemas.bulk_purchases import BulkPurchaseResponse, BulkPurchaseUpdate
from bulklink.schemas.common import Page, Pagination
from bulklink.schemas.orders import OrderSyncRequest, OrderSyncResponse
from bulklink.services.catalog import CatalogClient, get_optional_catalog_client
from bulklink.services.inventory import correct_remaining, transition_status
from bulklink.services.order_ingestion import ingest_orders

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/bulk-purchases", response_model=Page[BulkPurchaseResponse])
async def list_all_bulk_purchases(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str = "",
    status_filter: Optional[str] = Query(None, alias="status"),
    product_sku: Optional[str] = Query(None, alias="productSku"),
    admin_user: User = Depends(admin_required),
    db: AsyncSession = Depends(get_db)
):
    """
    List every bulk purchase (paginated, newest first).

    ``search`` matches customer name/email, product title and order number,
    case-insensitively.
    """
    filters = []
    if search:
        pattern = f"%{search}%"
        filters.append(or_(
            BulkPurchase.customer_name.ilike(pattern),
            BulkPurchase.customer_email.ilike(pattern),
            BulkPurchase.product_title.ilike(pattern),
            BulkPurchase.shopify_order_number.ilike(pattern),
        ))
    if status_filter and status_filter != "all":
        filters.append(BulkPurchase.status == status_filter)
    if product_sku:
        filters.append(BulkPurchase.product_sku == product_sku)

    count_result = await db.execute(select(func.count(BulkPurchase.uuid)).where(*filters))
    total = count_result.scalar()

    result = await db.execute(
        select(BulkPurchase)
        .where(*filters)
        .order_by(desc(BulkPurchase.created_at))
        .offset((page - 1) * limit)
        .limit(limit)
    )

    return Page[BulkPurchaseResponse](
        data=[BulkPurchaseResponse.model_validate(bp) for bp in result.scalars().all()],
        pagination=Pagination(page=page, limit=limit, total=total, pages=(total + limit - 1) // limit),
    )


@router.patch("/bulk-purchases/{bulk_purchase_id}", response_model=BulkPurchaseResponse)
async def update_bulk_purchase(
    bulk_purchase_id: str,
    update_data: BulkPurchaseUpdate,
    admin_user: User = Depends(admin_required),
    db: AsyncSession = Depends(get_db)
):
    """
    Administrative correction of a bulk purchase.

    - ``quantityRemaining`` must stay within 0..quantityPurchased (400 otherwise)
    - ``status`` may be set to EXPIRED or CANCELLED
    """
    result = await db.execute(
        select(BulkPurchase)
        .where(BulkPurchase.uuid == bulk_purchase_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    bulk_purchase = result.scalar_one_or_none()

    if not bulk_purchase:
        raise NotFound("Bulk purchase not found")

    try:
        if update_data.quantity_remaining is not None:
            correct_remaining(bulk_purchase, update_data.quantity_remaining)
        if update_data.status is not None:
            transition_status(bulk_purchase, update_data.status)
    except Exception:
        await db.rollback()
        raise

    await db.commit()
    await db.refresh(bulk_purchase)

    logger.info(f"Admin {admin_user.email} updated bulk purchase {bulk_purchase.uuid}")
    return bulk_purchase


@router.post("/orders/sync", response_model=OrderSyncResponse)
async def sync_orders(
    sync_data: OrderSyncRequest,
    admin_user: User = Depends(admin_required),
    catalog: Optional[CatalogClient] = Depends(get_optional_catalog_client),
    db: AsyncSession = Depends(get_db)
):
    """
    Ingest storefront orders into bulk purchases.

    Idempotent per order id; failed orders are recorded and retried on the
    next sync without aborting the batch.
    """
    summary = await ingest_orders(db, sync_data.orders, catalog=catalog)

    return OrderSyncResponse(
        message="Orders sync completed",
        processed=summary.processed,
        skipped=summary.skipped,
        errors=summary.errors,
        total=summary.total,
    )
