"""Client (clinic) endpoints: bulk purchases, patient links, fulfillments."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bulklink.auth.dependencies import get_current_active_user
from bulklink.database import get_db
from bulklink.models.bulk_purchase import BulkPurchase
from bulklink.models.patient_fulfillment import PatientFulfillment
from bulklink.models.patient_link import PatientLink
from bulklink.models.user import User
from bulklink.schemas.bulk_purchases import BulkPurchaseWithCounts
from bulklink.schemas.common import Page, Pagination
from bulklink.schemas.fulfillments import FulfillmentListItem
from bulklink.schemas.patient_links import (
    PatientLinkCreate, PatientLinkDetail, PatientLinkList, PatientLinkResponse,
)
from bulklink.services.link_issuer import create_link, deactivate_link

router = APIRouter()


@router.get("/api/client/bulk-purchases", response_model=Page[BulkPurchaseWithCounts])
async def list_bulk_purchases(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: Optional[str] = Query(None, alias="status"),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """List the current client's bulk purchases (paginated, newest first)."""
    filters = [BulkPurchase.user_id == current_user.uuid]
    if status_filter and status_filter != "all":
        filters.append(BulkPurchase.status == status_filter)

    count_result = await db.execute(select(func.count(BulkPurchase.uuid)).where(*filters))
    total = count_result.scalar()

    link_count = (
        select(func.count(PatientLink.uuid))
        .where(PatientLink.bulk_purchase_id == BulkPurchase.uuid)
        .correlate(BulkPurchase)
        .scalar_subquery()
    )
    fulfillment_count = (
        select(func.count(PatientFulfillment.uuid))
        .where(PatientFulfillment.bulk_purchase_id == BulkPurchase.uuid)
        .correlate(BulkPurchase)
        .scalar_subquery()
    )

    result = await db.execute(
        select(BulkPurchase, link_count, fulfillment_count)
        .where(*filters)
        .order_by(desc(BulkPurchase.created_at))
        .offset((page - 1) * limit)
        .limit(limit)
    )

    data = []
    for bulk_purchase, links, fulfillments in result.all():
        item = BulkPurchaseWithCounts.model_validate(bulk_purchase)
        item.patient_link_count = links
        item.fulfillment_count = fulfillments
        data.append(item)

    return Page[BulkPurchaseWithCounts](
        data=data,
        pagination=Pagination(page=page, limit=limit, total=total, pages=(total + limit - 1) // limit),
    )


@router.get("/api/client/patient-links", response_model=PatientLinkList)
async def list_patient_links(
    bulk_purchase_id: Optional[str] = Query(None, alias="bulkPurchaseId"),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """List the current client's patient links, newest first."""
    stmt = (
        select(PatientLink)
        .options(
            selectinload(PatientLink.bulk_purchase),
            selectinload(PatientLink.product_scheme),
            selectinload(PatientLink.fulfillments),
        )
        .where(PatientLink.user_id == current_user.uuid)
        .order_by(desc(PatientLink.created_at))
        .execution_options(populate_existing=True)
    )
    if bulk_purchase_id:
        stmt = stmt.where(PatientLink.bulk_purchase_id == bulk_purchase_id)

    result = await db.execute(stmt)
    return PatientLinkList(
        data=[PatientLinkDetail.model_validate(link) for link in result.scalars().all()]
    )


@router.post("/api/client/patient-links", response_model=PatientLinkResponse, status_code=status.HTTP_201_CREATED)
async def create_patient_link(
    link_data: PatientLinkCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Issue a patient link against one of the client's bulk purchases.

    - 404 if the purchase is not the client's, not ACTIVE, or has no units left
    - No inventory is reserved until the link is redeemed
    """
    return await create_link(
        db,
        bulk_purchase_id=link_data.bulk_purchase_id,
        requesting_client_id=current_user.uuid,
        patient_email=link_data.patient_email,
        patient_name=link_data.patient_name,
        notes=link_data.notes,
        max_uses=link_data.max_uses,
    )


@router.post("/api/client/patient-links/{link_id}/deactivate", response_model=PatientLinkResponse)
async def deactivate_patient_link(
    link_id: str,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Deactivate one of the client's patient links."""
    return await deactivate_link(db, link_id, current_user.uuid)


@router.get("/api/client/fulfillments", response_model=Page[FulfillmentListItem])
async def list_fulfillments(
    page: int = Query(1, ge=1),
    limit: int = Query(25, ge=1, le=100),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """List fulfillments made under the client's bulk purchases (newest first)."""
    owned = (
        select(PatientFulfillment)
        .join(BulkPurchase, PatientFulfillment.bulk_purchase_id == BulkPurchase.uuid)
        .where(BulkPurchase.user_id == current_user.uuid)
    )

    count_result = await db.execute(select(func.count()).select_from(owned.subquery()))
    total = count_result.scalar()

    result = await db.execute(
        owned.options(
            selectinload(PatientFulfillment.patient_link),
            selectinload(PatientFulfillment.bulk_purchase),
        )
        .order_by(desc(PatientFulfillment.fulfillment_date))
        .offset((page - 1) * limit)
        .limit(limit)
        .execution_options(populate_existing=True)
    )

    return Page[FulfillmentListItem](
        data=[FulfillmentListItem.model_validate(f) for f in result.scalars().all()],
        pagination=Pagination(page=page, limit=limit, total=total, pages=(total + limit - 1) // limit),
    )
