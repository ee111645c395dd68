"""Issuance and deactivation of patient links.

Issuing a link does not reserve inventory. Several links can be issued
against the same remaining balance; redemption is first come, first served,
and a link whose purchase runs dry reports ``no_bulk_inventory``.
"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bulklink.config import settings
from bulklink.exceptions import NotEligible, NotFound, ValidationError
from bulklink.models.bulk_purchase import BulkPurchase, BulkPurchaseStatus
from bulklink.models.patient_link import PatientLink

logger = logging.getLogger(__name__)

# 32 random bytes -> 256-bit token
LINK_TOKEN_BYTES = 32
DISCOUNT_CODE_BYTES = 8


def generate_link_token() -> str:
    return secrets.token_hex(LINK_TOKEN_BYTES)


def generate_discount_code(prefix: Optional[str] = None) -> str:
    """Human-readable discount code drawn independently of the link token."""
    prefix = prefix or settings.DISCOUNT_CODE_PREFIX
    return f"{prefix}-{secrets.token_hex(DISCOUNT_CODE_BYTES).upper()}"


async def create_link(
    db: AsyncSession,
    bulk_purchase_id: str,
    requesting_client_id: str,
    patient_email: Optional[str] = None,
    patient_name: Optional[str] = None,
    notes: Optional[str] = None,
    max_uses: int = 1,
    now: Optional[datetime] = None,
) -> PatientLink:
    """
    Issue a patient link against one of the client's bulk purchases.

    Raises NotEligible when the purchase is missing, owned by someone else,
    not ACTIVE, or has no units left. All four cases look the same to the
    caller.
    """
    if max_uses < 1:
        raise ValidationError("maxUses must be at least 1")

    result = await db.execute(
        select(BulkPurchase).where(
            BulkPurchase.uuid == bulk_purchase_id,
            BulkPurchase.user_id == requesting_client_id,
            BulkPurchase.status == BulkPurchaseStatus.ACTIVE.value,
            BulkPurchase.quantity_remaining > 0,
        )
    )
    bulk_purchase = result.scalar_one_or_none()

    if not bulk_purchase:
        logger.info(f"Client {requesting_client_id} cannot issue a link on bulk purchase {bulk_purchase_id}")
        raise NotEligible()

    now = now or datetime.utcnow()
    link_token = generate_link_token()

    patient_link = PatientLink(
        user_id=requesting_client_id,
        bulk_purchase_id=bulk_purchase.uuid,
        product_scheme_id=bulk_purchase.product_scheme_id,
        link_token=link_token,
        custom_url=f"patient/{link_token}",
        discount_code=generate_discount_code(),
        max_uses=max_uses,
        current_uses=0,
        is_active=True,
        patient_email=patient_email,
        patient_name=patient_name,
        notes=notes,
        expires_at=now + timedelta(days=settings.LINK_VALIDITY_DAYS),
        created_at=now,
        updated_at=now,
    )

    db.add(patient_link)
    await db.commit()
    await db.refresh(patient_link)

    logger.info(f"Issued patient link {patient_link.uuid} on bulk purchase {bulk_purchase.uuid}")
    return patient_link


async def deactivate_link(
    db: AsyncSession,
    link_id: str,
    requesting_client_id: str,
) -> PatientLink:
    """Switch off a link so it can no longer be redeemed. Owner only."""
    result = await db.execute(
        select(PatientLink).where(
            PatientLink.uuid == link_id,
            PatientLink.user_id == requesting_client_id,
        )
    )
    patient_link = result.scalar_one_or_none()

    if not patient_link:
        raise NotFound("Patient link not found")

    if patient_link.is_active:
        patient_link.is_active = False
        patient_link.updated_at = datetime.utcnow()
        await db.commit()
        await db.refresh(patient_link)
        logger.info(f"Deactivated patient link {patient_link.uuid}")

    return patient_link
