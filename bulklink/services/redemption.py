"""Redemption engine: the one place a patient link turns into inventory.

A redemption is a single transaction that

1. claims one use of the link (guarded UPDATE on ``current_uses``),
2. takes the scheme's units from the parent bulk purchase (guarded UPDATE on
   ``quantity_remaining``),
3. writes the ``PatientFulfillment`` audit row.

Rows are read ``FOR UPDATE`` (link first, then purchase) and re-validated
before anything is written. If either guarded UPDATE matches no rows another
request won the race; the whole transaction is rolled back and the caller
gets ``Gone``. We never retry: the winning request may already have committed.
"""
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bulklink.exceptions import (
    BulkLinkError, ConflictRace, Gone, NotFound, Unexpected, ValidationError,
)
from bulklink.logging_config import mask_token
from bulklink.models.bulk_purchase import BulkPurchase
from bulklink.models.patient_fulfillment import PatientFulfillment
from bulklink.models.patient_link import PatientLink
from bulklink.models.product_scheme import ProductScheme
from bulklink.services.checkout import build_checkout_url
from bulklink.services.inventory import decrement_remaining
from bulklink.services.link_validator import LinkReasons, evaluate_link
from bulklink.services.unit_of_work import UnitOfWork, UpdateOutcome

logger = logging.getLogger(__name__)

# Column widths of the patient fields written on redemption
MAX_EMAIL_LENGTH = PatientFulfillment.__table__.c.patient_email.type.length
MAX_NAME_LENGTH = PatientFulfillment.__table__.c.patient_name.type.length
MAX_PHONE_LENGTH = PatientFulfillment.__table__.c.patient_phone.type.length
MAX_IP_LENGTH = PatientFulfillment.__table__.c.ip_address.type.length


@dataclass
class RedemptionResult:
    fulfillment: PatientFulfillment
    patient_link: PatientLink
    bulk_purchase: BulkPurchase
    discount_code: str
    checkout_url: Optional[str]


async def _load_link(db: AsyncSession, link_token: str, lock: bool = True) -> Optional[PatientLink]:
    stmt = select(PatientLink).where(PatientLink.link_token == link_token)
    if lock:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt.execution_options(populate_existing=True))
    return result.scalar_one_or_none()


async def _load_purchase(db: AsyncSession, bulk_purchase_id: str, lock: bool = True) -> BulkPurchase:
    stmt = select(BulkPurchase).where(BulkPurchase.uuid == bulk_purchase_id)
    if lock:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt.execution_options(populate_existing=True))
    return result.scalar_one()


async def get_link_status(
    db: AsyncSession,
    link_token: str,
    now: Optional[datetime] = None,
) -> tuple[PatientLink, BulkPurchase, LinkReasons]:
    """Read-only lookup used by the link status endpoint."""
    patient_link = await _load_link(db, link_token, lock=False)
    if not patient_link:
        raise NotFound("Invalid or expired link")
    bulk_purchase = await _load_purchase(db, patient_link.bulk_purchase_id, lock=False)
    return patient_link, bulk_purchase, evaluate_link(patient_link, bulk_purchase, now)


async def _reasons_after_race(db: AsyncSession, link_token: str, now: datetime) -> LinkReasons:
    """Re-read the rows the winning request changed and explain the loss."""
    try:
        patient_link = await _load_link(db, link_token, lock=False)
        bulk_purchase = await _load_purchase(db, patient_link.bulk_purchase_id, lock=False)
        reasons = evaluate_link(patient_link, bulk_purchase, now)
    finally:
        await db.rollback()
    if reasons.usable:
        # The only guard the validator does not model: fewer units left than one redemption needs
        reasons = replace(reasons, no_bulk_inventory=True)
    return reasons


async def redeem_link(
    db: AsyncSession,
    link_token: str,
    patient_email: Optional[str],
    patient_name: Optional[str],
    phone: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    now: Optional[datetime] = None,
    store_url: Optional[str] = None,
) -> RedemptionResult:
    """
    Redeem a patient link exactly once.

    Raises:
        ValidationError: token, email or name missing, or a field too long
        NotFound: token does not resolve
        Gone: link not usable, including losing a concurrent race
        Unexpected: datastore failure (nothing is persisted)
    """
    patient_email = (patient_email or "").strip()
    patient_name = (patient_name or "").strip()
    phone = (phone or "").strip() or None
    if not link_token or not patient_email or not patient_name:
        raise ValidationError()
    if len(patient_email) > MAX_EMAIL_LENGTH:
        raise ValidationError(f"Email must be at most {MAX_EMAIL_LENGTH} characters")
    if len(patient_name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Name must be at most {MAX_NAME_LENGTH} characters")
    if phone and len(phone) > MAX_PHONE_LENGTH:
        raise ValidationError(f"Phone must be at most {MAX_PHONE_LENGTH} characters")
    if ip_address and len(ip_address) > MAX_IP_LENGTH:
        ip_address = None

    now = now or datetime.utcnow()
    uow = UnitOfWork(db)

    try:
        async with uow:
            patient_link = await _load_link(db, link_token)
            if not patient_link:
                raise NotFound("Invalid or expired link")

            bulk_purchase = await _load_purchase(db, patient_link.bulk_purchase_id)

            reasons = evaluate_link(patient_link, bulk_purchase, now)
            if not reasons.usable:
                raise Gone(reasons)

            scheme_result = await db.execute(
                select(ProductScheme).where(ProductScheme.uuid == patient_link.product_scheme_id)
            )
            scheme = scheme_result.scalar_one()
            quantity = scheme.max_units_per_link

            claimed = await uow.conditional_update(
                update(PatientLink)
                .where(
                    PatientLink.uuid == patient_link.uuid,
                    PatientLink.is_active.is_(True),
                    PatientLink.expires_at > now,
                    PatientLink.current_uses < PatientLink.max_uses,
                )
                .values(
                    current_uses=PatientLink.current_uses + 1,
                    patient_email=patient_email,
                    patient_name=patient_name,
                    patient_phone=phone or patient_link.patient_phone,
                    updated_at=now,
                )
            )
            if claimed is UpdateOutcome.NO_OP_DUE_TO_RACE:
                raise ConflictRace("Link use was claimed concurrently")

            decremented = await decrement_remaining(uow, bulk_purchase.uuid, quantity, now)
            if decremented is UpdateOutcome.NO_OP_DUE_TO_RACE:
                raise ConflictRace("Bulk inventory was exhausted concurrently")

            fulfillment = PatientFulfillment(
                patient_link_id=patient_link.uuid,
                bulk_purchase_id=bulk_purchase.uuid,
                patient_email=patient_email,
                patient_name=patient_name,
                patient_phone=phone,
                quantity_fulfilled=quantity,
                ip_address=ip_address,
                user_agent=user_agent,
                fulfillment_date=now,
                created_at=now,
            )
            db.add(fulfillment)
            await db.flush()

            # Pick up the guarded UPDATEs before the transaction closes
            await db.refresh(patient_link)
            await db.refresh(bulk_purchase)
    except ConflictRace as e:
        logger.warning(f"Redemption race lost for link {mask_token(link_token)}: {e.message}")
        try:
            reasons = await _reasons_after_race(db, link_token, now)
        except Exception as err:
            logger.exception(f"Could not re-read link {mask_token(link_token)} after a lost race")
            raise Unexpected() from err
        raise Gone(reasons) from e
    except BulkLinkError:
        raise
    except Exception as e:
        logger.exception(f"Redemption failed for link {mask_token(link_token)}")
        await db.rollback()
        raise Unexpected() from e

    logger.info(
        f"Redeemed link {patient_link.uuid}: {quantity} unit(s) from bulk purchase "
        f"{bulk_purchase.uuid}, {bulk_purchase.quantity_remaining} remaining"
    )

    return RedemptionResult(
        fulfillment=fulfillment,
        patient_link=patient_link,
        bulk_purchase=bulk_purchase,
        discount_code=patient_link.discount_code,
        checkout_url=build_checkout_url(
            product_id=scheme.shopify_product_id,
            variant_id=scheme.shopify_variant_id,
            discount_code=patient_link.discount_code,
            quantity=quantity,
            store_url=store_url,
        ),
    )
