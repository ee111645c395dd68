"""Inventory ledger operations on bulk purchases.

``quantity_remaining`` is the one shared counter that concurrent redemptions
contend for. Only ``decrement_remaining`` (called by the redemption engine)
and the admin ``correct_remaining`` path may change it.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import update

from bulklink.exceptions import LedgerInvariantError, ValidationError
from bulklink.models.bulk_purchase import BulkPurchase, BulkPurchaseStatus
from bulklink.services.unit_of_work import UnitOfWork, UpdateOutcome

logger = logging.getLogger(__name__)

# Statuses an administrator may move a purchase into
POLICY_STATUSES = {BulkPurchaseStatus.EXPIRED.value, BulkPurchaseStatus.CANCELLED.value}
TERMINAL_STATUSES = POLICY_STATUSES


def check_ledger_invariants(quantity_purchased: int, quantity_remaining: int) -> None:
    """Raise if ``0 <= remaining <= purchased`` does not hold."""
    if quantity_purchased < 0:
        raise LedgerInvariantError("Quantity purchased cannot be negative")
    if quantity_remaining < 0 or quantity_remaining > quantity_purchased:
        raise LedgerInvariantError(
            f"Quantity remaining must be between 0 and {quantity_purchased}, got {quantity_remaining}"
        )


async def decrement_remaining(
    uow: UnitOfWork,
    bulk_purchase_id: str,
    quantity: int,
    now: Optional[datetime] = None,
) -> UpdateOutcome:
    """
    Take ``quantity`` units from an active purchase.

    The WHERE clause only matches while the purchase is ACTIVE and still holds
    at least ``quantity`` units, so the balance cannot go negative even if two
    transactions both passed their pre-check. A purchase that reaches zero is
    moved to COMPLETED in the same transaction.
    """
    if quantity <= 0:
        raise LedgerInvariantError(f"Decrement quantity must be positive, got {quantity}")
    now = now or datetime.utcnow()

    outcome = await uow.conditional_update(
        update(BulkPurchase)
        .where(
            BulkPurchase.uuid == bulk_purchase_id,
            BulkPurchase.status == BulkPurchaseStatus.ACTIVE.value,
            BulkPurchase.quantity_remaining >= quantity,
        )
        .values(
            quantity_remaining=BulkPurchase.quantity_remaining - quantity,
            updated_at=now,
        )
    )
    if outcome is UpdateOutcome.NO_OP_DUE_TO_RACE:
        logger.warning(f"Bulk purchase {bulk_purchase_id} could not cover {quantity} unit(s)")
        return outcome

    await uow.conditional_update(
        update(BulkPurchase)
        .where(
            BulkPurchase.uuid == bulk_purchase_id,
            BulkPurchase.quantity_remaining == 0,
            BulkPurchase.status == BulkPurchaseStatus.ACTIVE.value,
        )
        .values(status=BulkPurchaseStatus.COMPLETED.value, updated_at=now)
    )
    return outcome


def correct_remaining(bulk_purchase: BulkPurchase, quantity_remaining: int) -> None:
    """
    Administrative correction of the remaining balance.

    Keeps the status consistent with the new balance: an exhausted ACTIVE
    purchase becomes COMPLETED, and a COMPLETED one that regains units is
    reopened. EXPIRED and CANCELLED purchases keep their status.
    """
    check_ledger_invariants(bulk_purchase.quantity_purchased, quantity_remaining)

    previous = bulk_purchase.quantity_remaining
    bulk_purchase.quantity_remaining = quantity_remaining
    bulk_purchase.updated_at = datetime.utcnow()

    if quantity_remaining == 0 and bulk_purchase.status == BulkPurchaseStatus.ACTIVE.value:
        bulk_purchase.status = BulkPurchaseStatus.COMPLETED.value
    elif quantity_remaining > 0 and bulk_purchase.status == BulkPurchaseStatus.COMPLETED.value:
        bulk_purchase.status = BulkPurchaseStatus.ACTIVE.value

    logger.info(
        f"Corrected bulk purchase {bulk_purchase.uuid} remaining {previous} -> {quantity_remaining}"
    )


def transition_status(bulk_purchase: BulkPurchase, new_status: str) -> None:
    """Move a purchase to EXPIRED or CANCELLED by policy."""
    if new_status == bulk_purchase.status:
        return
    if new_status not in POLICY_STATUSES:
        raise ValidationError(
            f"Status can only be set to {', '.join(sorted(POLICY_STATUSES))}"
        )
    if bulk_purchase.status in TERMINAL_STATUSES:
        raise ValidationError(
            f"Bulk purchase is already {bulk_purchase.status} and cannot change status"
        )

    logger.info(f"Bulk purchase {bulk_purchase.uuid} {bulk_purchase.status} -> {new_status}")
    bulk_purchase.status = new_status
    bulk_purchase.updated_at = datetime.utcnow()
