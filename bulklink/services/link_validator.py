"""Pure usability check for patient links.

Used read-only by the link status endpoint and again by the redemption engine
on the rows it has just locked, so the decision is never made on a stale read.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from bulklink.models.bulk_purchase import BulkPurchase, BulkPurchaseStatus
from bulklink.models.patient_link import PatientLink


@dataclass(frozen=True)
class LinkReasons:
    """Independent reasons a link cannot be used right now."""

    inactive: bool = False
    expired: bool = False
    fully_used: bool = False
    no_bulk_inventory: bool = False

    @property
    def usable(self) -> bool:
        return not (self.inactive or self.expired or self.fully_used or self.no_bulk_inventory)

    def to_dict(self) -> dict:
        return {
            "inactive": self.inactive,
            "expired": self.expired,
            "fullyUsed": self.fully_used,
            "noBulkInventory": self.no_bulk_inventory,
        }


def is_expired(link: PatientLink, now: datetime) -> bool:
    # Links without an expiry are treated as already expired
    return link.expires_at is None or now >= link.expires_at


def evaluate_link(
    link: PatientLink,
    bulk_purchase: BulkPurchase,
    now: Optional[datetime] = None,
) -> LinkReasons:
    """Evaluate whether ``link`` can be redeemed at ``now``.

    Has no side effects and can be called any number of times.
    """
    now = now or datetime.utcnow()
    return LinkReasons(
        inactive=not link.is_active,
        expired=is_expired(link, now),
        fully_used=link.current_uses >= link.max_uses,
        no_bulk_inventory=(
            bulk_purchase.status != BulkPurchaseStatus.ACTIVE.value
            or bulk_purchase.quantity_remaining <= 0
        ),
    )
