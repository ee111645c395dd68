"""Public patient link endpoints: link status and redemption."""
import ipaddress
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bulklink.config import settings
from bulklink.database import get_db
from bulklink.exceptions import Gone
from bulklink.models.product_scheme import ProductScheme
from bulklink.rate_limit import limiter
from bulklink.schemas.patient_links import (
    BulkPurchaseSummary, FulfillmentResponse, LinkReasonsResponse, LinkStatusResponse,
    PublicLinkView, RedeemRequest, RedeemResponse, SchemeSummary,
)
from bulklink.services.redemption import get_link_status, redeem_link

logger = logging.getLogger(__name__)

router = APIRouter()


def _valid_ip(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    value = value.strip()
    try:
        return str(ipaddress.ip_address(value))
    except ValueError:
        return None


def client_ip(request: Request) -> Optional[str]:
    """Best-effort requester IP, preferring proxy headers.

    Header values are client-controlled; anything that is not an IP address
    is ignored in favour of the next source.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip = _valid_ip(forwarded.split(",")[0])
        if ip:
            return ip
    ip = _valid_ip(request.headers.get("x-real-ip"))
    if ip:
        return ip
    return _valid_ip(request.client.host) if request.client else None


@router.get("/api/patient/link/{link_token}", response_model=LinkStatusResponse)
async def get_patient_link(
    link_token: str,
    db: AsyncSession = Depends(get_db)
):
    """
    Show a patient link and whether it can still be redeemed.

    - 404 if the token is unknown
    - 410 with the reason flags if the link is no longer usable
    """
    patient_link, bulk_purchase, reasons = await get_link_status(db, link_token)

    if not reasons.usable:
        raise Gone(reasons, "This link is no longer available")

    scheme = await db.get(ProductScheme, patient_link.product_scheme_id)

    return LinkStatusResponse(
        link=PublicLinkView(
            uuid=patient_link.uuid,
            discount_code=patient_link.discount_code,
            max_uses=patient_link.max_uses,
            current_uses=patient_link.current_uses,
            is_active=patient_link.is_active,
            expires_at=patient_link.expires_at,
            patient_email=patient_link.patient_email,
            patient_name=patient_link.patient_name,
            bulk_purchase=BulkPurchaseSummary.model_validate(bulk_purchase),
            product_scheme=SchemeSummary.model_validate(scheme),
        ),
        reasons=LinkReasonsResponse(
            inactive=reasons.inactive,
            expired=reasons.expired,
            fully_used=reasons.fully_used,
            no_bulk_inventory=reasons.no_bulk_inventory,
        ),
    )


@router.post("/api/patient/link/{link_token}/redeem", response_model=RedeemResponse)
@limiter.limit(settings.REDEEM_RATE_LIMIT)
async def redeem_patient_link(
    link_token: str,
    request: Request,
    redeem_data: Optional[RedeemRequest] = None,
    db: AsyncSession = Depends(get_db)
):
    """
    Redeem a patient link.

    - Validates patient email and name (400 if missing)
    - Claims one use, decrements bulk inventory and records the fulfillment
      in a single transaction (410 if the link is no longer usable)
    - Returns the storefront checkout URL with the link's discount code
    """
    redeem_data = redeem_data or RedeemRequest()

    result = await redeem_link(
        db,
        link_token,
        patient_email=redeem_data.patient_email,
        patient_name=redeem_data.patient_name,
        phone=redeem_data.phone,
        ip_address=client_ip(request) or "unknown",
        user_agent=request.headers.get("user-agent", "unknown"),
    )

    return RedeemResponse(
        fulfillment=FulfillmentResponse.model_validate(result.fulfillment),
        checkout_url=result.checkout_url,
        discount_code=result.discount_code,
    )
