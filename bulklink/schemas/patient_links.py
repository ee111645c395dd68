"""Schemas for patient link endpoints."""
from datetime import datetime
from typing import List, Optional
from pydantic import Field

from bulklink.schemas.common import CamelModel


class PatientLinkCreate(CamelModel):
    """Schema for issuing a patient link."""
    bulk_purchase_id: str = Field(..., min_length=1)
    patient_email: Optional[str] = Field(None, max_length=255)
    patient_name: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=2000)
    max_uses: int = Field(1, ge=1, le=100)


class RedeemRequest(CamelModel):
    """Patient details submitted on redemption.

    Fields are optional here so that missing values reach the redemption
    engine and are reported as 400 rather than FastAPI's 422.
    """
    patient_email: Optional[str] = None
    patient_name: Optional[str] = None
    phone: Optional[str] = None


class LinkReasonsResponse(CamelModel):
    inactive: bool
    expired: bool
    fully_used: bool
    no_bulk_inventory: bool


class SchemeSummary(CamelModel):
    title: str
    sku: str
    image: Optional[str] = None
    max_units_per_link: int
    unit_price: Optional[float] = None


class BulkPurchaseSummary(CamelModel):
    uuid: str
    product_title: str
    shopify_order_number: Optional[str] = None
    customer_name: Optional[str] = None
    quantity_remaining: int
    status: str


class LinkFulfillmentSummary(CamelModel):
    uuid: str
    patient_email: Optional[str] = None
    patient_name: Optional[str] = None
    quantity_fulfilled: int
    fulfillment_date: datetime


class PatientLinkResponse(CamelModel):
    """Schema for a patient link as seen by its issuing client."""
    uuid: str
    link_token: str
    custom_url: str
    discount_code: str
    bulk_purchase_id: str
    product_scheme_id: str
    max_uses: int
    current_uses: int
    is_active: bool
    expires_at: datetime
    patient_email: Optional[str] = None
    patient_name: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class PatientLinkDetail(PatientLinkResponse):
    bulk_purchase: Optional[BulkPurchaseSummary] = None
    product_scheme: Optional[SchemeSummary] = None
    fulfillments: List[LinkFulfillmentSummary] = Field(default_factory=list)


class PatientLinkList(CamelModel):
    data: List[PatientLinkDetail]


class PublicLinkView(CamelModel):
    """What a patient sees when opening a link. No client-private fields."""
    uuid: str
    discount_code: str
    max_uses: int
    current_uses: int
    is_active: bool
    expires_at: datetime
    patient_email: Optional[str] = None
    patient_name: Optional[str] = None
    bulk_purchase: BulkPurchaseSummary
    product_scheme: SchemeSummary


class LinkStatusResponse(CamelModel):
    link: PublicLinkView
    reasons: LinkReasonsResponse


class FulfillmentResponse(CamelModel):
    uuid: str
    patient_link_id: str
    bulk_purchase_id: str
    patient_email: str
    patient_name: str
    patient_phone: Optional[str] = None
    quantity_fulfilled: int
    fulfillment_date: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class RedeemResponse(CamelModel):
    success: bool = True
    fulfillment: FulfillmentResponse
    checkout_url: Optional[str] = None
    discount_code: str
    message: str = "Fulfillment processed successfully"
