"""Schemas for bulk purchase endpoints."""
from datetime import datetime
from typing import Optional
from pydantic import Field

from bulklink.schemas.common import CamelModel


class BulkPurchaseResponse(CamelModel):
    """Schema for bulk purchase detail response."""
    uuid: str
    user_id: str
    product_scheme_id: str
    shopify_order_id: str
    shopify_order_number: Optional[str] = None
    order_date: Optional[datetime] = None
    product_sku: str
    product_title: str
    product_id: Optional[str] = None
    variant_id: Optional[str] = None
    variant_title: Optional[str] = None
    quantity_purchased: int
    quantity_remaining: int
    status: str
    unit_cost: float
    total_cost: float
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    billing_name: Optional[str] = None
    billing_address: Optional[str] = None
    shipping_name: Optional[str] = None
    shipping_address: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class BulkPurchaseWithCounts(BulkPurchaseResponse):
    patient_link_count: int = 0
    fulfillment_count: int = 0


class BulkPurchaseUpdate(CamelModel):
    """Admin correction of a bulk purchase."""
    quantity_remaining: Optional[int] = Field(None, ge=0)
    status: Optional[str] = Field(None, pattern="^(EXPIRED|CANCELLED)$")
