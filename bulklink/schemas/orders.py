"""Schemas for storefront order ingestion."""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class StorefrontCustomer(BaseModel):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class StorefrontAddress(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    country: Optional[str] = None
    zip: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def one_line(self) -> str:
        street = " ".join(p for p in (self.address1, self.address2) if p)
        region = " ".join(p for p in (self.province, self.zip) if p)
        return ", ".join(p for p in (street, self.city, region, self.country) if p)


class StorefrontLineItem(BaseModel):
    id: str
    product_id: Optional[str] = None
    variant_id: Optional[str] = None
    title: str
    variant_title: Optional[str] = None
    sku: Optional[str] = None
    quantity: int = Field(..., ge=0)
    price: str = "0"

    class Config:
        coerce_numbers_to_str = True

    @property
    def unit_price(self) -> float:
        return float(self.price or 0)


class StorefrontOrder(BaseModel):
    """A storefront order as delivered by the Shopify orders API."""
    id: str
    order_number: Optional[str] = None
    created_at: Optional[datetime] = None
    customer: Optional[StorefrontCustomer] = None
    billing_address: Optional[StorefrontAddress] = None
    shipping_address: Optional[StorefrontAddress] = None
    line_items: List[StorefrontLineItem] = Field(default_factory=list)
    total_price: Optional[str] = None

    class Config:
        coerce_numbers_to_str = True


class OrderSyncRequest(BaseModel):
    """Raw storefront orders. Each is validated as a ``StorefrontOrder`` during
    ingestion so one malformed order does not reject the batch."""
    orders: List[Dict[str, Any]]


class OrderSyncResponse(BaseModel):
    message: str
    processed: int
    skipped: int
    errors: int
    total: int
