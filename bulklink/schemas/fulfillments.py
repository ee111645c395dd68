"""Schemas for fulfillment listing."""
from datetime import datetime
from typing import Optional

from bulklink.schemas.common import CamelModel


class FulfillmentLinkSummary(CamelModel):
    custom_url: str
    discount_code: str
    patient_email: Optional[str] = None
    patient_name: Optional[str] = None


class FulfillmentPurchaseSummary(CamelModel):
    product_title: str
    shopify_order_number: Optional[str] = None
    product_sku: str


class FulfillmentListItem(CamelModel):
    uuid: str
    patient_email: str
    patient_name: str
    quantity_fulfilled: int
    fulfillment_date: datetime
    patient_link: FulfillmentLinkSummary
    bulk_purchase: FulfillmentPurchaseSummary
