"""Database models for the bulk-link service."""
from bulklink.models.user import User
from bulklink.models.product_scheme import ProductCategory, ProductScheme
from bulklink.models.bulk_purchase import BulkPurchase, BulkPurchaseStatus
from bulklink.models.patient_link import PatientLink
from bulklink.models.patient_fulfillment import PatientFulfillment
from bulklink.models.order_sync import OrderSync

__all__ = [
    "User",
    "ProductCategory",
    "ProductScheme",
    "BulkPurchase",
    "BulkPurchaseStatus",
    "PatientLink",
    "PatientFulfillment",
    "OrderSync",
]
