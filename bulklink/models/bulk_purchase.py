"""Bulk purchase model: the inventory ledger row for one storefront order."""
import enum
from datetime import datetime
from uuid import uuid4
from sqlalchemy import String, Integer, Float, DateTime, Text, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from bulklink.database import Base


class BulkPurchaseStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class BulkPurchase(Base):
    """A paid batch of units owned by one client.

    The customer, billing and shipping columns are snapshots taken when the
    order was ingested. They are not kept in sync with the client's profile.
    """

    __tablename__ = "bulk_purchases"

    # Primary key
    uuid: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))

    # Source order
    shopify_order_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    shopify_order_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    order_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Product
    product_sku: Mapped[str] = mapped_column(String(255), nullable=False)
    product_title: Mapped[str] = mapped_column(String(255), nullable=False)
    product_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    variant_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    variant_title: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Ledger
    quantity_purchased: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_remaining: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=BulkPurchaseStatus.ACTIVE.value)

    # Money
    unit_cost: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_cost: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # Snapshot at creation time
    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    billing_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    billing_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    shipping_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    shipping_address: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Foreign keys
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.uuid"), nullable=False)
    product_scheme_id: Mapped[str] = mapped_column(String(36), ForeignKey("product_schemes.uuid"), nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    user: Mapped["User"] = relationship("User", foreign_keys=[user_id])
    product_scheme: Mapped["ProductScheme"] = relationship("ProductScheme", foreign_keys=[product_scheme_id])
    patient_links: Mapped[list["PatientLink"]] = relationship("PatientLink", back_populates="bulk_purchase")

    __table_args__ = (
        CheckConstraint("quantity_purchased >= 0", name="ck_bulk_purchased_non_negative"),
        CheckConstraint("quantity_remaining >= 0", name="ck_bulk_remaining_non_negative"),
        CheckConstraint("quantity_remaining <= quantity_purchased", name="ck_bulk_remaining_within_purchased"),
        Index("idx_bulk_purchase_user_id", "user_id"),
        Index("idx_bulk_purchase_status", "status"),
        Index("idx_bulk_purchase_product_sku", "product_sku"),
    )

    def __repr__(self) -> str:
        return (
            f"<BulkPurchase(uuid={self.uuid}, sku={self.product_sku}, "
            f"remaining={self.quantity_remaining}/{self.quantity_purchased}, status={self.status})>"
        )
