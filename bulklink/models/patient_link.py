"""Patient link model."""
from datetime import datetime
from uuid import uuid4
from sqlalchemy import String, Integer, Boolean, DateTime, Text, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from bulklink.database import Base


class PatientLink(Base):
    """Limited-use capability token bound to one bulk purchase."""

    __tablename__ = "patient_links"

    # Primary key
    uuid: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))

    # Capability
    link_token: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    custom_url: Mapped[str] = mapped_column(String(255), nullable=False)
    discount_code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    # Usage
    max_uses: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    current_uses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Patient identity, bound at issuance or on redemption
    patient_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    patient_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    patient_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Foreign keys
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.uuid"), nullable=False)
    bulk_purchase_id: Mapped[str] = mapped_column(String(36), ForeignKey("bulk_purchases.uuid"), nullable=False)
    product_scheme_id: Mapped[str] = mapped_column(String(36), ForeignKey("product_schemes.uuid"), nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    user: Mapped["User"] = relationship("User", foreign_keys=[user_id])
    bulk_purchase: Mapped["BulkPurchase"] = relationship("BulkPurchase", back_populates="patient_links", foreign_keys=[bulk_purchase_id])
    product_scheme: Mapped["ProductScheme"] = relationship("ProductScheme", foreign_keys=[product_scheme_id])
    fulfillments: Mapped[list["PatientFulfillment"]] = relationship("PatientFulfillment", back_populates="patient_link")

    __table_args__ = (
        CheckConstraint("max_uses >= 1", name="ck_link_max_uses_positive"),
        CheckConstraint("current_uses >= 0", name="ck_link_current_uses_non_negative"),
        CheckConstraint("current_uses <= max_uses", name="ck_link_current_uses_within_max"),
        Index("idx_patient_link_user_id", "user_id"),
        Index("idx_patient_link_bulk_purchase_id", "bulk_purchase_id"),
    )

    def __repr__(self) -> str:
        return f"<PatientLink(uuid={self.uuid}, uses={self.current_uses}/{self.max_uses}, is_active={self.is_active})>"
