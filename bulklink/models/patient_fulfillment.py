"""Patient fulfillment model (append-only redemption audit record)."""
from datetime import datetime
from uuid import uuid4
from sqlalchemy import String, Integer, DateTime, Text, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from bulklink.database import Base


class PatientFulfillment(Base):
    """One successful redemption of a patient link."""

    __tablename__ = "patient_fulfillments"

    # Primary key
    uuid: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))

    # Patient
    patient_email: Mapped[str] = mapped_column(String(255), nullable=False)
    patient_name: Mapped[str] = mapped_column(String(255), nullable=False)
    patient_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    quantity_fulfilled: Mapped[int] = mapped_column(Integer, nullable=False)
    fulfillment_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    # Requester
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Foreign keys
    patient_link_id: Mapped[str] = mapped_column(String(36), ForeignKey("patient_links.uuid"), nullable=False)
    bulk_purchase_id: Mapped[str] = mapped_column(String(36), ForeignKey("bulk_purchases.uuid"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    patient_link: Mapped["PatientLink"] = relationship("PatientLink", back_populates="fulfillments", foreign_keys=[patient_link_id])
    bulk_purchase: Mapped["BulkPurchase"] = relationship("BulkPurchase", foreign_keys=[bulk_purchase_id])

    __table_args__ = (
        Index("idx_fulfillment_patient_link_id", "patient_link_id"),
        Index("idx_fulfillment_bulk_purchase_id", "bulk_purchase_id"),
        Index("idx_fulfillment_date", "fulfillment_date"),
    )

    def __repr__(self) -> str:
        return f"<PatientFulfillment(uuid={self.uuid}, link={self.patient_link_id}, quantity={self.quantity_fulfilled})>"
