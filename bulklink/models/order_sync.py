"""Order sync model for tracking storefront order ingestion."""
from datetime import datetime
from uuid import uuid4
from sqlalchemy import String, Boolean, DateTime, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column
from bulklink.database import Base


class OrderSync(Base):
    """Processing state of one storefront order."""

    __tablename__ = "order_syncs"

    uuid: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    shopify_order_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    order_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    order_data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    synced_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<OrderSync(order_id={self.shopify_order_id}, processed={self.processed})>"
