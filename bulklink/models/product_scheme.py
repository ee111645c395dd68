"""Product scheme and category models."""
from datetime import datetime
from uuid import uuid4
from sqlalchemy import String, Integer, Float, Boolean, DateTime, Text, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from bulklink.database import Base


class ProductCategory(Base):
    """Grouping for product schemes."""

    __tablename__ = "product_categories"

    uuid: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    schemes: Mapped[list["ProductScheme"]] = relationship("ProductScheme", back_populates="category")

    def __repr__(self) -> str:
        return f"<ProductCategory(uuid={self.uuid}, name={self.name})>"


class ProductScheme(Base):
    """Catalog entry describing pricing and the per-link allocation for a SKU."""

    __tablename__ = "product_schemes"

    # Primary key
    uuid: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))

    # Product info
    sku: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    # Pricing
    unit_price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    bulk_price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    minimum_bulk_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=10)

    # Units granted by one redemption of a patient link
    max_units_per_link: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Storefront identifiers
    shopify_product_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    shopify_variant_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Foreign keys
    category_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("product_categories.uuid"), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    category: Mapped["ProductCategory | None"] = relationship("ProductCategory", back_populates="schemes")

    __table_args__ = (
        CheckConstraint("max_units_per_link >= 1", name="ck_scheme_units_per_link_positive"),
        Index("idx_scheme_shopify_product_id", "shopify_product_id"),
    )

    def __repr__(self) -> str:
        return f"<ProductScheme(uuid={self.uuid}, sku={self.sku}, max_units_per_link={self.max_units_per_link})>"
