"""Schemas for storefront catalog data."""
from typing import List, Optional
from pydantic import BaseModel, Field


class CatalogVariant(BaseModel):
    """A storefront product variant (subset of Shopify's fields)."""
    id: str
    product_id: Optional[str] = None
    title: Optional[str] = None
    price: Optional[str] = None
    sku: Optional[str] = None
    inventory_item_id: Optional[str] = None
    inventory_quantity: Optional[int] = None

    class Config:
        coerce_numbers_to_str = True


class CatalogImage(BaseModel):
    id: Optional[str] = None
    src: str
    alt: Optional[str] = None

    class Config:
        coerce_numbers_to_str = True


class CatalogProduct(BaseModel):
    """A storefront product."""
    id: str
    title: str
    handle: Optional[str] = None
    vendor: Optional[str] = None
    product_type: Optional[str] = None
    status: Optional[str] = None
    tags: Optional[str] = None
    variants: List[CatalogVariant] = Field(default_factory=list)
    images: List[CatalogImage] = Field(default_factory=list)
    image: Optional[CatalogImage] = None

    class Config:
        coerce_numbers_to_str = True


class InventoryLevel(BaseModel):
    inventory_item_id: str
    location_id: Optional[str] = None
    available: Optional[int] = None

    class Config:
        coerce_numbers_to_str = True


class CatalogProductWithInventory(CatalogProduct):
    """Product with stock summed across its variants and locations."""
    total_inventory: int
    inventory_status: str  # "in-stock", "low-stock", "out-of-stock"
