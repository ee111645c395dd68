"""Storefront catalog browsing with live stock levels."""
from typing import List

from fastapi import APIRouter, Depends

from bulklink.schemas.catalog import CatalogProductWithInventory
from bulklink.services.catalog import CatalogClient, get_catalog_client

router = APIRouter()


@router.get("/api/catalog/products", response_model=List[CatalogProductWithInventory])
async def search_catalog_products(
    query: str = "",
    catalog: CatalogClient = Depends(get_catalog_client)
):
    """Search storefront products and report summed stock per product (public)."""
    return await catalog.search_products(query)
