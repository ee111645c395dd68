"""Storefront catalog client.

``CatalogClient`` is the interface order ingestion and the catalog endpoint
depend on. ``ShopifyCatalogClient`` talks to the Shopify Admin REST API over
``httpx``. Instances are passed in (see ``get_catalog_client``) rather than
shared as a module-level singleton, so tests can substitute their own.
"""
import logging
from collections import defaultdict
from typing import List, Optional

import httpx

from bulklink.config import settings
from bulklink.exceptions import BulkLinkError
from bulklink.schemas.catalog import (
    CatalogProduct, CatalogProductWithInventory, InventoryLevel,
)

logger = logging.getLogger(__name__)


class CatalogError(BulkLinkError):
    """The storefront API failed or is not configured."""

    status_code = 502
    default_message = "Storefront catalog unavailable"


def inventory_status(total_inventory: int, low_threshold: Optional[int] = None) -> str:
    low_threshold = settings.STOCK_LOW_THRESHOLD if low_threshold is None else low_threshold
    if total_inventory > low_threshold:
        return "in-stock"
    if total_inventory > 0:
        return "low-stock"
    return "out-of-stock"


class CatalogClient:
    """Read-only access to the storefront catalog."""

    async def fetch_products(self, query: str = "", limit: int = 50) -> List[CatalogProduct]:
        raise NotImplementedError

    async def fetch_catalog_entry(self, product_id: str) -> Optional[CatalogProduct]:
        raise NotImplementedError

    async def fetch_stock_levels(self, inventory_item_ids: List[str]) -> List[InventoryLevel]:
        raise NotImplementedError

    async def search_products(self, query: str = "") -> List[CatalogProductWithInventory]:
        """Products matching ``query`` with stock summed over variants and locations."""
        products = await self.fetch_products(query)

        inventory_item_ids = [
            variant.inventory_item_id
            for product in products
            for variant in product.variants
            if variant.inventory_item_id
        ]
        levels = await self.fetch_stock_levels(inventory_item_ids)

        available_by_item = defaultdict(int)
        for level in levels:
            available_by_item[level.inventory_item_id] += level.available or 0

        results = []
        for product in products:
            total = sum(
                available_by_item.get(variant.inventory_item_id, 0)
                for variant in product.variants
                if variant.inventory_item_id
            )
            results.append(
                CatalogProductWithInventory(
                    **product.model_dump(),
                    total_inventory=total,
                    inventory_status=inventory_status(total),
                )
            )
        return results


class ShopifyCatalogClient(CatalogClient):
    """Shopify Admin REST API implementation."""

    PRODUCT_FIELDS = "id,title,handle,vendor,product_type,status,tags,variants,images,image"

    def __init__(
        self,
        store_url: str,
        access_token: str,
        api_version: str = "2024-01",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize client.

        Args:
            store_url: Store domain, with or without scheme (e.g. "shop.myshopify.com")
            access_token: Admin API access token
            api_version: Admin API version segment
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        store_url = store_url.rstrip("/")
        if not store_url.startswith("http"):
            store_url = f"https://{store_url}"
        self.base_url = f"{store_url}/admin/api/{api_version}"
        self.headers = {
            "X-Shopify-Access-Token": access_token,
            "Content-Type": "application/json",
        }
        self.timeout = timeout
        self.transport = transport

    async def _get(self, path: str, params: dict, allow_missing: bool = False) -> Optional[dict]:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, headers=self.headers, transport=self.transport
            ) as client:
                response = await client.get(f"{self.base_url}/{path}", params=params)
        except httpx.HTTPError as e:
            logger.error(f"Shopify request {path} failed: {e}")
            raise CatalogError(f"Shopify API request failed: {e}") from e

        if response.status_code == 404 and allow_missing:
            return None
        if response.status_code != 200:
            logger.error(f"Shopify API error: {response.status_code} - {response.text[:500]}")
            raise CatalogError(f"Shopify API error: {response.status_code}")
        return response.json()

    async def fetch_products(self, query: str = "", limit: int = 50) -> List[CatalogProduct]:
        params = {"limit": str(limit), "fields": self.PRODUCT_FIELDS}
        if query and query.strip():
            params["title"] = query.strip()
        data = await self._get("products.json", params)
        return [CatalogProduct.model_validate(p) for p in data.get("products") or []]

    async def fetch_catalog_entry(self, product_id: str) -> Optional[CatalogProduct]:
        data = await self._get(
            f"products/{product_id}.json", {"fields": self.PRODUCT_FIELDS}, allow_missing=True
        )
        if data is None:
            return None
        product = data.get("product")
        return CatalogProduct.model_validate(product) if product else None

    async def fetch_stock_levels(self, inventory_item_ids: List[str]) -> List[InventoryLevel]:
        if not inventory_item_ids:
            return []
        data = await self._get(
            "inventory_levels.json",
            {"inventory_item_ids": ",".join(inventory_item_ids)},
        )
        return [InventoryLevel.model_validate(level) for level in data.get("inventory_levels") or []]


def get_catalog_client() -> CatalogClient:
    """FastAPI dependency providing the configured catalog client."""
    if not settings.SHOPIFY_STORE_URL or not settings.SHOPIFY_ADMIN_API_ACCESS_TOKEN:
        raise CatalogError("Shopify configuration is missing in environment variables")
    return ShopifyCatalogClient(
        store_url=settings.SHOPIFY_STORE_URL,
        access_token=settings.SHOPIFY_ADMIN_API_ACCESS_TOKEN,
        api_version=settings.SHOPIFY_API_VERSION,
        timeout=settings.SHOPIFY_TIMEOUT_SECONDS,
    )


def get_optional_catalog_client() -> Optional[CatalogClient]:
    """Like ``get_catalog_client`` but yields None when Shopify is not configured."""
    if not settings.SHOPIFY_STORE_URL or not settings.SHOPIFY_ADMIN_API_ACCESS_TOKEN:
        return None
    return get_catalog_client()
