"""Storefront checkout URL composition."""
from typing import Optional

from bulklink.config import settings


def store_base_url(store_url: Optional[str] = None) -> Optional[str]:
    store_url = settings.SHOPIFY_STORE_URL if store_url is None else store_url
    if not store_url:
        return None
    store_url = store_url.rstrip("/")
    if store_url.startswith("http://") or store_url.startswith("https://"):
        return store_url
    return f"https://{store_url}"


def build_checkout_url(
    product_id: Optional[str],
    variant_id: Optional[str],
    discount_code: str,
    quantity: int,
    store_url: Optional[str] = None,
) -> Optional[str]:
    """
    Build the storefront URL a patient is redirected to after redemption.

    Uses a cart permalink when the variant is known, otherwise the product
    page. Returns None when the store or product is not configured.
    """
    base_url = store_base_url(store_url)
    if not base_url or not product_id:
        return None

    if variant_id:
        return f"{base_url}/cart/{variant_id}:{quantity}?discount={discount_code}"
    return f"{base_url}/products/{product_id}?discount={discount_code}"
