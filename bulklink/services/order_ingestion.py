"""Order ingestion: storefront orders in, bulk purchase ledger rows out.

Each order is handled in its own transaction and tracked by an ``OrderSync``
row. Orders already marked processed are skipped, so the sync can be re-run
safely; an order that failed is rolled back, its error recorded, and retried
on the next run.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bulklink.config import settings
from bulklink.models.bulk_purchase import BulkPurchase, BulkPurchaseStatus
from bulklink.models.order_sync import OrderSync
from bulklink.models.product_scheme import ProductScheme
from bulklink.models.user import User
from bulklink.schemas.orders import StorefrontCustomer, StorefrontLineItem, StorefrontOrder
from bulklink.services.catalog import CatalogClient, CatalogError

logger = logging.getLogger(__name__)


@dataclass
class BulkPurchasePredicate:
    """Decides whether a line item is a bulk purchase.

    Matches when the quantity reaches ``min_quantity`` or the SKU contains
    ``sku_marker`` (case-insensitive).
    """

    min_quantity: int = 10
    sku_marker: Optional[str] = "bulk"

    @classmethod
    def from_settings(cls) -> "BulkPurchasePredicate":
        return cls(min_quantity=settings.BULK_MIN_QUANTITY, sku_marker=settings.BULK_SKU_MARKER)

    def __call__(self, line_item: StorefrontLineItem) -> bool:
        if line_item.quantity >= self.min_quantity:
            return True
        if self.sku_marker and line_item.sku:
            return self.sku_marker.lower() in line_item.sku.lower()
        return False


@dataclass
class IngestionSummary:
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    total: int = 0
    created_bulk_purchase_ids: List[str] = field(default_factory=list)


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


async def get_or_create_client(db: AsyncSession, customer: StorefrontCustomer) -> User:
    """Find the client for an order's contact email, creating one if absent."""
    email = customer.email.strip().lower()
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user:
        return user

    user = User(
        email=email,
        name=customer.full_name,
        first_name=customer.first_name or "",
        last_name=customer.last_name or "",
        user_role="client",
        status="active",
    )
    db.add(user)
    await db.flush()
    logger.info(f"Created client {user.uuid} for {email}")
    return user


async def upsert_product_scheme(
    db: AsyncSession,
    line_item: StorefrontLineItem,
    catalog: Optional[CatalogClient] = None,
) -> ProductScheme:
    """Create or refresh the scheme for a SKU. Price fields are overwritten."""
    unit_price = line_item.unit_price
    bulk_price = round(unit_price * settings.BULK_PRICE_FACTOR, 2)

    result = await db.execute(select(ProductScheme).where(ProductScheme.sku == line_item.sku))
    scheme = result.scalar_one_or_none()

    if scheme:
        scheme.title = line_item.title
        scheme.unit_price = unit_price
        scheme.bulk_price = bulk_price
        scheme.updated_at = datetime.utcnow()
        await db.flush()
        return scheme

    scheme = ProductScheme(
        sku=line_item.sku,
        title=line_item.title,
        shopify_product_id=line_item.product_id,
        shopify_variant_id=line_item.variant_id,
        unit_price=unit_price,
        bulk_price=bulk_price,
        minimum_bulk_qty=settings.BULK_MIN_QUANTITY,
    )

    if catalog and line_item.product_id:
        try:
            entry = await catalog.fetch_catalog_entry(line_item.product_id)
        except CatalogError as e:
            logger.warning(f"Catalog lookup for product {line_item.product_id} failed: {e.message}")
            entry = None
        if entry:
            if entry.image:
                scheme.image = entry.image.src
            if not scheme.shopify_variant_id:
                matching = [v for v in entry.variants if v.sku == line_item.sku]
                if matching:
                    scheme.shopify_variant_id = matching[0].id

    db.add(scheme)
    await db.flush()
    logger.info(f"Created product scheme {scheme.uuid} for SKU {scheme.sku}")
    return scheme


async def _upsert_sync(db: AsyncSession, order: StorefrontOrder) -> OrderSync:
    result = await db.execute(select(OrderSync).where(OrderSync.shopify_order_id == order.id))
    sync = result.scalar_one_or_none()
    if sync is None:
        sync = OrderSync(shopify_order_id=order.id, processed=False)
        db.add(sync)
    sync.order_number = order.order_number
    sync.order_data = order.model_dump(mode="json")
    sync.synced_at = datetime.utcnow()
    await db.flush()
    return sync


async def ingest_order(
    db: AsyncSession,
    order: StorefrontOrder,
    catalog: Optional[CatalogClient] = None,
    is_bulk: Optional[Callable[[StorefrontLineItem], bool]] = None,
) -> Optional[BulkPurchase]:
    """
    Turn one order into at most one bulk purchase. Does not commit.

    The first bulk line item of an order creates the purchase; later ones are
    ignored because a purchase is keyed by its source order id.
    """
    is_bulk = is_bulk or BulkPurchasePredicate.from_settings()
    sync = await _upsert_sync(db, order)
    created = None

    for line_item in order.line_items:
        if not line_item.sku or not is_bulk(line_item):
            continue

        if not order.customer or not order.customer.email:
            raise ValueError(f"Order {order.id} has a bulk line item but no customer email")

        client = await get_or_create_client(db, order.customer)

        existing = await db.execute(
            select(BulkPurchase).where(BulkPurchase.shopify_order_id == order.id)
        )
        if existing.scalar_one_or_none():
            continue

        scheme = await upsert_product_scheme(db, line_item, catalog)
        unit_cost = line_item.unit_price

        created = BulkPurchase(
            user_id=client.uuid,
            product_scheme_id=scheme.uuid,
            shopify_order_id=order.id,
            shopify_order_number=order.order_number,
            order_date=_naive_utc(order.created_at),
            product_sku=line_item.sku,
            product_title=line_item.title,
            product_id=line_item.product_id,
            variant_id=line_item.variant_id,
            variant_title=line_item.variant_title,
            quantity_purchased=line_item.quantity,
            quantity_remaining=line_item.quantity,
            status=BulkPurchaseStatus.ACTIVE.value,
            unit_cost=unit_cost,
            total_cost=round(unit_cost * line_item.quantity, 2),
            customer_name=order.customer.full_name,
            customer_email=order.customer.email,
            billing_name=order.billing_address.full_name if order.billing_address else None,
            billing_address=order.billing_address.one_line() if order.billing_address else None,
            shipping_name=order.shipping_address.full_name if order.shipping_address else None,
            shipping_address=order.shipping_address.one_line() if order.shipping_address else None,
        )
        db.add(created)
        await db.flush()
        logger.info(
            f"Created bulk purchase {created.uuid} for order {order.id}: "
            f"{created.quantity_purchased} x {created.product_sku}"
        )

    sync.processed = True
    sync.error = None
    return created


def _raw_order_id(raw_order: Union[StorefrontOrder, dict]) -> Optional[str]:
    """Order id from an order that may not have passed validation yet."""
    if isinstance(raw_order, StorefrontOrder):
        return raw_order.id
    order_id = raw_order.get("id") if isinstance(raw_order, dict) else None
    if order_id is None or isinstance(order_id, (dict, list)):
        return None
    return str(order_id)[:64] or None


def _raw_order_data(raw_order: Union[StorefrontOrder, dict]) -> dict:
    if isinstance(raw_order, StorefrontOrder):
        return raw_order.model_dump(mode="json")
    return raw_order if isinstance(raw_order, dict) else {"value": repr(raw_order)}


async def _record_failure(
    db: AsyncSession,
    order_id: Optional[str],
    raw_order: Union[StorefrontOrder, dict],
    error: Exception,
) -> None:
    if order_id is None:
        logger.warning(f"Order without a usable id could not be recorded: {error}")
        return

    data = _raw_order_data(raw_order)
    order_number = data.get("order_number")
    try:
        result = await db.execute(select(OrderSync).where(OrderSync.shopify_order_id == order_id))
        sync = result.scalar_one_or_none()
        if sync is None:
            sync = OrderSync(shopify_order_id=order_id, order_data=data)
            db.add(sync)
        sync.order_number = str(order_number)[:64] if order_number is not None else None
        sync.processed = False
        sync.error = str(error) or error.__class__.__name__
        sync.synced_at = datetime.utcnow()
        await db.commit()
    except Exception:
        logger.exception(f"Could not record sync error for order {order_id}")
        await db.rollback()


async def ingest_orders(
    db: AsyncSession,
    orders: Iterable[Union[StorefrontOrder, dict]],
    catalog: Optional[CatalogClient] = None,
    is_bulk: Optional[Callable[[StorefrontLineItem], bool]] = None,
) -> IngestionSummary:
    """
    Ingest a batch of orders, one transaction per order.

    Orders may be raw storefront payloads; each one is validated on its own
    so a malformed order is recorded as an error without failing the batch.
    """
    is_bulk = is_bulk or BulkPurchasePredicate.from_settings()
    summary = IngestionSummary()

    for raw_order in orders:
        summary.total += 1
        order_id = _raw_order_id(raw_order)

        if order_id is not None:
            result = await db.execute(select(OrderSync).where(OrderSync.shopify_order_id == order_id))
            existing_sync = result.scalar_one_or_none()
            if existing_sync and existing_sync.processed:
                summary.skipped += 1
                continue

        try:
            if isinstance(raw_order, StorefrontOrder):
                order = raw_order
            else:
                order = StorefrontOrder.model_validate(raw_order)
            created = await ingest_order(db, order, catalog, is_bulk)
            await db.commit()
        except Exception as e:
            logger.error(f"Error processing order {order_id}: {e}")
            await db.rollback()
            await _record_failure(db, order_id, raw_order, e)
            summary.errors += 1
            continue

        summary.processed += 1
        if created:
            summary.created_bulk_purchase_ids.append(created.uuid)

    logger.info(
        f"Order sync completed: {summary.processed} processed, {summary.skipped} skipped, "
        f"{summary.errors} errors of {summary.total}"
    )
    return summary
