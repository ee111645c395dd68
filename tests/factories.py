"""Row builders shared by the test modules."""
from datetime import datetime, timedelta

from bulklink.auth.security import create_access_token
from bulklink.models import BulkPurchase, PatientLink, ProductScheme, User
from bulklink.services.link_issuer import generate_discount_code, generate_link_token


def auth_headers(user: User) -> dict:
    token = create_access_token(data={"sub": user.uuid, "email": user.email, "role": user.user_role})
    return {"Authorization": f"Bearer {token}"}


async def make_user(db, email="clinic@example.com", user_role="client", status="active") -> User:
    user = User(name="Test Clinic", email=email, user_role=user_role, status=status)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def make_scheme(db, sku="VITD-BULK-30", max_units_per_link=1) -> ProductScheme:
    scheme = ProductScheme(
        sku=sku,
        title="Vitamin D 30ct",
        unit_price=25.0,
        bulk_price=20.0,
        max_units_per_link=max_units_per_link,
        shopify_product_id="1001",
        shopify_variant_id="2001",
    )
    db.add(scheme)
    await db.commit()
    await db.refresh(scheme)
    return scheme


async def make_bulk_purchase(
    db,
    user: User,
    scheme: ProductScheme,
    purchased=100,
    remaining=85,
    status="ACTIVE",
    order_id="5001",
) -> BulkPurchase:
    bulk_purchase = BulkPurchase(
        user_id=user.uuid,
        product_scheme_id=scheme.uuid,
        shopify_order_id=order_id,
        shopify_order_number=f"#{order_id}",
        product_sku=scheme.sku,
        product_title=scheme.title,
        product_id=scheme.shopify_product_id,
        variant_id=scheme.shopify_variant_id,
        quantity_purchased=purchased,
        quantity_remaining=remaining,
        status=status,
        unit_cost=20.0,
        total_cost=20.0 * purchased,
        customer_name="Test Clinic",
        customer_email=user.email,
    )
    db.add(bulk_purchase)
    await db.commit()
    await db.refresh(bulk_purchase)
    return bulk_purchase


async def make_link(
    db,
    bulk_purchase: BulkPurchase,
    max_uses=1,
    current_uses=0,
    is_active=True,
    expires_at=None,
) -> PatientLink:
    token = generate_link_token()
    patient_link = PatientLink(
        user_id=bulk_purchase.user_id,
        bulk_purchase_id=bulk_purchase.uuid,
        product_scheme_id=bulk_purchase.product_scheme_id,
        link_token=token,
        custom_url=f"patient/{token}",
        discount_code=generate_discount_code(),
        max_uses=max_uses,
        current_uses=current_uses,
        is_active=is_active,
        expires_at=expires_at or datetime.utcnow() + timedelta(days=30),
    )
    db.add(patient_link)
    await db.commit()
    await db.refresh(patient_link)
    return patient_link
