"""Tests for the redemption engine."""
import asyncio
from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from bulklink.database import Base, build_engine
from bulklink.exceptions import Gone, NotFound, Unexpected, ValidationError
from bulklink.models import BulkPurchase, PatientFulfillment, PatientLink
from bulklink.services import redemption
from bulklink.services.link_validator import LinkReasons
from bulklink.services.redemption import get_link_status, redeem_link
from tests.factories import make_bulk_purchase, make_link, make_scheme, make_user

STORE_URL = "test-store.myshopify.com"


async def _fulfillment_count(db) -> int:
    result = await db.execute(select(func.count(PatientFulfillment.uuid)))
    return result.scalar()


async def _reload_link(db, link_id) -> PatientLink:
    result = await db.execute(
        select(PatientLink).where(PatientLink.uuid == link_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _reload_purchase(db, bulk_purchase_id) -> BulkPurchase:
    result = await db.execute(
        select(BulkPurchase)
        .where(BulkPurchase.uuid == bulk_purchase_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


@pytest.mark.asyncio
async def test_redeem_link(test_db, bulk_purchase, patient_link):
    result = await redeem_link(
        test_db,
        patient_link.link_token,
        patient_email="patient@example.com",
        patient_name="Pat Patient",
        phone="555-0100",
        ip_address="10.0.0.1",
        user_agent="pytest",
        store_url=STORE_URL,
    )

    assert result.bulk_purchase.quantity_remaining == 84
    assert result.bulk_purchase.status == "ACTIVE"
    assert result.patient_link.current_uses == 1
    assert result.patient_link.patient_email == "patient@example.com"
    assert result.patient_link.patient_name == "Pat Patient"
    assert result.patient_link.patient_phone == "555-0100"

    fulfillment = result.fulfillment
    assert fulfillment.quantity_fulfilled == 1
    assert fulfillment.patient_link_id == patient_link.uuid
    assert fulfillment.bulk_purchase_id == bulk_purchase.uuid
    assert fulfillment.ip_address == "10.0.0.1"
    assert fulfillment.user_agent == "pytest"

    assert result.discount_code == patient_link.discount_code
    assert result.checkout_url == (
        f"https://{STORE_URL}/cart/2001:1?discount={patient_link.discount_code}"
    )
    assert await _fulfillment_count(test_db) == 1


@pytest.mark.asyncio
async def test_second_redemption_is_gone(test_db, bulk_purchase, patient_link):
    bulk_purchase_id = bulk_purchase.uuid
    await redeem_link(test_db, patient_link.link_token, "patient@example.com", "Pat Patient")

    with pytest.raises(Gone) as exc_info:
        await redeem_link(test_db, patient_link.link_token, "other@example.com", "Other Patient")

    assert exc_info.value.reasons.fully_used
    assert not exc_info.value.reasons.no_bulk_inventory
    assert (await _reload_purchase(test_db, bulk_purchase_id)).quantity_remaining == 84
    assert await _fulfillment_count(test_db) == 1


@pytest.mark.asyncio
async def test_redeem_requires_patient_details(test_db, patient_link):
    with pytest.raises(ValidationError):
        await redeem_link(test_db, patient_link.link_token, "patient@example.com", "   ")
    with pytest.raises(ValidationError):
        await redeem_link(test_db, patient_link.link_token, None, "Pat Patient")

    assert (await _reload_link(test_db, patient_link.uuid)).current_uses == 0


@pytest.mark.asyncio
async def test_redeem_rejects_overlong_fields(test_db, patient_link):
    link_id = patient_link.uuid
    token = patient_link.link_token

    with pytest.raises(ValidationError):
        await redeem_link(test_db, token, "p" * 250 + "@example.com", "Pat Patient")
    with pytest.raises(ValidationError):
        await redeem_link(test_db, token, "patient@example.com", "N" * 256)
    with pytest.raises(ValidationError):
        await redeem_link(test_db, token, "patient@example.com", "Pat Patient", phone="5" * 51)

    assert (await _reload_link(test_db, link_id)).current_uses == 0
    assert await _fulfillment_count(test_db) == 0


@pytest.mark.asyncio
async def test_redeem_unknown_token(test_db, bulk_purchase):
    with pytest.raises(NotFound):
        await redeem_link(test_db, "0" * 64, "patient@example.com", "Pat Patient")


@pytest.mark.asyncio
async def test_redeem_expired_link(test_db, bulk_purchase):
    link = await make_link(test_db, bulk_purchase, expires_at=datetime.utcnow() - timedelta(minutes=1))

    with pytest.raises(Gone) as exc_info:
        await redeem_link(test_db, link.link_token, "patient@example.com", "Pat Patient")

    assert exc_info.value.reasons.expired
    assert await _fulfillment_count(test_db) == 0


@pytest.mark.asyncio
async def test_redeem_deactivated_link(test_db, bulk_purchase):
    link = await make_link(test_db, bulk_purchase, is_active=False)

    with pytest.raises(Gone) as exc_info:
        await redeem_link(test_db, link.link_token, "patient@example.com", "Pat Patient")

    assert exc_info.value.reasons == LinkReasons(inactive=True)


@pytest.mark.asyncio
async def test_last_unit_completes_purchase(test_db, clinic, scheme):
    bulk_purchase = await make_bulk_purchase(test_db, clinic, scheme, purchased=10, remaining=1)
    first = await make_link(test_db, bulk_purchase)
    second = await make_link(test_db, bulk_purchase)

    result = await redeem_link(test_db, first.link_token, "one@example.com", "Patient One")
    assert result.bulk_purchase.quantity_remaining == 0
    assert result.bulk_purchase.status == "COMPLETED"

    with pytest.raises(Gone) as exc_info:
        await redeem_link(test_db, second.link_token, "two@example.com", "Patient Two")
    assert exc_info.value.reasons == LinkReasons(no_bulk_inventory=True)


@pytest.mark.asyncio
async def test_multi_unit_scheme(test_db, clinic):
    scheme = await make_scheme(test_db, sku="OMEGA-BULK-60", max_units_per_link=3)
    bulk_purchase = await make_bulk_purchase(test_db, clinic, scheme, purchased=30, remaining=30)
    link = await make_link(test_db, bulk_purchase)

    result = await redeem_link(test_db, link.link_token, "patient@example.com", "Pat Patient")

    assert result.fulfillment.quantity_fulfilled == 3
    assert result.bulk_purchase.quantity_remaining == 27


@pytest.mark.asyncio
async def test_short_inventory_rolls_back_claimed_use(test_db, clinic):
    scheme = await make_scheme(test_db, sku="OMEGA-BULK-60", max_units_per_link=5)
    bulk_purchase = await make_bulk_purchase(test_db, clinic, scheme, purchased=30, remaining=3)
    link = await make_link(test_db, bulk_purchase)
    link_id, bulk_purchase_id = link.uuid, bulk_purchase.uuid

    with pytest.raises(Gone) as exc_info:
        await redeem_link(test_db, link.link_token, "patient@example.com", "Pat Patient")

    assert exc_info.value.reasons == LinkReasons(no_bulk_inventory=True)
    assert (await _reload_link(test_db, link_id)).current_uses == 0
    assert (await _reload_purchase(test_db, bulk_purchase_id)).quantity_remaining == 3
    assert await _fulfillment_count(test_db) == 0


@pytest.mark.asyncio
async def test_lost_race_reports_current_reasons(test_db, bulk_purchase, monkeypatch):
    # The use was claimed by another request after this one's pre-check passed
    link = await make_link(test_db, bulk_purchase, current_uses=1)
    bulk_purchase_id = bulk_purchase.uuid
    real_evaluate = redemption.evaluate_link
    calls = []

    def stale_then_real(*args, **kwargs):
        calls.append(args)
        if len(calls) == 1:
            return LinkReasons()
        return real_evaluate(*args, **kwargs)

    monkeypatch.setattr(redemption, "evaluate_link", stale_then_real)

    with pytest.raises(Gone) as exc_info:
        await redeem_link(test_db, link.link_token, "patient@example.com", "Pat Patient")

    assert exc_info.value.reasons == LinkReasons(fully_used=True)
    assert (await _reload_purchase(test_db, bulk_purchase_id)).quantity_remaining == 85
    assert await _fulfillment_count(test_db) == 0


@pytest.mark.asyncio
async def test_datastore_error_after_lost_race_is_unexpected(test_db, bulk_purchase, monkeypatch):
    link = await make_link(test_db, bulk_purchase, current_uses=1)
    bulk_purchase_id = bulk_purchase.uuid
    calls = []

    def stale_then_broken(*args, **kwargs):
        calls.append(args)
        if len(calls) == 1:
            return LinkReasons()
        raise RuntimeError("database connection lost")

    monkeypatch.setattr(redemption, "evaluate_link", stale_then_broken)

    with pytest.raises(Unexpected):
        await redeem_link(test_db, link.link_token, "patient@example.com", "Pat Patient")

    assert len(calls) == 2
    assert (await _reload_purchase(test_db, bulk_purchase_id)).quantity_remaining == 85
    assert await _fulfillment_count(test_db) == 0


@pytest.mark.asyncio
async def test_get_link_status(test_db, bulk_purchase, patient_link):
    link, purchase, reasons = await get_link_status(test_db, patient_link.link_token)

    assert link.uuid == patient_link.uuid
    assert purchase.uuid == bulk_purchase.uuid
    assert reasons.usable

    with pytest.raises(NotFound):
        await get_link_status(test_db, "missing")


@pytest.mark.asyncio
async def test_concurrent_redemptions_of_one_link(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'race.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    SessionLocal = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with SessionLocal() as db:
        clinic = await make_user(db)
        scheme = await make_scheme(db)
        bulk_purchase = await make_bulk_purchase(db, clinic, scheme, purchased=100, remaining=85)
        link = await make_link(db, bulk_purchase)
        link_token, bulk_purchase_id = link.link_token, bulk_purchase.uuid

    async def attempt(n):
        async with SessionLocal() as db:
            try:
                await redeem_link(db, link_token, f"patient{n}@example.com", f"Patient {n}")
            except Gone:
                return False
            return True

    outcomes = await asyncio.gather(*(attempt(n) for n in range(5)))

    async with SessionLocal() as db:
        purchase = await _reload_purchase(db, bulk_purchase_id)
        fulfillments = await _fulfillment_count(db)

    await engine.dispose()

    assert outcomes.count(True) == 1
    assert purchase.quantity_remaining == 84
    assert fulfillments == 1


@pytest.mark.asyncio
async def test_concurrent_redemptions_of_last_unit(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'last_unit.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    SessionLocal = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with SessionLocal() as db:
        clinic = await make_user(db)
        scheme = await make_scheme(db)
        bulk_purchase = await make_bulk_purchase(db, clinic, scheme, purchased=10, remaining=1)
        tokens = [(await make_link(db, bulk_purchase)).link_token for _ in range(4)]
        bulk_purchase_id = bulk_purchase.uuid

    async def attempt(token):
        async with SessionLocal() as db:
            try:
                await redeem_link(db, token, "patient@example.com", "Pat Patient")
            except Gone as e:
                assert e.reasons.no_bulk_inventory
                return False
            return True

    outcomes = await asyncio.gather(*(attempt(token) for token in tokens))

    async with SessionLocal() as db:
        purchase = await _reload_purchase(db, bulk_purchase_id)

    await engine.dispose()

    assert outcomes.count(True) == 1
    assert purchase.quantity_remaining == 0
    assert purchase.status == "COMPLETED"
