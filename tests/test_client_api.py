"""Tests for client (clinic) endpoints."""
import pytest

from tests.factories import auth_headers, make_bulk_purchase, make_link, make_user

PATIENT = {"patientEmail": "patient@example.com", "patientName": "Pat Patient"}


@pytest.mark.asyncio
async def test_requires_authentication(client):
    response = await client.get("/api/client/bulk-purchases")
    assert response.status_code == 401

    response = await client.get(
        "/api/client/bulk-purchases", headers={"Authorization": "Bearer not-a-token"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_inactive_client_is_forbidden(client, test_db):
    suspended = await make_user(test_db, email="suspended@example.com", status="suspended")

    response = await client.get("/api/client/bulk-purchases", headers=auth_headers(suspended))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_bulk_purchases(client, test_db, clinic, scheme, bulk_purchase):
    headers = auth_headers(clinic)
    await make_link(test_db, bulk_purchase)
    await make_link(test_db, bulk_purchase)
    other = await make_user(test_db, email="other@example.com")
    await make_bulk_purchase(test_db, other, scheme, order_id="9999")

    response = await client.get("/api/client/bulk-purchases", headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["pagination"] == {"page": 1, "limit": 10, "total": 1, "pages": 1}
    assert len(data["data"]) == 1
    item = data["data"][0]
    assert item["uuid"] == bulk_purchase.uuid
    assert item["quantityPurchased"] == 100
    assert item["quantityRemaining"] == 85
    assert item["patientLinkCount"] == 2
    assert item["fulfillmentCount"] == 0


@pytest.mark.asyncio
async def test_list_bulk_purchases_by_status(client, test_db, clinic, scheme, bulk_purchase):
    headers = auth_headers(clinic)
    await make_bulk_purchase(test_db, clinic, scheme, order_id="5002", status="CANCELLED")

    response = await client.get("/api/client/bulk-purchases?status=CANCELLED", headers=headers)

    assert response.status_code == 200
    assert [item["status"] for item in response.json()["data"]] == ["CANCELLED"]


@pytest.mark.asyncio
async def test_create_patient_link(client, clinic, bulk_purchase):
    response = await client.post(
        "/api/client/patient-links",
        json={"bulkPurchaseId": bulk_purchase.uuid, **PATIENT, "notes": "Follow up in 30 days"},
        headers=auth_headers(clinic),
    )

    assert response.status_code == 201
    data = response.json()
    assert len(data["linkToken"]) == 64
    assert data["customUrl"] == f"patient/{data['linkToken']}"
    assert data["discountCode"].startswith("HUME-")
    assert data["maxUses"] == 1
    assert data["currentUses"] == 0
    assert data["isActive"] is True
    assert data["notes"] == "Follow up in 30 days"


@pytest.mark.asyncio
async def test_create_patient_link_on_exhausted_purchase(client, test_db, clinic, scheme):
    headers = auth_headers(clinic)
    exhausted = await make_bulk_purchase(
        test_db, clinic, scheme, order_id="5003", remaining=0, status="COMPLETED"
    )

    response = await client.post(
        "/api/client/patient-links", json={"bulkPurchaseId": exhausted.uuid}, headers=headers
    )

    assert response.status_code == 404
    assert response.json() == {"message": "Bulk purchase not found or no remaining units"}


@pytest.mark.asyncio
async def test_create_patient_link_on_other_clients_purchase(client, test_db, bulk_purchase):
    bulk_purchase_id = bulk_purchase.uuid
    other = await make_user(test_db, email="other@example.com")

    response = await client.post(
        "/api/client/patient-links",
        json={"bulkPurchaseId": bulk_purchase_id},
        headers=auth_headers(other),
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_patient_links_with_fulfillments(client, test_db, clinic, bulk_purchase, patient_link):
    headers = auth_headers(clinic)
    redeemed = await client.post(f"/api/patient/link/{patient_link.link_token}/redeem", json=PATIENT)
    assert redeemed.status_code == 200

    response = await client.get(
        f"/api/client/patient-links?bulkPurchaseId={bulk_purchase.uuid}", headers=headers
    )

    assert response.status_code == 200
    links = response.json()["data"]
    assert len(links) == 1
    assert links[0]["currentUses"] == 1
    assert links[0]["bulkPurchase"]["quantityRemaining"] == 84
    assert links[0]["productScheme"]["sku"] == "VITD-BULK-30"
    assert [f["patientEmail"] for f in links[0]["fulfillments"]] == ["patient@example.com"]


@pytest.mark.asyncio
async def test_deactivate_patient_link(client, clinic, patient_link):
    headers = auth_headers(clinic)
    token = patient_link.link_token

    response = await client.post(
        f"/api/client/patient-links/{patient_link.uuid}/deactivate", headers=headers
    )

    assert response.status_code == 200
    assert response.json()["isActive"] is False

    status_response = await client.get(f"/api/patient/link/{token}")
    assert status_response.status_code == 410
    assert status_response.json()["reason"]["inactive"] is True


@pytest.mark.asyncio
async def test_deactivate_other_clients_link(client, test_db, patient_link):
    link_id = patient_link.uuid
    other = await make_user(test_db, email="other@example.com")

    response = await client.post(
        f"/api/client/patient-links/{link_id}/deactivate", headers=auth_headers(other)
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_fulfillments(client, test_db, clinic, bulk_purchase, patient_link):
    headers = auth_headers(clinic)
    await client.post(f"/api/patient/link/{patient_link.link_token}/redeem", json=PATIENT)

    response = await client.get("/api/client/fulfillments", headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["pagination"]["total"] == 1
    item = data["data"][0]
    assert item["patientName"] == "Pat Patient"
    assert item["quantityFulfilled"] == 1
    assert item["patientLink"]["discountCode"] == patient_link.discount_code
    assert item["bulkPurchase"]["productSku"] == "VITD-BULK-30"
