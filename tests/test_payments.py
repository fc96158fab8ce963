# tests/test_payments.py

"""
Tests for payment endpoints.
"""

from fastapi.testclient import TestClient

from core.document_store import PAYMENTS


def new_payment(**overrides):
    payload = {
        "property_id": "prop-a1",
        "rent_id": "rent-a1",
        "invoice_id": "inv-a1",
        "amount": 250,
        "payment_date": "2025-03-20",
    }
    payload.update(overrides)
    return payload


def ids(response):
    return sorted(p["id"] for p in response.json())


def test_list_payments_by_scope(client: TestClient, auth):
    assert ids(client.get("/payments", headers=auth("viewer-a"))) == ["pay-a1", "pay-a2", "pay-a3"]
    assert ids(client.get("/payments", headers=auth("tenant-a"))) == ["pay-a1", "pay-a2"]
    assert ids(client.get("/payments", headers=auth("admin-b"))) == ["pay-b1"]


def test_list_payments_with_filters(client: TestClient, auth):
    response = client.get("/payments", params={"rent_id": "rent-a2"}, headers=auth("admin-a"))
    assert ids(response) == ["pay-a3"]

    response = client.get("/payments", params={"status": "refunded"}, headers=auth("admin-a"))
    assert response.json() == []


def test_filters_never_widen_scope(client: TestClient, auth):
    response = client.get("/payments", params={"property_id": "prop-b1"}, headers=auth("admin-a"))
    assert response.json() == []


def test_list_payments_rejects_unknown_status(client: TestClient, auth):
    response = client.get("/payments", params={"status": "lost"}, headers=auth("admin-a"))
    assert response.status_code == 422


def test_get_payment_in_other_organization_is_denied(client: TestClient, auth):
    assert client.get("/payments/pay-b1", headers=auth("admin-a")).status_code == 403
    assert client.get("/payments/pay-b1", headers=auth("super")).status_code == 200


def test_record_payment(client: TestClient, auth, store):
    response = client.post("/payments", json=new_payment(), headers=auth("manager-a"))

    assert response.status_code == 201
    created = response.json()
    assert created["organization_id"] == "org-a"
    assert created["created_by"] == "manager-a"
    assert store.get(PAYMENTS, created["id"])["amount"] == 250


def test_payment_rent_must_belong_to_property(client: TestClient, auth, store):
    response = client.post("/payments", json=new_payment(property_id="prop-a2"), headers=auth("admin-a"))

    assert response.status_code == 409
    assert "rent record" in response.json()["detail"]
    assert store.count(PAYMENTS, property_id="prop-a2") == 0


def test_payment_invoice_must_belong_to_rent(client: TestClient, auth):
    response = client.post("/payments", json=new_payment(rent_id="rent-a2"), headers=auth("admin-a"))
    assert response.status_code == 409


def test_payment_against_other_organization_conflicts(client: TestClient, auth):
    response = client.post(
        "/payments",
        json=new_payment(property_id="prop-b1", rent_id="rent-b1", invoice_id=None),
        headers=auth("admin-a"),
    )
    assert response.status_code == 409


def test_payment_requires_positive_amount(client: TestClient, auth):
    response = client.post("/payments", json=new_payment(amount=0), headers=auth("admin-a"))
    assert response.status_code == 422


def test_caretaker_records_payment_only_on_assigned_property(client: TestClient, auth, store):
    assert client.post("/payments", json=new_payment(), headers=auth("caretaker-a")).status_code == 201

    store.set("rent_records", "rent-a3", {
        "organization_id": "org-a",
        "property_id": "prop-a2",
        "tenant_name": "Ola",
        "status": "active",
    })
    response = client.post(
        "/payments",
        json=new_payment(property_id="prop-a2", rent_id="rent-a3", invoice_id=None),
        headers=auth("caretaker-a"),
    )
    assert response.status_code == 403


def test_update_payment_rechecks_references(client: TestClient, auth, store):
    response = client.put("/payments/pay-a3", json={"invoice_id": "inv-a1"}, headers=auth("admin-a"))

    assert response.status_code == 409
    assert store.get(PAYMENTS, "pay-a3")["invoice_id"] is None


def test_update_payment(client: TestClient, auth, store):
    response = client.put("/payments/pay-a1", json={"status": "refunded"}, headers=auth("manager-a"))
    assert response.status_code == 200
    assert store.get(PAYMENTS, "pay-a1")["status"] == "refunded"


def test_empty_update_is_rejected(client: TestClient, auth):
    assert client.put("/payments/pay-a1", json={}, headers=auth("admin-a")).status_code == 400


def test_delete_payment_requires_organization_delete(client: TestClient, auth, store):
    denied = client.delete("/payments/pay-a1", headers=auth("manager-a"))
    assert denied.status_code == 403
    assert denied.json()["required"] == "payments:delete:organization"

    assert client.delete("/payments/pay-a1", headers=auth("admin-a")).status_code == 200
    assert store.get(PAYMENTS, "pay-a1") is None


def test_cannot_delete_other_organization_payment(client: TestClient, auth, store):
    assert client.delete("/payments/pay-b1", headers=auth("admin-a")).status_code == 403
    assert store.get(PAYMENTS, "pay-b1") is not None
