# tests/conftest.py

"""
Pytest configuration and shared fixtures for testing.

Routers run against an in-memory DocumentStore and a fake identity
verifier, wired in through app.dependency_overrides. A bearer token is
simply the subject id it authenticates.
"""

import copy
import os

# Startup validation needs these before settings are loaded
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")

import pytest
from fastapi.testclient import TestClient
from typing import Generator
from unittest.mock import Mock

from core.document_store import (
    DocumentStore,
    INVOICES,
    PAYMENTS,
    PROPERTIES,
    RENT_RECORDS,
    ROLES,
    USERS,
    WriteBatch,
)
from core.errors import AuthorizationUnavailable, StoreError, Unauthenticated
from core.identity import IdentityVerifier, VerifiedIdentity
from core.roles import bootstrap_organization, system_role_id
from dependencies.auth import get_document_store, get_identity_verifier
from main import create_app


# ============================================================
# Test doubles
# ============================================================
class InMemoryDocumentStore(DocumentStore):
    """
    Dict-backed store. Batches are applied to a copy of the data and
    swapped in only when every op succeeded.
    """

    def __init__(self):
        self.data = {}
        self.fail_commits = False
        self.fail_reads = False
        self.fail_updates = False
        self.commits = []

    def _collection(self, name):
        return self.data.setdefault(name, {})

    def get(self, collection, doc_id):
        if self.fail_reads:
            raise StoreError(f"get {collection}/{doc_id}", "injected failure")
        doc = self._collection(collection).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    def query(self, collection, equals=None, contains=None):
        if self.fail_reads:
            raise StoreError(f"query {collection}", "injected failure")
        results = []
        for doc in self._collection(collection).values():
            if any(doc.get(k) != v for k, v in (equals or {}).items()):
                continue
            if any(v not in (doc.get(k) or []) for k, v in (contains or {}).items()):
                continue
            results.append(copy.deepcopy(doc))
        return results

    def set(self, collection, doc_id, document):
        self._collection(collection)[doc_id] = {**copy.deepcopy(document), "id": doc_id}
        return self.get(collection, doc_id)

    def create(self, collection, doc_id, document):
        if doc_id in self._collection(collection):
            return False
        self.set(collection, doc_id, document)
        return True

    def update(self, collection, doc_id, partial):
        if self.fail_updates:
            raise StoreError(f"update {collection}/{doc_id}", "injected failure")
        doc = self._collection(collection).get(doc_id)
        if doc is None:
            return None
        doc.update(copy.deepcopy(partial))
        return self.get(collection, doc_id)

    def delete(self, collection, doc_id):
        self._collection(collection).pop(doc_id, None)

    def batch(self):
        return WriteBatch(self._apply)

    def _apply(self, ops):
        if self.fail_commits:
            raise StoreError(f"commit batch of {len(ops)}", "injected failure")

        staged = copy.deepcopy(self.data)
        for op in ops:
            docs = staged.setdefault(op["collection"], {})
            if op["op"] == "set":
                docs[op["id"]] = copy.deepcopy(op["data"])
            elif op["op"] == "update":
                if op["id"] in docs:
                    docs[op["id"]].update(copy.deepcopy(op["data"]))
            elif op["op"] == "delete":
                docs.pop(op["id"], None)
        self.data = staged
        self.commits.append(ops)

    def count(self, collection, **equals):
        return len(self.query(collection, equals=equals))


class FakeVerifier(IdentityVerifier):
    """Any token that is a known subject id verifies; `down` simulates an outage."""

    def __init__(self):
        self.identities = {}

    def register(self, subject_id, email=None, name=None):
        self.identities[subject_id] = VerifiedIdentity(
            subject_id=subject_id,
            email=email or f"{subject_id}@example.com",
            claims={"name": name},
        )

    def verify(self, credential):
        if credential == "down":
            raise AuthorizationUnavailable()
        identity = self.identities.get(credential)
        if identity is None:
            raise Unauthenticated("Invalid or expired authentication token")
        return identity


# ============================================================
# Seed data
# ============================================================
ORG_A = "org-a"
ORG_B = "org-b"

SUBJECTS = {
    # uid: (organization, role name)
    "super": (ORG_A, "super_admin"),
    "admin-a": (ORG_A, "org_admin"),
    "manager-a": (ORG_A, "property_manager"),
    "viewer-a": (ORG_A, "financial_viewer"),
    "caretaker-a": (ORG_A, "caretaker"),
    "tenant-a": (ORG_A, "tenant"),
    "admin-b": (ORG_B, "org_admin"),
    "drifter": (None, None),
}


def seed(store: InMemoryDocumentStore) -> None:
    bootstrap_organization(store, {"name": "Org A", "status": "active", "is_default": True}, organization_id=ORG_A)
    bootstrap_organization(store, {"name": "Org B", "status": "active", "is_default": False}, organization_id=ORG_B)

    # Custom roles for assigned / own scope
    store.set(ROLES, "org-a_caretaker", {
        "name": "caretaker",
        "organization_id": ORG_A,
        "permissions": ["properties:read:assigned", "payments:read:assigned", "payments:create:assigned"],
        "is_system_role": False,
        "level": 3,
    })
    store.set(ROLES, "org-a_tenant", {
        "name": "tenant",
        "organization_id": ORG_A,
        "permissions": ["payments:read:own", "properties:read:own"],
        "is_system_role": False,
        "level": 1,
    })

    for uid, (org, role) in SUBJECTS.items():
        role_id = None
        if role in ("caretaker", "tenant"):
            role_id = f"{org}_{role}"
        elif role:
            role_id = system_role_id(org, role)
        store.set(USERS, uid, {
            "email": f"{uid}@example.com",
            "display_name": uid,
            "organization_id": org,
            "role_id": role_id,
            "permissions": [],
            "status": "active" if org else "pending",
            "assigned_properties": [],
        })

    store.set(PROPERTIES, "prop-a1", {
        "name": "Harbor View",
        "organization_id": ORG_A,
        "status": "occupied",
        "assigned_managers": ["manager-a"],
        "caretaker_id": "caretaker-a",
    })
    store.set(PROPERTIES, "prop-a2", {
        "name": "Lot 7",
        "organization_id": ORG_A,
        "status": "vacant",
        "assigned_managers": [],
        "caretaker_id": None,
    })
    store.set(PROPERTIES, "prop-b1", {
        "name": "Hillside",
        "organization_id": ORG_B,
        "status": "occupied",
        "assigned_managers": [],
        "caretaker_id": None,
    })

    store.set(RENT_RECORDS, "rent-a1", {
        "organization_id": ORG_A,
        "property_id": "prop-a1",
        "space_id": "unit-1",
        "tenant_name": "Kai",
        "tenant_id": "tenant-a",
        "monthly_rent": 1000,
        "status": "active",
        "created_at": "2025-01-01T00:00:00+00:00",
    })
    store.set(RENT_RECORDS, "rent-a2", {
        "organization_id": ORG_A,
        "property_id": "prop-a1",
        "space_id": "unit-2",
        "tenant_name": "Lani",
        "monthly_rent": 900,
        "status": "active",
        "created_at": "2025-01-02T00:00:00+00:00",
    })
    store.set(RENT_RECORDS, "rent-b1", {
        "organization_id": ORG_B,
        "property_id": "prop-b1",
        "space_id": None,
        "tenant_name": "Noe",
        "monthly_rent": 1200,
        "status": "active",
        "created_at": "2025-01-03T00:00:00+00:00",
    })

    store.set(INVOICES, "inv-a1", {
        "organization_id": ORG_A,
        "rent_id": "rent-a1",
        "property_id": "prop-a1",
        "invoice_number": "INV-20250305-0001",
        "amount": 1000,
        "issue_date": "2025-03-05T00:00:00+00:00",
        "due_date": "2025-03-31T00:00:00+00:00",
        "status": "pending",
    })

    for pid, rent_id, amount in (("pay-a1", "rent-a1", 400), ("pay-a2", "rent-a1", 100), ("pay-a3", "rent-a2", 900)):
        store.set(PAYMENTS, pid, {
            "organization_id": ORG_A,
            "property_id": "prop-a1",
            "rent_id": rent_id,
            "invoice_id": "inv-a1" if rent_id == "rent-a1" else None,
            "amount": amount,
            "payment_date": "2025-03-10",
            "status": "completed",
        })
    store.set(PAYMENTS, "pay-b1", {
        "organization_id": ORG_B,
        "property_id": "prop-b1",
        "rent_id": "rent-b1",
        "invoice_id": None,
        "amount": 1200,
        "payment_date": "2025-03-10",
        "status": "completed",
    })


# ============================================================
# Fixtures
# ============================================================
@pytest.fixture
def store() -> InMemoryDocumentStore:
    """Seeded in-memory document store."""
    memory = InMemoryDocumentStore()
    seed(memory)
    # Only batches committed by the code under test are recorded
    memory.commits.clear()
    return memory


@pytest.fixture
def verifier() -> FakeVerifier:
    fake = FakeVerifier()
    for uid in SUBJECTS:
        fake.register(uid)
    fake.register("newcomer", name="New Comer")
    return fake


@pytest.fixture(scope="function")
def app(store, verifier):
    """Create a test FastAPI application instance."""
    application = create_app()
    application.dependency_overrides[get_document_store] = lambda: store
    application.dependency_overrides[get_identity_verifier] = lambda: verifier
    return application


@pytest.fixture(scope="function")
def client(app) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth():
    """auth("admin-a") -> Authorization header for that subject."""
    def headers(subject_id):
        return {"Authorization": f"Bearer {subject_id}"}
    return headers


@pytest.fixture
def mock_supabase_client():
    """Create a mock Supabase client."""
    mock_client = Mock()
    mock_table = Mock()
    mock_client.table.return_value = mock_table
    return mock_client
