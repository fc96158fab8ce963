# tests/test_scope_filter.py

"""
Tests for the resource scope filter: first matching scope wins.
"""

import pytest

from core.document_store import PROPERTIES
from core.errors import InvalidRequest
from core.identity import AuthorizationContext
from core.scope_filter import accessible_record_ids, filter_accessible_records, selected_scope


def make_context(subject_id, organization_id, *permissions):
    return AuthorizationContext(
        subject_id=subject_id,
        organization_id=organization_id,
        effective_permissions=frozenset(permissions),
    )


def property_ids(store, context):
    return sorted(r["id"] for r in filter_accessible_records(store, context, "properties"))


# -----------------------------------------------------
# Properties
# -----------------------------------------------------
def test_all_scope_sees_every_organization(store):
    context = make_context("super", "org-a", "properties:read:all")
    assert property_ids(store, context) == ["prop-a1", "prop-a2", "prop-b1"]


def test_organization_scope_never_leaks_other_organizations(store):
    context = make_context("x", "org-a", "properties:read:organization")
    assert property_ids(store, context) == ["prop-a1", "prop-a2"]

    other = make_context("y", "org-b", "properties:read:organization")
    assert property_ids(store, other) == ["prop-b1"]


def test_scopes_are_monotonic(store):
    held = {
        "all": make_context("manager-a", "org-a", "properties:read:all"),
        "organization": make_context("manager-a", "org-a", "properties:read:organization"),
        "assigned": make_context("manager-a", "org-a", "properties:read:assigned"),
        "own": make_context("manager-a", "org-a", "properties:read:own"),
    }
    seen = {scope: set(property_ids(store, ctx)) for scope, ctx in held.items()}

    assert seen["all"] >= seen["organization"] >= seen["assigned"] >= seen["own"]


def test_assignment_union_returns_each_property_once(store):
    # manager-a manages prop-a1, caretaker-a looks after it
    manager = make_context("manager-a", "org-a", "properties:read:assigned")
    caretaker = make_context("caretaker-a", "org-a", "properties:read:assigned")
    stranger = make_context("viewer-a", "org-a", "properties:read:assigned")

    assert property_ids(store, manager) == ["prop-a1"]
    assert property_ids(store, caretaker) == ["prop-a1"]
    assert property_ids(store, stranger) == []


def test_subject_in_both_relations_sees_property_once(store):
    store.update(PROPERTIES, "prop-a1", {"caretaker_id": "manager-a"})
    context = make_context("manager-a", "org-a", "properties:read:assigned")
    assert property_ids(store, context) == ["prop-a1"]


def test_assigned_scope_stays_inside_organization(store):
    store.update(PROPERTIES, "prop-b1", {"assigned_managers": ["manager-a"]})
    context = make_context("manager-a", "org-a", "properties:read:assigned")
    assert property_ids(store, context) == ["prop-a1"]


def test_own_scope_on_properties_is_empty(store):
    context = make_context("tenant-a", "org-a", "properties:read:own")
    assert property_ids(store, context) == []


def test_no_read_permission_is_an_empty_result(store):
    context = make_context("x", "org-a", "properties:update:organization")
    assert property_ids(store, context) == []
    assert selected_scope(context, "properties") is None


def test_first_matching_scope_wins(store):
    context = make_context("manager-a", "org-a", "properties:read:assigned", "properties:read:organization")
    assert selected_scope(context, "properties") == "organization"
    assert property_ids(store, context) == ["prop-a1", "prop-a2"]


# -----------------------------------------------------
# Rent / payments / invoices (payments family)
# -----------------------------------------------------
def test_rent_assigned_follows_property_assignment(store):
    context = make_context("caretaker-a", "org-a", "payments:read:assigned")
    assert accessible_record_ids(store, context, "rent_records") == {"rent-a1", "rent-a2"}


def test_rent_own_is_the_tenant(store):
    context = make_context("tenant-a", "org-a", "payments:read:own")
    assert accessible_record_ids(store, context, "rent_records") == {"rent-a1"}


def test_payments_own_follow_the_tenant_rent(store):
    context = make_context("tenant-a", "org-a", "payments:read:own")
    assert accessible_record_ids(store, context, "payments") == {"pay-a1", "pay-a2"}


def test_payments_organization_scope(store):
    context = make_context("viewer-a", "org-a", "payments:read:organization")
    assert accessible_record_ids(store, context, "payments") == {"pay-a1", "pay-a2", "pay-a3"}


def test_invoices_assigned_scope(store):
    stranger = make_context("viewer-a", "org-a", "payments:read:assigned")
    assert accessible_record_ids(store, stranger, "invoices") == set()

    caretaker = make_context("caretaker-a", "org-a", "payments:read:assigned")
    assert accessible_record_ids(store, caretaker, "invoices") == {"inv-a1"}


def test_extra_equality_filter(store):
    context = make_context("viewer-a", "org-a", "payments:read:organization")
    records = filter_accessible_records(store, context, "payments", equals={"rent_id": "rent-a2"})
    assert [r["id"] for r in records] == ["pay-a3"]


def test_unknown_resource_type(store):
    with pytest.raises(InvalidRequest):
        filter_accessible_records(store, make_context("x", "org-a"), "spaceships")
