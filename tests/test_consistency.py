# tests/test_consistency.py

"""
Tests for cross-resource consistency rules and cascades.
"""

from datetime import datetime, timedelta, timezone

import pytest

from core.consistency import (
    check_invoice_month_available,
    check_payment_references,
    check_property_reference,
    check_space_available,
    delete_property_cascade,
    delete_rent_cascade,
    derive_invoice_status,
    generate_invoice_number,
    with_invoice_totals,
)
from core.document_store import INVOICES, PAYMENTS, PROPERTIES, RENT_RECORDS, USERS
from core.errors import Conflict, NotFound, StoreError


def utc(year, month, day):
    return datetime(year, month, day, tzinfo=timezone.utc)


# -----------------------------------------------------
# References
# -----------------------------------------------------
def test_property_reference_in_other_organization_conflicts(store):
    with pytest.raises(Conflict):
        check_property_reference(store, "org-a", "prop-b1")


def test_property_reference_missing(store):
    with pytest.raises(NotFound):
        check_property_reference(store, "org-a", "nope")


def test_payment_rent_must_match_property(store):
    with pytest.raises(Conflict):
        check_payment_references(store, "org-a", "prop-a2", "rent-a1")


def test_payment_invoice_must_match_rent(store):
    with pytest.raises(Conflict):
        check_payment_references(store, "org-a", "prop-a1", "rent-a2", "inv-a1")


def test_payment_references_ok(store):
    prop, rent, invoice = check_payment_references(store, "org-a", "prop-a1", "rent-a1", "inv-a1")
    assert (prop["id"], rent["id"], invoice["id"]) == ("prop-a1", "rent-a1", "inv-a1")


# -----------------------------------------------------
# Uniqueness
# -----------------------------------------------------
def test_active_space_cannot_be_double_booked(store):
    with pytest.raises(Conflict):
        check_space_available(store, "prop-a1", "unit-1")


def test_space_check_ignores_the_record_being_edited(store):
    check_space_available(store, "prop-a1", "unit-1", exclude_rent_id="rent-a1")


def test_terminated_rent_frees_the_space(store):
    store.update(RENT_RECORDS, "rent-a1", {"status": "terminated"})
    check_space_available(store, "prop-a1", "unit-1")


def test_whole_property_rent_is_not_restricted(store):
    check_space_available(store, "prop-a1", None)


def test_second_invoice_in_same_month_conflicts(store):
    with pytest.raises(Conflict) as exc:
        check_invoice_month_available(store, "org-a", "rent-a1", utc(2025, 3, 28))
    assert "March 2025" in exc.value.detail


def test_invoice_in_next_month_is_allowed(store):
    check_invoice_month_available(store, "org-a", "rent-a1", utc(2025, 4, 1))


def test_invoice_month_compared_in_utc(store):
    # 01:00 on April 1st at +05:00 is still March 31st in UTC
    early_april_local = datetime(2025, 4, 1, 1, 0, tzinfo=timezone(timedelta(hours=5)))
    with pytest.raises(Conflict) as exc:
        check_invoice_month_available(store, "org-a", "rent-a1", early_april_local)
    assert "March 2025" in exc.value.detail

    late_march_local = datetime(2025, 3, 31, 22, 0, tzinfo=timezone(timedelta(hours=-5)))
    check_invoice_month_available(store, "org-a", "rent-a1", late_march_local)


def test_invoice_month_scoped_to_rent_record(store):
    check_invoice_month_available(store, "org-a", "rent-a2", utc(2025, 3, 5))


# -----------------------------------------------------
# Invoices
# -----------------------------------------------------
def test_invoice_number_format():
    assert generate_invoice_number(utc(2025, 3, 5)).startswith("INV-20250305-")
    assert len(generate_invoice_number(utc(2025, 3, 5))) == len("INV-20250305-0000")


@pytest.mark.parametrize(
    "status, paid, now, expected",
    [
        ("pending", 1000, utc(2025, 3, 10), "paid"),
        ("pending", 250, utc(2025, 3, 10), "partially_paid"),
        ("pending", 0, utc(2025, 4, 10), "overdue"),
        ("pending", 0, utc(2025, 3, 10), "pending"),
        ("cancelled", 1000, utc(2025, 4, 10), "cancelled"),
    ],
)
def test_derive_invoice_status(status, paid, now, expected):
    invoice = {"amount": 1000, "due_date": "2025-03-31T00:00:00+00:00", "status": status}
    assert derive_invoice_status(invoice, paid, now) == expected


def test_invoice_totals(store):
    invoice = with_invoice_totals(store, store.get(INVOICES, "inv-a1"), utc(2025, 3, 15))
    assert invoice["paid_amount"] == 500
    assert invoice["remaining_amount"] == 500
    assert invoice["status"] == "partially_paid"


# -----------------------------------------------------
# Cascades
# -----------------------------------------------------
def test_property_cascade_removes_everything_below_it(store):
    store.update(USERS, "manager-a", {"assigned_properties": ["prop-a1", "prop-a2"]})

    counts = delete_property_cascade(store, "prop-a1")

    assert counts == {"rent_records": 2, "payments": 3, "invoices": 1}
    assert store.get(PROPERTIES, "prop-a1") is None
    assert store.count(RENT_RECORDS, property_id="prop-a1") == 0
    assert store.count(PAYMENTS, property_id="prop-a1") == 0
    assert store.count(INVOICES, property_id="prop-a1") == 0
    assert store.get(USERS, "manager-a")["assigned_properties"] == ["prop-a2"]
    # One atomic batch
    assert len(store.commits) == 1


def test_property_cascade_is_all_or_nothing(store):
    store.fail_commits = True

    with pytest.raises(StoreError):
        delete_property_cascade(store, "prop-a1")

    assert store.get(PROPERTIES, "prop-a1") is not None
    assert store.count(RENT_RECORDS, property_id="prop-a1") == 2
    assert store.count(PAYMENTS, property_id="prop-a1") == 3


def test_rent_cascade_frees_the_property(store):
    counts = delete_rent_cascade(store, store.get(RENT_RECORDS, "rent-a1"))

    assert counts == {"payments": 2, "invoices": 1}
    assert store.get(RENT_RECORDS, "rent-a1") is None
    assert store.count(PAYMENTS, rent_id="rent-a1") == 0
    assert store.get(PAYMENTS, "pay-a3") is not None
    assert store.get(PROPERTIES, "prop-a1")["status"] == "vacant"
