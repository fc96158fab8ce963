# core/consistency.py

"""
Cross-resource consistency rules.

These run after the guard chain passes and before anything is written.
Rent records, payments and invoices denormalize organization_id and
property_id, so every reference is re-checked at write time:

    rent.property       → same organization
    payment.rent        → same organization, same property
    payment.invoice     → same organization, same rent record
    invoice.rent        → same organization, same property
    invoice per (rent, calendar month of issue_date) → at most one
    active rent per (property, space)                → at most one

The last two are check-then-write here and are also enforced by unique
indexes in database/schema.sql, which win any race. Multi-record
deletes are queued on one WriteBatch and committed atomically.
"""

import calendar
import random
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from core.document_store import (
    Document,
    DocumentStore,
    INVOICES,
    PAYMENTS,
    PROPERTIES,
    RENT_RECORDS,
    USERS,
)
from core.errors import Conflict, NotFound
from core.logging_config import logger
from core.utils import parse_datetime, to_iso, utc_now
from models.enums import InvoiceStatus, PaymentStatus, PropertyStatus, RentStatus


def _reject(message: str) -> Conflict:
    logger.info(f"Consistency rule rejected write: {message}")
    return Conflict(message)


# ============================================================
# Reference checks
# ============================================================
def check_property_reference(store: DocumentStore, organization_id: str, property_id: str) -> Document:
    prop = store.get(PROPERTIES, property_id)
    if prop is None:
        raise NotFound("Property not found", record_id=property_id)
    if prop.get("organization_id") != organization_id:
        raise _reject("Property belongs to a different organization")
    return prop


def check_rent_reference(
    store: DocumentStore,
    organization_id: str,
    rent_id: str,
    property_id: str,
) -> Document:
    rent = store.get(RENT_RECORDS, rent_id)
    if rent is None:
        raise NotFound("Rent record not found", record_id=rent_id)
    if rent.get("organization_id") != organization_id:
        raise _reject("Rent record belongs to a different organization")
    if rent.get("property_id") != property_id:
        raise _reject("Invalid rent record for this property")
    return rent


def check_invoice_reference(
    store: DocumentStore,
    organization_id: str,
    invoice_id: str,
    rent_id: str,
) -> Document:
    invoice = store.get(INVOICES, invoice_id)
    if invoice is None:
        raise NotFound("Invoice not found", record_id=invoice_id)
    if invoice.get("organization_id") != organization_id:
        raise _reject("Invoice belongs to a different organization")
    if invoice.get("rent_id") != rent_id:
        raise _reject("Invoice does not belong to this rent record")
    return invoice


def check_payment_references(
    store: DocumentStore,
    organization_id: str,
    property_id: str,
    rent_id: str,
    invoice_id: Optional[str] = None,
) -> Tuple[Document, Document, Optional[Document]]:
    prop = check_property_reference(store, organization_id, property_id)
    rent = check_rent_reference(store, organization_id, rent_id, property_id)
    invoice = check_invoice_reference(store, organization_id, invoice_id, rent_id) if invoice_id else None
    return prop, rent, invoice


# ============================================================
# Uniqueness rules
# ============================================================
def check_space_available(
    store: DocumentStore,
    property_id: str,
    space_id: Optional[str],
    exclude_rent_id: Optional[str] = None,
) -> None:
    """Whole-property rent records (no space_id) are not restricted."""
    if not space_id:
        return

    active = store.query(
        RENT_RECORDS,
        equals={"property_id": property_id, "space_id": space_id, "status": RentStatus.active.value},
    )
    if any(r["id"] != exclude_rent_id for r in active):
        raise _reject("This space already has an active tenant assignment")


def check_invoice_month_available(
    store: DocumentStore,
    organization_id: str,
    rent_id: str,
    issue_date: datetime,
    exclude_invoice_id: Optional[str] = None,
) -> None:
    """One invoice per rent record per calendar month (UTC) of issue date."""
    issue_date = parse_datetime(issue_date).astimezone(timezone.utc)
    existing = store.query(INVOICES, equals={"rent_id": rent_id, "organization_id": organization_id})

    for invoice in existing:
        if invoice["id"] == exclude_invoice_id:
            continue
        other = parse_datetime(invoice.get("issue_date"))
        if other is None:
            continue
        other = other.astimezone(timezone.utc)
        if (other.year, other.month) == (issue_date.year, issue_date.month):
            month = calendar.month_name[issue_date.month]
            raise _reject(
                f"Invoice already exists for {month} {issue_date.year}. "
                "Only one invoice per month is allowed."
            )


# ============================================================
# Invoices
# ============================================================
def generate_invoice_number(now: Optional[datetime] = None) -> str:
    """INV-YYYYMMDD-NNNN"""
    now = now or utc_now()
    return f"INV-{now:%Y%m%d}-{random.randint(0, 9999):04d}"


def invoice_paid_amount(store: DocumentStore, invoice_id: str) -> float:
    payments = store.query(
        PAYMENTS,
        equals={"invoice_id": invoice_id, "status": PaymentStatus.completed.value},
    )
    return sum(float(p.get("amount") or 0) for p in payments)


def derive_invoice_status(invoice: Document, paid_amount: float, now: Optional[datetime] = None) -> str:
    """Cancelled is never overridden; otherwise paid > partially_paid > overdue > pending."""
    status = invoice.get("status") or InvoiceStatus.pending.value
    if status == InvoiceStatus.cancelled.value:
        return status

    amount = float(invoice.get("amount") or 0)
    if paid_amount >= amount:
        return InvoiceStatus.paid.value
    if paid_amount > 0:
        return InvoiceStatus.partially_paid.value

    due = parse_datetime(invoice.get("due_date"))
    if due and due < (now or utc_now()):
        return InvoiceStatus.overdue.value
    return InvoiceStatus.pending.value


def with_invoice_totals(store: DocumentStore, invoice: Document, now: Optional[datetime] = None) -> Document:
    paid = invoice_paid_amount(store, invoice["id"])
    return {
        **invoice,
        "paid_amount": round(paid, 2),
        "remaining_amount": round(float(invoice.get("amount") or 0) - paid, 2),
        "status": derive_invoice_status(invoice, paid, now),
    }


def ensure_invoice_editable(invoice: Document) -> None:
    if invoice.get("status") == InvoiceStatus.paid.value:
        raise _reject("Cannot update a paid invoice")


def ensure_invoice_deletable(store: DocumentStore, invoice_id: str) -> None:
    if store.query(PAYMENTS, equals={"invoice_id": invoice_id}):
        raise _reject("Cannot delete invoice with existing payments")


# ============================================================
# Cascades (one atomic batch each)
# ============================================================
def _ids(records: List[Document]) -> List[str]:
    return list(dict.fromkeys(r["id"] for r in records))


def delete_property_cascade(store: DocumentStore, property_id: str) -> Dict[str, int]:
    """Property + its rent records + their payments and invoices, all or nothing."""
    rent_ids = _ids(store.query(RENT_RECORDS, equals={"property_id": property_id}))

    payments = store.query(PAYMENTS, equals={"property_id": property_id})
    invoices = store.query(INVOICES, equals={"property_id": property_id})
    for rent_id in rent_ids:
        payments += store.query(PAYMENTS, equals={"rent_id": rent_id})
        invoices += store.query(INVOICES, equals={"rent_id": rent_id})
    payment_ids = _ids(payments)
    invoice_ids = _ids(invoices)
    cached_by = store.query(USERS, contains={"assigned_properties": property_id})

    batch = store.batch()
    for payment_id in payment_ids:
        batch.delete(PAYMENTS, payment_id)
    for invoice_id in invoice_ids:
        batch.delete(INVOICES, invoice_id)
    for rent_id in rent_ids:
        batch.delete(RENT_RECORDS, rent_id)
    for user in cached_by:
        batch.update(USERS, user["id"], {
            "assigned_properties": [p for p in user.get("assigned_properties") or [] if p != property_id],
        })
    batch.delete(PROPERTIES, property_id)
    batch.commit()

    counts = {"rent_records": len(rent_ids), "payments": len(payment_ids), "invoices": len(invoice_ids)}
    logger.info(f"Deleted property {property_id} with cascade {counts}")
    return counts


def delete_rent_cascade(store: DocumentStore, rent: Document) -> Dict[str, int]:
    """Rent record + its payments and invoices; the property goes back to vacant."""
    rent_id = rent["id"]
    payment_ids = _ids(store.query(PAYMENTS, equals={"rent_id": rent_id}))
    invoice_ids = _ids(store.query(INVOICES, equals={"rent_id": rent_id}))

    batch = store.batch()
    for payment_id in payment_ids:
        batch.delete(PAYMENTS, payment_id)
    for invoice_id in invoice_ids:
        batch.delete(INVOICES, invoice_id)
    batch.delete(RENT_RECORDS, rent_id)
    if rent.get("property_id") and store.get(PROPERTIES, rent["property_id"]) is not None:
        batch.update(PROPERTIES, rent["property_id"], {
            "status": PropertyStatus.vacant.value,
            "updated_at": to_iso(utc_now()),
        })
    batch.commit()

    counts = {"payments": len(payment_ids), "invoices": len(invoice_ids)}
    logger.info(f"Deleted rent record {rent_id} with cascade {counts}")
    return counts
