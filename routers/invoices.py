# routers/invoices.py

from typing import Optional

from fastapi import APIRouter, Depends, Query

from core.consistency import (
    check_invoice_month_available,
    check_property_reference,
    check_rent_reference,
    ensure_invoice_deletable,
    ensure_invoice_editable,
    generate_invoice_number,
    with_invoice_totals,
)
from core.document_store import DocumentStore, INVOICES
from core.errors import InvalidRequest
from core.guards import check_property_scope, check_record_access
from core.identity import AuthorizationContext
from core.logging_config import logger
from core.scope_filter import filter_accessible_records
from core.utils import new_id, sanitize, to_iso, utc_now
from dependencies.auth import (
    get_document_store,
    requires_any_permission,
    requires_collection_access,
    requires_permission,
)
from models.invoice import InvoiceCreate, InvoiceUpdate

# Invoices are gated by the payments permission family
router = APIRouter(
    prefix="/invoices",
    tags=["Invoices"],
)


# -----------------------------------------------------
# LIST: each invoice carries paid / remaining totals
# -----------------------------------------------------
@router.get("", summary="List invoices visible to the caller")
def list_invoices(
    property_id: Optional[str] = Query(None),
    rent_id: Optional[str] = Query(None),
    context: AuthorizationContext = Depends(requires_collection_access("payments")),
    store: DocumentStore = Depends(get_document_store),
):
    filters = {}
    if property_id:
        filters["property_id"] = property_id
    if rent_id:
        filters["rent_id"] = rent_id

    now = utc_now()
    invoices = [
        with_invoice_totals(store, invoice, now)
        for invoice in filter_accessible_records(store, context, "invoices", equals=filters)
    ]
    return sorted(invoices, key=lambda i: i.get("issue_date") or "", reverse=True)


# -----------------------------------------------------
# GET ONE
# -----------------------------------------------------
@router.get("/{invoice_id}", summary="Get an invoice")
def get_invoice(
    invoice_id: str,
    context: AuthorizationContext = Depends(requires_collection_access("payments")),
    store: DocumentStore = Depends(get_document_store),
):
    invoice = check_record_access(store, context, "invoices", invoice_id, "read")
    return with_invoice_totals(store, invoice)


# -----------------------------------------------------
# CREATE: one invoice per rent record per month
# -----------------------------------------------------
@router.post("", status_code=201, summary="Create an invoice")
def create_invoice(
    payload: InvoiceCreate,
    context: AuthorizationContext = Depends(
        requires_any_permission(["payments:create:organization", "payments:create:assigned"])
    ),
    store: DocumentStore = Depends(get_document_store),
):
    organization_id = context.organization_id
    if organization_id is None:
        raise InvalidRequest("Invoices must belong to an organization")

    prop = check_property_reference(store, organization_id, payload.property_id)
    check_rent_reference(store, organization_id, payload.rent_id, payload.property_id)
    check_property_scope(context, prop, "payments", "create")

    now = utc_now()
    issue_date = payload.issue_date or now
    check_invoice_month_available(store, organization_id, payload.rent_id, issue_date)

    invoice_id = new_id()
    document = {
        **sanitize(payload.model_dump(mode="json")),
        "invoice_number": payload.invoice_number or generate_invoice_number(now),
        "issue_date": to_iso(issue_date),
        "due_date": to_iso(payload.due_date),
        "organization_id": organization_id,
        "created_by": context.subject_id,
        "created_at": to_iso(now),
        "updated_at": to_iso(now),
    }
    store.set(INVOICES, invoice_id, document)

    logger.info(f"User {context.subject_id} created invoice {document['invoice_number']} ({invoice_id})")
    return {**document, "id": invoice_id}


# -----------------------------------------------------
# UPDATE: paid invoices are frozen
# -----------------------------------------------------
@router.put("/{invoice_id}", summary="Update an invoice")
def update_invoice(
    invoice_id: str,
    payload: InvoiceUpdate,
    context: AuthorizationContext = Depends(
        requires_any_permission(["payments:update:organization", "payments:update:assigned"])
    ),
    store: DocumentStore = Depends(get_document_store),
):
    existing = check_record_access(store, context, "invoices", invoice_id, "update")
    ensure_invoice_editable(with_invoice_totals(store, existing))

    updates = sanitize(payload.model_dump(mode="json", exclude_unset=True))
    if not updates:
        raise InvalidRequest("No fields provided to update")

    number = updates.get("invoice_number")
    if number and existing.get("invoice_number") and number != existing["invoice_number"]:
        raise InvalidRequest("Invoice number cannot be changed once set")

    if updates.get("issue_date"):
        check_invoice_month_available(
            store,
            existing["organization_id"],
            existing["rent_id"],
            updates["issue_date"],
            exclude_invoice_id=invoice_id,
        )

    updates["updated_at"] = to_iso(utc_now())
    updated = store.update(INVOICES, invoice_id, updates)
    logger.info(f"User {context.subject_id} updated invoice {invoice_id}")
    return with_invoice_totals(store, updated or {**existing, **updates})


# -----------------------------------------------------
# DELETE: refused while payments reference it
# -----------------------------------------------------
@router.delete("/{invoice_id}", summary="Delete an invoice")
def delete_invoice(
    invoice_id: str,
    context: AuthorizationContext = Depends(requires_permission("payments:delete:organization")),
    store: DocumentStore = Depends(get_document_store),
):
    check_record_access(store, context, "invoices", invoice_id, "delete")
    ensure_invoice_deletable(store, invoice_id)
    store.delete(INVOICES, invoice_id)
    logger.info(f"User {context.subject_id} deleted invoice {invoice_id}")
    return {"success": True, "message": "Invoice deleted successfully"}
