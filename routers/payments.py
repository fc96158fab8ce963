# routers/payments.py

from typing import Optional

from fastapi import APIRouter, Depends, Query

from core.consistency import check_payment_references
from core.document_store import DocumentStore, PAYMENTS
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
from models.enums import PaymentStatus
from models.payment import PaymentCreate, PaymentUpdate

router = APIRouter(
    prefix="/payments",
    tags=["Payments"],
)

REFERENCE_FIELDS = ("property_id", "rent_id", "invoice_id")


# -----------------------------------------------------
# LIST
# -----------------------------------------------------
@router.get("", summary="List payments visible to the caller")
def list_payments(
    property_id: Optional[str] = Query(None),
    rent_id: Optional[str] = Query(None),
    status: Optional[PaymentStatus] = Query(None),
    context: AuthorizationContext = Depends(requires_collection_access("payments")),
    store: DocumentStore = Depends(get_document_store),
):
    filters = {}
    if property_id:
        filters["property_id"] = property_id
    if rent_id:
        filters["rent_id"] = rent_id
    if status:
        filters["status"] = status.value

    records = filter_accessible_records(store, context, "payments", equals=filters)
    return sorted(records, key=lambda p: p.get("payment_date") or "", reverse=True)


# -----------------------------------------------------
# GET ONE
# -----------------------------------------------------
@router.get("/{payment_id}", summary="Get a payment")
def get_payment(
    payment_id: str,
    context: AuthorizationContext = Depends(requires_collection_access("payments")),
    store: DocumentStore = Depends(get_document_store),
):
    return check_record_access(store, context, "payments", payment_id, "read")


# -----------------------------------------------------
# CREATE
# -----------------------------------------------------
@router.post("", status_code=201, summary="Record a payment")
def create_payment(
    payload: PaymentCreate,
    context: AuthorizationContext = Depends(
        requires_any_permission(["payments:create:organization", "payments:create:assigned"])
    ),
    store: DocumentStore = Depends(get_document_store),
):
    organization_id = context.organization_id
    if organization_id is None:
        raise InvalidRequest("Payments must belong to an organization")

    prop, _, _ = check_payment_references(
        store, organization_id, payload.property_id, payload.rent_id, payload.invoice_id
    )
    check_property_scope(context, prop, "payments", "create")

    payment_id = new_id()
    now = to_iso(utc_now())
    document = {
        **sanitize(payload.model_dump(mode="json")),
        "organization_id": organization_id,
        "created_by": context.subject_id,
        "created_at": now,
        "updated_at": now,
    }
    store.set(PAYMENTS, payment_id, document)

    logger.info(f"User {context.subject_id} recorded payment {payment_id} of {payload.amount}")
    return {**document, "id": payment_id}


# -----------------------------------------------------
# UPDATE: references re-checked when any of them changes
# -----------------------------------------------------
@router.put("/{payment_id}", summary="Update a payment")
def update_payment(
    payment_id: str,
    payload: PaymentUpdate,
    context: AuthorizationContext = Depends(
        requires_any_permission(["payments:update:organization", "payments:update:assigned"])
    ),
    store: DocumentStore = Depends(get_document_store),
):
    existing = check_record_access(store, context, "payments", payment_id, "update")

    updates = sanitize(payload.model_dump(mode="json", exclude_unset=True))
    if not updates:
        raise InvalidRequest("No fields provided to update")

    if any(field in updates for field in REFERENCE_FIELDS):
        merged = {**existing, **updates}
        prop, _, _ = check_payment_references(
            store,
            existing["organization_id"],
            merged.get("property_id"),
            merged.get("rent_id"),
            merged.get("invoice_id"),
        )
        check_property_scope(context, prop, "payments", "update")

    updates["updated_at"] = to_iso(utc_now())
    updated = store.update(PAYMENTS, payment_id, updates)
    logger.info(f"User {context.subject_id} updated payment {payment_id}")
    return updated or {**existing, **updates}


# -----------------------------------------------------
# DELETE
# -----------------------------------------------------
@router.delete("/{payment_id}", summary="Delete a payment")
def delete_payment(
    payment_id: str,
    context: AuthorizationContext = Depends(requires_permission("payments:delete:organization")),
    store: DocumentStore = Depends(get_document_store),
):
    check_record_access(store, context, "payments", payment_id, "delete")
    store.delete(PAYMENTS, payment_id)
    logger.info(f"User {context.subject_id} deleted payment {payment_id}")
    return {"success": True, "message": "Payment deleted successfully"}
