# routers/rent.py

from fastapi import APIRouter, Depends

from core.consistency import check_property_reference, check_space_available, delete_rent_cascade
from core.document_store import DocumentStore, PROPERTIES, RENT_RECORDS
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
from models.enums import PropertyStatus, RentStatus
from models.rent import RentCreate, RentUpdate

# Rent records are gated by the payments permission family
router = APIRouter(
    prefix="/rent",
    tags=["Rent"],
)


def _newest_first(records):
    return sorted(records, key=lambda r: r.get("created_at") or "", reverse=True)


# -----------------------------------------------------
# LIST
# -----------------------------------------------------
@router.get("", summary="List rent records visible to the caller")
def list_rent_records(
    context: AuthorizationContext = Depends(requires_collection_access("payments")),
    store: DocumentStore = Depends(get_document_store),
):
    return _newest_first(filter_accessible_records(store, context, "rent_records"))


@router.get("/property/{property_id}", summary="List rent records for one property")
def list_rent_for_property(
    property_id: str,
    context: AuthorizationContext = Depends(requires_collection_access("payments")),
    store: DocumentStore = Depends(get_document_store),
):
    # The property itself must be visible before its tenants are
    check_record_access(store, context, "properties", property_id, "read")
    records = filter_accessible_records(store, context, "rent_records", equals={"property_id": property_id})
    return _newest_first(records)


# -----------------------------------------------------
# GET ONE
# -----------------------------------------------------
@router.get("/{rent_id}", summary="Get a rent record")
def get_rent_record(
    rent_id: str,
    context: AuthorizationContext = Depends(requires_collection_access("payments")),
    store: DocumentStore = Depends(get_document_store),
):
    return check_record_access(store, context, "rent_records", rent_id, "read")


# -----------------------------------------------------
# CREATE: property flips to occupied in the same batch
# -----------------------------------------------------
@router.post("", status_code=201, summary="Create a rent record")
def create_rent_record(
    payload: RentCreate,
    context: AuthorizationContext = Depends(
        requires_any_permission(["payments:create:organization", "payments:create:assigned"])
    ),
    store: DocumentStore = Depends(get_document_store),
):
    organization_id = context.organization_id
    if organization_id is None:
        raise InvalidRequest("Rent records must belong to an organization")

    prop = check_property_reference(store, organization_id, payload.property_id)
    check_property_scope(context, prop, "payments", "create")

    data = sanitize(payload.model_dump(mode="json"))
    # Any new record on a space blocks while another tenancy there is active
    check_space_available(store, payload.property_id, data.get("space_id"))

    rent_id = new_id()
    now = to_iso(utc_now())
    document = {
        **data,
        "organization_id": organization_id,
        "created_by": context.subject_id,
        "created_at": now,
        "updated_at": now,
    }

    batch = store.batch()
    batch.set(RENT_RECORDS, rent_id, document)
    if document["status"] == RentStatus.active.value:
        batch.update(PROPERTIES, payload.property_id, {
            "status": PropertyStatus.occupied.value,
            "updated_at": now,
        })
    batch.commit()

    logger.info(f"User {context.subject_id} created rent record {rent_id} on property {payload.property_id}")
    return {**document, "id": rent_id}


# -----------------------------------------------------
# UPDATE
# -----------------------------------------------------
@router.put("/{rent_id}", summary="Update a rent record")
def update_rent_record(
    rent_id: str,
    payload: RentUpdate,
    context: AuthorizationContext = Depends(
        requires_any_permission(["payments:update:organization", "payments:update:assigned"])
    ),
    store: DocumentStore = Depends(get_document_store),
):
    existing = check_record_access(store, context, "rent_records", rent_id, "update")

    updates = sanitize(payload.model_dump(mode="json", exclude_unset=True))
    if not updates:
        raise InvalidRequest("No fields provided to update")

    merged = {**existing, **updates}
    space_changed = "space_id" in updates or "status" in updates
    if space_changed and merged.get("status") == RentStatus.active.value:
        check_space_available(store, existing["property_id"], merged.get("space_id"), exclude_rent_id=rent_id)

    updates["updated_at"] = to_iso(utc_now())
    updated = store.update(RENT_RECORDS, rent_id, updates)
    logger.info(f"User {context.subject_id} updated rent record {rent_id}")
    return updated or {**merged, **updates}


# -----------------------------------------------------
# DELETE: payments + invoices go with it
# -----------------------------------------------------
@router.delete("/{rent_id}", summary="Delete a rent record and its payments and invoices")
def delete_rent_record(
    rent_id: str,
    context: AuthorizationContext = Depends(requires_permission("payments:delete:organization")),
    store: DocumentStore = Depends(get_document_store),
):
    rent = check_record_access(store, context, "rent_records", rent_id, "delete")
    removed = delete_rent_cascade(store, rent)
    return {
        "success": True,
        "message": "Rent record deleted successfully",
        "removed": removed,
    }
