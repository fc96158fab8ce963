# routers/properties.py

from typing import List

from fastapi import APIRouter, Depends

from core.consistency import delete_property_cascade
from core.document_store import DocumentStore, PROPERTIES, USERS
from core.errors import Conflict, InvalidRequest
from core.guards import check_record_access
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
from models.property import PropertyCreate, PropertyUpdate

router = APIRouter(
    prefix="/properties",
    tags=["Properties"],
)


def _check_assignees(store: DocumentStore, organization_id: str, subject_ids: List[str]) -> None:
    """Managers and caretakers must be members of the property's organization."""
    for uid in subject_ids:
        user = store.get(USERS, uid)
        if user is None or user.get("organization_id") != organization_id:
            raise Conflict(f"User {uid} is not a member of this organization")


# -----------------------------------------------------
# LIST: scoped by the caller's widest read permission
# -----------------------------------------------------
@router.get("", summary="List properties visible to the caller")
def list_properties(
    context: AuthorizationContext = Depends(requires_collection_access("properties")),
    store: DocumentStore = Depends(get_document_store),
):
    records = filter_accessible_records(store, context, "properties")
    return sorted(records, key=lambda p: p.get("name") or "")


# -----------------------------------------------------
# GET ONE
# -----------------------------------------------------
@router.get("/{property_id}", summary="Get a property")
def get_property(
    property_id: str,
    context: AuthorizationContext = Depends(requires_collection_access("properties")),
    store: DocumentStore = Depends(get_document_store),
):
    return check_record_access(store, context, "properties", property_id, "read")


# -----------------------------------------------------
# CREATE
# -----------------------------------------------------
@router.post("", status_code=201, summary="Create a property")
def create_property(
    payload: PropertyCreate,
    context: AuthorizationContext = Depends(requires_permission("properties:create:organization")),
    store: DocumentStore = Depends(get_document_store),
):
    organization_id = context.organization_id
    if organization_id is None:
        raise InvalidRequest("Properties must belong to an organization")

    data = sanitize(payload.model_dump(mode="json"))
    managers = list(dict.fromkeys(data.get("assigned_managers") or []))
    caretaker_id = data.get("caretaker_id")
    _check_assignees(store, organization_id, managers + ([caretaker_id] if caretaker_id else []))

    property_id = new_id()
    now = to_iso(utc_now())
    document = {
        **data,
        "assigned_managers": managers,
        "caretaker_id": caretaker_id,
        "organization_id": organization_id,
        "created_by": context.subject_id,
        "created_at": now,
        "updated_at": now,
    }

    # Property and the assignees' assigned_properties cache move together
    batch = store.batch()
    batch.set(PROPERTIES, property_id, document)
    for uid in dict.fromkeys(managers + ([caretaker_id] if caretaker_id else [])):
        cached = store.get(USERS, uid).get("assigned_properties") or []
        batch.update(USERS, uid, {"assigned_properties": list(dict.fromkeys(cached + [property_id]))})
    batch.commit()

    logger.info(f"User {context.subject_id} created property {property_id}")
    return {**document, "id": property_id}


# -----------------------------------------------------
# UPDATE
# -----------------------------------------------------
@router.put("/{property_id}", summary="Update a property")
def update_property(
    property_id: str,
    payload: PropertyUpdate,
    context: AuthorizationContext = Depends(
        requires_any_permission(["properties:update:organization", "properties:update:assigned"])
    ),
    store: DocumentStore = Depends(get_document_store),
):
    existing = check_record_access(store, context, "properties", property_id, "update")

    updates = sanitize(payload.model_dump(mode="json", exclude_unset=True))
    if not updates:
        raise InvalidRequest("No fields provided to update")
    updates["updated_at"] = to_iso(utc_now())

    updated = store.update(PROPERTIES, property_id, updates)
    logger.info(f"User {context.subject_id} updated property {property_id}")
    return updated or {**existing, **updates}


# -----------------------------------------------------
# DELETE: cascades to rent records, payments, invoices
# -----------------------------------------------------
@router.delete("/{property_id}", summary="Delete a property and its dependent records")
def delete_property(
    property_id: str,
    context: AuthorizationContext = Depends(
        requires_any_permission(["properties:delete:organization", "properties:delete:assigned"])
    ),
    store: DocumentStore = Depends(get_document_store),
):
    check_record_access(store, context, "properties", property_id, "delete")
    removed = delete_property_cascade(store, property_id)
    return {
        "success": True,
        "message": "Property and related data deleted successfully",
        "removed": removed,
    }
