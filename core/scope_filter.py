# core/scope_filter.py

"""
Resource Scope Filter.

Each resource type declares an ordered list of (scope, strategy) pairs,
widest scope first. `filter_accessible_records` walks that list once and
runs the strategy of the first scope the caller holds `read` for; later
strategies never run, so scopes are never merged or accumulated.

Rent records, payments and invoices are gated by the `payments`
permission family; their `assigned` scope resolves through the
properties the caller manages or looks after.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from core.document_store import DocumentStore, Document, INVOICES, PAYMENTS, PROPERTIES, RENT_RECORDS
from core.errors import InvalidRequest
from core.identity import AuthorizationContext
from core.permission_helpers import permission_name
from core.permissions import SCOPE_ALL, SCOPE_ASSIGNED, SCOPE_ORGANIZATION, SCOPE_OWN
from models.property import PropertyRecord


Strategy = Callable[[DocumentStore, AuthorizationContext], List[Document]]
RecordCheck = Callable[[DocumentStore, AuthorizationContext, Document], bool]


@dataclass(frozen=True)
class ResourceSpec:
    name: str
    label: str
    collection: str
    permission_resource: str
    strategies: Tuple[Tuple[str, Strategy], ...]
    is_assigned: RecordCheck
    is_own: RecordCheck


# -----------------------------------------------------
# Shared helpers
# -----------------------------------------------------
def _dedupe(records: List[Document]) -> List[Document]:
    seen: Set[str] = set()
    unique = []
    for record in records:
        if record["id"] in seen:
            continue
        seen.add(record["id"])
        unique.append(record)
    return unique


def _org_filter(context: AuthorizationContext, **extra) -> Dict[str, Any]:
    return {"organization_id": context.organization_id, **extra}


def _all_records(collection: str) -> Strategy:
    def strategy(store, context):
        return store.query(collection)
    return strategy


def _organization_records(collection: str) -> Strategy:
    def strategy(store, context):
        return store.query(collection, equals=_org_filter(context))
    return strategy


def _no_records(store, context):
    return []


def _never(store, context, record):
    return False


# -----------------------------------------------------
# Properties
# -----------------------------------------------------
def assigned_properties(store: DocumentStore, context: AuthorizationContext) -> List[Document]:
    """Union of the manager-list and caretaker relations, each property once."""
    as_manager = store.query(
        PROPERTIES,
        equals=_org_filter(context),
        contains={"assigned_managers": context.subject_id},
    )
    as_caretaker = store.query(
        PROPERTIES,
        equals=_org_filter(context, caretaker_id=context.subject_id),
    )
    return _dedupe(as_manager + as_caretaker)


def _assigned_property_ids(store, context) -> Set[str]:
    return {p["id"] for p in assigned_properties(store, context)}


def _property_is_assigned(store, context, record) -> bool:
    return PropertyRecord.model_validate(record).is_assigned_to(context.subject_id)


# -----------------------------------------------------
# Rent records
# -----------------------------------------------------
def _rent_assigned(store, context):
    property_ids = _assigned_property_ids(store, context)
    if not property_ids:
        return []
    return [r for r in store.query(RENT_RECORDS, equals=_org_filter(context)) if r.get("property_id") in property_ids]


def _rent_own(store, context):
    return store.query(RENT_RECORDS, equals=_org_filter(context, tenant_id=context.subject_id))


def _record_property_is_assigned(store, context, record) -> bool:
    prop = store.get(PROPERTIES, record.get("property_id") or "")
    if prop is None or prop.get("organization_id") != context.organization_id:
        return False
    return _property_is_assigned(store, context, prop)


def _rent_is_own(store, context, record) -> bool:
    return bool(record.get("tenant_id")) and record["tenant_id"] == context.subject_id


# -----------------------------------------------------
# Payments / invoices (linked to rent records)
# -----------------------------------------------------
def _linked_to_rent(collection: str, rent_strategy: Strategy) -> Strategy:
    def strategy(store, context):
        rent_ids = {r["id"] for r in rent_strategy(store, context)}
        if not rent_ids:
            return []
        return [d for d in store.query(collection, equals=_org_filter(context)) if d.get("rent_id") in rent_ids]
    return strategy


def _linked_to_assigned_property(collection: str) -> Strategy:
    def strategy(store, context):
        property_ids = _assigned_property_ids(store, context)
        if not property_ids:
            return []
        return [d for d in store.query(collection, equals=_org_filter(context)) if d.get("property_id") in property_ids]
    return strategy


def _rent_of_record_is_own(store, context, record) -> bool:
    rent = store.get(RENT_RECORDS, record.get("rent_id") or "")
    return rent is not None and _rent_is_own(store, context, rent)


# -----------------------------------------------------
# Registry
# -----------------------------------------------------
RESOURCES: Dict[str, ResourceSpec] = {
    "properties": ResourceSpec(
        name="properties",
        label="Property",
        collection=PROPERTIES,
        permission_resource="properties",
        strategies=(
            (SCOPE_ALL, _all_records(PROPERTIES)),
            (SCOPE_ORGANIZATION, _organization_records(PROPERTIES)),
            (SCOPE_ASSIGNED, assigned_properties),
            # Intentionally empty until tenant → property linkage is designed
            # (rent_records.tenant_id is not yet authoritative for properties)
            (SCOPE_OWN, _no_records),
        ),
        is_assigned=_property_is_assigned,
        is_own=_never,
    ),
    "rent_records": ResourceSpec(
        name="rent_records",
        label="Rent record",
        collection=RENT_RECORDS,
        permission_resource="payments",
        strategies=(
            (SCOPE_ALL, _all_records(RENT_RECORDS)),
            (SCOPE_ORGANIZATION, _organization_records(RENT_RECORDS)),
            (SCOPE_ASSIGNED, _rent_assigned),
            (SCOPE_OWN, _rent_own),
        ),
        is_assigned=_record_property_is_assigned,
        is_own=_rent_is_own,
    ),
    "payments": ResourceSpec(
        name="payments",
        label="Payment",
        collection=PAYMENTS,
        permission_resource="payments",
        strategies=(
            (SCOPE_ALL, _all_records(PAYMENTS)),
            (SCOPE_ORGANIZATION, _organization_records(PAYMENTS)),
            (SCOPE_ASSIGNED, _linked_to_assigned_property(PAYMENTS)),
            (SCOPE_OWN, _linked_to_rent(PAYMENTS, _rent_own)),
        ),
        is_assigned=_record_property_is_assigned,
        is_own=_rent_of_record_is_own,
    ),
    "invoices": ResourceSpec(
        name="invoices",
        label="Invoice",
        collection=INVOICES,
        permission_resource="payments",
        strategies=(
            (SCOPE_ALL, _all_records(INVOICES)),
            (SCOPE_ORGANIZATION, _organization_records(INVOICES)),
            (SCOPE_ASSIGNED, _linked_to_assigned_property(INVOICES)),
            (SCOPE_OWN, _linked_to_rent(INVOICES, _rent_own)),
        ),
        is_assigned=_record_property_is_assigned,
        is_own=_rent_of_record_is_own,
    ),
}


def get_resource(resource_type: str) -> ResourceSpec:
    resource = RESOURCES.get(resource_type)
    if resource is None:
        raise InvalidRequest(f"Unknown resource type: {resource_type}")
    return resource


# -----------------------------------------------------
# Public API
# -----------------------------------------------------
def selected_scope(context: AuthorizationContext, resource_type: str) -> Optional[str]:
    """Scope whose strategy `filter_accessible_records` would run, or None."""
    resource = get_resource(resource_type)
    for scope, _ in resource.strategies:
        if context.has(permission_name(resource.permission_resource, "read", scope)):
            return scope
    return None


def filter_accessible_records(
    store: DocumentStore,
    context: AuthorizationContext,
    resource_type: str,
    equals: Optional[Dict[str, Any]] = None,
) -> List[Document]:
    """
    Records of `resource_type` the caller may enumerate, optionally
    narrowed by extra field equality. Holding no read permission is an
    empty result, not an error.
    """
    resource = get_resource(resource_type)

    records: List[Document] = []
    for scope, strategy in resource.strategies:
        if context.has(permission_name(resource.permission_resource, "read", scope)):
            records = strategy(store, context)
            break

    if equals:
        records = [r for r in records if all(r.get(k) == v for k, v in equals.items())]
    return records


def accessible_record_ids(store: DocumentStore, context: AuthorizationContext, resource_type: str) -> Set[str]:
    return {r["id"] for r in filter_accessible_records(store, context, resource_type)}
