# core/guards.py

"""
Access Guard Chain.

Fixed order for every gated operation:
    1. authenticated           → Unauthenticated
    2. organization membership → NoOrganization (unless exempt)
    3. permission(s) held      → Forbidden
    4. record-level match      → NotFound / AccessDenied (single-record ops)

Guards only read. They never write, and every failure propagates
unchanged to the caller.
"""

from typing import List, Optional, Sequence, Union

from core.document_store import Document, DocumentStore
from core.errors import AccessDenied, Forbidden, NoOrganization, NotFound, Unauthenticated
from core.identity import AuthorizationContext
from core.logging_config import logger
from core.permission_helpers import is_global_scope, permission_name, widest_scope
from core.permissions import CATALOG, SCOPES, SCOPE_ALL, SCOPE_ASSIGNED, SCOPE_ORGANIZATION, SCOPE_OWN
from core.scope_filter import get_resource
from models.property import PropertyRecord


Required = Union[str, Sequence[str]]


def _as_list(required: Required) -> List[str]:
    return [required] if isinstance(required, str) else list(required)


# -----------------------------------------------------
# 1. Authentication
# -----------------------------------------------------
def require_authenticated(context: Optional[AuthorizationContext]) -> AuthorizationContext:
    if context is None:
        logger.info("Guard: unauthenticated request")
        raise Unauthenticated()
    return context


# -----------------------------------------------------
# 2. Organization membership
# -----------------------------------------------------
def is_organization_exempt(context: AuthorizationContext, required: Required) -> bool:
    """
    System-wide operations (every required permission is global scope), or
    callers holding a required global-scope permission, skip the check.
    """
    names = _as_list(required)
    if not names:
        return False
    if all(is_global_scope(p) for p in names):
        return True
    return any(is_global_scope(p) and context.has(p) for p in names)


def require_organization(context: AuthorizationContext, required: Required = ()) -> None:
    if context.organization_id is not None:
        return
    if is_organization_exempt(context, required):
        return

    logger.info(f"Guard: subject {context.subject_id} has no organization")
    raise NoOrganization()


# -----------------------------------------------------
# 3. Permissions
# -----------------------------------------------------
def require_permission(context: AuthorizationContext, permission: str) -> None:
    if context.has(permission):
        return

    logger.info(f"Guard: subject {context.subject_id} lacks {permission}")
    raise Forbidden(permission)


def require_any_permission(context: AuthorizationContext, permissions: Sequence[str]) -> None:
    names = list(permissions)
    if context.has_any(names):
        return

    logger.info(f"Guard: subject {context.subject_id} lacks any of {names}")
    raise Forbidden(names)


def guard(context: Optional[AuthorizationContext], required: Required) -> AuthorizationContext:
    """Steps 1-3 in order; a string is one exact permission, a list is any-of."""
    ctx = require_authenticated(context)
    require_organization(ctx, required)

    if isinstance(required, str):
        require_permission(ctx, required)
    else:
        require_any_permission(ctx, required)
    return ctx


# -----------------------------------------------------
# 4. Record level
# -----------------------------------------------------
def _deny(context: AuthorizationContext, label: str, record_id: str) -> AccessDenied:
    logger.info(f"Guard: subject {context.subject_id} denied {label.lower()} {record_id}")
    return AccessDenied(record_id=record_id, detail=f"Access denied to this {label.lower()}")


def check_record_access(
    store: DocumentStore,
    context: AuthorizationContext,
    resource_type: str,
    record_id: str,
    action: str = "read",
) -> Document:
    """
    Load one record and verify the caller may `action` it at the widest
    scope they hold. Returns the record.

    • all scope: any organization
    • organization: record.organization_id must match
    • assigned: organization match AND caller in the assignment relation
    • own: organization match AND caller is the end-user
    """
    resource = get_resource(resource_type)
    scope = widest_scope(context.effective_permissions, resource.permission_resource, action)

    if scope is None:
        required = [
            permission_name(resource.permission_resource, action, s)
            for s in SCOPES
            if permission_name(resource.permission_resource, action, s) in CATALOG
        ]
        logger.info(f"Guard: subject {context.subject_id} lacks {resource.permission_resource}:{action}")
        raise Forbidden(required)

    record = store.get(resource.collection, record_id)
    if record is None:
        raise NotFound(f"{resource.label} not found", record_id=record_id)

    if scope == SCOPE_ALL:
        return record

    if context.organization_id is None or record.get("organization_id") != context.organization_id:
        raise _deny(context, resource.label, record_id)

    if scope == SCOPE_ASSIGNED and not resource.is_assigned(store, context, record):
        raise _deny(context, resource.label, record_id)

    if scope == SCOPE_OWN and not resource.is_own(store, context, record):
        raise _deny(context, resource.label, record_id)

    return record


def require_organization_access(
    context: AuthorizationContext,
    organization_id: str,
    global_permission: str = "organizations:read:all",
) -> None:
    """Own organization, or any organization with the global permission."""
    if context.has(global_permission):
        return
    if context.organization_id is None or context.organization_id != organization_id:
        logger.info(f"Guard: subject {context.subject_id} denied organization {organization_id}")
        raise AccessDenied(record_id=organization_id, detail="Access denied to this organization")


def check_property_scope(
    context: AuthorizationContext,
    prop: Document,
    resource: str,
    action: str,
) -> None:
    """
    Writes that hang off a property (rent, payments, invoices) at
    `assigned` scope are limited to properties the caller is assigned to.
    """
    scope = widest_scope(context.effective_permissions, resource, action)
    if scope is None:
        raise Forbidden(permission_name(resource, action, SCOPE_ORGANIZATION))
    if scope == SCOPE_ALL:
        return

    if context.organization_id is None or prop.get("organization_id") != context.organization_id:
        raise _deny(context, "Property", prop.get("id"))

    if scope == SCOPE_ASSIGNED and not PropertyRecord.model_validate(prop).is_assigned_to(context.subject_id):
        raise _deny(context, "Property", prop.get("id"))

    if scope == SCOPE_OWN:
        raise _deny(context, "Property", prop.get("id"))
