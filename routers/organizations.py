# routers/organizations.py

from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends

from core.config import settings
from core.document_store import DocumentStore, INVITATIONS, ORGANIZATIONS, ROLES, USERS
from core.errors import AccessDenied, Conflict, InvalidRequest, NotFound
from core.guards import require_organization_access
from core.identity import AuthorizationContext
from core.logging_config import logger
from core.permissions import CATALOG, SUPER_ADMIN
from core.roles import (
    bootstrap_organization,
    ensure_grantable,
    ensure_role_name_available,
    validate_permission_names,
)
from core.utils import new_id, sanitize, to_iso, utc_now
from dependencies.auth import get_auth_context, get_document_store, requires_any_permission, requires_permission
from models.enums import InvitationStatus
from models.invitation import InvitationCreate
from models.organization import OrganizationCreate, OrganizationUpdate
from models.role import RoleCreate, RoleUpdate

router = APIRouter(
    prefix="/organizations",
    tags=["Organizations"],
)

# Administering one's own organization means being able to manage its roles
ORG_ADMIN_PERMISSION = "roles:update:organization"


def _load_organization(store: DocumentStore, organization_id: str) -> dict:
    organization = store.get(ORGANIZATIONS, organization_id)
    if organization is None:
        raise NotFound("Organization not found", record_id=organization_id)
    return organization


def _load_role(store: DocumentStore, organization_id: str, role_id: str) -> dict:
    role = store.get(ROLES, role_id)
    if role is None or role.get("organization_id") != organization_id:
        raise NotFound("Role not found", record_id=role_id)
    return role


def _ensure_single_default(store: DocumentStore, organization_id: Optional[str] = None) -> None:
    defaults = [o for o in store.query(ORGANIZATIONS, equals={"is_default": True}) if o["id"] != organization_id]
    if defaults:
        raise Conflict("Another organization is already the default")


# -----------------------------------------------------
# LIST / CREATE (system-wide)
# -----------------------------------------------------
@router.get("", summary="List all organizations")
def list_organizations(
    context: AuthorizationContext = Depends(requires_permission("organizations:read:all")),
    store: DocumentStore = Depends(get_document_store),
):
    return sorted(store.query(ORGANIZATIONS), key=lambda o: o.get("created_at") or "", reverse=True)


@router.post("", status_code=201, summary="Create an organization and its system roles")
def create_organization(
    payload: OrganizationCreate,
    context: AuthorizationContext = Depends(requires_permission("organizations:create:all")),
    store: DocumentStore = Depends(get_document_store),
):
    data = sanitize(payload.model_dump(mode="json"))
    if data.get("is_default"):
        _ensure_single_default(store)
    return bootstrap_organization(store, data, created_by=context.subject_id)


# -----------------------------------------------------
# GET / UPDATE (own organization or global)
# -----------------------------------------------------
@router.get("/{organization_id}", summary="Get an organization")
def get_organization(
    organization_id: str,
    context: AuthorizationContext = Depends(get_auth_context),
    store: DocumentStore = Depends(get_document_store),
):
    require_organization_access(context, organization_id, "organizations:read:all")
    return _load_organization(store, organization_id)


@router.put("/{organization_id}", summary="Update an organization")
def update_organization(
    organization_id: str,
    payload: OrganizationUpdate,
    context: AuthorizationContext = Depends(
        requires_any_permission([ORG_ADMIN_PERMISSION, "organizations:update:all"])
    ),
    store: DocumentStore = Depends(get_document_store),
):
    require_organization_access(context, organization_id, "organizations:update:all")
    _load_organization(store, organization_id)

    updates = sanitize(payload.model_dump(mode="json", exclude_unset=True))
    if not updates:
        raise InvalidRequest("No fields provided to update")
    updates["updated_at"] = to_iso(utc_now())

    updated = store.update(ORGANIZATIONS, organization_id, updates)
    logger.info(f"User {context.subject_id} updated organization {organization_id}")
    return updated


# -----------------------------------------------------
# MEMBERS / INVITATIONS
# -----------------------------------------------------
@router.get("/{organization_id}/users", summary="Members of an organization")
def list_organization_users(
    organization_id: str,
    context: AuthorizationContext = Depends(
        requires_any_permission(["users:read:organization", "users:read:all"])
    ),
    store: DocumentStore = Depends(get_document_store),
):
    require_organization_access(context, organization_id, "users:read:all")

    roles = {r["id"]: r for r in store.query(ROLES, equals={"organization_id": organization_id})}
    users = []
    for user in store.query(USERS, equals={"organization_id": organization_id}):
        role = roles.get(user.get("role_id"))
        users.append({
            **user,
            "role": {"id": role["id"], "name": role.get("name"), "display_name": role.get("display_name")}
            if role else None,
        })
    return sorted(users, key=lambda u: u.get("email") or "")


@router.post("/{organization_id}/invite", status_code=201, summary="Invite someone into the organization")
def invite_user(
    organization_id: str,
    payload: InvitationCreate,
    context: AuthorizationContext = Depends(requires_permission("users:create:organization")),
    store: DocumentStore = Depends(get_document_store),
):
    require_organization_access(context, organization_id, "organizations:update:all")
    _load_organization(store, organization_id)

    role = _load_role(store, organization_id, payload.role_id)
    if role.get("name") == SUPER_ADMIN and not context.is_super_admin:
        raise AccessDenied(record_id=payload.role_id, detail="Only a super admin can grant this role")

    email = payload.email.lower()
    if store.query(USERS, equals={"email": email, "organization_id": organization_id}):
        raise Conflict("User is already a member of this organization")
    pending = store.query(
        INVITATIONS,
        equals={"email": email, "organization_id": organization_id, "status": InvitationStatus.pending.value},
    )
    if pending:
        raise Conflict("A pending invitation already exists for this email")

    now = utc_now()
    invitation_id = new_id()
    document = {
        "email": email,
        "organization_id": organization_id,
        "role_id": payload.role_id,
        "invited_by": context.subject_id,
        "message": payload.message,
        "status": InvitationStatus.pending.value,
        "created_at": to_iso(now),
        "expires_at": to_iso(now + timedelta(days=settings.INVITATION_TTL_DAYS)),
    }
    store.set(INVITATIONS, invitation_id, document)

    logger.info(f"User {context.subject_id} invited {email} to organization {organization_id}")
    return {**document, "id": invitation_id}


# -----------------------------------------------------
# ROLES
# -----------------------------------------------------
@router.get("/{organization_id}/roles", summary="Roles of an organization")
def list_roles(
    organization_id: str,
    context: AuthorizationContext = Depends(
        requires_any_permission(["roles:read:organization", "roles:read:all"])
    ),
    store: DocumentStore = Depends(get_document_store),
):
    require_organization_access(context, organization_id, "roles:read:all")
    roles = store.query(ROLES, equals={"organization_id": organization_id})
    return sorted(roles, key=lambda r: r.get("level") or 0, reverse=True)


@router.post("/{organization_id}/roles", status_code=201, summary="Create a custom role")
def create_role(
    organization_id: str,
    payload: RoleCreate,
    context: AuthorizationContext = Depends(requires_permission("roles:create:organization")),
    store: DocumentStore = Depends(get_document_store),
):
    require_organization_access(context, organization_id, "organizations:update:all")

    if CATALOG.is_builtin_role(payload.name):
        raise Conflict(f"'{payload.name}' is reserved for a system role")
    permissions = validate_permission_names(payload.permissions)
    ensure_grantable(context.effective_permissions, permissions)
    ensure_role_name_available(store, organization_id, payload.name)

    role_id = new_id()
    now = to_iso(utc_now())
    document = {
        **sanitize(payload.model_dump()),
        "permissions": permissions,
        "organization_id": organization_id,
        "is_system_role": False,
        "created_by": context.subject_id,
        "created_at": now,
        "updated_at": now,
    }
    store.set(ROLES, role_id, document)

    logger.info(f"User {context.subject_id} created role {payload.name} in organization {organization_id}")
    return {**document, "id": role_id}


@router.put("/{organization_id}/roles/{role_id}", summary="Update a role")
def update_role(
    organization_id: str,
    role_id: str,
    payload: RoleUpdate,
    context: AuthorizationContext = Depends(requires_permission("roles:update:organization")),
    store: DocumentStore = Depends(get_document_store),
):
    """Role names are fixed; system roles keep their name and cannot be removed."""
    require_organization_access(context, organization_id, "organizations:update:all")
    _load_role(store, organization_id, role_id)

    updates = sanitize(payload.model_dump(exclude_unset=True))
    if not updates:
        raise InvalidRequest("No fields provided to update")
    if updates.get("permissions") is not None:
        updates["permissions"] = validate_permission_names(updates["permissions"])
        ensure_grantable(context.effective_permissions, updates["permissions"])

    updates["updated_at"] = to_iso(utc_now())
    updated = store.update(ROLES, role_id, updates)
    logger.info(f"User {context.subject_id} updated role {role_id}")
    return updated


@router.delete("/{organization_id}/roles/{role_id}", summary="Delete a custom role")
def delete_role(
    organization_id: str,
    role_id: str,
    context: AuthorizationContext = Depends(requires_permission("roles:delete:organization")),
    store: DocumentStore = Depends(get_document_store),
):
    require_organization_access(context, organization_id, "organizations:update:all")
    role = _load_role(store, organization_id, role_id)

    if role.get("is_system_role"):
        raise Conflict("System roles cannot be deleted")
    holders = store.query(USERS, equals={"role_id": role_id})
    if holders:
        raise Conflict(f"Role is still assigned to {len(holders)} user(s)")

    store.delete(ROLES, role_id)
    logger.info(f"User {context.subject_id} deleted role {role_id}")
    return {"success": True, "message": "Role deleted successfully"}
