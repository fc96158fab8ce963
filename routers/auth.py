# routers/auth.py

from fastapi import APIRouter, Depends

from core.document_store import ACCESS_REQUESTS, DocumentStore, ORGANIZATIONS, ROLES, USERS
from core.errors import AccessDenied, Conflict, InvalidRequest, NotFound
from core.guards import require_authenticated
from core.identity import AuthorizationContext
from core.logging_config import logger
from core.permissions import SUPER_ADMIN
from core.utils import new_id, sanitize, to_iso, utc_now
from dependencies.auth import get_auth_context, get_document_store, requires_any_permission
from models.access_request import AccessRequestCreate, AccessRequestResponse
from models.enums import AccessRequestStatus, OrganizationStatus, UserStatus
from models.user import ProfileUpdate


router = APIRouter(
    prefix="/auth",
    tags=["Auth"],
)


# ============================================================
# PROFILE
# ============================================================
@router.get("/profile", summary="Current subject with organization, role and permissions")
def read_profile(context: AuthorizationContext = Depends(get_auth_context)):
    profile = context.profile.model_dump(mode="json") if context.profile else None
    return {**context.summary(), "profile": profile}


@router.post("/verify", summary="Verify the bearer token")
def verify_token(context: AuthorizationContext = Depends(get_auth_context)):
    """Used by the frontend to decide whether to show the role-request screen."""
    return {"valid": True, "user": context.summary()}


@router.put("/profile", summary="Update own display name / phone")
def update_profile(
    payload: ProfileUpdate,
    context: AuthorizationContext = Depends(get_auth_context),
    store: DocumentStore = Depends(get_document_store),
):
    updates = sanitize(payload.model_dump(exclude_unset=True))
    if not updates:
        raise InvalidRequest("No fields provided to update")

    updates["updated_at"] = to_iso(utc_now())
    updated = store.update(USERS, context.subject_id, updates)
    if updated is None:
        raise NotFound("User profile not found", record_id=context.subject_id)

    logger.info(f"User {context.subject_id} updated their profile")
    return updated


# ============================================================
# ACCESS REQUESTS
# ============================================================
def _default_organization(store: DocumentStore) -> dict:
    defaults = store.query(ORGANIZATIONS, equals={"is_default": True})
    if not defaults:
        raise NotFound("No default organization found")
    return defaults[0]


@router.post("/request-access", summary="Ask to join an organization")
def request_access(
    payload: AccessRequestCreate,
    context: AuthorizationContext = Depends(get_auth_context),
    store: DocumentStore = Depends(get_document_store),
):
    require_authenticated(context)
    if context.organization_id and context.role:
        return {
            "success": False,
            "message": "User already has role assigned",
            "role": context.role.display_name or context.role.name,
            "organization_id": context.organization_id,
        }

    if payload.organization_id:
        organization = store.get(ORGANIZATIONS, payload.organization_id)
        if organization is None:
            raise NotFound("Organization not found", record_id=payload.organization_id)
    else:
        organization = _default_organization(store)

    if organization.get("status", OrganizationStatus.active.value) != OrganizationStatus.active.value:
        raise InvalidRequest("Organization is not accepting access requests")

    pending = store.query(
        ACCESS_REQUESTS,
        equals={"user_id": context.subject_id, "status": AccessRequestStatus.pending.value},
    )
    if pending:
        raise Conflict("An access request is already pending")

    now = to_iso(utc_now())
    profile = context.profile
    request_id = new_id()

    batch = store.batch()
    batch.set(ACCESS_REQUESTS, request_id, {
        "user_id": context.subject_id,
        "user_email": context.email,
        "user_name": (profile.display_name if profile else None) or context.email,
        "organization_id": organization["id"],
        "message": payload.message,
        "status": AccessRequestStatus.pending.value,
        "requested_at": now,
    })
    batch.update(USERS, context.subject_id, {
        "status": UserStatus.pending_approval.value,
        "pending_organization_id": organization["id"],
        "updated_at": now,
    })
    batch.commit()

    logger.info(f"User {context.subject_id} requested access to organization {organization['id']}")
    return {
        "success": True,
        "message": "Access request submitted successfully",
        "status": UserStatus.pending_approval.value,
        "request_id": request_id,
    }


@router.get("/access-requests", summary="Pending access requests")
def list_access_requests(
    context: AuthorizationContext = Depends(
        requires_any_permission(["users:update:organization", "users:read:all"])
    ),
    store: DocumentStore = Depends(get_document_store),
):
    equals = {"status": AccessRequestStatus.pending.value}
    if not context.has("users:read:all"):
        equals["organization_id"] = context.organization_id

    requests = store.query(ACCESS_REQUESTS, equals=equals)
    return sorted(requests, key=lambda r: r.get("requested_at") or "", reverse=True)


@router.post("/access-requests/{request_id}/respond", summary="Approve or reject an access request")
def respond_to_access_request(
    request_id: str,
    payload: AccessRequestResponse,
    context: AuthorizationContext = Depends(
        requires_any_permission(["users:update:organization", "users:update:all"])
    ),
    store: DocumentStore = Depends(get_document_store),
):
    """
    Approve: the subject joins the request's organization with `role_id`
    and becomes active. Reject: the subject is marked rejected.
    Request and profile are written in one batch; resolved requests are final.
    """
    access_request = store.get(ACCESS_REQUESTS, request_id)
    if access_request is None:
        raise NotFound("Access request not found", record_id=request_id)

    organization_id = access_request["organization_id"]
    if not context.has("users:update:all") and organization_id != context.organization_id:
        raise AccessDenied(record_id=request_id, detail="Can only respond to requests for your organization")

    if access_request.get("status") != AccessRequestStatus.pending.value:
        raise Conflict(f"Access request already {access_request.get('status')}")

    now = to_iso(utc_now())
    batch = store.batch()

    if payload.action == "approve":
        if not payload.role_id:
            raise InvalidRequest("Role ID required for approval")
        role = store.get(ROLES, payload.role_id)
        if role is None or role.get("organization_id") != organization_id:
            raise InvalidRequest("Invalid role for this organization")
        if role.get("name") == SUPER_ADMIN and not context.is_super_admin:
            raise AccessDenied(record_id=payload.role_id, detail="Only a super admin can grant this role")

        requester = store.get(USERS, access_request["user_id"])
        if requester is None:
            raise NotFound("User profile not found", record_id=access_request["user_id"])
        current_org = requester.get("organization_id")
        if current_org and current_org != organization_id:
            raise Conflict("User already belongs to another organization")

        batch.update(USERS, access_request["user_id"], {
            "organization_id": organization_id,
            "role_id": payload.role_id,
            "status": UserStatus.active.value,
            "pending_organization_id": None,
            "approved_by": context.subject_id,
            "approved_at": now,
            "updated_at": now,
        })
        batch.update(ACCESS_REQUESTS, request_id, {
            "status": AccessRequestStatus.approved.value,
            "role_id": payload.role_id,
            "responded_by": context.subject_id,
            "responded_at": now,
            "response_message": payload.message,
        })
        outcome = AccessRequestStatus.approved.value
    else:
        batch.update(USERS, access_request["user_id"], {
            "status": UserStatus.rejected.value,
            "pending_organization_id": None,
            "updated_at": now,
        })
        batch.update(ACCESS_REQUESTS, request_id, {
            "status": AccessRequestStatus.rejected.value,
            "responded_by": context.subject_id,
            "responded_at": now,
            "response_message": payload.message,
        })
        outcome = AccessRequestStatus.rejected.value

    batch.commit()
    logger.info(f"User {context.subject_id} {outcome} access request {request_id}")
    return {
        "success": True,
        "message": f"Access request {outcome}",
        "action": outcome,
    }


# ============================================================
# PICKERS (organization + role selection)
# ============================================================
@router.get("/organizations", summary="Active organizations")
def list_active_organizations(
    context: AuthorizationContext = Depends(get_auth_context),
    store: DocumentStore = Depends(get_document_store),
):
    organizations = store.query(ORGANIZATIONS, equals={"status": OrganizationStatus.active.value})
    return [
        {
            "id": org["id"],
            "name": org.get("name"),
            "description": org.get("description"),
            "is_default": bool(org.get("is_default")),
        }
        for org in sorted(organizations, key=lambda o: o.get("name") or "")
    ]


@router.get("/organizations/{organization_id}/roles", summary="Roles of an organization")
def list_organization_roles(
    organization_id: str,
    context: AuthorizationContext = Depends(get_auth_context),
    store: DocumentStore = Depends(get_document_store),
):
    roles = store.query(ROLES, equals={"organization_id": organization_id})
    visible = [r for r in roles if r.get("name") != SUPER_ADMIN or context.is_super_admin]
    return [
        {
            "id": role["id"],
            "name": role.get("display_name") or role.get("name"),
            "description": role.get("description"),
            "level": role.get("level"),
        }
        for role in sorted(visible, key=lambda r: r.get("level") or 0, reverse=True)
    ]
