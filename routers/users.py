# routers/users.py

from fastapi import APIRouter, Depends

from core.document_store import ACCESS_REQUESTS, DocumentStore, INVITATIONS, ORGANIZATIONS, PROPERTIES, ROLES, USERS
from core.errors import AccessDenied, Conflict, InvalidRequest, NotFound
from core.identity import AuthorizationContext
from core.logging_config import logger
from core.permissions import SUPER_ADMIN
from core.utils import parse_datetime, to_iso, utc_now
from dependencies.auth import get_auth_context, get_document_store, requires_permission
from models.enums import AccessRequestStatus, AssignmentRole, InvitationStatus, UserStatus
from models.property import PropertyRecord
from models.user import AcceptInvitationRequest, PropertyAssignmentRequest, RoleAssignment

router = APIRouter(
    prefix="/users",
    tags=["Users"],
)


def _member_of_caller_org(store: DocumentStore, context: AuthorizationContext, uid: str) -> dict:
    user = store.get(USERS, uid)
    if user is None:
        raise NotFound("User not found", record_id=uid)
    if user.get("organization_id") != context.organization_id:
        raise AccessDenied(record_id=uid, detail="User not in your organization")
    return user


def _property_of_caller_org(store: DocumentStore, context: AuthorizationContext, property_id: str) -> dict:
    prop = store.get(PROPERTIES, property_id)
    if prop is None:
        raise NotFound(f"Property {property_id} not found", record_id=property_id)
    if prop.get("organization_id") != context.organization_id:
        raise AccessDenied(record_id=property_id, detail=f"Property {property_id} not in your organization")
    return prop


# -----------------------------------------------------
# LISTS
# -----------------------------------------------------
@router.get("", summary="Users in the caller's organization")
def list_users(
    context: AuthorizationContext = Depends(requires_permission("users:read:organization")),
    store: DocumentStore = Depends(get_document_store),
):
    users = store.query(USERS, equals={"organization_id": context.organization_id})
    return sorted(users, key=lambda u: u.get("display_name") or u.get("email") or "")


@router.get("/all", summary="Every user across organizations")
def list_all_users(
    context: AuthorizationContext = Depends(requires_permission("users:read:all")),
    store: DocumentStore = Depends(get_document_store),
):
    organizations = {o["id"]: o.get("name") for o in store.query(ORGANIZATIONS)}
    users = []
    for user in store.query(USERS):
        org_id = user.get("organization_id")
        users.append({
            **user,
            "organization": {"id": org_id, "name": organizations.get(org_id)} if org_id else None,
        })
    return sorted(users, key=lambda u: u.get("display_name") or u.get("email") or "")


@router.get("/profile", summary="Own profile")
def read_own_profile(context: AuthorizationContext = Depends(get_auth_context)):
    profile = context.profile.model_dump(mode="json", by_alias=True) if context.profile else {}
    return {**profile, "role": context.role.model_dump() if context.role else None}


# -----------------------------------------------------
# INVITATIONS
# -----------------------------------------------------
@router.get("/invitations", summary="Pending invitations for the caller's email")
def list_my_invitations(
    context: AuthorizationContext = Depends(get_auth_context),
    store: DocumentStore = Depends(get_document_store),
):
    if not context.email:
        return []

    invitations = store.query(
        INVITATIONS,
        equals={"email": context.email.lower(), "status": InvitationStatus.pending.value},
    )
    enriched = []
    for invitation in invitations:
        organization = store.get(ORGANIZATIONS, invitation["organization_id"])
        role = store.get(ROLES, invitation["role_id"])
        enriched.append({
            **invitation,
            "organization": {"id": organization["id"], "name": organization.get("name")} if organization else None,
            "role": {"id": role["id"], "name": role.get("display_name") or role.get("name")} if role else None,
        })
    return sorted(enriched, key=lambda i: i.get("created_at") or "", reverse=True)


@router.post("/accept-invitation", summary="Join an organization through an invitation")
def accept_invitation(
    payload: AcceptInvitationRequest,
    context: AuthorizationContext = Depends(get_auth_context),
    store: DocumentStore = Depends(get_document_store),
):
    invitation = store.get(INVITATIONS, payload.invitation_id)
    if invitation is None:
        raise NotFound("Invitation not found", record_id=payload.invitation_id)

    if (invitation.get("email") or "").lower() != (context.email or "").lower():
        raise AccessDenied(record_id=payload.invitation_id, detail="Invitation not for this user")
    if invitation.get("status") != InvitationStatus.pending.value:
        raise Conflict("Invitation is no longer valid")

    now = utc_now()
    expires_at = parse_datetime(invitation.get("expires_at"))
    if expires_at is None or expires_at < now:
        raise Conflict("Invitation has expired")
    if context.organization_id:
        raise Conflict("User already belongs to an organization")

    batch = store.batch()
    batch.update(USERS, context.subject_id, {
        "organization_id": invitation["organization_id"],
        "role_id": invitation["role_id"],
        "status": UserStatus.active.value,
        "pending_organization_id": None,
        "joined_at": to_iso(now),
        "updated_at": to_iso(now),
    })
    batch.update(INVITATIONS, payload.invitation_id, {
        "status": InvitationStatus.accepted.value,
        "accepted_at": to_iso(now),
    })
    # Requests still open elsewhere can no longer be approved
    open_requests = store.query(
        ACCESS_REQUESTS,
        equals={"user_id": context.subject_id, "status": AccessRequestStatus.pending.value},
    )
    for request in open_requests:
        batch.update(ACCESS_REQUESTS, request["id"], {
            "status": AccessRequestStatus.rejected.value,
            "responded_by": context.subject_id,
            "responded_at": to_iso(now),
            "response_message": "Joined an organization by invitation",
        })
    batch.commit()

    logger.info(f"User {context.subject_id} joined organization {invitation['organization_id']} by invitation")
    return {"success": True, "message": "Invitation accepted successfully"}


# -----------------------------------------------------
# ROLE ASSIGNMENT
# -----------------------------------------------------
@router.put("/{uid}/role", summary="Change a member's role")
def update_user_role(
    uid: str,
    payload: RoleAssignment,
    context: AuthorizationContext = Depends(requires_permission("users:update:organization")),
    store: DocumentStore = Depends(get_document_store),
):
    _member_of_caller_org(store, context, uid)

    role = store.get(ROLES, payload.role_id)
    if role is None:
        raise NotFound("Role not found", record_id=payload.role_id)
    if role.get("organization_id") != context.organization_id:
        raise AccessDenied(record_id=payload.role_id, detail="Role not in your organization")
    if role.get("name") == SUPER_ADMIN and not context.is_super_admin:
        raise AccessDenied(record_id=payload.role_id, detail="Only a super admin can grant this role")

    updated = store.update(USERS, uid, {
        "role_id": payload.role_id,
        "status": UserStatus.active.value,
        "updated_at": to_iso(utc_now()),
    })
    logger.info(f"User {context.subject_id} set role of {uid} to {role.get('name')}")
    return updated


# -----------------------------------------------------
# PROPERTY ASSIGNMENTS
# -----------------------------------------------------
@router.post("/{uid}/assign-properties", summary="Assign properties as manager or caretaker")
def assign_properties(
    uid: str,
    payload: PropertyAssignmentRequest,
    context: AuthorizationContext = Depends(requires_permission("users:update:organization")),
    store: DocumentStore = Depends(get_document_store),
):
    """
    manager   → uid appended to the property's assigned_managers
    caretaker → uid becomes the property's caretaker (replacing any other)
    The users' assigned_properties caches change in the same batch.
    """
    user = _member_of_caller_org(store, context, uid)
    property_ids = list(dict.fromkeys(payload.property_ids))
    properties = [_property_of_caller_org(store, context, pid) for pid in property_ids]

    now = to_iso(utc_now())
    batch = store.batch()
    displaced = {}

    for prop in properties:
        record = PropertyRecord.model_validate(prop)
        if payload.role == AssignmentRole.manager:
            if uid not in record.assigned_managers:
                batch.update(PROPERTIES, prop["id"], {
                    "assigned_managers": record.assigned_managers + [uid],
                    "updated_at": now,
                })
            continue

        previous = record.caretaker_id
        batch.update(PROPERTIES, prop["id"], {"caretaker_id": uid, "updated_at": now})
        if previous and previous != uid and previous not in record.assigned_managers:
            displaced.setdefault(previous, []).append(prop["id"])

    for other_uid, removed in displaced.items():
        other = store.get(USERS, other_uid)
        if other is not None:
            batch.update(USERS, other_uid, {
                "assigned_properties": [p for p in other.get("assigned_properties") or [] if p not in removed],
                "updated_at": now,
            })

    cached = user.get("assigned_properties") or []
    batch.update(USERS, uid, {
        "assigned_properties": list(dict.fromkeys(cached + property_ids)),
        "updated_at": now,
    })
    batch.commit()

    logger.info(f"User {context.subject_id} assigned {len(property_ids)} properties to {uid} as {payload.role}")
    return {"success": True, "message": f"Properties assigned to user as {payload.role} successfully"}


@router.delete("/{uid}/assignments/{property_id}", summary="Remove a property assignment")
def remove_property_assignment(
    uid: str,
    property_id: str,
    context: AuthorizationContext = Depends(requires_permission("users:update:organization")),
    store: DocumentStore = Depends(get_document_store),
):
    user = _member_of_caller_org(store, context, uid)
    prop = _property_of_caller_org(store, context, property_id)
    record = PropertyRecord.model_validate(prop)

    now = to_iso(utc_now())
    updates = {
        "assigned_managers": [m for m in record.assigned_managers if m != uid],
        "updated_at": now,
    }
    if record.caretaker_id == uid:
        updates["caretaker_id"] = None

    batch = store.batch()
    batch.update(PROPERTIES, property_id, updates)
    batch.update(USERS, uid, {
        "assigned_properties": [p for p in user.get("assigned_properties") or [] if p != property_id],
        "updated_at": now,
    })
    batch.commit()

    logger.info(f"User {context.subject_id} removed {uid} from property {property_id}")
    return {"success": True, "message": "Property assignment removed successfully"}


# -----------------------------------------------------
# ORGANIZATION REMOVAL (profile is kept)
# -----------------------------------------------------
@router.delete("/{uid}/organization", summary="Remove a member from the organization")
def remove_from_organization(
    uid: str,
    context: AuthorizationContext = Depends(requires_permission("users:delete:organization")),
    store: DocumentStore = Depends(get_document_store),
):
    if uid == context.subject_id:
        raise InvalidRequest("You cannot remove yourself from your organization")
    _member_of_caller_org(store, context, uid)

    now = to_iso(utc_now())
    batch = store.batch()

    # Drop every assignment relation so no assigned-scope access survives
    for prop in store.query(PROPERTIES, equals={"organization_id": context.organization_id}):
        record = PropertyRecord.model_validate(prop)
        if not record.is_assigned_to(uid):
            continue
        updates = {"assigned_managers": [m for m in record.assigned_managers if m != uid], "updated_at": now}
        if record.caretaker_id == uid:
            updates["caretaker_id"] = None
        batch.update(PROPERTIES, prop["id"], updates)

    batch.update(USERS, uid, {
        "organization_id": None,
        "role_id": None,
        "permissions": [],
        "assigned_properties": [],
        "status": UserStatus.pending.value,
        "updated_at": now,
    })
    batch.commit()

    logger.info(f"User {context.subject_id} removed {uid} from organization {context.organization_id}")
    return {"success": True, "message": "User removed from organization"}
