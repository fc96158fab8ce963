# core/identity.py

"""
Identity Context Builder.

Turns a bearer credential into an immutable AuthorizationContext:
    credential → IdentityVerifier → (subject id, claims)
               → profile (created on first sight) + role
               → effective permissions

Side effects, both upstream of the guard chain:
    • first sight persists a pending profile (insert-if-absent, so
      concurrent first requests converge on one equivalent document)
    • every later sight refreshes last_login_at (best-effort)

Nothing here is cached between requests; role or permission edits
apply on the next request.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, FrozenSet, Iterable, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.document_store import DocumentStore, ROLES, USERS
from core.errors import AuthorizationUnavailable, StoreError, Unauthenticated
from core.logging_config import logger
from core.permission_helpers import has_any_permission, has_permission, is_global_scope
from core.permissions import CATALOG, SUPER_ADMIN, PermissionCatalog
from core.utils import to_iso, utc_now
from models.enums import UserStatus
from models.role import RoleRecord
from models.user import UserProfile


# ============================================================
# Verified identity
# ============================================================
class VerifiedIdentity(BaseModel):
    model_config = ConfigDict(frozen=True)

    subject_id: str
    email: Optional[str] = None
    claims: Dict[str, Any] = Field(default_factory=dict)


class IdentityVerifier(ABC):

    @abstractmethod
    def verify(self, credential: str) -> VerifiedIdentity:
        """Raise Unauthenticated for a bad credential, AuthorizationUnavailable when unreachable."""


class SupabaseIdentityVerifier(IdentityVerifier):
    """Validates the JWT through Supabase GoTrue (`auth.get_user`)."""

    def __init__(self, client):
        self.client = client

    def verify(self, credential: str) -> VerifiedIdentity:
        if not credential:
            raise Unauthenticated("No token provided")

        try:
            auth_resp = self.client.auth.get_user(credential)
        except httpx.TransportError as e:
            logger.error(f"Identity provider unreachable: {e}")
            raise AuthorizationUnavailable() from e
        except Exception as e:
            logger.info(f"Token verification failed: {e}")
            raise Unauthenticated("Invalid or expired authentication token") from e

        auth_user = getattr(auth_resp, "user", None) if auth_resp else None
        if not auth_user:
            raise Unauthenticated("Invalid or expired authentication token")

        metadata = auth_user.user_metadata or {}
        return VerifiedIdentity(
            subject_id=auth_user.id,
            email=auth_user.email,
            claims={"name": metadata.get("full_name") or metadata.get("name")},
        )


# ============================================================
# Authorization context
# ============================================================
class AuthorizationContext(BaseModel):
    """Request-scoped and immutable. Rebuilt for every request."""

    model_config = ConfigDict(frozen=True)

    subject_id: str
    email: Optional[str] = None
    organization_id: Optional[str] = None
    effective_permissions: FrozenSet[str] = frozenset()
    role: Optional[RoleRecord] = None
    status: UserStatus = UserStatus.pending
    profile: Optional[UserProfile] = None

    @property
    def role_name(self) -> Optional[str]:
        return self.role.name if self.role else None

    @property
    def is_super_admin(self) -> bool:
        return self.role_name == SUPER_ADMIN

    @property
    def needs_role_assignment(self) -> bool:
        return self.organization_id is None or self.role is None

    def has(self, permission: str) -> bool:
        return has_permission(self.effective_permissions, permission)

    def has_any(self, permissions: Iterable[str]) -> bool:
        return has_any_permission(self.effective_permissions, permissions)

    def summary(self) -> dict:
        display_name = self.profile.display_name if self.profile else None
        return {
            "uid": self.subject_id,
            "email": self.email,
            "name": display_name or self.email,
            "organization_id": self.organization_id,
            "role": self.role.model_dump() if self.role else None,
            "permissions": sorted(self.effective_permissions),
            "status": str(self.status),
            "needs_role_assignment": self.needs_role_assignment,
        }


# ============================================================
# Builder
# ============================================================
def default_profile(identity: VerifiedIdentity) -> dict:
    """Pending, unassigned profile written on first sight."""
    now = to_iso(utc_now())
    return {
        "email": identity.email,
        "display_name": identity.claims.get("name") or identity.email,
        "organization_id": None,
        "role_id": None,
        "permissions": [],
        "status": UserStatus.pending.value,
        "assigned_properties": [],
        "created_at": now,
        "last_login_at": now,
    }


def _touch_last_login(store: DocumentStore, subject_id: str) -> None:
    try:
        store.update(USERS, subject_id, {"last_login_at": to_iso(utc_now())})
    except StoreError as e:
        logger.warning(f"Could not refresh last login for {subject_id}: {e}")


def _load_or_create_profile(store: DocumentStore, identity: VerifiedIdentity) -> dict:
    uid = identity.subject_id
    doc = store.get(USERS, uid)

    if doc is not None:
        _touch_last_login(store, uid)
        return doc

    if store.create(USERS, uid, default_profile(identity)):
        logger.info(f"Created pending profile for new subject {uid}")

    # Re-read: a concurrent first request may have won the insert
    doc = store.get(USERS, uid)
    if doc is None:
        raise StoreError(f"Load profile {uid}", "profile missing after insert")
    return doc


def resolve_role(store: DocumentStore, role_id: Optional[str]) -> Optional[RoleRecord]:
    """A dangling reference resolves to None instead of failing the request."""
    if not role_id:
        return None

    doc = store.get(ROLES, role_id)
    if doc is None:
        logger.warning(f"Role {role_id} not found; using profile permissions only")
        return None
    return RoleRecord.model_validate(doc)


def role_permissions(role: Optional[RoleRecord], catalog: PermissionCatalog = CATALOG) -> FrozenSet[str]:
    if role is None:
        return frozenset()
    # Built-in role stored without a permission list
    if not role.permissions and catalog.is_builtin_role(role.name):
        return catalog.permissions_for_role(role.name)
    return frozenset(role.permissions)


def effective_permissions(
    profile: UserProfile,
    role: Optional[RoleRecord],
    catalog: PermissionCatalog = CATALOG,
) -> FrozenSet[str]:
    merged = role_permissions(role, catalog) | frozenset(profile.permissions)

    # Without an organization only global-scope grants mean anything
    if profile.organization_id is None:
        return frozenset(p for p in merged if is_global_scope(p, catalog))
    return merged


def build_context(
    store: DocumentStore,
    identity: VerifiedIdentity,
    catalog: PermissionCatalog = CATALOG,
) -> AuthorizationContext:
    """
    Store failures and unreadable stored documents surface as
    AuthorizationUnavailable, never as a grant.
    """
    try:
        doc = _load_or_create_profile(store, identity)
        profile = UserProfile.model_validate(doc)
        role = resolve_role(store, profile.role_id)
    except (StoreError, ValidationError) as e:
        logger.error(f"Authorization context unavailable for {identity.subject_id}: {e}")
        raise AuthorizationUnavailable() from e

    return AuthorizationContext(
        subject_id=identity.subject_id,
        email=identity.email or profile.email,
        organization_id=profile.organization_id,
        effective_permissions=effective_permissions(profile, role, catalog),
        role=role,
        status=profile.status,
        profile=profile,
    )


def authorize(
    credential: Optional[str],
    verifier: IdentityVerifier,
    store: DocumentStore,
    catalog: PermissionCatalog = CATALOG,
) -> AuthorizationContext:
    if not credential:
        raise Unauthenticated("No token provided")
    identity = verifier.verify(credential)
    return build_context(store, identity, catalog)
