from typing import List, Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from core.document_store import DocumentStore, get_store
from core.errors import AuthorizationUnavailable, StoreError, Unauthenticated
from core.guards import guard, require_authenticated, require_organization
from core.identity import AuthorizationContext, IdentityVerifier, SupabaseIdentityVerifier, authorize
from core.supabase_client import get_supabase_client


# Missing credentials are reported by get_auth_context as Unauthenticated
bearer_scheme = HTTPBearer(auto_error=False)


# ============================================================
# Collaborators (overridable in tests via app.dependency_overrides)
# ============================================================
def get_document_store() -> DocumentStore:
    try:
        return get_store()
    except StoreError as e:
        raise AuthorizationUnavailable("Document store not configured") from e


def get_identity_verifier() -> IdentityVerifier:
    client = get_supabase_client()
    if client is None:
        raise AuthorizationUnavailable("Identity provider not configured")
    return SupabaseIdentityVerifier(client)


# ============================================================
# AUTHORIZATION CONTEXT (verifies bearer + loads profile/role)
# ============================================================
def get_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    store: DocumentStore = Depends(get_document_store),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> AuthorizationContext:
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("No token provided")
    return authorize(credentials.credentials, verifier, store)


# ============================================================
# PERMISSION CHECKS (guard chain steps 1-3)
# ============================================================
def requires_permission(permission: str):
    """
    Usage:
        ctx: AuthorizationContext = Depends(requires_permission("properties:create:organization"))
    """

    def dependency(context: AuthorizationContext = Depends(get_auth_context)) -> AuthorizationContext:
        return guard(context, permission)

    return dependency


def requires_any_permission(permissions: List[str]):
    """Any-of variant; the caller needs at least one of `permissions`."""

    def dependency(context: AuthorizationContext = Depends(get_auth_context)) -> AuthorizationContext:
        return guard(context, list(permissions))

    return dependency


def requires_collection_access(permission_resource: str):
    """
    Collection reads: membership unless the caller reads the resource
    globally. No permission check here; the scope filter returns an
    empty list when nothing is readable.
    """
    global_read = f"{permission_resource}:read:all"

    def dependency(context: AuthorizationContext = Depends(get_auth_context)) -> AuthorizationContext:
        ctx = require_authenticated(context)
        if not ctx.has(global_read):
            require_organization(ctx)
        return ctx

    return dependency
