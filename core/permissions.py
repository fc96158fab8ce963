# core/permissions.py

"""
Permission catalog.

Every permission is `resource:action:scope`. The catalog is built once at
import time and never mutated; role → permission sets are frozensets
behind read-only mappings, so concurrent readers need no locking.

Adding a permission means adding it here AND to every role that should
carry it. There is no implicit inheritance between scopes or roles.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Iterator, Mapping, Optional, Tuple

from core.errors import NotFound


# ============================================================
# SCOPES (widest first)
# ============================================================
SCOPE_ALL = "all"
SCOPE_ORGANIZATION = "organization"
SCOPE_ASSIGNED = "assigned"
SCOPE_OWN = "own"

SCOPES: Tuple[str, ...] = (SCOPE_ALL, SCOPE_ORGANIZATION, SCOPE_ASSIGNED, SCOPE_OWN)

SCOPE_RANK: Mapping[str, int] = MappingProxyType({
    SCOPE_ALL: 4,
    SCOPE_ORGANIZATION: 3,
    SCOPE_ASSIGNED: 2,
    SCOPE_OWN: 1,
})


@dataclass(frozen=True)
class Permission:
    name: str
    resource: str
    action: str
    scope: str
    description: str = ""
    category: str = ""

    @property
    def rank(self) -> int:
        return SCOPE_RANK[self.scope]

    @property
    def is_global(self) -> bool:
        return self.scope == SCOPE_ALL


def parse_permission(name: str) -> Permission:
    """Split a permission name. Raises ValueError on a malformed name or unknown scope."""
    parts = name.split(":") if isinstance(name, str) else []
    if len(parts) != 3 or not all(parts):
        raise ValueError(f"Malformed permission name: {name!r}")

    resource, action, scope = parts
    if scope not in SCOPE_RANK:
        raise ValueError(f"Unknown scope '{scope}' in permission {name!r}")

    return Permission(name=name, resource=resource, action=action, scope=scope)


def _perm(name: str, description: str, category: str) -> Permission:
    parsed = parse_permission(name)
    return Permission(
        name=name,
        resource=parsed.resource,
        action=parsed.action,
        scope=parsed.scope,
        description=description,
        category=category,
    )


# ============================================================
# SYSTEM PERMISSIONS
# ============================================================
SYSTEM_PERMISSIONS: Tuple[Permission, ...] = (

    # =====================================================
    # Property Management
    # =====================================================
    _perm("properties:create:organization", "Create new properties", "Property Management"),
    _perm("properties:read:all", "View properties across all organizations", "Property Management"),
    _perm("properties:read:organization", "View all organization properties", "Property Management"),
    _perm("properties:read:assigned", "View assigned properties", "Property Management"),
    _perm("properties:read:own", "View properties you rent", "Property Management"),
    _perm("properties:update:organization", "Edit all organization properties", "Property Management"),
    _perm("properties:update:assigned", "Edit assigned properties", "Property Management"),
    _perm("properties:delete:organization", "Delete organization properties", "Property Management"),
    _perm("properties:delete:assigned", "Delete assigned properties", "Property Management"),

    # =====================================================
    # Tenant Management
    # =====================================================
    _perm("tenants:create:organization", "Create new tenants", "Tenant Management"),
    _perm("tenants:create:assigned", "Create tenants for assigned properties", "Tenant Management"),
    _perm("tenants:read:all", "View tenants across all organizations", "Tenant Management"),
    _perm("tenants:read:organization", "View all organization tenants", "Tenant Management"),
    _perm("tenants:read:assigned", "View tenants for assigned properties", "Tenant Management"),
    _perm("tenants:update:organization", "Edit all organization tenants", "Tenant Management"),
    _perm("tenants:update:assigned", "Edit tenants for assigned properties", "Tenant Management"),
    _perm("tenants:delete:organization", "Remove organization tenants", "Tenant Management"),

    # =====================================================
    # Payment Management (also gates rent records and invoices)
    # =====================================================
    _perm("payments:create:organization", "Record payments for all properties", "Payment Management"),
    _perm("payments:create:assigned", "Record payments for assigned properties", "Payment Management"),
    _perm("payments:read:all", "View payments across all organizations", "Payment Management"),
    _perm("payments:read:organization", "View all organization payments", "Payment Management"),
    _perm("payments:read:assigned", "View payments for assigned properties", "Payment Management"),
    _perm("payments:read:own", "View own payment history", "Payment Management"),
    _perm("payments:update:organization", "Edit organization payments", "Payment Management"),
    _perm("payments:update:assigned", "Edit payments for assigned properties", "Payment Management"),
    _perm("payments:delete:organization", "Delete organization payments", "Payment Management"),

    # =====================================================
    # User Management
    # =====================================================
    _perm("users:create:organization", "Invite new users to organization", "User Management"),
    _perm("users:read:all", "View users across all organizations", "User Management"),
    _perm("users:read:organization", "View all organization users", "User Management"),
    _perm("users:update:all", "Edit users in any organization", "User Management"),
    _perm("users:update:organization", "Edit organization user roles", "User Management"),
    _perm("users:delete:organization", "Remove users from the organization", "User Management"),

    # =====================================================
    # Role Management
    # =====================================================
    _perm("roles:create:organization", "Create custom roles", "Role Management"),
    _perm("roles:read:all", "View roles across all organizations", "Role Management"),
    _perm("roles:read:organization", "View organization roles", "Role Management"),
    _perm("roles:update:organization", "Edit custom roles", "Role Management"),
    _perm("roles:delete:organization", "Delete custom roles", "Role Management"),

    # =====================================================
    # Organizations (system administration)
    # =====================================================
    _perm("organizations:create:all", "Create organizations", "System Administration"),
    _perm("organizations:read:all", "View every organization", "System Administration"),
    _perm("organizations:update:all", "Edit any organization", "System Administration"),

    # =====================================================
    # Reports
    # =====================================================
    _perm("reports:read:all", "View reports across all organizations", "Reporting"),
    _perm("reports:read:organization", "View organization reports", "Reporting"),
    _perm("reports:read:assigned", "View reports for assigned properties", "Reporting"),

    # =====================================================
    # Maintenance
    # =====================================================
    _perm("maintenance:create:assigned", "Create maintenance requests for assigned properties", "Maintenance"),
    _perm("maintenance:update:assigned", "Update maintenance status for assigned properties", "Maintenance"),
)


# ============================================================
# SYSTEM ROLE TEMPLATES
# Materialized per organization when the organization is created.
# ============================================================
@dataclass(frozen=True)
class SystemRole:
    name: str
    display_name: str
    description: str
    level: int


SUPER_ADMIN = "super_admin"
ORG_ADMIN = "org_admin"
PROPERTY_MANAGER = "property_manager"
FINANCIAL_VIEWER = "financial_viewer"

SYSTEM_ROLES: Tuple[SystemRole, ...] = (
    SystemRole(SUPER_ADMIN, "Super Administrator", "Full system access across all organizations", 10),
    SystemRole(ORG_ADMIN, "Organization Administrator", "Full access within organization", 9),
    SystemRole(PROPERTY_MANAGER, "Property Manager", "Manages properties and handles on-site maintenance", 6),
    SystemRole(FINANCIAL_VIEWER, "Financial Viewer", "Access to financial data and basic property information", 4),
)


# ============================================================
# ROLE → PERMISSIONS
# ============================================================
ROLE_PERMISSIONS: Mapping[str, FrozenSet[str]] = MappingProxyType({

    # =====================================================
    # SUPER ADMIN: every cataloged permission
    # =====================================================
    SUPER_ADMIN: frozenset(p.name for p in SYSTEM_PERMISSIONS),

    # =====================================================
    # ORG ADMIN: full CRUD inside the organization, no global scope
    # =====================================================
    ORG_ADMIN: frozenset({
        "properties:create:organization",
        "properties:read:organization",
        "properties:update:organization",
        "properties:delete:organization",

        "tenants:create:organization",
        "tenants:read:organization",
        "tenants:update:organization",
        "tenants:delete:organization",

        "payments:create:organization",
        "payments:read:organization",
        "payments:update:organization",
        "payments:delete:organization",

        "users:create:organization",
        "users:read:organization",
        "users:update:organization",
        "users:delete:organization",

        "roles:create:organization",
        "roles:read:organization",
        "roles:update:organization",
        "roles:delete:organization",

        "reports:read:organization",
    }),

    # =====================================================
    # PROPERTY MANAGER: create/read/update, never delete
    # =====================================================
    PROPERTY_MANAGER: frozenset({
        "properties:create:organization",
        "properties:read:organization",
        "properties:update:organization",

        "tenants:create:organization",
        "tenants:read:organization",
        "tenants:update:organization",

        "payments:create:organization",
        "payments:read:organization",
        "payments:update:organization",

        "maintenance:create:assigned",
        "maintenance:update:assigned",
    }),

    # =====================================================
    # FINANCIAL VIEWER
    # =====================================================
    FINANCIAL_VIEWER: frozenset({
        "payments:read:organization",
        "reports:read:organization",
        "properties:read:organization",
    }),
})


# ============================================================
# CATALOG
# ============================================================
class PermissionCatalog:
    """Read-only lookup over permissions, role sets and role templates."""

    def __init__(
        self,
        permissions: Iterable[Permission],
        role_permissions: Mapping[str, FrozenSet[str]],
        system_roles: Iterable[SystemRole],
    ):
        index: Dict[str, Permission] = {}
        for perm in permissions:
            if perm.name in index:
                raise ValueError(f"Duplicate permission in catalog: {perm.name}")
            index[perm.name] = perm

        for role_name, names in role_permissions.items():
            unknown = set(names) - set(index)
            if unknown:
                raise ValueError(f"Role '{role_name}' references uncataloged permissions: {sorted(unknown)}")

        self._permissions: Mapping[str, Permission] = MappingProxyType(index)
        self._role_permissions: Mapping[str, FrozenSet[str]] = MappingProxyType(
            {name: frozenset(names) for name, names in role_permissions.items()}
        )
        self._system_roles: Mapping[str, SystemRole] = MappingProxyType(
            {role.name: role for role in system_roles}
        )

    def lookup(self, name: str) -> Permission:
        perm = self._permissions.get(name)
        if perm is None:
            raise NotFound(f"Unknown permission: {name}")
        return perm

    def get(self, name: str) -> Optional[Permission]:
        return self._permissions.get(name)

    def permissions_for_role(self, role_name: str) -> FrozenSet[str]:
        """Built-in role name → permission set; unknown names yield an empty set."""
        return self._role_permissions.get(role_name, frozenset())

    def is_builtin_role(self, role_name: Optional[str]) -> bool:
        return role_name in self._role_permissions

    def system_role(self, role_name: str) -> Optional[SystemRole]:
        return self._system_roles.get(role_name)

    @property
    def system_roles(self) -> Tuple[SystemRole, ...]:
        return tuple(self._system_roles.values())

    @property
    def names(self) -> FrozenSet[str]:
        return frozenset(self._permissions)

    def __contains__(self, name) -> bool:
        return name in self._permissions

    def __iter__(self) -> Iterator[Permission]:
        return iter(self._permissions.values())

    def __len__(self) -> int:
        return len(self._permissions)


CATALOG = PermissionCatalog(SYSTEM_PERMISSIONS, ROLE_PERMISSIONS, SYSTEM_ROLES)
