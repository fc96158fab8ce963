# tests/test_permissions.py

"""
Tests for the permission catalog and scope resolution.
"""

import pytest

from core.errors import NotFound
from core.permission_helpers import has_any_permission, has_permission, is_global_scope, widest_scope
from core.permissions import (
    CATALOG,
    FINANCIAL_VIEWER,
    ORG_ADMIN,
    PROPERTY_MANAGER,
    SUPER_ADMIN,
    PermissionCatalog,
    SystemRole,
    parse_permission,
    _perm,
)


def test_parse_permission_splits_three_parts():
    perm = parse_permission("properties:read:assigned")
    assert (perm.resource, perm.action, perm.scope) == ("properties", "read", "assigned")


@pytest.mark.parametrize("name", ["properties:read", "properties:read:everywhere", "a:b:c:d", ""])
def test_parse_permission_rejects_malformed(name):
    with pytest.raises(ValueError):
        parse_permission(name)


def test_lookup_unknown_permission_is_not_found():
    with pytest.raises(NotFound):
        CATALOG.lookup("spaceships:launch:all")


def test_super_admin_holds_every_cataloged_permission():
    assert CATALOG.permissions_for_role(SUPER_ADMIN) == CATALOG.names


def test_org_admin_has_organization_crud_and_no_global_scope():
    perms = CATALOG.permissions_for_role(ORG_ADMIN)
    for resource in ("properties", "tenants", "payments", "users", "roles"):
        for action in ("create", "read", "update", "delete"):
            assert f"{resource}:{action}:organization" in perms
    assert "reports:read:organization" in perms
    assert not any(CATALOG.lookup(p).is_global for p in perms)


def test_property_manager_cannot_delete():
    perms = CATALOG.permissions_for_role(PROPERTY_MANAGER)
    assert "properties:update:organization" in perms
    assert "maintenance:create:assigned" in perms
    assert not any(":delete:" in p for p in perms)


def test_financial_viewer_is_read_only():
    assert CATALOG.permissions_for_role(FINANCIAL_VIEWER) == frozenset({
        "payments:read:organization",
        "reports:read:organization",
        "properties:read:organization",
    })


def test_unknown_role_has_no_permissions():
    assert CATALOG.permissions_for_role("janitor") == frozenset()
    assert not CATALOG.is_builtin_role("janitor")


def test_catalog_is_read_only():
    with pytest.raises(TypeError):
        CATALOG._role_permissions[SUPER_ADMIN] = frozenset()


def test_catalog_rejects_role_with_uncataloged_permission():
    perms = [_perm("properties:read:organization", "Read", "Properties")]
    with pytest.raises(ValueError):
        PermissionCatalog(perms, {"viewer": frozenset({"properties:read:all"})}, [])


def test_catalog_rejects_duplicates():
    perm = _perm("properties:read:organization", "Read", "Properties")
    with pytest.raises(ValueError):
        PermissionCatalog([perm, perm], {}, [SystemRole("x", "X", "", 1)])


def test_has_permission_is_exact():
    held = frozenset({"properties:read:all"})
    assert has_permission(held, "properties:read:all")
    # :all does not imply narrower scopes
    assert not has_permission(held, "properties:read:organization")
    assert not has_permission(held, "properties:read")


def test_has_any_permission():
    held = frozenset({"payments:update:assigned"})
    assert has_any_permission(held, ["payments:update:organization", "payments:update:assigned"])
    assert not has_any_permission(held, [])


def test_widest_scope_picks_highest_rank():
    held = frozenset({"properties:read:assigned", "properties:read:organization", "payments:read:all"})
    assert widest_scope(held, "properties", "read") == "organization"
    assert widest_scope(held, "payments", "read") == "all"
    assert widest_scope(held, "properties", "delete") is None


def test_is_global_scope_uses_catalog_scope_not_substrings():
    assert is_global_scope("properties:read:all")
    assert not is_global_scope("properties:read:organization")
    # Uncataloged names are never global, whatever they contain
    assert not is_global_scope("super_admin:read:all")
    assert not is_global_scope("super_admin")
