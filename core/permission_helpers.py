# core/permission_helpers.py

from typing import AbstractSet, Iterable, Optional

from core.permissions import CATALOG, PermissionCatalog, Permission, parse_permission


# -----------------------------------------------------
# Membership checks (exact names only; no wildcard,
# no implicit widening from :all to narrower scopes)
# -----------------------------------------------------
def has_permission(effective: AbstractSet[str], permission: str) -> bool:
    return permission in effective


def has_any_permission(effective: AbstractSet[str], permissions: Iterable[str]) -> bool:
    return any(p in effective for p in permissions)


# -----------------------------------------------------
# Scope resolution
# -----------------------------------------------------
def _resolve(name: str, catalog: PermissionCatalog) -> Optional[Permission]:
    """Catalog entry, or a parsed value for well-formed uncataloged grants."""
    perm = catalog.get(name)
    if perm is not None:
        return perm
    try:
        return parse_permission(name)
    except ValueError:
        return None


def widest_scope(
    effective: AbstractSet[str],
    resource: str,
    action: str,
    catalog: PermissionCatalog = CATALOG,
) -> Optional[str]:
    """
    Highest-ranked scope the caller holds for resource/action, or None.
    Holding organization + assigned yields organization: one strategy,
    never a merge of several.
    """
    best: Optional[Permission] = None

    for name in effective:
        perm = _resolve(name, catalog)
        if perm is None or perm.resource != resource or perm.action != action:
            continue
        if best is None or perm.rank > best.rank:
            best = perm

    return best.scope if best else None


def is_global_scope(permission: str, catalog: PermissionCatalog = CATALOG) -> bool:
    """True only for cataloged permissions whose scope is `all`."""
    perm = catalog.get(permission)
    return perm is not None and perm.is_global


def permission_name(resource: str, action: str, scope: str) -> str:
    return f"{resource}:{action}:{scope}"
