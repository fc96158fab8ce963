# core/roles.py

"""
Organization bootstrap and role management helpers.

Every role, system templates included, is a record of one organization.
Creating an organization writes the organization and its four system
roles in one atomic batch.
"""

from typing import Iterable, List, Optional

from core.document_store import DocumentStore, ORGANIZATIONS, ROLES, WriteBatch
from core.errors import Conflict, Forbidden, InvalidRequest
from core.logging_config import logger
from core.permissions import CATALOG, PermissionCatalog, SystemRole
from core.utils import new_id, to_iso, utc_now


def system_role_id(organization_id: str, role_name: str) -> str:
    """Deterministic, so re-running a bootstrap cannot duplicate roles."""
    return f"{organization_id}_{role_name}"


def system_role_document(
    organization_id: str,
    template: SystemRole,
    catalog: PermissionCatalog = CATALOG,
) -> dict:
    now = to_iso(utc_now())
    return {
        "name": template.name,
        "display_name": template.display_name,
        "description": template.description,
        "organization_id": organization_id,
        "permissions": sorted(catalog.permissions_for_role(template.name)),
        "is_system_role": True,
        "level": template.level,
        "created_at": now,
        "updated_at": now,
    }


def create_default_roles(
    batch: WriteBatch,
    organization_id: str,
    catalog: PermissionCatalog = CATALOG,
) -> List[str]:
    """Queue every system-role template for `organization_id`. Returns the role ids."""
    role_ids = []
    for template in catalog.system_roles:
        role_id = system_role_id(organization_id, template.name)
        batch.set(ROLES, role_id, system_role_document(organization_id, template, catalog))
        role_ids.append(role_id)
    return role_ids


def bootstrap_organization(
    store: DocumentStore,
    organization: dict,
    created_by: Optional[str] = None,
    organization_id: Optional[str] = None,
    catalog: PermissionCatalog = CATALOG,
) -> dict:
    """Create the organization and its system roles atomically."""
    org_id = organization_id or new_id()
    now = to_iso(utc_now())
    document = {
        **organization,
        "created_by": created_by,
        "created_at": now,
        "updated_at": now,
    }

    batch = store.batch()
    batch.set(ORGANIZATIONS, org_id, document)
    role_ids = create_default_roles(batch, org_id, catalog)
    batch.commit()

    logger.info(f"Created organization {org_id} with {len(role_ids)} system roles")
    return {**document, "id": org_id}


# -----------------------------------------------------
# Custom roles
# -----------------------------------------------------
def validate_permission_names(names: Iterable[str], catalog: PermissionCatalog = CATALOG) -> List[str]:
    """Deduplicated, sorted; unknown names are rejected."""
    unique = sorted(set(names))
    unknown = [n for n in unique if n not in catalog]
    if unknown:
        raise InvalidRequest(f"Unknown permissions: {', '.join(unknown)}")
    return unique


def ensure_role_name_available(store: DocumentStore, organization_id: str, name: str) -> None:
    existing = store.query(ROLES, equals={"organization_id": organization_id, "name": name})
    if existing:
        logger.info(f"Rejected duplicate role name '{name}' in organization {organization_id}")
        raise Conflict(f"A role named '{name}' already exists in this organization")


def ensure_grantable(held: Iterable[str], names: Iterable[str]) -> None:
    """A caller can only put permissions it holds itself into a role."""
    missing = sorted(set(names) - set(held))
    if missing:
        raise Forbidden(missing, detail=f"Cannot grant permissions you do not hold: {', '.join(missing)}")
