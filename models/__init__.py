# -------------------------
# Enums
# -------------------------
from .enums import (
    UserStatus,
    OrganizationStatus,
    AccessRequestStatus,
    InvitationStatus,
    PropertyStatus,
    RentStatus,
    PaymentStatus,
    InvoiceStatus,
    AssignmentRole,
)

# -------------------------
# Subject Profiles
# -------------------------
from .user import (
    UserProfile,
    ProfileUpdate,
    RoleAssignment,
    PropertyAssignmentRequest,
    AcceptInvitationRequest,
)

# -------------------------
# Roles / Organizations
# -------------------------
from .role import (
    RoleBase,
    RoleCreate,
    RoleUpdate,
    RoleRecord,
)
from .organization import (
    OrganizationBase,
    OrganizationCreate,
    OrganizationUpdate,
    OrganizationRead,
)

# -------------------------
# Onboarding
# -------------------------
from .access_request import (
    AccessRequestCreate,
    AccessRequestResponse,
    AccessRequestRead,
)
from .invitation import (
    InvitationCreate,
    InvitationRead,
)

# -------------------------
# Portfolio Records
# -------------------------
from .property import (
    PropertyType,
    PropertyBase,
    PropertyCreate,
    PropertyUpdate,
    PropertyRecord,
)
from .rent import (
    RentBase,
    RentCreate,
    RentUpdate,
    RentRecord,
)
from .payment import (
    PaymentBase,
    PaymentCreate,
    PaymentUpdate,
    PaymentRecord,
)
from .invoice import (
    InvoiceBase,
    InvoiceCreate,
    InvoiceUpdate,
    InvoiceRecord,
)

__all__ = [
    # enums
    "UserStatus",
    "OrganizationStatus",
    "AccessRequestStatus",
    "InvitationStatus",
    "PropertyStatus",
    "RentStatus",
    "PaymentStatus",
    "InvoiceStatus",
    "AssignmentRole",

    # users
    "UserProfile",
    "ProfileUpdate",
    "RoleAssignment",
    "PropertyAssignmentRequest",
    "AcceptInvitationRequest",

    # roles
    "RoleBase",
    "RoleCreate",
    "RoleUpdate",
    "RoleRecord",

    # organizations
    "OrganizationBase",
    "OrganizationCreate",
    "OrganizationUpdate",
    "OrganizationRead",

    # access requests / invitations
    "AccessRequestCreate",
    "AccessRequestResponse",
    "AccessRequestRead",
    "InvitationCreate",
    "InvitationRead",

    # properties
    "PropertyType",
    "PropertyBase",
    "PropertyCreate",
    "PropertyUpdate",
    "PropertyRecord",

    # rent
    "RentBase",
    "RentCreate",
    "RentUpdate",
    "RentRecord",

    # payments
    "PaymentBase",
    "PaymentCreate",
    "PaymentUpdate",
    "PaymentRecord",

    # invoices
    "InvoiceBase",
    "InvoiceCreate",
    "InvoiceUpdate",
    "InvoiceRecord",
]
