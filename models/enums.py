from enum import Enum


class BaseStrEnum(str, Enum):
    """
    Base enum that serializes cleanly to a string
    and provides a .list() method for UI dropdowns.
    """

    def __str__(self):
        return str(self.value)

    @classmethod
    def list(cls):
        return [item.value for item in cls]


# -----------------------------------------------------
# USER STATUS
# -----------------------------------------------------
class UserStatus(BaseStrEnum):
    """Lifecycle of a subject profile. New identities start as pending."""

    pending = "pending"
    pending_approval = "pending_approval"
    active = "active"
    rejected = "rejected"
    inactive = "inactive"
    suspended = "suspended"


# -----------------------------------------------------
# ORGANIZATION STATUS
# -----------------------------------------------------
class OrganizationStatus(BaseStrEnum):
    active = "active"
    inactive = "inactive"
    suspended = "suspended"


# -----------------------------------------------------
# ACCESS REQUEST STATUS
# -----------------------------------------------------
class AccessRequestStatus(BaseStrEnum):
    """Terminal once approved or rejected."""

    pending = "pending"
    approved = "approved"
    rejected = "rejected"


# -----------------------------------------------------
# INVITATION STATUS
# -----------------------------------------------------
class InvitationStatus(BaseStrEnum):
    pending = "pending"
    accepted = "accepted"
    expired = "expired"
    cancelled = "cancelled"


# -----------------------------------------------------
# PROPERTY STATUS
# -----------------------------------------------------
class PropertyStatus(BaseStrEnum):
    vacant = "vacant"
    occupied = "occupied"
    maintenance = "maintenance"
    under_construction = "under_construction"


# -----------------------------------------------------
# RENT STATUS
# -----------------------------------------------------
class RentStatus(BaseStrEnum):
    active = "active"
    terminated = "terminated"
    pending = "pending"


# -----------------------------------------------------
# PAYMENT STATUS
# -----------------------------------------------------
class PaymentStatus(BaseStrEnum):
    """Only completed payments count toward an invoice's paid amount."""

    pending = "pending"
    completed = "completed"
    failed = "failed"
    refunded = "refunded"


# -----------------------------------------------------
# INVOICE STATUS
# -----------------------------------------------------
class InvoiceStatus(BaseStrEnum):
    pending = "pending"
    paid = "paid"
    partially_paid = "partially_paid"
    overdue = "overdue"
    cancelled = "cancelled"


# -----------------------------------------------------
# PROPERTY ASSIGNMENT ROLE
# -----------------------------------------------------
class AssignmentRole(BaseStrEnum):
    """manager → appended to assigned_managers; caretaker → caretaker_id."""

    manager = "manager"
    caretaker = "caretaker"
