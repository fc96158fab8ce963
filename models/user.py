# models/user.py

from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from models.enums import UserStatus, AssignmentRole


# -----------------------------------------------------
# Subject profile (stored in `users`, keyed by identity uid)
# -----------------------------------------------------
class UserProfile(BaseModel):
    uid: str = Field(..., alias="id")
    email: Optional[str] = None
    display_name: Optional[str] = None
    phone: Optional[str] = None

    # RBAC fields
    organization_id: Optional[str] = None
    role_id: Optional[str] = None
    permissions: List[str] = Field(default_factory=list, description="Subject-specific extra permissions")
    status: UserStatus = UserStatus.pending
    assigned_properties: List[str] = Field(default_factory=list, description="Denormalized cache of property ids")

    pending_organization_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @field_validator("organization_id", "role_id", "pending_organization_id", mode="before")
    @classmethod
    def blank_is_absent(cls, v):
        # A stored "" is the same as no reference at all
        return v or None

    @field_validator("permissions", "assigned_properties", mode="before")
    @classmethod
    def null_list_is_empty(cls, v):
        return v or []


class ProfileUpdate(BaseModel):
    """Self-service edits; organization, role and permissions are never writable here."""
    display_name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)


class RoleAssignment(BaseModel):
    role_id: str


class PropertyAssignmentRequest(BaseModel):
    property_ids: List[str] = Field(..., min_length=1)
    role: AssignmentRole


class AcceptInvitationRequest(BaseModel):
    invitation_id: str
