# models/access_request.py

from typing import Optional, Literal
from datetime import datetime
from pydantic import BaseModel, Field

from models.enums import AccessRequestStatus


ResponseAction = Literal["approve", "reject"]


class AccessRequestCreate(BaseModel):
    """Unassigned subject asks to join an organization (default organization when omitted)."""
    organization_id: Optional[str] = None
    message: Optional[str] = Field(None, max_length=500)


class AccessRequestResponse(BaseModel):
    """Admin decision. role_id is required to approve."""
    action: ResponseAction
    role_id: Optional[str] = None
    message: Optional[str] = Field(None, max_length=500)


class AccessRequestRead(BaseModel):
    id: str
    user_id: str
    user_email: Optional[str] = None
    user_name: Optional[str] = None
    organization_id: str
    message: Optional[str] = None
    status: AccessRequestStatus
    role_id: Optional[str] = None
    responded_by: Optional[str] = None
    responded_at: Optional[datetime] = None
    requested_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
