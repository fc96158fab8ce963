# models/invitation.py

from typing import Optional
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field

from models.enums import InvitationStatus


class InvitationCreate(BaseModel):
    email: EmailStr
    role_id: str
    message: Optional[str] = Field(None, max_length=500)


class InvitationRead(BaseModel):
    id: str
    email: str
    organization_id: str
    role_id: str
    invited_by: str
    message: Optional[str] = None
    status: InvitationStatus
    expires_at: datetime
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
