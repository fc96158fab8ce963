# models/organization.py

from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field

from models.enums import OrganizationStatus


class OrganizationBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    status: OrganizationStatus = OrganizationStatus.active
    is_default: bool = Field(False, description="Target of access requests that name no organization")


class OrganizationCreate(OrganizationBase):
    pass


class OrganizationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    status: Optional[OrganizationStatus] = None


class OrganizationRead(OrganizationBase):
    id: str
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
