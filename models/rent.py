# models/rent.py

from typing import Optional
from datetime import date, datetime
from pydantic import BaseModel, Field, field_validator

from models.enums import RentStatus


class RentBase(BaseModel):
    property_id: str
    space_id: Optional[str] = Field(None, description="Set for space-level assignments")
    space_name: Optional[str] = None
    tenant_name: str = Field(..., min_length=1, max_length=200)
    tenant_email: Optional[str] = None
    tenant_phone: Optional[str] = None
    tenant_id: Optional[str] = Field(None, description="Identity uid of the occupant, when they have an account")
    monthly_rent: float = Field(0, ge=0)
    deposit: float = Field(0, ge=0)
    lease_start: date
    lease_end: Optional[date] = None
    payment_due_day: int = Field(1, ge=1, le=31)
    status: RentStatus = RentStatus.active
    notes: Optional[str] = Field(None, max_length=1000)


class RentCreate(RentBase):
    pass


class RentUpdate(BaseModel):
    """The rent record's property is fixed at creation."""
    space_id: Optional[str] = None
    space_name: Optional[str] = None
    tenant_name: Optional[str] = Field(None, min_length=1, max_length=200)
    tenant_email: Optional[str] = None
    tenant_phone: Optional[str] = None
    tenant_id: Optional[str] = None
    monthly_rent: Optional[float] = Field(None, ge=0)
    deposit: Optional[float] = Field(None, ge=0)
    lease_start: Optional[date] = None
    lease_end: Optional[date] = None
    payment_due_day: Optional[int] = Field(None, ge=1, le=31)
    status: Optional[RentStatus] = None
    notes: Optional[str] = Field(None, max_length=1000)


class RentRecord(BaseModel):
    id: str
    organization_id: str
    property_id: str
    space_id: Optional[str] = None
    tenant_id: Optional[str] = None
    tenant_name: Optional[str] = None
    monthly_rent: float = 0
    status: RentStatus = RentStatus.active
    created_at: Optional[datetime] = None

    model_config = {"extra": "ignore"}

    @field_validator("space_id", "tenant_id", mode="before")
    @classmethod
    def blank_is_none(cls, v):
        return v or None
