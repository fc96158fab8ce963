# models/property.py

from typing import List, Optional, Literal
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from models.enums import PropertyStatus


PropertyType = Literal["land", "building"]


class PropertyBase(BaseModel):
    """Base property model."""
    name: str = Field(..., min_length=1, max_length=200)
    type: PropertyType = "building"
    address: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = Field(None, max_length=1000)
    status: PropertyStatus = PropertyStatus.vacant


class PropertyCreate(PropertyBase):
    assigned_managers: List[str] = Field(default_factory=list)
    caretaker_id: Optional[str] = None


class PropertyUpdate(BaseModel):
    """Assignments are managed through the users router, not here."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    type: Optional[PropertyType] = None
    address: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = Field(None, max_length=1000)
    status: Optional[PropertyStatus] = None


class PropertyRecord(PropertyBase):
    """
    Stored property. `caretaker_id` absent and `caretaker_id` empty are
    both None, so a missing pointer can never match a subject.
    """
    id: str
    organization_id: str
    assigned_managers: List[str] = Field(default_factory=list)
    caretaker_id: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"extra": "ignore"}

    @field_validator("caretaker_id", mode="before")
    @classmethod
    def blank_caretaker_is_none(cls, v):
        return v or None

    @field_validator("assigned_managers", mode="before")
    @classmethod
    def null_list_is_empty(cls, v):
        return [m for m in (v or []) if m]

    def is_assigned_to(self, subject_id: str) -> bool:
        return subject_id in self.assigned_managers or (
            self.caretaker_id is not None and self.caretaker_id == subject_id
        )
