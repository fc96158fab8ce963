# models/role.py

from typing import List, Optional
from pydantic import BaseModel, Field, field_validator


class RoleBase(BaseModel):
    """Base role model."""
    display_name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    level: int = Field(5, ge=1, le=10, description="Informational rank, 10 = highest")


class RoleCreate(RoleBase):
    """Custom role; permission names are checked against the catalog."""
    name: str = Field(..., min_length=2, max_length=50, pattern=r"^[a-z][a-z0-9_]*$")
    permissions: List[str] = Field(default_factory=list)


class RoleUpdate(BaseModel):
    display_name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    level: Optional[int] = Field(None, ge=1, le=10)
    permissions: Optional[List[str]] = None


class RoleRecord(RoleBase):
    """Role as stored in `roles`. Every role belongs to one organization."""
    id: str
    name: str
    organization_id: Optional[str] = None
    permissions: List[str] = Field(default_factory=list)
    is_system_role: bool = False

    model_config = {"extra": "ignore", "frozen": True}

    @field_validator("permissions", mode="before")
    @classmethod
    def null_list_is_empty(cls, v):
        return v or []
