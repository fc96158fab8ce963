# models/invoice.py

from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field

from models.enums import InvoiceStatus


class InvoiceBase(BaseModel):
    rent_id: str
    property_id: str
    invoice_number: Optional[str] = Field(None, description="Generated as INV-YYYYMMDD-NNNN when omitted")
    amount: float = Field(..., ge=0)
    due_date: datetime
    issue_date: Optional[datetime] = Field(None, description="Defaults to now")
    description: Optional[str] = Field(None, max_length=1000)
    status: InvoiceStatus = InvoiceStatus.pending
    notes: Optional[str] = Field(None, max_length=500)


class InvoiceCreate(InvoiceBase):
    pass


class InvoiceUpdate(BaseModel):
    """rent_id / property_id are fixed; invoice_number is immutable once set."""
    invoice_number: Optional[str] = None
    amount: Optional[float] = Field(None, ge=0)
    due_date: Optional[datetime] = None
    issue_date: Optional[datetime] = None
    description: Optional[str] = Field(None, max_length=1000)
    status: Optional[InvoiceStatus] = None
    notes: Optional[str] = Field(None, max_length=500)


class InvoiceRecord(BaseModel):
    id: str
    organization_id: str
    rent_id: str
    property_id: str
    invoice_number: Optional[str] = None
    amount: float = 0
    issue_date: datetime
    due_date: Optional[datetime] = None
    status: InvoiceStatus = InvoiceStatus.pending

    model_config = {"extra": "ignore"}
