# models/payment.py

from typing import Optional
from datetime import date, datetime
from pydantic import BaseModel, Field, field_validator

from models.enums import PaymentStatus


class PaymentBase(BaseModel):
    property_id: str
    rent_id: str
    invoice_id: Optional[str] = None
    amount: float = Field(..., gt=0)
    payment_date: date
    payment_method: str = Field("cash", max_length=50)
    status: PaymentStatus = PaymentStatus.completed
    reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=500)


class PaymentCreate(PaymentBase):
    pass


class PaymentUpdate(BaseModel):
    """References are re-validated whenever any of them changes."""
    property_id: Optional[str] = None
    rent_id: Optional[str] = None
    invoice_id: Optional[str] = None
    amount: Optional[float] = Field(None, gt=0)
    payment_date: Optional[date] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    status: Optional[PaymentStatus] = None
    reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=500)


class PaymentRecord(BaseModel):
    id: str
    organization_id: str
    property_id: str
    rent_id: str
    invoice_id: Optional[str] = None
    amount: float = 0
    status: PaymentStatus = PaymentStatus.completed
    created_at: Optional[datetime] = None

    model_config = {"extra": "ignore"}

    @field_validator("invoice_id", mode="before")
    @classmethod
    def blank_is_none(cls, v):
        return v or None
