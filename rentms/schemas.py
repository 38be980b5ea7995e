from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel, Field

# Required fields are Optional here on purpose: the services own the
# "missing field" checks so they answer with the 400 message callers expect.


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class TenantCreate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None
    unit: Optional[str] = None
    base_rent: Optional[Decimal] = Field(None, description="Monthly base rent")


class TenantUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    unit: Optional[str] = None
    base_rent: Optional[Decimal] = None
    is_active: Optional[bool] = None


class BillGenerate(BaseModel):
    tenant_id: Optional[int] = None
    period: Optional[str] = Field(None, description="Billing period, YYYY-MM")
    # non-numeric readings fall back to 0, a non-numeric rent to the tenant's rent
    base_rent: Optional[Union[Decimal, str]] = None
    previous_unit: Optional[Union[Decimal, str]] = None
    current_unit: Optional[Union[Decimal, str]] = None


class BillUpdate(BaseModel):
    previous_unit: Optional[Decimal] = None
    current_unit: Optional[Decimal] = None
    status: Optional[str] = Field(None, description="Paid or Unpaid")
    notes: Optional[str] = None


class BillStatusUpdate(BaseModel):
    status: Optional[str] = None


class ComplaintCreate(BaseModel):
    category: Optional[str] = None
    subject: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None


class ComplaintUpdate(BaseModel):
    status: Optional[str] = None
    admin_note: Optional[str] = None
