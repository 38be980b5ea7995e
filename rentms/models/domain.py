from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Column, DateTime, Numeric, String
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    admin = "admin"
    tenant = "tenant"


class BillStatus(str, Enum):
    unpaid = "Unpaid"
    paid = "Paid"


class ComplaintStatus(str, Enum):
    pending = "Pending"
    in_progress = "In Progress"
    resolved = "Resolved"


class ComplaintPriority(str, Enum):
    low = "Low"
    medium = "Medium"
    high = "High"


class ComplaintCategory(str, Enum):
    water = "Water"
    electricity = "Electricity"
    repair = "Repair"
    plumbing = "Plumbing"
    security = "Security"
    cleaning = "Cleaning"
    other = "Other"


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(nullable=False)
    # stored lower-cased; the unique index makes e-mail case-insensitive
    email: str = Field(sa_column=Column("email", String(255), unique=True, nullable=False))
    phone: Optional[str] = Field(default=None)
    password_hash: str
    role: str = Field(default=Role.tenant.value, index=True)  # admin | tenant
    unit: str = Field(default="")
    base_rent: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column("base_rent", Numeric(18, 4), nullable=False, default=0),
    )
    is_active: bool = Field(default=True)
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column("created_at", DateTime(timezone=True))
    )
