from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Column, DateTime, Numeric, Text, UniqueConstraint, event
from sqlmodel import Field, SQLModel

from ..charges import DEFAULT_RATE_PER_UNIT, derive_bill_amounts
from .domain import BillStatus, utcnow


def MoneyColumn(name: str):
    return Column(name, Numeric(18, 4), nullable=False, default=0)


class Bill(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("tenant_id", "period", name="uq_bill_tenant_period"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tenant_id: int = Field(foreign_key="user.id", index=True)
    period: str = Field(nullable=False, index=True)  # YYYY-MM
    year: int
    base_rent: Decimal = Field(default=Decimal("0"), sa_column=MoneyColumn("base_rent"))
    previous_unit: Decimal = Field(default=Decimal("0"), sa_column=MoneyColumn("previous_unit"))
    current_unit: Decimal = Field(default=Decimal("0"), sa_column=MoneyColumn("current_unit"))
    units_consumed: Decimal = Field(default=Decimal("0"), sa_column=MoneyColumn("units_consumed"))
    rate_per_unit: Decimal = Field(
        default=DEFAULT_RATE_PER_UNIT, sa_column=MoneyColumn("rate_per_unit")
    )
    electricity_amount: Decimal = Field(
        default=Decimal("0"), sa_column=MoneyColumn("electricity_amount")
    )
    total_amount: Decimal = Field(default=Decimal("0"), sa_column=MoneyColumn("total_amount"))
    status: str = Field(default=BillStatus.unpaid.value, index=True)
    paid_date: Optional[datetime] = Field(
        default=None, sa_column=Column("paid_date", DateTime(timezone=True), nullable=True)
    )
    notes: str = Field(default="", sa_column=Column("notes", Text, nullable=False, default=""))
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column("created_at", DateTime(timezone=True))
    )
    updated_at: Optional[datetime] = Field(
        default=None, sa_column=Column("updated_at", DateTime(timezone=True), nullable=True)
    )

    def recompute(self) -> None:
        """Refresh the derived amounts from base rent, readings and rate."""
        units, electricity, total = derive_bill_amounts(
            self.base_rent, self.previous_unit, self.current_unit, self.rate_per_unit
        )
        self.units_consumed = units
        self.electricity_amount = electricity
        self.total_amount = total

    def mark(self, status: str) -> None:
        """Set the payment status; Paid stamps paid_date, Unpaid clears it."""
        self.status = status
        self.paid_date = utcnow() if status == BillStatus.paid.value else None


# Derived fields are never trusted from callers: whatever path reaches the
# database goes through recompute() first.
@event.listens_for(Bill, "before_insert")
def _bill_before_insert(mapper, connection, target: Bill):
    target.recompute()


@event.listens_for(Bill, "before_update")
def _bill_before_update(mapper, connection, target: Bill):
    target.recompute()
    target.updated_at = utcnow()
