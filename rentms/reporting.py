"""Read-only aggregates for the admin and tenant dashboards.

Totals are folded over a fresh query on every call; nothing is cached or
maintained incrementally. The individual counts are separate queries and
are not taken inside one transaction, which is acceptable for a dashboard.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from .models import Bill, BillStatus, Complaint, ComplaintStatus, Role, User


def current_period(now: Optional[datetime] = None) -> str:
    """``YYYY-MM`` of ``now`` (UTC by default)."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m")


def summarize_bills(bills: Iterable[Bill]) -> Dict[str, Any]:
    collection = Decimal("0")
    pending = Decimal("0")
    paid_count = 0
    unpaid_count = 0
    for b in bills:
        amount = b.total_amount or Decimal("0")
        if b.status == BillStatus.paid.value:
            collection += amount
            paid_count += 1
        elif b.status == BillStatus.unpaid.value:
            pending += amount
            unpaid_count += 1
    return {
        "collection": collection,
        "pending": pending,
        "paid_count": paid_count,
        "unpaid_count": unpaid_count,
        "count": paid_count + unpaid_count,
    }


def _count(session: Session, stmt) -> int:
    return session.exec(stmt).one()


def admin_stats(session: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    period = current_period(now)

    total_tenants = _count(
        session, select(func.count()).select_from(User).where(User.role == Role.tenant.value)
    )
    active_tenants = _count(
        session,
        select(func.count())
        .select_from(User)
        .where(User.role == Role.tenant.value, User.is_active == True),  # noqa: E712
    )

    month_bills = session.exec(select(Bill).where(Bill.period == period)).all()
    month = summarize_bills(month_bills)

    paid_bills = session.exec(select(Bill).where(Bill.status == BillStatus.paid.value)).all()
    all_time = summarize_bills(paid_bills)

    pending_complaints = _count(
        session,
        select(func.count())
        .select_from(Complaint)
        .where(Complaint.status != ComplaintStatus.resolved.value),
    )
    total_complaints = _count(session, select(func.count()).select_from(Complaint))

    return {
        "total_tenants": total_tenants,
        "active_tenants": active_tenants,
        "current_month": period,
        "current_month_bills": len(month_bills),
        "current_month_paid_count": month["paid_count"],
        "current_month_unpaid_count": month["unpaid_count"],
        "current_month_collection": month["collection"],
        "current_month_pending": month["pending"],
        "total_collection": all_time["collection"],
        "pending_complaints": pending_complaints,
        "total_complaints": total_complaints,
    }


def tenant_dashboard(session: Session, tenant: User, now: Optional[datetime] = None) -> Dict[str, Any]:
    from .billing import bill_to_dict

    period = current_period(now)
    bills = session.exec(select(Bill).where(Bill.tenant_id == tenant.id)).all()
    complaints = session.exec(select(Complaint).where(Complaint.tenant_id == tenant.id)).all()

    current = next((b for b in bills if b.period == period), None)
    totals = summarize_bills(bills)

    return {
        "tenant": {
            "id": tenant.id,
            "name": tenant.name,
            "email": tenant.email,
            "phone": tenant.phone,
            "unit": tenant.unit,
            "base_rent": tenant.base_rent,
        },
        "current_month": period,
        "current_bill": bill_to_dict(current) if current else None,
        "total_paid": totals["collection"],
        "total_bills": len(bills),
        "paid_count": totals["paid_count"],
        "unpaid_count": totals["unpaid_count"],
        "total_complaints": len(complaints),
        "pending_complaints": sum(1 for c in complaints if c.status == ComplaintStatus.pending.value),
        "resolved_complaints": sum(1 for c in complaints if c.status == ComplaintStatus.resolved.value),
    }
