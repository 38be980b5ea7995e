import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import BackgroundTasks
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .charges import DEFAULT_RATE_PER_UNIT, derive_bill_amounts, to_decimal
from .errors import DuplicateError, NotFoundError, ValidationError
from .models import Bill, BillStatus, Role, User
from .notifications import BillNotifier, dispatch_bill_notification
from .reporting import current_period, summarize_bills

logger = logging.getLogger(__name__)

__all__ = [
    "create_bill",
    "current_bill",
    "current_period",
    "delete_bill",
    "derive_bill_amounts",
    "list_bills",
    "parse_period",
    "set_bill_status",
    "tenant_bills",
    "update_bill",
]

PERIOD_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")

BILL_STATUSES = {s.value for s in BillStatus}

TENANT_FIELDS = ("name", "email", "phone", "unit")


def parse_period(period: Any) -> int:
    """Validate a ``YYYY-MM`` key and return its year."""
    if not isinstance(period, str):
        raise ValidationError("Period must be a YYYY-MM string")
    m = PERIOD_RE.match(period.strip())
    if not m:
        raise ValidationError(f"Invalid period {period!r}, expected YYYY-MM")
    return int(m.group(1))


def tenant_snapshot(user: Optional[User]) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    out = {"id": user.id}
    for f in TENANT_FIELDS:
        out[f] = getattr(user, f)
    return out


def bill_to_dict(bill: Bill, tenant: Optional[User] = None) -> Dict[str, Any]:
    data = {
        "id": bill.id,
        "tenant_id": bill.tenant_id,
        "period": bill.period,
        "year": bill.year,
        "base_rent": bill.base_rent,
        "previous_unit": bill.previous_unit,
        "current_unit": bill.current_unit,
        "units_consumed": bill.units_consumed,
        "rate_per_unit": bill.rate_per_unit,
        "electricity_amount": bill.electricity_amount,
        "total_amount": bill.total_amount,
        "status": bill.status,
        "paid_date": bill.paid_date,
        "notes": bill.notes,
        "created_at": bill.created_at,
        "updated_at": bill.updated_at,
    }
    if tenant is not None:
        data["tenant"] = tenant_snapshot(tenant)
    return data


def _validate_status(status: Any) -> str:
    if not isinstance(status, str) or status not in BILL_STATUSES:
        raise ValidationError("Status must be Paid or Unpaid")
    return status


def _get_bill(session: Session, bill_id: int) -> Bill:
    bill = session.get(Bill, bill_id) if bill_id is not None else None
    if not bill:
        raise NotFoundError("Bill not found")
    return bill


def find_bill_for_period(session: Session, tenant_id: int, period: str) -> Optional[Bill]:
    return session.exec(
        select(Bill).where(Bill.tenant_id == tenant_id, Bill.period == period)
    ).first()


def _save(session: Session, bill: Bill) -> Dict[str, Any]:
    bill.recompute()
    session.add(bill)
    session.commit()
    session.refresh(bill)
    tenant = session.get(User, bill.tenant_id)
    return bill_to_dict(bill, tenant)


def create_bill(
    session: Session,
    tenant_id: Optional[int],
    period: Optional[str],
    base_rent: Any = None,
    previous_unit: Any = None,
    current_unit: Any = None,
    notifier: Optional[BillNotifier] = None,
    background_tasks: Optional[BackgroundTasks] = None,
) -> Dict[str, Any]:
    """Generate the bill for one tenant and one period.

    The (tenant, period) pair is checked up front and again by the
    ``uq_bill_tenant_period`` constraint, so two concurrent requests for the
    same pair produce one bill and one ``DuplicateError``.

    Once committed, the bill is handed to ``notifier``: scheduled on
    ``background_tasks`` when given, so delivery happens after the response
    is sent. Without ``background_tasks`` the notifier runs inline and the
    caller waits for it; that path is meant for scripts and tests, request
    handlers always pass their ``BackgroundTasks``. Either way a notifier
    failure is only logged.
    """
    if not tenant_id or not period:
        raise ValidationError("Tenant and period are required")
    year = parse_period(period)
    period = period.strip()

    tenant = session.get(User, tenant_id)
    if not tenant or tenant.role != Role.tenant.value or not tenant.is_active:
        raise NotFoundError("Tenant not found")

    if find_bill_for_period(session, tenant.id, period):
        raise DuplicateError(f"Bill for {period} already generated")

    rent = to_decimal(base_rent, default=None)
    if rent is None:
        rent = to_decimal(tenant.base_rent)
    if rent < 0:
        raise ValidationError("Base rent cannot be negative")

    bill = Bill(
        tenant_id=tenant.id,
        period=period,
        year=year,
        base_rent=rent,
        previous_unit=to_decimal(previous_unit),
        current_unit=to_decimal(current_unit),
        rate_per_unit=DEFAULT_RATE_PER_UNIT,
    )
    try:
        data = _save(session, bill)
    except IntegrityError:
        session.rollback()
        logger.info("Duplicate bill rejected by constraint: tenant=%s period=%s", tenant_id, period)
        raise DuplicateError("Bill already exists for this tenant and period")

    logger.info(
        "Generated bill %s for tenant %s period %s total %s",
        data["id"],
        tenant_id,
        period,
        data["total_amount"],
    )

    tenant_data = data["tenant"]
    bill_data = {k: v for k, v in data.items() if k != "tenant"}
    if notifier is not None:
        if background_tasks is not None:
            background_tasks.add_task(dispatch_bill_notification, notifier, tenant_data, bill_data)
        else:
            dispatch_bill_notification(notifier, tenant_data, bill_data)
    return data


def update_bill(
    session: Session,
    bill_id: int,
    previous_unit: Any = None,
    current_unit: Any = None,
    status: Optional[str] = None,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    bill = _get_bill(session, bill_id)

    if previous_unit is not None:
        value = to_decimal(previous_unit, default=None)
        if value is None:
            raise ValidationError("previous_unit must be numeric")
        bill.previous_unit = value
    if current_unit is not None:
        value = to_decimal(current_unit, default=None)
        if value is None:
            raise ValidationError("current_unit must be numeric")
        bill.current_unit = value
    if status:
        bill.mark(_validate_status(status))
    if notes is not None:
        bill.notes = notes

    data = _save(session, bill)
    logger.info("Updated bill %s (status=%s total=%s)", bill_id, bill.status, bill.total_amount)
    return data


def set_bill_status(session: Session, bill_id: int, status: Any) -> Dict[str, Any]:
    status = _validate_status(status)
    bill = _get_bill(session, bill_id)
    bill.mark(status)
    data = _save(session, bill)
    logger.info("Bill %s marked %s", bill_id, status)
    return data


def delete_bill(session: Session, bill_id: int) -> bool:
    """Delete a bill; deleting a missing bill is not an error."""
    bill = session.get(Bill, bill_id)
    if not bill:
        logger.debug("Delete of missing bill %s ignored", bill_id)
        return False
    session.delete(bill)
    session.commit()
    logger.info("Deleted bill %s", bill_id)
    return True


def list_bills(
    session: Session,
    period: Optional[str] = None,
    status: Optional[str] = None,
    tenant_id: Optional[int] = None,
) -> Dict[str, Any]:
    """Bills matching the filters, newest first, with paid/unpaid totals."""
    stmt = select(Bill, User).join(User, Bill.tenant_id == User.id)
    if period:
        stmt = stmt.where(Bill.period == period)
    if status:
        stmt = stmt.where(Bill.status == status)
    if tenant_id:
        stmt = stmt.where(Bill.tenant_id == tenant_id)
    stmt = stmt.order_by(Bill.created_at.desc(), Bill.id.desc())

    rows = session.exec(stmt).all()
    bills = [b for b, _ in rows]
    totals = summarize_bills(bills)
    return {
        "count": len(bills),
        "total_collection": totals["collection"],
        "total_pending": totals["pending"],
        "bills": [bill_to_dict(b, u) for b, u in rows],
    }


def tenant_bills(session: Session, tenant_id: int) -> List[Dict[str, Any]]:
    bills = session.exec(
        select(Bill)
        .where(Bill.tenant_id == tenant_id)
        .order_by(Bill.period.desc())
    ).all()
    return [bill_to_dict(b) for b in bills]


def current_bill(
    session: Session, tenant_id: int, now: Optional[datetime] = None
) -> Optional[Dict[str, Any]]:
    bill = find_bill_for_period(session, tenant_id, current_period(now))
    return bill_to_dict(bill) if bill else None
