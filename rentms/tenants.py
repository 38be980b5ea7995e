import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .auth import get_password_hash
from .charges import to_decimal
from .errors import DuplicateError, NotFoundError, ValidationError
from .models import Bill, Complaint, Role, User

logger = logging.getLogger(__name__)


def user_to_dict(u: User) -> Dict[str, Any]:
    # never expose password_hash
    return {
        "id": u.id,
        "name": u.name,
        "email": u.email,
        "phone": u.phone,
        "role": u.role,
        "unit": u.unit,
        "base_rent": u.base_rent,
        "is_active": u.is_active,
        "created_at": u.created_at,
    }


def _base_rent(value: Any):
    rent = to_decimal(value, default=None)
    if rent is None:
        raise ValidationError("Base rent must be numeric")
    if rent < 0:
        raise ValidationError("Base rent cannot be negative")
    return rent


def _get_tenant(session: Session, tenant_id: int) -> User:
    tenant = session.get(User, tenant_id)
    if not tenant or tenant.role != Role.tenant.value:
        raise NotFoundError("Tenant not found")
    return tenant


def create_tenant(
    session: Session,
    name: Optional[str],
    email: Optional[str],
    phone: Optional[str],
    password: Optional[str],
    unit: Optional[str] = None,
    base_rent: Any = None,
) -> Dict[str, Any]:
    if not name or not email or not phone or not password:
        raise ValidationError("Name, email, phone and password are required")
    email = email.strip().lower()
    rent = _base_rent(base_rent) if base_rent not in (None, "") else to_decimal(0)

    if session.exec(select(User).where(User.email == email)).first():
        raise DuplicateError("Email already registered")

    tenant = User(
        name=name,
        email=email,
        phone=phone,
        password_hash=get_password_hash(password),
        unit=unit or "",
        base_rent=rent,
        role=Role.tenant.value,
    )
    session.add(tenant)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise DuplicateError("Email already exists")
    session.refresh(tenant)
    logger.info("Tenant %s created (%s)", tenant.id, email)
    return user_to_dict(tenant)


def list_tenants(session: Session) -> List[Dict[str, Any]]:
    rows = session.exec(
        select(User)
        .where(User.role == Role.tenant.value)
        .order_by(User.created_at.desc(), User.id.desc())
    ).all()
    return [user_to_dict(u) for u in rows]


def update_tenant(
    session: Session,
    tenant_id: int,
    name: Optional[str] = None,
    phone: Optional[str] = None,
    unit: Optional[str] = None,
    base_rent: Any = None,
    is_active: Optional[bool] = None,
) -> Dict[str, Any]:
    """Patch a tenant's profile. Existing bills keep the rent they were issued with."""
    tenant = _get_tenant(session, tenant_id)
    if name is not None:
        tenant.name = name
    if phone is not None:
        tenant.phone = phone
    if unit is not None:
        tenant.unit = unit
    if base_rent is not None:
        tenant.base_rent = _base_rent(base_rent)
    if is_active is not None:
        tenant.is_active = is_active
    session.add(tenant)
    session.commit()
    session.refresh(tenant)
    logger.info("Tenant %s updated", tenant_id)
    return user_to_dict(tenant)


def delete_tenant(session: Session, tenant_id: int) -> None:
    """Delete a tenant together with all of its bills and complaints."""
    tenant = _get_tenant(session, tenant_id)
    bills = session.exec(delete(Bill).where(Bill.tenant_id == tenant.id))
    complaints = session.exec(delete(Complaint).where(Complaint.tenant_id == tenant.id))
    session.delete(tenant)
    session.commit()
    logger.info(
        "Tenant %s deleted with %s bill(s) and %s complaint(s)",
        tenant_id,
        bills.rowcount,
        complaints.rowcount,
    )
