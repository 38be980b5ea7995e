import logging
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from .errors import NotFoundError, ValidationError
from .models import (
    Complaint,
    ComplaintCategory,
    ComplaintPriority,
    ComplaintStatus,
    User,
    utcnow,
)
from .models.complaint import ADMIN_NOTE_MAX, DESCRIPTION_MAX, SUBJECT_MAX

logger = logging.getLogger(__name__)

CATEGORIES = [c.value for c in ComplaintCategory]
PRIORITIES = [p.value for p in ComplaintPriority]
STATUSES = [s.value for s in ComplaintStatus]


def complaint_to_dict(c: Complaint, tenant: Optional[User] = None) -> Dict[str, Any]:
    data = {
        "id": c.id,
        "tenant_id": c.tenant_id,
        "category": c.category,
        "subject": c.subject,
        "description": c.description,
        "status": c.status,
        "priority": c.priority,
        "admin_note": c.admin_note,
        "resolved_at": c.resolved_at,
        "created_at": c.created_at,
        "updated_at": c.updated_at,
    }
    if tenant is not None:
        data["tenant"] = {
            "id": tenant.id,
            "name": tenant.name,
            "email": tenant.email,
            "phone": tenant.phone,
            "unit": tenant.unit,
        }
    return data


def _check_length(value: str, limit: int, label: str) -> None:
    if len(value) > limit:
        raise ValidationError(f"{label} cannot exceed {limit} characters")


def submit_complaint(
    session: Session,
    tenant_id: int,
    category: Optional[str],
    subject: Optional[str],
    description: Optional[str],
    priority: Optional[str] = None,
) -> Dict[str, Any]:
    subject = (subject or "").strip()
    description = (description or "").strip()
    if not category or not subject or not description:
        raise ValidationError("Category, subject and description are required")
    if category not in CATEGORIES:
        raise ValidationError(f"Category must be one of: {', '.join(CATEGORIES)}")
    priority = priority or ComplaintPriority.medium.value
    if priority not in PRIORITIES:
        raise ValidationError(f"Priority must be one of: {', '.join(PRIORITIES)}")
    _check_length(subject, SUBJECT_MAX, "Subject")
    _check_length(description, DESCRIPTION_MAX, "Description")

    c = Complaint(
        tenant_id=tenant_id,
        category=category,
        subject=subject,
        description=description,
        priority=priority,
        status=ComplaintStatus.pending.value,
    )
    session.add(c)
    session.commit()
    session.refresh(c)
    logger.info("Complaint %s submitted by tenant %s (%s)", c.id, tenant_id, category)
    return complaint_to_dict(c)


def update_complaint(
    session: Session,
    complaint_id: int,
    status: Optional[str] = None,
    admin_note: Optional[str] = None,
) -> Dict[str, Any]:
    c = session.get(Complaint, complaint_id)
    if not c:
        raise NotFoundError("Complaint not found")

    if status is not None:
        if status not in STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(STATUSES)}")
        c.status = status
        # re-opening keeps the earlier resolved_at
        if status == ComplaintStatus.resolved.value:
            c.resolved_at = utcnow()
    if admin_note is not None:
        _check_length(admin_note, ADMIN_NOTE_MAX, "Admin note")
        c.admin_note = admin_note

    c.updated_at = utcnow()
    session.add(c)
    session.commit()
    session.refresh(c)
    logger.info("Complaint %s updated (status=%s)", c.id, c.status)
    return complaint_to_dict(c, session.get(User, c.tenant_id))


def list_complaints(session: Session, status: Optional[str] = None) -> List[Dict[str, Any]]:
    stmt = select(Complaint, User).join(User, Complaint.tenant_id == User.id)
    if status:
        stmt = stmt.where(Complaint.status == status)
    stmt = stmt.order_by(Complaint.created_at.desc(), Complaint.id.desc())
    return [complaint_to_dict(c, u) for c, u in session.exec(stmt).all()]


def tenant_complaints(session: Session, tenant_id: int) -> List[Dict[str, Any]]:
    rows = session.exec(
        select(Complaint)
        .where(Complaint.tenant_id == tenant_id)
        .order_by(Complaint.created_at.desc(), Complaint.id.desc())
    ).all()
    return [complaint_to_dict(c) for c in rows]
