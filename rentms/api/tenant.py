from fastapi import APIRouter, Depends
from sqlmodel import Session

from ..auth import require_role
from ..billing import current_bill, tenant_bills
from ..complaints import submit_complaint, tenant_complaints
from ..db import get_session
from ..models import Role, User
from ..reporting import current_period, tenant_dashboard
from ..schemas import ComplaintCreate

router = APIRouter(prefix="/api/tenant", tags=["tenant"])

tenant_only = require_role(Role.tenant.value)


@router.get("/bills")
def api_my_bills(current_user: User = Depends(tenant_only), session: Session = Depends(get_session)):
    bills = tenant_bills(session, current_user.id)
    return {"success": True, "count": len(bills), "bills": bills}


@router.get("/bills/current")
def api_my_current_bill(
    current_user: User = Depends(tenant_only), session: Session = Depends(get_session)
):
    return {
        "success": True,
        "bill": current_bill(session, current_user.id),
        "current_month": current_period(),
    }


@router.get("/complaints")
def api_my_complaints(
    current_user: User = Depends(tenant_only), session: Session = Depends(get_session)
):
    complaints = tenant_complaints(session, current_user.id)
    return {"success": True, "count": len(complaints), "complaints": complaints}


@router.post("/complaints", status_code=201)
def api_submit_complaint(
    payload: ComplaintCreate,
    current_user: User = Depends(tenant_only),
    session: Session = Depends(get_session),
):
    complaint = submit_complaint(
        session,
        current_user.id,
        payload.category,
        payload.subject,
        payload.description,
        priority=payload.priority,
    )
    return {"success": True, "message": "Complaint submitted", "complaint": complaint}


@router.get("/dashboard")
def api_my_dashboard(
    current_user: User = Depends(tenant_only), session: Session = Depends(get_session)
):
    return {"success": True, "dashboard": tenant_dashboard(session, current_user)}
