from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlmodel import Session

from ..auth import require_role
from ..billing import create_bill, delete_bill, list_bills, set_bill_status, update_bill
from ..complaints import list_complaints, update_complaint
from ..db import get_session
from ..models import Role
from ..notifications import BillNotifier, get_notifier
from ..reporting import admin_stats
from ..schemas import (
    BillGenerate,
    BillStatusUpdate,
    BillUpdate,
    ComplaintUpdate,
    TenantCreate,
    TenantUpdate,
)
from ..tenants import create_tenant, delete_tenant, list_tenants, update_tenant

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(require_role(Role.admin.value))],
)


# ── Tenants ─────────────────────────────────────────────────────


@router.get("/tenants")
def api_list_tenants(session: Session = Depends(get_session)):
    tenants = list_tenants(session)
    return {"success": True, "count": len(tenants), "tenants": tenants}


@router.post("/tenants", status_code=201)
def api_create_tenant(payload: TenantCreate, session: Session = Depends(get_session)):
    tenant = create_tenant(
        session,
        name=payload.name,
        email=payload.email,
        phone=payload.phone,
        password=payload.password,
        unit=payload.unit,
        base_rent=payload.base_rent,
    )
    return {"success": True, "message": "Tenant added successfully", "tenant": tenant}


@router.put("/tenants/{tenant_id}")
def api_update_tenant(
    tenant_id: int, payload: TenantUpdate, session: Session = Depends(get_session)
):
    tenant = update_tenant(
        session,
        tenant_id,
        name=payload.name,
        phone=payload.phone,
        unit=payload.unit,
        base_rent=payload.base_rent,
        is_active=payload.is_active,
    )
    return {"success": True, "message": "Tenant updated", "tenant": tenant}


@router.delete("/tenants/{tenant_id}")
def api_delete_tenant(tenant_id: int, session: Session = Depends(get_session)):
    delete_tenant(session, tenant_id)
    return {"success": True, "message": "Tenant deleted"}


# ── Bills ───────────────────────────────────────────────────────


@router.get("/bills")
def api_list_bills(
    period: Optional[str] = None,
    status: Optional[str] = None,
    tenant_id: Optional[int] = None,
    session: Session = Depends(get_session),
):
    result = list_bills(session, period=period, status=status, tenant_id=tenant_id)
    return {"success": True, **result}


@router.post("/bills/generate", status_code=201)
def api_generate_bill(
    payload: BillGenerate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    notifier: BillNotifier = Depends(get_notifier),
):
    bill = create_bill(
        session,
        payload.tenant_id,
        payload.period,
        base_rent=payload.base_rent,
        previous_unit=payload.previous_unit,
        current_unit=payload.current_unit,
        notifier=notifier,
        background_tasks=background_tasks,
    )
    return {"success": True, "message": "Bill generated successfully", "bill": bill}


@router.put("/bills/{bill_id}")
def api_update_bill(bill_id: int, payload: BillUpdate, session: Session = Depends(get_session)):
    bill = update_bill(
        session,
        bill_id,
        previous_unit=payload.previous_unit,
        current_unit=payload.current_unit,
        status=payload.status,
        notes=payload.notes,
    )
    return {"success": True, "message": "Bill updated", "bill": bill}


@router.patch("/bills/{bill_id}/status")
def api_set_bill_status(
    bill_id: int, payload: BillStatusUpdate, session: Session = Depends(get_session)
):
    bill = set_bill_status(session, bill_id, payload.status)
    return {"success": True, "message": f"Marked as {bill['status']}", "bill": bill}


@router.delete("/bills/{bill_id}")
def api_delete_bill(bill_id: int, session: Session = Depends(get_session)):
    delete_bill(session, bill_id)
    return {"success": True, "message": "Bill deleted"}


# ── Complaints ──────────────────────────────────────────────────


@router.get("/complaints")
def api_list_complaints(status: Optional[str] = None, session: Session = Depends(get_session)):
    complaints = list_complaints(session, status=status)
    return {"success": True, "count": len(complaints), "complaints": complaints}


@router.put("/complaints/{complaint_id}")
def api_update_complaint(
    complaint_id: int, payload: ComplaintUpdate, session: Session = Depends(get_session)
):
    complaint = update_complaint(
        session, complaint_id, status=payload.status, admin_note=payload.admin_note
    )
    return {"success": True, "message": "Complaint updated", "complaint": complaint}


# ── Stats ───────────────────────────────────────────────────────


@router.get("/stats")
def api_stats(session: Session = Depends(get_session)):
    return {"success": True, "stats": admin_stats(session)}
