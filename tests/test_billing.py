from decimal import Decimal

import pytest
from fastapi import BackgroundTasks
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

import rentms.billing as billing
from rentms.billing import (
    create_bill,
    current_bill,
    delete_bill,
    list_bills,
    parse_period,
    set_bill_status,
    tenant_bills,
    update_bill,
)
from rentms.errors import DuplicateError, NotFoundError, ValidationError
from rentms.models import Bill
from rentms.notifications import BillNotifier


class FailingNotifier(BillNotifier):
    def __init__(self):
        self.calls = []

    def notify(self, tenant, bill):
        self.calls.append(bill["id"])
        raise RuntimeError("smtp down")


def test_create_bill_computes_amounts(session, tenant_factory):
    t = tenant_factory(name="Asha", base_rent=Decimal("1000"))
    bill = create_bill(session, t.id, "2026-03", previous_unit=100, current_unit=150)

    assert bill["units_consumed"] == 50
    assert bill["rate_per_unit"] == 10
    assert bill["electricity_amount"] == 500
    assert bill["total_amount"] == 1500
    assert bill["year"] == 2026
    assert bill["status"] == "Unpaid"
    assert bill["paid_date"] is None
    assert bill["tenant"]["name"] == "Asha"
    assert set(bill["tenant"]) == {"id", "name", "email", "phone", "unit"}


def test_create_bill_meter_rollback(session, tenant_factory):
    t = tenant_factory()
    bill = create_bill(session, t.id, "2026-03", base_rent=800, previous_unit=200, current_unit=180)
    assert bill["units_consumed"] == 0
    assert bill["electricity_amount"] == 0
    assert bill["total_amount"] == 800


def test_base_rent_defaults(session, tenant_factory):
    t = tenant_factory(base_rent=Decimal("1200"))
    from_tenant = create_bill(session, t.id, "2026-01")
    override = create_bill(session, t.id, "2026-02", base_rent="900")
    not_numeric = create_bill(session, t.id, "2026-03", base_rent="n/a")
    assert from_tenant["base_rent"] == 1200
    assert override["base_rent"] == 900
    assert not_numeric["base_rent"] == 1200

    bare = tenant_factory()
    assert create_bill(session, bare.id, "2026-01")["total_amount"] == 0


def test_non_numeric_readings_default_to_zero(session, tenant_factory):
    t = tenant_factory(base_rent=Decimal("500"))
    bill = create_bill(session, t.id, "2026-04", previous_unit="abc", current_unit="")
    assert bill["previous_unit"] == 0
    assert bill["current_unit"] == 0
    assert bill["total_amount"] == 500


@pytest.mark.parametrize("tenant_id,period", [(None, "2026-01"), (1, None), (1, "")])
def test_create_bill_requires_tenant_and_period(session, tenant_id, period):
    with pytest.raises(ValidationError):
        create_bill(session, tenant_id, period)


@pytest.mark.parametrize("period", ["2026-13", "2026-1", "26-01", "January", "2026-00"])
def test_create_bill_rejects_bad_period(session, tenant_factory, period):
    t = tenant_factory()
    with pytest.raises(ValidationError):
        create_bill(session, t.id, period)


def test_parse_period():
    assert parse_period("2025-12") == 2025
    with pytest.raises(ValidationError):
        parse_period(202512)


def test_create_bill_negative_rent(session, tenant_factory):
    t = tenant_factory()
    with pytest.raises(ValidationError):
        create_bill(session, t.id, "2026-01", base_rent=-5)


def test_create_bill_unknown_or_wrong_role(session, tenant_factory):
    admin = tenant_factory(role="admin")
    inactive = tenant_factory(is_active=False)
    for tid in (9999, admin.id, inactive.id):
        with pytest.raises(NotFoundError):
            create_bill(session, tid, "2026-01")


def test_duplicate_bill_rejected(session, tenant_factory):
    t = tenant_factory(base_rent=Decimal("1000"))
    create_bill(session, t.id, "2026-05")
    with pytest.raises(DuplicateError):
        create_bill(session, t.id, "2026-05", base_rent=1)

    bills = session.exec(select(Bill).where(Bill.tenant_id == t.id)).all()
    assert len(bills) == 1
    assert bills[0].base_rent == 1000


def test_duplicate_caught_by_constraint_when_precheck_races(session, tenant_factory, monkeypatch):
    t = tenant_factory()
    create_bill(session, t.id, "2026-05")
    # simulate a concurrent request that passed the read check before the insert
    monkeypatch.setattr(billing, "find_bill_for_period", lambda *a, **kw: None)
    with pytest.raises(DuplicateError):
        create_bill(session, t.id, "2026-05")
    assert len(session.exec(select(Bill).where(Bill.tenant_id == t.id)).all()) == 1


def test_storage_layer_enforces_uniqueness(session, tenant_factory):
    t = tenant_factory()
    session.add(Bill(tenant_id=t.id, period="2026-06", year=2026))
    session.commit()
    session.add(Bill(tenant_id=t.id, period="2026-06", year=2026))
    with pytest.raises(IntegrityError):
        session.commit()
    session.rollback()


def test_notifier_called_inline(session, tenant_factory, recorder):
    t = tenant_factory(base_rent=Decimal("700"))
    bill = create_bill(session, t.id, "2026-07", notifier=recorder)
    assert len(recorder.calls) == 1
    tenant_snap, bill_snap = recorder.calls[0]
    assert tenant_snap["email"] == t.email
    assert bill_snap["id"] == bill["id"]
    assert bill_snap["total_amount"] == 700


def test_notifier_failure_is_swallowed(session, tenant_factory, caplog):
    t = tenant_factory(base_rent=Decimal("700"))
    failing = FailingNotifier()
    bill = create_bill(session, t.id, "2026-07", notifier=failing)

    assert bill["total_amount"] == 700
    assert len(failing.calls) == 1
    assert session.get(Bill, bill["id"]) is not None
    assert "notification failed" in caplog.text


def test_notifier_scheduled_on_background_tasks(session, tenant_factory, recorder):
    t = tenant_factory()
    tasks = BackgroundTasks()
    create_bill(session, t.id, "2026-08", notifier=recorder, background_tasks=tasks)

    assert recorder.calls == []
    assert len(tasks.tasks) == 1
    task = tasks.tasks[0]
    task.func(*task.args, **task.kwargs)
    assert len(recorder.calls) == 1


def test_update_bill_recomputes(session, tenant_factory):
    t = tenant_factory(base_rent=Decimal("1000"))
    bill = create_bill(session, t.id, "2026-03", previous_unit=100, current_unit=150)

    updated = update_bill(session, bill["id"], current_unit=220)
    assert updated["units_consumed"] == 120
    assert updated["total_amount"] == 2200

    updated = update_bill(session, bill["id"], previous_unit=300)
    assert updated["units_consumed"] == 0
    assert updated["total_amount"] == 1000

    updated = update_bill(session, bill["id"], notes="meter replaced")
    assert updated["notes"] == "meter replaced"
    assert updated["total_amount"] == updated["base_rent"] + updated["electricity_amount"]


def test_update_bill_status_and_paid_date(session, tenant_factory):
    t = tenant_factory()
    bill = create_bill(session, t.id, "2026-03")

    paid = update_bill(session, bill["id"], status="Paid")
    assert paid["status"] == "Paid"
    assert paid["paid_date"] is not None

    unpaid = update_bill(session, bill["id"], status="Unpaid")
    assert unpaid["status"] == "Unpaid"
    assert unpaid["paid_date"] is None

    with pytest.raises(ValidationError):
        update_bill(session, bill["id"], status="Refunded")


def test_update_missing_bill(session):
    with pytest.raises(NotFoundError):
        update_bill(session, 12345, notes="x")


def test_direct_mutation_triggers_recompute(session, tenant_factory):
    t = tenant_factory(base_rent=Decimal("1000"))
    created = create_bill(session, t.id, "2026-03", previous_unit=100, current_unit=150)

    bill = session.get(Bill, created["id"])
    bill.current_unit = Decimal("300")
    session.add(bill)
    session.commit()
    session.refresh(bill)
    assert bill.units_consumed == 200
    assert bill.electricity_amount == 2000
    assert bill.total_amount == 3000

    # derived fields written directly are overwritten on flush
    bill.total_amount = Decimal("1")
    session.add(bill)
    session.commit()
    session.refresh(bill)
    assert bill.total_amount == 3000


def test_set_bill_status(session, tenant_factory):
    t = tenant_factory()
    bill = create_bill(session, t.id, "2026-03")

    first = set_bill_status(session, bill["id"], "Paid")
    again = set_bill_status(session, bill["id"], "Paid")
    assert first["status"] == again["status"] == "Paid"
    assert again["paid_date"] is not None

    cleared = set_bill_status(session, bill["id"], "Unpaid")
    assert cleared["paid_date"] is None
    assert set_bill_status(session, bill["id"], "Unpaid")["status"] == "Unpaid"


@pytest.mark.parametrize("status", [None, "", "paid", "Pending"])
def test_set_bill_status_rejects_unknown(session, tenant_factory, status):
    t = tenant_factory()
    bill = create_bill(session, t.id, "2026-03")
    with pytest.raises(ValidationError):
        set_bill_status(session, bill["id"], status)


def test_set_status_missing_bill(session):
    with pytest.raises(NotFoundError):
        set_bill_status(session, 999, "Paid")


def test_delete_bill_is_idempotent(session, tenant_factory):
    t = tenant_factory()
    bill = create_bill(session, t.id, "2026-03")
    assert delete_bill(session, bill["id"]) is True
    assert delete_bill(session, bill["id"]) is False
    assert session.get(Bill, bill["id"]) is None


def test_list_bills_filters_and_totals(session, tenant_factory):
    a = tenant_factory(base_rent=Decimal("1000"))
    b = tenant_factory(base_rent=Decimal("500"))
    a1 = create_bill(session, a.id, "2026-01")
    create_bill(session, a.id, "2026-02", previous_unit=0, current_unit=10)
    b1 = create_bill(session, b.id, "2026-01")
    set_bill_status(session, a1["id"], "Paid")

    everything = list_bills(session)
    assert everything["count"] == 3
    assert everything["total_collection"] == 1000
    assert everything["total_pending"] == 1100 + 500
    # newest first
    assert everything["bills"][0]["id"] == b1["id"]
    assert all("tenant" in row for row in everything["bills"])

    jan = list_bills(session, period="2026-01")
    assert {row["id"] for row in jan["bills"]} == {a1["id"], b1["id"]}

    paid = list_bills(session, status="Paid")
    assert paid["count"] == 1
    assert paid["total_pending"] == 0

    only_a = list_bills(session, tenant_id=a.id, period="2026-02")
    assert only_a["count"] == 1
    assert only_a["total_pending"] == 1100


def test_list_bills_partitions_sum_to_total(session, tenant_factory):
    tenants = [tenant_factory(base_rent=Decimal(100 * (i + 1))) for i in range(3)]
    for i, t in enumerate(tenants):
        for month in ("2026-01", "2026-02"):
            bill = create_bill(session, t.id, month, previous_unit=0, current_unit=i * 7)
            if (i + int(month[-1])) % 2:
                set_bill_status(session, bill["id"], "Paid")

    filters = [
        {},
        {"period": "2026-01"},
        {"status": "Paid"},
        {"status": "Unpaid"},
        {"tenant_id": tenants[1].id},
        {"tenant_id": tenants[2].id, "period": "2026-02"},
    ]
    for f in filters:
        result = list_bills(session, **f)
        total = sum(row["total_amount"] for row in result["bills"])
        assert result["total_collection"] + result["total_pending"] == total


def test_tenant_views(session, tenant_factory):
    from datetime import datetime, timezone

    t = tenant_factory(base_rent=Decimal("900"))
    other = tenant_factory()
    create_bill(session, t.id, "2026-01")
    create_bill(session, t.id, "2026-03")
    create_bill(session, t.id, "2026-02")
    create_bill(session, other.id, "2026-03")

    periods = [b["period"] for b in tenant_bills(session, t.id)]
    assert periods == ["2026-03", "2026-02", "2026-01"]

    march = datetime(2026, 3, 15, tzinfo=timezone.utc)
    assert current_bill(session, t.id, now=march)["period"] == "2026-03"
    assert current_bill(session, t.id, now=datetime(2027, 1, 1, tzinfo=timezone.utc)) is None
