from __future__ import annotations
from decimal import Decimal, InvalidOperation
from typing import Optional

from flask import Blueprint, request
from payroll_api.extensions import db
from payroll_api.common.auth import requires_roles, current_company_id
from payroll_api.common.http import ok, fail
from payroll_api.models.employee import Employee
from payroll_api.models.payroll.adjustments import PayrollAdjustment, ADJUSTMENT_KINDS
from payroll_api.services.payroll_common import normalize_month
from payroll_api.services.payroll_ledger import PayrollLedger

bp = Blueprint("payroll_adjustments", __name__, url_prefix="/api/v1/payroll/adjustments")

# ---------- helpers ----------
def _dec(x) -> Optional[Decimal]:
    if x is None or x == "": return None
    try: d = Decimal(str(x))
    except (InvalidOperation, ValueError): return None
    return d if d.is_finite() else None

# ---------- CRUD ----------
@bp.get("")
@requires_roles("admin", "hr")
def list_adjustments():
    q = PayrollAdjustment.query.filter(PayrollAdjustment.company_id == current_company_id())
    month = (request.args.get("month") or "").strip()
    if month:
        month = normalize_month(month)
        q = q.filter(PayrollAdjustment.month == month)
    eid = request.args.get("employee_id")
    if eid:
        try:
            q = q.filter(PayrollAdjustment.employee_id == int(eid))
        except ValueError:
            return fail("employee_id must be integer", 422)
    rows = q.order_by(PayrollAdjustment.id.asc()).all()
    return ok([a.to_dict() for a in rows])


@bp.post("")
@requires_roles("admin", "hr")
def create_adjustment():
    j = request.get_json(silent=True) or {}
    company_id = current_company_id()

    emp_id = j.get("employee_id")
    kind = (j.get("kind") or "").strip().lower()
    month = (j.get("month") or "").strip()
    amt = _dec(j.get("amount"))
    reason = (j.get("reason") or "").strip() or None

    if not emp_id or not kind or not month or amt is None:
        return fail("employee_id, kind, month, amount required", 400)
    month = normalize_month(month)
    if kind not in ADJUSTMENT_KINDS:
        return fail(f"kind must be one of {', '.join(ADJUSTMENT_KINDS)}", 422)
    if amt < 0:
        return fail("amount cannot be negative", 422)
    try:
        emp_id = int(emp_id)
    except (TypeError, ValueError):
        return fail("employee_id must be integer", 422)

    emp = db.session.get(Employee, emp_id)
    if emp is None or emp.company_id != company_id:
        return fail("Employee not found", 404)
    if PayrollLedger().exists(company_id, emp_id, month):
        # generated records are edited through PATCH /api/v1/payroll/<id>
        return fail("Payroll already generated for this employee and month", 409, code="ALREADY_GENERATED")

    rec = PayrollAdjustment(
        company_id=company_id,
        employee_id=emp_id,
        month=month,
        kind=kind,
        amount=amt,
        reason=reason,
    )
    db.session.add(rec)
    db.session.commit()
    return ok(rec.to_dict(), 201)


@bp.delete("/<int:adj_id>")
@requires_roles("admin", "hr")
def delete_adjustment(adj_id: int):
    a = PayrollAdjustment.query.filter_by(id=adj_id, company_id=current_company_id()).first()
    if a is None:
        return fail("Adjustment not found", 404)
    db.session.delete(a)
    db.session.commit()
    return ok({"deleted": adj_id})
