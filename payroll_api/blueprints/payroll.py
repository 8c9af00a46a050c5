from __future__ import annotations

from flask import Blueprint, current_app, request

from payroll_api.common.auth import requires_roles, current_company_id, current_employee_id, has_role
from payroll_api.common.errors import ValidationError
from payroll_api.common.http import ok, fail
from payroll_api.common.paging import paginate
from payroll_api.models.payroll.record import PAYROLL_STATUSES
from payroll_api.services.payroll_common import normalize_month
from payroll_api.services.payroll_generation import PayrollGenerationOrchestrator
from payroll_api.services.payroll_ledger import PayrollLedger
from payroll_api.services.payroll_preview import PayrollPreviewService

bp = Blueprint("payroll", __name__, url_prefix="/api/v1/payroll")

ADMIN_ROLES = ("admin", "hr")


def _is_staff() -> bool:
    return any(has_role(r) for r in ADMIN_ROLES)


def _month_arg(raw, required=True):
    if raw in (None, "") and not required:
        return None
    return normalize_month(raw)


def _int_arg(name: str):
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be integer")


def _own_or_403(rec):
    """Employees may only read their own payroll."""
    if _is_staff():
        return None
    if rec.employee_id != current_employee_id():
        return fail("Not authorized to view this payroll", 403)
    return None


# ---------- generation ----------
@bp.post("/generate")
@requires_roles(*ADMIN_ROLES)
def generate():
    j = request.get_json(silent=True) or {}
    month = _month_arg(j.get("month"))
    company_id = current_company_id()

    result = PayrollGenerationOrchestrator().generate(company_id, month, overrides=j.get("adjustments"))
    current_app.logger.info("payroll generate company=%s month=%s created=%d/%d",
                            company_id, month, len(result.created), result.total)

    errors = [{"employee_id": e["employee_id"], "message": e["reason"]} for e in result.errors]
    return ok(
        result.created,
        201 if result.created else 200,
        message=f"Payroll generated for {len(result.created)} of {result.total} employees",
        skipped=result.skipped,
        errors=errors,
        meta={"generated": len(result.created), "skipped": len(result.skipped),
              "failed": len(result.errors), "total": result.total, "cancelled": result.cancelled},
    )


@bp.post("/preview")
@requires_roles(*ADMIN_ROLES)
def preview():
    j = request.get_json(silent=True) or {}
    month = _month_arg(j.get("month"))
    rows = PayrollPreviewService().preview(current_company_id(), month, j.get("adjustments"))
    total = sum((r.total_salary or 0) for r in rows if r.error is None)
    return ok([r.to_dict() for r in rows], meta={"count": len(rows), "total_salary": float(total)})


# ---------- reads ----------
@bp.get("")
@requires_roles()
def list_payroll():
    month = _month_arg(request.args.get("month"), required=False)
    status = (request.args.get("status") or "").strip() or None
    if status and status not in PAYROLL_STATUSES:
        return fail(f"status must be one of {', '.join(PAYROLL_STATUSES)}", 422)

    employee_id = _int_arg("employee_id")
    if not _is_staff():
        employee_id = current_employee_id()
        if employee_id is None:
            return fail("Token carries no employee", 403)

    q = PayrollLedger().query(current_company_id(), month=month, employee_id=employee_id, status=status)
    rows, meta = paginate(q)
    return ok([r.to_dict(with_employee=True) for r in rows], meta=meta)


@bp.get("/<int:record_id>")
@requires_roles()
def get_payroll(record_id: int):
    rec = PayrollLedger().get(current_company_id(), record_id)
    denied = _own_or_403(rec)
    if denied:
        return denied
    return ok(rec.to_dict(with_employee=True))


# ---------- edits / lifecycle ----------
@bp.route("/<int:record_id>", methods=["PATCH", "PUT"])
@requires_roles(*ADMIN_ROLES)
def update_payroll(record_id: int):
    j = request.get_json(silent=True) or {}
    rec = PayrollLedger().update_adjustments(
        current_company_id(), record_id,
        overtime=j.get("overtime"),
        bonuses=j.get("bonuses"),
        deductions=j.get("deductions"),
        notes=j.get("notes"),
    )
    return ok(rec.to_dict(with_employee=True), message="Payroll updated successfully")


@bp.post("/<int:record_id>/mark-paid")
@requires_roles(*ADMIN_ROLES)
def mark_paid(record_id: int):
    rec = PayrollLedger().mark_paid(current_company_id(), record_id)
    return ok(rec.to_dict(), message="Payroll marked as paid")


@bp.post("/<int:record_id>/cancel")
@requires_roles(*ADMIN_ROLES)
def cancel(record_id: int):
    rec = PayrollLedger().cancel(current_company_id(), record_id)
    return ok(rec.to_dict(), message="Payroll marked as cancelled")


@bp.put("/<int:record_id>/status")
@requires_roles(*ADMIN_ROLES)
def set_status(record_id: int):
    """Status endpoint kept for older clients; maps onto the ledger transitions."""
    status = ((request.get_json(silent=True) or {}).get("status") or "").strip().lower()
    ledger = PayrollLedger()
    if status == "paid":
        rec = ledger.mark_paid(current_company_id(), record_id)
    elif status == "cancelled":
        rec = ledger.cancel(current_company_id(), record_id)
    elif status == "pending":
        rec = ledger.get(current_company_id(), record_id)
        if rec.status != "pending":
            return fail("Payroll record already finalized", 409, code="STATE_ERROR")
    else:
        return fail("Invalid status", 400)
    return ok(rec.to_dict(), message=f"Payroll marked as {status}")


@bp.delete("/<int:record_id>")
@requires_roles("admin")
def delete_payroll(record_id: int):
    PayrollLedger().delete(current_company_id(), record_id)
    current_app.logger.warning("payroll record %s deleted company=%s", record_id, current_company_id())
    return ok({"deleted": record_id}, message="Payroll record deleted successfully")
