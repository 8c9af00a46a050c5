from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from payroll_api.extensions import db
from payroll_api.common.errors import EmployeeDataError, TransientStoreError, ValidationError
from payroll_api.models.payroll.adjustments import PayrollAdjustment
from payroll_api.models.leave import LeaveRequest, LeaveType
from .payroll_common import ZERO, to_decimal, parse_month, normalize_month, days_in_month, payroll_settings
from .salary import Adjustments

OVERRIDE_FIELDS = ("overtime", "bonuses", "deductions")
# stored adjustment kind -> Adjustments field
KIND_FIELD = {"overtime": "overtime", "bonus": "bonuses", "deduction": "deductions"}


def normalize_overrides(raw: Optional[Mapping[Any, Any]]) -> Dict[int, Dict[str, Any]]:
    """
    Accept {"12": {"bonuses": 500}, 13: {...}} or a list of
    {"employee_id": 12, "bonuses": 500} rows and key it by int employee id.
    """
    if not raw:
        return {}
    if isinstance(raw, list):
        items = []
        for row in raw:
            if not isinstance(row, dict) or row.get("employee_id") is None:
                raise ValidationError("each adjustment row needs an employee_id")
            items.append((row["employee_id"], row))
    elif isinstance(raw, Mapping):
        items = list(raw.items())
    else:
        raise ValidationError("adjustments must be an object keyed by employee_id or a list")

    out: Dict[int, Dict[str, Any]] = {}
    for key, vals in items:
        try:
            emp_id = int(key)
        except (TypeError, ValueError):
            raise ValidationError(f"invalid employee_id in adjustments: {key!r}")
        if not isinstance(vals, Mapping):
            raise ValidationError(f"adjustments for employee {emp_id} must be an object")
        out[emp_id] = {k: vals.get(k) for k in OVERRIDE_FIELDS if k in vals}
    return out


class AdjustmentResolver:
    """
    Supplies overtime / bonuses / deductions for one employee in a run.

    Precedence: explicit override passed with the run > stored
    PayrollAdjustment rows for the month > zeros. Missing override keys are 0.
    When PAYROLL_DEDUCT_UNPAID_LEAVE is on, approved unpaid leave is added to
    deductions at the employee's daily rate.
    """

    def __init__(self, overrides: Optional[Mapping[Any, Any]] = None, session=None,
                 deduct_unpaid_leave: Optional[bool] = None):
        self.session = session or db.session
        self.overrides = normalize_overrides(overrides)
        if deduct_unpaid_leave is None:
            deduct_unpaid_leave = payroll_settings().deduct_unpaid_leave
        self.deduct_unpaid_leave = deduct_unpaid_leave

    def resolve(self, company_id: int, employee_id: int, month: str,
                daily_rate: Optional[Decimal] = None) -> Adjustments:
        month = normalize_month(month)
        if employee_id in self.overrides:
            vals = self.overrides[employee_id]
            amounts = {f: to_decimal(vals.get(f), f) for f in OVERRIDE_FIELDS}
        else:
            amounts = self._stored(company_id, employee_id, month)

        for f, v in amounts.items():
            if v < ZERO:
                raise EmployeeDataError(f"{f} cannot be negative", employee_id=employee_id)

        if self.deduct_unpaid_leave and daily_rate is not None:
            days = self.unpaid_leave_days(company_id, employee_id, month)
            if days:
                amounts["deductions"] = amounts["deductions"] + daily_rate * Decimal(days)

        return Adjustments(**amounts)

    def _stored(self, company_id: int, employee_id: int, month: str) -> Dict[str, Decimal]:
        amounts = {f: ZERO for f in OVERRIDE_FIELDS}
        try:
            rows = (
                self.session.query(PayrollAdjustment.kind, func.sum(PayrollAdjustment.amount))
                .filter(
                    PayrollAdjustment.company_id == company_id,
                    PayrollAdjustment.employee_id == employee_id,
                    PayrollAdjustment.month == month,
                )
                .group_by(PayrollAdjustment.kind)
                .all()
            )
        except SQLAlchemyError as e:
            raise TransientStoreError(f"Adjustment store unavailable: {e}", employee_id=employee_id)
        for kind, total in rows:
            field = KIND_FIELD.get(kind)
            if field:
                amounts[field] = to_decimal(total, field)
        return amounts

    def unpaid_leave_days(self, company_id: int, employee_id: int, month: str) -> int:
        """
        Inclusive day count of approved unpaid leave that starts in ``month``.
        A leave running past month end is counted in full in its start month.
        """
        year, mon = parse_month(month)
        first = date(year, mon, 1)
        last = date(year, mon, days_in_month(month))
        try:
            leaves = (
                self.session.query(LeaveRequest)
                .join(LeaveType, LeaveType.id == LeaveRequest.leave_type_id)
                .filter(
                    LeaveRequest.company_id == company_id,
                    LeaveRequest.employee_id == employee_id,
                    LeaveRequest.status == "approved",
                    LeaveType.is_paid.is_(False),
                    LeaveRequest.start_date >= first,
                    LeaveRequest.start_date <= last,
                )
                .all()
            )
        except SQLAlchemyError as e:
            raise TransientStoreError(f"Leave store unavailable: {e}", employee_id=employee_id)
        return sum(lv.days for lv in leaves)
