from __future__ import annotations

from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from payroll_api.extensions import db
from payroll_api.common.errors import PayrollError
from payroll_api.models.employee import Employee
from .adjustment_resolver import AdjustmentResolver
from .attendance_aggregator import AttendanceAggregator
from .payroll_common import normalize_month
from .payroll_generation import active_employee_ids, calculate_for_employee
from .payroll_ledger import PayrollLedger
from .salary import ClampPolicy


@dataclass
class PreviewRow:
    employee_id: int
    employee_name: Optional[str]
    designation: Optional[str]
    total_days: Optional[int] = None
    days_present: Optional[int] = None
    basic_salary: Optional[Decimal] = None
    earned_salary: Optional[Decimal] = None
    overtime: Optional[Decimal] = None
    bonuses: Optional[Decimal] = None
    deductions: Optional[Decimal] = None
    total_salary: Optional[Decimal] = None
    already_generated: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        for k, v in d.items():
            if isinstance(v, Decimal):
                d[k] = float(v)
        return d


class PayrollPreviewService:
    """Runs the generation arithmetic for every active employee without writing to the ledger."""

    def __init__(self, policy: Optional[ClampPolicy] = None):
        self.policy = policy or ClampPolicy.from_config()

    def preview(self, company_id: int, month: str,
                adjustments_by_employee: Optional[Mapping[Any, Any]] = None) -> List[PreviewRow]:
        month = normalize_month(month)
        resolver = AdjustmentResolver(adjustments_by_employee)
        aggregator = AttendanceAggregator()
        generated = PayrollLedger().generated_employee_ids(company_id, month)

        rows: List[PreviewRow] = []
        for emp_id in active_employee_ids(company_id):
            emp = db.session.get(Employee, emp_id)
            row = PreviewRow(
                employee_id=emp_id,
                employee_name=emp.full_name if emp else None,
                designation=emp.designation if emp else None,
                already_generated=emp_id in generated,
            )
            try:
                comp = calculate_for_employee(company_id, emp_id, month, None, self.policy,
                                              aggregator=aggregator, resolver=resolver)
            except PayrollError as e:
                row.error = e.message
            else:
                row.total_days = comp.total_days
                row.days_present = comp.days_present
                row.basic_salary = comp.basic_salary
                row.earned_salary = comp.earned_salary
                row.overtime = comp.overtime
                row.bonuses = comp.bonuses
                row.deductions = comp.deductions
                row.total_salary = comp.total_salary
            rows.append(row)
        return rows
