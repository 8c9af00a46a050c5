# payroll_api/models/payroll/__init__.py
from .record import PayrollRecord, PAYROLL_STATUSES
from .adjustments import PayrollAdjustment, ADJUSTMENT_KINDS

__all__ = [
    "PayrollRecord", "PAYROLL_STATUSES",
    "PayrollAdjustment", "ADJUSTMENT_KINDS",
]
