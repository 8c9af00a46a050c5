from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict
import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from payroll_api.extensions import db
from payroll_api.common.errors import TransientStoreError, NotFoundError
from payroll_api.models.attendance import AttendanceDay
from payroll_api.models.master import Company
from .payroll_common import days_in_month, month_window, normalize_month, resolve_timezone, payroll_settings

log = logging.getLogger(__name__)

# half-day entries are intentionally not counted
PRESENT_STATUSES = ("present", "late")


@dataclass(frozen=True)
class AttendanceSummary:
    total_days: int
    days_present: int
    month_start: date
    month_end: date


class AttendanceAggregator:
    """
    Counts qualifying attendance days for an employee in a calendar month.

    total_days is the raw number of calendar days; weekly offs and holidays
    are not excluded.
    """

    def __init__(self, session=None):
        self.session = session or db.session
        self._tz_cache: Dict[int, object] = {}

    def _window(self, company_id: int, month: str):
        tz = self._tz_cache.get(company_id)
        if tz is None:
            try:
                company = self.session.get(Company, company_id)
            except SQLAlchemyError as e:
                raise TransientStoreError(f"Company store unavailable: {e}")
            if company is None:
                raise NotFoundError(f"Company {company_id} not found")
            tz = resolve_timezone(company.timezone, payroll_settings().default_timezone)
            self._tz_cache[company_id] = tz
        return month_window(month, tz)

    def aggregate(self, company_id: int, employee_id: int, month: str) -> AttendanceSummary:
        month = normalize_month(month)
        start, end = self._window(company_id, month)
        try:
            present = (
                self.session.query(func.count(AttendanceDay.id))
                .filter(
                    AttendanceDay.company_id == company_id,
                    AttendanceDay.employee_id == employee_id,
                    AttendanceDay.date >= start,
                    AttendanceDay.date <= end,
                    AttendanceDay.status.in_(PRESENT_STATUSES),
                )
                .scalar()
            )
        except SQLAlchemyError as e:
            log.warning("attendance read failed company=%s employee=%s month=%s: %s",
                        company_id, employee_id, month, e)
            raise TransientStoreError(f"Attendance store unavailable: {e}", employee_id=employee_id)

        return AttendanceSummary(
            total_days=days_in_month(month),
            days_present=int(present or 0),
            month_start=start,
            month_end=end,
        )
