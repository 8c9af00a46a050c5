from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional
import logging
import threading

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from payroll_api.extensions import db
from payroll_api.common.errors import (
    PayrollError, DuplicateRecordError, EmployeeDataError, TransientStoreError, NotFoundError,
)
from payroll_api.models.employee import Employee
from payroll_api.models.master import Company
from .attendance_aggregator import AttendanceAggregator
from .adjustment_resolver import AdjustmentResolver, normalize_overrides
from .payroll_common import normalize_month, payroll_settings
from .payroll_ledger import PayrollLedger
from .salary import ClampPolicy, PayrollCalculator

log = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    created: List[Dict[str, Any]] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    cancelled: bool = False
    total: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created": self.created,
            "skipped": self.skipped,
            "errors": self.errors,
            "cancelled": self.cancelled,
            "total": self.total,
        }


def active_employee_ids(company_id: int, session=None) -> List[int]:
    """Ids of the company's active employees. Failure here is systemic."""
    session = session or db.session
    try:
        if session.get(Company, company_id) is None:
            raise NotFoundError(f"Company {company_id} not found")
        rows = (session.query(Employee.id)
                .filter(Employee.company_id == company_id, Employee.status == "active")
                .order_by(Employee.id.asc())
                .all())
    except SQLAlchemyError as e:
        log.exception("employee list fetch failed company=%s", company_id)
        raise TransientStoreError(f"Employee store unavailable: {e}")
    return [r[0] for r in rows]


def load_employee(company_id: int, employee_id: int, session=None) -> Employee:
    """Re-read the employee at calculation time; must still be active and salaried."""
    session = session or db.session
    try:
        emp = session.get(Employee, employee_id)
    except SQLAlchemyError as e:
        raise TransientStoreError(f"Employee store unavailable: {e}", employee_id=employee_id)
    if emp is None or emp.company_id != company_id:
        raise EmployeeDataError("Employee not found", employee_id=employee_id)
    if emp.status != "active":
        raise EmployeeDataError(f"Employee is not active (status: {emp.status})", employee_id=employee_id)
    if emp.basic_salary is None:
        raise EmployeeDataError("Employee has no basic salary configured", employee_id=employee_id)
    return emp


class PayrollGenerationOrchestrator:
    """
    Batch payroll for one company and month.

    Each active employee is processed independently: aggregate attendance,
    prorate, resolve adjustments, calculate and insert a pending record.
    A failure for one employee is recorded and the batch moves on. Records
    that already exist are skipped, so re-running a month only fills gaps.
    There is no cross-employee transaction and no retry.
    """

    def __init__(self, max_workers: Optional[int] = None, policy: Optional[ClampPolicy] = None,
                 aggregator_factory: Callable[[], AttendanceAggregator] = AttendanceAggregator):
        settings = payroll_settings()
        self.max_workers = max(int(max_workers or settings.max_workers), 1)
        self.policy = policy or ClampPolicy.from_config()
        self.aggregator_factory = aggregator_factory

    def generate(self, company_id: int, month: str, overrides: Optional[Mapping[Any, Any]] = None,
                 cancel_event: Optional[threading.Event] = None) -> GenerationResult:
        month = normalize_month(month)
        overrides = normalize_overrides(overrides)
        employee_ids = active_employee_ids(company_id)

        result = GenerationResult(total=len(employee_ids))
        log.info("payroll generation start company=%s month=%s employees=%d workers=%d",
                 company_id, month, len(employee_ids), self.max_workers)

        if self.max_workers == 1:
            for emp_id in employee_ids:
                if cancel_event is not None and cancel_event.is_set():
                    result.cancelled = True
                    break
                self._collect(result, emp_id, self._run_one, company_id, emp_id, month, overrides)
        else:
            self._generate_threaded(result, company_id, month, employee_ids, overrides, cancel_event)

        log.info("payroll generation done company=%s month=%s created=%d skipped=%d errors=%d cancelled=%s",
                 company_id, month, len(result.created), len(result.skipped), len(result.errors),
                 result.cancelled)
        return result

    def _generate_threaded(self, result: GenerationResult, company_id: int, month: str,
                           employee_ids: List[int], overrides: Dict[int, Dict[str, Any]],
                           cancel_event: Optional[threading.Event]) -> None:
        app = current_app._get_current_object()

        def task(emp_id: int):
            # own app context => own scoped session for this thread
            with app.app_context():
                return self._run_one(company_id, emp_id, month, overrides)

        pending = list(employee_ids)
        in_flight: Dict[Future, int] = {}
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="payroll") as pool:
            while pending or in_flight:
                # at most max_workers tasks are queued, so a cancel stops new work promptly
                while pending and len(in_flight) < self.max_workers:
                    if cancel_event is not None and cancel_event.is_set():
                        result.cancelled = True
                        pending = []
                        break
                    emp_id = pending.pop(0)
                    in_flight[pool.submit(task, emp_id)] = emp_id
                if not in_flight:
                    break
                done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                for fut in done:
                    # already-started work is kept even after a cancel
                    self._collect(result, in_flight.pop(fut), fut.result)

    def _collect(self, result: GenerationResult, emp_id: int, fn, *args) -> None:
        try:
            result.created.append(fn(*args))
        except DuplicateRecordError:
            result.skipped.append(emp_id)
        except PayrollError as e:
            result.errors.append({"employee_id": emp_id, "reason": e.message, "code": e.code})
        except Exception as e:
            log.exception("unexpected payroll failure employee=%s", emp_id)
            result.errors.append({"employee_id": emp_id, "reason": str(e) or e.__class__.__name__,
                                  "code": "UNEXPECTED"})

    def _run_one(self, company_id: int, employee_id: int, month: str,
                 overrides: Dict[int, Dict[str, Any]]) -> Dict[str, Any]:
        ledger = PayrollLedger()
        if ledger.exists(company_id, employee_id, month):
            raise DuplicateRecordError("Payroll already exists for this employee and month",
                                       employee_id=employee_id)
        try:
            comp = calculate_for_employee(company_id, employee_id, month, overrides,
                                          self.policy, self.aggregator_factory())
            rec = ledger.insert(company_id, employee_id, month, comp.as_record_fields())
            return rec.to_dict()
        except PayrollError as e:
            if e.employee_id is None:
                e.employee_id = employee_id
            db.session.rollback()
            raise
        except Exception:
            db.session.rollback()
            raise


def calculate_for_employee(company_id: int, employee_id: int, month: str,
                           overrides: Optional[Mapping[Any, Any]], policy: ClampPolicy,
                           aggregator: Optional[AttendanceAggregator] = None,
                           resolver: Optional[AdjustmentResolver] = None):
    """
    Attendance -> proration -> adjustments -> total for one employee.
    Shared by generation and preview.
    """
    emp = load_employee(company_id, employee_id)
    basic_salary = emp.basic_salary  # value copy taken now
    aggregator = aggregator or AttendanceAggregator()
    summary = aggregator.aggregate(company_id, employee_id, month)
    calc = PayrollCalculator(policy)
    daily_rate = calc.prorator.daily_rate(basic_salary, summary.total_days)
    resolver = resolver or AdjustmentResolver(overrides)
    adj = resolver.resolve(company_id, employee_id, month, daily_rate=daily_rate)
    return calc.calculate(basic_salary, summary.days_present, summary.total_days, adj)
