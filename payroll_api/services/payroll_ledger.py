from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from blinker import Namespace
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from payroll_api.extensions import db
from payroll_api.common.errors import (
    DuplicateRecordError, EmployeeDataError, NotFoundError, StateError, TransientStoreError,
)
from payroll_api.models.payroll.record import PayrollRecord
from .payroll_common import ZERO, normalize_month, to_decimal
from .salary import Adjustments, ClampPolicy, PayrollCalculator

log = logging.getLogger(__name__)

_signals = Namespace()
# receivers get (sender=PayrollLedger, record=PayrollRecord)
payroll_record_created = _signals.signal("payroll-record-created")
payroll_record_paid = _signals.signal("payroll-record-paid")
payroll_record_cancelled = _signals.signal("payroll-record-cancelled")

FINALIZED_MESSAGE = "Payroll record already finalized"


class PayrollLedger:
    """
    Authoritative store of PayrollRecord rows.

    The unique index on (company_id, employee_id, month) is the only
    synchronization between concurrent generation runs: insert() relies on
    it rather than on a read-then-write check. Status transitions are
    conditional UPDATEs so that only one caller can move a pending record.

        pending -> paid        (sets paid_date)
        pending -> cancelled
        paid / cancelled       terminal
    """

    def __init__(self, session=None):
        self.session = session or db.session

    # ---------- reads ----------
    def exists(self, company_id: int, employee_id: int, month: str) -> bool:
        month = normalize_month(month)
        try:
            q = self.session.query(PayrollRecord.id).filter_by(
                company_id=company_id, employee_id=employee_id, month=month)
            return self.session.query(q.exists()).scalar()
        except SQLAlchemyError as e:
            raise TransientStoreError(f"Payroll store unavailable: {e}", employee_id=employee_id)

    def get(self, company_id: int, record_id: int) -> PayrollRecord:
        rec = self.session.query(PayrollRecord).filter_by(company_id=company_id, id=record_id).first()
        if rec is None:
            raise NotFoundError("Payroll record not found")
        return rec

    def query(self, company_id: int, month: Optional[str] = None, employee_id: Optional[int] = None,
              status: Optional[str] = None):
        q = self.session.query(PayrollRecord).filter(PayrollRecord.company_id == company_id)
        if month:
            q = q.filter(PayrollRecord.month == month)
        if employee_id is not None:
            q = q.filter(PayrollRecord.employee_id == employee_id)
        if status:
            q = q.filter(PayrollRecord.status == status)
        return q.order_by(PayrollRecord.month.desc(), PayrollRecord.id.asc())

    def list(self, company_id: int, **filters) -> List[PayrollRecord]:
        return self.query(company_id, **filters).all()

    def generated_employee_ids(self, company_id: int, month: str) -> set:
        rows = (self.session.query(PayrollRecord.employee_id)
                .filter_by(company_id=company_id, month=month).all())
        return {r[0] for r in rows}

    # ---------- writes ----------
    def insert(self, company_id: int, employee_id: int, month: str, fields: Dict[str, Any],
               notes: Optional[str] = None) -> PayrollRecord:
        """
        Insert a pending record and commit. A unique-key conflict means another
        run already generated this employee-month: DuplicateRecordError.
        """
        month = normalize_month(month)
        rec = PayrollRecord(
            company_id=company_id,
            employee_id=employee_id,
            month=month,
            status="pending",
            paid_date=None,
            notes=notes,
            **fields,
        )
        self.session.add(rec)
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            if self.exists(company_id, employee_id, month):
                log.info("payroll insert lost to existing record company=%s employee=%s month=%s",
                         company_id, employee_id, month)
                raise DuplicateRecordError("Payroll already exists for this employee and month",
                                           employee_id=employee_id)
            raise EmployeeDataError(f"Constraint failed: {getattr(e, 'orig', e)}", employee_id=employee_id)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise TransientStoreError(f"Payroll store unavailable: {e}", employee_id=employee_id)

        payroll_record_created.send(type(self), record=rec)
        return rec

    def _transition(self, company_id: int, record_id: int, to_status: str, **values) -> PayrollRecord:
        stmt = (
            update(PayrollRecord)
            .where(PayrollRecord.id == record_id,
                   PayrollRecord.company_id == company_id,
                   PayrollRecord.status == "pending")
            .values(status=to_status, updated_at=datetime.utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        res = self.session.execute(stmt)
        if res.rowcount != 1:
            self.session.rollback()
            rec = self.get(company_id, record_id)  # NotFoundError if it is not ours
            raise StateError(f"{FINALIZED_MESSAGE} (status: {rec.status})")
        self.session.commit()
        return self.get(company_id, record_id)

    def mark_paid(self, company_id: int, record_id: int, now: Optional[datetime] = None) -> PayrollRecord:
        rec = self._transition(company_id, record_id, "paid", paid_date=now or datetime.utcnow())
        payroll_record_paid.send(type(self), record=rec)
        return rec

    def cancel(self, company_id: int, record_id: int) -> PayrollRecord:
        rec = self._transition(company_id, record_id, "cancelled")
        payroll_record_cancelled.send(type(self), record=rec)
        return rec

    def update_adjustments(self, company_id: int, record_id: int, overtime=None, bonuses=None,
                           deductions=None, notes=None, policy: Optional[ClampPolicy] = None) -> PayrollRecord:
        """Edit the adjustments of a pending record and recompute total_salary from its snapshot."""
        rec = (self.session.query(PayrollRecord)
               .filter_by(company_id=company_id, id=record_id)
               .with_for_update().first())
        if rec is None:
            raise NotFoundError("Payroll record not found")
        if rec.status != "pending":
            raise StateError(f"{FINALIZED_MESSAGE} (status: {rec.status})")

        adj = Adjustments(
            overtime=to_decimal(rec.overtime if overtime is None else overtime, "overtime"),
            bonuses=to_decimal(rec.bonuses if bonuses is None else bonuses, "bonuses"),
            deductions=to_decimal(rec.deductions if deductions is None else deductions, "deductions"),
        )
        for name in ("overtime", "bonuses", "deductions"):
            if getattr(adj, name) < ZERO:
                raise EmployeeDataError(f"{name} cannot be negative", employee_id=rec.employee_id)

        calc = PayrollCalculator(policy or ClampPolicy.from_config()).calculate(
            rec.basic_salary, rec.days_present, rec.total_days, adj)
        rec.overtime = calc.overtime
        rec.bonuses = calc.bonuses
        rec.deductions = calc.deductions
        rec.total_salary = calc.total_salary
        if notes is not None:
            rec.notes = notes.strip() or None
        self.session.commit()
        return rec

    def delete(self, company_id: int, record_id: int) -> None:
        rec = self.get(company_id, record_id)
        self.session.delete(rec)
        self.session.commit()
