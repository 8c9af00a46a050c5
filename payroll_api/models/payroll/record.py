from datetime import datetime
from payroll_api.extensions import db

PAYROLL_STATUSES = ("pending", "paid", "cancelled")


class PayrollRecord(db.Model):
    """
    One payroll row per (company, employee, month).

    ``basic_salary`` is a copy of the employee's salary at generation time and
    ``total_salary`` is stored as computed; neither is re-derived on read.
    """
    __tablename__ = "payroll_records"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="RESTRICT"), nullable=False)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False, index=True)
    month = db.Column(db.String(7), nullable=False)  # YYYY-MM

    total_days = db.Column(db.Integer, nullable=False)
    days_present = db.Column(db.Integer, nullable=False, default=0)

    basic_salary = db.Column(db.Numeric(14, 2), nullable=False)
    overtime = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    bonuses = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    deductions = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total_salary = db.Column(db.Numeric(14, 2), nullable=False)

    status = db.Column(db.Enum(*PAYROLL_STATUSES, name="payroll_status_enum"), nullable=False, default="pending")
    paid_date = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("company_id", "employee_id", "month", name="uq_payroll_company_employee_month"),
        db.Index("ix_payroll_company_month", "company_id", "month"),
    )

    employee = db.relationship("Employee", lazy="joined")

    def to_dict(self, with_employee: bool = False) -> dict:
        out = {
            "id": self.id,
            "company_id": self.company_id,
            "employee_id": self.employee_id,
            "month": self.month,
            "total_days": self.total_days,
            "days_present": self.days_present,
            "basic_salary": float(self.basic_salary or 0),
            "overtime": float(self.overtime or 0),
            "bonuses": float(self.bonuses or 0),
            "deductions": float(self.deductions or 0),
            "total_salary": float(self.total_salary or 0),
            "status": self.status,
            "paid_date": self.paid_date.isoformat() if self.paid_date else None,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if with_employee:
            emp = self.employee
            out["employee"] = {
                "id": emp.id,
                "name": emp.full_name,
                "email": emp.email,
                "designation": emp.designation,
            } if emp else None
        return out
