from datetime import datetime
from payroll_api.extensions import db

ADJUSTMENT_KINDS = ("overtime", "bonus", "deduction")


class PayrollAdjustment(db.Model):
    """Manual overtime/bonus/deduction entered ahead of a run for one employee-month."""
    __tablename__ = "payroll_adjustments"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    month = db.Column(db.String(7), nullable=False)  # YYYY-MM (pay period tag)

    kind = db.Column(db.Enum(*ADJUSTMENT_KINDS, name="payroll_adjustment_kind_enum"), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    reason = db.Column(db.String(255))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_payroll_adj_lookup", "company_id", "employee_id", "month"),
    )

    employee = db.relationship("Employee", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "month": self.month,
            "kind": self.kind,
            "amount": float(self.amount) if self.amount is not None else None,
            "reason": self.reason,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
