from datetime import datetime
from payroll_api.extensions import db

ATTENDANCE_STATUSES = ("present", "absent", "late", "half-day")


class AttendanceDay(db.Model):
    """One attendance entry per employee per local calendar day."""
    __tablename__ = "attendance_days"
    id = db.Column(db.Integer, primary_key=True)
    company_id  = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="RESTRICT"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    date        = db.Column(db.Date, nullable=False)
    status      = db.Column(db.String(16), nullable=False, default="present")  # present|absent|late|half-day
    check_in    = db.Column(db.Time, nullable=True)
    check_out   = db.Column(db.Time, nullable=True)
    notes       = db.Column(db.String(255), nullable=True)
    created_at  = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    __table_args__ = (
        db.UniqueConstraint("company_id", "employee_id", "date", name="uq_attendance_company_employee_date"),
    )
