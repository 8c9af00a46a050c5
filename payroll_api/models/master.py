from datetime import datetime

from sqlalchemy.sql import func

from payroll_api.extensions import db


class Company(db.Model):
    """
    Tenant. Owned by the directory/CRUD layer; the payroll engine only reads
    ``timezone`` to resolve month windows.

    ``working_days_per_week`` is modelled for the rest of the product but is
    not consulted by payroll proration (calendar days are used).
    """

    __tablename__ = "companies"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    timezone = db.Column(db.String(64), nullable=True, default="Asia/Karachi")
    working_days_per_week = db.Column(db.SmallInteger, nullable=False, default=6)
    currency = db.Column(db.String(8), nullable=False, default="PKR")
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    deleted_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def soft_delete(self):
        self.is_active = False
        self.deleted_at = func.now()
