from datetime import date, timedelta
import os

import pytest

from payroll_api import create_app
from payroll_api.extensions import db
from payroll_api.models.master import Company
from payroll_api.models.employee import Employee
from payroll_api.models.attendance import AttendanceDay


def _mk_app(**config):
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app()
    app.config.update(TESTING=True, **config)
    return app


@pytest.fixture
def app():
    app = _mk_app()
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


def mk_company(code="T1", tz="UTC"):
    c = Company(code=code, name=f"{code} Co", timezone=tz)
    db.session.add(c); db.session.commit()
    return c


def mk_employee(company, code="E001", salary=30000, status="active", **kw):
    e = Employee(company_id=company.id, code=code, email=f"{company.code}-{code}@test.local".lower(),
                 first_name=kw.pop("first_name", "Test"), last_name=kw.pop("last_name", code),
                 basic_salary=salary, status=status, **kw)
    db.session.add(e); db.session.commit()
    return e


def mk_attendance(employee, start, days, status="present"):
    """``days`` consecutive entries starting at ``start``."""
    for i in range(days):
        db.session.add(AttendanceDay(company_id=employee.company_id, employee_id=employee.id,
                                     date=start + timedelta(days=i), status=status))
    db.session.commit()


@pytest.fixture
def company(app):
    return mk_company()


@pytest.fixture
def employee(company):
    e = mk_employee(company, salary=30000)
    # 25 present days in September 2025 (30-day month)
    mk_attendance(e, date(2025, 9, 1), 25)
    return e
