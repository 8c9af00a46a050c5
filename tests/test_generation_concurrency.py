from concurrent.futures import ThreadPoolExecutor
from datetime import date
import threading

import pytest

from payroll_api import create_app
from payroll_api.extensions import db
from payroll_api.models.payroll.record import PayrollRecord
from payroll_api.services.payroll_generation import PayrollGenerationOrchestrator
from conftest import mk_company, mk_employee, mk_attendance


@pytest.fixture
def file_app(tmp_path, monkeypatch):
    # in-memory sqlite is per connection; threads need a shared file
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'payroll.db'}")
    monkeypatch.setenv("PAYROLL_MAX_WORKERS", "4")
    app = create_app()
    with app.app_context():
        db.create_all()
        c = mk_company()
        for i in range(12):
            e = mk_employee(c, f"E{i:03d}", salary=30000 + i * 1000)
            mk_attendance(e, date(2025, 9, 1), 20 + (i % 10))
        yield app, c.id
        db.session.remove()
        db.drop_all()


def test_threaded_run_matches_inline_math(file_app):
    app, company_id = file_app
    orch = PayrollGenerationOrchestrator()
    assert orch.max_workers == 4

    res = orch.generate(company_id, "2025-09")
    assert res.errors == []
    assert len(res.created) == 12
    for rec in res.created:
        i = int(rec["basic_salary"] - 30000) // 1000
        assert rec["days_present"] == 20 + (i % 10)
        assert rec["total_salary"] == round(rec["basic_salary"] / 30 * rec["days_present"])
    assert PayrollRecord.query.count() == 12


def test_parallel_runs_create_each_record_once(file_app):
    app, company_id = file_app

    def run():
        with app.app_context():
            return PayrollGenerationOrchestrator(max_workers=3).generate(company_id, "2025-09")

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = [f.result() for f in [pool.submit(run), pool.submit(run)]]

    created = [r["employee_id"] for res in results for r in res.created]
    skipped = [e for res in results for e in res.skipped]
    assert sorted(created) == sorted(set(created))
    assert len(created) == 12
    assert len(created) + len(skipped) == 24
    assert all(res.errors == [] for res in results)
    assert PayrollRecord.query.filter_by(company_id=company_id).count() == 12


def test_cancel_stops_new_work(file_app):
    app, company_id = file_app
    ev = threading.Event()
    ev.set()
    res = PayrollGenerationOrchestrator(max_workers=4).generate(company_id, "2025-09", cancel_event=ev)
    assert res.cancelled is True
    assert res.created == []
