from datetime import date

import pytest
from flask_jwt_extended import create_access_token

from payroll_api.models.payroll.record import PayrollRecord
from conftest import mk_company, mk_employee, mk_attendance


def _hdr(company_id, roles=("admin",), employee_id=None):
    claims = {"company_id": company_id, "roles": list(roles)}
    if employee_id is not None:
        claims["employee_id"] = employee_id
    token = create_access_token(identity="1", additional_claims=claims)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def staff(company):
    a = mk_employee(company, "E001", salary=30000, designation="Engineer")
    b = mk_employee(company, "E002", salary=45000)
    mk_attendance(a, date(2025, 9, 1), 25)
    mk_attendance(b, date(2025, 9, 1), 30)
    return a, b


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.get_json()["data"]["status"] == "ok"


def test_generate_requires_token(client):
    r = client.post("/api/v1/payroll/generate", json={"month": "2025-09"})
    assert r.status_code == 401


def test_generate_and_rerun(client, company, staff):
    a, b = staff
    h = _hdr(company.id)
    body = {"month": "2025-09", "adjustments": {str(a.id): {"overtime": 500, "deductions": 200}}}

    r = client.post("/api/v1/payroll/generate", json=body, headers=h)
    assert r.status_code == 201
    j = r.get_json()
    assert j["success"] is True
    assert {x["employee_id"]: x["total_salary"] for x in j["data"]} == {a.id: 25300.0, b.id: 45000.0}
    assert j["message"] == "Payroll generated for 2 of 2 employees"
    assert j["meta"]["generated"] == 2

    r = client.post("/api/v1/payroll/generate", json=body, headers=h)
    assert r.status_code == 200
    j = r.get_json()
    assert j["data"] == []
    assert sorted(j["skipped"]) == sorted([a.id, b.id])


def test_generate_validates_month(client, company):
    r = client.post("/api/v1/payroll/generate", json={"month": "Sept 2025"}, headers=_hdr(company.id))
    assert r.status_code == 422
    assert r.get_json()["error"]["code"] == "VALIDATION_ERROR"


def test_generate_forbidden_for_employee_role(client, company, staff):
    h = _hdr(company.id, roles=("employee",), employee_id=staff[0].id)
    r = client.post("/api/v1/payroll/generate", json={"month": "2025-09"}, headers=h)
    assert r.status_code == 403


def test_token_without_company_rejected(client, app):
    token = create_access_token(identity="1", additional_claims={"roles": ["admin"]})
    r = client.get("/api/v1/payroll", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 403


def test_generate_reports_per_employee_errors(client, company, staff):
    broken = mk_employee(company, "E003", salary=None)
    r = client.post("/api/v1/payroll/generate", json={"month": "2025-09"}, headers=_hdr(company.id))
    assert r.status_code == 201
    j = r.get_json()
    assert j["errors"] == [{"employee_id": broken.id, "message": "Employee has no basic salary configured"}]
    assert j["meta"]["failed"] == 1


def test_preview_does_not_write(client, company, staff):
    r = client.post("/api/v1/payroll/preview", json={"month": "2025-09"}, headers=_hdr(company.id))
    assert r.status_code == 200
    j = r.get_json()
    assert j["meta"]["count"] == 2
    assert j["meta"]["total_salary"] == 25000.0 + 45000.0
    assert PayrollRecord.query.count() == 0


def test_list_and_employee_scope(client, company, staff):
    a, b = staff
    client.post("/api/v1/payroll/generate", json={"month": "2025-09"}, headers=_hdr(company.id))

    r = client.get("/api/v1/payroll?month=2025-09", headers=_hdr(company.id, roles=("hr",)))
    j = r.get_json()
    assert r.status_code == 200
    assert j["meta"]["total"] == 2
    row = next(x for x in j["data"] if x["employee_id"] == a.id)
    assert row["employee"]["designation"] == "Engineer"

    own = _hdr(company.id, roles=("employee",), employee_id=a.id)
    r = client.get(f"/api/v1/payroll?employee_id={b.id}", headers=own)
    assert [x["employee_id"] for x in r.get_json()["data"]] == [a.id]

    theirs = PayrollRecord.query.filter_by(employee_id=b.id).one()
    assert client.get(f"/api/v1/payroll/{theirs.id}", headers=own).status_code == 403

    other = mk_company("T2")
    assert client.get(f"/api/v1/payroll/{theirs.id}", headers=_hdr(other.id)).status_code == 404


def test_lifecycle_endpoints(client, company, staff):
    a, _ = staff
    h = _hdr(company.id)
    client.post("/api/v1/payroll/generate", json={"month": "2025-09"}, headers=h)
    rec = PayrollRecord.query.filter_by(employee_id=a.id).one()

    r = client.patch(f"/api/v1/payroll/{rec.id}", json={"bonuses": 700}, headers=h)
    assert r.status_code == 200
    assert r.get_json()["data"]["total_salary"] == 25700.0

    r = client.post(f"/api/v1/payroll/{rec.id}/mark-paid", headers=h)
    assert r.status_code == 200
    paid_date = r.get_json()["data"]["paid_date"]
    assert paid_date is not None

    r = client.post(f"/api/v1/payroll/{rec.id}/mark-paid", headers=h)
    assert r.status_code == 409
    assert r.get_json()["error"]["code"] == "STATE_ERROR"
    assert client.get(f"/api/v1/payroll/{rec.id}", headers=h).get_json()["data"]["paid_date"] == paid_date

    assert client.patch(f"/api/v1/payroll/{rec.id}", json={"bonuses": 1}, headers=h).status_code == 409
    assert client.put(f"/api/v1/payroll/{rec.id}/status", json={"status": "pending"}, headers=h).status_code == 409


def test_status_endpoint(client, company, staff):
    h = _hdr(company.id)
    client.post("/api/v1/payroll/generate", json={"month": "2025-09"}, headers=h)
    recs = PayrollRecord.query.order_by(PayrollRecord.id).all()

    assert client.put(f"/api/v1/payroll/{recs[0].id}/status", json={"status": "bogus"}, headers=h).status_code == 400
    r = client.put(f"/api/v1/payroll/{recs[0].id}/status", json={"status": "cancelled"}, headers=h)
    assert r.get_json()["data"]["status"] == "cancelled"
    r = client.put(f"/api/v1/payroll/{recs[1].id}/status", json={"status": "paid"}, headers=h)
    assert r.get_json()["data"]["status"] == "paid"


def test_delete_is_admin_only(client, company, staff):
    client.post("/api/v1/payroll/generate", json={"month": "2025-09"}, headers=_hdr(company.id))
    rec = PayrollRecord.query.first()
    assert client.delete(f"/api/v1/payroll/{rec.id}", headers=_hdr(company.id, roles=("hr",))).status_code == 403
    assert client.delete(f"/api/v1/payroll/{rec.id}", headers=_hdr(company.id)).status_code == 200
    assert PayrollRecord.query.count() == 1


def test_adjustment_entry_feeds_generation(client, company, staff):
    a, _ = staff
    h = _hdr(company.id, roles=("hr",))
    r = client.post("/api/v1/payroll/adjustments",
                    json={"employee_id": a.id, "kind": "bonus", "month": "2025-09", "amount": 1000}, headers=h)
    assert r.status_code == 201
    bad = client.post("/api/v1/payroll/adjustments",
                      json={"employee_id": a.id, "kind": "tip", "month": "2025-09", "amount": 5}, headers=h)
    assert bad.status_code == 422

    listed = client.get("/api/v1/payroll/adjustments?month=2025-09", headers=h).get_json()["data"]
    assert [x["kind"] for x in listed] == ["bonus"]

    r = client.post("/api/v1/payroll/generate", json={"month": "2025-09"}, headers=h)
    row = next(x for x in r.get_json()["data"] if x["employee_id"] == a.id)
    assert row["bonuses"] == 1000.0
    assert row["total_salary"] == 26000.0

    late = client.post("/api/v1/payroll/adjustments",
                       json={"employee_id": a.id, "kind": "bonus", "month": "2025-09", "amount": 5}, headers=h)
    assert late.status_code == 409
    assert late.get_json()["error"]["code"] == "ALREADY_GENERATED"
