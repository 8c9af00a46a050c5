# payroll_api/common/errors.py
from flask import Blueprint, current_app
from werkzeug.exceptions import HTTPException
from sqlalchemy.exc import IntegrityError
from payroll_api.common.http import fail

bp_errors = Blueprint("errors", __name__)


class APIError(Exception):
    """Custom API Error class."""
    def __init__(self, code, message, status_code=400, payload=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.payload = payload


# ---------- payroll taxonomy ----------

class PayrollError(Exception):
    """Base for every error raised by the payroll engine."""
    code = "PAYROLL_ERROR"
    status_code = 400

    def __init__(self, message, employee_id=None):
        super().__init__(message)
        self.message = message
        self.employee_id = employee_id


class ValidationError(PayrollError):
    """Malformed input (e.g. month token). Raised before any work starts."""
    code = "VALIDATION_ERROR"
    status_code = 422


class DuplicateRecordError(PayrollError):
    """Ledger uniqueness hit on (company, employee, month). Treated as a skip."""
    code = "DUPLICATE_RECORD"
    status_code = 409


class EmployeeDataError(PayrollError):
    """Missing salary, inactive employee, bad adjustment input, unknown timezone."""
    code = "EMPLOYEE_DATA_ERROR"
    status_code = 422


class TransientStoreError(PayrollError):
    code = "STORE_UNAVAILABLE"
    status_code = 503


class StateError(PayrollError):
    """Status transition attempted on a record that is already paid or cancelled."""
    code = "STATE_ERROR"
    status_code = 409


class NotFoundError(PayrollError):
    code = "NOT_FOUND"
    status_code = 404


# ---------- handlers ----------

@bp_errors.app_errorhandler(PayrollError)
def _payroll_error(e: PayrollError):
    detail = {"employee_id": e.employee_id} if e.employee_id is not None else None
    return fail(message=e.message, status=e.status_code, code=e.code, detail=detail)

@bp_errors.app_errorhandler(APIError)
def _api_error(e: APIError):
    return fail(message=e.message, status=e.status_code, code=e.code, detail=e.payload)

@bp_errors.app_errorhandler(HTTPException)
def _http(e: HTTPException):
    return fail(message=e.description or "HTTP error", status=e.code or 400)

@bp_errors.app_errorhandler(IntegrityError)
def _integrity(e: IntegrityError):
    # 409 for unique/FK violations
    return fail(message="Conflict / integrity error", status=409, code="CONSTRAINT_ERROR",
                detail=str(e.orig) if getattr(e, "orig", None) else str(e))

@bp_errors.app_errorhandler(Exception)
def _unhandled(e: Exception):
    current_app.logger.exception(e)
    return fail(message="Internal Server Error", status=500)
