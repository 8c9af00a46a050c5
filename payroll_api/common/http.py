# payroll_api/common/http.py
from flask import jsonify

def ok(data=None, status=200, **extra):
    """Success envelope. Extra keyword args land next to ``data`` (e.g. meta, errors)."""
    payload = {"success": True, "data": data}
    for k, v in extra.items():
        if v is not None:
            payload[k] = v
    return jsonify(payload), status

def fail(message="Bad Request", status=400, code=None, detail=None, errors=None):
    err = {"message": message}
    if code: err["code"] = code
    if detail: err["detail"] = detail
    if errors: err["errors"] = errors
    return jsonify({"success": False, "error": err}), status
