# payroll_api/common/auth.py
from __future__ import annotations

from functools import wraps
from typing import Optional, Set

from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity

from payroll_api.common.http import fail


# ---------- helpers ----------

def _claim_roles() -> Set[str]:
    claims = get_jwt() or {}
    return set(claims.get("roles") or [])


def _claim_int(name: str) -> Optional[int]:
    raw = (get_jwt() or {}).get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def current_company_id() -> Optional[int]:
    """Tenant of the caller, issued as the ``company_id`` claim at login."""
    return _claim_int("company_id")


def current_employee_id() -> Optional[int]:
    return _claim_int("employee_id")


def has_role(code: str) -> bool:
    roles = _claim_roles()
    return "admin" in roles or code in roles


# ---------- decorators ----------

def requires_roles(*codes: str):
    """
    Require that the current user has AT LEAST ONE of the given role codes
    and belongs to a tenant.
    - Roles are read from the JWT 'roles' claim.
    - 'admin' role always passes.
    - No codes => any authenticated tenant user.
    """
    def outer(fn):
        @wraps(fn)
        @jwt_required()
        def inner(*args, **kwargs):
            if get_jwt_identity() is None:
                return fail("Unauthorized", status=401)
            if current_company_id() is None:
                return fail("Token carries no company", status=403)

            roles = _claim_roles()
            if not codes or "admin" in roles:
                return fn(*args, **kwargs)
            if not any(r in roles for r in codes):
                return fail("Forbidden", status=403)
            return fn(*args, **kwargs)
        return inner
    return outer
