from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation, ROUND_FLOOR
from typing import Any, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import current_app

from payroll_api.common.errors import ValidationError, EmployeeDataError

MONTH_RE = re.compile(r"^\d{4}-\d{2}$")
ZERO = Decimal("0")
HALF = Decimal("0.5")


@dataclass(frozen=True)
class PayrollSettings:
    max_workers: int = 4
    clamp_days_present: bool = False
    clamp_negative_total: bool = False
    deduct_unpaid_leave: bool = False
    default_timezone: str = "UTC"


def _flag(v) -> bool:
    if isinstance(v, str):
        return v.strip().lower() in ("1", "true", "yes", "on")
    return bool(v)


def payroll_settings() -> PayrollSettings:
    """Read the PAYROLL_* keys of the current app config."""
    cfg = current_app.config
    try:
        workers = int(cfg.get("PAYROLL_MAX_WORKERS", 4))
    except (TypeError, ValueError):
        workers = 4
    return PayrollSettings(
        max_workers=max(workers, 1),
        clamp_days_present=_flag(cfg.get("PAYROLL_CLAMP_DAYS_PRESENT", False)),
        clamp_negative_total=_flag(cfg.get("PAYROLL_CLAMP_NEGATIVE_TOTAL", False)),
        deduct_unpaid_leave=_flag(cfg.get("PAYROLL_DEDUCT_UNPAID_LEAVE", False)),
        default_timezone=cfg.get("PAYROLL_DEFAULT_TIMEZONE") or "UTC",
    )


def parse_month(value: Any) -> Tuple[int, int]:
    """'2025-09' -> (2025, 9). Raises ValidationError for anything else."""
    s = str(value or "").strip()
    if not MONTH_RE.match(s):
        raise ValidationError("Month must be in YYYY-MM format")
    year, month = int(s[:4]), int(s[5:])
    if not 1 <= month <= 12 or year < 1:
        raise ValidationError("Month must be in YYYY-MM format")
    return year, month


def normalize_month(value: Any) -> str:
    """Canonical YYYY-MM token; the only form written to or looked up in the ledger."""
    year, mon = parse_month(value)
    return f"{year:04d}-{mon:02d}"


def days_in_month(month: str) -> int:
    year, mon = parse_month(month)
    return calendar.monthrange(year, mon)[1]


def resolve_timezone(name: Optional[str], fallback: str = "UTC") -> ZoneInfo:
    try:
        return ZoneInfo(name or fallback)
    except (ZoneInfoNotFoundError, ValueError):
        raise EmployeeDataError(f"Unknown company timezone '{name}'")


def month_window(month: str, tz: ZoneInfo) -> Tuple[date, date]:
    """
    First and last calendar day of ``month`` as seen in ``tz``.

    Attendance dates are local calendar dates, so the window is the local
    midnight of day 1 through the last local day. The aware datetimes are
    built so that a bad zone fails here, before any query.
    """
    year, mon = parse_month(month)
    last = calendar.monthrange(year, mon)[1]
    start = datetime.combine(date(year, mon, 1), time.min, tzinfo=tz)
    end = datetime.combine(date(year, mon, last), time.max, tzinfo=tz)
    return start.date(), end.date()


def to_decimal(x: Any, field: str = "amount") -> Decimal:
    if x is None or x == "":
        return ZERO
    try:
        # via str() so floats like 0.1 keep their printed value
        d = x if isinstance(x, Decimal) else Decimal(str(x))
    except (InvalidOperation, ValueError):
        raise EmployeeDataError(f"{field} must be a number")
    if not d.is_finite():
        raise EmployeeDataError(f"{field} must be a number")
    return d


def round_money(x: Decimal) -> Decimal:
    """Round to the whole currency unit; halves go toward +infinity (25.5 -> 26, -25.5 -> -25)."""
    return (x + HALF).to_integral_value(rounding=ROUND_FLOOR)
