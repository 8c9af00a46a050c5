from __future__ import annotations

from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Any, Dict, Optional

from .payroll_common import ZERO, round_money, to_decimal, payroll_settings


@dataclass(frozen=True)
class ClampPolicy:
    """
    Whether to cap days_present at total_days and whether to floor the payable
    amount at zero. Both off by default: an over-count earns more than the
    base salary and heavy deductions can leave a negative total.
    """
    clamp_days_present: bool = False
    clamp_negative_total: bool = False

    @classmethod
    def from_config(cls) -> "ClampPolicy":
        s = payroll_settings()
        return cls(clamp_days_present=s.clamp_days_present, clamp_negative_total=s.clamp_negative_total)


@dataclass(frozen=True)
class Adjustments:
    overtime: Decimal = ZERO
    bonuses: Decimal = ZERO
    deductions: Decimal = ZERO


@dataclass(frozen=True)
class PayrollComputation:
    total_days: int
    days_present: int
    basic_salary: Decimal
    daily_rate: Decimal
    earned_salary: Decimal
    overtime: Decimal
    bonuses: Decimal
    deductions: Decimal
    total_salary: Decimal

    def as_record_fields(self) -> Dict[str, Any]:
        d = asdict(self)
        d.pop("daily_rate")
        d.pop("earned_salary")
        return d


class SalaryProrator:
    """Monthly base salary -> earned amount for the days present."""

    def __init__(self, policy: Optional[ClampPolicy] = None):
        self.policy = policy or ClampPolicy()

    @staticmethod
    def daily_rate(basic_salary: Decimal, total_days: int) -> Decimal:
        if total_days is None or total_days <= 0:
            raise ValueError("total_days must be > 0")
        return to_decimal(basic_salary, "basic_salary") / Decimal(total_days)

    def earned(self, basic_salary: Decimal, days_present: int, total_days: int) -> Decimal:
        days = days_present
        if self.policy.clamp_days_present:
            days = min(days, total_days)
        return self.daily_rate(basic_salary, total_days) * Decimal(days)


class PayrollCalculator:
    """
    total = round(earned + overtime + bonuses - deductions)

    Rounding happens once, on the final sum. Both the generation run and the
    preview call this class so their numbers cannot drift apart.
    """

    def __init__(self, policy: Optional[ClampPolicy] = None):
        self.policy = policy or ClampPolicy()
        self.prorator = SalaryProrator(self.policy)

    def total(self, earned_salary: Decimal, adj: Adjustments) -> Decimal:
        raw = earned_salary + adj.overtime + adj.bonuses - adj.deductions
        total = round_money(raw)
        if self.policy.clamp_negative_total and total < ZERO:
            total = ZERO
        return total

    def calculate(self, basic_salary, days_present: int, total_days: int,
                  adj: Optional[Adjustments] = None) -> PayrollComputation:
        adj = adj or Adjustments()
        basic = to_decimal(basic_salary, "basic_salary")
        earned = self.prorator.earned(basic, days_present, total_days)
        return PayrollComputation(
            total_days=total_days,
            days_present=days_present,
            basic_salary=basic,
            daily_rate=self.prorator.daily_rate(basic, total_days),
            earned_salary=earned,
            overtime=adj.overtime,
            bonuses=adj.bonuses,
            deductions=adj.deductions,
            total_salary=self.total(earned, adj),
        )
