from decimal import Decimal

import pytest

from payroll_api.services.payroll_common import round_money, to_decimal
from payroll_api.services.salary import Adjustments, ClampPolicy, PayrollCalculator, SalaryProrator
from payroll_api.common.errors import EmployeeDataError


def test_reference_month_math():
    calc = PayrollCalculator(ClampPolicy())
    res = calc.calculate(30000, 25, 30, Adjustments(overtime=Decimal("500"), deductions=Decimal("200")))
    assert res.daily_rate == Decimal(1000)
    assert res.earned_salary == Decimal(25000)
    assert res.total_salary == Decimal(25300)
    fields = res.as_record_fields()
    assert "daily_rate" not in fields and "earned_salary" not in fields
    assert fields["total_days"] == 30 and fields["days_present"] == 25


def test_rounding_happens_once_on_the_sum():
    calc = PayrollCalculator(ClampPolicy())
    # 10000/31 = 322.58..., * 3 = 967.74...; rounding per day would give 969
    res = calc.calculate(10000, 3, 31)
    assert res.total_salary == Decimal(968)


@pytest.mark.parametrize("raw,expected", [
    ("25.5", 26), ("25.49", 25), ("-25.5", -25), ("-25.51", -26), ("0.5", 1), ("100", 100),
])
def test_round_money_halves_toward_positive(raw, expected):
    assert round_money(Decimal(raw)) == Decimal(expected)


def test_negative_total_is_kept_by_default():
    calc = PayrollCalculator(ClampPolicy())
    res = calc.calculate(3000, 1, 30, Adjustments(deductions=Decimal("500")))
    assert res.total_salary == Decimal(-400)


def test_negative_total_clamped_when_enabled():
    calc = PayrollCalculator(ClampPolicy(clamp_negative_total=True))
    res = calc.calculate(3000, 1, 30, Adjustments(deductions=Decimal("500")))
    assert res.total_salary == Decimal(0)


def test_days_present_over_total():
    assert SalaryProrator().earned(Decimal(3000), 31, 30) == Decimal(3100)
    clamped = SalaryProrator(ClampPolicy(clamp_days_present=True))
    assert clamped.earned(Decimal(3000), 31, 30) == Decimal(3000)


def test_zero_total_days_rejected():
    with pytest.raises(ValueError):
        SalaryProrator.daily_rate(Decimal(3000), 0)


def test_to_decimal_inputs():
    assert to_decimal(None) == Decimal(0)
    assert to_decimal("") == Decimal(0)
    assert to_decimal(0.1) == Decimal("0.1")
    with pytest.raises(EmployeeDataError):
        to_decimal("abc", "bonuses")
    with pytest.raises(EmployeeDataError):
        to_decimal("NaN")
