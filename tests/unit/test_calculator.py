"""Unit tests for the loan calculation core"""

import pytest
from dataclasses import replace
from datetime import date
from decimal import Decimal
from lending_gateway.domain.calculator import accrued_interest, calculate, outstanding_balance, quote_loan
from lending_gateway.domain.exceptions import InvalidDateFormat, InvalidDuration, InvalidPrincipal
from lending_gateway.domain.models import Borrower, CalculationMethod, FeeApplicationMethod, PlanFee


def test_fixed_plan_interest(single_plan):
    plan = replace(single_plan, fees=())
    result = calculate(Decimal("10000"), plan, None, "2024-01-01")

    assert result.interest == Decimal("150.00")
    assert result.interest_days == 15
    assert result.calculation_method == CalculationMethod.FIXED
    assert result.repayment_date == date(2024, 1, 15)
    assert result.disbursal_amount == Decimal("10000.00")
    assert result.total_repayable == Decimal("10150.00")


def test_fees_change_disbursal_and_total(single_plan):
    plan = replace(
        single_plan,
        fees=single_plan.fees + (PlanFee("Processing Fee", Decimal("5"), FeeApplicationMethod.DEDUCT_FROM_DISBURSAL),),
    )
    result = calculate(Decimal("10000"), plan, None, "2024-01-01")

    assert result.disbursal_amount == Decimal("9410.00")
    assert result.total_repayable == Decimal("10386.00")
    assert result.disbursal_breakdown == "Principal (₹10000.00) - Deduct Fees (₹590.00) = ₹9410.00"
    assert result.total_breakdown == (
        "Principal (₹10000.00) + Interest (₹150.00) + Repayable Fees (₹236.00) = ₹10386.00"
    )


def test_custom_days(single_plan):
    result = calculate(Decimal("10000"), single_plan, None, "2024-01-01", custom_days=10)

    assert result.interest == Decimal("100.00")
    assert result.calculation_method == CalculationMethod.CUSTOM
    assert result.repayment_date == date(2024, 1, 10)


def test_zero_custom_days(single_plan):
    result = calculate(Decimal("10000"), single_plan, None, "2024-01-01", custom_days=0)
    assert result.interest == Decimal("0.00")
    assert result.repayment_date is None


def test_negative_days_rejected(single_plan):
    with pytest.raises(InvalidDuration):
        calculate(Decimal("10000"), single_plan, None, "2024-01-01", custom_days=-1)


@pytest.mark.parametrize("principal", [0, -100, "abc", None])
def test_invalid_principal(single_plan, principal):
    with pytest.raises(InvalidPrincipal):
        calculate(principal, single_plan, None, "2024-01-01")


def test_invalid_as_of(single_plan):
    with pytest.raises(InvalidDateFormat):
        calculate(Decimal("10000"), single_plan, None, "01/01/2024")


def test_salary_plan_runs_to_qualifying_salary_date(single_plan):
    """Jan 5 leaves only 5 days, so the loan runs to Feb 5 (36 days)"""
    plan = replace(single_plan, calculate_by_salary_date=True, fees=())
    result = calculate(Decimal("10000"), plan, Borrower(salary_date=5), "2024-01-01")

    assert result.calculation_method == CalculationMethod.SALARY_DATE
    assert result.repayment_date == date(2024, 2, 5)
    assert result.interest_days == 36
    assert result.interest == Decimal("360.00")


def test_salary_plan_without_salary_date_falls_back_to_fixed(single_plan):
    plan = replace(single_plan, calculate_by_salary_date=True)
    result = calculate(Decimal("10000"), plan, Borrower(salary_date=None), "2024-01-01")
    assert result.calculation_method == CalculationMethod.FIXED
    assert result.interest_days == 15


def test_calculation_is_deterministic(single_plan):
    first = calculate(Decimal("12345.67"), single_plan, None, "2024-06-10")
    second = calculate(Decimal("12345.67"), single_plan, None, "2024-06-10")
    assert first == second


def test_quote_for_emi_plan_uses_schedule_interest(emi_plan):
    quote = quote_loan(Decimal("9000"), emi_plan, None, "2024-01-01")

    assert quote.due_dates == (date(2024, 1, 30), date(2024, 2, 29), date(2024, 3, 30))
    assert [inst.interest_component for inst in quote.schedule] == [
        Decimal("270.00"),
        Decimal("180.00"),
        Decimal("90.00"),
    ]
    assert quote.total_interest == Decimal("540.00")
    assert quote.total_repayable == Decimal("9540.00")
    assert quote.calculation.interest == Decimal("270.00")


def test_quote_for_single_plan_matches_core(single_plan):
    quote = quote_loan(Decimal("10000"), single_plan, None, "2024-01-01")

    assert quote.schedule == ()
    assert quote.due_dates == (date(2024, 1, 15),)
    assert quote.total_repayable == quote.calculation.total_repayable


def test_accrued_interest():
    assert accrued_interest(Decimal("10000"), Decimal("0.001"), "2024-01-01", "2024-01-10") == (10, Decimal("100.00"))
    assert accrued_interest(Decimal("10000"), Decimal("0.001"), "2024-01-10", "2024-01-01") == (0, Decimal("0.00"))


def test_outstanding_balance(single_plan):
    result = calculate(Decimal("10000"), single_plan, None, "2024-01-01")
    assert outstanding_balance(Decimal("10000"), result.fees) == Decimal("10236.00")
    assert outstanding_balance(Decimal("10000"), None) == Decimal("10000.00")
