"""Unit tests for EMI due dates, schedules and settlement"""

import pytest
from dataclasses import replace
from datetime import date
from decimal import Decimal
from lending_gateway.domain.exceptions import InvalidPrincipal, InvalidState
from lending_gateway.domain.installments import (
    amortize,
    build_emi_schedule,
    generate_due_dates,
    settle_installment,
    split_principal,
)
from lending_gateway.domain.loans import disburse, new_application
from lending_gateway.domain.models import Borrower, EmiFrequency, LoanStatus


def test_split_principal_equal_split():
    """Test plan with evenly divisible amount"""
    parts = split_principal(Decimal("9000"), 3)

    assert parts == [Decimal("3000.00"), Decimal("3000.00"), Decimal("3000")]
    assert sum(parts) == Decimal("9000")


def test_split_principal_rounding():
    """Test last installment absorbs remainder"""
    parts = split_principal(Decimal("10000"), 3)

    assert parts[0] == Decimal("3333.33")
    assert parts[1] == Decimal("3333.33")
    assert parts[2] == Decimal("3333.34")
    assert sum(parts) == Decimal("10000")


def test_split_principal_zero_amount():
    with pytest.raises(InvalidPrincipal):
        split_principal(Decimal("0"), 3)


def test_weekly_due_dates(emi_plan):
    plan = replace(emi_plan, emi_count=4, emi_frequency=EmiFrequency.WEEKLY, repayment_days=7)
    due_dates = generate_due_dates(plan, None, date(2024, 1, 1))

    assert due_dates == (date(2024, 1, 7), date(2024, 1, 14), date(2024, 1, 21), date(2024, 1, 28))


def test_biweekly_due_dates(emi_plan):
    plan = replace(emi_plan, emi_count=2, emi_frequency=EmiFrequency.BIWEEKLY, repayment_days=14)
    assert generate_due_dates(plan, None, date(2024, 1, 1)) == (date(2024, 1, 14), date(2024, 1, 28))


def test_salary_due_dates_clamp_to_month_end(emi_plan):
    """Jan 31 is only 12 days away, so the first EMI is the Feb salary date"""
    plan = replace(emi_plan, calculate_by_salary_date=True, repayment_days=15)
    due_dates = generate_due_dates(plan, Borrower(salary_date=31), date(2024, 1, 20))

    assert due_dates == (date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30))


def test_salary_flag_ignored_for_weekly_emi(emi_plan):
    plan = replace(
        emi_plan, calculate_by_salary_date=True, emi_frequency=EmiFrequency.WEEKLY, repayment_days=7, emi_count=2
    )
    due_dates = generate_due_dates(plan, Borrower(salary_date=31), date(2024, 1, 1))
    assert due_dates == (date(2024, 1, 7), date(2024, 1, 14))


def test_reducing_balance_schedule():
    due_dates = (date(2024, 1, 30), date(2024, 2, 29), date(2024, 3, 30))
    schedule = build_emi_schedule(Decimal("9000"), due_dates, Decimal("0.001"), date(2024, 1, 1), Decimal("10"))

    assert [inst.instalment_no for inst in schedule] == [1, 2, 3]
    assert [inst.interest_days for inst in schedule] == [30, 30, 30]
    assert [inst.outstanding_principal_before for inst in schedule] == [
        Decimal("9000.00"),
        Decimal("6000.00"),
        Decimal("3000.00"),
    ]
    assert schedule[0].instalment_amount == Decimal("3280.00")
    assert schedule[2].instalment_amount == Decimal("3100.00")


def test_due_date_before_period_start_accrues_nothing():
    schedule = amortize(
        Decimal("1000"),
        [Decimal("1000")],
        [date(2024, 1, 1)],
        Decimal("0.001"),
        date(2024, 1, 5),
        [Decimal("0")],
    )
    assert schedule[0].interest_days == 0
    assert schedule[0].interest_component == Decimal("0.00")


def test_settle_installments_clears_loan(emi_plan):
    loan = disburse(new_application(Decimal("9000"), emi_plan), None, "2024-01-01")

    loan = settle_installment(loan, 1)
    assert loan.status == LoanStatus.DISBURSED
    assert loan.emi_schedule[0].is_paid

    loan = settle_installment(loan, 3)
    loan = settle_installment(loan, 2)
    assert loan.status == LoanStatus.CLEARED


def test_settle_paid_installment_twice(emi_plan):
    loan = settle_installment(disburse(new_application(Decimal("9000"), emi_plan), None, "2024-01-01"), 1)
    with pytest.raises(InvalidState):
        settle_installment(loan, 1)


def test_settle_unknown_installment(emi_plan):
    loan = disburse(new_application(Decimal("9000"), emi_plan), None, "2024-01-01")
    with pytest.raises(InvalidState):
        settle_installment(loan, 4)


def test_settle_single_payment_loan(single_plan):
    loan = disburse(new_application(Decimal("10000"), single_plan), None, "2024-01-01")
    assert settle_installment(loan, 1).status == LoanStatus.CLEARED


def test_settle_requires_disbursal(single_plan):
    with pytest.raises(InvalidState):
        settle_installment(new_application(Decimal("10000"), single_plan), 1)
