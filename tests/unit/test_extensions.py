"""Unit tests for the loan extension engine"""

import pytest
from dataclasses import replace
from datetime import date
from decimal import Decimal
from lending_gateway.domain.exceptions import AlreadyPending, InvalidState, MaxExtensionsReached, NotEligible
from lending_gateway.domain.extensions import (
    approve,
    check_eligibility,
    compute_fees,
    compute_new_due_dates,
    extension_window,
    ordinal,
    reject,
    request_extension,
)
from lending_gateway.domain.installments import settle_installment
from lending_gateway.domain.loans import disburse, new_application
from lending_gateway.domain.models import Borrower, ExtensionStatus, LoanStatus


@pytest.fixture
def loan(single_plan):
    """₹20,000 single-payment loan disbursed Jan 1, due Jan 15"""
    application = replace(new_application(Decimal("20000"), single_plan), loan_id=7)
    return disburse(application, None, "2024-01-01")


@pytest.fixture
def emi_loan(emi_plan):
    """₹9,000 over 3 EMIs disbursed Jan 1, due Jan 30 / Feb 29 / Mar 30"""
    application = replace(new_application(Decimal("9000"), emi_plan), loan_id=8)
    return disburse(application, None, "2024-01-01")


def test_extension_window(loan):
    window = extension_window(loan.first_due_date, date(2024, 1, 12))
    assert window.start_date == date(2024, 1, 10)
    assert window.end_date == date(2024, 1, 30)
    assert window.is_within


@pytest.mark.parametrize("today", ["2024-01-10", "2024-01-15", "2024-01-30"])
def test_eligible_inside_window(loan, today):
    assert check_eligibility(loan, today).is_within


def test_window_not_open_yet(loan):
    with pytest.raises(NotEligible) as exc:
        check_eligibility(loan, "2024-01-09")
    assert exc.value.reason == "Extension window opens on 2024-01-10"
    assert exc.value.window.start_date == date(2024, 1, 10)


def test_window_expired(loan):
    with pytest.raises(NotEligible) as exc:
        check_eligibility(loan, "2024-01-31")
    assert exc.value.reason == "Extension window expired on 2024-01-30"


def test_undisbursed_loan_not_eligible(single_plan):
    with pytest.raises(NotEligible):
        check_eligibility(new_application(Decimal("20000"), single_plan), "2024-01-12")


def test_max_extensions(loan):
    exhausted = replace(loan, extension_count=4)
    with pytest.raises(MaxExtensionsReached):
        check_eligibility(exhausted, "2024-01-12")


def test_extension_charges(loan):
    charges = compute_fees(loan, "2024-01-12")

    assert charges.extension_fee == Decimal("4200.00")
    assert charges.gst_amount == Decimal("756.00")
    assert charges.interest_days == 12
    assert charges.interest_till_date == Decimal("240.00")
    assert charges.total_due == Decimal("5196.00")


def test_request_extension(loan):
    updated, record = request_extension(loan, None, "2024-01-12")

    assert updated.extension_status == ExtensionStatus.PENDING_PAYMENT
    assert updated.extension_count == 0
    assert record.extension_number == 1
    assert record.original_due_dates == (date(2024, 1, 15),)
    assert record.new_due_dates == (date(2024, 1, 30),)
    assert record.extension_period_days == 15
    assert record.total_tenure_days == 30
    assert record.outstanding_balance == Decimal("20472.00")
    assert record.status == ExtensionStatus.PENDING_PAYMENT


def test_second_request_while_pending(loan):
    pending, _ = request_extension(loan, None, "2024-01-12")
    with pytest.raises(AlreadyPending):
        request_extension(pending, None, "2024-01-13")


def test_approve_extension(loan):
    pending, record = request_extension(loan, None, "2024-01-12")
    outcome = approve(pending, replace(record, extension_id=1), "2024-01-12")

    assert outcome.loan.extension_count == 1
    assert outcome.loan.extension_status == ExtensionStatus.APPROVED
    assert outcome.loan.processed_due_date == (date(2024, 1, 30),)
    assert outcome.loan.last_extension_date == date(2024, 1, 12)
    assert outcome.loan.interest_paid == Decimal("240.00")

    assert outcome.extension.status == ExtensionStatus.APPROVED
    assert outcome.extension.decided_on == date(2024, 1, 12)

    transaction = outcome.transaction
    assert transaction.transaction_type == "loan_extension_1st"
    assert transaction.amount == Decimal("5196.00")
    assert transaction.reference_number == "EXT-7-1-20240112"
    assert "Extension Fee: ₹4200.00" in transaction.description


def test_approve_uses_given_reference(loan):
    pending, record = request_extension(loan, None, "2024-01-12")
    outcome = approve(pending, record, "2024-01-12", reference_number="PAY-123")
    assert outcome.transaction.reference_number == "PAY-123"


def test_approve_twice(loan):
    pending, record = request_extension(loan, None, "2024-01-12")
    outcome = approve(pending, record, "2024-01-12")
    with pytest.raises(InvalidState):
        approve(outcome.loan, outcome.extension, "2024-01-12")


def test_approve_beyond_max_extensions(loan):
    pending, record = request_extension(replace(loan, extension_count=3), None, "2024-01-12")
    exhausted = replace(pending, extension_count=4)
    with pytest.raises(MaxExtensionsReached):
        approve(exhausted, record, "2024-01-12")


def test_approve_on_cleared_loan(loan):
    pending, record = request_extension(loan, None, "2024-01-12")
    cleared = settle_installment(pending, 1)
    assert cleared.status == LoanStatus.CLEARED

    with pytest.raises(InvalidState) as exc:
        approve(cleared, record, "2024-01-13")
    assert "cleared" in str(exc.value)


def test_second_extension_accrues_from_day_after_approval(loan):
    pending, record = request_extension(loan, None, "2024-01-12")
    extended = approve(pending, record, "2024-01-12").loan

    updated, second = request_extension(extended, None, "2024-01-25")

    assert second.extension_number == 2
    assert second.interest_days == 13
    assert second.interest_till_date == Decimal("260.00")
    assert second.new_due_dates == (date(2024, 2, 14),)
    assert ordinal(second.extension_number) == "2nd"


def test_reject_extension(loan):
    pending, record = request_extension(loan, None, "2024-01-12")
    updated, rejected = reject(pending, record, "2024-01-13")

    assert rejected.status == ExtensionStatus.REJECTED
    assert rejected.decided_on == date(2024, 1, 13)
    assert updated.extension_status == ExtensionStatus.REJECTED
    assert updated.processed_due_date == loan.processed_due_date
    assert updated.extension_count == 0

    with pytest.raises(InvalidState):
        reject(updated, rejected, "2024-01-13")


def test_new_request_after_rejection(loan):
    pending, record = request_extension(loan, None, "2024-01-12")
    updated, _ = reject(pending, record, "2024-01-13")
    _, again = request_extension(updated, None, "2024-01-14")
    assert again.extension_number == 1


def test_salary_anchored_single_extension(single_plan):
    plan = replace(single_plan, calculate_by_salary_date=True)
    loan = disburse(new_application(Decimal("20000"), plan), Borrower(salary_date=5), "2024-01-01")
    assert loan.first_due_date == date(2024, 2, 5)

    new_dates = compute_new_due_dates(loan, loan.first_due_date, plan, salary_date=5)
    assert new_dates.new_due_date == date(2024, 3, 5)
    assert new_dates.extension_period_days == 30


def test_salary_anchored_emi_extension(emi_plan):
    plan = replace(emi_plan, calculate_by_salary_date=True, repayment_days=15)
    loan = disburse(new_application(Decimal("9000"), plan), Borrower(salary_date=31), "2024-01-20")

    new_dates = compute_new_due_dates(loan, loan.first_due_date, plan, salary_date=31)

    assert new_dates.new_emi_dates == (date(2024, 3, 31), date(2024, 4, 30), date(2024, 5, 31))
    assert new_dates.new_due_date == date(2024, 5, 31)
    assert new_dates.extension_period_days == 31


def test_emi_approval_rebuilds_schedule(emi_loan):
    pending, record = request_extension(emi_loan, None, "2024-01-28")

    assert record.new_due_dates == (date(2024, 2, 14), date(2024, 3, 15), date(2024, 4, 14))
    assert record.extension_fee == Decimal("1890.00")
    assert record.gst_amount == Decimal("340.20")
    assert record.interest_till_date == Decimal("252.00")

    loan = approve(pending, record, "2024-01-28").loan
    schedule = loan.emi_schedule

    assert loan.processed_due_date == record.new_due_dates
    assert [inst.due_date for inst in schedule] == list(record.new_due_dates)
    assert [inst.instalment_no for inst in schedule] == [1, 2, 3]
    assert [inst.principal_component for inst in schedule] == [Decimal("3000.00")] * 3
    assert [inst.interest_days for inst in schedule] == [17, 30, 30]
    assert [inst.interest_component for inst in schedule] == [
        Decimal("153.00"),
        Decimal("180.00"),
        Decimal("90.00"),
    ]


def test_ordinals():
    assert [ordinal(n) for n in (1, 2, 3, 4)] == ["1st", "2nd", "3rd", "4th"]
