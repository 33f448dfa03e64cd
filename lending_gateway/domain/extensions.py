"""Loan extension engine: eligibility window, charges, due-date shift and approval

State machine per extension request:

    pending_payment -> approved | rejected

A loan may have at most ``max_extensions`` approvals and one open request
at a time. Only the first due date (first EMI for multi-EMI loans) can be
extended; the remaining installments move with it.
"""

from dataclasses import replace
from datetime import date, timedelta
from typing import List, Optional, Sequence, Tuple

from lending_gateway.domain.calculator import (
    accrual_start_date,
    accrued_interest,
    outstanding_balance,
    validate_principal,
)
from lending_gateway.domain.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from lending_gateway.domain.exceptions import (
    AlreadyPending,
    InvalidState,
    MaxExtensionsReached,
    NotEligible,
)
from lending_gateway.domain.fees import decompose_fees
from lending_gateway.domain.installments import amortize
from lending_gateway.domain.models import (
    ApprovalOutcome,
    Borrower,
    EmiInstallment,
    ExtensionCharges,
    ExtensionRecord,
    ExtensionStatus,
    ExtensionWindow,
    LoanApplication,
    LoanPlan,
    LoanStatus,
    NewDueDates,
    PaymentTransaction,
)
from lending_gateway.utils.date_utils import DateLike, days_between_inclusive, parse_date_key, salary_date_for_month
from lending_gateway.utils.money import ZERO, round2

_ORDINALS = {1: "1st", 2: "2nd", 3: "3rd"}


def ordinal(n: int) -> str:
    return _ORDINALS.get(n, f"{n}th")


def extension_window(
    due_date: date, as_of: date, config: EngineConfig = DEFAULT_ENGINE_CONFIG
) -> ExtensionWindow:
    return ExtensionWindow(
        start_date=due_date - timedelta(days=config.extension_window_before_days),
        end_date=due_date + timedelta(days=config.extension_window_after_days),
        as_of=as_of,
    )


def check_eligibility(
    loan: LoanApplication,
    today: DateLike,
    emi_index: int = 0,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> ExtensionWindow:
    """
    Verify an extension may be requested on ``today``.

    Returns the extension window on success.

    Raises:
        NotEligible: not disbursed, already closed, not the first EMI, no due
            date, first EMI already paid, or ``today`` outside
            [due - 5, due + 15]
        MaxExtensionsReached: extension_count >= max_extensions
        AlreadyPending: a request is awaiting payment
    """
    today = parse_date_key(today)

    if not loan.is_disbursed:
        raise NotEligible("Loan must be disbursed before an extension can be requested")

    if loan.status != LoanStatus.DISBURSED:
        raise NotEligible(f"Loan in status '{loan.status.value}' cannot be extended")

    if loan.extension_count >= config.max_extensions:
        raise MaxExtensionsReached(config.max_extensions)

    if loan.has_pending_extension:
        raise AlreadyPending()

    if emi_index != 0:
        raise NotEligible("Only the first EMI can be extended")

    due_date = loan.first_due_date
    if due_date is None:
        raise NotEligible("Due date not found")

    if loan.emi_schedule and loan.emi_schedule[0].is_paid:
        raise NotEligible("The first EMI is already paid")

    window = extension_window(due_date, today, config)
    if today < window.start_date:
        raise NotEligible(f"Extension window opens on {window.start_date.isoformat()}", window)
    if today > window.end_date:
        raise NotEligible(f"Extension window expired on {window.end_date.isoformat()}", window)

    return window


def _pending_positions(loan: LoanApplication) -> List[int]:
    if not loan.emi_schedule:
        return list(range(len(loan.processed_due_date)))
    return [index for index, inst in enumerate(loan.emi_schedule) if not inst.is_paid]


def compute_new_due_dates(
    loan: LoanApplication,
    original_due_date: DateLike,
    plan: LoanPlan,
    salary_date: Optional[int] = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> NewDueDates:
    """
    Shift the loan's due date(s) for one extension.

    Salary-anchored plans move each remaining due date to the salary day of
    the following month; other plans add ``fixed_extension_days``. For a
    salary-anchored multi-EMI loan the extension period is the gap between
    the first two new due dates.
    """
    original_due_date = parse_date_key(original_due_date)
    salary_day = Borrower(salary_date=salary_date).valid_salary_date
    by_salary = plan.calculate_by_salary_date and salary_day is not None

    def shift(value: date) -> date:
        if by_salary:
            return salary_date_for_month(value, salary_day, 1)
        return value + timedelta(days=config.fixed_extension_days)

    if not plan.is_multi_emi:
        new_due_date = shift(original_due_date)
        period = (
            days_between_inclusive(original_due_date, new_due_date)
            if by_salary
            else config.fixed_extension_days
        )
        return NewDueDates(new_due_date=new_due_date, new_emi_dates=(new_due_date,), extension_period_days=period)

    dates = list(loan.processed_due_date) or [original_due_date]
    dates[0] = original_due_date
    pending = set(_pending_positions(loan)) or set(range(len(dates)))
    new_dates = tuple(shift(value) if index in pending else value for index, value in enumerate(dates))

    if not by_salary:
        period = config.fixed_extension_days
    elif len(new_dates) >= 2:
        period = days_between_inclusive(new_dates[0], new_dates[1])
    else:
        period = days_between_inclusive(original_due_date, new_dates[0])

    return NewDueDates(new_due_date=new_dates[-1], new_emi_dates=new_dates, extension_period_days=period)


def compute_fees(
    loan: LoanApplication,
    extension_date: DateLike,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> ExtensionCharges:
    """
    Extension fee (21% of principal), its GST, and interest accrued from
    the last accrual start (disbursal, or the day after the previous
    extension's approval) to ``extension_date`` inclusive.

    Example (principal 20000): fee 4200.00, GST 756.00
    """
    principal = validate_principal(loan.principal)
    start = accrual_start_date(loan)
    if start is None:
        raise NotEligible("Loan must be disbursed before extension charges can be computed")

    extension_fee = round2(principal * config.extension_fee_rate)
    gst_amount = round2(extension_fee * config.gst_rate)
    days, interest = accrued_interest(principal, loan.plan_snapshot.interest_rate_per_day, start, extension_date)

    return ExtensionCharges(
        extension_fee=extension_fee,
        gst_amount=gst_amount,
        interest_till_date=interest,
        interest_days=days,
        accrual_start=start,
    )


def request_extension(
    loan: LoanApplication,
    borrower: Optional[Borrower],
    today: DateLike,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> Tuple[LoanApplication, ExtensionRecord]:
    """Open a ``pending_payment`` extension. Returns the updated loan and the new request."""
    today = parse_date_key(today)
    check_eligibility(loan, today, 0, config)

    salary_date = borrower.salary_date if borrower is not None else None
    new_dates = compute_new_due_dates(loan, loan.first_due_date, loan.plan_snapshot, salary_date, config)
    charges = compute_fees(loan, today, config)

    fees = loan.fees
    if fees is None:
        plan = loan.plan_snapshot
        fees = decompose_fees(loan.principal, plan.fees, plan.emi_count, plan.is_multi_emi, config)

    record = ExtensionRecord(
        loan_id=loan.loan_id,
        extension_number=loan.extension_count + 1,
        requested_on=today,
        original_due_dates=tuple(loan.processed_due_date),
        new_due_dates=new_dates.new_emi_dates,
        extension_period_days=new_dates.extension_period_days,
        total_tenure_days=days_between_inclusive(loan.disbursed_at, new_dates.new_due_date),
        extension_fee=charges.extension_fee,
        gst_amount=charges.gst_amount,
        interest_till_date=charges.interest_till_date,
        interest_days=charges.interest_days,
        outstanding_balance=outstanding_balance(loan.principal, fees),
    )
    return replace(loan, extension_status=ExtensionStatus.PENDING_PAYMENT), record


def regenerate_schedule(
    loan: LoanApplication,
    new_due_dates: Sequence[date],
    approved_on: date,
) -> Tuple[EmiInstallment, ...]:
    """
    Rebuild the unpaid installments after an extension.

    Paid installments are kept as they are. Each unpaid installment keeps
    its principal and fee components; interest restarts the day after
    ``approved_on`` and runs to each new due date on the reducing balance.
    """
    schedule = loan.emi_schedule
    paid = [inst for inst in schedule if inst.is_paid]
    pending_positions = [index for index, inst in enumerate(schedule) if not inst.is_paid]
    if not pending_positions:
        return tuple(schedule)

    pending = [schedule[index] for index in pending_positions]
    outstanding = loan.principal - sum((inst.principal_component for inst in paid), ZERO)

    rebuilt = amortize(
        outstanding,
        [inst.principal_component for inst in pending],
        [new_due_dates[index] for index in pending_positions],
        loan.plan_snapshot.interest_rate_per_day,
        approved_on + timedelta(days=1),
        [inst.fee_component for inst in pending],
    )
    rebuilt = [replace(new, instalment_no=old.instalment_no) for old, new in zip(pending, rebuilt)]
    return tuple(sorted(paid + rebuilt, key=lambda inst: inst.instalment_no))


def approve(
    loan: LoanApplication,
    extension: ExtensionRecord,
    approved_on: DateLike,
    reference_number: Optional[str] = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> ApprovalOutcome:
    """
    Compute everything an approval writes: the payment transaction, the
    approved extension, and the loan with incremented extension count, new
    due dates, a freshly recomputed schedule and updated ``interest_paid``.

    Nothing is mutated; callers persist the outcome as one unit.

    Raises:
        MaxExtensionsReached: the loan already has all allowed approvals
        InvalidState: the request is not ``pending_payment`` or belongs to
            another loan, or the loan is no longer ``disbursed``
    """
    approved_on = parse_date_key(approved_on)

    if extension.loan_id is not None and loan.loan_id is not None and extension.loan_id != loan.loan_id:
        raise InvalidState(f"Extension belongs to loan {extension.loan_id}, not {loan.loan_id}")

    if loan.extension_count >= config.max_extensions:
        raise MaxExtensionsReached(config.max_extensions)

    if extension.status != ExtensionStatus.PENDING_PAYMENT:
        raise InvalidState(f"Extension request is already {extension.status.value}")

    if loan.status != LoanStatus.DISBURSED:
        raise InvalidState(f"Cannot extend a loan in status '{loan.status.value}'")

    reference = reference_number or (
        f"EXT-{loan.loan_id}-{extension.extension_number}-{approved_on.strftime('%Y%m%d')}"
    )
    transaction = PaymentTransaction(
        loan_id=loan.loan_id,
        user_id=loan.user_id,
        transaction_type=f"loan_extension_{ordinal(extension.extension_number)}",
        amount=extension.total_due,
        reference_number=reference,
        description=(
            f"Loan Extension #{extension.extension_number} - Extension Fee: ₹{extension.extension_fee:.2f}, "
            f"GST: ₹{extension.gst_amount:.2f}, Interest: ₹{extension.interest_till_date:.2f}"
        ),
        transaction_date=approved_on,
    )

    schedule = regenerate_schedule(loan, extension.new_due_dates, approved_on) if loan.emi_schedule else ()

    updated_loan = replace(
        loan,
        extension_count=loan.extension_count + 1,
        extension_status=ExtensionStatus.APPROVED,
        last_extension_date=approved_on,
        processed_due_date=tuple(extension.new_due_dates),
        emi_schedule=schedule,
        interest_paid=round2(loan.interest_paid + extension.interest_till_date),
    )
    approved = replace(
        extension,
        status=ExtensionStatus.APPROVED,
        reference_number=reference,
        decided_on=approved_on,
    )
    return ApprovalOutcome(loan=updated_loan, extension=approved, transaction=transaction)


def reject(
    loan: LoanApplication,
    extension: ExtensionRecord,
    rejected_on: DateLike,
) -> Tuple[LoanApplication, ExtensionRecord]:
    """Close a pending request without changing the loan's dates or schedule"""
    if extension.status != ExtensionStatus.PENDING_PAYMENT:
        raise InvalidState(f"Extension request is already {extension.status.value}")

    rejected = replace(extension, status=ExtensionStatus.REJECTED, decided_on=parse_date_key(rejected_on))
    return replace(loan, extension_status=ExtensionStatus.REJECTED), rejected
