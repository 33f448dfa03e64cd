"""EMI due dates and reducing-balance installment schedules"""

from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from lending_gateway.domain.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from lending_gateway.domain.exceptions import InvalidPrincipal, InvalidState
from lending_gateway.domain.models import (
    Borrower,
    EmiFrequency,
    EmiInstallment,
    InstallmentStatus,
    LoanApplication,
    LoanPlan,
    LoanStatus,
)
from lending_gateway.utils.date_utils import (
    days_between_inclusive,
    next_day_of_month,
    salary_date_for_month,
)
from lending_gateway.utils.money import ZERO, floor2, round2, to_decimal

FIXED_INTERVAL_DAYS = {
    EmiFrequency.DAILY: 1,
    EmiFrequency.WEEKLY: 7,
    EmiFrequency.BIWEEKLY: 14,
}


def next_qualifying_salary_date(as_of: date, salary_day: int, min_days: int) -> date:
    """
    Next salary date after ``as_of`` that leaves at least ``min_days``
    (inclusive count) to repay; rolls forward a month at a time otherwise.
    """
    target = next_day_of_month(as_of, salary_day)
    while days_between_inclusive(as_of, target) < min_days:
        target = salary_date_for_month(target, salary_day, 1)
    return target


def uses_salary_schedule(plan: LoanPlan, borrower: Optional[Borrower]) -> bool:
    if not plan.calculate_by_salary_date or borrower is None or borrower.valid_salary_date is None:
        return False
    if plan.is_multi_emi:
        return plan.emi_frequency == EmiFrequency.MONTHLY
    return True


def generate_due_dates(
    plan: LoanPlan,
    borrower: Optional[Borrower],
    start_date: date,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> Tuple[date, ...]:
    """
    Due dates for a loan starting on ``start_date``.

    Salary-anchored plans land every installment on the borrower's salary
    day (clamped in short months), the first one at least
    ``repayment_days`` away. Fixed plans put the first due date
    ``repayment_days`` after the start (inclusive count) and space the rest
    by the plan's EMI frequency.
    """
    count = plan.emi_count if plan.is_multi_emi else 1
    min_days = plan.repayment_days or config.default_repayment_days

    if uses_salary_schedule(plan, borrower):
        salary_day = borrower.valid_salary_date
        first = next_qualifying_salary_date(start_date, salary_day, min_days)
        return tuple(salary_date_for_month(first, salary_day, i) for i in range(count))

    first = start_date + timedelta(days=min_days - 1)
    interval = FIXED_INTERVAL_DAYS.get(plan.emi_frequency)
    if interval is None:
        return tuple(salary_date_for_month(first, first.day, i) for i in range(count))
    return tuple(first + timedelta(days=i * interval) for i in range(count))


def split_principal(principal, emi_count: int) -> List[Decimal]:
    """
    Equal principal parts; the last one absorbs the rounding remainder.

    Example:
        10000.00 / 3 -> [3333.33, 3333.33, 3333.34]
    """
    principal = to_decimal(principal)
    if principal <= 0:
        raise InvalidPrincipal(f"Principal must be positive, got {principal}")
    if emi_count < 1:
        raise ValueError("emi_count must be at least 1")

    per_emi = floor2(principal / emi_count)
    last = principal - per_emi * (emi_count - 1)
    return [per_emi] * (emi_count - 1) + [last]


def amortize(
    outstanding,
    principal_parts: Sequence[Decimal],
    due_dates: Sequence[date],
    rate_per_day,
    period_start: date,
    fee_components: Sequence[Decimal],
    first_instalment_no: int = 1,
) -> Tuple[EmiInstallment, ...]:
    """
    Reducing-balance installments.

    Interest for each installment runs from ``period_start`` (then the day
    after the previous due date) to its due date, inclusive, on the
    principal still outstanding before that installment. A due date that
    falls before its period start accrues no interest.
    """
    outstanding = to_decimal(outstanding)
    rate = to_decimal(rate_per_day)
    installments = []

    for offset, (principal_part, due_date, fee) in enumerate(zip(principal_parts, due_dates, fee_components)):
        days = days_between_inclusive(period_start, due_date) if due_date >= period_start else 0
        interest = round2(outstanding * rate * days)

        installments.append(
            EmiInstallment(
                instalment_no=first_instalment_no + offset,
                due_date=due_date,
                outstanding_principal_before=round2(outstanding),
                principal_component=principal_part,
                interest_component=interest,
                fee_component=fee,
                instalment_amount=round2(principal_part + interest + fee),
                interest_days=days,
            )
        )

        outstanding -= principal_part
        period_start = due_date + timedelta(days=1)

    return tuple(installments)


def build_emi_schedule(
    principal,
    due_dates: Sequence[date],
    rate_per_day,
    start_date: date,
    fee_per_installment: Decimal = ZERO,
) -> Tuple[EmiInstallment, ...]:
    """Fresh schedule: one installment per due date, interest from ``start_date``"""
    if not due_dates:
        return ()
    parts = split_principal(principal, len(due_dates))
    fees = [round2(fee_per_installment)] * len(due_dates)
    return amortize(principal, parts, due_dates, rate_per_day, start_date, fees)


def schedule_interest(schedule: Sequence[EmiInstallment]) -> Decimal:
    return sum((inst.interest_component for inst in schedule), ZERO)


def settle_installment(loan: LoanApplication, instalment_no: int) -> LoanApplication:
    """
    Mark one installment paid. The loan is cleared once nothing is pending.

    Single-payment loans have no schedule; settling installment 1 clears them.
    """
    if loan.status != LoanStatus.DISBURSED:
        raise InvalidState(f"Cannot settle an installment of a loan in status '{loan.status.value}'")

    if not loan.emi_schedule:
        if instalment_no != 1:
            raise InvalidState(f"Single-payment loan has no installment {instalment_no}")
        return replace(loan, status=LoanStatus.CLEARED)

    schedule = list(loan.emi_schedule)
    for index, inst in enumerate(schedule):
        if inst.instalment_no == instalment_no:
            if inst.is_paid:
                raise InvalidState(f"Installment {instalment_no} is already paid")
            schedule[index] = replace(inst, status=InstallmentStatus.PAID)
            break
    else:
        raise InvalidState(f"Loan has no installment {instalment_no}")

    status = LoanStatus.CLEARED if all(inst.is_paid for inst in schedule) else loan.status
    return replace(loan, emi_schedule=tuple(schedule), status=status)
