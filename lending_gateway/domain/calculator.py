"""Loan calculation core - single entry point for application, disbursal and recalculation"""

from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple

from lending_gateway.domain.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from lending_gateway.domain.exceptions import InvalidDuration, InvalidPrincipal
from lending_gateway.domain.fees import decompose_fees, per_installment_fee
from lending_gateway.domain.installments import (
    build_emi_schedule,
    generate_due_dates,
    next_qualifying_salary_date,
    schedule_interest,
    uses_salary_schedule,
)
from lending_gateway.domain.models import (
    Borrower,
    CalculationMethod,
    FeeBreakdown,
    InterestDays,
    LoanApplication,
    LoanCalculation,
    LoanPlan,
    LoanQuote,
)
from lending_gateway.utils.date_utils import DateLike, days_between_inclusive, parse_date_key
from lending_gateway.utils.money import ZERO, round2, to_decimal


def validate_principal(principal) -> Decimal:
    try:
        value = to_decimal(principal)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise InvalidPrincipal(f"Invalid principal amount: {principal!r}") from e
    if not value.is_finite() or value <= 0:
        raise InvalidPrincipal(f"Invalid principal amount: {principal!r}")
    return value


def resolve_interest_days(
    plan: LoanPlan,
    borrower: Optional[Borrower],
    as_of: date,
    custom_days: Optional[int] = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> InterestDays:
    """
    Decide how many days of interest a new loan carries.

    - ``custom_days`` wins when given.
    - Salary-anchored plans run to the next salary date leaving at least
      ``repayment_days``; for monthly multi-EMI plans that is the first EMI.
    - Everything else uses the plan's fixed ``repayment_days``.
    """
    if custom_days is not None:
        days = int(custom_days)
        if days < 0:
            raise InvalidDuration(f"Days cannot be negative: {days}")
        repayment_date = as_of + timedelta(days=days - 1) if days > 0 else None
        return InterestDays(days=days, method=CalculationMethod.CUSTOM, repayment_date=repayment_date)

    min_days = plan.repayment_days or config.default_repayment_days
    if min_days < 0:
        raise InvalidDuration(f"Plan repayment days cannot be negative: {min_days}")

    if uses_salary_schedule(plan, borrower):
        target = next_qualifying_salary_date(as_of, borrower.valid_salary_date, min_days)
        return InterestDays(
            days=days_between_inclusive(as_of, target),
            method=CalculationMethod.SALARY_DATE,
            repayment_date=target,
        )

    repayment_date = as_of + timedelta(days=min_days - 1) if min_days > 0 else None
    return InterestDays(days=min_days, method=CalculationMethod.FIXED, repayment_date=repayment_date)


def calculate(
    principal,
    plan: LoanPlan,
    borrower: Optional[Borrower],
    as_of: DateLike,
    custom_days: Optional[int] = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> LoanCalculation:
    """
    Disbursal amount, interest and total repayable for a principal under a plan.

    Pure: the result depends only on the arguments, so repeated calls with
    the same inputs (including ``as_of``) return equal results.

    Example (principal 10000, 0.001/day, 15 days, no fees):
        interest 150.00, total_repayable 10150.00, disbursal 10000.00

    Raises:
        InvalidPrincipal: principal <= 0 or not a number
        InvalidDuration: negative day count
        InvalidDateFormat: unparseable ``as_of``
    """
    principal = validate_principal(principal)
    as_of = parse_date_key(as_of)
    rate = to_decimal(plan.interest_rate_per_day)

    interest_days = resolve_interest_days(plan, borrower, as_of, custom_days, config)
    interest = round2(principal * rate * interest_days.days)

    fees = decompose_fees(principal, plan.fees, plan.emi_count, plan.is_multi_emi, config)

    disbursal_amount = round2(principal - fees.total_disbursal_deduction)
    total_repayable = round2(principal + interest + fees.total_repayable_addition)

    return LoanCalculation(
        principal=round2(principal),
        fees=fees,
        disbursal_amount=disbursal_amount,
        interest=interest,
        interest_days=interest_days.days,
        rate_per_day=rate,
        calculation_method=interest_days.method,
        calculation_date=as_of,
        repayment_date=interest_days.repayment_date,
        total_repayable=total_repayable,
    )


def quote_loan(
    principal,
    plan: LoanPlan,
    borrower: Optional[Borrower],
    as_of: DateLike,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    custom_days: Optional[int] = None,
) -> LoanQuote:
    """
    Full quote: core calculation, due dates and (multi-EMI) schedule.

    A ``custom_days`` quote is the core calculation alone, due on its
    repayment date.

    For multi-EMI plans the interest actually charged is the sum of the
    reducing-balance installment interest, so the quote's totals come from
    the schedule rather than the single-shot core interest.
    """
    calculation = calculate(principal, plan, borrower, as_of, custom_days, config)
    if custom_days is not None:
        return LoanQuote(
            calculation=calculation,
            due_dates=(calculation.repayment_date,) if calculation.repayment_date else (),
            schedule=(),
            total_interest=calculation.interest,
            total_repayable=calculation.total_repayable,
        )

    due_dates = generate_due_dates(plan, borrower, calculation.calculation_date, config)

    if not plan.is_multi_emi:
        return LoanQuote(
            calculation=calculation,
            due_dates=due_dates,
            schedule=(),
            total_interest=calculation.interest,
            total_repayable=calculation.total_repayable,
        )

    schedule = build_emi_schedule(
        calculation.principal,
        due_dates,
        calculation.rate_per_day,
        calculation.calculation_date,
        per_installment_fee(calculation.fees, plan.emi_count),
    )
    total_interest = schedule_interest(schedule)
    return LoanQuote(
        calculation=calculation,
        due_dates=due_dates,
        schedule=schedule,
        total_interest=total_interest,
        total_repayable=round2(
            calculation.principal + total_interest + calculation.fees.total_repayable_addition
        ),
    )


def accrued_interest(principal, rate_per_day, start: DateLike, as_of: DateLike) -> Tuple[int, Decimal]:
    """
    Interest accrued from ``start`` to ``as_of``, both days included.

    Returns (days, amount). Nothing accrues before ``start``.
    """
    start_date = parse_date_key(start)
    as_of_date = parse_date_key(as_of)
    if as_of_date < start_date:
        return 0, ZERO
    days = days_between_inclusive(start_date, as_of_date)
    return days, round2(to_decimal(principal) * to_decimal(rate_per_day) * days)


def accrual_start_date(loan: LoanApplication) -> Optional[date]:
    """Interest clock start: the day after the last approved extension, else disbursal"""
    if loan.last_extension_date is not None:
        return loan.last_extension_date + timedelta(days=1)
    return loan.disbursed_at


def interest_till(loan: LoanApplication, as_of: DateLike) -> Tuple[int, Decimal]:
    """(exhausted days, interest so far) for a running loan"""
    start = accrual_start_date(loan)
    if start is None:
        return 0, ZERO
    return accrued_interest(loan.principal, loan.plan_snapshot.interest_rate_per_day, start, as_of)


def outstanding_balance(principal, fees: Optional[FeeBreakdown]) -> Decimal:
    """Principal plus every add-to-total fee and its GST"""
    addition = fees.total_repayable_addition if fees is not None else ZERO
    return round2(to_decimal(principal) + addition)
