"""Loan lifecycle transitions: application and disbursal"""

from dataclasses import replace
from typing import Optional

from lending_gateway.domain.calculator import quote_loan, validate_principal
from lending_gateway.domain.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from lending_gateway.domain.exceptions import InvalidState
from lending_gateway.domain.models import Borrower, LoanApplication, LoanPlan, LoanStatus
from lending_gateway.utils.date_utils import DateLike, parse_date_key
from lending_gateway.utils.money import round2


def new_application(principal, plan: LoanPlan, user_id: Optional[int] = None) -> LoanApplication:
    """Create an application holding its own copy of the plan terms"""
    return LoanApplication(
        principal=round2(validate_principal(principal)),
        plan_snapshot=plan,
        user_id=user_id,
        status=LoanStatus.SUBMITTED,
    )


def disburse(
    loan: LoanApplication,
    borrower: Optional[Borrower],
    disbursed_on: DateLike,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> LoanApplication:
    """
    Freeze fees, interest, due dates and schedule as of the disbursal date.
    """
    if loan.status != LoanStatus.SUBMITTED or loan.is_disbursed:
        raise InvalidState(f"Loan in status '{loan.status.value}' cannot be disbursed")

    disbursed_on = parse_date_key(disbursed_on)
    quote = quote_loan(loan.principal, loan.plan_snapshot, borrower, disbursed_on, config)

    return replace(
        loan,
        status=LoanStatus.DISBURSED,
        disbursed_at=disbursed_on,
        processed_due_date=quote.due_dates,
        emi_schedule=quote.schedule,
        fees=quote.calculation.fees,
        disbursal_amount=quote.calculation.disbursal_amount,
        interest=quote.total_interest,
        total_repayable=quote.total_repayable,
    )
