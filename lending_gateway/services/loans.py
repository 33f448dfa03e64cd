"""Loan application flows: apply, disburse, summarise, settle installments"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from lending_gateway.domain.calculator import interest_till, outstanding_balance
from lending_gateway.domain.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from lending_gateway.domain.exceptions import LoanNotFound, UserNotFound
from lending_gateway.domain.extensions import reject
from lending_gateway.domain.installments import settle_installment as settle
from lending_gateway.domain.loans import disburse, new_application
from lending_gateway.domain.models import ExtensionStatus, LoanApplication, LoanPlan, LoanStatus, LoanSummary
from lending_gateway.infrastructure.database.locks import loan_locks
from lending_gateway.infrastructure.database.repositories import ExtensionRepository, LoanRepository, UserRepository
from lending_gateway.services.credit_limit import apply_cooling_period
from lending_gateway.utils.date_utils import DateLike, parse_date_key

logger = logging.getLogger(__name__)


def create_application(db: Session, principal, plan: LoanPlan, user_id: Optional[int] = None) -> LoanApplication:
    if user_id is not None and UserRepository(db).get_user(user_id) is None:
        raise UserNotFound(f"User {user_id} not found")

    application = new_application(principal, plan, user_id)
    try:
        loan = LoanRepository(db).create_loan(application)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return loan


def get_loan(db: Session, loan_id: int) -> LoanApplication:
    loan = LoanRepository(db).get_loan(loan_id)
    if loan is None:
        raise LoanNotFound(f"Loan {loan_id} not found")
    return loan


def disburse_loan(
    db: Session,
    loan_id: int,
    disbursed_on: DateLike,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> LoanApplication:
    """Freeze the loan's calculation, due dates and schedule at disbursal"""
    with loan_locks.hold(loan_id):
        try:
            loan_repo = LoanRepository(db)
            loan = loan_repo.get_loan_for_update(loan_id)
            if loan is None:
                raise LoanNotFound(f"Loan {loan_id} not found")

            borrower = UserRepository(db).get_borrower(loan.user_id)
            disbursed = loan_repo.save_loan(disburse(loan, borrower, disbursed_on, config))
            db.commit()
        except Exception:
            db.rollback()
            raise

    logger.info(
        "Loan disbursed",
        extra={
            "loan_id": loan_id,
            "disbursed_at": disbursed.disbursed_at.isoformat(),
            "due_dates": [value.isoformat() for value in disbursed.processed_due_date],
        },
    )
    return disbursed


def loan_summary(db: Session, loan_id: int, as_of: DateLike) -> LoanSummary:
    """Loan with interest accrued so far and its extension history"""
    loan = get_loan(db, loan_id)
    as_of = parse_date_key(as_of)
    days, interest = interest_till(loan, as_of)
    return LoanSummary(
        loan=loan,
        as_of=as_of,
        exhausted_days=days,
        interest_till_today=interest,
        outstanding_balance=outstanding_balance(loan.principal, loan.fees),
        extensions=tuple(ExtensionRepository(db).get_extensions_by_loan(loan_id)),
    )


def settle_installment(
    db: Session,
    loan_id: int,
    instalment_no: int,
    settled_on: DateLike,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> LoanApplication:
    """
    Mark one installment paid. Clearing the last one closes the loan,
    rejects any extension request still awaiting payment, and for a
    premium loan starts the borrower's cooling period.
    """
    settled_on = parse_date_key(settled_on)
    with loan_locks.hold(loan_id):
        try:
            loan_repo = LoanRepository(db)
            loan = loan_repo.get_loan_for_update(loan_id)
            if loan is None:
                raise LoanNotFound(f"Loan {loan_id} not found")

            updated = settle(loan, instalment_no)
            closed = []
            if updated.status == LoanStatus.CLEARED and updated.has_pending_extension:
                extension_repo = ExtensionRepository(db)
                for extension in extension_repo.get_extensions_by_loan(loan_id):
                    if extension.status == ExtensionStatus.PENDING_PAYMENT:
                        updated, rejected = reject(updated, extension, settled_on)
                        closed.append(extension_repo.save_extension(rejected).extension_id)

            loan_repo.save_loan(updated)
            on_hold = updated.status == LoanStatus.CLEARED and apply_cooling_period(db, updated, config)
            db.commit()
        except Exception:
            db.rollback()
            raise

    if closed:
        logger.info("Pending extensions rejected on clearance", extra={"loan_id": loan_id, "extension_ids": closed})
    if on_hold:
        logger.info("Cooling period started", extra={"loan_id": loan_id, "user_id": updated.user_id})
    return updated
