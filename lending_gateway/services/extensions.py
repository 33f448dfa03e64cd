"""Extension request, approval and rejection against storage

Every mutation of a loan runs under the loan's in-process lock and its row
lock, and commits once. Any failure rolls the session back so a refused or
broken approval leaves nothing behind.
"""

from typing import Optional

from sqlalchemy.orm import Session

from lending_gateway.domain import extensions
from lending_gateway.domain.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from lending_gateway.domain.exceptions import (
    AlreadyPending,
    ExtensionNotFound,
    InvalidState,
    LoanNotFound,
    MaxExtensionsReached,
    NotEligible,
)
from lending_gateway.domain.models import ApprovalOutcome, EligibilityReport, ExtensionRecord
from lending_gateway.infrastructure.database.locks import loan_locks
from lending_gateway.infrastructure.database.repositories import (
    ExtensionRepository,
    LoanRepository,
    TransactionRepository,
    UserRepository,
)
from lending_gateway.infrastructure.observability.logging import log_extension_approved, log_extension_requested
from lending_gateway.infrastructure.observability.metrics import (
    extension_request_counter,
    record_extension_decision,
    record_extension_failure,
)
from lending_gateway.utils.date_utils import DateLike, parse_date_key


def _failure_reason(error: Exception) -> str:
    if isinstance(error, MaxExtensionsReached):
        return "max_extensions"
    if isinstance(error, AlreadyPending):
        return "already_pending"
    if isinstance(error, NotEligible):
        return "not_eligible"
    return "invalid_state"


def check_eligibility(
    db: Session,
    loan_id: int,
    today: DateLike,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> EligibilityReport:
    """
    Eligibility with the extension quote (new due dates and charges).

    Refusals are reported, not raised; only a missing loan raises.
    """
    loan = LoanRepository(db).get_loan(loan_id)
    if loan is None:
        raise LoanNotFound(f"Loan {loan_id} not found")

    today = parse_date_key(today)
    try:
        window = extensions.check_eligibility(loan, today, 0, config)
    except NotEligible as e:
        return EligibilityReport(eligible=False, reason=e.reason, window=e.window)

    borrower = UserRepository(db).get_borrower(loan.user_id)
    salary_date = borrower.salary_date if borrower is not None else None
    new_due_dates = extensions.compute_new_due_dates(
        loan, loan.first_due_date, loan.plan_snapshot, salary_date, config
    )
    charges = extensions.compute_fees(loan, today, config)
    return EligibilityReport(eligible=True, window=window, new_due_dates=new_due_dates, charges=charges)


def request_extension(
    db: Session,
    loan_id: int,
    today: DateLike,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    request_id: str = "unknown",
) -> ExtensionRecord:
    """Open a ``pending_payment`` extension request for the loan"""
    with loan_locks.hold(loan_id):
        try:
            loan_repo = LoanRepository(db)
            loan = loan_repo.get_loan_for_update(loan_id)
            if loan is None:
                raise LoanNotFound(f"Loan {loan_id} not found")

            borrower = UserRepository(db).get_borrower(loan.user_id)
            updated_loan, record = extensions.request_extension(loan, borrower, today, config)

            loan_repo.save_loan(updated_loan)
            saved = ExtensionRepository(db).create_extension(record)
            db.commit()
        except (NotEligible, InvalidState) as e:
            db.rollback()
            record_extension_failure(_failure_reason(e))
            raise
        except Exception:
            db.rollback()
            raise

    extension_request_counter.inc()
    log_extension_requested(loan_id, saved.extension_id, saved.extension_number, saved.total_due, request_id)
    return saved


def approve_extension(
    db: Session,
    extension_id: int,
    approved_on: DateLike,
    reference_number: Optional[str] = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    request_id: str = "unknown",
) -> ApprovalOutcome:
    """
    Approve a paid extension request.

    The transaction insert, the extension status change and the loan update
    (count, due dates, schedule, interest paid) commit together or not at
    all. Concurrent approvals on one loan are serialised, so a loan can
    never pass ``max_extensions`` approvals.
    """
    extension_repo = ExtensionRepository(db)
    pending = extension_repo.get_extension(extension_id)
    if pending is None:
        raise ExtensionNotFound(f"Extension {extension_id} not found")

    loan_id = pending.loan_id
    with loan_locks.hold(loan_id):
        try:
            loan_repo = LoanRepository(db)
            loan = loan_repo.get_loan_for_update(loan_id)
            if loan is None:
                raise LoanNotFound(f"Loan {loan_id} not found")
            extension = extension_repo.get_extension_for_update(extension_id)

            outcome = extensions.approve(loan, extension, approved_on, reference_number, config)

            TransactionRepository(db).create_transaction(outcome.transaction)
            extension_repo.save_extension(outcome.extension)
            loan_repo.save_loan(outcome.loan)
            db.commit()
        except (NotEligible, InvalidState) as e:
            db.rollback()
            record_extension_failure(_failure_reason(e))
            raise
        except Exception:
            db.rollback()
            raise

    record_extension_decision(approved=True)
    log_extension_approved(
        loan_id,
        extension_id,
        outcome.loan.extension_count,
        outcome.transaction.reference_number,
        outcome.transaction.amount,
        request_id,
    )
    return outcome


def reject_extension(db: Session, extension_id: int, rejected_on: DateLike) -> ExtensionRecord:
    """Close a pending request; the loan keeps its dates and schedule"""
    extension_repo = ExtensionRepository(db)
    pending = extension_repo.get_extension(extension_id)
    if pending is None:
        raise ExtensionNotFound(f"Extension {extension_id} not found")

    loan_id = pending.loan_id
    with loan_locks.hold(loan_id):
        try:
            loan_repo = LoanRepository(db)
            loan = loan_repo.get_loan_for_update(loan_id)
            extension = extension_repo.get_extension_for_update(extension_id)

            updated_loan, rejected = extensions.reject(loan, extension, rejected_on)

            extension_repo.save_extension(rejected)
            loan_repo.save_loan(updated_loan)
            db.commit()
        except InvalidState as e:
            db.rollback()
            record_extension_failure(_failure_reason(e))
            raise
        except Exception:
            db.rollback()
            raise

    record_extension_decision(approved=False)
    return rejected
