"""Integration tests for extension approval against the database, including concurrent approvals"""

import threading
from dataclasses import replace
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from lending_gateway.domain.exceptions import InvalidState, MaxExtensionsReached
from lending_gateway.infrastructure.database.models import UserRecord
from lending_gateway.infrastructure.database.repositories import ExtensionRepository, TransactionRepository
from lending_gateway.services import extensions, loans


def disbursed(db: Session, plan, principal="20000", user_id=None):
    loan = loans.create_application(db, Decimal(principal), plan, user_id)
    return loans.disburse_loan(db, loan.loan_id, "2024-01-01")


def approve_concurrently(session_factory, extension_id: int, on: str, workers: int = 2):
    """Approve one extension from several threads, each with its own session"""
    barrier = threading.Barrier(workers)
    results, errors = [], []

    def worker():
        session = session_factory()
        try:
            barrier.wait()
            results.append(extensions.approve_extension(session, extension_id, on))
        except Exception as e:
            errors.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return results, errors


def transaction_count(db: Session, loan_id: int) -> int:
    return len(TransactionRepository(db).get_transactions_by_loan(loan_id))


def test_approval_commits_everything(db: Session, single_plan):
    loan = disbursed(db, single_plan)
    record = extensions.request_extension(db, loan.loan_id, "2024-01-12")

    outcome = extensions.approve_extension(db, record.extension_id, "2024-01-12")

    stored = loans.get_loan(db, loan.loan_id)
    assert stored.extension_count == 1
    assert [value.isoformat() for value in stored.processed_due_date] == ["2024-01-30"]
    assert stored.interest_paid == Decimal("240.00")
    assert transaction_count(db, loan.loan_id) == 1
    assert outcome.transaction.reference_number == f"EXT-{loan.loan_id}-1-20240112"


def test_failed_approval_writes_nothing(db: Session, single_plan):
    loan = disbursed(db, single_plan)
    record = extensions.request_extension(db, loan.loan_id, "2024-01-12")
    extensions.approve_extension(db, record.extension_id, "2024-01-12")

    with pytest.raises(InvalidState):
        extensions.approve_extension(db, record.extension_id, "2024-01-13")

    assert loans.get_loan(db, loan.loan_id).extension_count == 1
    assert transaction_count(db, loan.loan_id) == 1


def test_concurrent_approvals_of_same_request(db: Session, session_factory, single_plan):
    loan = disbursed(db, single_plan)
    record = extensions.request_extension(db, loan.loan_id, "2024-01-12")

    results, errors = approve_concurrently(session_factory, record.extension_id, "2024-01-12")

    assert len(results) == 1
    assert len(errors) == 1
    assert isinstance(errors[0], InvalidState)
    db.expire_all()
    assert loans.get_loan(db, loan.loan_id).extension_count == 1
    assert transaction_count(db, loan.loan_id) == 1


def test_concurrent_approvals_never_pass_four(db: Session, session_factory, single_plan):
    loan = disbursed(db, single_plan)
    for on in ("2024-01-12", "2024-01-25", "2024-02-10"):
        record = extensions.request_extension(db, loan.loan_id, on)
        extensions.approve_extension(db, record.extension_id, on)
    record = extensions.request_extension(db, loan.loan_id, "2024-02-26")

    results, errors = approve_concurrently(session_factory, record.extension_id, "2024-02-26")

    assert len(results) == 1
    assert results[0].transaction.transaction_type == "loan_extension_4th"
    assert len(errors) == 1
    assert isinstance(errors[0], MaxExtensionsReached)
    db.expire_all()
    assert loans.get_loan(db, loan.loan_id).extension_count == 4
    assert transaction_count(db, loan.loan_id) == 4


def test_rejection_keeps_schedule(db: Session, emi_plan):
    loan = disbursed(db, emi_plan, principal="9000")
    record = extensions.request_extension(db, loan.loan_id, "2024-01-28")

    rejected = extensions.reject_extension(db, record.extension_id, "2024-01-29")

    assert rejected.status.value == "rejected"
    stored = loans.get_loan(db, loan.loan_id)
    assert stored.emi_schedule == loan.emi_schedule
    assert stored.extension_count == 0


def test_eligibility_report(db: Session, single_plan):
    loan = disbursed(db, single_plan)

    report = extensions.check_eligibility(db, loan.loan_id, "2024-02-01")

    assert report.eligible is False
    assert report.reason == "Extension window expired on 2024-01-30"
    assert report.charges is None


def test_cleared_premium_loan_puts_user_on_hold(db: Session, emi_plan):
    db_user = UserRecord(salary_date=5, monthly_income=Decimal("500000"), loan_limit=Decimal("150000"))
    db.add(db_user)
    db.commit()

    premium = replace(emi_plan, emi_count=24)
    loan = disbursed(db, premium, principal="150000", user_id=db_user.id)
    for instalment_no in range(1, 25):
        loan = loans.settle_installment(db, loan.loan_id, instalment_no, "2024-06-01")

    assert loan.status.value == "cleared"
    db.refresh(db_user)
    assert db_user.status == "on_hold"
    assert db_user.hold_reason == "premium_loan_cleared"


def test_clearing_loan_rejects_pending_extension(db: Session, single_plan):
    loan = disbursed(db, single_plan)
    record = extensions.request_extension(db, loan.loan_id, "2024-01-12")

    cleared = loans.settle_installment(db, loan.loan_id, 1, "2024-01-13")

    assert cleared.status.value == "cleared"
    assert cleared.extension_status.value == "rejected"
    closed = ExtensionRepository(db).get_extension(record.extension_id)
    assert closed.status.value == "rejected"
    assert closed.decided_on.isoformat() == "2024-01-13"

    with pytest.raises(InvalidState):
        extensions.approve_extension(db, record.extension_id, "2024-01-14")

    stored = loans.get_loan(db, loan.loan_id)
    assert stored.extension_count == 0
    assert [value.isoformat() for value in stored.processed_due_date] == ["2024-01-15"]
    assert transaction_count(db, loan.loan_id) == 0
