"""Data access layer for lending entities"""

from typing import List, Optional

from sqlalchemy.orm import Session

from lending_gateway.domain.models import (
    Borrower,
    ExtensionRecord,
    LoanApplication,
    LoanStatus,
    PaymentTransaction,
)
from lending_gateway.infrastructure.database.models import (
    LoanApplicationRecord,
    LoanExtensionRecord,
    TransactionRecord,
    UserRecord,
)
from lending_gateway.infrastructure.database.serializers import (
    apply_extension_to_record,
    apply_loan_to_record,
    extension_from_record,
    loan_from_record,
)


class UserRepository:
    """Repository for borrower profiles"""

    def __init__(self, db: Session):
        self.db = db

    def create_user(self, salary_date: Optional[int] = None, monthly_income=None, loan_limit=0) -> UserRecord:
        db_user = UserRecord(salary_date=salary_date, monthly_income=monthly_income, loan_limit=loan_limit)
        self.db.add(db_user)
        self.db.flush()
        return db_user

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        return self.db.get(UserRecord, user_id)

    def get_borrower(self, user_id: Optional[int]) -> Optional[Borrower]:
        """Borrower view of a user row, None for anonymous quotes"""
        if user_id is None:
            return None
        db_user = self.get_user(user_id)
        if db_user is None:
            return None
        return Borrower(
            user_id=db_user.id,
            salary_date=db_user.salary_date,
            monthly_income=db_user.monthly_income,
        )


class LoanRepository:
    """Repository for loan applications"""

    def __init__(self, db: Session):
        self.db = db

    def create_loan(self, loan: LoanApplication) -> LoanApplication:
        """Persist a new application and return it with its id"""
        db_loan = apply_loan_to_record(loan, LoanApplicationRecord())
        self.db.add(db_loan)
        self.db.flush()  # Get ID without committing
        return loan_from_record(db_loan)

    def get_loan(self, loan_id: int) -> Optional[LoanApplication]:
        db_loan = self.db.get(LoanApplicationRecord, loan_id)
        return loan_from_record(db_loan) if db_loan else None

    def get_loan_for_update(self, loan_id: int) -> Optional[LoanApplication]:
        """
        Fetch the loan row with a row-level lock held until commit.

        Databases without FOR UPDATE support (sqlite) ignore the clause;
        callers also serialise on the in-process loan lock.
        """
        db_loan = (
            self.db.query(LoanApplicationRecord)
            .filter(LoanApplicationRecord.id == loan_id)
            .populate_existing()
            .with_for_update()
            .first()
        )
        return loan_from_record(db_loan) if db_loan else None

    def save_loan(self, loan: LoanApplication) -> LoanApplication:
        db_loan = self.db.get(LoanApplicationRecord, loan.loan_id)
        apply_loan_to_record(loan, db_loan)
        self.db.flush()
        return loan

    def count_disbursed_multi_emi(self, user_id: int) -> int:
        """Disbursed or cleared multi-EMI loans, used for the credit ladder"""
        db_loans = (
            self.db.query(LoanApplicationRecord)
            .filter(
                LoanApplicationRecord.user_id == user_id,
                LoanApplicationRecord.status.in_([LoanStatus.DISBURSED.value, LoanStatus.CLEARED.value]),
            )
            .all()
        )
        return sum(1 for db_loan in db_loans if loan_from_record(db_loan).plan_snapshot.is_multi_emi)


class ExtensionRepository:
    """Repository for extension requests"""

    def __init__(self, db: Session):
        self.db = db

    def create_extension(self, extension: ExtensionRecord) -> ExtensionRecord:
        db_extension = apply_extension_to_record(extension, LoanExtensionRecord())
        self.db.add(db_extension)
        self.db.flush()
        return extension_from_record(db_extension)

    def get_extension(self, extension_id: int) -> Optional[ExtensionRecord]:
        db_extension = self.db.get(LoanExtensionRecord, extension_id)
        return extension_from_record(db_extension) if db_extension else None

    def get_extension_for_update(self, extension_id: int) -> Optional[ExtensionRecord]:
        db_extension = (
            self.db.query(LoanExtensionRecord)
            .filter(LoanExtensionRecord.id == extension_id)
            .populate_existing()
            .with_for_update()
            .first()
        )
        return extension_from_record(db_extension) if db_extension else None

    def save_extension(self, extension: ExtensionRecord) -> ExtensionRecord:
        db_extension = self.db.get(LoanExtensionRecord, extension.extension_id)
        apply_extension_to_record(extension, db_extension)
        self.db.flush()
        return extension

    def get_extensions_by_loan(self, loan_id: int) -> List[ExtensionRecord]:
        """All extensions of a loan, oldest first"""
        db_extensions = (
            self.db.query(LoanExtensionRecord)
            .filter(LoanExtensionRecord.loan_application_id == loan_id)
            .order_by(LoanExtensionRecord.extension_number.asc(), LoanExtensionRecord.id.asc())
            .all()
        )
        return [extension_from_record(db_extension) for db_extension in db_extensions]


class TransactionRepository:
    """Repository for payment transactions"""

    def __init__(self, db: Session):
        self.db = db

    def create_transaction(self, transaction: PaymentTransaction) -> TransactionRecord:
        db_transaction = TransactionRecord(
            user_id=transaction.user_id,
            loan_application_id=transaction.loan_id,
            transaction_type=transaction.transaction_type,
            amount=transaction.amount,
            reference_number=transaction.reference_number,
            description=transaction.description,
            transaction_date=transaction.transaction_date,
            status=transaction.status,
        )
        self.db.add(db_transaction)
        self.db.flush()
        return db_transaction

    def get_transactions_by_loan(self, loan_id: int) -> List[TransactionRecord]:
        return (
            self.db.query(TransactionRecord)
            .filter(TransactionRecord.loan_application_id == loan_id)
            .order_by(TransactionRecord.id.asc())
            .all()
        )
