"""SQLAlchemy ORM models for users, loans, extensions and payment transactions"""

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, JSON, Numeric, Text
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

Money = Numeric(12, 2, asdecimal=True)


class UserRecord(Base):
    """Borrower profile fields the engine reads, plus credit-limit state"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    salary_date = Column(Integer, nullable=True)  # day of month 1-31
    monthly_income = Column(Money, nullable=True)
    loan_limit = Column(Money, nullable=False, default=0)
    pending_limit = Column(Money, nullable=True)
    pending_limit_premium = Column(Boolean, nullable=False, default=False)
    status = Column(Text, nullable=False, default="active")
    hold_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    loans = relationship("LoanApplicationRecord", back_populates="user")


class LoanApplicationRecord(Base):
    """Loan application with embedded plan snapshot and EMI schedule"""

    __tablename__ = "loan_applications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    principal = Column(Money, nullable=False)
    status = Column(Text, nullable=False, default="submitted", index=True)
    plan_snapshot = Column(JSON, nullable=False)
    disbursed_at = Column(Date, nullable=True)
    processed_due_date = Column(JSON, nullable=True)  # ["YYYY-MM-DD", ...]
    emi_schedule = Column(JSON, nullable=True)
    fees_breakdown = Column(JSON, nullable=True)
    disbursal_amount = Column(Money, nullable=True)
    total_interest = Column(Money, nullable=True)
    total_repayable = Column(Money, nullable=True)
    extension_count = Column(Integer, nullable=False, default=0)
    extension_status = Column(Text, nullable=True)
    last_extension_date = Column(Date, nullable=True)
    interest_paid = Column(Money, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    user = relationship("UserRecord", back_populates="loans")
    extensions = relationship("LoanExtensionRecord", back_populates="loan", cascade="all, delete-orphan")


class LoanExtensionRecord(Base):
    """Extension request with its fee quote and shifted due dates"""

    __tablename__ = "loan_extensions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    loan_application_id = Column(
        Integer, ForeignKey("loan_applications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    extension_number = Column(Integer, nullable=False)
    requested_on = Column(Date, nullable=False)
    original_due_dates = Column(JSON, nullable=False)
    new_due_dates = Column(JSON, nullable=False)
    extension_period_days = Column(Integer, nullable=False)
    total_tenure_days = Column(Integer, nullable=False)
    extension_fee = Column(Money, nullable=False)
    gst_amount = Column(Money, nullable=False)
    interest_till_date = Column(Money, nullable=False)
    interest_days = Column(Integer, nullable=False)
    total_extension_amount = Column(Money, nullable=False)
    outstanding_balance = Column(Money, nullable=False)
    status = Column(Text, nullable=False, default="pending_payment")
    reference_number = Column(Text, nullable=True)
    decided_on = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    loan = relationship("LoanApplicationRecord", back_populates="extensions")


class TransactionRecord(Base):
    """Completed payment (extension fees)"""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=True, index=True)
    loan_application_id = Column(Integer, ForeignKey("loan_applications.id", ondelete="CASCADE"), nullable=False)
    transaction_type = Column(Text, nullable=False)
    amount = Column(Money, nullable=False)
    reference_number = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    transaction_date = Column(Date, nullable=False)
    status = Column(Text, nullable=False, default="completed")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
