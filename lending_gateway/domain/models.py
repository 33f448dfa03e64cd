"""Domain models - pure Python dataclasses representing business entities

All records are frozen. Operations that "change" a loan return a new
record built with ``dataclasses.replace`` so earlier snapshots stay
reproducible and a failed operation never leaves a half-updated object.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from lending_gateway.utils.money import ZERO


class PlanType(str, Enum):
    SINGLE = "single"
    MULTI_EMI = "multi_emi"


class EmiFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class FeeApplicationMethod(str, Enum):
    DEDUCT_FROM_DISBURSAL = "deduct_from_disbursal"
    ADD_TO_TOTAL = "add_to_total"


class CalculationMethod(str, Enum):
    FIXED = "fixed"
    SALARY_DATE = "salary_date"
    CUSTOM = "custom"


class LoanStatus(str, Enum):
    SUBMITTED = "submitted"
    DISBURSED = "disbursed"
    CLEARED = "cleared"
    WRITTEN_OFF = "written_off"


class InstallmentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


class ExtensionStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class PlanFee:
    """One named fee of a plan, as a percentage of principal"""

    name: str
    percent: Decimal
    application_method: FeeApplicationMethod


@dataclass(frozen=True)
class LoanPlan:
    """Loan product terms. Copied into each loan as its plan snapshot."""

    plan_type: PlanType
    interest_rate_per_day: Decimal  # decimal fraction, 0.001 = 0.1%/day
    repayment_days: int
    emi_count: int = 1
    emi_frequency: Optional[EmiFrequency] = None
    calculate_by_salary_date: bool = False
    fees: Tuple[PlanFee, ...] = ()
    plan_id: Optional[int] = None
    name: Optional[str] = None

    @property
    def is_multi_emi(self) -> bool:
        return self.plan_type == PlanType.MULTI_EMI


@dataclass(frozen=True)
class Borrower:
    """The slice of the user record the engine needs"""

    user_id: Optional[int] = None
    salary_date: Optional[int] = None  # day of month, 1-31
    monthly_income: Optional[Decimal] = None

    @property
    def valid_salary_date(self) -> Optional[int]:
        try:
            day = int(self.salary_date)
        except (TypeError, ValueError):
            return None
        return day if 1 <= day <= 31 else None


@dataclass(frozen=True)
class FeeLine:
    """Computed amounts for one plan fee"""

    name: str
    percent: Decimal
    application_method: FeeApplicationMethod
    base_fee_amount: Decimal  # one charge, before EMI multiplication
    fee_amount: Decimal
    gst_amount: Decimal
    multiplier: int = 1


@dataclass(frozen=True)
class FeeBreakdown:
    """Fees split by how they are charged, with running totals"""

    deduct_from_disbursal: Tuple[FeeLine, ...] = ()
    add_to_total: Tuple[FeeLine, ...] = ()
    disbursal_fee: Decimal = ZERO
    disbursal_fee_gst: Decimal = ZERO
    repayable_fee: Decimal = ZERO
    repayable_fee_gst: Decimal = ZERO

    @property
    def total_disbursal_deduction(self) -> Decimal:
        return self.disbursal_fee + self.disbursal_fee_gst

    @property
    def total_repayable_addition(self) -> Decimal:
        return self.repayable_fee + self.repayable_fee_gst


@dataclass(frozen=True)
class InterestDays:
    """Resolved interest day count and the due date it leads to"""

    days: int
    method: CalculationMethod
    repayment_date: Optional[date] = None


@dataclass(frozen=True)
class LoanCalculation:
    """Output of the loan calculation core"""

    principal: Decimal
    fees: FeeBreakdown
    disbursal_amount: Decimal
    interest: Decimal
    interest_days: int
    rate_per_day: Decimal
    calculation_method: CalculationMethod
    calculation_date: date
    repayment_date: Optional[date]
    total_repayable: Decimal

    @property
    def disbursal_breakdown(self) -> str:
        return (
            f"Principal (₹{self.principal:.2f}) - Deduct Fees "
            f"(₹{self.fees.total_disbursal_deduction:.2f}) = ₹{self.disbursal_amount:.2f}"
        )

    @property
    def total_breakdown(self) -> str:
        return (
            f"Principal (₹{self.principal:.2f}) + Interest (₹{self.interest:.2f}) + "
            f"Repayable Fees (₹{self.fees.total_repayable_addition:.2f}) = ₹{self.total_repayable:.2f}"
        )


@dataclass(frozen=True)
class EmiInstallment:
    """Single installment of a multi-EMI schedule"""

    instalment_no: int
    due_date: date
    outstanding_principal_before: Decimal
    principal_component: Decimal
    interest_component: Decimal
    fee_component: Decimal  # add-to-total fee + GST share
    instalment_amount: Decimal
    interest_days: int
    status: InstallmentStatus = InstallmentStatus.PENDING

    @property
    def is_paid(self) -> bool:
        return self.status == InstallmentStatus.PAID


@dataclass(frozen=True)
class LoanQuote:
    """Core calculation plus due dates and schedule (multi-EMI only)"""

    calculation: LoanCalculation
    due_dates: Tuple[date, ...]
    schedule: Tuple[EmiInstallment, ...]
    total_interest: Decimal
    total_repayable: Decimal


@dataclass(frozen=True)
class LoanApplication:
    """A borrower's loan with its frozen plan snapshot"""

    principal: Decimal
    plan_snapshot: LoanPlan
    status: LoanStatus = LoanStatus.SUBMITTED
    loan_id: Optional[int] = None
    user_id: Optional[int] = None
    disbursed_at: Optional[date] = None
    processed_due_date: Tuple[date, ...] = ()  # one date, or one per EMI
    emi_schedule: Tuple[EmiInstallment, ...] = ()
    fees: Optional[FeeBreakdown] = None
    disbursal_amount: Optional[Decimal] = None
    interest: Optional[Decimal] = None
    total_repayable: Optional[Decimal] = None
    extension_count: int = 0
    extension_status: Optional[ExtensionStatus] = None
    last_extension_date: Optional[date] = None
    interest_paid: Decimal = ZERO

    @property
    def is_disbursed(self) -> bool:
        return self.disbursed_at is not None

    @property
    def first_due_date(self) -> Optional[date]:
        return self.processed_due_date[0] if self.processed_due_date else None

    @property
    def has_pending_extension(self) -> bool:
        return self.extension_status == ExtensionStatus.PENDING_PAYMENT


@dataclass(frozen=True)
class ExtensionWindow:
    """Inclusive [due - before, due + after] window for requesting an extension"""

    start_date: date
    end_date: date
    as_of: date

    @property
    def is_within(self) -> bool:
        return self.start_date <= self.as_of <= self.end_date


@dataclass(frozen=True)
class NewDueDates:
    new_due_date: date  # final due date after the shift
    new_emi_dates: Tuple[date, ...]
    extension_period_days: int


@dataclass(frozen=True)
class ExtensionCharges:
    extension_fee: Decimal
    gst_amount: Decimal
    interest_till_date: Decimal
    interest_days: int
    accrual_start: date

    @property
    def total_due(self) -> Decimal:
        return self.extension_fee + self.gst_amount + self.interest_till_date


@dataclass(frozen=True)
class ExtensionRecord:
    """One extension request and its lifecycle"""

    loan_id: Optional[int]
    extension_number: int
    requested_on: date
    original_due_dates: Tuple[date, ...]
    new_due_dates: Tuple[date, ...]
    extension_period_days: int
    total_tenure_days: int
    extension_fee: Decimal
    gst_amount: Decimal
    interest_till_date: Decimal
    interest_days: int
    outstanding_balance: Decimal
    status: ExtensionStatus = ExtensionStatus.PENDING_PAYMENT
    extension_id: Optional[int] = None
    reference_number: Optional[str] = None
    decided_on: Optional[date] = None

    @property
    def total_due(self) -> Decimal:
        return self.extension_fee + self.gst_amount + self.interest_till_date

    @property
    def new_due_date(self) -> date:
        return self.new_due_dates[-1]


@dataclass(frozen=True)
class PaymentTransaction:
    """Completed payment recorded when an extension is approved"""

    loan_id: Optional[int]
    user_id: Optional[int]
    transaction_type: str
    amount: Decimal
    reference_number: str
    description: str
    transaction_date: date
    status: str = "completed"


@dataclass(frozen=True)
class ApprovalOutcome:
    """Everything an approved extension writes back, as one unit"""

    loan: LoanApplication
    extension: ExtensionRecord
    transaction: PaymentTransaction


@dataclass(frozen=True)
class CreditLimitState:
    """Output of one credit-limit progression step"""

    salary: Decimal
    disbursed_loan_count: int
    current_limit: Decimal
    percentage_tier: Decimal
    candidate_limit: Decimal
    next_limit: Decimal
    is_premium: bool
    premium_tenure_emis: Optional[int] = None


@dataclass(frozen=True)
class EligibilityReport:
    """Whether a loan can be extended today, with the quote when it can"""

    eligible: bool
    reason: Optional[str] = None
    window: Optional[ExtensionWindow] = None
    new_due_dates: Optional[NewDueDates] = None
    charges: Optional[ExtensionCharges] = None


@dataclass(frozen=True)
class LoanSummary:
    """Running view of a loan as of a given day"""

    loan: LoanApplication
    as_of: date
    exhausted_days: int
    interest_till_today: Decimal
    outstanding_balance: Decimal
    extensions: Tuple[ExtensionRecord, ...] = ()
