"""Pydantic schemas for API request/response validation

Money leaves the API as strings with two fraction digits ("1234.50").
"""

from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from lending_gateway.domain.models import (
    ApprovalOutcome,
    CreditLimitState,
    EligibilityReport,
    EmiFrequency,
    EmiInstallment,
    ExtensionRecord,
    FeeApplicationMethod,
    FeeBreakdown,
    FeeLine,
    LoanApplication,
    LoanPlan,
    LoanQuote,
    LoanSummary,
    PaymentTransaction,
    PlanFee,
    PlanType,
)
from lending_gateway.utils.money import money_str


def _money(value: Optional[Decimal]) -> Optional[str]:
    return money_str(value) if value is not None else None


class PlanFeeSchema(BaseModel):
    """One fee on a plan, as a percent of principal"""

    name: str = Field(..., min_length=1)
    percent: Decimal = Field(..., ge=0)
    application_method: FeeApplicationMethod


class PlanSchema(BaseModel):
    """Loan plan terms; a loan keeps a snapshot of these"""

    plan_type: PlanType
    interest_rate_per_day: Decimal = Field(..., ge=0, description="Decimal fraction, 0.001 = 0.1% per day")
    repayment_days: int = Field(..., ge=0)
    emi_count: int = Field(1, ge=1)
    emi_frequency: Optional[EmiFrequency] = None
    calculate_by_salary_date: bool = False
    fees: List[PlanFeeSchema] = []
    plan_id: Optional[int] = None
    name: Optional[str] = None

    def to_domain(self) -> LoanPlan:
        return LoanPlan(
            plan_type=self.plan_type,
            interest_rate_per_day=self.interest_rate_per_day,
            repayment_days=self.repayment_days,
            emi_count=self.emi_count,
            emi_frequency=self.emi_frequency,
            calculate_by_salary_date=self.calculate_by_salary_date,
            fees=tuple(PlanFee(fee.name, fee.percent, fee.application_method) for fee in self.fees),
            plan_id=self.plan_id,
            name=self.name,
        )


class FeeLineSchema(BaseModel):
    name: str
    percent: str
    application_method: FeeApplicationMethod
    base_fee_amount: str
    fee_amount: str
    gst_amount: str
    multiplier: int

    @classmethod
    def from_domain(cls, line: FeeLine) -> "FeeLineSchema":
        return cls(
            name=line.name,
            percent=str(line.percent),
            application_method=line.application_method,
            base_fee_amount=money_str(line.base_fee_amount),
            fee_amount=money_str(line.fee_amount),
            gst_amount=money_str(line.gst_amount),
            multiplier=line.multiplier,
        )


class FeeBreakdownSchema(BaseModel):
    deduct_from_disbursal: List[FeeLineSchema]
    add_to_total: List[FeeLineSchema]
    disbursal_fee: str
    disbursal_fee_gst: str
    repayable_fee: str
    repayable_fee_gst: str

    @classmethod
    def from_domain(cls, fees: FeeBreakdown) -> "FeeBreakdownSchema":
        return cls(
            deduct_from_disbursal=[FeeLineSchema.from_domain(line) for line in fees.deduct_from_disbursal],
            add_to_total=[FeeLineSchema.from_domain(line) for line in fees.add_to_total],
            disbursal_fee=money_str(fees.disbursal_fee),
            disbursal_fee_gst=money_str(fees.disbursal_fee_gst),
            repayable_fee=money_str(fees.repayable_fee),
            repayable_fee_gst=money_str(fees.repayable_fee_gst),
        )


class InstallmentSchema(BaseModel):
    """Single installment in an EMI schedule"""

    instalment_no: int
    due_date: date
    outstanding_principal_before: str
    principal_component: str
    interest_component: str
    fee_component: str
    instalment_amount: str
    interest_days: int
    status: str

    @classmethod
    def from_domain(cls, inst: EmiInstallment) -> "InstallmentSchema":
        return cls(
            instalment_no=inst.instalment_no,
            due_date=inst.due_date,
            outstanding_principal_before=money_str(inst.outstanding_principal_before),
            principal_component=money_str(inst.principal_component),
            interest_component=money_str(inst.interest_component),
            fee_component=money_str(inst.fee_component),
            instalment_amount=money_str(inst.instalment_amount),
            interest_days=inst.interest_days,
            status=inst.status.value,
        )


class CalculationRequest(BaseModel):
    """Request body for POST /v1/calculations"""

    principal: Decimal
    plan: PlanSchema
    salary_date: Optional[int] = Field(None, ge=1, le=31, description="Borrower salary day of month")
    as_of: Optional[str] = Field(None, description="YYYY-MM-DD, defaults to today")
    custom_days: Optional[int] = None


class CalculationResponse(BaseModel):
    """Response for POST /v1/calculations"""

    principal: str
    fees: FeeBreakdownSchema
    disbursal_amount: str
    interest: str
    interest_days: int
    rate_per_day: str
    calculation_method: str
    calculation_date: date
    repayment_date: Optional[date] = None
    total_repayable: str
    disbursal_breakdown: str
    total_breakdown: str
    due_dates: List[date] = []
    schedule: List[InstallmentSchema] = []
    total_interest: str

    @classmethod
    def from_quote(cls, quote: LoanQuote) -> "CalculationResponse":
        calc = quote.calculation
        return cls(
            principal=money_str(calc.principal),
            fees=FeeBreakdownSchema.from_domain(calc.fees),
            disbursal_amount=money_str(calc.disbursal_amount),
            interest=money_str(calc.interest),
            interest_days=calc.interest_days,
            rate_per_day=str(calc.rate_per_day),
            calculation_method=calc.calculation_method.value,
            calculation_date=calc.calculation_date,
            repayment_date=calc.repayment_date,
            total_repayable=money_str(quote.total_repayable),
            disbursal_breakdown=calc.disbursal_breakdown,
            total_breakdown=calc.total_breakdown,
            due_dates=list(quote.due_dates),
            schedule=[InstallmentSchema.from_domain(inst) for inst in quote.schedule],
            total_interest=money_str(quote.total_interest),
        )


class LoanCreateRequest(BaseModel):
    """Request body for POST /v1/loans"""

    principal: Decimal
    plan: PlanSchema
    user_id: Optional[int] = None


class DisburseRequest(BaseModel):
    disbursed_on: Optional[str] = Field(None, description="YYYY-MM-DD, defaults to today")


class ExtensionResponse(BaseModel):
    """Extension request with its quote and decision"""

    extension_id: Optional[int]
    loan_id: Optional[int]
    extension_number: int
    status: str
    requested_on: date
    original_due_dates: List[date]
    new_due_dates: List[date]
    extension_period_days: int
    total_tenure_days: int
    extension_fee: str
    gst_amount: str
    interest_till_date: str
    interest_days: int
    total_due: str
    outstanding_balance: str
    reference_number: Optional[str] = None
    decided_on: Optional[date] = None

    @classmethod
    def from_domain(cls, extension: ExtensionRecord) -> "ExtensionResponse":
        return cls(
            extension_id=extension.extension_id,
            loan_id=extension.loan_id,
            extension_number=extension.extension_number,
            status=extension.status.value,
            requested_on=extension.requested_on,
            original_due_dates=list(extension.original_due_dates),
            new_due_dates=list(extension.new_due_dates),
            extension_period_days=extension.extension_period_days,
            total_tenure_days=extension.total_tenure_days,
            extension_fee=money_str(extension.extension_fee),
            gst_amount=money_str(extension.gst_amount),
            interest_till_date=money_str(extension.interest_till_date),
            interest_days=extension.interest_days,
            total_due=money_str(extension.total_due),
            outstanding_balance=money_str(extension.outstanding_balance),
            reference_number=extension.reference_number,
            decided_on=extension.decided_on,
        )


class LoanResponse(BaseModel):
    """Loan snapshot; summary fields are filled on GET"""

    loan_id: int
    user_id: Optional[int] = None
    principal: str
    status: str
    plan: PlanSchema
    disbursed_at: Optional[date] = None
    due_dates: List[date] = []
    schedule: List[InstallmentSchema] = []
    disbursal_amount: Optional[str] = None
    interest: Optional[str] = None
    total_repayable: Optional[str] = None
    extension_count: int
    extension_status: Optional[str] = None
    last_extension_date: Optional[date] = None
    interest_paid: str
    as_of: Optional[date] = None
    exhausted_days: Optional[int] = None
    interest_till_today: Optional[str] = None
    outstanding_balance: Optional[str] = None
    extensions: List[ExtensionResponse] = []

    @classmethod
    def from_domain(cls, loan: LoanApplication, summary: Optional[LoanSummary] = None) -> "LoanResponse":
        plan = loan.plan_snapshot
        response = cls(
            loan_id=loan.loan_id,
            user_id=loan.user_id,
            principal=money_str(loan.principal),
            status=loan.status.value,
            plan=PlanSchema(
                plan_type=plan.plan_type,
                interest_rate_per_day=plan.interest_rate_per_day,
                repayment_days=plan.repayment_days,
                emi_count=plan.emi_count,
                emi_frequency=plan.emi_frequency,
                calculate_by_salary_date=plan.calculate_by_salary_date,
                fees=[
                    PlanFeeSchema(name=fee.name, percent=fee.percent, application_method=fee.application_method)
                    for fee in plan.fees
                ],
                plan_id=plan.plan_id,
                name=plan.name,
            ),
            disbursed_at=loan.disbursed_at,
            due_dates=list(loan.processed_due_date),
            schedule=[InstallmentSchema.from_domain(inst) for inst in loan.emi_schedule],
            disbursal_amount=_money(loan.disbursal_amount),
            interest=_money(loan.interest),
            total_repayable=_money(loan.total_repayable),
            extension_count=loan.extension_count,
            extension_status=loan.extension_status.value if loan.extension_status else None,
            last_extension_date=loan.last_extension_date,
            interest_paid=money_str(loan.interest_paid),
        )
        if summary is not None:
            response.as_of = summary.as_of
            response.exhausted_days = summary.exhausted_days
            response.interest_till_today = money_str(summary.interest_till_today)
            response.outstanding_balance = money_str(summary.outstanding_balance)
            response.extensions = [ExtensionResponse.from_domain(ext) for ext in summary.extensions]
        return response


class WindowSchema(BaseModel):
    start_date: date
    end_date: date
    as_of: date


class EligibilityResponse(BaseModel):
    """Response for GET /v1/loans/{loan_id}/extension-eligibility"""

    loan_id: int
    eligible: bool
    reason: Optional[str] = None
    window: Optional[WindowSchema] = None
    new_due_dates: List[date] = []
    extension_period_days: Optional[int] = None
    extension_fee: Optional[str] = None
    gst_amount: Optional[str] = None
    interest_till_date: Optional[str] = None
    interest_days: Optional[int] = None
    total_due: Optional[str] = None

    @classmethod
    def from_domain(cls, loan_id: int, report: EligibilityReport) -> "EligibilityResponse":
        response = cls(loan_id=loan_id, eligible=report.eligible, reason=report.reason)
        if report.window is not None:
            response.window = WindowSchema(
                start_date=report.window.start_date,
                end_date=report.window.end_date,
                as_of=report.window.as_of,
            )
        if report.new_due_dates is not None:
            response.new_due_dates = list(report.new_due_dates.new_emi_dates)
            response.extension_period_days = report.new_due_dates.extension_period_days
        if report.charges is not None:
            response.extension_fee = money_str(report.charges.extension_fee)
            response.gst_amount = money_str(report.charges.gst_amount)
            response.interest_till_date = money_str(report.charges.interest_till_date)
            response.interest_days = report.charges.interest_days
            response.total_due = money_str(report.charges.total_due)
        return response


class ExtensionCreateRequest(BaseModel):
    """Request body for POST /v1/loans/{loan_id}/extensions"""

    requested_on: Optional[str] = Field(None, description="YYYY-MM-DD, defaults to today")


class ApproveRequest(BaseModel):
    approved_on: Optional[str] = Field(None, description="YYYY-MM-DD, defaults to today")
    reference_number: Optional[str] = None


class RejectRequest(BaseModel):
    rejected_on: Optional[str] = Field(None, description="YYYY-MM-DD, defaults to today")


class TransactionSchema(BaseModel):
    transaction_type: str
    amount: str
    reference_number: str
    description: str
    transaction_date: date
    status: str

    @classmethod
    def from_domain(cls, transaction: PaymentTransaction) -> "TransactionSchema":
        return cls(
            transaction_type=transaction.transaction_type,
            amount=money_str(transaction.amount),
            reference_number=transaction.reference_number,
            description=transaction.description,
            transaction_date=transaction.transaction_date,
            status=transaction.status,
        )


class ApprovalResponse(BaseModel):
    """Response for POST /v1/extensions/{extension_id}/approve"""

    extension: ExtensionResponse
    loan: LoanResponse
    transaction: TransactionSchema

    @classmethod
    def from_domain(cls, outcome: ApprovalOutcome) -> "ApprovalResponse":
        return cls(
            extension=ExtensionResponse.from_domain(outcome.extension),
            loan=LoanResponse.from_domain(outcome.loan),
            transaction=TransactionSchema.from_domain(outcome.transaction),
        )


class CreditLimitRequest(BaseModel):
    """Request body for POST /v1/credit-limit/next"""

    salary: Decimal = Field(..., description="Monthly salary")
    disbursed_loan_count: int = Field(..., ge=0, description="Multi-EMI loans already disbursed")
    current_limit: Decimal = Field(Decimal("0"), ge=0)


class CreditLimitResponse(BaseModel):
    salary: str
    disbursed_loan_count: int
    current_limit: str
    percentage_tier: str
    candidate_limit: str
    next_limit: str
    is_premium: bool
    premium_tenure_emis: Optional[int] = None
    first_loan_amount: Optional[str] = None

    @classmethod
    def from_domain(cls, state: CreditLimitState, first_loan_amount: Optional[Decimal] = None) -> "CreditLimitResponse":
        return cls(
            salary=money_str(state.salary),
            disbursed_loan_count=state.disbursed_loan_count,
            current_limit=money_str(state.current_limit),
            percentage_tier=str(state.percentage_tier),
            candidate_limit=money_str(state.candidate_limit),
            next_limit=money_str(state.next_limit),
            is_premium=state.is_premium,
            premium_tenure_emis=state.premium_tenure_emis,
            first_loan_amount=_money(first_loan_amount),
        )
