"""JSON (de)serialisation of engine structs at the storage boundary

Money goes into JSON as "1234.50" strings and dates as "YYYY-MM-DD" so a
stored snapshot reproduces the exact same Decimal and date values.
"""

from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from lending_gateway.domain.models import (
    EmiFrequency,
    EmiInstallment,
    ExtensionRecord,
    ExtensionStatus,
    FeeApplicationMethod,
    FeeBreakdown,
    FeeLine,
    InstallmentStatus,
    LoanApplication,
    LoanPlan,
    LoanStatus,
    PlanFee,
    PlanType,
)
from lending_gateway.infrastructure.database.models import LoanApplicationRecord, LoanExtensionRecord
from lending_gateway.utils.date_utils import parse_date_key
from lending_gateway.utils.money import ZERO, money_str, round2, to_decimal


def dates_to_json(values: Sequence[date]) -> List[str]:
    return [value.isoformat() for value in values]


def dates_from_json(values: Optional[Sequence[str]]) -> Tuple[date, ...]:
    return tuple(parse_date_key(value) for value in values or ())


def plan_to_json(plan: LoanPlan) -> Dict[str, Any]:
    return {
        "plan_id": plan.plan_id,
        "name": plan.name,
        "plan_type": plan.plan_type.value,
        "emi_count": plan.emi_count,
        "emi_frequency": plan.emi_frequency.value if plan.emi_frequency else None,
        "interest_rate_per_day": str(plan.interest_rate_per_day),
        "repayment_days": plan.repayment_days,
        "calculate_by_salary_date": plan.calculate_by_salary_date,
        "fees": [
            {
                "name": fee.name,
                "percent": str(fee.percent),
                "application_method": fee.application_method.value,
            }
            for fee in plan.fees
        ],
    }


def plan_from_json(data: Dict[str, Any]) -> LoanPlan:
    return LoanPlan(
        plan_id=data.get("plan_id"),
        name=data.get("name"),
        plan_type=PlanType(data["plan_type"]),
        emi_count=int(data.get("emi_count") or 1),
        emi_frequency=EmiFrequency(data["emi_frequency"]) if data.get("emi_frequency") else None,
        interest_rate_per_day=to_decimal(data["interest_rate_per_day"]),
        repayment_days=int(data["repayment_days"]),
        calculate_by_salary_date=bool(data.get("calculate_by_salary_date")),
        fees=tuple(
            PlanFee(
                name=fee["name"],
                percent=to_decimal(fee["percent"]),
                application_method=FeeApplicationMethod(fee["application_method"]),
            )
            for fee in data.get("fees", [])
        ),
    )


def _fee_line_to_json(line: FeeLine) -> Dict[str, Any]:
    return {
        "name": line.name,
        "percent": str(line.percent),
        "application_method": line.application_method.value,
        "base_fee_amount": money_str(line.base_fee_amount),
        "fee_amount": money_str(line.fee_amount),
        "gst_amount": money_str(line.gst_amount),
        "multiplier": line.multiplier,
    }


def _fee_line_from_json(data: Dict[str, Any]) -> FeeLine:
    return FeeLine(
        name=data["name"],
        percent=to_decimal(data["percent"]),
        application_method=FeeApplicationMethod(data["application_method"]),
        base_fee_amount=to_decimal(data["base_fee_amount"]),
        fee_amount=to_decimal(data["fee_amount"]),
        gst_amount=to_decimal(data["gst_amount"]),
        multiplier=int(data.get("multiplier", 1)),
    )


def fees_to_json(fees: FeeBreakdown) -> Dict[str, Any]:
    return {
        "deduct_from_disbursal": [_fee_line_to_json(line) for line in fees.deduct_from_disbursal],
        "add_to_total": [_fee_line_to_json(line) for line in fees.add_to_total],
        "disbursal_fee": money_str(fees.disbursal_fee),
        "disbursal_fee_gst": money_str(fees.disbursal_fee_gst),
        "repayable_fee": money_str(fees.repayable_fee),
        "repayable_fee_gst": money_str(fees.repayable_fee_gst),
    }


def fees_from_json(data: Optional[Dict[str, Any]]) -> Optional[FeeBreakdown]:
    if not data:
        return None
    return FeeBreakdown(
        deduct_from_disbursal=tuple(_fee_line_from_json(line) for line in data.get("deduct_from_disbursal", [])),
        add_to_total=tuple(_fee_line_from_json(line) for line in data.get("add_to_total", [])),
        disbursal_fee=to_decimal(data["disbursal_fee"]),
        disbursal_fee_gst=to_decimal(data["disbursal_fee_gst"]),
        repayable_fee=to_decimal(data["repayable_fee"]),
        repayable_fee_gst=to_decimal(data["repayable_fee_gst"]),
    )


def schedule_to_json(schedule: Sequence[EmiInstallment]) -> List[Dict[str, Any]]:
    return [
        {
            "instalment_no": inst.instalment_no,
            "due_date": inst.due_date.isoformat(),
            "outstanding_principal_before": money_str(inst.outstanding_principal_before),
            "principal_component": money_str(inst.principal_component),
            "interest_component": money_str(inst.interest_component),
            "fee_component": money_str(inst.fee_component),
            "instalment_amount": money_str(inst.instalment_amount),
            "interest_days": inst.interest_days,
            "status": inst.status.value,
        }
        for inst in schedule
    ]


def schedule_from_json(data: Optional[Sequence[Dict[str, Any]]]) -> Tuple[EmiInstallment, ...]:
    return tuple(
        EmiInstallment(
            instalment_no=int(item["instalment_no"]),
            due_date=parse_date_key(item["due_date"]),
            outstanding_principal_before=to_decimal(item["outstanding_principal_before"]),
            principal_component=to_decimal(item["principal_component"]),
            interest_component=to_decimal(item["interest_component"]),
            fee_component=to_decimal(item["fee_component"]),
            instalment_amount=to_decimal(item["instalment_amount"]),
            interest_days=int(item.get("interest_days", 0)),
            status=InstallmentStatus(item.get("status", InstallmentStatus.PENDING.value)),
        )
        for item in data or ()
    )


def _money_or_none(value) -> Optional[Any]:
    return round2(value) if value is not None else None


def loan_from_record(record: LoanApplicationRecord) -> LoanApplication:
    return LoanApplication(
        loan_id=record.id,
        user_id=record.user_id,
        principal=round2(record.principal),
        plan_snapshot=plan_from_json(record.plan_snapshot),
        status=LoanStatus(record.status),
        disbursed_at=record.disbursed_at,
        processed_due_date=dates_from_json(record.processed_due_date),
        emi_schedule=schedule_from_json(record.emi_schedule),
        fees=fees_from_json(record.fees_breakdown),
        disbursal_amount=_money_or_none(record.disbursal_amount),
        interest=_money_or_none(record.total_interest),
        total_repayable=_money_or_none(record.total_repayable),
        extension_count=record.extension_count or 0,
        extension_status=ExtensionStatus(record.extension_status) if record.extension_status else None,
        last_extension_date=record.last_extension_date,
        interest_paid=round2(record.interest_paid or ZERO),
    )


def apply_loan_to_record(loan: LoanApplication, record: LoanApplicationRecord) -> LoanApplicationRecord:
    """Write every mutable loan field onto the ORM row"""
    record.user_id = loan.user_id
    record.principal = loan.principal
    record.status = loan.status.value
    record.plan_snapshot = plan_to_json(loan.plan_snapshot)
    record.disbursed_at = loan.disbursed_at
    record.processed_due_date = dates_to_json(loan.processed_due_date)
    record.emi_schedule = schedule_to_json(loan.emi_schedule)
    record.fees_breakdown = fees_to_json(loan.fees) if loan.fees is not None else None
    record.disbursal_amount = loan.disbursal_amount
    record.total_interest = loan.interest
    record.total_repayable = loan.total_repayable
    record.extension_count = loan.extension_count
    record.extension_status = loan.extension_status.value if loan.extension_status else None
    record.last_extension_date = loan.last_extension_date
    record.interest_paid = loan.interest_paid
    return record


def extension_from_record(record: LoanExtensionRecord) -> ExtensionRecord:
    return ExtensionRecord(
        extension_id=record.id,
        loan_id=record.loan_application_id,
        extension_number=record.extension_number,
        requested_on=record.requested_on,
        original_due_dates=dates_from_json(record.original_due_dates),
        new_due_dates=dates_from_json(record.new_due_dates),
        extension_period_days=record.extension_period_days,
        total_tenure_days=record.total_tenure_days,
        extension_fee=round2(record.extension_fee),
        gst_amount=round2(record.gst_amount),
        interest_till_date=round2(record.interest_till_date),
        interest_days=record.interest_days,
        outstanding_balance=round2(record.outstanding_balance),
        status=ExtensionStatus(record.status),
        reference_number=record.reference_number,
        decided_on=record.decided_on,
    )


def apply_extension_to_record(extension: ExtensionRecord, record: LoanExtensionRecord) -> LoanExtensionRecord:
    record.loan_application_id = extension.loan_id
    record.extension_number = extension.extension_number
    record.requested_on = extension.requested_on
    record.original_due_dates = dates_to_json(extension.original_due_dates)
    record.new_due_dates = dates_to_json(extension.new_due_dates)
    record.extension_period_days = extension.extension_period_days
    record.total_tenure_days = extension.total_tenure_days
    record.extension_fee = extension.extension_fee
    record.gst_amount = extension.gst_amount
    record.interest_till_date = extension.interest_till_date
    record.interest_days = extension.interest_days
    record.total_extension_amount = extension.total_due
    record.outstanding_balance = extension.outstanding_balance
    record.status = extension.status.value
    record.reference_number = extension.reference_number
    record.decided_on = extension.decided_on
    return record
