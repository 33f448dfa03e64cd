"""Fee decomposition: plan fees -> fee amount + GST, grouped by how they are charged"""

from decimal import Decimal
from typing import Iterable, List

from lending_gateway.domain.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from lending_gateway.domain.models import FeeApplicationMethod, FeeBreakdown, FeeLine, PlanFee
from lending_gateway.utils.money import ZERO, percent_of, round2, to_decimal


def compute_fee_line(
    principal: Decimal,
    fee: PlanFee,
    emi_count: int = 1,
    is_multi_emi: bool = False,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> FeeLine:
    """
    Fee amount and GST for a single plan fee.

    ``add_to_total`` fees are defined per installment in the catalog, so a
    multi-EMI loan is charged ``emi_count`` times the rounded amount and
    GST. ``deduct_from_disbursal`` fees are charged once, upfront.
    """
    base_amount = round2(percent_of(principal, fee.percent))
    base_gst = round2(base_amount * config.gst_rate)

    multiplier = 1
    if fee.application_method == FeeApplicationMethod.ADD_TO_TOTAL and is_multi_emi:
        multiplier = max(int(emi_count), 1)

    return FeeLine(
        name=fee.name,
        percent=to_decimal(fee.percent),
        application_method=fee.application_method,
        base_fee_amount=base_amount,
        fee_amount=base_amount * multiplier,
        gst_amount=base_gst * multiplier,
        multiplier=multiplier,
    )


def decompose_fees(
    principal,
    fees: Iterable[PlanFee],
    emi_count: int = 1,
    is_multi_emi: bool = False,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> FeeBreakdown:
    """
    Split plan fees into the disbursal-deduction and repayable-addition groups.

    Example (principal 10000, one 5% deduct fee):
        fee 500.00, GST 90.00, total_disbursal_deduction 590.00
    """
    principal = to_decimal(principal)
    deduct: List[FeeLine] = []
    add: List[FeeLine] = []

    for fee in fees:
        line = compute_fee_line(principal, fee, emi_count, is_multi_emi, config)
        if line.application_method == FeeApplicationMethod.DEDUCT_FROM_DISBURSAL:
            deduct.append(line)
        else:
            add.append(line)

    return FeeBreakdown(
        deduct_from_disbursal=tuple(deduct),
        add_to_total=tuple(add),
        disbursal_fee=sum((line.fee_amount for line in deduct), ZERO),
        disbursal_fee_gst=sum((line.gst_amount for line in deduct), ZERO),
        repayable_fee=sum((line.fee_amount for line in add), ZERO),
        repayable_fee_gst=sum((line.gst_amount for line in add), ZERO),
    )


def per_installment_fee(breakdown: FeeBreakdown, emi_count: int) -> Decimal:
    """Each installment's share of the add-to-total fees (fee + GST)"""
    return round2(breakdown.total_repayable_addition / max(int(emi_count), 1))
