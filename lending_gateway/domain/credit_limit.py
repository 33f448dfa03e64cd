"""Credit limit progression for multi-EMI borrowers"""

from decimal import Decimal

from lending_gateway.domain.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from lending_gateway.domain.models import CreditLimitState, LoanApplication, LoanStatus
from lending_gateway.utils.money import ZERO, floor100, percent_of, round2, to_decimal


def next_limit(
    salary,
    disbursed_loan_count: int,
    current_limit=ZERO,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> CreditLimitState:
    """
    Next credit limit on the salary-percentage ladder.

    The tier is picked by how many multi-EMI loans were already disbursed
    (8%, 11%, 15.2%, 20.9%, 28%, then 32.1% from the fifth on). The
    candidate is that share of salary rounded down to ₹100. A limit never
    goes below the current one and is capped at ₹45,600, except that the
    top tier, or a candidate above the cap, moves the borrower to the
    premium limit (₹150,000 over 24 EMIs).

    Example:
        salary 20000, 0 loans -> 8%, next limit 1600
        salary 20000, 5 loans -> 32.1%, premium, next limit 150000
    """
    salary = to_decimal(salary or 0)
    current = round2(current_limit or 0)
    count = max(int(disbursed_loan_count or 0), 0)

    if salary <= 0:
        return CreditLimitState(
            salary=ZERO,
            disbursed_loan_count=count,
            current_limit=current,
            percentage_tier=ZERO,
            candidate_limit=ZERO,
            next_limit=current,
            is_premium=False,
        )

    tiers = config.credit_limit_tiers
    tier = tiers[min(count, len(tiers) - 1)]
    candidate = floor100(percent_of(salary, tier))

    is_premium = tier >= config.premium_tier or candidate > config.credit_limit_cap
    if is_premium:
        limit = config.premium_credit_limit
    else:
        limit = min(max(current, candidate), config.credit_limit_cap)

    return CreditLimitState(
        salary=round2(salary),
        disbursed_loan_count=count,
        current_limit=current,
        percentage_tier=tier,
        candidate_limit=round2(candidate),
        next_limit=round2(limit),
        is_premium=is_premium,
        premium_tenure_emis=config.premium_tenure_emis if is_premium else None,
    )


def first_loan_amount(salary, config: EngineConfig = DEFAULT_ENGINE_CONFIG) -> Decimal:
    """First multi-EMI loan: bottom-tier share of salary, capped"""
    amount = floor100(percent_of(to_decimal(salary or 0), config.credit_limit_tiers[0]))
    return round2(min(max(amount, ZERO), config.credit_limit_cap))


def is_premium_loan(loan: LoanApplication, config: EngineConfig = DEFAULT_ENGINE_CONFIG) -> bool:
    plan = loan.plan_snapshot
    return (
        round2(loan.principal) == round2(config.premium_credit_limit)
        and plan.is_multi_emi
        and plan.emi_count >= config.premium_tenure_emis
    )


def should_enter_cooling_period(loan: LoanApplication, config: EngineConfig = DEFAULT_ENGINE_CONFIG) -> bool:
    """A cleared premium loan ends the ladder; the caller applies the hold"""
    return loan.status == LoanStatus.CLEARED and is_premium_loan(loan, config)
