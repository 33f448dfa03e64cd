"""Credit-limit review and the post-premium cooling period"""

from sqlalchemy.orm import Session

from lending_gateway.domain.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from lending_gateway.domain.credit_limit import next_limit, should_enter_cooling_period
from lending_gateway.domain.exceptions import UserNotFound
from lending_gateway.domain.models import CreditLimitState, LoanApplication
from lending_gateway.infrastructure.database.repositories import LoanRepository, UserRepository
from lending_gateway.infrastructure.observability.logging import log_credit_limit_review
from lending_gateway.infrastructure.observability.metrics import record_credit_limit_review

ON_HOLD_STATUS = "on_hold"
COOLING_PERIOD_REASON = "premium_loan_cleared"


def review_credit_limit(
    db: Session,
    user_id: int,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    request_id: str = "unknown",
) -> CreditLimitState:
    """
    Run the ladder for a user and store the result as a pending limit.

    The current limit is not raised here; the pending limit is applied
    when the next loan is offered.
    """
    user_repo = UserRepository(db)
    db_user = user_repo.get_user(user_id)
    if db_user is None:
        raise UserNotFound(f"User {user_id} not found")

    try:
        count = LoanRepository(db).count_disbursed_multi_emi(user_id)
        state = next_limit(db_user.monthly_income, count, db_user.loan_limit, config)

        db_user.pending_limit = state.next_limit
        db_user.pending_limit_premium = state.is_premium
        db.commit()
    except Exception:
        db.rollback()
        raise

    record_credit_limit_review(state.percentage_tier, state.is_premium)
    log_credit_limit_review(
        user_id, state.disbursed_loan_count, state.percentage_tier, state.next_limit, state.is_premium, request_id
    )
    return state


def apply_cooling_period(db: Session, loan: LoanApplication, config: EngineConfig = DEFAULT_ENGINE_CONFIG) -> bool:
    """Put the borrower on hold once a premium loan is cleared. Does not commit."""
    if loan.user_id is None or not should_enter_cooling_period(loan, config):
        return False

    db_user = UserRepository(db).get_user(loan.user_id)
    if db_user is None:
        return False

    db_user.status = ON_HOLD_STATUS
    db_user.hold_reason = COOLING_PERIOD_REASON
    db.flush()
    return True
