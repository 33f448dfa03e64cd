"""Credit limit progression endpoints"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from lending_gateway.api.dependencies import get_engine_config, get_request_id
from lending_gateway.api.v1.errors import http_error
from lending_gateway.api.v1.schemas import CreditLimitRequest, CreditLimitResponse
from lending_gateway.domain.config import EngineConfig
from lending_gateway.domain.credit_limit import first_loan_amount, next_limit
from lending_gateway.domain.exceptions import DomainException
from lending_gateway.infrastructure.database.session import get_db
from lending_gateway.infrastructure.observability.metrics import record_credit_limit_review
from lending_gateway.services.credit_limit import review_credit_limit

router = APIRouter()


@router.post("/credit-limit/next", response_model=CreditLimitResponse)
def calculate_next_limit(request_body: CreditLimitRequest, config: EngineConfig = Depends(get_engine_config)):
    """
    Next credit limit for a salary and number of disbursed multi-EMI loans.

    Pure calculation; nothing is stored.
    """
    state = next_limit(request_body.salary, request_body.disbursed_loan_count, request_body.current_limit, config)
    record_credit_limit_review(state.percentage_tier, state.is_premium)
    return CreditLimitResponse.from_domain(state, first_loan_amount(request_body.salary, config))


@router.post("/users/{user_id}/credit-limit/review", response_model=CreditLimitResponse)
def review_user_limit(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    config: EngineConfig = Depends(get_engine_config),
):
    """Review a stored user's limit and save it as their pending limit"""
    request_id = get_request_id(request)
    try:
        state = review_credit_limit(db, user_id, config, request_id)
    except DomainException as e:
        raise http_error(e, request_id)
    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
    return CreditLimitResponse.from_domain(state)
