"""POST /v1/calculations - ad-hoc loan calculation and EMI schedule"""

import time
import logging
from fastapi import APIRouter, Depends, HTTPException, Request

from lending_gateway.api.v1.errors import http_error
from lending_gateway.api.v1.schemas import CalculationRequest, CalculationResponse
from lending_gateway.api.dependencies import get_engine_config, get_request_id
from lending_gateway.domain.calculator import quote_loan
from lending_gateway.domain.config import EngineConfig
from lending_gateway.domain.exceptions import DomainException
from lending_gateway.domain.models import Borrower
from lending_gateway.infrastructure.observability.logging import log_calculation
from lending_gateway.infrastructure.observability.metrics import record_calculation
from lending_gateway.utils.date_utils import today_key

router = APIRouter()


@router.post("/calculations", response_model=CalculationResponse)
def create_calculation(
    request_body: CalculationRequest,
    request: Request,
    config: EngineConfig = Depends(get_engine_config),
):
    """
    Calculate fees, interest and total repayable for a principal under a plan.

    Multi-EMI plans also get their due dates and reducing-balance schedule.
    Nothing is stored.
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        borrower = Borrower(salary_date=request_body.salary_date)
        quote = quote_loan(
            request_body.principal,
            request_body.plan.to_domain(),
            borrower,
            request_body.as_of or today_key(),
            config,
            custom_days=request_body.custom_days,
        )
    except DomainException as e:
        raise http_error(e, request_id)
    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    calculation = quote.calculation
    duration_ms = (time.time() - start_time) * 1000
    record_calculation(calculation.calculation_method.value)
    log_calculation(
        request_id,
        calculation.principal,
        calculation.calculation_method.value,
        calculation.interest_days,
        quote.total_repayable,
        duration_ms,
    )
    return CalculationResponse.from_quote(quote)
