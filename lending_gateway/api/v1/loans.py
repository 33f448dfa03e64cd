"""Loan application endpoints: create, disburse, fetch, settle installments"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from lending_gateway.api.dependencies import get_engine_config, get_request_id
from lending_gateway.api.v1.errors import http_error
from lending_gateway.api.v1.schemas import DisburseRequest, LoanCreateRequest, LoanResponse
from lending_gateway.domain.config import EngineConfig
from lending_gateway.domain.exceptions import DomainException
from lending_gateway.infrastructure.database.session import get_db
from lending_gateway.services import loans
from lending_gateway.utils.date_utils import today_key

router = APIRouter()


@router.post("/loans", response_model=LoanResponse, status_code=201)
def create_loan(request_body: LoanCreateRequest, request: Request, db: Session = Depends(get_db)):
    """Create a loan application holding a snapshot of the plan terms"""
    request_id = get_request_id(request)
    try:
        loan = loans.create_application(db, request_body.principal, request_body.plan.to_domain(), request_body.user_id)
    except DomainException as e:
        raise http_error(e, request_id)
    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
    return LoanResponse.from_domain(loan)


@router.post("/loans/{loan_id}/disburse", response_model=LoanResponse)
def disburse_loan(
    loan_id: int,
    request_body: DisburseRequest,
    request: Request,
    db: Session = Depends(get_db),
    config: EngineConfig = Depends(get_engine_config),
):
    """
    Disburse a submitted loan.

    Fees, interest, due dates and the EMI schedule are frozen as of the
    disbursal date and never recomputed from the plan afterwards.
    """
    request_id = get_request_id(request)
    try:
        loan = loans.disburse_loan(db, loan_id, request_body.disbursed_on or today_key(), config)
    except DomainException as e:
        raise http_error(e, request_id)
    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
    return LoanResponse.from_domain(loan)


@router.get("/loans/{loan_id}", response_model=LoanResponse)
def get_loan(loan_id: int, request: Request, as_of: Optional[str] = None, db: Session = Depends(get_db)):
    """
    Retrieve a loan with its schedule and extension history.

    Returns:
        Loan snapshot plus interest accrued up to ``as_of`` (default today)
    """
    request_id = get_request_id(request)
    try:
        summary = loans.loan_summary(db, loan_id, as_of or today_key())
    except DomainException as e:
        raise http_error(e, request_id)
    return LoanResponse.from_domain(summary.loan, summary)


@router.post("/loans/{loan_id}/installments/{instalment_no}/settle", response_model=LoanResponse)
def settle_installment(
    loan_id: int,
    instalment_no: int,
    request: Request,
    settled_on: Optional[str] = None,
    db: Session = Depends(get_db),
    config: EngineConfig = Depends(get_engine_config),
):
    """Mark one installment paid; the loan clears when none are left"""
    request_id = get_request_id(request)
    try:
        loan = loans.settle_installment(db, loan_id, instalment_no, settled_on or today_key(), config)
    except DomainException as e:
        raise http_error(e, request_id)
    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
    return LoanResponse.from_domain(loan)
