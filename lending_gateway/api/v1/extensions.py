"""Loan extension endpoints: eligibility, request, approve, reject"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from lending_gateway.api.dependencies import get_engine_config, get_ledger_client, get_request_id
from lending_gateway.api.v1.errors import http_error
from lending_gateway.api.v1.schemas import (
    ApprovalResponse,
    ApproveRequest,
    EligibilityResponse,
    ExtensionCreateRequest,
    ExtensionResponse,
    RejectRequest,
)
from lending_gateway.domain.config import EngineConfig
from lending_gateway.domain.exceptions import DomainException
from lending_gateway.infrastructure.clients.ledger import LedgerClient
from lending_gateway.infrastructure.database.session import get_db
from lending_gateway.services import extensions
from lending_gateway.utils.date_utils import today_key

router = APIRouter()


@router.get("/loans/{loan_id}/extension-eligibility", response_model=EligibilityResponse)
def get_extension_eligibility(
    loan_id: int,
    request: Request,
    as_of: Optional[str] = None,
    db: Session = Depends(get_db),
    config: EngineConfig = Depends(get_engine_config),
):
    """
    Check whether the loan can be extended on ``as_of`` (default today).

    Eligible loans also get the quote: new due dates, extension fee, GST
    and interest accrued so far. Ineligible loans get the reason and, where
    one exists, the extension window.
    """
    request_id = get_request_id(request)
    try:
        report = extensions.check_eligibility(db, loan_id, as_of or today_key(), config)
    except DomainException as e:
        raise http_error(e, request_id)
    return EligibilityResponse.from_domain(loan_id, report)


@router.post("/loans/{loan_id}/extensions", response_model=ExtensionResponse, status_code=201)
def create_extension(
    loan_id: int,
    request_body: ExtensionCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
    config: EngineConfig = Depends(get_engine_config),
):
    """Open an extension request awaiting payment"""
    request_id = get_request_id(request)
    try:
        record = extensions.request_extension(
            db, loan_id, request_body.requested_on or today_key(), config, request_id
        )
    except DomainException as e:
        raise http_error(e, request_id)
    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
    return ExtensionResponse.from_domain(record)


@router.post("/extensions/{extension_id}/approve", response_model=ApprovalResponse)
def approve_extension(
    extension_id: int,
    request_body: ApproveRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    config: EngineConfig = Depends(get_engine_config),
    ledger_client: LedgerClient = Depends(get_ledger_client),
):
    """
    Approve a paid extension request.

    Flow:
    1. Lock the loan and re-check the extension limit
    2. Record the payment transaction
    3. Move the due dates and rebuild the unpaid installments
    4. Commit everything together
    5. Send async webhook to ledger
    """
    request_id = get_request_id(request)
    try:
        outcome = extensions.approve_extension(
            db,
            extension_id,
            request_body.approved_on or today_key(),
            request_body.reference_number,
            config,
            request_id,
        )
    except DomainException as e:
        raise http_error(e, request_id)
    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    background_tasks.add_task(ledger_client.publish_extension_approved, outcome)
    return ApprovalResponse.from_domain(outcome)


@router.post("/extensions/{extension_id}/reject", response_model=ExtensionResponse)
def reject_extension(
    extension_id: int,
    request_body: RejectRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    request_id = get_request_id(request)
    try:
        record = extensions.reject_extension(db, extension_id, request_body.rejected_on or today_key())
    except DomainException as e:
        raise http_error(e, request_id)
    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
    return ExtensionResponse.from_domain(record)
