"""Translation of domain exceptions to HTTP errors"""

import logging

from fastapi import HTTPException

from lending_gateway.domain.exceptions import (
    DomainException,
    ExtensionNotFound,
    InvalidDateFormat,
    InvalidDuration,
    InvalidPrincipal,
    InvalidState,
    LoanNotFound,
    NotEligible,
    UserNotFound,
)


def http_error(error: DomainException, request_id: str = "unknown") -> HTTPException:
    """Map a domain exception to the status code clients see"""
    if isinstance(error, (InvalidPrincipal, InvalidDuration, InvalidDateFormat)):
        logging.warning(f"Invalid input: {error}", extra={"request_id": request_id})
        return HTTPException(status_code=422, detail=str(error))

    if isinstance(error, (LoanNotFound, ExtensionNotFound, UserNotFound)):
        return HTTPException(status_code=404, detail=str(error))

    if isinstance(error, NotEligible):
        logging.info(f"Not eligible: {error.reason}", extra={"request_id": request_id})
        return HTTPException(status_code=409, detail=error.reason)

    if isinstance(error, InvalidState):
        logging.info(f"Invalid state: {error}", extra={"request_id": request_id})
        return HTTPException(status_code=409, detail=str(error))

    logging.error(f"Unhandled domain error: {error}", extra={"request_id": request_id})
    return HTTPException(status_code=500, detail="Internal server error")
