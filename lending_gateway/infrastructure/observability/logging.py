"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from lending_gateway.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _money(value: Optional[Decimal]) -> Optional[str]:
    return f"{value:.2f}" if value is not None else None


def log_calculation(
    request_id: str,
    principal: Decimal,
    calculation_method: str,
    interest_days: int,
    total_repayable: Decimal,
    duration_ms: float,
) -> None:
    """Log a completed loan calculation"""
    logging.info(
        "Calculation completed",
        extra={
            "request_id": request_id,
            "step": "calculation_complete",
            "principal": _money(principal),
            "calculation_method": calculation_method,
            "interest_days": interest_days,
            "total_repayable": _money(total_repayable),
            "duration_ms": duration_ms,
        },
    )


def log_extension_requested(
    loan_id: int,
    extension_id: int,
    extension_number: int,
    total_due: Decimal,
    request_id: str = "unknown",
) -> None:
    logging.info(
        "Extension requested",
        extra={
            "request_id": request_id,
            "loan_id": loan_id,
            "extension_id": extension_id,
            "step": "extension_requested",
            "extension_number": extension_number,
            "total_due": _money(total_due),
        },
    )


def log_extension_approved(
    loan_id: int,
    extension_id: int,
    extension_count: int,
    reference_number: str,
    amount: Decimal,
    request_id: str = "unknown",
) -> None:
    logging.info(
        "Extension approved",
        extra={
            "request_id": request_id,
            "loan_id": loan_id,
            "extension_id": extension_id,
            "step": "extension_approved",
            "extension_count": extension_count,
            "reference_number": reference_number,
            "amount": _money(amount),
        },
    )


def log_credit_limit_review(
    user_id: int,
    disbursed_loan_count: int,
    percentage_tier: Decimal,
    next_limit: Decimal,
    is_premium: bool,
    request_id: str = "unknown",
) -> None:
    """Log the outcome of a credit-limit review for analysis"""
    logging.info(
        "Credit limit reviewed",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "credit_limit_review",
            "disbursed_loan_count": disbursed_loan_count,
            "percentage_tier": str(percentage_tier),
            "next_limit": _money(next_limit),
            "is_premium": is_premium,
        },
    )
