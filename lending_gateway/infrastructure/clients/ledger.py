"""Ledger webhook client with exponential backoff retry logic"""

import asyncio
import logging
from typing import Any, Dict

import httpx

from lending_gateway.config import settings
from lending_gateway.domain.models import ApprovalOutcome
from lending_gateway.infrastructure.observability.metrics import webhook_latency_histogram, webhook_failure_counter

logger = logging.getLogger(__name__)

EXTENSION_APPROVED_EVENT = "LOAN_EXTENSION_APPROVED"


def extension_approved_payload(outcome: ApprovalOutcome) -> Dict[str, Any]:
    """Ledger event body for an approved extension"""
    extension = outcome.extension
    transaction = outcome.transaction
    return {
        "event": EXTENSION_APPROVED_EVENT,
        "loan_id": outcome.loan.loan_id,
        "user_id": outcome.loan.user_id,
        "extension_id": extension.extension_id,
        "extension_number": extension.extension_number,
        "transaction_type": transaction.transaction_type,
        "reference_number": transaction.reference_number,
        "amount": f"{transaction.amount:.2f}",
        "new_due_dates": [value.isoformat() for value in extension.new_due_dates],
        "transaction_date": transaction.transaction_date.isoformat(),
    }


class LedgerClient:
    """Client for sending webhook events to ledger service"""

    def __init__(self, webhook_url: str | None = None):
        self.webhook_url = webhook_url or settings.ledger_webhook_url
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base
        self.timeout = settings.http_timeout_seconds

    async def send_event(self, payload: Dict[str, Any]) -> None:
        """
        Send an event to the ledger with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s, 16s (base^attempt)
        - Retries on 5xx errors and network failures
        - Tracks latency histogram and failure counter

        Args:
            payload: Event data to send to ledger
        """
        attempt = 0
        async with httpx.AsyncClient() as client:
            while attempt < self.max_retries:
                try:
                    with webhook_latency_histogram.time():
                        response = await client.post(
                            self.webhook_url,
                            json=payload,
                            timeout=self.timeout,
                        )
                        response.raise_for_status()
                        return

                except (httpx.HTTPStatusError, httpx.RequestError):
                    attempt += 1
                    webhook_failure_counter.inc()

                    if attempt >= self.max_retries:
                        raise

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)

    async def publish_extension_approved(self, outcome: ApprovalOutcome) -> None:
        """Background-task entry point; delivery failures are logged, not raised"""
        try:
            await self.send_event(extension_approved_payload(outcome))
        except (httpx.HTTPStatusError, httpx.RequestError) as e:
            logger.error(
                "Ledger webhook delivery failed",
                extra={
                    "loan_id": outcome.loan.loan_id,
                    "extension_id": outcome.extension.extension_id,
                    "event": EXTENSION_APPROVED_EVENT,
                    "error": str(e),
                },
            )
