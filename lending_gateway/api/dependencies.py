"""Dependency injection for FastAPI endpoints"""

from fastapi import Request

from lending_gateway.config import settings
from lending_gateway.domain.config import EngineConfig
from lending_gateway.infrastructure.clients.ledger import LedgerClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_engine_config() -> EngineConfig:
    """Engine tunables from settings, as an immutable snapshot"""
    return settings.engine_config()


def get_ledger_client() -> LedgerClient:
    """Provide Ledger webhook client instance"""
    return LedgerClient()
