"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Header, Request
from sqlalchemy.orm import sessionmaker
from card_ledger.infrastructure.database.session import get_session_factory
from card_ledger.services.summaries import SummaryRefresher


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_user_id(x_user_id: str = Header(..., min_length=1, description="Authenticated caller")) -> str:
    """Caller identity, resolved upstream by the auth layer"""
    return x_user_id


def get_summary_refresher(session_factory: sessionmaker = Depends(get_session_factory)) -> SummaryRefresher:
    """Provide summary refresher bound to its own sessions"""
    return SummaryRefresher(session_factory)
