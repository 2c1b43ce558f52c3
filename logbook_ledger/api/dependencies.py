"""Dependency injection for FastAPI endpoints"""

from datetime import datetime
from typing import Callable, Tuple
from fastapi import Depends, HTTPException, Request
from logbook_ledger.domain.exceptions import CycleNotConfigured, UserNotFound
from logbook_ledger.domain.ingestion import StatementIngestionPipeline
from logbook_ledger.infrastructure.clients.llm import LLMClient, OpenAIChatClient
from logbook_ledger.infrastructure.database.models import User
from logbook_ledger.infrastructure.database.repositories import UserRepository
from logbook_ledger.utils.date_utils import utc_now


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_clock() -> Callable[[], datetime]:
    """Provide the source of "now" used for billing cycle resolution"""
    return utc_now


def get_llm_client() -> LLMClient:
    """Provide LLM client instance"""
    return OpenAIChatClient()


def get_ingestion_pipeline(
    llm_client: LLMClient = Depends(get_llm_client),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> StatementIngestionPipeline:
    """Provide statement ingestion pipeline wired to the LLM client"""
    return StatementIngestionPipeline(llm_client, clock=clock)


def load_user_cycle(users: UserRepository, user_id: str) -> Tuple[User, int]:
    """
    Fetch a user and their billing cycle start day, translating lookup
    failures into HTTP errors.
    """
    try:
        user = users.get_user(user_id)
        return user, users.get_cycle_start_day(user_id)
    except UserNotFound:
        raise HTTPException(status_code=404, detail="User not found")
    except CycleNotConfigured:
        raise HTTPException(
            status_code=409,
            detail={"message": "Billing cycle not configured", "reason": "cycle_not_configured"},
        )
