"""Billing cycle configuration - GET/PUT /v1/users/{user_id}/billing-cycle"""

from datetime import datetime
from typing import Callable
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from logbook_ledger.api.v1.schemas import BillingCycleRequest, BillingCycleResponse
from logbook_ledger.api.dependencies import get_clock, load_user_cycle
from logbook_ledger.domain.cycle import resolve_billing_cycle
from logbook_ledger.domain.exceptions import UserNotFound
from logbook_ledger.infrastructure.database.repositories import UserRepository
from logbook_ledger.infrastructure.database.session import get_db

router = APIRouter()


@router.get("/users/{user_id}/billing-cycle", response_model=BillingCycleResponse)
def get_billing_cycle(
    user_id: str,
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Current billing period boundaries for the user"""
    _, start_day = load_user_cycle(UserRepository(db), user_id)
    cycle = resolve_billing_cycle(start_day, clock().date())
    return BillingCycleResponse(
        user_id=user_id,
        start_day=cycle.start_day,
        period_start=cycle.period_start,
        period_end=cycle.period_end,
    )


@router.put("/users/{user_id}/billing-cycle", response_model=BillingCycleResponse)
def set_billing_cycle(
    user_id: str,
    request_body: BillingCycleRequest,
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Configure the day of month on which the user's billing cycle starts"""
    now = clock()
    try:
        UserRepository(db).set_cycle_start_day(user_id, request_body.start_day, now)
        db.commit()
    except UserNotFound:
        db.rollback()
        raise HTTPException(status_code=404, detail="User not found")

    cycle = resolve_billing_cycle(request_body.start_day, now.date())
    return BillingCycleResponse(
        user_id=user_id,
        start_day=cycle.start_day,
        period_start=cycle.period_start,
        period_end=cycle.period_end,
    )
