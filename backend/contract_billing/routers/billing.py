"""Router exposing stateless proration calculators."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from .. import schemas
from ..services import ProportionalBillingCalculator, ProrationError

router = APIRouter()


@router.post("/proration", response_model=schemas.ProportionalSplitRead)
def compute_proration(request: schemas.ProrationRequest) -> schemas.ProportionalSplitRead:
    """Split one billing period between the old and the new value."""

    try:
        split = ProportionalBillingCalculator.compute_proration(
            request.old_value,
            request.new_value,
            request.payment_day,
            request.change_date,
            calendar_days=request.calendar_days,
        )
    except ProrationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return schemas.ProportionalSplitRead.model_validate(split.rounded())


@router.post("/term-proration", response_model=schemas.TermProrationRead)
def compute_term_proration(request: schemas.TermProrationRequest) -> schemas.TermProrationRead:
    """Difference owed when a semiannual or annual plan changes before renewal."""

    try:
        proration = ProportionalBillingCalculator.compute_term_proration(
            request.old_value,
            request.new_value,
            request.change_date,
            request.renewal_date,
            request.plan_type,
        )
    except ProrationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return schemas.TermProrationRead.model_validate(proration)
