"""Router exposing the adjustment (reajuste) history of contracts."""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..services import (
    AdjustmentDraft,
    BulkAdjustmentResult,
    ContractAdjustmentService,
    ContractService,
    Discount,
    SkippedAdjustment,
    prepare_adjustment,
    prepare_bulk_adjustments,
    prepare_value_change,
)
from .contracts import get_contract_or_404

router = APIRouter()


def _draft_response(draft: AdjustmentDraft) -> schemas.AdjustmentDraftRead:
    if draft.proration is not None:
        draft = replace(draft, proration=draft.proration.rounded())
    return schemas.AdjustmentDraftRead.model_validate(draft)


def _build_adjustment(
    db: Session, contract_id: str, adjustment_in: schemas.AdjustmentCreate
) -> AdjustmentDraft:
    contract = get_contract_or_404(db, contract_id)
    terms, history = ContractAdjustmentService.load_history(db, contract)
    try:
        return prepare_adjustment(
            terms,
            history,
            adjustment_type=adjustment_in.adjustment_type,
            adjustment_value=adjustment_in.adjustment_value,
            today=adjustment_in.today or date.today(),
            custom_date=adjustment_in.custom_date,
            notes=adjustment_in.notes,
            locked_years=ContractAdjustmentService.locked_years(db, terms.id),
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


def _build_value_change(
    db: Session, contract_id: str, change_in: schemas.ValueChangeCreate
) -> AdjustmentDraft:
    contract = get_contract_or_404(db, contract_id)
    terms, history = ContractAdjustmentService.load_history(db, contract)
    try:
        discount = (
            Discount(kind=change_in.discount.kind, value=change_in.discount.value)
            if change_in.discount is not None
            else None
        )
        return prepare_value_change(
            terms,
            history,
            adjustment_type=change_in.adjustment_type,
            adjustment_value=change_in.adjustment_value,
            effective_date=change_in.effective_date,
            discount=discount,
            proportional=change_in.proportional,
            change_date=change_in.change_date,
            notes=change_in.notes,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("/{contract_id}/adjustments", response_model=List[schemas.AdjustmentRead])
def list_adjustments(contract_id: str, db: Session = Depends(get_db)) -> List[schemas.AdjustmentRead]:
    contract = get_contract_or_404(db, contract_id)
    return ContractAdjustmentService.list_adjustments(db, str(contract.id))


@router.post(
    "/{contract_id}/adjustments/preview", response_model=schemas.AdjustmentDraftRead
)
def preview_adjustment(
    contract_id: str,
    adjustment_in: schemas.AdjustmentCreate,
    db: Session = Depends(get_db),
) -> schemas.AdjustmentDraftRead:
    """Resolve the adjustment without recording it."""

    return _draft_response(_build_adjustment(db, contract_id, adjustment_in))


@router.post(
    "/{contract_id}/adjustments",
    response_model=schemas.AdjustmentRead,
    status_code=status.HTTP_201_CREATED,
)
def create_adjustment(
    contract_id: str,
    adjustment_in: schemas.AdjustmentCreate,
    db: Session = Depends(get_db),
) -> schemas.AdjustmentRead:
    draft = _build_adjustment(db, contract_id, adjustment_in)
    return ContractAdjustmentService.record_adjustment(db, draft)


@router.post(
    "/{contract_id}/value-changes/preview", response_model=schemas.AdjustmentDraftRead
)
def preview_value_change(
    contract_id: str,
    change_in: schemas.ValueChangeCreate,
    db: Session = Depends(get_db),
) -> schemas.AdjustmentDraftRead:
    return _draft_response(_build_value_change(db, contract_id, change_in))


@router.post(
    "/{contract_id}/value-changes",
    response_model=schemas.AdjustmentRead,
    status_code=status.HTTP_201_CREATED,
)
def create_value_change(
    contract_id: str,
    change_in: schemas.ValueChangeCreate,
    db: Session = Depends(get_db),
) -> schemas.AdjustmentRead:
    draft = _build_value_change(db, contract_id, change_in)
    return ContractAdjustmentService.record_adjustment(db, draft)


def _build_bulk(db: Session, bulk_in: schemas.BulkAdjustmentCreate) -> BulkAdjustmentResult:
    loaded = []
    missing: List[SkippedAdjustment] = []
    for contract_id in dict.fromkeys(bulk_in.contract_ids):
        contract = ContractService.get_contract(db, contract_id)
        if contract is None:
            missing.append(SkippedAdjustment(contract_id=contract_id, reason="Contract not found"))
            continue
        terms, history = ContractAdjustmentService.load_history(db, contract)
        loaded.append((terms, history, ContractAdjustmentService.locked_years(db, terms.id)))
    try:
        result = prepare_bulk_adjustments(
            loaded,
            adjustment_type=bulk_in.adjustment_type,
            adjustment_value=bulk_in.adjustment_value,
            today=bulk_in.today or date.today(),
            custom_date=bulk_in.custom_date,
            notes=bulk_in.notes,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return BulkAdjustmentResult(drafts=result.drafts, skipped=missing + result.skipped)


@router.post("/bulk-adjustments/preview", response_model=schemas.BulkAdjustmentPreviewRead)
def preview_bulk_adjustments(
    bulk_in: schemas.BulkAdjustmentCreate, db: Session = Depends(get_db)
) -> schemas.BulkAdjustmentPreviewRead:
    result = _build_bulk(db, bulk_in)
    return schemas.BulkAdjustmentPreviewRead(
        drafts=[_draft_response(draft) for draft in result.drafts],
        skipped=[schemas.SkippedAdjustmentRead.model_validate(item) for item in result.skipped],
    )


@router.post(
    "/bulk-adjustments",
    response_model=schemas.BulkAdjustmentRead,
    status_code=status.HTTP_201_CREATED,
)
def create_bulk_adjustments(
    bulk_in: schemas.BulkAdjustmentCreate, db: Session = Depends(get_db)
) -> schemas.BulkAdjustmentRead:
    """Apply one adjustment to every listed contract that can take it."""

    result = _build_bulk(db, bulk_in)
    rows = ContractAdjustmentService.record_adjustments(db, result.drafts)
    return schemas.BulkAdjustmentRead(
        adjustments=[schemas.AdjustmentRead.model_validate(row) for row in rows],
        skipped=[schemas.SkippedAdjustmentRead.model_validate(item) for item in result.skipped],
    )


@router.get(
    "/{contract_id}/adjustment-locks", response_model=List[schemas.AdjustmentLockRead]
)
def list_adjustment_locks(
    contract_id: str, db: Session = Depends(get_db)
) -> List[schemas.AdjustmentLockRead]:
    contract = get_contract_or_404(db, contract_id)
    return ContractAdjustmentService.list_locks(db, str(contract.id))


@router.put(
    "/{contract_id}/adjustment-locks/{renewal_year}",
    response_model=schemas.AdjustmentLockRead,
)
def set_adjustment_lock(
    contract_id: str,
    renewal_year: int,
    lock_in: schemas.AdjustmentLockUpdate,
    db: Session = Depends(get_db),
) -> schemas.AdjustmentLockRead:
    """Lock or unlock the adjustment of one renewal year."""

    contract = get_contract_or_404(db, contract_id)
    return ContractAdjustmentService.set_lock(
        db, contract, renewal_year, is_locked=lock_in.is_locked, reason=lock_in.reason
    )
