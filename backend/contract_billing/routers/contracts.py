"""Router exposing contracts, their effective value, billing and renewals."""

from __future__ import annotations

from dataclasses import asdict
from datetime import date
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..dates import DateParseError, parse_calendar_date
from ..services import (
    BillingCycleEvaluator,
    ContractAdjustmentService,
    ContractService,
    CostAllocation,
    ProfitabilityService,
    RenewalScheduler,
    ValueResolver,
)

router = APIRouter()


def resolve_as_of(
    as_of: Optional[str] = Query(
        None, description="Reference date (YYYY-MM-DD or DD/MM/YYYY); defaults to today"
    ),
) -> date:
    if as_of is None or not as_of.strip():
        return date.today()
    try:
        return parse_calendar_date(as_of)
    except DateParseError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


def get_contract_or_404(db: Session, contract_id: str) -> models.Contract:
    contract = ContractService.get_contract(db, contract_id)
    if contract is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contract not found")
    return contract


@router.get("/", response_model=schemas.ContractListResponse)
def list_contracts(
    db: Session = Depends(get_db),
    skip: int = Query(0, ge=0, description="Number of contracts to skip"),
    limit: int = Query(50, ge=1, le=200, description="Maximum number of contracts to return"),
    search: Optional[str] = Query(None, description="Filter by customer name or contract number"),
) -> schemas.ContractListResponse:
    items, total = ContractService.list_contracts(db, skip=skip, limit=limit, search=search)
    return schemas.ContractListResponse(items=items, total=total, limit=limit, skip=skip)


@router.post("/", response_model=schemas.ContractRead, status_code=status.HTTP_201_CREATED)
def create_contract(
    contract_in: schemas.ContractCreate, db: Session = Depends(get_db)
) -> schemas.ContractRead:
    return ContractService.create_contract(db, contract_in)


@router.get("/renewals", response_model=List[schemas.RenewalStatusRead])
def list_upcoming_renewals(
    db: Session = Depends(get_db),
    as_of: date = Depends(resolve_as_of),
) -> List[schemas.RenewalStatusRead]:
    """Contracts whose yearly adjustment is due within 30 days or overdue."""

    loaded = ContractService.contracts_with_history(db)
    names = {terms.id: contract.customer_name for contract, terms, _ in loaded}
    histories = {terms.id: (terms, history) for _, terms, history in loaded}
    locks = ContractAdjustmentService.locks_by_contract(db)
    statuses = RenewalScheduler.upcoming_renewals(histories.values(), as_of, locks)
    return [
        schemas.RenewalStatusRead(
            **asdict(renewal),
            customer_name=names.get(renewal.contract_id),
            next_renewal_date=RenewalScheduler.next_renewal_date(
                *histories[renewal.contract_id], as_of
            ),
        )
        for renewal in statuses
    ]


@router.get("/{contract_id}", response_model=schemas.ContractRead)
def get_contract(contract_id: str, db: Session = Depends(get_db)) -> schemas.ContractRead:
    return get_contract_or_404(db, contract_id)


@router.get("/{contract_id}/effective-value", response_model=schemas.EffectiveValueRead)
def get_effective_value(
    contract_id: str,
    db: Session = Depends(get_db),
    as_of: date = Depends(resolve_as_of),
) -> schemas.EffectiveValueRead:
    contract = get_contract_or_404(db, contract_id)
    terms, history = ContractAdjustmentService.load_history(db, contract)
    effective_value = ValueResolver.resolve_effective_value(terms, history, as_of)
    adjustment = ValueResolver.applicable_adjustment(terms, history, as_of)
    return schemas.EffectiveValueRead(
        contract_id=terms.id,
        as_of=as_of,
        effective_value=effective_value,
        monthly_average_value=BillingCycleEvaluator.monthly_average_value(terms, effective_value),
        adjustment_id=adjustment.id if adjustment else None,
        adjustment_effective_date=adjustment.effective_date if adjustment else None,
    )


@router.get("/{contract_id}/billing/{year}/{month}", response_model=schemas.BillingDecisionRead)
def get_monthly_billing(
    contract_id: str, year: int, month: int, db: Session = Depends(get_db)
) -> schemas.BillingDecisionRead:
    contract = get_contract_or_404(db, contract_id)
    terms, history = ContractAdjustmentService.load_history(db, contract)
    try:
        decision = BillingCycleEvaluator.is_billed_in_month(terms, year, month, history)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return schemas.BillingDecisionRead(contract_id=terms.id, **asdict(decision))


@router.get("/{contract_id}/billing/{year}", response_model=schemas.YearlyBillingRead)
def get_yearly_billing(
    contract_id: str, year: int, db: Session = Depends(get_db)
) -> schemas.YearlyBillingRead:
    """Month-by-month revenue of ``year``, manual overrides included."""

    contract = get_contract_or_404(db, contract_id)
    terms, history = ContractAdjustmentService.load_history(db, contract)
    overrides = ContractService.revenue_overrides(db, terms.id, year)
    rows = BillingCycleEvaluator.yearly_breakdown(terms, history, year, overrides)
    return schemas.YearlyBillingRead(
        contract_id=terms.id,
        year=year,
        total=sum((row.value for row in rows), Decimal("0")),
        months=[schemas.MonthlyRevenueRead.model_validate(row) for row in rows],
    )


@router.put(
    "/{contract_id}/revenue-overrides/{year}/{month}",
    response_model=schemas.RevenueOverrideRead,
)
def upsert_revenue_override(
    contract_id: str,
    year: int,
    month: int,
    override_in: schemas.RevenueOverrideUpsert,
    db: Session = Depends(get_db),
) -> schemas.RevenueOverrideRead:
    contract = get_contract_or_404(db, contract_id)
    try:
        return ContractService.upsert_revenue_override(db, contract, year, month, override_in)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("/{contract_id}/renewal", response_model=schemas.RenewalStatusRead)
def get_renewal_status(
    contract_id: str,
    db: Session = Depends(get_db),
    as_of: date = Depends(resolve_as_of),
) -> schemas.RenewalStatusRead:
    contract = get_contract_or_404(db, contract_id)
    terms, history = ContractAdjustmentService.load_history(db, contract)
    locked_years = ContractAdjustmentService.locked_years(db, terms.id)
    renewal = RenewalScheduler.renewal_status(terms, history, as_of, locked_years)
    return schemas.RenewalStatusRead(
        **asdict(renewal),
        customer_name=contract.customer_name,
        next_renewal_date=RenewalScheduler.next_renewal_date(terms, history, as_of),
    )


@router.post("/{contract_id}/profitability", response_model=schemas.ContractProfitRead)
def get_contract_profitability(
    contract_id: str,
    request: schemas.ProfitabilityRequest,
    db: Session = Depends(get_db),
) -> schemas.ContractProfitRead:
    contract = get_contract_or_404(db, contract_id)
    terms, history = ContractAdjustmentService.load_history(db, contract)
    allocation = CostAllocation(
        reference_revenue=request.reference_revenue,
        operational_costs=request.operational_costs,
        company_fraction=request.company_fraction,
        taxes=request.taxes,
        bank_slip_fee=request.bank_slip_fee,
    )
    profit = ProfitabilityService.contract_profit(
        terms,
        history,
        request.analysis_date or date.today(),
        allocation,
        request.mode,
    )
    return schemas.ContractProfitRead.model_validate(profit)
