"""Business logic for contracts and their monthly revenue overrides."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from .. import models, schemas
from ..domain import AdjustmentRecord, ContractTerms, default_trial_days

LOGGER = logging.getLogger(__name__)


class ContractService:
    """Encapsulates CRUD operations for contracts."""

    @staticmethod
    def create_contract(db: Session, data: schemas.ContractCreate) -> models.Contract:
        payload = data.model_dump()
        if payload.get("trial_days") is None:
            payload["trial_days"] = default_trial_days()
        contract = models.Contract(**payload)
        db.add(contract)
        db.commit()
        db.refresh(contract)
        LOGGER.info(
            "Registered %s contract %s for %s at %s",
            contract.plan_type.value,
            contract.id,
            contract.customer_name,
            contract.base_value,
        )
        return contract

    @staticmethod
    def list_contracts(
        db: Session,
        *,
        skip: int = 0,
        limit: int = 100,
        search: Optional[str] = None,
    ) -> Tuple[Iterable[models.Contract], int]:
        query = db.query(models.Contract)
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(
                func.lower(models.Contract.customer_name).like(pattern)
                | func.lower(func.coalesce(models.Contract.contract_number, "")).like(pattern)
            )

        total = query.count()
        items = (
            query.order_by(models.Contract.customer_name.asc())
            .offset(max(skip, 0))
            .limit(max(limit, 1))
            .all()
        )
        return items, total

    @staticmethod
    def get_contract(db: Session, contract_id: str) -> Optional[models.Contract]:
        return db.query(models.Contract).filter(models.Contract.id == contract_id).first()

    @staticmethod
    def contracts_with_history(
        db: Session,
    ) -> List[Tuple[models.Contract, ContractTerms, List[AdjustmentRecord]]]:
        """Every contract with its adjustments, loaded in two queries."""

        contracts = (
            db.query(models.Contract)
            .options(selectinload(models.Contract.adjustments))
            .order_by(models.Contract.customer_name.asc())
            .all()
        )
        return [
            (
                contract,
                ContractTerms.from_model(contract),
                [AdjustmentRecord.from_model(adjustment) for adjustment in contract.adjustments],
            )
            for contract in contracts
        ]

    @staticmethod
    def upsert_revenue_override(
        db: Session,
        contract: models.Contract,
        year: int,
        month: int,
        data: schemas.RevenueOverrideUpsert,
    ) -> models.ContractMonthlyRevenueOverride:
        if month < 1 or month > 12:
            raise ValueError("month must be between 1 and 12")

        override = (
            db.query(models.ContractMonthlyRevenueOverride)
            .filter(
                models.ContractMonthlyRevenueOverride.contract_id == contract.id,
                models.ContractMonthlyRevenueOverride.year == year,
                models.ContractMonthlyRevenueOverride.month == month,
            )
            .first()
        )
        if override is None:
            override = models.ContractMonthlyRevenueOverride(
                contract_id=contract.id, year=year, month=month
            )
            db.add(override)
        override.value = data.value
        override.notes = data.notes
        db.commit()
        db.refresh(override)
        LOGGER.info(
            "Revenue of contract %s for %s-%02d set manually to %s",
            contract.id,
            year,
            month,
            data.value,
        )
        return override

    @staticmethod
    def revenue_overrides(db: Session, contract_id: str, year: int) -> Dict[int, Decimal]:
        """Manual revenue per month of ``year``."""

        rows = (
            db.query(models.ContractMonthlyRevenueOverride)
            .filter(
                models.ContractMonthlyRevenueOverride.contract_id == contract_id,
                models.ContractMonthlyRevenueOverride.year == year,
            )
            .all()
        )
        return {row.month: Decimal(row.value) for row in rows}
