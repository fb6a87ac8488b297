"""Prepare and record contract value adjustments (reajustes)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from sqlalchemy.orm import Session

from .. import models
from ..dates import format_br_date
from ..domain import ZERO, AdjustmentRecord, AdjustmentType, ContractTerms, round_money
from .proration import ProportionalBillingCalculator, ProportionalSplit
from .renewals import RenewalScheduler
from .value_resolver import ValueResolver

LOGGER = logging.getLogger(__name__)

HUNDRED = Decimal("100")


class AdjustmentError(ValueError):
    """Raised when an adjustment cannot be prepared from the given input."""


class AdjustmentLockedError(AdjustmentError):
    """Raised when the renewal year of an adjustment is locked."""


def _plain_number(value: Decimal) -> str:
    return format(value.normalize(), "f")


@dataclass(frozen=True)
class Discount:
    """Reduction applied on top of a manually changed value."""

    kind: AdjustmentType
    value: Decimal

    def __post_init__(self) -> None:
        if self.value < ZERO:
            raise AdjustmentError("O desconto não pode ser negativo")

    def apply(self, amount: Decimal) -> Decimal:
        if self.kind == AdjustmentType.PERCENTAGE:
            discounted = amount * (1 - self.value / HUNDRED)
        else:
            discounted = amount - self.value
        return max(ZERO, discounted)

    def label(self) -> str:
        if self.kind == AdjustmentType.PERCENTAGE:
            return f"{_plain_number(self.value)}%"
        return f"R$ {_plain_number(self.value)}"


@dataclass(frozen=True)
class AdjustmentDraft:
    """Resolved adjustment awaiting confirmation before it is persisted."""

    contract_id: str
    adjustment_type: AdjustmentType
    adjustment_value: Decimal
    previous_value: Decimal
    new_value: Decimal
    effective_date: date
    renewal_date_used: Optional[date]
    notes: Optional[str] = None
    retroactive: bool = False
    proration: Optional[ProportionalSplit] = None

    def to_record(
        self, *, adjustment_id: str = "", created_at: Optional[datetime] = None
    ) -> AdjustmentRecord:
        return AdjustmentRecord(
            id=adjustment_id,
            contract_id=self.contract_id,
            adjustment_type=self.adjustment_type,
            adjustment_value=self.adjustment_value,
            previous_value=self.previous_value,
            new_value=self.new_value,
            effective_date=self.effective_date,
            renewal_date_used=self.renewal_date_used,
            notes=self.notes,
            created_at=created_at,
        )


def apply_adjustment(
    adjustment_type: AdjustmentType, adjustment_value: Decimal, previous_value: Decimal
) -> Decimal:
    """New contract value for a percentage delta or a fixed amount."""

    if adjustment_type == AdjustmentType.PERCENTAGE:
        new_value = previous_value * (1 + adjustment_value / HUNDRED)
    else:
        new_value = adjustment_value
    if new_value < ZERO:
        raise AdjustmentError("O novo valor do contrato não pode ser negativo")
    return new_value


def _join_notes(system_note: Optional[str], user_notes: Optional[str]) -> Optional[str]:
    user_text = (user_notes or "").strip()
    if system_note and user_text:
        return f"{system_note}\n\n{user_text}"
    return system_note or user_text or None


def _warn_if_out_of_order(
    contract: ContractTerms, adjustments: Sequence[AdjustmentRecord], effective_date: date
) -> None:
    latest = max((adjustment.effective_date for adjustment in adjustments), default=None)
    if latest is not None and effective_date <= latest:
        LOGGER.warning(
            "New adjustment for contract %s takes effect on %s, not after the latest one (%s)",
            contract.id,
            effective_date,
            latest,
        )


def prepare_adjustment(
    contract: ContractTerms,
    adjustments: Sequence[AdjustmentRecord],
    *,
    adjustment_type: AdjustmentType,
    adjustment_value: Decimal,
    today: date,
    custom_date: Optional[date] = None,
    notes: Optional[str] = None,
    locked_years: AbstractSet[int] = frozenset(),
) -> AdjustmentDraft:
    """Resolve a renewal adjustment without touching storage.

    The adjustment targets ``custom_date`` when given, otherwise the next
    renewal date of the contract. The previous value is the one in force the
    day before the target so successive adjustments compound. Regular
    renewals applied after their date are moved forward so already charged
    invoices keep their value. Targets in one of ``locked_years`` are refused.
    """

    target = custom_date or RenewalScheduler.next_renewal_date(contract, adjustments, today)
    if target is None:
        raise AdjustmentError(
            "Contrato sem data de renovação: informe uma data personalizada para o reajuste"
        )
    if target.year in locked_years:
        raise AdjustmentLockedError(
            f"Reajuste de {target.year} bloqueado para este contrato: "
            "desbloqueie o período antes de aplicar o reajuste"
        )

    previous_value = ValueResolver.value_before(contract, adjustments, target)
    new_value = apply_adjustment(adjustment_type, adjustment_value, previous_value)

    if custom_date is not None:
        effective_date = custom_date
        retroactive = False
        system_note: Optional[str] = (
            f"Data de renovação personalizada: {format_br_date(custom_date)}"
        )
    else:
        plan = RenewalScheduler.retroactive_effective_date(target, today, contract.payment_day)
        effective_date = plan.effective_date
        retroactive = plan.retroactive
        system_note = plan.note

    _warn_if_out_of_order(contract, adjustments, effective_date)
    return AdjustmentDraft(
        contract_id=contract.id,
        adjustment_type=adjustment_type,
        adjustment_value=adjustment_value,
        previous_value=previous_value,
        new_value=new_value,
        effective_date=effective_date,
        renewal_date_used=target,
        notes=_join_notes(system_note, notes),
        retroactive=retroactive,
    )


def prepare_value_change(
    contract: ContractTerms,
    adjustments: Sequence[AdjustmentRecord],
    *,
    adjustment_type: AdjustmentType,
    adjustment_value: Decimal,
    effective_date: date,
    discount: Optional[Discount] = None,
    proportional: bool = False,
    change_date: Optional[date] = None,
    notes: Optional[str] = None,
) -> AdjustmentDraft:
    """Resolve a manual plan change effective on ``effective_date``.

    With ``proportional`` the next invoice is split between the old and new
    values around ``change_date`` (defaults to the effective date). The split
    is only reported in the notes; the recorded value is the full new value.
    """

    previous_value = ValueResolver.value_before(contract, adjustments, effective_date)
    new_value = apply_adjustment(adjustment_type, adjustment_value, previous_value)
    if discount is not None:
        new_value = discount.apply(new_value)

    proration = None
    if proportional:
        proration = ProportionalBillingCalculator.compute_proration(
            previous_value,
            new_value,
            contract.payment_day,
            change_date or effective_date,
        )

    kind = "percentual" if adjustment_type == AdjustmentType.PERCENTAGE else "valor"
    summary = f"Mudança de plano manual: {kind}"
    if discount is not None and discount.value > ZERO:
        summary += f" com desconto de {discount.label()}"
    if proration is not None:
        summary += (
            f" | Próxima fatura proporcional: R$ {round_money(proration.total_value)}"
            f" ({proration.days_old_plan}d antigo, {proration.days_new_plan}d novo)"
        )
    summary += f" | Vigência: {format_br_date(effective_date)}"
    user_text = (notes or "").strip()

    _warn_if_out_of_order(contract, adjustments, effective_date)
    return AdjustmentDraft(
        contract_id=contract.id,
        adjustment_type=adjustment_type,
        adjustment_value=adjustment_value,
        previous_value=previous_value,
        new_value=new_value,
        effective_date=effective_date,
        renewal_date_used=effective_date,
        notes=f"{user_text} {summary}" if user_text else summary,
        proration=proration,
    )

@dataclass(frozen=True)
class SkippedAdjustment:
    """Contract left out of a bulk adjustment, with the reason."""

    contract_id: str
    reason: str


@dataclass(frozen=True)
class BulkAdjustmentResult:
    drafts: List[AdjustmentDraft]
    skipped: List[SkippedAdjustment]


def prepare_bulk_adjustments(
    contracts: Iterable[Tuple[ContractTerms, Sequence[AdjustmentRecord], AbstractSet[int]]],
    *,
    adjustment_value: Decimal,
    today: date,
    adjustment_type: AdjustmentType = AdjustmentType.PERCENTAGE,
    custom_date: Optional[date] = None,
    notes: Optional[str] = None,
) -> BulkAdjustmentResult:
    """Apply one adjustment to several contracts.

    Each contract is resolved on its own history, so the previous value is
    that contract's value before its own renewal target. Contracts that cannot
    be adjusted (no renewal anchor, locked year) are reported as skipped.
    """

    drafts: List[AdjustmentDraft] = []
    skipped: List[SkippedAdjustment] = []
    for contract, adjustments, locked_years in contracts:
        try:
            draft = prepare_adjustment(
                contract,
                adjustments,
                adjustment_type=adjustment_type,
                adjustment_value=adjustment_value,
                today=today,
                custom_date=custom_date,
                notes=notes,
                locked_years=locked_years,
            )
        except AdjustmentError as exc:
            LOGGER.warning("Skipping bulk adjustment for contract %s: %s", contract.id, exc)
            skipped.append(SkippedAdjustment(contract_id=contract.id, reason=str(exc)))
            continue
        drafts.append(draft)
    return BulkAdjustmentResult(drafts=drafts, skipped=skipped)



class ContractAdjustmentService:
    """Reads and appends the adjustment history of a contract."""

    @staticmethod
    def list_adjustments(db: Session, contract_id: str) -> List[models.ContractAdjustment]:
        return (
            db.query(models.ContractAdjustment)
            .filter(models.ContractAdjustment.contract_id == contract_id)
            .order_by(
                models.ContractAdjustment.effective_date.asc(),
                models.ContractAdjustment.created_at.asc(),
            )
            .all()
        )

    @staticmethod
    def as_records(adjustments: Iterable[models.ContractAdjustment]) -> List[AdjustmentRecord]:
        return [AdjustmentRecord.from_model(adjustment) for adjustment in adjustments]

    @classmethod
    def load_history(
        cls, db: Session, contract: models.Contract
    ) -> tuple[ContractTerms, List[AdjustmentRecord]]:
        """Snapshot of a contract and its adjustments for the billing engine."""

        terms = ContractTerms.from_model(contract)
        return terms, cls.as_records(cls.list_adjustments(db, str(contract.id)))

    @staticmethod
    def _new_row(draft: AdjustmentDraft) -> models.ContractAdjustment:
        return models.ContractAdjustment(
            contract_id=draft.contract_id,
            adjustment_type=draft.adjustment_type,
            adjustment_value=draft.adjustment_value,
            previous_value=draft.previous_value,
            new_value=draft.new_value,
            effective_date=draft.effective_date,
            renewal_date_used=draft.renewal_date_used,
            notes=draft.notes,
        )

    @staticmethod
    def _log_recorded(draft: AdjustmentDraft) -> None:
        LOGGER.info(
            "Recorded %s adjustment for contract %s: %s -> %s effective %s",
            draft.adjustment_type.value,
            draft.contract_id,
            draft.previous_value,
            draft.new_value,
            draft.effective_date,
        )

    @classmethod
    def record_adjustment(cls, db: Session, draft: AdjustmentDraft) -> models.ContractAdjustment:
        adjustment = cls._new_row(draft)
        db.add(adjustment)
        db.commit()
        db.refresh(adjustment)
        cls._log_recorded(draft)
        return adjustment

    @classmethod
    def record_adjustments(
        cls, db: Session, drafts: Sequence[AdjustmentDraft]
    ) -> List[models.ContractAdjustment]:
        """Persist a bulk adjustment in a single transaction."""

        rows = [cls._new_row(draft) for draft in drafts]
        db.add_all(rows)
        db.commit()
        for row, draft in zip(rows, drafts):
            db.refresh(row)
            cls._log_recorded(draft)
        return rows

    @staticmethod
    def list_locks(db: Session, contract_id: str) -> List[models.ContractAdjustmentLock]:
        return (
            db.query(models.ContractAdjustmentLock)
            .filter(models.ContractAdjustmentLock.contract_id == contract_id)
            .order_by(models.ContractAdjustmentLock.renewal_year.asc())
            .all()
        )

    @staticmethod
    def locked_years(db: Session, contract_id: str) -> Set[int]:
        rows = (
            db.query(models.ContractAdjustmentLock.renewal_year)
            .filter(
                models.ContractAdjustmentLock.contract_id == contract_id,
                models.ContractAdjustmentLock.is_locked.is_(True),
            )
            .all()
        )
        return {year for (year,) in rows}

    @staticmethod
    def locks_by_contract(db: Session) -> Dict[str, Set[int]]:
        """Locked renewal years of every contract with at least one lock."""

        locks: Dict[str, Set[int]] = {}
        rows = (
            db.query(
                models.ContractAdjustmentLock.contract_id,
                models.ContractAdjustmentLock.renewal_year,
            )
            .filter(models.ContractAdjustmentLock.is_locked.is_(True))
            .all()
        )
        for contract_id, renewal_year in rows:
            locks.setdefault(str(contract_id), set()).add(renewal_year)
        return locks

    @staticmethod
    def set_lock(
        db: Session,
        contract: models.Contract,
        renewal_year: int,
        *,
        is_locked: bool = True,
        reason: Optional[str] = None,
    ) -> models.ContractAdjustmentLock:
        lock = (
            db.query(models.ContractAdjustmentLock)
            .filter(
                models.ContractAdjustmentLock.contract_id == contract.id,
                models.ContractAdjustmentLock.renewal_year == renewal_year,
            )
            .one_or_none()
        )
        if lock is None:
            lock = models.ContractAdjustmentLock(
                contract_id=contract.id, renewal_year=renewal_year
            )
            db.add(lock)
        lock.is_locked = is_locked
        lock.reason = reason
        db.commit()
        db.refresh(lock)
        LOGGER.info(
            "%s %s renewal of contract %s",
            "Locked" if is_locked else "Unlocked",
            renewal_year,
            contract.id,
        )
        return lock
