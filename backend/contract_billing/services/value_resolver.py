"""Resolve the monetary value in force for a contract at a given date."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, Sequence

from ..dates import add_days
from ..domain import AdjustmentRecord, ContractTerms

LOGGER = logging.getLogger(__name__)

_OLDEST_TIMESTAMP = datetime.min.replace(tzinfo=timezone.utc)


def _creation_key(adjustment: AdjustmentRecord) -> datetime:
    created_at = adjustment.created_at
    if created_at is None:
        return _OLDEST_TIMESTAMP
    if created_at.tzinfo is None:
        return created_at.replace(tzinfo=timezone.utc)
    return created_at


class ValueResolver:
    """Treats a contract's adjustment history as a step function in time.

    The adjustment with the latest ``effective_date`` on or before the query
    date sets the value; with no such adjustment the contract base value is in
    force. When two adjustments share an effective date the most recently
    created one wins, and equal (or missing) creation timestamps fall back to
    the position in the given sequence, later entries winning.
    """

    @staticmethod
    def _ordered(
        contract: ContractTerms, adjustments: Sequence[AdjustmentRecord]
    ) -> list[AdjustmentRecord]:
        indexed = [
            (position, adjustment)
            for position, adjustment in enumerate(adjustments)
            if not adjustment.contract_id or not contract.id or adjustment.contract_id == contract.id
        ]
        indexed.sort(
            key=lambda item: (item[1].effective_date, _creation_key(item[1]), item[0])
        )
        return [adjustment for _, adjustment in indexed]

    @classmethod
    def applicable_adjustment(
        cls,
        contract: ContractTerms,
        adjustments: Sequence[AdjustmentRecord],
        query_date: date,
    ) -> Optional[AdjustmentRecord]:
        """Return the adjustment in force on ``query_date``, if any."""

        in_force: Optional[AdjustmentRecord] = None
        for adjustment in cls._ordered(contract, adjustments):
            if adjustment.effective_date > query_date:
                break
            in_force = adjustment
        return in_force

    @classmethod
    def resolve_effective_value(
        cls,
        contract: ContractTerms,
        adjustments: Sequence[AdjustmentRecord],
        query_date: date,
    ) -> Decimal:
        adjustment = cls.applicable_adjustment(contract, adjustments, query_date)
        if adjustment is None:
            LOGGER.debug(
                "No adjustment in force for contract %s on %s; using base value %s",
                contract.id,
                query_date,
                contract.base_value,
            )
            return contract.base_value
        LOGGER.debug(
            "Adjustment %s (effective %s) sets contract %s to %s on %s",
            adjustment.id,
            adjustment.effective_date,
            contract.id,
            adjustment.new_value,
            query_date,
        )
        return adjustment.new_value

    @classmethod
    def value_before(
        cls,
        contract: ContractTerms,
        adjustments: Sequence[AdjustmentRecord],
        target_date: date,
    ) -> Decimal:
        """Value in force the day before ``target_date``.

        New adjustments use it as their ``previous_value`` so successive
        adjustments compound instead of restarting from the base value.
        """

        return cls.resolve_effective_value(contract, adjustments, add_days(target_date, -1))

    @classmethod
    def value_timeline(
        cls,
        contract: ContractTerms,
        adjustments: Sequence[AdjustmentRecord],
    ) -> list[tuple[Optional[date], Decimal]]:
        """Return ``(from_date, value)`` segments, starting with the base value.

        The first segment has ``from_date=None`` (in force since the contract
        began). Adjustments sharing an effective date collapse into the one
        the tie-break selects.
        """

        timeline: list[tuple[Optional[date], Decimal]] = [(None, contract.base_value)]
        for adjustment in cls._ordered(contract, adjustments):
            if timeline[-1][0] == adjustment.effective_date:
                timeline[-1] = (adjustment.effective_date, adjustment.new_value)
            else:
                timeline.append((adjustment.effective_date, adjustment.new_value))
        return timeline
