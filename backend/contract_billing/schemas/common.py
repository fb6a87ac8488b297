"""Shared schema definitions."""

from __future__ import annotations

from datetime import date
from typing import Any, Generic, Optional, Sequence, TypeVar

from pydantic import BaseModel, Field

from ..dates import parse_calendar_date
from ..domain import to_decimal

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """Standard shape for paginated listings."""

    items: Sequence[T]
    total: int = Field(..., ge=0)
    limit: int = Field(..., ge=1)
    skip: int = Field(..., ge=0)


def coerce_calendar_date(value: Any) -> Optional[date]:
    """Accept ``DD/MM/YYYY`` as well as ISO dates in request payloads."""

    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_calendar_date(value)


def coerce_amount(value: Any) -> Any:
    """Turn Brazilian-formatted amounts (``"R$ 1.234,56"``) into Decimal."""

    if isinstance(value, str) and ("," in value or "R$" in value):
        # Unparseable input is passed through so validation reports it.
        return to_decimal(value, default=value)
    return value
