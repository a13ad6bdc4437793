# interaction_api/crud/query.py
"""
Translate list-endpoint parameters into SQLAlchemy clauses.

Nothing here touches the session; callers combine the clauses with a
select() and run it themselves.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional, Type

from dateutil import parser as dateparse
from sqlalchemy import and_, asc, desc, func, or_

from interaction_api.core.errors import RecordValidationError
from interaction_api.models.party_interaction import (
    InteractionChannel,
    InteractionParty,
    PartyInteraction,
)
from interaction_api.schemas.party_interaction import to_naive_utc

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
DEFAULT_SORT_BY = "createdAt"
DEFAULT_SORT_ORDER = "desc"

SORT_FIELDS = {
    "createdAt": PartyInteraction.created_at,
    "updatedAt": PartyInteraction.updated_at,
    "interactionDate": PartyInteraction.start_date_time,
    "interactionDate.startDateTime": PartyInteraction.start_date_time,
    "status": PartyInteraction.status,
    "direction": PartyInteraction.direction,
    "priority": PartyInteraction.priority,
    "description": PartyInteraction.description,
    "reason": PartyInteraction.reason,
    "category": PartyInteraction.category,
    "id": PartyInteraction.id,
}


def parse_date_bound(value: Optional[str], name: str) -> Optional[datetime]:
    """Parse a startDate/endDate query value into naive UTC."""
    if value is None or not value.strip():
        return None
    try:
        return to_naive_utc(dateparse.isoparse(value.strip()))
    except (ValueError, OverflowError):
        try:
            return to_naive_utc(dateparse.parse(value.strip()))
        except (ValueError, OverflowError):
            raise RecordValidationError(f"Invalid {name}: {value!r}")


def parse_choice(value: Optional[str], choices: Type[Enum], name: str) -> Optional[str]:
    """Blank means no filter; anything else must be one of the enum's values."""
    if value is None or not value.strip():
        return None
    try:
        return choices(value.strip()).value
    except ValueError:
        allowed = ", ".join(c.value for c in choices)
        raise RecordValidationError(f"Invalid {name}: {value!r} (expected one of: {allowed})")


def _like_pattern(term: str) -> str:
    escaped = term.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


@dataclass
class InteractionFilter:
    status: Optional[str] = None
    direction: Optional[str] = None
    priority: Optional[str] = None
    party_id: Optional[str] = None
    channel: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    search: Optional[str] = None

    def clauses(self) -> list:
        where = []
        if self.status:
            where.append(PartyInteraction.status == self.status)
        if self.direction:
            where.append(PartyInteraction.direction == self.direction)
        if self.priority:
            where.append(PartyInteraction.priority == self.priority)
        if self.party_id:
            where.append(PartyInteraction.parties.any(InteractionParty.party_id == self.party_id))
        if self.channel:
            where.append(PartyInteraction.channels.any(InteractionChannel.name == self.channel))

        # both bounds inclusive
        if self.start_date is not None:
            where.append(PartyInteraction.start_date_time >= self.start_date)
        if self.end_date is not None:
            where.append(PartyInteraction.start_date_time <= self.end_date)

        term = (self.search or "").strip()
        if term:
            like = _like_pattern(term)
            where.append(or_(
                func.lower(PartyInteraction.description).like(like, escape="\\"),
                func.lower(PartyInteraction.reason).like(like, escape="\\"),
            ))
        return where

    def condition(self):
        where = self.clauses()
        return and_(*where) if where else None


@dataclass
class PageRequest:
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    sort_by: str = DEFAULT_SORT_BY
    sort_order: str = DEFAULT_SORT_ORDER

    def __post_init__(self) -> None:
        if self.page < 1:
            raise RecordValidationError("page must be >= 1")
        if self.limit < 1:
            raise RecordValidationError("limit must be >= 1")
        if self.sort_by not in SORT_FIELDS:
            raise RecordValidationError(
                f"Unsupported sortBy {self.sort_by!r}; expected one of: {', '.join(SORT_FIELDS)}"
            )
        if self.sort_order not in ("asc", "desc"):
            raise RecordValidationError("sortOrder must be 'asc' or 'desc'")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def order_by(self) -> List:
        direction = desc if self.sort_order == "desc" else asc
        column = SORT_FIELDS[self.sort_by]
        order = [direction(column)]
        # id tie-breaker keeps page boundaries stable
        if column is not PartyInteraction.id:
            order.append(direction(PartyInteraction.id))
        return order

    def pagination(self, total: int) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": total,
            "pages": math.ceil(total / self.limit),
        }
