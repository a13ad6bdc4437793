from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import BaseModel, Field, field_validator

NonEmptyStr = Annotated[str, Field(min_length=1)]


def to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive timestamps are taken as UTC; aware ones are converted to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """UTC without tzinfo, the form stored in DateTime columns."""
    if value is None:
        return None
    return to_utc(value).replace(tzinfo=None)


# ---------- ENUMS ----------
class InteractionStatus(str, Enum):
    opened = "opened"
    inProgress = "inProgress"
    completed = "completed"
    cancelled = "cancelled"


class Direction(str, Enum):
    inbound = "inbound"
    outbound = "outbound"


class Priority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


class PartyRole(str, Enum):
    customer = "customer"
    agent = "agent"
    supervisor = "supervisor"
    system = "system"


class ReferredType(str, Enum):
    Individual = "Individual"
    Organization = "Organization"
    System = "System"


class ItemStatus(str, Enum):
    pending = "pending"
    inProgress = "inProgress"
    resolved = "resolved"
    cancelled = "cancelled"


class ChannelName(str, Enum):
    phone = "phone"
    email = "email"
    chat = "chat"
    store = "store"
    web = "web"
    mobile = "mobile"
    social = "social"


class _Doc(BaseModel):
    class Config:
        extra = "ignore"          # ignore stray keys
        use_enum_values = True    # enums are stored as their plain string


# ---------- SUB-DOCUMENTS ----------
class TimePeriod(_Doc):
    startDateTime: datetime
    endDateTime: Optional[datetime] = None

    @field_validator("startDateTime", "endDateTime")
    @classmethod
    def normalize_utc(cls, v):
        return to_utc(v)


class PartyRef(_Doc):
    id: NonEmptyStr
    href: Optional[str] = None
    name: NonEmptyStr
    referredType: ReferredType


class RelatedParty(_Doc):
    role: PartyRole
    partyOrPartyRole: PartyRef


class EntityRef(_Doc):
    id: Optional[str] = None
    href: Optional[str] = None
    name: Optional[str] = None
    referredType: Optional[str] = None


class ItemRef(_Doc):
    role: Optional[str] = None
    entity: Optional[EntityRef] = None


class InteractionItem(_Doc):
    id: Optional[str] = None
    reason: NonEmptyStr
    itemDate: TimePeriod
    resolution: Optional[str] = None
    status: ItemStatus = "pending"
    item: Optional[ItemRef] = None


class ChannelRef(_Doc):
    id: Optional[str] = None
    name: Optional[ChannelName] = None


class RelatedChannel(_Doc):
    role: Optional[str] = None
    channel: Optional[ChannelRef] = None


class Quantity(_Doc):
    amount: Optional[float] = None
    units: Optional[str] = None


class Attachment(_Doc):
    id: Optional[str] = None
    href: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    attachmentType: Optional[str] = None
    mimeType: Optional[str] = None
    size: Optional[Quantity] = None
    url: Optional[str] = None


class Note(_Doc):
    id: Optional[str] = None
    text: NonEmptyStr
    author: NonEmptyStr
    date: Optional[datetime] = None

    @field_validator("date")
    @classmethod
    def normalize_utc(cls, v):
        return to_utc(v)


# ---------- ROOT DOCUMENT ----------
class PartyInteractionBase(_Doc):
    interactionDate: TimePeriod
    description: NonEmptyStr
    reason: NonEmptyStr
    status: InteractionStatus = "opened"
    direction: Direction
    priority: Priority = "medium"
    relatedParty: List[RelatedParty] = []
    interactionItem: List[InteractionItem] = []
    relatedChannel: List[RelatedChannel] = []
    attachment: List[Attachment] = []
    note: List[Note] = []
    category: Optional[str] = None
    subCategory: Optional[str] = None
    tags: List[str] = []

    @field_validator("tags")
    @classmethod
    def unique_tags(cls, v: List[str]) -> List[str]:
        seen = []
        for t in v:
            if t not in seen:
                seen.append(t)
        return seen


# ---------- IN MODELS ----------
class PartyInteractionCreate(PartyInteractionBase):
    pass


# PATCH: every field optional; only the keys actually sent are merged.
# id/href/createdAt/updatedAt/duration are not declared, so they are dropped.
class PartyInteractionUpdate(_Doc):
    interactionDate: Optional[TimePeriod] = None
    description: Optional[NonEmptyStr] = None
    reason: Optional[NonEmptyStr] = None
    status: Optional[InteractionStatus] = None
    direction: Optional[Direction] = None
    priority: Optional[Priority] = None
    relatedParty: Optional[List[RelatedParty]] = None
    interactionItem: Optional[List[InteractionItem]] = None
    relatedChannel: Optional[List[RelatedChannel]] = None
    attachment: Optional[List[Attachment]] = None
    note: Optional[List[Note]] = None
    category: Optional[str] = None
    subCategory: Optional[str] = None
    tags: Optional[List[str]] = None


class NoteCreate(_Doc):
    # presence is checked by the store so the error shape matches other 400s
    text: Optional[str] = None
    author: Optional[str] = None


# ---------- OUT MODELS ----------
class PartyInteractionOut(PartyInteractionBase):
    id: str
    href: Optional[str] = None
    createdAt: datetime
    updatedAt: datetime
    duration: Optional[int] = None

    @field_validator("createdAt", "updatedAt")
    @classmethod
    def normalize_utc(cls, v):
        return to_utc(v)


class NoteOut(_Doc):
    id: str
    text: str
    author: str
    date: datetime


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class PartyInteractionList(BaseModel):
    data: List[PartyInteractionOut]
    pagination: Pagination


class StatsSummary(BaseModel):
    total: int = 0
    opened: int = 0
    inProgress: int = 0
    completed: int = 0
    cancelled: int = 0
    inbound: int = 0
    outbound: int = 0


class ChannelCount(BaseModel):
    channel: Optional[str] = Field(default=None, alias="_id")
    count: int

    class Config:
        populate_by_name = True


class StatsResponse(BaseModel):
    summary: StatsSummary
    channelBreakdown: List[ChannelCount]
