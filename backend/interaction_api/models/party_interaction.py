# interaction_api/models/party_interaction.py
from datetime import datetime, timezone
import math
import uuid

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from interaction_api.models.base import Base


def new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    # naive UTC, matching how every DateTime column here is stored
    return datetime.now(timezone.utc).replace(tzinfo=None)


class PartyInteraction(Base):
    """
    One interaction record. The full nested document lives in `document`;
    the scalar columns are copies of the fields that get filtered or sorted on.
    """
    __tablename__ = "party_interactions"

    id = Column(String(36), primary_key=True, default=new_id)
    href = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default="opened")
    direction = Column(String(20), nullable=False)
    priority = Column(String(20), nullable=False, default="medium")

    start_date_time = Column(DateTime, nullable=False, index=True)
    end_date_time = Column(DateTime, nullable=True)

    description = Column(Text, nullable=False)
    reason = Column(Text, nullable=False)
    category = Column(String, nullable=True)
    sub_category = Column(String, nullable=True)

    document = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime, nullable=False, default=_now)
    updated_at = Column(DateTime, nullable=False, default=_now)

    channels = relationship(
        "InteractionChannel",
        cascade="all, delete-orphan",
        order_by="InteractionChannel.position",
        lazy="selectin",
    )
    parties = relationship(
        "InteractionParty",
        cascade="all, delete-orphan",
        order_by="InteractionParty.position",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_party_interactions_status_created", "status", "created_at"),
        Index("ix_party_interactions_direction_status", "direction", "status"),
    )

    @property
    def duration(self):
        """Whole minutes between start and end (halves round up), None while open."""
        if self.start_date_time is None or self.end_date_time is None:
            return None
        minutes = (self.end_date_time - self.start_date_time).total_seconds() / 60
        return math.floor(minutes + 0.5)


class InteractionChannel(Base):
    """One row per relatedChannel entry, in list order."""
    __tablename__ = "party_interaction_channels"

    id = Column(Integer, primary_key=True, autoincrement=True)
    interaction_id = Column(
        String(36), ForeignKey("party_interactions.id", ondelete="CASCADE"), index=True, nullable=False
    )
    position = Column(Integer, nullable=False)
    name = Column(String(20), nullable=True, index=True)


class InteractionParty(Base):
    """One row per relatedParty entry, in list order."""
    __tablename__ = "party_interaction_parties"

    id = Column(Integer, primary_key=True, autoincrement=True)
    interaction_id = Column(
        String(36), ForeignKey("party_interactions.id", ondelete="CASCADE"), index=True, nullable=False
    )
    position = Column(Integer, nullable=False)
    party_id = Column(String, nullable=False, index=True)
    role = Column(String(20), nullable=True)
