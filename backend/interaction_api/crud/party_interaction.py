# interaction_api/crud/party_interaction.py
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from interaction_api.core.errors import (
    RecordNotFound,
    RecordValidationError,
    format_validation_errors,
)
from interaction_api.crud.query import InteractionFilter, PageRequest
from interaction_api.models.party_interaction import (
    InteractionChannel,
    InteractionParty,
    PartyInteraction,
    new_id,
)
from interaction_api.schemas.party_interaction import (
    Direction,
    InteractionStatus,
    Note,
    NoteOut,
    PartyInteractionBase,
    PartyInteractionOut,
    to_naive_utc,
)

logger = logging.getLogger(__name__)

API_PATH = "/api/partyInteraction"

STATUSES = tuple(s.value for s in InteractionStatus)
DIRECTIONS = tuple(d.value for d in Direction)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def build_href(base_url: str, interaction_id: str) -> str:
    return f"{base_url.rstrip('/')}{API_PATH}/{interaction_id}"


def _fill_generated(doc: PartyInteractionBase, now: datetime) -> None:
    """Give ids to items/notes that came without one; undated notes get `now`."""
    for item in doc.interactionItem:
        if not item.id:
            item.id = new_id()
    for note in doc.note:
        if not note.id:
            note.id = new_id()
        if note.date is None:
            note.date = now


def _apply(row: PartyInteraction, doc: PartyInteractionBase) -> None:
    """Copy a validated document onto the row: JSON body, scalar columns, index rows."""
    row.document = doc.model_dump(mode="json")

    row.status = doc.status
    row.direction = doc.direction
    row.priority = doc.priority
    row.start_date_time = to_naive_utc(doc.interactionDate.startDateTime)
    row.end_date_time = to_naive_utc(doc.interactionDate.endDateTime)
    row.description = doc.description
    row.reason = doc.reason
    row.category = doc.category
    row.sub_category = doc.subCategory

    # list fields are replaced wholesale, so the index rows are too
    row.channels = [
        InteractionChannel(position=i, name=(rc.channel.name if rc.channel else None))
        for i, rc in enumerate(doc.relatedChannel)
    ]
    row.parties = [
        InteractionParty(position=i, party_id=rp.partyOrPartyRole.id, role=rp.role)
        for i, rp in enumerate(doc.relatedParty)
    ]


def _validate(data: Dict[str, Any]) -> PartyInteractionBase:
    try:
        return PartyInteractionBase.model_validate(data)
    except ValidationError as e:
        raise RecordValidationError(format_validation_errors(e.errors()))


def to_out(row: PartyInteraction) -> PartyInteractionOut:
    return PartyInteractionOut.model_validate({
        **(row.document or {}),
        "id": row.id,
        "href": row.href,
        "createdAt": row.created_at,
        "updatedAt": row.updated_at,
        "duration": row.duration,
    })


def _get_row(db: Session, interaction_id: str) -> PartyInteraction:
    row = db.get(PartyInteraction, interaction_id)
    if row is None:
        raise RecordNotFound("Interaction not found")
    return row


def get_by_id(db: Session, interaction_id: str) -> PartyInteractionOut:
    return to_out(_get_row(db, interaction_id))


def create(db: Session, draft: PartyInteractionBase, *, base_url: str) -> PartyInteractionOut:
    now = _now()
    doc = draft.model_copy(deep=True)
    _fill_generated(doc, now)

    interaction_id = new_id()
    row = PartyInteraction(
        id=interaction_id,
        href=build_href(base_url, interaction_id),
        created_at=to_naive_utc(now),
        updated_at=to_naive_utc(now),
    )
    _apply(row, doc)
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("[interactions] created id=%s status=%s direction=%s", row.id, row.status, row.direction)
    return to_out(row)


def update(db: Session, interaction_id: str, changes: Dict[str, Any]) -> PartyInteractionOut:
    """
    Shallow merge: each supplied top-level field replaces the stored one,
    list fields included. The merged document is validated as a whole.
    """
    row = _get_row(db, interaction_id)
    merged = {**(row.document or {}), **changes}
    doc = _validate(merged)

    now = _now()
    _fill_generated(doc, now)
    _apply(row, doc)
    row.updated_at = to_naive_utc(now)
    db.commit()
    db.refresh(row)
    logger.info("[interactions] updated id=%s fields=%s", row.id, sorted(changes))
    return to_out(row)


def delete(db: Session, interaction_id: str) -> None:
    row = _get_row(db, interaction_id)
    db.delete(row)
    db.commit()
    logger.info("[interactions] deleted id=%s", interaction_id)


def append_note(
    db: Session, interaction_id: str, *, text: Optional[str], author: Optional[str]
) -> NoteOut:
    if not (text or "").strip() or not (author or "").strip():
        raise RecordValidationError("Text and author are required")

    row = _get_row(db, interaction_id)
    note = Note(id=new_id(), text=text, author=author, date=_now())

    doc = dict(row.document or {})
    doc["note"] = list(doc.get("note") or []) + [note.model_dump(mode="json")]
    row.document = doc  # reassign so the JSON column is flagged dirty
    row.updated_at = to_naive_utc(note.date)
    db.commit()
    logger.info("[interactions] note added id=%s note_id=%s", interaction_id, note.id)
    return NoteOut.model_validate(note.model_dump())


def list_interactions(
    db: Session, filters: InteractionFilter, page: PageRequest
) -> Tuple[List[PartyInteractionOut], int]:
    stmt = select(PartyInteraction)
    cond = filters.condition()
    if cond is not None:
        stmt = stmt.where(cond)

    total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()

    rows = db.execute(
        stmt.order_by(*page.order_by())
            .offset(page.offset)
            .limit(page.limit)
    ).scalars().all()

    return [to_out(r) for r in rows], total


def summary_stats(db: Session) -> dict:
    def _count_where(column, value):
        return func.coalesce(func.sum(case((column == value, 1), else_=0)), 0)

    cols = [func.count().label("total")]
    cols += [_count_where(PartyInteraction.status, s).label(s) for s in STATUSES]
    cols += [_count_where(PartyInteraction.direction, d).label(d) for d in DIRECTIONS]
    summary = db.execute(select(*cols).select_from(PartyInteraction)).mappings().one()

    count = func.count().label("count")
    breakdown = db.execute(
        select(InteractionChannel.name, count)
        .group_by(InteractionChannel.name)
        .order_by(count.desc(), InteractionChannel.name.asc())
    ).all()

    return {
        "summary": {k: int(v or 0) for k, v in summary.items()},
        "channelBreakdown": [{"_id": name, "count": n} for name, n in breakdown],
    }
