# interaction_api/api/routes/party_interaction.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from interaction_api.core.config import get_settings
from interaction_api.crud import party_interaction as crud
from interaction_api.crud.query import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    DEFAULT_SORT_BY,
    DEFAULT_SORT_ORDER,
    InteractionFilter,
    PageRequest,
    parse_choice,
    parse_date_bound,
)
from interaction_api.db.session import get_db
from interaction_api.schemas.party_interaction import (
    ChannelName,
    Direction,
    InteractionStatus,
    NoteCreate,
    NoteOut,
    PartyInteractionCreate,
    PartyInteractionList,
    PartyInteractionOut,
    PartyInteractionUpdate,
    Priority,
    StatsResponse,
)

router = APIRouter(prefix="/partyInteraction", tags=["partyInteraction"])


def _base_url(request: Request) -> str:
    return get_settings().PUBLIC_BASE_URL or str(request.base_url)


# GET /api/partyInteraction
@router.get("", response_model=PartyInteractionList)
@router.get("/", response_model=PartyInteractionList, include_in_schema=False)
def list_party_interactions(
    status_: Optional[str] = Query(None, alias="status"),
    direction: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    party_id: Optional[str] = Query(None, alias="partyId"),
    channel: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    search: Optional[str] = Query(None),
    page: int = Query(DEFAULT_PAGE, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=1000),
    sort_by: str = Query(DEFAULT_SORT_BY, alias="sortBy"),
    sort_order: str = Query(DEFAULT_SORT_ORDER, alias="sortOrder"),
    db: Session = Depends(get_db),
):
    filters = InteractionFilter(
        status=parse_choice(status_, InteractionStatus, "status"),
        direction=parse_choice(direction, Direction, "direction"),
        priority=parse_choice(priority, Priority, "priority"),
        party_id=(party_id or "").strip() or None,
        channel=parse_choice(channel, ChannelName, "channel"),
        start_date=parse_date_bound(start_date, "startDate"),
        end_date=parse_date_bound(end_date, "endDate"),
        search=search,
    )
    page_req = PageRequest(page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)
    items, total = crud.list_interactions(db, filters, page_req)
    return {"data": items, "pagination": page_req.pagination(total)}


# GET /api/partyInteraction/stats/summary  (declared before /{id})
@router.get("/stats/summary", response_model=StatsResponse)
def interaction_stats(db: Session = Depends(get_db)):
    return crud.summary_stats(db)


# GET /api/partyInteraction/{id}
@router.get("/{id}", response_model=PartyInteractionOut)
def get_party_interaction(id: str, db: Session = Depends(get_db)):
    return crud.get_by_id(db, id)


# POST /api/partyInteraction
@router.post("", response_model=PartyInteractionOut, status_code=status.HTTP_201_CREATED)
@router.post("/", response_model=PartyInteractionOut, status_code=status.HTTP_201_CREATED,
             include_in_schema=False)
def create_party_interaction(
    payload: PartyInteractionCreate, request: Request, db: Session = Depends(get_db)
):
    return crud.create(db, payload, base_url=_base_url(request))


# PATCH /api/partyInteraction/{id} (partial update, list fields replaced whole)
@router.patch("/{id}", response_model=PartyInteractionOut)
def update_party_interaction(id: str, payload: PartyInteractionUpdate, db: Session = Depends(get_db)):
    changes = payload.model_dump(exclude_unset=True, mode="json")
    return crud.update(db, id, changes)


# DELETE /api/partyInteraction/{id} (hard delete)
@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def delete_party_interaction(id: str, db: Session = Depends(get_db)):
    crud.delete(db, id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# POST /api/partyInteraction/{id}/notes
@router.post("/{id}/notes", response_model=NoteOut, status_code=status.HTTP_201_CREATED)
def add_note(id: str, payload: NoteCreate, db: Session = Depends(get_db)):
    return crud.append_note(db, id, text=payload.text, author=payload.author)
