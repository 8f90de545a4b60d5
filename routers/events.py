from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import distinct, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from database import get_session
from errors import NotFoundError
from models import Booking, Event, RoomingList
from schemas import (
    EventIn,
    EventRead,
    EventSummary,
    ItemResponse,
    ListResponse,
    RoomingListWithEvent,
    WriteResponse,
    provided_fields,
    require_fields,
)
from security import require_user

router = APIRouter(prefix="/events", tags=["events"])


async def get_event_or_404(session: AsyncSession, event_id: int) -> Event:
    event = await session.get(Event, event_id)
    if event is None:
        raise NotFoundError("Event not found")
    return event


@router.get("", response_model=ListResponse[EventSummary])
async def list_events(session: AsyncSession = Depends(get_session)):
    statement = (
        select(
            Event,
            func.count(distinct(RoomingList.rooming_list_id)).label("rooming_list_count"),
            func.count(distinct(Booking.booking_id)).label("booking_count"),
        )
        .outerjoin(RoomingList, RoomingList.event_id == Event.event_id)
        .outerjoin(Booking, Booking.event_id == Event.event_id)
        .group_by(Event.event_id)
        .order_by(Event.created_at.desc(), Event.event_id.desc())
    )
    result = await session.execute(statement)

    events = [
        EventSummary(
            **event.model_dump(),
            rooming_list_count=rooming_list_count,
            booking_count=booking_count,
        )
        for event, rooming_list_count, booking_count in result.all()
    ]
    return {"data": events, "count": len(events)}


@router.get("/{event_id}", response_model=ItemResponse[EventRead])
async def get_event(event_id: int, session: AsyncSession = Depends(get_session)):
    event = await get_event_or_404(session, event_id)
    return {"data": EventRead.model_validate(event)}


@router.post("", status_code=status.HTTP_201_CREATED, response_model=WriteResponse[EventRead])
async def create_event(payload: EventIn, session: AsyncSession = Depends(get_session)):
    require_fields(payload, ["event_name"])

    event = Event(event_name=payload.event_name, description=payload.description)
    session.add(event)
    await session.commit()
    await session.refresh(event)
    return {"message": "Event created successfully", "data": EventRead.model_validate(event)}


@router.put("/{event_id}", response_model=WriteResponse[EventRead])
async def update_event(event_id: int, payload: EventIn, session: AsyncSession = Depends(get_session)):
    event = await get_event_or_404(session, event_id)

    for name, value in provided_fields(payload).items():
        setattr(event, name, value)
    await session.commit()
    await session.refresh(event)
    return {"message": "Event updated successfully", "data": EventRead.model_validate(event)}


@router.delete("/{event_id}", response_model=WriteResponse[EventRead])
async def delete_event(event_id: int, session: AsyncSession = Depends(get_session)):
    event = await get_event_or_404(session, event_id)
    deleted = EventRead.model_validate(event)

    await session.delete(event)
    await session.commit()
    return {"message": "Event deleted successfully", "data": deleted}


# Only association listing that asks for a signed-in caller
@router.get(
    "/{event_id}/rooming-lists",
    response_model=List[RoomingListWithEvent],
    dependencies=[Depends(require_user)],
)
async def list_event_rooming_lists(event_id: int, session: AsyncSession = Depends(get_session)):
    statement = (
        select(RoomingList, Event.event_name)
        .join(Event, RoomingList.event_id == Event.event_id)
        .where(RoomingList.event_id == event_id)
        .order_by(RoomingList.cut_off_date, RoomingList.rooming_list_id)
    )
    result = await session.execute(statement)
    return [
        RoomingListWithEvent(**rooming_list.model_dump(), event_name=event_name)
        for rooming_list, event_name in result.all()
    ]
