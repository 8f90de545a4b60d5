from fastapi import APIRouter, Depends, status
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from database import get_session
from errors import NotFoundError
from models import Booking, Event, RoomingList, RoomingListBooking, RoomingListStatus
from schemas import (
    BookingWithEvent,
    ItemResponse,
    ListResponse,
    RoomingListBookings,
    RoomingListIn,
    RoomingListRead,
    RoomingListSummary,
    RoomingListWithEvent,
    WriteResponse,
    provided_fields,
    require_fields,
)

router = APIRouter(prefix="/rooming-lists", tags=["rooming-lists"])

REQUIRED_FIELDS = ["event_id", "hotel_id", "rfp_name", "cut_off_date", "agreement_type"]


async def get_rooming_list_or_404(session: AsyncSession, rooming_list_id: int) -> RoomingList:
    rooming_list = await session.get(RoomingList, rooming_list_id)
    if rooming_list is None:
        raise NotFoundError("Rooming list not found")
    return rooming_list


@router.get("", response_model=ListResponse[RoomingListSummary])
async def list_rooming_lists(session: AsyncSession = Depends(get_session)):
    statement = (
        select(
            RoomingList,
            Event.event_name,
            func.count(RoomingListBooking.booking_id).label("booking_count"),
        )
        .outerjoin(Event, RoomingList.event_id == Event.event_id)
        .outerjoin(RoomingListBooking, RoomingList.rooming_list_id == RoomingListBooking.rooming_list_id)
        .group_by(RoomingList.rooming_list_id, Event.event_name)
        .order_by(RoomingList.created_at.desc(), RoomingList.rooming_list_id.desc())
    )
    result = await session.execute(statement)

    rooming_lists = [
        RoomingListSummary(**rooming_list.model_dump(), event_name=event_name, booking_count=booking_count)
        for rooming_list, event_name, booking_count in result.all()
    ]
    return {"data": rooming_lists, "count": len(rooming_lists)}


@router.get("/{rooming_list_id}", response_model=ItemResponse[RoomingListWithEvent])
async def get_rooming_list(rooming_list_id: int, session: AsyncSession = Depends(get_session)):
    statement = (
        select(RoomingList, Event.event_name)
        .outerjoin(Event, RoomingList.event_id == Event.event_id)
        .where(RoomingList.rooming_list_id == rooming_list_id)
    )
    row = (await session.execute(statement)).first()
    if row is None:
        raise NotFoundError("Rooming list not found")

    rooming_list, event_name = row
    return {"data": RoomingListWithEvent(**rooming_list.model_dump(), event_name=event_name)}


@router.get("/{rooming_list_id}/bookings", response_model=RoomingListBookings)
async def list_rooming_list_bookings(rooming_list_id: int, session: AsyncSession = Depends(get_session)):
    # An unknown rooming list simply has no bookings
    statement = (
        select(Booking, Event.event_name)
        .join(RoomingListBooking, RoomingListBooking.booking_id == Booking.booking_id)
        .outerjoin(Event, Booking.event_id == Event.event_id)
        .where(RoomingListBooking.rooming_list_id == rooming_list_id)
        .order_by(Booking.check_in_date, Booking.booking_id)
    )
    result = await session.execute(statement)

    bookings = [
        BookingWithEvent(**booking.model_dump(), event_name=event_name)
        for booking, event_name in result.all()
    ]
    return RoomingListBookings(data=bookings, count=len(bookings), rooming_list_id=rooming_list_id)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=WriteResponse[RoomingListRead])
async def create_rooming_list(payload: RoomingListIn, session: AsyncSession = Depends(get_session)):
    require_fields(payload, REQUIRED_FIELDS)

    values = provided_fields(payload)
    values.setdefault("status", RoomingListStatus.ACTIVE.value)

    rooming_list = RoomingList(**values)
    session.add(rooming_list)
    await session.commit()
    await session.refresh(rooming_list)
    return {
        "message": "Rooming list created successfully",
        "data": RoomingListRead.model_validate(rooming_list),
    }


@router.put("/{rooming_list_id}", response_model=WriteResponse[RoomingListRead])
async def update_rooming_list(
    rooming_list_id: int,
    payload: RoomingListIn,
    session: AsyncSession = Depends(get_session),
):
    rooming_list = await get_rooming_list_or_404(session, rooming_list_id)

    for name, value in provided_fields(payload).items():
        setattr(rooming_list, name, value)
    await session.commit()
    await session.refresh(rooming_list)
    return {
        "message": "Rooming list updated successfully",
        "data": RoomingListRead.model_validate(rooming_list),
    }


@router.delete("/{rooming_list_id}", response_model=WriteResponse[RoomingListRead])
async def delete_rooming_list(rooming_list_id: int, session: AsyncSession = Depends(get_session)):
    rooming_list = await get_rooming_list_or_404(session, rooming_list_id)
    deleted = RoomingListRead.model_validate(rooming_list)

    await session.delete(rooming_list)
    await session.commit()
    return {"message": "Rooming list deleted successfully", "data": deleted}
