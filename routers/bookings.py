import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from database import get_session
from errors import ConflictError, NotFoundError
from models import Booking, Event, RoomingList, RoomingListBooking
from schemas import (
    BookingIn,
    BookingRead,
    BookingWithEvent,
    ItemResponse,
    LinkedRoomingList,
    ListResponse,
    MessageResponse,
    WriteResponse,
    provided_fields,
    require_fields,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])

REQUIRED_FIELDS = ["hotel_id", "event_id", "guest_name", "check_in_date", "check_out_date"]


async def get_booking_or_404(session: AsyncSession, booking_id: int) -> Booking:
    booking = await session.get(Booking, booking_id)
    if booking is None:
        raise NotFoundError("Booking not found")
    return booking


def _with_event_name(statement):
    return statement.outerjoin(Event, Booking.event_id == Event.event_id)


@router.get("", response_model=ListResponse[BookingWithEvent])
async def list_bookings(session: AsyncSession = Depends(get_session)):
    statement = _with_event_name(select(Booking, Event.event_name)).order_by(
        Booking.check_in_date, Booking.booking_id
    )
    result = await session.execute(statement)

    bookings = [
        BookingWithEvent(**booking.model_dump(), event_name=event_name)
        for booking, event_name in result.all()
    ]
    return {"data": bookings, "count": len(bookings)}


@router.get("/{booking_id}", response_model=ItemResponse[BookingWithEvent])
async def get_booking(booking_id: int, session: AsyncSession = Depends(get_session)):
    statement = _with_event_name(select(Booking, Event.event_name)).where(
        Booking.booking_id == booking_id
    )
    row = (await session.execute(statement)).first()
    if row is None:
        raise NotFoundError("Booking not found")

    booking, event_name = row
    return {"data": BookingWithEvent(**booking.model_dump(), event_name=event_name)}


@router.post("", status_code=status.HTTP_201_CREATED, response_model=WriteResponse[BookingRead])
async def create_booking(payload: BookingIn, session: AsyncSession = Depends(get_session)):
    require_fields(payload, REQUIRED_FIELDS)

    booking = Booking(**provided_fields(payload))
    session.add(booking)
    await session.commit()
    await session.refresh(booking)
    return {"message": "Booking created successfully", "data": BookingRead.model_validate(booking)}


@router.put("/{booking_id}", response_model=WriteResponse[BookingRead])
async def update_booking(booking_id: int, payload: BookingIn, session: AsyncSession = Depends(get_session)):
    booking = await get_booking_or_404(session, booking_id)

    for name, value in provided_fields(payload).items():
        setattr(booking, name, value)
    await session.commit()
    await session.refresh(booking)
    return {"message": "Booking updated successfully", "data": BookingRead.model_validate(booking)}


@router.delete("/{booking_id}", response_model=WriteResponse[BookingRead])
async def delete_booking(booking_id: int, session: AsyncSession = Depends(get_session)):
    booking = await get_booking_or_404(session, booking_id)
    deleted = BookingRead.model_validate(booking)

    # Junction rows go with it through ON DELETE CASCADE
    await session.delete(booking)
    await session.commit()
    return {"message": "Booking deleted successfully", "data": deleted}


@router.get("/{booking_id}/rooming-lists", response_model=List[LinkedRoomingList])
async def list_booking_rooming_lists(booking_id: int, session: AsyncSession = Depends(get_session)):
    statement = (
        select(RoomingList, Event.event_name, RoomingListBooking.booking_id)
        .join(Event, RoomingList.event_id == Event.event_id)
        .join(RoomingListBooking, RoomingList.rooming_list_id == RoomingListBooking.rooming_list_id)
        .where(RoomingListBooking.booking_id == booking_id)
        .order_by(RoomingList.cut_off_date, RoomingList.rooming_list_id)
    )
    result = await session.execute(statement)

    rooming_lists = [
        LinkedRoomingList(**rooming_list.model_dump(), event_name=event_name, booking_id=linked_id)
        for rooming_list, event_name, linked_id in result.all()
    ]
    logger.debug("Found %d rooming lists for booking %s", len(rooming_lists), booking_id)
    return rooming_lists


async def _find_link(session: AsyncSession, booking_id: int, rooming_list_id: int):
    statement = select(RoomingListBooking).where(
        RoomingListBooking.booking_id == booking_id,
        RoomingListBooking.rooming_list_id == rooming_list_id,
    )
    result = await session.execute(statement)
    return result.scalars().first()


@router.post("/{booking_id}/rooming-lists/{rooming_list_id}", response_model=MessageResponse)
async def link_booking(
    booking_id: int,
    rooming_list_id: int,
    session: AsyncSession = Depends(get_session),
):
    await get_booking_or_404(session, booking_id)
    if await session.get(RoomingList, rooming_list_id) is None:
        raise NotFoundError("Rooming list not found")

    if await _find_link(session, booking_id, rooming_list_id) is not None:
        raise ConflictError("Booking already linked to this rooming list")

    try:
        session.add(RoomingListBooking(rooming_list_id=rooming_list_id, booking_id=booking_id))
        await session.commit()
    except IntegrityError:
        # A concurrent request inserted the same pair first
        await session.rollback()
        raise ConflictError("Booking already linked to this rooming list")

    logger.info("Linked booking %s to rooming list %s", booking_id, rooming_list_id)
    return {"message": "Booking linked to rooming list successfully"}


@router.delete("/{booking_id}/rooming-lists/{rooming_list_id}", response_model=MessageResponse)
async def unlink_booking(
    booking_id: int,
    rooming_list_id: int,
    session: AsyncSession = Depends(get_session),
):
    link = await _find_link(session, booking_id, rooming_list_id)
    if link is None:
        raise NotFoundError("Link not found between booking and rooming list")

    await session.delete(link)
    await session.commit()

    logger.info("Unlinked booking %s from rooming list %s", booking_id, rooming_list_id)
    return {"message": "Booking unlinked from rooming list successfully"}
