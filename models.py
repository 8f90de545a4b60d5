from enum import Enum
from typing import Optional
from datetime import date, datetime, timezone

from sqlmodel import SQLModel, Field
from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, UniqueConstraint, func


class RoomingListStatus(str, Enum):
    ACTIVE = "Active"
    CLOSED = "Closed"
    CANCELLED = "Cancelled"


class AgreementType(str, Enum):
    LEISURE = "leisure"
    STAFF = "staff"
    ARTIST = "artist"


def _values(enum_cls) -> str:
    return ", ".join(f"'{member.value}'" for member in enum_cls)


# Column names follow the camelCase used by the JSON payloads
def _column(name: str, **kwargs):
    return Field(sa_column_kwargs={"name": name}, **kwargs)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Server default covers bulk inserts that bypass the model constructor
def _created_at():
    return Field(
        default_factory=_utcnow,
        sa_type=DateTime(timezone=True),
        sa_column_kwargs={"server_default": func.current_timestamp()},
    )


class Event(SQLModel, table=True):
    __tablename__ = "events"

    event_id: Optional[int] = _column("eventId", default=None, primary_key=True)
    event_name: str = _column("eventName", max_length=255)
    description: Optional[str] = None
    created_at: Optional[datetime] = _created_at()


class Booking(SQLModel, table=True):
    __tablename__ = "bookings"

    booking_id: Optional[int] = _column("bookingId", default=None, primary_key=True)
    hotel_id: int = _column("hotelId")
    # Events are resolved through joins; bookings may name events that do not exist
    event_id: int = _column("eventId", index=True)
    guest_name: str = _column("guestName", max_length=255)
    guest_phone_number: Optional[str] = _column("guestPhoneNumber", default=None, max_length=20)
    check_in_date: date = _column("checkInDate")
    check_out_date: date = _column("checkOutDate")
    created_at: Optional[datetime] = _created_at()


class RoomingList(SQLModel, table=True):
    __tablename__ = "rooming_lists"
    __table_args__ = (
        CheckConstraint(f"status IN ({_values(RoomingListStatus)})", name="rooming_lists_status_check"),
        CheckConstraint(
            f"agreement_type IN ({_values(AgreementType)})", name="rooming_lists_agreement_type_check"
        ),
    )

    rooming_list_id: Optional[int] = _column("roomingListId", default=None, primary_key=True)
    event_id: int = _column("eventId", index=True)
    hotel_id: int = _column("hotelId")
    rfp_name: str = _column("rfpName", max_length=255)
    cut_off_date: date = _column("cutOffDate")
    # Stored as plain strings; the CHECK constraints above close the sets
    status: str = Field(default=RoomingListStatus.ACTIVE.value, max_length=50)
    agreement_type: str = Field(max_length=50)
    created_at: Optional[datetime] = _created_at()


class RoomingListBooking(SQLModel, table=True):
    __tablename__ = "rooming_list_bookings"
    __table_args__ = (
        # A booking may join the same rooming list only once
        UniqueConstraint("roomingListId", "bookingId", name="rooming_list_bookings_pair_key"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    rooming_list_id: int = Field(
        sa_column=Column(
            "roomingListId",
            Integer,
            ForeignKey("rooming_lists.roomingListId", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    booking_id: int = Field(
        sa_column=Column(
            "bookingId",
            Integer,
            ForeignKey("bookings.bookingId", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    created_at: Optional[datetime] = _created_at()


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(max_length=255, unique=True)
    email: str = Field(max_length=255, unique=True)
    password: str = Field(max_length=255)
    created_at: Optional[datetime] = _created_at()
