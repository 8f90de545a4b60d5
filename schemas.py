from datetime import date, datetime
from enum import Enum
from typing import Generic, Iterable, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from errors import ValidationError
from models import AgreementType, RoomingListStatus

T = TypeVar("T")


class CamelModel(BaseModel):
    """Accepts and emits the camelCase keys used by the API clients."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def require_fields(payload: BaseModel, fields: Iterable[str]) -> None:
    """Reject a body whose required fields are absent, null or empty."""
    missing = []
    for name in fields:
        value = getattr(payload, name)
        if value is None or value == "":
            field = type(payload).model_fields[name]
            missing.append(field.alias or name)
    if missing:
        label = "field" if len(missing) == 1 else "fields"
        raise ValidationError(f"Missing required {label}: {', '.join(missing)}")


def provided_fields(payload: BaseModel) -> dict:
    """Fields present with a non-null value, keyed by attribute name."""
    values = payload.model_dump(exclude_unset=True, exclude_none=True)
    return {
        name: value.value if isinstance(value, Enum) else value
        for name, value in values.items()
    }


# --- Request bodies ---
# Every field is optional at the type level so a missing field reports
# through require_fields, while malformed values fail at parse time.

class EventIn(CamelModel):
    event_name: Optional[str] = None
    description: Optional[str] = None


class BookingIn(CamelModel):
    hotel_id: Optional[int] = None
    event_id: Optional[int] = None
    guest_name: Optional[str] = None
    guest_phone_number: Optional[str] = None
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None


class RoomingListIn(CamelModel):
    event_id: Optional[int] = None
    hotel_id: Optional[int] = None
    rfp_name: Optional[str] = None
    cut_off_date: Optional[date] = None
    status: Optional[RoomingListStatus] = None
    agreement_type: Optional[AgreementType] = Field(default=None, alias="agreement_type")


class RegisterIn(BaseModel):
    username: str = Field(min_length=3, max_length=255)
    email: EmailStr
    password: str = Field(min_length=6)


class LoginIn(BaseModel):
    username: str
    password: str


# --- Response rows ---

class EventRead(CamelModel):
    event_id: int
    event_name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class EventSummary(EventRead):
    rooming_list_count: int = 0
    booking_count: int = 0


class BookingRead(CamelModel):
    booking_id: int
    hotel_id: int
    event_id: int
    guest_name: str
    guest_phone_number: Optional[str] = None
    check_in_date: date
    check_out_date: date
    created_at: Optional[datetime] = None


class BookingWithEvent(BookingRead):
    event_name: Optional[str] = None


class RoomingListRead(CamelModel):
    rooming_list_id: int
    event_id: int
    hotel_id: int
    rfp_name: str
    cut_off_date: date
    status: RoomingListStatus
    agreement_type: AgreementType = Field(alias="agreement_type")
    created_at: Optional[datetime] = None


class RoomingListWithEvent(RoomingListRead):
    event_name: Optional[str] = None


class RoomingListSummary(RoomingListWithEvent):
    booking_count: int = 0


class LinkedRoomingList(RoomingListWithEvent):
    booking_id: int


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    created_at: Optional[datetime] = None


# --- Envelopes ---

class ListResponse(BaseModel, Generic[T]):
    status: str = "success"
    data: List[T]
    count: int


class ItemResponse(BaseModel, Generic[T]):
    status: str = "success"
    data: T


class WriteResponse(BaseModel, Generic[T]):
    status: str = "success"
    message: str
    data: T


class MessageResponse(BaseModel):
    message: str


class RoomingListBookings(ListResponse[BookingWithEvent]):
    model_config = ConfigDict(populate_by_name=True)

    rooming_list_id: int = Field(alias="roomingListId")


class DataCounts(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    events: int
    bookings: int
    rooming_lists: int = Field(alias="roomingLists")
    rooming_list_bookings: int = Field(alias="roomingListBookings")


class TokenResponse(BaseModel):
    status: str = "success"
    token: str
    user: UserRead
