"""
Bulk replacement of the booking dataset from JSON sources.

The whole load runs in one transaction: the four tables are cleared
children-first, events are derived from the bookings, then bookings,
rooming lists and their links are inserted with the ids the source
supplies. Any failure rolls everything back.
"""

import json
import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel
from sqlalchemy import delete, func, insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database import advance_identity, restart_identity
from errors import ImportSourceError
from models import AgreementType, Booking, Event, RoomingList, RoomingListBooking, RoomingListStatus
from schemas import DataCounts

logger = logging.getLogger(__name__)

BOOKINGS_FILE = "bookings.json"
ROOMING_LISTS_FILE = "rooming-lists.json"
ROOMING_LIST_BOOKINGS_FILE = "rooming-list-bookings.json"

# Children before parents so foreign keys never dangle
CLEAR_ORDER = (RoomingListBooking, RoomingList, Booking, Event)

RecordT = TypeVar("RecordT", bound=BaseModel)


class ImportRecord(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class BookingRecord(ImportRecord):
    booking_id: int
    hotel_id: int
    event_id: int
    guest_name: str
    guest_phone_number: Optional[str] = None
    check_in_date: date
    check_out_date: date


class RoomingListRecord(ImportRecord):
    rooming_list_id: int
    event_id: int
    hotel_id: int
    rfp_name: str
    cut_off_date: date
    status: Optional[RoomingListStatus] = None
    agreement_type: AgreementType

    model_config = ConfigDict(
        alias_generator=lambda name: name if name == "agreement_type" else to_camel(name),
        populate_by_name=True,
        extra="ignore",
    )


class RoomingListBookingRecord(ImportRecord):
    rooming_list_id: int
    booking_id: int


@dataclass
class ImportDataset:
    bookings: List[BookingRecord]
    rooming_lists: List[RoomingListRecord]
    rooming_list_bookings: List[RoomingListBookingRecord]

    def event_ids(self) -> List[int]:
        """Distinct event ids referenced by the bookings."""
        return sorted({booking.event_id for booking in self.bookings})


def _read_records(path: Path, record_type: Type[RecordT]) -> List[RecordT]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ImportSourceError(f"{path.name} is not valid JSON", details=str(exc)) from exc

    if not isinstance(raw, list):
        raise ImportSourceError(f"{path.name} must contain a JSON array")

    records = []
    for position, item in enumerate(raw):
        try:
            records.append(record_type.model_validate(item))
        except PydanticValidationError as exc:
            raise ImportSourceError(
                f"{path.name} record {position} is invalid",
                details=[
                    {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
                    for err in exc.errors()
                ],
            ) from exc
    return records


def load_import_sources(data_dir: Path) -> ImportDataset:
    """Read and validate all three sources; nothing is touched if any is bad."""
    sources = {
        "rooming_lists": data_dir / ROOMING_LISTS_FILE,
        "bookings": data_dir / BOOKINGS_FILE,
        "rooming_list_bookings": data_dir / ROOMING_LIST_BOOKINGS_FILE,
    }
    for path in sources.values():
        if not path.is_file():
            raise ImportSourceError(f"{path.name} file not found")

    dataset = ImportDataset(
        bookings=_read_records(sources["bookings"], BookingRecord),
        rooming_lists=_read_records(sources["rooming_lists"], RoomingListRecord),
        rooming_list_bookings=_read_records(sources["rooming_list_bookings"], RoomingListBookingRecord),
    )
    logger.info(
        "Import sources loaded: %d bookings, %d rooming lists, %d links",
        len(dataset.bookings),
        len(dataset.rooming_lists),
        len(dataset.rooming_list_bookings),
    )
    return dataset


def _insert_ignore(session: AsyncSession, model, rows: List[Dict[str, object]]):
    """INSERT .. ON CONFLICT DO NOTHING for the active dialect."""
    dialect_insert = pg_insert if session.get_bind().dialect.name == "postgresql" else sqlite_insert
    return dialect_insert(model).values(rows).on_conflict_do_nothing()


async def _clear_tables(session: AsyncSession) -> None:
    for model in CLEAR_ORDER:
        await session.execute(delete(model))
        await restart_identity(session, model.__tablename__)


async def import_dataset(session_factory: async_sessionmaker, dataset: ImportDataset) -> DataCounts:
    """Replace every event, booking, rooming list and link with ``dataset``."""
    event_ids = dataset.event_ids()

    async with session_factory() as session:
        async with session.begin():
            logger.info("Clearing all existing data")
            await _clear_tables(session)

            if event_ids:
                rows = [{"event_id": event_id, "event_name": f"Event {event_id}"} for event_id in event_ids]
                await session.execute(_insert_ignore(session, Event, rows))
            logger.info("Inserted %d events", len(event_ids))

            if dataset.bookings:
                await session.execute(
                    insert(Booking),
                    [record.model_dump() for record in dataset.bookings],
                )
            logger.info("Inserted %d bookings", len(dataset.bookings))

            if dataset.rooming_lists:
                await session.execute(
                    insert(RoomingList),
                    [_rooming_list_row(record) for record in dataset.rooming_lists],
                )
            logger.info("Inserted %d rooming lists", len(dataset.rooming_lists))

            # Unknown ids or a repeated pair raise IntegrityError and abort the load
            if dataset.rooming_list_bookings:
                await session.execute(
                    insert(RoomingListBooking),
                    [record.model_dump() for record in dataset.rooming_list_bookings],
                )
            logger.info("Inserted %d rooming list bookings", len(dataset.rooming_list_bookings))

            for model in CLEAR_ORDER:
                await advance_identity(session, model.__tablename__)

    return DataCounts(
        events=len(event_ids),
        bookings=len(dataset.bookings),
        rooming_lists=len(dataset.rooming_lists),
        rooming_list_bookings=len(dataset.rooming_list_bookings),
    )


def _rooming_list_row(record: RoomingListRecord) -> Dict[str, object]:
    row = record.model_dump()
    row["status"] = (record.status or RoomingListStatus.ACTIVE).value
    row["agreement_type"] = record.agreement_type.value
    return row


async def clear_all_data(session_factory: async_sessionmaker) -> None:
    async with session_factory() as session:
        async with session.begin():
            await _clear_tables(session)
    logger.info("All data cleared from database")


async def count_rows(session: AsyncSession) -> DataCounts:
    counts = {}
    for key, model in (
        ("events", Event),
        ("bookings", Booking),
        ("rooming_lists", RoomingList),
        ("rooming_list_bookings", RoomingListBooking),
    ):
        counts[key] = await session.scalar(select(func.count()).select_from(model))
    return DataCounts(**counts)
