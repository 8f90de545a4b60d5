import logging
from typing import AsyncIterator, Dict

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from config import Settings

logger = logging.getLogger(__name__)

# Identifier columns whose generators get reset/advanced around bulk loads
IDENTITY_COLUMNS: Dict[str, str] = {
    "rooming_list_bookings": "id",
    "rooming_lists": "roomingListId",
    "bookings": "bookingId",
    "events": "eventId",
}


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ships with FK enforcement off; cascades and link checks need it
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_store(settings: Settings) -> AsyncEngine:
    """Build the pooled async engine shared by every request."""
    url = make_url(settings.get_database_url())
    options = {"echo": settings.DB_ECHO, "future": True}

    if url.get_backend_name() == "sqlite":
        engine = create_async_engine(url, **options)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    else:
        engine = create_async_engine(
            url,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_POOL_OVERFLOW,
            pool_pre_ping=True,
            **options,
        )

    logger.info("Database engine created for %s", url.render_as_string(hide_password=True))
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        # This creates the tables if they don't exist
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Tables ready: %s", ", ".join(sorted(SQLModel.metadata.tables)))


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        yield session


async def restart_identity(session: AsyncSession, table: str) -> None:
    """Restart a table's id generator at 1."""
    if session.get_bind().dialect.name != "postgresql":
        # SQLite rowids already follow max(id) + 1
        return
    column = IDENTITY_COLUMNS[table]
    await session.execute(
        text(f"SELECT setval(pg_get_serial_sequence('{table}', '{column}'), 1, false)")
    )


async def advance_identity(session: AsyncSession, table: str) -> None:
    """Move a table's id generator past the highest id currently stored."""
    if session.get_bind().dialect.name != "postgresql":
        return
    column = IDENTITY_COLUMNS[table]
    await session.execute(
        text(
            f"SELECT setval(pg_get_serial_sequence('{table}', '{column}'), "
            f'COALESCE(MAX("{column}"), 0) + 1, false) FROM {table}'
        )
    )
