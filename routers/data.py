import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_session
from errors import StoreError
from importer import clear_all_data, count_rows, import_dataset, load_import_sources
from schemas import DataCounts, ItemResponse, WriteResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/data", tags=["data"])


@router.get("/status", response_model=ItemResponse[DataCounts])
async def data_status(session: AsyncSession = Depends(get_session)):
    return {"data": await count_rows(session)}


@router.post("/insert", response_model=WriteResponse[DataCounts])
async def insert_data(request: Request):
    """Replace the whole dataset with the JSON files in DATA_DIR."""
    settings = request.app.state.settings
    dataset = load_import_sources(settings.DATA_DIR)

    try:
        summary = await import_dataset(request.app.state.session_factory, dataset)
    except SQLAlchemyError as exc:
        logger.error("Bulk import rolled back: %s", exc)
        raise StoreError(
            "Failed to insert data from JSON files",
            details=str(getattr(exc, "orig", None) or exc),
        ) from exc

    return {"message": "Data inserted successfully from JSON files", "data": summary}


@router.delete("/clear")
async def clear_data(request: Request):
    await clear_all_data(request.app.state.session_factory)
    return {"status": "success", "message": "All data cleared successfully"}
