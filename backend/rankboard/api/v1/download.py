"""ZIP export of the stored table or of a client's current view."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ranktable.archive import bundle_filename, iter_model_bundle
from ranktable.model import TableModel
from ranktable.payload import TablePayload, decode_payload
from ranktable.results import TableFormatError

from rankboard.api import deps
from rankboard.core.config import AppSettings
from rankboard.core.logging import get_logger
from rankboard.services import table_service

router = APIRouter()
logger = get_logger(__name__)


def _bundle_response(model: TableModel, settings: AppSettings, *, visible_only: bool) -> StreamingResponse:
    try:
        chunks = iter_model_bundle(model, visible_only=visible_only, chunk_size=settings.archive_chunk_size)
    except TableFormatError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    filename = bundle_filename()
    logger.info("download.bundle.started", filename=filename, visible_only=visible_only, **model.stats())
    return StreamingResponse(
        chunks,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/download", summary="Download the stored table as a ZIP bundle.")
async def download_table(
    settings: AppSettings = Depends(deps.get_app_settings),
    db_session: AsyncSession = Depends(deps.get_db_session),
) -> StreamingResponse:
    model = await table_service.load_table(db_session)
    return _bundle_response(model, settings, visible_only=False)


@router.post("/download", summary="Download the posted view (visible rows and columns only) as a ZIP bundle.")
async def download_view(
    payload: TablePayload,
    settings: AppSettings = Depends(deps.get_app_settings),
) -> StreamingResponse:
    result = decode_payload(payload)
    if result.diagnostics:
        logger.warning("download.payload.skipped", count=len(result.diagnostics))
    return _bundle_response(result.model, settings, visible_only=True)
