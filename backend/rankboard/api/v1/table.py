"""Endpoints for reading, editing and importing the shared table."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from ranktable.csv_codec import decode
from ranktable.payload import (
    CellPayload,
    ColumnPayload,
    EntityPayload,
    TablePayload,
    cell_payload,
    column_payload,
    entity_payload,
    to_payload,
)
from ranktable.results import TableFormatError

from rankboard.api import deps
from rankboard.core.config import AppSettings
from rankboard.core.logging import get_logger
from rankboard.models.schemas import (
    CellUpdate,
    ColumnUpdate,
    DiagnosticOut,
    EntityUpdate,
    ImportSummary,
    InfoFieldCreate,
    OrderUpdate,
    ShowHiddenRequest,
)
from rankboard.services import table_service

router = APIRouter()
logger = get_logger(__name__)


def _not_found(exc: table_service.UnknownItemError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc.args[0]))


def _conflict(exc: table_service.ItemConflictError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


@router.get("/table", response_model=TablePayload, summary="Current table as a structured payload.")
async def get_table(db_session: AsyncSession = Depends(deps.get_db_session)) -> TablePayload:
    model = await table_service.load_table(db_session)
    return to_payload(model)


@router.put("/table/cells", response_model=CellPayload, summary="Create or update one cell.")
async def put_cell(
    update: CellUpdate,
    db_session: AsyncSession = Depends(deps.get_db_session),
) -> CellPayload:
    try:
        cell = await table_service.upsert_cell(
            db_session,
            update.entity_id,
            update.column_id,
            update.value or None,
            update.notes or None,
        )
    except table_service.UnknownItemError as exc:
        raise _not_found(exc) from exc

    return cell_payload(cell)


@router.delete(
    "/table/cells/{entity_id}/{column_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete one cell.",
)
async def delete_cell(
    entity_id: str,
    column_id: str,
    db_session: AsyncSession = Depends(deps.get_db_session),
) -> None:
    try:
        await table_service.delete_cell(db_session, entity_id, column_id)
    except table_service.UnknownItemError as exc:
        raise _not_found(exc) from exc


@router.put("/table/entities/{entity_id}", response_model=EntityPayload, summary="Rename or flag one entity.")
async def put_entity(
    entity_id: str,
    update: EntityUpdate,
    db_session: AsyncSession = Depends(deps.get_db_session),
) -> EntityPayload:
    try:
        entity = await table_service.update_entity(db_session, entity_id, update.model_dump(exclude_none=True))
    except table_service.UnknownItemError as exc:
        raise _not_found(exc) from exc
    return entity_payload(entity)


@router.put("/table/columns/{column_id}", response_model=ColumnPayload, summary="Rename or flag one column.")
async def put_column(
    column_id: str,
    update: ColumnUpdate,
    db_session: AsyncSession = Depends(deps.get_db_session),
) -> ColumnPayload:
    changes = update.model_dump(exclude_none=True)
    if "notes" in changes:
        changes["notes"] = changes["notes"] or None

    try:
        column = await table_service.update_column(db_session, column_id, changes)
    except table_service.UnknownItemError as exc:
        raise _not_found(exc) from exc
    except table_service.ItemConflictError as exc:
        raise _conflict(exc) from exc
    return column_payload(column)


@router.put("/table/order", response_model=TablePayload, summary="Store new entity and/or column display orders.")
async def put_order(
    update: OrderUpdate,
    db_session: AsyncSession = Depends(deps.get_db_session),
) -> TablePayload:
    model = await table_service.reorder(
        db_session,
        entity_order=update.entity_order,
        column_order=update.column_order,
    )
    return to_payload(model)


@router.post("/table/hidden/show", response_model=TablePayload, summary="Show items that are hidden by default.")
async def show_hidden_items(
    request: ShowHiddenRequest,
    db_session: AsyncSession = Depends(deps.get_db_session),
) -> TablePayload:
    model = await table_service.show_hidden(db_session, entity_ids=request.entity_ids, column_ids=request.column_ids)
    return to_payload(model)


@router.post(
    "/table/info-fields",
    response_model=ColumnPayload,
    status_code=status.HTTP_201_CREATED,
    summary="Add an info-field column.",
)
async def create_info_field(
    request: InfoFieldCreate,
    db_session: AsyncSession = Depends(deps.get_db_session),
) -> ColumnPayload:
    try:
        column = await table_service.add_info_field(
            db_session,
            request.key,
            column_id=request.id,
            full_name=request.full_name,
            notes=request.notes,
        )
    except table_service.ItemConflictError as exc:
        raise _conflict(exc) from exc
    return column_payload(column)


@router.delete(
    "/table/info-fields/{column_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an info-field column and its cells.",
)
async def delete_info_field(column_id: str, db_session: AsyncSession = Depends(deps.get_db_session)) -> None:
    try:
        await table_service.remove_info_field(db_session, column_id)
    except table_service.UnknownItemError as exc:
        raise _not_found(exc) from exc


@router.post(
    "/table/import",
    response_model=ImportSummary,
    status_code=status.HTTP_200_OK,
    summary="Import the main CSV (and optional notes CSV), replacing or merging into the stored table.",
)
async def import_table(
    main: UploadFile = File(..., description="Main ranking CSV with control rows."),
    notes: UploadFile | None = File(default=None, description="Notes CSV in the same layout."),
    mode: Literal["replace", "merge"] = Form(default="replace"),
    settings: AppSettings = Depends(deps.get_app_settings),
    db_session: AsyncSession = Depends(deps.get_db_session),
) -> ImportSummary:
    main_csv = await deps.read_csv_upload(main, max_bytes=settings.max_upload_bytes)
    notes_csv = await deps.read_csv_upload(notes, max_bytes=settings.max_upload_bytes) if notes is not None else None

    try:
        result = decode(main_csv, notes_csv)
    except TableFormatError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    merged = None
    if mode == "merge":
        merged = (await table_service.merge_table(db_session, result.model)).as_dict()
    else:
        await table_service.replace_table(db_session, result.model)

    logger.info(
        "table.import.completed",
        mode=mode,
        filename=main.filename,
        **result.counts.as_dict(),
    )
    return ImportSummary(
        mode=mode,
        counts=result.counts.as_dict(),
        merged=merged,
        diagnostics=[
            DiagnosticOut(code=item.code, subject=item.subject, message=item.message) for item in result.diagnostics
        ],
    )
