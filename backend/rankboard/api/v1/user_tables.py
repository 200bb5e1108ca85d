"""Per-user saved tables."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ranktable.payload import to_payload

from rankboard.api import deps
from rankboard.models.schemas import UserTableOut, UserTableSave, UserTableSummary
from rankboard.models.tables import UserTableRecord
from rankboard.services import snapshots, table_service

router = APIRouter()

DEFAULT_USER_ID = "default"
DEFAULT_TABLE_NAME = "Default table"


def _summary(record: UserTableRecord) -> UserTableSummary:
    return UserTableSummary(
        user_id=record.user_id,
        name=record.name,
        description=record.description,
        is_default=record.is_default,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _detail(record: UserTableRecord) -> UserTableOut:
    return UserTableOut(**_summary(record).model_dump(), table=snapshots.snapshot_table(record))


def _bad_user_id(exc: snapshots.InvalidUserIdError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.get("", response_model=list[UserTableSummary], summary="List saved tables, most recent first.")
async def list_user_tables(db_session: AsyncSession = Depends(deps.get_db_session)) -> list[UserTableSummary]:
    return [_summary(record) for record in await snapshots.list_snapshots(db_session)]


@router.get(
    "/default",
    response_model=UserTableOut,
    summary="The table marked as default, or the shared table when none is marked.",
)
async def get_default_table(db_session: AsyncSession = Depends(deps.get_db_session)) -> UserTableOut:
    record = await snapshots.default_snapshot(db_session)
    if record is not None:
        return _detail(record)

    model = await table_service.load_table(db_session)
    return UserTableOut(user_id=DEFAULT_USER_ID, name=DEFAULT_TABLE_NAME, table=to_payload(model))


@router.get("/{user_id}", response_model=UserTableOut, summary="Load one user's saved table.")
async def get_user_table(user_id: str, db_session: AsyncSession = Depends(deps.get_db_session)) -> UserTableOut:
    try:
        record = await snapshots.load_snapshot(db_session, user_id)
    except snapshots.InvalidUserIdError as exc:
        raise _bad_user_id(exc) from exc
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User table not found.")
    return _detail(record)


@router.put("/{user_id}", response_model=UserTableOut, summary="Save (create or overwrite) a user's table.")
async def put_user_table(
    user_id: str,
    request: UserTableSave,
    db_session: AsyncSession = Depends(deps.get_db_session),
) -> UserTableOut:
    try:
        record = await snapshots.save_snapshot(
            db_session,
            user_id,
            request.table,
            name=request.name,
            description=request.description,
            is_default=request.is_default,
        )
    except snapshots.InvalidUserIdError as exc:
        raise _bad_user_id(exc) from exc
    return _detail(record)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a user's saved table.")
async def delete_user_table(user_id: str, db_session: AsyncSession = Depends(deps.get_db_session)) -> None:
    try:
        deleted = await snapshots.delete_snapshot(db_session, user_id)
    except (snapshots.InvalidUserIdError, snapshots.DefaultSnapshotError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User table not found.")


@router.put(
    "/{user_id}/reset",
    response_model=UserTableOut,
    summary="Replace a user's saved table with the current shared table.",
)
async def reset_user_table(user_id: str, db_session: AsyncSession = Depends(deps.get_db_session)) -> UserTableOut:
    model = await table_service.load_table(db_session)
    try:
        record = await snapshots.reset_snapshot(db_session, user_id, to_payload(model))
    except snapshots.InvalidUserIdError as exc:
        raise _bad_user_id(exc) from exc
    return _detail(record)
