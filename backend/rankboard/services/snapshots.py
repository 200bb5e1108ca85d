"""Per-user saved tables."""

from __future__ import annotations

import re
from collections.abc import Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ranktable.payload import TablePayload

from rankboard.core.logging import get_logger
from rankboard.models.tables import UserTableRecord

logger = get_logger(__name__)

_FORBIDDEN_USER_ID_CHARS = re.compile(r'[\t\n\r/<>:"|*?\\]')
USER_ID_MIN_LENGTH = 2
USER_ID_MAX_LENGTH = 50


class InvalidUserIdError(ValueError):
    """User ids are 2-50 characters without edge whitespace or path/URL-unsafe characters."""


class DefaultSnapshotError(ValueError):
    """The default table cannot be deleted; mark another table as default first."""


def is_valid_user_id(user_id: str) -> bool:
    if len(user_id.strip()) < USER_ID_MIN_LENGTH or len(user_id) > USER_ID_MAX_LENGTH:
        return False
    if user_id != user_id.strip():
        return False
    return not _FORBIDDEN_USER_ID_CHARS.search(user_id)


def _require_valid(user_id: str) -> None:
    if not is_valid_user_id(user_id):
        raise InvalidUserIdError(
            "Invalid user id: use 2-50 characters without leading/trailing spaces, "
            'tabs, newlines or any of / < > : " | * ? \\'
        )


async def save_snapshot(
    session: AsyncSession,
    user_id: str,
    table: TablePayload,
    *,
    name: str | None = None,
    description: str | None = None,
    is_default: bool = False,
) -> UserTableRecord:
    """Create or overwrite the saved table for `user_id`."""

    _require_valid(user_id)
    payload = table.model_dump(mode="json", by_alias=True)

    record = await session.scalar(select(UserTableRecord).where(UserTableRecord.user_id == user_id))
    if record is None:
        record = UserTableRecord(user_id=user_id, name=name or user_id, payload=payload)
        session.add(record)
    else:
        record.name = name or user_id
        record.payload = payload
    record.description = description
    record.is_default = is_default

    if is_default:
        await session.execute(
            update(UserTableRecord)
            .where(UserTableRecord.user_id != user_id, UserTableRecord.is_default.is_(True))
            .values(is_default=False)
        )

    await session.commit()
    await session.refresh(record)
    logger.info("user_table.saved", user_id=user_id, is_default=is_default)
    return record


async def load_snapshot(session: AsyncSession, user_id: str) -> UserTableRecord | None:
    _require_valid(user_id)
    return await session.scalar(select(UserTableRecord).where(UserTableRecord.user_id == user_id))


async def delete_snapshot(session: AsyncSession, user_id: str) -> bool:
    record = await load_snapshot(session, user_id)
    if record is None:
        return False
    if record.is_default:
        raise DefaultSnapshotError(f"Cannot delete the default table ({user_id})")
    await session.delete(record)
    await session.commit()
    logger.info("user_table.deleted", user_id=user_id)
    return True


async def reset_snapshot(session: AsyncSession, user_id: str, table: TablePayload) -> UserTableRecord:
    """Overwrite a user's saved table with `table`, keeping its name; a reset table is never the default."""

    existing = await load_snapshot(session, user_id)
    return await save_snapshot(
        session,
        user_id,
        table,
        name=existing.name if existing is not None else None,
        description=existing.description if existing is not None else None,
        is_default=False,
    )


async def list_snapshots(session: AsyncSession) -> Sequence[UserTableRecord]:
    results = await session.scalars(select(UserTableRecord).order_by(UserTableRecord.updated_at.desc()))
    return list(results)


async def default_snapshot(session: AsyncSession) -> UserTableRecord | None:
    stmt = (
        select(UserTableRecord)
        .where(UserTableRecord.is_default.is_(True))
        .order_by(UserTableRecord.updated_at.desc())
        .limit(1)
    )
    return await session.scalar(stmt)


def snapshot_table(record: UserTableRecord) -> TablePayload:
    return TablePayload.model_validate(record.payload)
