"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import HTTPException, UploadFile, status

from rankboard.core.config import AppSettings, get_settings
from rankboard.core.db import get_session


def get_app_settings() -> AppSettings:
    """Expose application settings as a dependency."""

    return get_settings()


async def get_db_session():
    """Provide an async SQLAlchemy session."""

    async with get_session() as session:
        yield session


async def read_csv_upload(upload: UploadFile, *, max_bytes: int) -> str:
    """Read an uploaded CSV as UTF-8 text, enforcing the size limit."""

    raw = await upload.read(max_bytes + 1)
    if len(raw) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"{upload.filename or 'upload'} exceeds {max_bytes} bytes.",
        )
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"{upload.filename or 'upload'} is not valid UTF-8.",
        ) from exc
