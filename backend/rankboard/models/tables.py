"""SQLAlchemy models for the ranking table and saved user tables."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base declarative model."""


class EntityRecord(Base):
    """One ranked entity (table row); ids below 10 are control rows."""

    __tablename__ = "entities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    full_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    external_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    hidden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sort_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    show_beside_column_header: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_real_entity: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class ColumnRecord(Base):
    """A metric or info-field column."""

    __tablename__ = "columns"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    key: Mapped[str] = mapped_column(Text, nullable=False)
    full_name: Mapped[str] = mapped_column(Text, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    hidden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sort_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_info_field: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    show_beside_entity_name: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class CellRecord(Base):
    """Value and notes for one (entity, column) pair."""

    __tablename__ = "cells"
    __table_args__ = (
        UniqueConstraint("entity_id", "column_id", name="uq_cell_pair"),
        Index("idx_cells_entity_id", "entity_id"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False)
    column_id: Mapped[int] = mapped_column(Integer, nullable=False)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class UserTableRecord(Base):
    """A user's saved table, stored as the camelCase API payload."""

    __tablename__ = "user_tables"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
