"""Pydantic schemas for table and user-table endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ranktable.payload import IdValue, TablePayload


class _CamelSchema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CellUpdate(_CamelSchema):
    entity_id: IdValue = Field(..., description="Entity (row) id.")
    column_id: IdValue = Field(..., description="Column id.")
    value: str | None = Field(default=None, description="Raw cell value, e.g. '82.1/79.4' or '75?'.")
    notes: str | None = Field(default=None, description="Free-text notes for the cell.")


class EntityUpdate(_CamelSchema):
    """Partial entity edit; omitted fields keep their stored value."""

    display_name: str | None = None
    full_name: str | None = None
    external_name: str | None = None
    hidden: bool | None = None
    show_beside_column_header: bool | None = None


class ColumnUpdate(_CamelSchema):
    """Partial column edit; send an empty string to clear the notes."""

    key: str | None = None
    full_name: str | None = None
    notes: str | None = None
    hidden: bool | None = None
    is_info_field: bool | None = None
    show_beside_entity_name: bool | None = None


class OrderUpdate(_CamelSchema):
    entity_order: list[IdValue] | None = Field(default=None, description="Entity ids in display order.")
    column_order: list[IdValue] | None = Field(default=None, description="Column ids in display order.")


class ShowHiddenRequest(_CamelSchema):
    entity_ids: list[IdValue] = Field(default_factory=list)
    column_ids: list[IdValue] = Field(default_factory=list)


class InfoFieldCreate(_CamelSchema):
    key: str = Field(..., min_length=1, description="Column name as it appears in the CSV header.")
    id: int | None = Field(default=None, ge=1, description="Numeric column id; the next free id when omitted.")
    full_name: str | None = None
    notes: str | None = None


class DiagnosticOut(_CamelSchema):
    code: str
    subject: str
    message: str


class ImportSummary(_CamelSchema):
    mode: Literal["replace", "merge"]
    counts: dict[str, int] = Field(default_factory=dict, description="Decoded entities, columns, cells and skips.")
    merged: dict[str, int] | None = Field(default=None, description="Created/updated counts for merge imports.")
    diagnostics: list[DiagnosticOut] = Field(default_factory=list)


class UserTableSave(_CamelSchema):
    name: str | None = Field(default=None, description="Display name; defaults to the user id.")
    description: str | None = None
    is_default: bool = Field(default=False, description="Mark this table as the one new visitors load.")
    table: TablePayload


class UserTableSummary(_CamelSchema):
    user_id: str
    name: str
    description: str | None = None
    is_default: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserTableOut(UserTableSummary):
    table: TablePayload
