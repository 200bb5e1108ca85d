"""API payload shape for a table: the pre-parsed alternative to the CSV pair."""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from .layout import NON_DATA_COLUMNS
from .model import Cell, Column, Entity, ItemKind, TableModel, parse_id
from .results import DecodeResult, TableFormatError

IdValue = Union[int, str]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EntityPayload(_CamelModel):
    id: IdValue
    display_name: str = ""
    full_name: str | None = None
    external_name: str | None = None
    hidden: bool = False
    sort_index: int = 0
    show_beside_column_header: bool = False
    is_real_entity: bool = True


class ColumnPayload(_CamelModel):
    id: IdValue
    key: str
    full_name: str = ""
    notes: str | None = None
    hidden: bool = False
    sort_index: int = 0
    is_info_field: bool = False
    show_beside_entity_name: bool = False


class CellPayload(_CamelModel):
    id: str | None = Field(default=None, description="Derived as '{entityId}_{columnId}'.")
    entity_id: IdValue
    column_id: IdValue
    value: str | None = None
    notes: str | None = None


class TablePayload(_CamelModel):
    entities: list[EntityPayload] = Field(default_factory=list)
    columns: list[ColumnPayload] = Field(default_factory=list)
    cells: list[CellPayload] = Field(default_factory=list)
    entity_order: list[IdValue] = Field(default_factory=list)
    column_order: list[IdValue] = Field(default_factory=list)
    hidden_entity_ids: list[IdValue] = Field(default_factory=list, description="Session-hidden entities.")
    hidden_column_ids: list[IdValue] = Field(default_factory=list, description="Session-hidden columns.")


def _order_from_sort_index(ranked: list[tuple[int, int]]) -> list[int]:
    return [item_id for _, item_id in sorted(ranked, key=lambda pair: pair[0])]


def _explicit_order(ids: list[IdValue]) -> list[int]:
    return [item_id for item_id in map(parse_id, ids) if item_id is not None]


def decode_payload(payload: TablePayload | dict[str, Any]) -> DecodeResult:
    """Build a TableModel from an API payload, with the same diagnostics as a CSV decode."""

    if not isinstance(payload, TablePayload):
        try:
            payload = TablePayload.model_validate(payload)
        except ValidationError as exc:
            raise TableFormatError(f"Invalid table payload: {exc}") from exc

    result = DecodeResult(model=TableModel())
    model = result.model
    column_ranks: list[tuple[int, int]] = []
    entity_ranks: list[tuple[int, int]] = []

    for item in payload.columns:
        column_id = parse_id(item.id)
        if column_id is None:
            result.skip("column.invalid_id", item.key, f"id {item.id!r} is not a positive integer; column skipped")
            continue
        if not item.key or item.key in NON_DATA_COLUMNS:
            result.skip("column.reserved_name", item.key, "name is empty or reserved; column skipped")
            continue
        if model.column(column_id) is not None:
            result.skip("column.duplicate_id", item.key, f"id {column_id} is already used; column skipped")
            continue
        model.add_column(
            Column(
                id=column_id,
                key=item.key,
                full_name=item.full_name,
                notes=item.notes or None,
                hidden=item.hidden,
                is_info_field=item.is_info_field,
                show_beside_entity_name=item.show_beside_entity_name,
            )
        )
        column_ranks.append((item.sort_index, column_id))
        result.counts.columns += 1

    for item in payload.entities:
        entity_id = parse_id(item.id)
        subject = item.display_name or f"entity {item.id!r}"
        if entity_id is None:
            result.skip("entity.invalid_id", subject, f"id {item.id!r} is not a positive integer; entity skipped")
            continue
        if model.entity(entity_id) is not None:
            result.skip("entity.duplicate_id", subject, f"id {entity_id} is already used; entity skipped")
            continue
        model.add_entity(
            Entity(
                id=entity_id,
                display_name=item.display_name,
                full_name=item.full_name,
                external_name=item.external_name,
                hidden=item.hidden,
                show_beside_column_header=item.show_beside_column_header,
                is_real_entity=item.is_real_entity,
            )
        )
        entity_ranks.append((item.sort_index, entity_id))
        result.counts.entities += 1

    for item in payload.cells:
        subject = f"{item.entity_id}_{item.column_id}"
        if model.entity(item.entity_id) is None:
            result.skip("cell.unknown_entity", subject, "entity is not part of the payload; cell skipped")
            continue
        if model.column(item.column_id) is None:
            result.skip("cell.unknown_column", subject, "column is not part of the payload; cell skipped")
            continue
        if not item.value and not item.notes:
            continue
        if model.get_cell(item.entity_id, item.column_id) is not None:
            result.skip("cell.duplicate", subject, "cell appears more than once; the last one wins")
        else:
            result.counts.cells += 1
        model.upsert_cell(item.entity_id, item.column_id, item.value or None, item.notes or None)

    # Explicit orders win; otherwise the payload sortIndex values decide.
    model.reorder_entities(_explicit_order(payload.entity_order) or _order_from_sort_index(entity_ranks))
    model.reorder_columns(_explicit_order(payload.column_order) or _order_from_sort_index(column_ranks))

    for kind, hidden_ids in (
        (ItemKind.ENTITY, payload.hidden_entity_ids),
        (ItemKind.COLUMN, payload.hidden_column_ids),
    ):
        for item_id in hidden_ids:
            known = model.entity(item_id) if kind is ItemKind.ENTITY else model.column(item_id)
            if known is not None:
                model.set_hidden(kind, item_id, True)

    return result


def entity_payload(entity: Entity) -> EntityPayload:
    return EntityPayload(
        id=entity.id,
        display_name=entity.display_name,
        full_name=entity.full_name,
        external_name=entity.external_name,
        hidden=entity.hidden,
        sort_index=entity.sort_index,
        show_beside_column_header=entity.show_beside_column_header,
        is_real_entity=entity.is_real_entity,
    )


def column_payload(column: Column) -> ColumnPayload:
    return ColumnPayload(
        id=column.id,
        key=column.key,
        full_name=column.full_name,
        notes=column.notes,
        hidden=column.hidden,
        sort_index=column.sort_index,
        is_info_field=column.is_info_field,
        show_beside_entity_name=column.show_beside_entity_name,
    )


def cell_payload(cell: Cell) -> CellPayload:
    return CellPayload(
        id=cell.id,
        entity_id=cell.entity_id,
        column_id=cell.column_id,
        value=cell.value,
        notes=cell.notes,
    )


def to_payload(model: TableModel) -> TablePayload:
    return TablePayload(
        entities=[entity_payload(entity) for entity in model.entities],
        columns=[column_payload(column) for column in model.columns],
        cells=[cell_payload(cell) for cell in model.cells],
        entity_order=list(model.entity_order),
        column_order=list(model.column_order),
        hidden_entity_ids=sorted(model.session_hidden(ItemKind.ENTITY)),
        hidden_column_ids=sorted(model.session_hidden(ItemKind.COLUMN)),
    )
