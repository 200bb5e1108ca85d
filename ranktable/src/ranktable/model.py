"""In-memory ranking table: entities (rows), columns, cells and their ordering."""

from __future__ import annotations

import copy
import dataclasses
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Sequence, TypeVar

from .layout import RESERVED_ID_LIMIT, UNORDERED_SORT_INDEX

_ID_RE = re.compile(r"^\d+$", re.ASCII)
_ID_FLOOR = 99


class EntityKind(str, Enum):
    CONTROL = "control"
    REAL = "real"


class ColumnKind(str, Enum):
    METRIC = "metric"
    INFO_FIELD = "info_field"


class ItemKind(str, Enum):
    ENTITY = "entity"
    COLUMN = "column"


def is_reserved_id(item_id: int) -> bool:
    """Ids below 10 belong to control rows/columns on both axes."""

    return item_id < RESERVED_ID_LIMIT


def parse_id(value: Any) -> int | None:
    """Parse a positive integer id from an int or a digit string; anything else gives None."""

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 1 else None
    if value is None:
        return None
    text = str(value).strip()
    if not _ID_RE.match(text):
        return None
    parsed = int(text)
    return parsed if parsed >= 1 else None


def canonical_id(value: Any) -> str | None:
    parsed = parse_id(value)
    return None if parsed is None else str(parsed)


def cell_id(entity_id: Any, column_id: Any) -> str:
    return f"{canonical_id(entity_id)}_{canonical_id(column_id)}"


def resolve_visibility(*, persisted_hidden: bool, session_hidden: bool, reserved: bool) -> bool:
    """Combine the persisted (default-hidden) and session (user-hidden) layers."""

    return not (reserved or persisted_hidden or session_hidden)


@dataclass(slots=True)
class Entity:
    id: int
    display_name: str
    full_name: str | None = None
    external_name: str | None = None
    hidden: bool = False
    sort_index: int = 0
    show_beside_column_header: bool = False
    is_real_entity: bool = True

    @property
    def kind(self) -> EntityKind:
        if is_reserved_id(self.id) or not self.is_real_entity:
            return EntityKind.CONTROL
        return EntityKind.REAL


@dataclass(slots=True)
class Column:
    id: int
    key: str
    full_name: str = ""
    notes: str | None = None
    hidden: bool = False
    sort_index: int = 0
    is_info_field: bool = False
    show_beside_entity_name: bool = False

    def __post_init__(self) -> None:
        if not self.full_name:
            self.full_name = self.key

    @property
    def kind(self) -> ColumnKind:
        return ColumnKind.INFO_FIELD if self.is_info_field else ColumnKind.METRIC

    @property
    def reserved(self) -> bool:
        return is_reserved_id(self.id)


@dataclass(slots=True)
class Cell:
    entity_id: int
    column_id: int
    value: str | None = None
    notes: str | None = None

    @property
    def id(self) -> str:
        return cell_id(self.entity_id, self.column_id)


_Item = TypeVar("_Item", Entity, Column)


def _sort_by_order(items: Iterable[_Item], order: Sequence[int]) -> list[_Item]:
    positions: dict[int, int] = {}
    for position, item_id in enumerate(order):
        positions.setdefault(item_id, position)
    tail = len(order)
    # sorted() is stable, so unlisted items keep their relative order at the end.
    return sorted(items, key=lambda item: positions.get(item.id, tail))


def _require_id(value: Any) -> int:
    parsed = parse_id(value)
    if parsed is None:
        raise KeyError(f"Invalid id: {value!r}")
    return parsed


class TableModel:
    """Entities, columns and cells plus the two display orders.

    Callers own the instance for one decode/mutate/encode cycle; nothing here is
    shared between instances.
    """

    def __init__(self) -> None:
        self._entities: dict[int, Entity] = {}
        self._columns: dict[int, Column] = {}
        self._cells: dict[str, Cell] = {}
        self.entity_order: list[int] = []
        self.column_order: list[int] = []
        self._session_hidden: dict[ItemKind, set[int]] = {ItemKind.ENTITY: set(), ItemKind.COLUMN: set()}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TableModel):
            return NotImplemented
        return (
            self._entities == other._entities
            and self._columns == other._columns
            and self._cells == other._cells
            and self.entity_order == other.entity_order
            and self.column_order == other.column_order
            and self._session_hidden == other._session_hidden
        )

    def __repr__(self) -> str:
        stats = self.stats()
        return f"TableModel(entities={stats['entities']}, columns={stats['columns']}, cells={stats['cells']})"

    # ------------------------------------------------------------------
    # Contents
    # ------------------------------------------------------------------

    @property
    def entities(self) -> list[Entity]:
        return list(self._entities.values())

    @property
    def columns(self) -> list[Column]:
        return list(self._columns.values())

    @property
    def cells(self) -> list[Cell]:
        return list(self._cells.values())

    def entity(self, entity_id: Any) -> Entity | None:
        parsed = parse_id(entity_id)
        return None if parsed is None else self._entities.get(parsed)

    def column(self, column_id: Any) -> Column | None:
        parsed = parse_id(column_id)
        return None if parsed is None else self._columns.get(parsed)

    def column_by_key(self, key: str) -> Column | None:
        for column in self._columns.values():
            if column.key == key:
                return column
        return None

    def add_entity(self, entity: Entity) -> Entity:
        if entity.id < 1 or entity.id in self._entities:
            raise ValueError(f"Entity id {entity.id} is invalid or already present")
        entity.sort_index = len(self.entity_order)
        self._entities[entity.id] = entity
        self.entity_order.append(entity.id)
        return entity

    def add_column(self, column: Column) -> Column:
        if column.id < 1 or column.id in self._columns:
            raise ValueError(f"Column id {column.id} is invalid or already present")
        column.sort_index = len(self.column_order)
        self._columns[column.id] = column
        self.column_order.append(column.id)
        return column

    def update_entity(self, entity_id: Any, **changes: Any) -> Entity:
        key = _require_id(entity_id)
        if key not in self._entities:
            raise KeyError(f"Unknown entity id: {entity_id!r}")
        if "id" in changes:
            raise ValueError("Entity ids cannot be changed")
        updated = dataclasses.replace(self._entities[key], **changes)
        self._entities[key] = updated
        return updated

    def update_column(self, column_id: Any, **changes: Any) -> Column:
        key = _require_id(column_id)
        if key not in self._columns:
            raise KeyError(f"Unknown column id: {column_id!r}")
        if "id" in changes:
            raise ValueError("Column ids cannot be changed")
        updated = dataclasses.replace(self._columns[key], **changes)
        self._columns[key] = updated
        return updated

    def remove_column(self, column_id: Any) -> Column:
        """Drop a column together with its cells and its place in the order."""

        key = _require_id(column_id)
        column = self._columns.pop(key, None)
        if column is None:
            raise KeyError(f"Unknown column id: {column_id!r}")
        self.column_order = [item_id for item_id in self.column_order if item_id != key]
        self._session_hidden[ItemKind.COLUMN].discard(key)
        for cell in [cell for cell in self._cells.values() if cell.column_id == key]:
            del self._cells[cell.id]
        return column

    def next_entity_id(self) -> int:
        return max([_ID_FLOOR, *self._entities]) + 1

    def next_column_id(self) -> int:
        return max([_ID_FLOOR, *self._columns]) + 1

    def clear(self) -> None:
        self._entities.clear()
        self._columns.clear()
        self._cells.clear()
        self.entity_order = []
        self.column_order = []
        for hidden in self._session_hidden.values():
            hidden.clear()

    def copy(self) -> "TableModel":
        return copy.deepcopy(self)

    def stats(self) -> dict[str, int]:
        columns = self._columns.values()
        return {
            "entities": sum(1 for entity in self._entities.values() if entity.kind is EntityKind.REAL),
            "columns": len(self._columns),
            "metric_columns": sum(1 for column in columns if column.kind is ColumnKind.METRIC),
            "info_field_columns": sum(1 for column in columns if column.kind is ColumnKind.INFO_FIELD),
            "cells": len(self._cells),
        }

    # ------------------------------------------------------------------
    # Cells
    # ------------------------------------------------------------------

    def get_cell(self, entity_id: Any, column_id: Any) -> Cell | None:
        entity_key = canonical_id(entity_id)
        column_key = canonical_id(column_id)
        if entity_key is None or column_key is None:
            return None
        return self._cells.get(f"{entity_key}_{column_key}")

    def upsert_cell(
        self,
        entity_id: Any,
        column_id: Any,
        value: str | None,
        notes: str | None = None,
    ) -> Cell:
        entity_key = _require_id(entity_id)
        column_key = _require_id(column_id)
        if entity_key not in self._entities:
            raise KeyError(f"Unknown entity id: {entity_id!r}")
        if column_key not in self._columns:
            raise KeyError(f"Unknown column id: {column_id!r}")

        existing = self._cells.get(cell_id(entity_key, column_key))
        if existing is not None:
            existing.value = value
            existing.notes = notes
            return existing

        cell = Cell(entity_id=entity_key, column_id=column_key, value=value, notes=notes)
        self._cells[cell.id] = cell
        return cell

    def remove_cell(self, entity_id: Any, column_id: Any) -> Cell:
        cell = self.get_cell(entity_id, column_id)
        if cell is None:
            raise KeyError(f"No cell for entity {entity_id!r} and column {column_id!r}")
        del self._cells[cell.id]
        return cell

    def cells_for_entity(self, entity_id: Any) -> list[Cell]:
        key = parse_id(entity_id)
        return [cell for cell in self._cells.values() if cell.entity_id == key]

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def reorder_entities(self, new_order: Iterable[Any]) -> None:
        self.entity_order = [item_id for item_id in map(parse_id, new_order) if item_id is not None]
        self._restamp(self._entities.values(), self.entity_order)

    def reorder_columns(self, new_order: Iterable[Any]) -> None:
        self.column_order = [item_id for item_id in map(parse_id, new_order) if item_id is not None]
        self._restamp(self._columns.values(), self.column_order)

    @staticmethod
    def _restamp(items: Iterable[Entity | Column], order: list[int]) -> None:
        positions: dict[int, int] = {}
        for position, item_id in enumerate(order):
            positions.setdefault(item_id, position)
        for item in items:
            item.sort_index = positions.get(item.id, UNORDERED_SORT_INDEX)

    def ordered_entities(self) -> list[Entity]:
        """Every real, non-reserved entity in display order, hidden ones included."""

        candidates = (entity for entity in self._entities.values() if entity.kind is EntityKind.REAL)
        return _sort_by_order(candidates, self.entity_order)

    def ordered_columns(self, kind: ColumnKind | None = None, *, include_reserved: bool = False) -> list[Column]:
        candidates = (
            column
            for column in self._columns.values()
            if (include_reserved or not column.reserved) and (kind is None or column.kind is kind)
        )
        return _sort_by_order(candidates, self.column_order)

    # ------------------------------------------------------------------
    # Visibility
    # ------------------------------------------------------------------

    def _lookup(self, kind: ItemKind, item_id: int) -> Entity | Column | None:
        source = self._entities if kind is ItemKind.ENTITY else self._columns
        return source.get(item_id)

    def _is_visible(self, kind: ItemKind, item: Entity | Column) -> bool:
        return resolve_visibility(
            persisted_hidden=item.hidden,
            session_hidden=item.id in self._session_hidden[kind],
            reserved=is_reserved_id(item.id),
        )

    def effective_hidden(self, kind: ItemKind, item_id: Any) -> bool:
        key = _require_id(item_id)
        item = self._lookup(kind, key)
        if item is None:
            raise KeyError(f"Unknown {kind.value} id: {item_id!r}")
        return item.hidden or key in self._session_hidden[kind]

    def visible_entities(self) -> list[Entity]:
        candidates = (
            entity
            for entity in self._entities.values()
            if entity.is_real_entity and self._is_visible(ItemKind.ENTITY, entity)
        )
        return _sort_by_order(candidates, self.entity_order)

    def visible_columns(self, kind: ColumnKind | None = None) -> list[Column]:
        candidates = (
            column
            for column in self._columns.values()
            if (kind is None or column.kind is kind) and self._is_visible(ItemKind.COLUMN, column)
        )
        return _sort_by_order(candidates, self.column_order)

    def session_hidden(self, kind: ItemKind) -> frozenset[int]:
        return frozenset(self._session_hidden[kind])

    def set_hidden(self, kind: ItemKind, item_id: Any, hidden: bool) -> None:
        key = _require_id(item_id)
        if self._lookup(kind, key) is None:
            raise KeyError(f"Unknown {kind.value} id: {item_id!r}")
        if hidden:
            self._session_hidden[kind].add(key)
        else:
            self._session_hidden[kind].discard(key)

    def toggle_hidden(self, kind: ItemKind, item_id: Any) -> bool:
        """Flip the session layer for one item and return the new session state."""

        key = _require_id(item_id)
        hidden = key not in self._session_hidden[kind]
        self.set_hidden(kind, key, hidden)
        return hidden

    def show_previously_hidden(self, kind: ItemKind, item_ids: Iterable[Any]) -> None:
        """Clear the session layer and drop a persisted hidden flag for each id.

        Clearing the persisted flag is one-way: only a full reset brings back a
        default-hidden item.
        """

        for item_id in item_ids:
            key = parse_id(item_id)
            if key is None:
                continue
            self._session_hidden[kind].discard(key)
            item = self._lookup(kind, key)
            if item is not None and item.hidden:
                item.hidden = False

    def hidden_items(self, kind: ItemKind) -> list[Entity] | list[Column]:
        if kind is ItemKind.ENTITY:
            entities = [entity for entity in self.ordered_entities() if self.effective_hidden(kind, entity.id)]
            return entities
        return [column for column in self.ordered_columns() if self.effective_hidden(kind, column.id)]
