"""Load and persist the shared ranking table through SQLAlchemy."""

from __future__ import annotations

from typing import Any, Callable, Iterable, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ranktable.layout import NON_DATA_COLUMNS
from ranktable.merge import MergeCounts, merge_into
from ranktable.model import Cell, Column, Entity, ItemKind, TableModel, cell_id, parse_id

from rankboard.core.logging import get_logger
from rankboard.models.tables import CellRecord, ColumnRecord, EntityRecord

logger = get_logger(__name__)

_T = TypeVar("_T")


class UnknownItemError(KeyError):
    """Raised when an edit names an entity, column or cell that is not stored."""


class ItemConflictError(ValueError):
    """Raised when a new column clashes with a stored id or name."""


async def load_table(session: AsyncSession) -> TableModel:
    """Rebuild a TableModel from the stored rows."""

    model = TableModel()

    columns = await session.scalars(select(ColumnRecord).order_by(ColumnRecord.sort_index, ColumnRecord.id))
    for record in columns:
        model.add_column(
            Column(
                id=record.id,
                key=record.key,
                full_name=record.full_name,
                notes=record.notes,
                hidden=record.hidden,
                sort_index=record.sort_index,
                is_info_field=record.is_info_field,
                show_beside_entity_name=record.show_beside_entity_name,
            )
        )

    entities = await session.scalars(select(EntityRecord).order_by(EntityRecord.sort_index, EntityRecord.id))
    for record in entities:
        model.add_entity(
            Entity(
                id=record.id,
                display_name=record.display_name,
                full_name=record.full_name,
                external_name=record.external_name,
                hidden=record.hidden,
                sort_index=record.sort_index,
                show_beside_column_header=record.show_beside_column_header,
                is_real_entity=record.is_real_entity,
            )
        )

    cells = await session.scalars(select(CellRecord).order_by(CellRecord.entity_id, CellRecord.column_id))
    for record in cells:
        if model.entity(record.entity_id) is None or model.column(record.column_id) is None:
            logger.warning("table.cell.orphaned", cell_id=record.id)
            continue
        model.upsert_cell(record.entity_id, record.column_id, record.value, record.notes)

    return model


def _cell_record(cell: Cell) -> CellRecord:
    return CellRecord(
        id=cell.id,
        entity_id=cell.entity_id,
        column_id=cell.column_id,
        value=cell.value,
        notes=cell.notes,
    )


async def replace_table(session: AsyncSession, model: TableModel) -> None:
    """Swap the stored table for `model` in one transaction."""

    await session.execute(delete(CellRecord))
    await session.execute(delete(EntityRecord))
    await session.execute(delete(ColumnRecord))
    session.expunge_all()

    session.add_all(
        ColumnRecord(
            id=column.id,
            key=column.key,
            full_name=column.full_name,
            notes=column.notes,
            hidden=column.hidden,
            sort_index=column.sort_index,
            is_info_field=column.is_info_field,
            show_beside_entity_name=column.show_beside_entity_name,
        )
        for column in model.columns
    )
    session.add_all(
        EntityRecord(
            id=entity.id,
            display_name=entity.display_name,
            full_name=entity.full_name,
            external_name=entity.external_name,
            hidden=entity.hidden,
            sort_index=entity.sort_index,
            show_beside_column_header=entity.show_beside_column_header,
            is_real_entity=entity.is_real_entity,
        )
        for entity in model.entities
    )
    session.add_all(_cell_record(cell) for cell in model.cells)
    await session.commit()

    logger.info("table.replaced", **model.stats())


async def merge_table(session: AsyncSession, model: TableModel) -> MergeCounts:
    current = await load_table(session)
    counts = merge_into(current, model)
    await replace_table(session, current)
    logger.info("table.merged", **counts.as_dict())
    return counts


async def upsert_cell(
    session: AsyncSession,
    entity_id: int | str,
    column_id: int | str,
    value: str | None,
    notes: str | None = None,
) -> Cell:
    """Create or update a single cell; both ids must already be stored."""

    entity_key = parse_id(entity_id)
    column_key = parse_id(column_id)
    if entity_key is None or await session.get(EntityRecord, entity_key) is None:
        raise UnknownItemError(f"Unknown entity id: {entity_id!r}")
    if column_key is None or await session.get(ColumnRecord, column_key) is None:
        raise UnknownItemError(f"Unknown column id: {column_id!r}")

    key = cell_id(entity_key, column_key)
    record = await session.get(CellRecord, key)
    if record is None:
        record = CellRecord(id=key, entity_id=entity_key, column_id=column_key)
        session.add(record)
    record.value = value
    record.notes = notes
    await session.commit()

    logger.info("table.cell.upserted", cell_id=key)
    return Cell(entity_id=entity_key, column_id=column_key, value=value, notes=notes)


async def edit_table(session: AsyncSession, edit: Callable[[TableModel], _T]) -> _T:
    """Load the stored table, apply `edit` to it and store the result.

    A `KeyError` from the model (unknown id) becomes `UnknownItemError` and
    nothing is written.
    """

    model = await load_table(session)
    try:
        outcome = edit(model)
    except UnknownItemError:
        raise
    except KeyError as exc:
        raise UnknownItemError(exc.args[0]) from exc
    await replace_table(session, model)
    return outcome


async def update_entity(session: AsyncSession, entity_id: int | str, changes: dict[str, Any]) -> Entity:
    entity = await edit_table(session, lambda model: model.update_entity(entity_id, **changes))
    logger.info("table.entity.updated", entity_id=entity.id, fields=sorted(changes))
    return entity


async def update_column(session: AsyncSession, column_id: int | str, changes: dict[str, Any]) -> Column:
    def _apply(model: TableModel) -> Column:
        if model.column(column_id) is None:
            raise UnknownItemError(f"Unknown column id: {column_id!r}")
        if "key" in changes:
            _check_column_key(model, changes["key"], column_id)
        return model.update_column(column_id, **changes)

    column = await edit_table(session, _apply)
    logger.info("table.column.updated", column_id=column.id, fields=sorted(changes))
    return column


async def reorder(
    session: AsyncSession,
    *,
    entity_order: Iterable[int | str] | None = None,
    column_order: Iterable[int | str] | None = None,
) -> TableModel:
    """Store new display orders; ids left out of an order move to the end."""

    def _apply(model: TableModel) -> TableModel:
        if entity_order is not None:
            model.reorder_entities(_complete_order(entity_order, (entity.id for entity in model.entities)))
        if column_order is not None:
            model.reorder_columns(_complete_order(column_order, (column.id for column in model.columns)))
        return model

    model = await edit_table(session, _apply)
    logger.info("table.reordered", entities=entity_order is not None, columns=column_order is not None)
    return model


async def show_hidden(
    session: AsyncSession,
    *,
    entity_ids: Iterable[int | str] = (),
    column_ids: Iterable[int | str] = (),
) -> TableModel:
    """Clear the stored hidden flag of the given items."""

    def _apply(model: TableModel) -> TableModel:
        model.show_previously_hidden(ItemKind.ENTITY, entity_ids)
        model.show_previously_hidden(ItemKind.COLUMN, column_ids)
        return model

    return await edit_table(session, _apply)


async def add_info_field(
    session: AsyncSession,
    key: str,
    *,
    column_id: int | None = None,
    full_name: str | None = None,
    notes: str | None = None,
) -> Column:
    """Create an info-field column; the id defaults to the next free column id."""

    def _apply(model: TableModel) -> Column:
        _check_column_key(model, key)
        new_id = column_id if column_id is not None else model.next_column_id()
        if model.column(new_id) is not None:
            raise ItemConflictError(f"Column id {new_id} is already used")
        return model.add_column(
            Column(id=new_id, key=key, full_name=full_name or key, notes=notes or None, is_info_field=True)
        )

    column = await edit_table(session, _apply)
    logger.info("table.info_field.created", column_id=column.id, key=column.key)
    return column


async def remove_info_field(session: AsyncSession, column_id: int | str) -> Column:
    """Delete an info-field column and its cells; metric columns are refused."""

    def _apply(model: TableModel) -> Column:
        column = model.column(column_id)
        if column is None or not column.is_info_field:
            raise UnknownItemError(f"Unknown info field id: {column_id!r}")
        return model.remove_column(column.id)

    column = await edit_table(session, _apply)
    logger.info("table.info_field.deleted", column_id=column.id)
    return column


async def delete_cell(session: AsyncSession, entity_id: int | str, column_id: int | str) -> Cell:
    cell = await edit_table(session, lambda model: model.remove_cell(entity_id, column_id))
    logger.info("table.cell.deleted", cell_id=cell.id)
    return cell


def _check_column_key(model: TableModel, key: str, column_id: int | str | None = None) -> None:
    if not key or key in NON_DATA_COLUMNS:
        raise ItemConflictError(f"Column name {key!r} is empty or reserved")
    existing = model.column_by_key(key)
    if existing is not None and existing.id != parse_id(column_id):
        raise ItemConflictError(f"Column name {key!r} is already used by column {existing.id}")


def _complete_order(order: Iterable[int | str], known: Iterable[int]) -> list[int]:
    ids = [item_id for item_id in map(parse_id, order) if item_id is not None]
    listed = set(ids)
    return ids + [item_id for item_id in known if item_id not in listed]
