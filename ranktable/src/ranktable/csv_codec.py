"""Flat ranking CSV <-> TableModel.

The main CSV holds one row per entity plus six control rows (ids 1-6) that
describe the columns: metric flag, hidden flag, show-beside-entity flag, full
name, notes and numeric id. The notes CSV mirrors the layout with each cell
holding the cell's notes instead of its value, and repeats the id row.
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from typing import Iterable

from .layout import (
    BASE_COLUMNS,
    EARLY_INFO_FIELD_MAX_ID,
    HIDDEN_COLUMN,
    ID_COLUMN,
    MODEL_FLAG_COLUMN,
    NAME_COLUMN,
    NO,
    NON_DATA_COLUMNS,
    RESERVED_COLUMN_IDS,
    SHOW_BESIDE_HEADER_COLUMN,
    TRAILING_COLUMNS,
    YES,
    ControlRow,
    flag,
    is_date_column,
    is_yes,
)
from .model import Column, Entity, ItemKind, TableModel, is_reserved_id, parse_id
from .results import DecodeResult, TableFormatError

Record = dict[str, str]

_BOM = "\ufeff"

# Cells written under the reserved columns of each control row.
_CONTROL_ROW_RESERVED_CELLS: dict[ControlRow, dict[str, str]] = {
    ControlRow.IS_METRIC: {HIDDEN_COLUMN: NO, SHOW_BESIDE_HEADER_COLUMN: "", MODEL_FLAG_COLUMN: NO},
    ControlRow.HIDDEN: {HIDDEN_COLUMN: YES, SHOW_BESIDE_HEADER_COLUMN: "", MODEL_FLAG_COLUMN: NO},
    ControlRow.SHOW_BESIDE_ENTITY: {HIDDEN_COLUMN: YES, SHOW_BESIDE_HEADER_COLUMN: "", MODEL_FLAG_COLUMN: NO},
    ControlRow.FULL_NAME: {HIDDEN_COLUMN: YES, SHOW_BESIDE_HEADER_COLUMN: YES, MODEL_FLAG_COLUMN: NO},
    ControlRow.NOTES: {HIDDEN_COLUMN: YES, SHOW_BESIDE_HEADER_COLUMN: YES, MODEL_FLAG_COLUMN: NO},
    ControlRow.COLUMN_ID: dict(RESERVED_COLUMN_IDS),
}


@dataclass(slots=True)
class EncodedTable:
    main_csv: str
    notes_csv: str


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_csv(text: str, *, source: str = "main CSV") -> tuple[list[str], list[Record]]:
    """Parse RFC 4180 text into a header and trimmed records keyed by header name."""

    if text.startswith(_BOM):
        text = text[len(_BOM) :]

    reader = csv.reader(io.StringIO(text, newline=""), strict=True)
    rows: list[tuple[int, list[str]]] = []
    try:
        for raw_row in reader:
            cells = [cell.strip() for cell in raw_row]
            if any(cells):
                rows.append((reader.line_num, cells))
    except csv.Error as exc:
        raise TableFormatError(f"Malformed {source} near line {reader.line_num}: {exc}") from exc

    if not rows:
        raise TableFormatError(f"The {source} has no header row")

    _, header = rows[0]
    while header and not header[-1]:
        header.pop()

    named = [name for name in header if name]
    if not named:
        raise TableFormatError(f"The {source} has an empty header row")
    duplicates = sorted({name for name in named if named.count(name) > 1})
    if duplicates:
        raise TableFormatError(f"The {source} repeats header names: {', '.join(duplicates)}")

    records: list[Record] = []
    for line_num, cells in rows[1:]:
        extras = cells[len(header) :]
        if any(extras):
            raise TableFormatError(
                f"Line {line_num} of the {source} has {len(cells)} cells but the header has {len(header)}"
            )
        records.append(
            {name: (cells[index] if index < len(cells) else "") for index, name in enumerate(header) if name}
        )

    return header, records


def _find_control_rows(records: Iterable[Record]) -> dict[ControlRow, Record]:
    found: dict[ControlRow, Record] = {}
    wanted = {str(row.value): row for row in ControlRow}
    for record in records:
        row = wanted.get(record.get(ID_COLUMN, ""))
        if row is not None and row not in found:
            found[row] = record

    missing = [str(row.value) for row in ControlRow if row not in found]
    if missing:
        raise TableFormatError(
            f"Missing control row(s) with id {', '.join(missing)}; rows with id 1-6 are required"
        )
    return found


def _index_notes(notes_csv: str | None) -> dict[int, Record]:
    if notes_csv is None or not notes_csv.strip():
        return {}

    _, records = parse_csv(notes_csv, source="notes CSV")
    indexed: dict[int, Record] = {}
    for record in records:
        entity_id = parse_id(record.get(ID_COLUMN))
        if entity_id is not None:
            indexed.setdefault(entity_id, record)
    return indexed


# ---------------------------------------------------------------------------
# Decode
# ---------------------------------------------------------------------------


def decode(main_csv: str, notes_csv: str | None = None) -> DecodeResult:
    """Build a TableModel from the main CSV and the optional notes CSV.

    Raises TableFormatError for structural problems. Columns without a usable
    numeric id and entity rows with unusable ids are skipped and reported in
    the result's diagnostics.
    """

    header, records = parse_csv(main_csv, source="main CSV")
    control = _find_control_rows(records)
    notes_by_entity = _index_notes(notes_csv)

    result = DecodeResult(model=TableModel())
    columns = _decode_columns(header, control, result)
    _decode_entities(records, columns, notes_by_entity, result)
    return result


def _decode_columns(header: list[str], control: dict[ControlRow, Record], result: DecodeResult) -> list[Column]:
    model = result.model
    accepted: list[Column] = []
    position = 0

    for key in header:
        if not key or key in NON_DATA_COLUMNS:
            continue

        raw_id = control[ControlRow.COLUMN_ID].get(key, "")
        column_id = parse_id(raw_id)
        if column_id is None:
            result.skip("column.missing_id", key, f"no numeric id in control row 6 (found {raw_id!r}); column skipped")
            continue
        if model.column(column_id) is not None:
            result.skip("column.duplicate_id", key, f"numeric id {column_id} is already used; column skipped")
            continue

        column = Column(
            id=column_id,
            key=key,
            full_name=control[ControlRow.FULL_NAME].get(key) or key,
            notes=control[ControlRow.NOTES].get(key) or None,
            hidden=is_yes(control[ControlRow.HIDDEN].get(key)),
            sort_index=position,
            is_info_field=not is_yes(control[ControlRow.IS_METRIC].get(key)),
            show_beside_entity_name=is_yes(control[ControlRow.SHOW_BESIDE_ENTITY].get(key)),
        )
        model.add_column(column)
        accepted.append(column)
        position += 1
        result.counts.columns += 1

    return accepted


def _decode_entities(
    records: list[Record],
    columns: list[Column],
    notes_by_entity: dict[int, Record],
    result: DecodeResult,
) -> None:
    model = result.model
    position = 0

    for record in records:
        if not is_yes(record.get(MODEL_FLAG_COLUMN)):
            continue

        raw_id = record.get(ID_COLUMN, "")
        name = record.get(NAME_COLUMN, "")
        subject = name or f"row id {raw_id!r}"
        entity_id = parse_id(raw_id)
        if entity_id is None:
            result.skip("entity.invalid_id", subject, f"id {raw_id!r} is not a positive integer; row skipped")
            continue
        if is_reserved_id(entity_id):
            result.skip("entity.reserved_id", subject, f"id {entity_id} is reserved for control rows; row skipped")
            continue
        if model.entity(entity_id) is not None:
            result.skip("entity.duplicate_id", subject, f"id {entity_id} is already used; row skipped")
            continue

        model.add_entity(
            Entity(
                id=entity_id,
                display_name=name,
                hidden=is_yes(record.get(HIDDEN_COLUMN)),
                sort_index=position,
                show_beside_column_header=is_yes(record.get(SHOW_BESIDE_HEADER_COLUMN)),
            )
        )
        position += 1
        result.counts.entities += 1

        notes_record = notes_by_entity.get(entity_id, {})
        for column in columns:
            value = record.get(column.key) or None
            notes = notes_record.get(column.key) or None
            if value and is_date_column(column.key, column.full_name):
                value = value.replace("/", ".")
            if value or notes:
                model.upsert_cell(entity_id, column.id, value, notes)
                result.counts.cells += 1


# ---------------------------------------------------------------------------
# Encode
# ---------------------------------------------------------------------------


def column_layout(model: TableModel) -> list[Column]:
    """Columns in file order: early info fields, metrics, then late info fields."""

    columns = model.ordered_columns(include_reserved=True)
    keys: set[str] = set()
    for column in columns:
        if not column.key or column.key in NON_DATA_COLUMNS:
            raise TableFormatError(f"Column {column.id} uses a reserved or empty name: {column.key!r}")
        if column.key in keys:
            raise TableFormatError(f"Column name {column.key!r} is used by more than one column")
        keys.add(column.key)

    return layout_order(columns)


def layout_order(columns: Iterable[Column]) -> list[Column]:
    """Group columns the way the file lays them out, keeping their order within each group."""

    columns = list(columns)
    early = [column for column in columns if column.is_info_field and column.id <= EARLY_INFO_FIELD_MAX_ID]
    metrics = [column for column in columns if not column.is_info_field]
    late = [column for column in columns if column.is_info_field and column.id > EARLY_INFO_FIELD_MAX_ID]
    return [*early, *metrics, *late]


def _control_cell(row: ControlRow, column: Column, model: TableModel) -> str:
    if row is ControlRow.IS_METRIC:
        return flag(not column.is_info_field)
    if row is ControlRow.HIDDEN:
        return flag(model.effective_hidden(ItemKind.COLUMN, column.id))
    if row is ControlRow.SHOW_BESIDE_ENTITY:
        return flag(column.show_beside_entity_name)
    if row is ControlRow.FULL_NAME:
        return column.full_name or column.key
    if row is ControlRow.NOTES:
        return column.notes or ""
    return str(column.id)


def _control_rows(header: list[str], layout: list[Column], model: TableModel) -> dict[ControlRow, list[str]]:
    rows: dict[ControlRow, list[str]] = {}
    for row in ControlRow:
        cells: dict[str, str] = {ID_COLUMN: str(row.value), NAME_COLUMN: row.label}
        cells.update(_CONTROL_ROW_RESERVED_CELLS[row])
        for column in layout:
            cells[column.key] = _control_cell(row, column, model)
        rows[row] = [cells.get(name, "") for name in header]
    return rows


def _write_csv(rows: Iterable[list[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerows(rows)
    return buffer.getvalue()


def encode(model: TableModel, *, visible_only: bool = False) -> EncodedTable:
    """Render the model as the main CSV and the notes CSV.

    Control rows are rebuilt from the live column metadata. Hidden flags carry
    the effective visibility (persisted or session hidden). With `visible_only`
    hidden entities and columns are left out entirely.
    """

    layout = column_layout(model)
    entities = model.ordered_entities()
    if visible_only:
        layout = [column for column in layout if not model.effective_hidden(ItemKind.COLUMN, column.id)]
        entities = model.visible_entities()
    header = [*BASE_COLUMNS, *(column.key for column in layout), *TRAILING_COLUMNS]

    main_rows: list[list[str]] = [header]
    notes_rows: list[list[str]] = [header]

    for entity in entities:
        entity_key = str(entity.id)
        main_cells: dict[str, str] = {
            ID_COLUMN: entity_key,
            NAME_COLUMN: entity.display_name,
            HIDDEN_COLUMN: flag(model.effective_hidden(ItemKind.ENTITY, entity.id)),
            SHOW_BESIDE_HEADER_COLUMN: YES if entity.show_beside_column_header else "",
            MODEL_FLAG_COLUMN: YES,
        }
        notes_cells: dict[str, str] = {ID_COLUMN: entity_key, NAME_COLUMN: entity.display_name}

        for column in layout:
            cell = model.get_cell(entity.id, column.id)
            if cell is None:
                continue
            main_cells[column.key] = cell.value or ""
            notes_cells[column.key] = cell.notes or ""

        main_rows.append([main_cells.get(name, "") for name in header])
        notes_rows.append([notes_cells.get(name, "") for name in header])

    control_rows = _control_rows(header, layout, model)
    main_rows.extend(control_rows[row] for row in ControlRow)
    notes_rows.append(control_rows[ControlRow.COLUMN_ID])

    return EncodedTable(main_csv=_write_csv(main_rows), notes_csv=_write_csv(notes_rows))
