import pytest

from ranktable.csv_codec import column_layout, decode, encode, parse_csv
from ranktable.layout import ControlRow
from ranktable.merge import merge_into
from ranktable.model import Column, Entity, ItemKind, TableModel
from ranktable.results import TableFormatError
from ranktable.values import normalize


def _drop_control_row(text: str, row: ControlRow) -> str:
    prefix = f"{row.value},"
    return "".join(line for line in text.splitlines(keepends=True) if not line.startswith(prefix))


def test_decode_reads_entities_columns_and_cells(sample_main_csv, sample_notes_csv) -> None:
    result = decode(sample_main_csv, sample_notes_csv)
    model = result.model

    assert result.ok
    assert result.counts.as_dict() == {"entities": 3, "columns": 3, "cells": 8, "skipped": 0}
    assert [entity.display_name for entity in model.ordered_entities()] == ["Alpha", "Beta", "Gamma"]

    mmlu = model.column(10)
    assert mmlu.key == "MMLU"
    assert mmlu.full_name == "MMLU Pro"
    assert mmlu.notes == "5-shot"
    assert mmlu.is_info_field is False

    price = model.column_by_key("价格")
    assert price.id == 12
    assert price.is_info_field is True
    assert price.show_beside_entity_name is True

    assert model.entity(101).show_beside_column_header is True
    assert model.entity(102).hidden is True
    assert model.get_cell(101, 10).value == "65?"


def test_multi_value_is_stored_raw_and_only_aggregated_for_display(sample_model) -> None:
    cell = sample_model.get_cell(100, 10)
    assert cell.value == "70/72"
    assert normalize(cell.value) == "71"

    encoded = encode(sample_model)
    assert "70/72" in encoded.main_csv
    assert ",71," not in encoded.main_csv


def test_encode_reproduces_the_source_files(sample_main_csv, sample_notes_csv, sample_model) -> None:
    encoded = encode(sample_model)
    assert encoded.main_csv == sample_main_csv
    assert encoded.notes_csv == sample_notes_csv


def test_notes_file_holds_only_the_notes_only_entry(sample_model) -> None:
    header, records = parse_csv(encode(sample_model).notes_csv, source="notes CSV")
    data_columns = [name for name in header if name in {"MMLU", "GPQA", "价格"}]
    entries = [
        (record["id"], name, record[name])
        for record in records
        if record["id"] != "6"
        for name in data_columns
        if record[name]
    ]
    assert entries == [("102", "MMLU", "pending re-run")]

    notes_only = sample_model.get_cell(102, 10)
    assert notes_only.value is None
    assert notes_only.notes == "pending re-run"


def test_round_trip(sample_model) -> None:
    sample_model.reorder_entities([102, 100, 101])
    sample_model.update_column(11, notes='contains "quotes", commas')
    sample_model.upsert_cell(101, 11, "77.1", "line one\nline two")

    again = decode(*_pair(encode(sample_model))).model
    assert again == sample_model


def test_column_sort_index_counts_from_zero(sample_model) -> None:
    assert [(column.id, column.sort_index) for column in sample_model.ordered_columns()] == [(10, 0), (11, 1), (12, 2)]
    assert [(entity.id, entity.sort_index) for entity in sample_model.ordered_entities()] == [(100, 0), (101, 1), (102, 2)]


def test_round_trip_after_column_reorder(sample_model) -> None:
    sample_model.reorder_columns([10, 11, 12])

    assert decode(*_pair(encode(sample_model))).model == sample_model


def test_round_trip_after_merge(sample_model, update_csv, update_notes_csv) -> None:
    merge_into(sample_model, decode(update_csv, update_notes_csv).model)

    again = decode(*_pair(encode(sample_model))).model
    assert [column.id for column in again.ordered_columns()] == [10, 11, 13, 12]
    assert again == sample_model


def _pair(encoded):
    return encoded.main_csv, encoded.notes_csv


def test_missing_control_row_is_structural(sample_main_csv) -> None:
    with pytest.raises(TableFormatError, match="3"):
        decode(_drop_control_row(sample_main_csv, ControlRow.SHOW_BESIDE_ENTITY))


def test_missing_header_is_structural() -> None:
    with pytest.raises(TableFormatError):
        decode("\n\n")


def test_bad_quoting_is_structural(sample_main_csv) -> None:
    broken = sample_main_csv.replace("100,Alpha", '100,"Alpha', 1)
    with pytest.raises(TableFormatError):
        decode(broken)


def test_duplicate_header_is_structural(sample_main_csv) -> None:
    broken = sample_main_csv.replace("GPQA,价格", "MMLU,价格", 1)
    with pytest.raises(TableFormatError, match="MMLU"):
        decode(broken)


def test_notes_file_is_optional(sample_main_csv) -> None:
    result = decode(sample_main_csv)
    assert result.counts.cells == 7
    assert result.model.get_cell(102, 10) is None


def test_bom_and_surrounding_whitespace_are_ignored(sample_main_csv) -> None:
    padded = "\ufeff" + sample_main_csv.replace("Alpha", " Alpha ")
    assert decode(padded).model.entity(100).display_name == "Alpha"


def test_column_without_numeric_id_is_skipped(sample_main_csv) -> None:
    text = sample_main_csv.replace("6,id,1,10,11,12,5,4", "6,id,1,10,,12,5,4")
    result = decode(text)

    assert [diagnostic.code for diagnostic in result.diagnostics] == ["column.missing_id"]
    assert result.diagnostics[0].subject == "GPQA"
    assert result.model.column_by_key("GPQA") is None
    assert result.counts.columns == 2
    assert result.counts.skipped == 1


def test_rows_with_bad_ids_are_skipped(sample_main_csv) -> None:
    text = sample_main_csv.replace("101,Beta", "abc,Beta").replace("102,Gamma", "100,Gamma")
    text += "7,Reserved,否,1,2,,,是\n"
    result = decode(text)

    codes = sorted(diagnostic.code for diagnostic in result.diagnostics)
    assert codes == ["entity.duplicate_id", "entity.invalid_id", "entity.reserved_id"]
    assert [entity.display_name for entity in result.model.ordered_entities()] == ["Alpha"]


def test_date_columns_switch_slashes_on_import() -> None:
    text = (
        "id,模型名,隐藏,发布日期,MMLU,显示在列名旁,isModel\n"
        "100,Alpha,否,2024/05/13,88,,是\n"
        "1,isDataset,否,否,是,,否\n"
        "2,隐藏,是,否,否,,否\n"
        "3,显示在模型旁,是,是,否,,否\n"
        "4,数据集全名,是,Release date,MMLU,是,否\n"
        "5,备注,是,,,是,否\n"
        "6,id,1,3,10,5,4\n"
    )
    model = decode(text).model
    assert model.get_cell(100, 3).value == "2024.05.13"

    encoded = encode(model)
    assert "2024.05.13" in encoded.main_csv
    assert decode(encoded.main_csv).model.get_cell(100, 3).value == "2024.05.13"


def test_info_fields_split_around_metrics_by_id() -> None:
    model = TableModel()
    model.add_column(Column(id=20, key="价格", is_info_field=True))
    model.add_column(Column(id=10, key="MMLU"))
    model.add_column(Column(id=2, key="发布日期", is_info_field=True))
    model.add_column(Column(id=11, key="GPQA"))
    model.add_column(Column(id=5, key="参数量", is_info_field=True))

    assert [column.key for column in column_layout(model)] == ["发布日期", "参数量", "MMLU", "GPQA", "价格"]


def test_encode_rejects_reserved_column_names() -> None:
    model = TableModel()
    model.add_column(Column(id=10, key="isModel"))
    with pytest.raises(TableFormatError):
        encode(model)


def test_encode_writes_effective_hidden_flags(sample_model) -> None:
    sample_model.set_hidden(ItemKind.ENTITY, 100, True)
    sample_model.set_hidden(ItemKind.COLUMN, 11, True)
    model = decode(encode(sample_model).main_csv).model

    assert model.entity(100).hidden is True
    assert model.column(11).hidden is True


def test_encode_visible_only_leaves_hidden_items_out(sample_model) -> None:
    sample_model.set_hidden(ItemKind.COLUMN, 11, True)
    encoded = encode(sample_model, visible_only=True)
    header, records = parse_csv(encoded.main_csv)

    assert "GPQA" not in header
    assert [record["模型名"] for record in records if record["isModel"] == "是"] == ["Alpha", "Beta"]


def test_entities_without_cells_still_encode() -> None:
    model = TableModel()
    model.add_column(Column(id=10, key="MMLU"))
    model.add_entity(Entity(id=100, display_name="Empty"))

    again = decode(*_pair(encode(model))).model
    assert again.entity(100).display_name == "Empty"
    assert again.cells == []


def _with_legacy_flag_column(text: str) -> str:
    lines = []
    for line in text.splitlines():
        cells = line.split(",")
        cells.insert(6, "显示在模型旁" if cells[0] == "id" else "")
        lines.append(",".join(cells))
    return "\n".join(lines) + "\n"


def test_legacy_show_beside_entity_column_is_dropped(sample_main_csv, sample_notes_csv, sample_model) -> None:
    result = decode(_with_legacy_flag_column(sample_main_csv), _with_legacy_flag_column(sample_notes_csv))

    assert result.diagnostics == []
    assert result.model.column_by_key("显示在模型旁") is None
    assert result.model == sample_model
