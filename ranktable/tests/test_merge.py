from ranktable.csv_codec import decode
from ranktable.merge import merge_into


def test_merge_upserts_without_deleting(sample_model, update_csv, update_notes_csv) -> None:
    incoming = decode(update_csv, update_notes_csv).model
    counts = merge_into(sample_model, incoming)

    assert counts.as_dict() == {
        "columns_created": 1,
        "columns_updated": 1,
        "entities_created": 1,
        "entities_updated": 1,
        "cells_created": 2,
        "cells_updated": 1,
    }

    assert sample_model.entity(100).display_name == "Alpha v2"
    assert sample_model.get_cell(100, 10).value == "74"
    assert sample_model.get_cell(100, 10).notes == "re-scored"
    assert sample_model.get_cell(100, 13).value == "12"
    assert sample_model.get_cell(103, 13) is None

    # Untouched by the update.
    assert sample_model.get_cell(101, 10).value == "65?"
    assert sample_model.column(11).key == "GPQA"
    assert [entity.id for entity in sample_model.ordered_entities()] == [100, 101, 102, 103]
    assert sample_model.entity(103).sort_index == 3
    assert [column.id for column in sample_model.ordered_columns()] == [10, 11, 13, 12]


def test_merge_into_empty_table_creates_everything(sample_model, update_csv) -> None:
    target = decode(update_csv).model
    target.clear()
    counts = merge_into(target, sample_model)

    assert counts.entities_created == 3
    assert counts.columns_created == 3
    assert counts.cells_created == 7
    assert target.get_cell(102, 10) is None
