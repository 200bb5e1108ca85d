import sqlite3

from ranktable.csv_codec import decode
from ranktable.model import Column, Entity
from ranktable.stores import TableStore


def test_replace_then_load_round_trip(tmp_path, sample_model) -> None:
    store = TableStore(tmp_path / "ranking.db")
    store.replace_table(sample_model)

    assert store.load_table() == sample_model


def test_added_items_keep_their_place_after_reload(tmp_path, sample_model) -> None:
    sample_model.add_entity(Entity(id=sample_model.next_entity_id(), display_name="Delta"))
    sample_model.add_column(Column(id=13, key="HLE"))
    store = TableStore(tmp_path / "ranking.db")
    store.replace_table(sample_model)

    loaded = store.load_table()
    assert [entity.id for entity in loaded.ordered_entities()] == [100, 101, 102, 103]
    assert [column.id for column in loaded.ordered_columns()] == [10, 11, 12, 13]
    assert loaded == sample_model


def test_replace_discards_previous_contents(tmp_path, sample_model, update_csv) -> None:
    store = TableStore(tmp_path / "ranking.db")
    store.replace_table(sample_model)
    store.replace_table(decode(update_csv).model)

    loaded = store.load_table()
    assert sorted(entity.id for entity in loaded.entities) == [100, 103]
    assert loaded.column(11) is None


def test_merge_table_reports_counts(tmp_path, sample_model, update_csv) -> None:
    store = TableStore(tmp_path / "ranking.db")
    store.replace_table(sample_model)
    counts = store.merge_table(decode(update_csv).model)

    assert counts.entities_created == 1
    loaded = store.load_table()
    assert loaded.get_cell(100, 10).value == "74"
    assert loaded.get_cell(101, 11).value == "78"


def test_empty_store_loads_empty_model(tmp_path) -> None:
    db_path = tmp_path / "nested" / "ranking.db"
    assert TableStore(db_path).load_table().stats()["cells"] == 0
    with sqlite3.connect(db_path) as conn:
        tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
    assert {"entities", "columns", "cells"} <= tables
