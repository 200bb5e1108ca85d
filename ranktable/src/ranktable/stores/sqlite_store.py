from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from ..merge import MergeCounts, merge_into
from ..model import Column, Entity, TableModel

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TableStore:
    db_path: Path

    def replace_table(self, model: TableModel) -> None:
        """Drop whatever is stored and write `model` in one transaction."""

        with self._connect() as conn:
            self._ensure_schema(conn)
            conn.execute("DELETE FROM cells")
            conn.execute("DELETE FROM entities")
            conn.execute("DELETE FROM columns")

            conn.executemany(
                """
                INSERT INTO columns (
                    id,
                    key,
                    full_name,
                    notes,
                    hidden,
                    sort_index,
                    is_info_field,
                    show_beside_entity_name
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        column.id,
                        column.key,
                        column.full_name,
                        column.notes,
                        int(column.hidden),
                        column.sort_index,
                        int(column.is_info_field),
                        int(column.show_beside_entity_name),
                    )
                    for column in model.columns
                ],
            )
            conn.executemany(
                """
                INSERT INTO entities (
                    id,
                    display_name,
                    full_name,
                    external_name,
                    hidden,
                    sort_index,
                    show_beside_column_header,
                    is_real_entity
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        entity.id,
                        entity.display_name,
                        entity.full_name,
                        entity.external_name,
                        int(entity.hidden),
                        entity.sort_index,
                        int(entity.show_beside_column_header),
                        int(entity.is_real_entity),
                    )
                    for entity in model.entities
                ],
            )
            conn.executemany(
                """
                INSERT INTO cells (id, entity_id, column_id, value, notes, updated_at)
                VALUES (?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
                """,
                [(cell.id, cell.entity_id, cell.column_id, cell.value, cell.notes) for cell in model.cells],
            )

        logger.info("Stored table in %s: %s", self.db_path, model.stats())

    def merge_table(self, model: TableModel) -> MergeCounts:
        current = self.load_table()
        counts = merge_into(current, model)
        self.replace_table(current)
        return counts

    def load_table(self) -> TableModel:
        model = TableModel()
        with self._connect() as conn:
            self._ensure_schema(conn)
            conn.row_factory = sqlite3.Row

            for row in conn.execute("SELECT * FROM columns ORDER BY sort_index, id"):
                model.add_column(
                    Column(
                        id=row["id"],
                        key=row["key"],
                        full_name=row["full_name"],
                        notes=row["notes"],
                        hidden=bool(row["hidden"]),
                        sort_index=row["sort_index"],
                        is_info_field=bool(row["is_info_field"]),
                        show_beside_entity_name=bool(row["show_beside_entity_name"]),
                    )
                )

            for row in conn.execute("SELECT * FROM entities ORDER BY sort_index, id"):
                model.add_entity(
                    Entity(
                        id=row["id"],
                        display_name=row["display_name"],
                        full_name=row["full_name"],
                        external_name=row["external_name"],
                        hidden=bool(row["hidden"]),
                        sort_index=row["sort_index"],
                        show_beside_column_header=bool(row["show_beside_column_header"]),
                        is_real_entity=bool(row["is_real_entity"]),
                    )
                )

            for row in conn.execute("SELECT entity_id, column_id, value, notes FROM cells ORDER BY entity_id, column_id"):
                if model.entity(row["entity_id"]) is None or model.column(row["column_id"]) is None:
                    logger.warning("Ignoring orphaned cell %s_%s", row["entity_id"], row["column_id"])
                    continue
                model.upsert_cell(row["entity_id"], row["column_id"], row["value"], row["notes"])

        return model

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS entities (
                id INTEGER PRIMARY KEY,
                display_name TEXT NOT NULL,
                full_name TEXT,
                external_name TEXT,
                hidden INTEGER NOT NULL DEFAULT 0,
                sort_index INTEGER NOT NULL DEFAULT 0,
                show_beside_column_header INTEGER NOT NULL DEFAULT 0,
                is_real_entity INTEGER NOT NULL DEFAULT 1
            )
            """
        )

        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS columns (
                id INTEGER PRIMARY KEY,
                key TEXT NOT NULL,
                full_name TEXT NOT NULL,
                notes TEXT,
                hidden INTEGER NOT NULL DEFAULT 0,
                sort_index INTEGER NOT NULL DEFAULT 0,
                is_info_field INTEGER NOT NULL DEFAULT 0,
                show_beside_entity_name INTEGER NOT NULL DEFAULT 0
            )
            """
        )

        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS cells (
                id TEXT PRIMARY KEY,
                entity_id INTEGER NOT NULL,
                column_id INTEGER NOT NULL,
                value TEXT,
                notes TEXT,
                updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                UNIQUE(entity_id, column_id)
            )
            """
        )

        conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_cells_entity_id
            ON cells(entity_id)
            """
        )
