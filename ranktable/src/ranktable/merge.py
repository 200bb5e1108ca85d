"""Incremental update: fold a freshly decoded table into an existing one without deleting."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .csv_codec import layout_order
from .model import Column, Entity, TableModel

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MergeCounts:
    columns_created: int = 0
    columns_updated: int = 0
    entities_created: int = 0
    entities_updated: int = 0
    cells_created: int = 0
    cells_updated: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "columns_created": self.columns_created,
            "columns_updated": self.columns_updated,
            "entities_created": self.entities_created,
            "entities_updated": self.entities_updated,
            "cells_created": self.cells_created,
            "cells_updated": self.cells_updated,
        }


def merge_into(target: TableModel, incoming: TableModel) -> MergeCounts:
    """Upsert columns, entities and non-empty cells of `incoming` into `target`.

    Columns first, then entities, then cells, so every merged cell finds its
    row and column. Items absent from `incoming` are left untouched. Values and
    notes are trimmed; cells without a value are not merged.
    """

    counts = MergeCounts()

    for column in incoming.columns:
        changes = {
            "key": column.key,
            "full_name": column.full_name,
            "notes": column.notes,
            "hidden": column.hidden,
            "is_info_field": column.is_info_field,
            "show_beside_entity_name": column.show_beside_entity_name,
        }
        if target.column(column.id) is not None:
            target.update_column(column.id, **changes)
            counts.columns_updated += 1
        else:
            target.add_column(Column(id=column.id, **changes))
            counts.columns_created += 1

    for entity in incoming.entities:
        changes = {
            "display_name": entity.display_name,
            "hidden": entity.hidden,
            "show_beside_column_header": entity.show_beside_column_header,
            "is_real_entity": entity.is_real_entity,
        }
        if target.entity(entity.id) is not None:
            target.update_entity(entity.id, **changes)
            counts.entities_updated += 1
        else:
            target.add_entity(Entity(id=entity.id, **changes))
            counts.entities_created += 1

    for cell in incoming.cells:
        value = (cell.value or "").strip()
        if not value:
            continue
        notes = (cell.notes or "").strip() or None
        existed = target.get_cell(cell.entity_id, cell.column_id) is not None
        target.upsert_cell(cell.entity_id, cell.column_id, value, notes)
        if existed:
            counts.cells_updated += 1
        else:
            counts.cells_created += 1

    # New entities stay at the end; new columns take their slot in the file layout.
    target.reorder_entities(target.entity_order)
    target.reorder_columns([column.id for column in layout_order(target.ordered_columns(include_reserved=True))])

    logger.info("Merged table: %s", counts.as_dict())
    return counts
