"""Fixed layout of the flat ranking CSV: reserved names, tokens and control rows."""

from __future__ import annotations

from enum import IntEnum

YES = "是"
NO = "否"

ID_COLUMN = "id"
NAME_COLUMN = "模型名"
HIDDEN_COLUMN = "隐藏"
SHOW_BESIDE_HEADER_COLUMN = "显示在列名旁"
MODEL_FLAG_COLUMN = "isModel"

# Legacy flag column; older exports carry it in the header. It never holds data.
SHOW_BESIDE_ENTITY_COLUMN = "显示在模型旁"

BASE_COLUMNS: tuple[str, ...] = (ID_COLUMN, NAME_COLUMN, HIDDEN_COLUMN)
TRAILING_COLUMNS: tuple[str, ...] = (SHOW_BESIDE_HEADER_COLUMN, MODEL_FLAG_COLUMN)
RESERVED_COLUMNS: frozenset[str] = frozenset(BASE_COLUMNS + TRAILING_COLUMNS)
NON_DATA_COLUMNS: frozenset[str] = RESERVED_COLUMNS | {SHOW_BESIDE_ENTITY_COLUMN}

# Values written into the id-mapping row for the reserved columns.
RESERVED_COLUMN_IDS: dict[str, str] = {
    HIDDEN_COLUMN: "1",
    MODEL_FLAG_COLUMN: "4",
    SHOW_BESIDE_HEADER_COLUMN: "5",
}

RESERVED_ID_LIMIT = 10

# Info-field columns with a numeric id at or below this value precede the metric block.
EARLY_INFO_FIELD_MAX_ID = 5

UNORDERED_SORT_INDEX = 999

DATE_KEYWORDS: tuple[str, ...] = ("date", "cutoff", "time", "日期", "时间")

MAIN_CSV_NAME = "default-ranking.csv"
NOTES_CSV_NAME = "data-notes.csv"
README_NAME = "README.txt"


class ControlRow(IntEnum):
    """Entity-axis ids that carry column metadata instead of entity data."""

    IS_METRIC = 1
    HIDDEN = 2
    SHOW_BESIDE_ENTITY = 3
    FULL_NAME = 4
    NOTES = 5
    COLUMN_ID = 6

    @property
    def label(self) -> str:
        return CONTROL_ROW_LABELS[self]


CONTROL_ROW_LABELS: dict[ControlRow, str] = {
    ControlRow.IS_METRIC: "isDataset",
    ControlRow.HIDDEN: "隐藏",
    ControlRow.SHOW_BESIDE_ENTITY: "显示在模型旁",
    ControlRow.FULL_NAME: "数据集全名",
    ControlRow.NOTES: "备注",
    ControlRow.COLUMN_ID: "id",
}


def flag(value: bool) -> str:
    return YES if value else NO


def is_yes(cell: str | None) -> bool:
    return (cell or "").strip() == YES


def is_date_column(key: str, full_name: str | None = None) -> bool:
    """Date-like columns get their `/` separators rewritten to `.` on import."""

    haystacks = (key.lower(), (full_name or "").lower())
    return any(keyword in haystack for haystack in haystacks for keyword in DATE_KEYWORDS)
