"""Ranking table toolkit: CSV interchange, table model and export bundles."""

from .archive import build_bundle, bundle_filename, iter_bundle, iter_model_bundle, render_readme
from .csv_codec import EncodedTable, decode, encode, parse_csv
from .merge import MergeCounts, merge_into
from .model import Cell, Column, ColumnKind, Entity, EntityKind, ItemKind, TableModel, is_reserved_id
from .payload import TablePayload, decode_payload, to_payload
from .results import DecodeResult, Diagnostic, TableFormatError
from .stores.sqlite_store import TableStore
from .values import is_estimated, normalize

__all__ = [
    "build_bundle",
    "bundle_filename",
    "iter_bundle",
    "iter_model_bundle",
    "render_readme",
    "EncodedTable",
    "decode",
    "encode",
    "parse_csv",
    "MergeCounts",
    "merge_into",
    "Cell",
    "Column",
    "ColumnKind",
    "Entity",
    "EntityKind",
    "ItemKind",
    "TableModel",
    "is_reserved_id",
    "TablePayload",
    "decode_payload",
    "to_payload",
    "DecodeResult",
    "Diagnostic",
    "TableFormatError",
    "TableStore",
    "is_estimated",
    "normalize",
]
