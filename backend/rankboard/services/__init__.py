"""Service exports."""

from . import snapshots, table_service

__all__ = ["snapshots", "table_service"]
