from .sqlite_store import TableStore

__all__ = ["TableStore"]
