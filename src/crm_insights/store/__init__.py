"""Row store boundary and the reference SQLite implementation."""

from crm_insights.store.base import RowStore, RunRecord, fetch_all
from crm_insights.store.sqlite_store import SQLiteRowStore

__all__ = ["RowStore", "RunRecord", "SQLiteRowStore", "fetch_all"]
