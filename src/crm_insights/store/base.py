"""Abstract row store contract used by ingestion and analytics."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from crm_insights.models.opportunity import Opportunity


class RunRecord:
    """Record of an ingestion run."""

    def __init__(
        self,
        id: int,
        owner_id: str,
        started_at: datetime,
        finished_at: Optional[datetime],
        status: str,
        rows_read: int,
        rows_accepted: int,
        duplicates_dropped: int,
    ):
        self.id = id
        self.owner_id = owner_id
        self.started_at = started_at
        self.finished_at = finished_at
        self.status = status
        self.rows_read = rows_read
        self.rows_accepted = rows_accepted
        self.duplicates_dropped = duplicates_dropped


class RowStore(ABC):
    """
    Persistent opportunity store.
    Upserts are keyed by (owner_id, fingerprint); reads are owner-scoped ranges.
    """

    @abstractmethod
    def upsert_many(self, records: list[Opportunity]) -> int:
        """
        Insert or fully replace records in one atomic operation.
        Returns the number of records written.
        """
        pass

    @abstractmethod
    def fetch_range(self, owner_id: str, start: int, end: int) -> list[Opportunity]:
        """
        Return records start..end (inclusive, 0-based) for one owner in a stable order.
        """
        pass

    @abstractmethod
    def count(self, owner_id: str) -> int:
        """Number of stored records for the owner."""
        pass

    @abstractmethod
    def start_run(self, owner_id: str) -> RunRecord:
        """Record start of an ingestion run."""
        pass

    @abstractmethod
    def finish_run(
        self,
        run_id: int,
        rows_read: int,
        rows_accepted: int,
        duplicates_dropped: int,
        status: str = "completed",
    ) -> None:
        """Record completion (or failure) of an ingestion run."""
        pass


def fetch_all(store: RowStore, owner_id: str, page_size: int = 1000) -> list[Opportunity]:
    """
    Read every record for the owner page by page.
    Stops when a page returns fewer rows than requested.
    """
    rows: list[Opportunity] = []
    start = 0
    while True:
        page = store.fetch_range(owner_id, start, start + page_size - 1)
        rows.extend(page)
        if len(page) < page_size:
            return rows
        start += page_size
